"""
Report Parser

Normalizes raw earnings-sheet rows into Report records before they reach
the alert scheduler:
- Uppercase ticker
- Report date parsed from the common spreadsheet date formats (date only)
- Session text classified into a SessionCategory

Rows without a ticker or a readable date are skipped and counted, so the
scheduler only ever sees reports with a valid date.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from earnings_alerts.models import Report
from earnings_alerts.session_classifier import classify_session

logger = logging.getLogger(__name__)

# Column indices (0-based) in the earnings sheet
# Col A: Ticker, Col 59 (BG): Next Earnings Date, Col 60 (BH): Time of day
DEFAULT_COLUMNS = {
    "ticker": 0,
    "report_date": 58,
    "session": 59,
    "company": None,    # Sheet has no company column - ticker is used
}

DATE_FORMATS = (
    "%Y-%m-%d",     # 2026-01-15
    "%m/%d/%Y",     # 1/15/2026, 01/15/2026
    "%m/%d/%y",     # 1/15/26
    "%b %d, %Y",    # Jan 15, 2026
    "%B %d, %Y",    # January 15, 2026
    "%d-%b-%Y",     # 15-Jan-2026
)

_TICKER_PATTERN = re.compile(r"^[A-Z0-9.]+$")


@dataclass
class SheetReadResult:
    """Parsed reports plus row statistics for logging."""
    reports: List[Report] = field(default_factory=list)
    total_rows: int = 0
    valid_rows: int = 0
    skipped_rows: int = 0
    warnings: List[str] = field(default_factory=list)


def parse_report_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a sheet date cell into a date.

    Args:
        value: Cell text

    Returns:
        date, or None if the text is empty or not a recognized format
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    # ISO datetime fallback ("2026-01-15T00:00:00")
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def _cell(row: Sequence[str], index: Optional[int]) -> str:
    if index is None or index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


def validate_row(row: Sequence[str], row_number: int, columns: Dict = None):
    """
    Validate a single sheet row.

    Args:
        row: Cell values
        row_number: 1-based sheet row number (for messages)
        columns: Column index mapping (defaults to DEFAULT_COLUMNS)

    Returns:
        tuple: (errors, warnings) as lists of messages
    """
    columns = columns or DEFAULT_COLUMNS
    errors = []
    warnings = []

    ticker = _cell(row, columns["ticker"])
    date_text = _cell(row, columns["report_date"])

    if not ticker:
        errors.append(f"Row {row_number}: Missing ticker symbol")
    elif not _TICKER_PATTERN.match(ticker.upper()):
        warnings.append(f"Row {row_number}: Ticker \"{ticker}\" has unusual characters")

    if not date_text:
        errors.append(f"Row {row_number}: Missing report date")
    elif parse_report_date(date_text) is None:
        errors.append(f"Row {row_number}: Invalid date format \"{date_text}\"")

    return errors, warnings


def parse_row(row: Sequence[str], columns: Dict = None) -> Optional[Report]:
    """
    Convert a sheet row into a Report.

    Returns:
        Report, or None if the ticker or date is unusable
    """
    columns = columns or DEFAULT_COLUMNS

    ticker = _cell(row, columns["ticker"]).upper()
    report_date = parse_report_date(_cell(row, columns["report_date"]))
    if not ticker or report_date is None:
        return None

    session_text = _cell(row, columns.get("session"))
    company = _cell(row, columns.get("company")) or ticker

    return Report(
        ticker=ticker,
        company_name=company,
        report_date=report_date,
        session=classify_session(session_text),
        raw_session_text=session_text or None,
    )


def parse_rows(
    rows: Sequence[Sequence[str]],
    skip_header: bool = True,
    columns: Dict = None,
) -> SheetReadResult:
    """
    Parse raw sheet rows into reports.

    Args:
        rows: Raw rows (lists of cell strings)
        skip_header: Treat the first row as a header
        columns: Column index mapping (defaults to DEFAULT_COLUMNS)

    Returns:
        SheetReadResult with reports and row statistics
    """
    columns = {**DEFAULT_COLUMNS, **(columns or {})}
    result = SheetReadResult()

    data_rows = rows[1:] if skip_header else rows
    first_row_number = 2 if skip_header else 1
    result.total_rows = len(data_rows)

    for i, row in enumerate(data_rows):
        row_number = first_row_number + i

        if not row or all(not str(cell or "").strip() for cell in row):
            continue

        errors, warnings = validate_row(row, row_number, columns)
        result.warnings.extend(warnings)

        if errors:
            for error in errors:
                logger.debug(f"[SKIP] {error}")
            result.skipped_rows += 1
            continue

        report = parse_row(row, columns)
        if report is None:
            logger.warning(f"[SKIP] Row {row_number}: Failed to parse")
            result.skipped_rows += 1
            continue

        result.reports.append(report)

    result.valid_rows = len(result.reports)

    for warning in result.warnings:
        logger.warning(warning)

    logger.info(
        f"Parsed {result.valid_rows} reports from {result.total_rows} rows "
        f"({result.skipped_rows} skipped)"
    )
    return result
