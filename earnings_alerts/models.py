"""
Earnings Alert Data Models.

Plain data records passed between the sheet reader, the alert scheduler,
the alert ledger and the email notifier:
- SessionCategory: When a company releases its report relative to market hours
- Report: One normalized upcoming earnings report
- AlertDue: A report whose alert date is the current run's date
- SentAlertRecord: One entry of the persisted sent-alert ledger
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class SessionCategory(Enum):
    """
    Market session in which an earnings report is released.

    UNKNOWN is a first-class category, never an error. For scheduling it is
    treated exactly like PREMARKET (alert the trading day before).
    """
    PREMARKET = "premarket"     # Released before the open (5:00 AM - 9:30 AM ET)
    POSTMARKET = "postmarket"   # Released after the close (4:00 PM - 8:00 PM ET)
    UNKNOWN = "unknown"         # Not stated or unparseable

    @property
    def display_name(self) -> str:
        """Label used in alert emails."""
        if self is SessionCategory.PREMARKET:
            return "Pre-market"
        if self is SessionCategory.POSTMARKET:
            return "Post-market"
        return "TBD"


@dataclass(frozen=True)
class Report:
    """
    A normalized upcoming earnings report.

    Attributes:
        ticker: Canonical uppercase ticker symbol
        company_name: Company display name (falls back to ticker)
        report_date: Calendar date of the report (no time component)
        session: Session category the report is released in
        raw_session_text: Original session/time text from the sheet, if any
    """
    ticker: str
    company_name: str
    report_date: date
    session: SessionCategory = SessionCategory.UNKNOWN
    raw_session_text: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "ticker", self.ticker.strip().upper())


@dataclass(frozen=True)
class AlertDue:
    """
    A report that needs an alert on the scan date.

    Attributes:
        report: The report being alerted
        alert_date: Trading day the alert is emitted (equals the scan date)
        days_until_report: Signed trading-day count from alert_date to report date
        threshold_offset: The alert offset (trading days before) that matched
    """
    report: Report
    alert_date: date
    days_until_report: int
    threshold_offset: int = 0


@dataclass(frozen=True)
class SentAlertRecord:
    """
    One persisted "alert already sent" entry.

    Attributes:
        ticker: Uppercase ticker symbol
        report_date: ISO date string (YYYY-MM-DD) of the report
        sent_at: ISO 8601 UTC timestamp of the send
        threshold_offset: Alert offset the send was for, None if threshold-agnostic
    """
    ticker: str
    report_date: str
    sent_at: str
    threshold_offset: Optional[int] = None

    @property
    def key(self) -> Tuple[str, str, Optional[int]]:
        """Identity used for de-duplication: (ticker, report date, offset)."""
        return (self.ticker.upper(), self.report_date, self.threshold_offset)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the ledger file format (camelCase keys)."""
        data = {
            "ticker": self.ticker,
            "reportDate": self.report_date,
            "sentAt": self.sent_at,
        }
        if self.threshold_offset is not None:
            data["thresholdOffset"] = self.threshold_offset
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentAlertRecord":
        """
        Build a record from a ledger file entry.

        Raises:
            KeyError: If a required field is missing
            ValueError: If thresholdOffset is not an integer
        """
        offset = data.get("thresholdOffset")
        return cls(
            ticker=str(data["ticker"]).upper(),
            report_date=str(data["reportDate"]),
            sent_at=str(data["sentAt"]),
            threshold_offset=int(offset) if offset is not None else None,
        )
