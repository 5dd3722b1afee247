"""
Read-only Google Sheets access for the earnings sheet.

Provides read-only access to the earnings spreadsheet using gspread with a
service-account credentials file and READ-ONLY scopes.

The earnings sheet gets a new tab per refresh, named by date (YYYY-MM-DD).
Unless a tab name is configured, the most recent date tab is read.

All API calls are wrapped in daemon threads with timeout protection so a
hung Sheets API call cannot freeze the daily job.

Usage:
    from earnings_alerts.sheets_reader import SheetsReader

    reader = SheetsReader(config)
    rows = reader.read_earnings_rows()
"""

import logging
import re
import threading
from typing import Any, Dict, List, Optional

import gspread
from google.oauth2.service_account import Credentials

logger = logging.getLogger(__name__)

# Read-only scopes, cannot modify spreadsheets
READONLY_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets.readonly",
    "https://www.googleapis.com/auth/drive.readonly",
]

# Default timeout for Sheets API calls (seconds)
SHEETS_API_TIMEOUT = 15

DEFAULT_TAB_NAME = "Earnings"

_DATE_TAB_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class SheetsReadError(Exception):
    """Raised when the earnings sheet cannot be read."""


def find_latest_date_tab(tab_names: List[str]) -> Optional[str]:
    """
    Pick the most recent YYYY-MM-DD named tab.

    Args:
        tab_names: All worksheet titles

    Returns:
        Latest date tab name, or None if there is none
    """
    date_tabs = [name for name in tab_names if _DATE_TAB_PATTERN.match(name)]
    if not date_tabs:
        return None
    # String order is date order for YYYY-MM-DD
    return max(date_tabs)


class SheetsReader:
    """Read-only Google Sheets client for the earnings sheet."""

    def __init__(self, config: Dict[str, Any], client: Optional[gspread.Client] = None):
        """
        Initialize SheetsReader.

        Args:
            config: App config dict. Uses config["sheets"] for spreadsheet_id,
                    tab_name, credentials_file and timeout.
            client: Pre-authorized gspread client (skips authentication)
        """
        sheets_config = config.get("sheets", {})
        self.spreadsheet_id = sheets_config.get("spreadsheet_id", "")
        self.tab_name = sheets_config.get("tab_name") or None
        self.credentials_file = sheets_config.get(
            "credentials_file", "config/google_credentials.json"
        )
        self.timeout = sheets_config.get("timeout", SHEETS_API_TIMEOUT)
        self.client = client

        if self.client is None:
            self._initialize()

    def _initialize(self):
        """
        Authenticate with Google Sheets API.

        Raises:
            SheetsReadError: If the credentials file is missing or invalid
        """
        try:
            credentials = Credentials.from_service_account_file(
                self.credentials_file, scopes=READONLY_SCOPES
            )
            self.client = gspread.authorize(credentials)
            logger.info("SheetsReader initialized (read-only)")
        except FileNotFoundError as e:
            logger.error(f"Credentials file not found: {self.credentials_file}")
            raise SheetsReadError(f"Credentials file not found: {self.credentials_file}") from e
        except Exception as e:
            logger.error(f"SheetsReader initialization failed: {e}")
            raise SheetsReadError(f"SheetsReader initialization failed: {e}") from e

    def _call_with_timeout(self, func, *args, timeout: float = None, **kwargs):
        """
        Execute a Google Sheets API call with timeout protection.

        Runs the call in a daemon thread. Returns None if the timeout is
        exceeded or the call fails.
        """
        if timeout is None:
            timeout = self.timeout

        result = [None]
        exception = [None]

        def target():
            try:
                result[0] = func(*args, **kwargs)
            except Exception as e:
                exception[0] = e

        thread = threading.Thread(target=target, daemon=True)
        thread.start()
        thread.join(timeout=timeout)

        if thread.is_alive():
            logger.warning(
                f"Sheets API call timed out after {timeout}s: {getattr(func, '__name__', func)}"
            )
            return None

        if exception[0] is not None:
            logger.warning(f"Sheets API call failed: {exception[0]}")
            return None

        return result[0]

    def _open_spreadsheet(self):
        if not self.spreadsheet_id:
            raise SheetsReadError(
                "Earnings sheet ID not configured. Set GOOGLE_SHEET_ID or sheets.spreadsheet_id"
            )

        spreadsheet = self._call_with_timeout(self.client.open_by_key, self.spreadsheet_id)
        if spreadsheet is None:
            raise SheetsReadError(f"Could not open spreadsheet {self.spreadsheet_id}")
        return spreadsheet

    def list_tabs(self, spreadsheet=None) -> List[str]:
        """List all worksheet titles in the earnings spreadsheet."""
        spreadsheet = spreadsheet or self._open_spreadsheet()
        worksheets = self._call_with_timeout(spreadsheet.worksheets)
        if worksheets is None:
            raise SheetsReadError("Could not list worksheets")
        return [ws.title for ws in worksheets]

    def resolve_tab_name(self, spreadsheet=None) -> str:
        """
        Get the tab to read.

        Priority: configured tab name, then the latest date tab, then "Earnings".
        """
        if self.tab_name:
            return self.tab_name

        try:
            latest = find_latest_date_tab(self.list_tabs(spreadsheet))
        except SheetsReadError as e:
            logger.warning(f"Could not auto-detect date tab ({e}), using default \"{DEFAULT_TAB_NAME}\"")
            return DEFAULT_TAB_NAME

        if latest is None:
            logger.warning(f"No date-named tabs found, using default \"{DEFAULT_TAB_NAME}\"")
            return DEFAULT_TAB_NAME

        logger.info(f"Auto-selected earnings tab: {latest}")
        return latest

    def read_earnings_rows(self) -> List[List[str]]:
        """
        Read the earnings tab as a raw list of lists (including header row).

        Returns:
            List of rows (may be empty)

        Raises:
            SheetsReadError: If the spreadsheet or tab cannot be read
        """
        spreadsheet = self._open_spreadsheet()
        tab_name = self.resolve_tab_name(spreadsheet)

        worksheet = self._call_with_timeout(spreadsheet.worksheet, tab_name)
        if worksheet is None:
            raise SheetsReadError(f"Worksheet not found or timed out: {tab_name}")

        rows = self._call_with_timeout(worksheet.get_all_values)
        if rows is None:
            raise SheetsReadError(f"Failed to read worksheet {tab_name}")

        if not rows:
            logger.info("No data found in sheet")
        return rows
