"""
Unit tests for the read-only Google Sheets reader.

The gspread client is replaced with a MagicMock, no network access.

Run tests with: python -m pytest tests/test_sheets_reader.py -v
"""

import os
import sys
import threading
from unittest.mock import MagicMock, patch

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from earnings_alerts.sheets_reader import (
    DEFAULT_TAB_NAME,
    READONLY_SCOPES,
    SheetsReadError,
    SheetsReader,
    find_latest_date_tab,
)


def make_config(**sheets):
    config = {"sheets": {"spreadsheet_id": "sheet-123", "timeout": 2}}
    config["sheets"].update(sheets)
    return config


def make_client(tab_titles, rows):
    worksheet = MagicMock()
    worksheet.get_all_values.return_value = rows

    spreadsheet = MagicMock()
    spreadsheet.worksheets.return_value = [MagicMock(title=title) for title in tab_titles]
    spreadsheet.worksheet.return_value = worksheet

    client = MagicMock()
    client.open_by_key.return_value = spreadsheet
    return client, spreadsheet


class TestFindLatestDateTab:

    def test_picks_latest(self):
        assert find_latest_date_tab(["2026-01-20", "Notes", "2026-01-27", "2025-12-31"]) == "2026-01-27"

    def test_no_date_tabs(self):
        assert find_latest_date_tab(["Earnings", "Sheet1"]) is None

    def test_ignores_near_dates(self):
        assert find_latest_date_tab(["2026-1-27", "2026-01-27 copy"]) is None


class TestSheetsReader:

    def test_reads_latest_date_tab(self):
        rows = [["Ticker"], ["MSFT"]]
        client, spreadsheet = make_client(["Earnings", "2026-01-20", "2026-01-27"], rows)

        reader = SheetsReader(make_config(), client=client)

        assert reader.read_earnings_rows() == rows
        client.open_by_key.assert_called_once_with("sheet-123")
        spreadsheet.worksheet.assert_called_once_with("2026-01-27")

    def test_configured_tab_wins(self):
        client, spreadsheet = make_client(["2026-01-27"], [])

        reader = SheetsReader(make_config(tab_name="Manual"), client=client)
        reader.read_earnings_rows()

        spreadsheet.worksheet.assert_called_once_with("Manual")
        spreadsheet.worksheets.assert_not_called()

    def test_falls_back_to_default_tab(self):
        client, spreadsheet = make_client(["Sheet1"], [])

        reader = SheetsReader(make_config(), client=client)

        assert reader.resolve_tab_name() == DEFAULT_TAB_NAME

    def test_tab_listing_failure_falls_back(self):
        client, spreadsheet = make_client([], [])
        spreadsheet.worksheets.side_effect = RuntimeError("quota")

        reader = SheetsReader(make_config(), client=client)

        assert reader.resolve_tab_name(spreadsheet) == DEFAULT_TAB_NAME

    def test_empty_sheet_returns_empty_list(self):
        client, _ = make_client(["2026-01-27"], [])
        reader = SheetsReader(make_config(), client=client)
        assert reader.read_earnings_rows() == []

    def test_missing_spreadsheet_id(self):
        client, _ = make_client([], [])
        reader = SheetsReader(make_config(spreadsheet_id=""), client=client)

        with pytest.raises(SheetsReadError):
            reader.read_earnings_rows()

    def test_open_failure_raises(self):
        client, _ = make_client([], [])
        client.open_by_key.side_effect = RuntimeError("403 forbidden")
        reader = SheetsReader(make_config(), client=client)

        with pytest.raises(SheetsReadError):
            reader.read_earnings_rows()

    def test_missing_worksheet_raises(self):
        client, spreadsheet = make_client([], [])
        spreadsheet.worksheet.side_effect = RuntimeError("WorksheetNotFound")
        reader = SheetsReader(make_config(tab_name="Gone"), client=client)

        with pytest.raises(SheetsReadError):
            reader.read_earnings_rows()

    def test_call_with_timeout_returns_none_on_timeout(self):
        release = threading.Event()

        client, _ = make_client([], [])
        reader = SheetsReader(make_config(), client=client)

        assert reader._call_with_timeout(release.wait, 5, timeout=0.05) is None
        release.set()

    def test_authenticates_with_readonly_scopes(self):
        with patch("earnings_alerts.sheets_reader.Credentials") as mock_creds, \
                patch("earnings_alerts.sheets_reader.gspread.authorize") as mock_authorize:
            reader = SheetsReader(make_config(credentials_file="creds.json"))

        mock_creds.from_service_account_file.assert_called_once_with(
            "creds.json", scopes=READONLY_SCOPES
        )
        assert reader.client is mock_authorize.return_value

    def test_missing_credentials_file(self):
        with patch("earnings_alerts.sheets_reader.Credentials") as mock_creds:
            mock_creds.from_service_account_file.side_effect = FileNotFoundError("creds.json")
            with pytest.raises(SheetsReadError):
                SheetsReader(make_config(credentials_file="creds.json"))
