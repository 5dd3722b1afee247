"""
Tests for the daily alert job (earnings_alerts.main).

The sheet reader and the email sender are replaced with fakes. The ledger is
a real AlertLedger on a temp file, so rerun behavior is exercised end to end.

Run tests with: python -m pytest tests/test_main.py -v
"""

import json
import os
import sys
import tempfile
from datetime import date, datetime
from unittest.mock import patch

import pytest
import pytz

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from earnings_alerts import main as job
from earnings_alerts.alert_ledger import AlertLedger
from earnings_alerts.email_notifier import NotificationError
from earnings_alerts.sheets_reader import SheetsReadError

TODAY = date(2026, 1, 28)   # Wednesday

ROWS = [
    ["Ticker", "Report Date", "Time"],
    ["MSFT", "2026-01-29", "BMO"],          # premarket Thursday -> alert Wednesday
    ["NFLX", "2026-01-28", "AMC"],          # postmarket Wednesday -> alert Wednesday
    ["AAPL", "2026-01-30", "After Close"],  # postmarket Friday -> offset 2 lands Wednesday
    ["TSLA", "2026-02-05", "TBD"],          # not due
    ["", "2026-01-29", "BMO"],              # skipped row
]


class FakeReader:
    def __init__(self, rows=None, error=None):
        self.rows = ROWS if rows is None else rows
        self.error = error

    def read_earnings_rows(self):
        if self.error:
            raise self.error
        return self.rows


class FakeSender:
    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, config, alerts, today):
        self.calls.append(list(alerts))
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as directory:
        yield directory


@pytest.fixture
def ledger_path(temp_dir):
    return os.path.join(temp_dir, "sent_alerts.json")


@pytest.fixture
def ledger(ledger_path):
    return AlertLedger(ledger_path, clock=lambda: datetime(2026, 1, 28, 11, 30, tzinfo=pytz.utc))


def make_config(ledger_path, offsets=None):
    return {
        "sheets": {
            "spreadsheet_id": "sheet-123",
            "columns": {"ticker": 0, "report_date": 1, "session": 2},
            "skip_header": True,
        },
        "alerts": {
            "alert_days_before": offsets or [0],
            "ledger_path": ledger_path,
            "retention_days": 30,
        },
        "email": {"recipients": ["me@example.com"]},
    }


class TestRunAlerts:

    def test_sends_due_alerts_and_records_them(self, ledger, ledger_path):
        sender = FakeSender()

        count = job.run_alerts(make_config(ledger_path), TODAY, reader=FakeReader(), ledger=ledger, sender=sender)

        assert count == 2
        assert len(sender.calls) == 1
        assert [a.report.ticker for a in sender.calls[0]] == ["NFLX", "MSFT"]
        assert ledger.has_been_sent("MSFT", date(2026, 1, 29), 0)
        assert ledger.has_been_sent("NFLX", date(2026, 1, 28), 0)

    def test_rerun_sends_nothing(self, ledger, ledger_path):
        config = make_config(ledger_path)
        job.run_alerts(config, TODAY, reader=FakeReader(), ledger=ledger, sender=FakeSender())

        sender = FakeSender()
        count = job.run_alerts(config, TODAY, reader=FakeReader(), ledger=ledger, sender=sender)

        assert count == 0
        assert sender.calls == []
        assert len(ledger.load()) == 2

    def test_multiple_thresholds(self, ledger, ledger_path):
        sender = FakeSender()

        count = job.run_alerts(
            make_config(ledger_path, offsets=[0, 2]), TODAY,
            reader=FakeReader(), ledger=ledger, sender=sender,
        )

        assert count == 3
        assert [a.report.ticker for a in sender.calls[0]] == ["NFLX", "MSFT", "AAPL"]
        assert ledger.has_been_sent("AAPL", date(2026, 1, 30), 2)
        assert not ledger.has_been_sent("AAPL", date(2026, 1, 30), 0)

    def test_repeated_offsets_send_each_report_once(self, ledger, ledger_path):
        sender = FakeSender()

        count = job.run_alerts(
            make_config(ledger_path, offsets=[0, 0]), TODAY,
            reader=FakeReader(), ledger=ledger, sender=sender,
        )

        assert count == 2
        assert [a.report.ticker for a in sender.calls[0]] == ["NFLX", "MSFT"]
        assert len(ledger.load()) == 2

    def test_dry_run_writes_nothing(self, ledger, ledger_path, capsys):
        sender = FakeSender()

        count = job.run_alerts(
            make_config(ledger_path), TODAY, dry_run=True,
            reader=FakeReader(), ledger=ledger, sender=sender,
        )

        assert count == 2
        assert sender.calls == []
        assert not os.path.exists(ledger_path)
        assert "2 alert(s) would be sent" in capsys.readouterr().out

    def test_send_failure_leaves_ledger_untouched(self, ledger, ledger_path):
        sender = FakeSender(error=NotificationError("smtp down"))

        with pytest.raises(NotificationError):
            job.run_alerts(make_config(ledger_path), TODAY, reader=FakeReader(), ledger=ledger, sender=sender)

        assert ledger.load() == []

    def test_sender_declined_records_nothing(self, ledger, ledger_path):
        count = job.run_alerts(
            make_config(ledger_path), TODAY,
            reader=FakeReader(), ledger=ledger, sender=FakeSender(result=False),
        )

        assert count == 0
        assert ledger.load() == []

    def test_sheet_failure_propagates(self, ledger, ledger_path):
        sender = FakeSender()

        with pytest.raises(SheetsReadError):
            job.run_alerts(
                make_config(ledger_path), TODAY,
                reader=FakeReader(error=SheetsReadError("timeout")), ledger=ledger, sender=sender,
            )

        assert sender.calls == []

    def test_prunes_old_entries(self, ledger, ledger_path):
        with open(ledger_path, 'w') as f:
            json.dump([
                {"ticker": "OLD", "reportDate": "2025-11-20", "sentAt": "2025-11-19T11:30:00Z"},
            ], f)

        job.run_alerts(make_config(ledger_path), TODAY, reader=FakeReader(), ledger=ledger, sender=FakeSender())

        assert sorted(r.ticker for r in ledger.load()) == ["MSFT", "NFLX"]

    def test_nothing_due(self, ledger, ledger_path):
        sender = FakeSender()
        count = job.run_alerts(
            make_config(ledger_path), date(2026, 1, 20),
            reader=FakeReader(), ledger=ledger, sender=sender,
        )
        assert count == 0
        assert sender.calls == []


class TestMain:

    @pytest.fixture
    def config_path(self, temp_dir, ledger_path):
        path = os.path.join(temp_dir, "config.json")
        with open(path, 'w') as f:
            json.dump(make_config(ledger_path), f)
        return path

    def test_missing_config_returns_error(self):
        assert job.main(["--config", "/nonexistent/config.json", "--date", "2026-01-28"]) == 1

    def test_skips_non_trading_day(self, config_path):
        with patch.object(job, "run_alerts") as mock_run:
            assert job.main(["--config", config_path, "--check-trading-day", "--date", "2026-01-19"]) == 0
        mock_run.assert_not_called()

    def test_runs_on_trading_day(self, config_path):
        with patch.object(job, "run_alerts", return_value=2) as mock_run:
            assert job.main(["--config", config_path, "--check-trading-day", "--date", "2026-01-28"]) == 0

        args, kwargs = mock_run.call_args
        assert args[1] == TODAY
        assert kwargs["dry_run"] is False

    def test_dry_run_flag(self, config_path):
        with patch.object(job, "run_alerts", return_value=0) as mock_run:
            job.main(["--config", config_path, "--dry-run", "--date", "2026-01-28"])
        assert mock_run.call_args[1]["dry_run"] is True

    def test_run_failure_returns_error(self, config_path):
        with patch.object(job, "run_alerts", side_effect=SheetsReadError("boom")):
            assert job.main(["--config", config_path, "--date", "2026-01-28"]) == 1

    def test_invalid_config_returns_error(self, temp_dir):
        path = os.path.join(temp_dir, "bad.json")
        with open(path, 'w') as f:
            json.dump({"alerts": {"alert_days_before": [-1]}}, f)

        assert job.main(["--config", path, "--date", "2026-01-28"]) == 1

    def test_status(self, config_path, capsys):
        assert job.main(["--config", config_path, "--status", "--date", "2026-01-19"]) == 0

        out = capsys.readouterr().out
        assert "EARNINGS ALERTS STATUS" in out
        assert "Martin Luther King" in out

    def test_bad_date_argument(self):
        with pytest.raises(SystemExit):
            job.main(["--date", "01/28/2026"])
