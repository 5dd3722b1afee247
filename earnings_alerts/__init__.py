"""
Earnings Alerts - email alerts for upcoming company earnings reports.

This package contains the daily alert job and its building blocks:
- trading_calendar: NYSE trading days (weekends + explicit holiday table)
- session_classifier: "reports at" text -> premarket / postmarket / unknown
- alert_scheduler: alert date per report and the reports due on a given day
- alert_ledger: persisted record of alerts already sent (rerun-safe)
- report_parser: earnings-sheet rows -> Report records
- sheets_reader: read-only Google Sheets access
- email_notifier: HTML alert email over SMTP
- config_loader: config.json + environment overrides

ALERT TIMING
================================================================================
    Report session      Alert sent on (morning, before the open)
    ----------------    --------------------------------------------
    Post-market         The report date itself
    Pre-market          The trading day before the report date
    Unknown             Same as pre-market (alerting early beats missing it)

Alert dates always land on a trading day. Threshold offsets (config
alerts.alert_days_before, e.g. [5, 1]) send extra alerts that many trading
days before the primary alert date. A report appears at most once per run.

HOLIDAY TABLE
================================================================================
NYSE closures are an explicit per-year table in trading_calendar.py, not a
rule engine. It must be extended every year before the last covered year
ends. `python -m earnings_alerts.main --status` prints the covered range.

Usage:
    from earnings_alerts import find_due_alerts, AlertLedger

    due = find_due_alerts(reports, today, offsets=[5, 0])
    ledger = AlertLedger("data/sent_alerts.json")
    unsent = ledger.filter_unsent(due)
================================================================================
"""

from earnings_alerts.models import AlertDue, Report, SentAlertRecord, SessionCategory
from earnings_alerts.trading_calendar import (
    is_trading_day,
    next_trading_day,
    previous_trading_day,
    trading_day_on_or_before,
    trading_day_on_or_after,
    trading_days_between,
    trading_days_in_range,
    get_holiday_name,
    get_holiday_coverage,
)
from earnings_alerts.session_classifier import classify_session
from earnings_alerts.alert_scheduler import (
    alert_date_for,
    find_due_alerts,
    find_alerts_due_today,
    get_market_today,
)
from earnings_alerts.alert_ledger import AlertLedger

__all__ = [
    # Models
    'AlertDue', 'Report', 'SentAlertRecord', 'SessionCategory',
    # Trading Calendar
    'is_trading_day', 'next_trading_day', 'previous_trading_day',
    'trading_day_on_or_before', 'trading_day_on_or_after',
    'trading_days_between', 'trading_days_in_range',
    'get_holiday_name', 'get_holiday_coverage',
    # Session Classification
    'classify_session',
    # Alert Scheduling
    'alert_date_for', 'find_due_alerts', 'find_alerts_due_today', 'get_market_today',
    # Ledger
    'AlertLedger',
]
