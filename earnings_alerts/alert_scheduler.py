#!/usr/bin/env python3
"""
Alert Scheduler Module

Decides on which trading day a subscriber must be alerted about an upcoming
earnings report, and which reports are due on a given run date.

The business rule (reproduce exactly):
- POSTMARKET report -> alert the morning OF the report date
  (report lands after the close, so there is still a full session to act)
- PREMARKET or UNKNOWN report -> alert the morning of the trading day BEFORE
  (report lands before the open, so the report day itself is too late)

Either way the result is snapped back to a trading day, then moved back by
the requested number of extra trading days (the threshold offset), e.g.
offsets [5, 1] alert five and one trading days ahead of the base alert date.

Usage:
    from earnings_alerts.alert_scheduler import find_due_alerts

    due = find_due_alerts(reports, date(2026, 1, 27), offsets=[0, 5])
    for alert in due:
        print(alert.report.ticker, alert.days_until_report)
"""

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

import pytz

from earnings_alerts.models import AlertDue, Report, SessionCategory
from earnings_alerts.trading_calendar import (
    previous_trading_day,
    trading_day_on_or_before,
    trading_days_between,
)

logger = logging.getLogger(__name__)

# Market day boundary - "today" is the calendar date in New York
US_EASTERN = pytz.timezone('America/New_York')

DEFAULT_OFFSETS = (0,)


def get_market_today() -> date:
    """
    Get today's date in US Eastern time.

    Returns:
        date: Current calendar date at the exchange
    """
    return datetime.now(US_EASTERN).date()


def base_alert_date(report: Report) -> date:
    """
    Get the primary (offset 0) alert date for a report.

    Args:
        report: Earnings report with date and session

    Returns:
        date: Trading day on which the alert is sent
    """
    if report.session is SessionCategory.POSTMARKET:
        # Postmarket on Wednesday -> alert Wednesday morning
        alert_date = report.report_date
    else:
        # Premarket/unknown on Thursday -> alert Wednesday morning
        alert_date = previous_trading_day(report.report_date)

    return trading_day_on_or_before(alert_date)


def alert_date_for(report: Report, trading_days_before: int = 0) -> date:
    """
    Get the alert date for a report at a given threshold offset.

    Args:
        report: Earnings report
        trading_days_before: Extra trading days before the primary alert date
                             (0 or negative means the primary alert date)

    Returns:
        date: Alert date, always a trading day
    """
    alert_date = base_alert_date(report)

    for _ in range(max(trading_days_before, 0)):
        alert_date = previous_trading_day(alert_date)

    return alert_date


def find_due_alerts(
    reports: Iterable[Report],
    today,
    offsets: Optional[Sequence[int]] = None,
) -> List[AlertDue]:
    """
    Find all reports whose alert date is the given day.

    Offsets are checked in the given order and a report is emitted at most
    once, for the first offset that lands on today. Two thresholds can land
    on the same day when a holiday sits between them.

    Args:
        reports: Normalized earnings reports
        today: Run date (a datetime is truncated to its date)
        offsets: Trading days before the primary alert date to check (default [0])

    Returns:
        List of AlertDue sorted by report date (input order kept for ties)
    """
    if isinstance(today, datetime):
        today = today.date()
    if offsets is None:
        offsets = DEFAULT_OFFSETS

    due_alerts = []

    for report in reports:
        report_date = getattr(report, "report_date", None)
        if not isinstance(report_date, date) or isinstance(report_date, datetime):
            logger.warning(
                f"Skipping report {getattr(report, 'ticker', '?')}: "
                f"invalid report date {report_date!r}"
            )
            continue

        for offset in offsets:
            alert_date = alert_date_for(report, offset)
            if alert_date != today:
                continue

            due_alerts.append(AlertDue(
                report=report,
                alert_date=alert_date,
                days_until_report=trading_days_between(today, report_date),
                threshold_offset=offset,
            ))
            logger.debug(
                f"{report.ticker} due: report {report_date} ({report.session.value}), "
                f"offset {offset}"
            )
            break

    due_alerts.sort(key=lambda alert: alert.report.report_date)
    return due_alerts


def find_alerts_due_today(
    reports: Iterable[Report],
    offsets: Optional[Sequence[int]] = None,
) -> List[AlertDue]:
    """Find reports due for alerts on today's market date."""
    return find_due_alerts(reports, get_market_today(), offsets)
