#!/usr/bin/env python3
"""
main.py - Earnings Alerts Daily Job

Checks the earnings sheet for upcoming reports and emails subscribers on
the trading day they need to be warned.

Runs once per day before the open (cron / systemd timer). Safe to rerun:
alerts already delivered are recorded in the sent-alert ledger and skipped.

Flow:
    1. (optional) Skip weekends/holidays
    2. Read the latest earnings tab from Google Sheets
    3. Find reports whose alert date is today (for each alert threshold)
    4. Drop alerts already in the ledger
    5. Send one email with the remaining alerts
    6. Record each sent alert in the ledger, prune old ledger entries

Usage:
    python -m earnings_alerts.main
    python -m earnings_alerts.main --check-trading-day
    python -m earnings_alerts.main --dry-run --date 2026-01-27
    python -m earnings_alerts.main --status
"""

import argparse
import logging
import sys
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from earnings_alerts.alert_ledger import AlertLedger
from earnings_alerts.alert_scheduler import find_due_alerts, get_market_today
from earnings_alerts.config_loader import DEFAULT_CONFIG_PATH, load_config
from earnings_alerts.email_notifier import send_alert_email
from earnings_alerts.models import AlertDue, Report
from earnings_alerts.report_parser import parse_rows
from earnings_alerts.sheets_reader import SheetsReader
from earnings_alerts.trading_calendar import (
    get_holiday_coverage,
    get_holiday_name,
    is_trading_day,
)

logger = logging.getLogger("earnings_alerts")


def setup_logging(verbose: bool = False):
    """Configure console logging for the job."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def load_reports(config: Dict[str, Any], reader: Optional[SheetsReader] = None) -> List[Report]:
    """
    Read and parse the earnings sheet.

    Raises:
        SheetsReadError: If the sheet cannot be read
    """
    sheets_config = config.get("sheets", {})
    reader = reader or SheetsReader(config)
    rows = reader.read_earnings_rows()
    result = parse_rows(
        rows,
        skip_header=sheets_config.get("skip_header", True),
        columns=sheets_config.get("columns") or None,
    )
    return result.reports


def select_unsent(ledger: AlertLedger, due_alerts: List[AlertDue], offsets: List[int]) -> List[AlertDue]:
    """Filter due alerts against the ledger, each against its own threshold."""
    unsent = []
    # Repeated offsets in config must not add the same group twice
    for offset in dict.fromkeys(offsets):
        group = [alert for alert in due_alerts if alert.threshold_offset == offset]
        if group:
            unsent.extend(ledger.filter_unsent(group, threshold_offset=offset))
    unsent.sort(key=lambda alert: alert.report.report_date)
    return unsent


def print_alerts(alerts: List[AlertDue]):
    """Print alerts for dry runs."""
    if not alerts:
        print("\nNo alerts due today")
        return

    print(f"\n{len(alerts)} alert(s) would be sent:")
    for alert in alerts:
        report = alert.report
        print(
            f"  {report.ticker:<8} {report.report_date.strftime('%a %Y-%m-%d')}  "
            f"{report.session.display_name:<12} "
            f"{alert.days_until_report} trading day(s) away (offset {alert.threshold_offset})"
        )


def run_alerts(
    config: Dict[str, Any],
    today: date,
    dry_run: bool = False,
    reader: Optional[SheetsReader] = None,
    ledger: Optional[AlertLedger] = None,
    sender: Callable = send_alert_email,
) -> int:
    """
    Run one alert cycle.

    Args:
        config: Loaded configuration
        today: Run date
        dry_run: Print what would be sent; no email, no ledger writes
        reader: Sheets reader (built from config if None)
        ledger: Alert ledger (built from config if None)
        sender: Callable(config, alerts, today) -> bool that delivers the email

    Returns:
        int: Number of alerts sent (or that would be sent in a dry run)

    Raises:
        SheetsReadError, NotificationError, OSError: The run must be retried
    """
    alerts_config = config.get("alerts", {})
    offsets = alerts_config.get("alert_days_before", [0])
    ledger = ledger or AlertLedger(alerts_config.get("ledger_path", "data/sent_alerts.json"))

    reports = load_reports(config, reader)
    logger.info(f"Loaded {len(reports)} earnings reports")

    due_alerts = find_due_alerts(reports, today, offsets)
    logger.info(f"{len(due_alerts)} report(s) due for alerts on {today.isoformat()}")

    unsent = select_unsent(ledger, due_alerts, offsets)

    if dry_run:
        logger.info("[DRY RUN MODE - No emails will be sent]")
        print_alerts(unsent)
        return len(unsent)

    if not unsent:
        logger.info("Nothing new to send")
    elif sender(config, unsent, today):
        # Record only after the email was delivered
        for alert in unsent:
            ledger.mark_sent(alert.report.ticker, alert.report.report_date, alert.threshold_offset)
    else:
        logger.warning("Alert email not sent (no recipients or email disabled)")
        unsent = []

    ledger.cleanup_old(alerts_config.get("retention_days", 30))
    return len(unsent)


def show_status(config: Dict[str, Any], today: date):
    """Print ledger and calendar status."""
    ledger = AlertLedger(config.get("alerts", {}).get("ledger_path", "data/sent_alerts.json"))
    stats = ledger.get_ledger_stats()
    first_year, last_year = get_holiday_coverage()

    print("\n" + "=" * 60)
    print("EARNINGS ALERTS STATUS")
    print("=" * 60)
    print(f"  Date: {today.strftime('%A, %Y-%m-%d')}")
    holiday = get_holiday_name(today)
    print(f"  Trading day: {'Yes' if is_trading_day(today) else 'No'}"
          + (f" ({holiday})" if holiday else ""))
    print(f"  Holiday table: {first_year}-{last_year}")
    if today.year >= last_year:
        print(f"  WARNING: extend the holiday table past {last_year}")
    print(f"  Alert thresholds: {config.get('alerts', {}).get('alert_days_before', [0])}")
    print(f"  Ledger: {stats['ledger_path']} ({stats['total_records']} records)")
    for ticker, count in sorted(stats["by_ticker"].items()):
        print(f"    {ticker:<8} {count}")
    print()


def _parse_date_arg(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Earnings Alerts - email alerts for upcoming earnings report dates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m earnings_alerts.main                        Run with default config
  python -m earnings_alerts.main --check-trading-day    Skip weekends/holidays
  python -m earnings_alerts.main --dry-run              Show alerts without sending
  python -m earnings_alerts.main --date 2026-01-27      Run as if it were that day
  python -m earnings_alerts.main --status               Show ledger/calendar status
        """
    )

    parser.add_argument(
        "--config", "-c",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})"
    )

    parser.add_argument(
        "--check-trading-day",
        action="store_true",
        help="Only run on trading days (skip weekends/holidays)"
    )

    parser.add_argument(
        "--dry-run", "-d",
        action="store_true",
        help="Show what would be sent without sending or recording anything"
    )

    parser.add_argument(
        "--date",
        type=_parse_date_arg,
        default=None,
        help="Run date YYYY-MM-DD (default: today in US Eastern time)"
    )

    parser.add_argument(
        "--status", "-s",
        action="store_true",
        help="Show ledger and holiday-table status and exit"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)"
    )

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    today = args.date or get_market_today()

    try:
        config = load_config(args.config)

        if args.status:
            show_status(config, today)
            return 0

        if args.check_trading_day and not is_trading_day(today):
            reason = get_holiday_name(today) or today.strftime("%A")
            logger.info(f"{today.isoformat()} is not a trading day ({reason}) - skipping")
            return 0

        count = run_alerts(config, today, dry_run=args.dry_run)
        logger.info(f"Done - {count} alert(s) {'due' if args.dry_run else 'sent'}")
        return 0

    except FileNotFoundError as e:
        logger.error(f"Error: {e}")
        return 1

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        return 1

    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
