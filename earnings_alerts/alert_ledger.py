"""
Alert Ledger - Tracks which earnings alerts have already been sent.

The daily job may be rerun (manual rerun, scheduler retry after a crash).
Without the ledger every rerun would email the same alerts again. Each
successful send is recorded as (ticker, report date, threshold offset) and
later runs filter those out.

Key features:
- File-based persistence (survives restarts)
- Exclusive file lock (fcntl) around every load -> mutate -> save cycle
- Atomic writes (temp file + os.replace), so readers never see a partial file
- Missing or corrupt ledger file is treated as empty (first run / reset)
- Age-based pruning so the file does not grow forever

Usage:
    from earnings_alerts.alert_ledger import AlertLedger

    ledger = AlertLedger("data/sent_alerts.json")

    unsent = ledger.filter_unsent(due_alerts, threshold_offset=0)
    # ... send email ...
    for alert in unsent:
        ledger.mark_sent(alert.report.ticker, alert.report.report_date, 0)

    ledger.cleanup_old(days_to_keep=30)

File format (sent_alerts.json):
    [
        {"ticker": "MSFT", "reportDate": "2026-01-28",
         "sentAt": "2026-01-27T12:00:03Z", "thresholdOffset": 0},
        ...
    ]
"""

import fcntl
import json
import logging
import os
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Union

import pytz

from earnings_alerts.models import AlertDue, SentAlertRecord

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_PATH = "data/sent_alerts.json"
DEFAULT_DAYS_TO_KEEP = 30


def _utc_now() -> datetime:
    return datetime.now(pytz.utc)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO 8601 UTC with a trailing Z."""
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """
    Parse a ledger sentAt timestamp. Naive timestamps are taken as UTC.

    Raises:
        ValueError: If the timestamp is not ISO 8601
    """
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt


def _report_date_str(report_date: Union[date, str]) -> str:
    if isinstance(report_date, datetime):
        report_date = report_date.date()
    if isinstance(report_date, date):
        return report_date.isoformat()
    return str(report_date)


class AlertLedger:
    """
    File-based ledger of sent alerts.

    Assumes a single host. Concurrent runs on that host are serialized by an
    exclusive lock on "<ledger>.lock" held for the whole read-modify-write
    cycle of mark_sent() and cleanup_old().
    """

    def __init__(
        self,
        ledger_path: str = DEFAULT_LEDGER_PATH,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the Alert Ledger.

        Args:
            ledger_path: Path to the JSON ledger file
            clock: Returns the current (aware) time; defaults to UTC now
        """
        self.ledger_path = ledger_path
        self.lock_path = ledger_path + ".lock"
        self._clock = clock or _utc_now

    def _ensure_directory(self):
        directory = os.path.dirname(self.ledger_path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory, exist_ok=True)
            logger.info(f"Created ledger directory: {directory}")

    @contextmanager
    def _locked(self):
        """Hold the exclusive ledger lock for the duration of the block."""
        self._ensure_directory()
        lock_fd = os.open(self.lock_path, os.O_CREAT | os.O_RDWR)
        try:
            fcntl.flock(lock_fd, fcntl.LOCK_EX)
            yield
        finally:
            fcntl.flock(lock_fd, fcntl.LOCK_UN)
            os.close(lock_fd)

    # === Persistence ===

    def load(self) -> List[SentAlertRecord]:
        """
        Read all sent-alert records.

        A missing, unreadable or corrupt ledger is not an error: it is logged
        and treated as an empty ledger.

        Returns:
            List of records in file order.
        """
        if not os.path.exists(self.ledger_path):
            return []

        try:
            with open(self.ledger_path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Ledger file corrupted, treating as empty: {e}")
            return []
        except OSError as e:
            logger.error(f"Error reading ledger, treating as empty: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Ledger {self.ledger_path} is not a JSON array, treating as empty")
            return []

        records = []
        for entry in data:
            try:
                records.append(SentAlertRecord.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed ledger entry {entry!r}: {e}")
        return records

    def save(self, records: Iterable[SentAlertRecord]):
        """
        Overwrite the ledger with the given records.

        Raises:
            OSError: If the ledger cannot be written. This is fatal for the run,
                     otherwise the same alerts would be re-sent on every rerun.
        """
        payload = [record.to_dict() for record in records]
        temp_path = self.ledger_path + ".tmp"

        try:
            self._ensure_directory()
            with open(temp_path, 'w') as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.ledger_path)
        except Exception as e:
            logger.error(f"Error writing ledger {self.ledger_path}: {e}")
            raise

        logger.debug(f"Ledger saved ({len(payload)} records)")

    # === Queries ===

    @staticmethod
    def _matches(
        record: SentAlertRecord,
        ticker: str,
        report_date: str,
        threshold_offset: Optional[int],
    ) -> bool:
        if record.ticker.upper() != ticker or record.report_date != report_date:
            return False
        if threshold_offset is None or record.threshold_offset is None:
            return True
        return record.threshold_offset == threshold_offset

    def _contains(
        self,
        records: List[SentAlertRecord],
        ticker: str,
        report_date: Union[date, str],
        threshold_offset: Optional[int] = None,
    ) -> bool:
        ticker = ticker.strip().upper()
        report_date = _report_date_str(report_date)
        return any(
            self._matches(record, ticker, report_date, threshold_offset)
            for record in records
        )

    def has_been_sent(
        self,
        ticker: str,
        report_date: Union[date, str],
        threshold_offset: Optional[int] = None,
    ) -> bool:
        """
        Check if an alert was already sent for a report.

        Ticker comparison is case-insensitive. When threshold_offset is given
        it must match too; a record stored without an offset counts as sent
        for every offset.

        Args:
            ticker: Stock ticker symbol
            report_date: Report date (date or ISO string)
            threshold_offset: Alert threshold to check, or None for any

        Returns:
            True if a matching record exists.
        """
        return self._contains(self.load(), ticker, report_date, threshold_offset)

    def filter_unsent(
        self,
        due_alerts: Iterable[AlertDue],
        threshold_offset: Optional[int] = None,
    ) -> List[AlertDue]:
        """
        Drop alerts that were already sent, keeping input order.

        Args:
            due_alerts: Alerts found due for today
            threshold_offset: Alert threshold to check, or None for any

        Returns:
            Alerts that still need to be sent.
        """
        records = self.load()
        unsent = []

        for alert in due_alerts:
            report = alert.report
            if self._contains(records, report.ticker, report.report_date, threshold_offset):
                logger.info(
                    f"[SKIP] Alert already sent for {report.ticker} "
                    f"(report date: {report.report_date.isoformat()})"
                )
                continue
            unsent.append(alert)

        return unsent

    # === Mutations ===

    def mark_sent(
        self,
        ticker: str,
        report_date: Union[date, str],
        threshold_offset: Optional[int] = None,
    ) -> bool:
        """
        Record that an alert was sent and persist immediately.

        Call only after the notification was confirmed delivered.

        Args:
            ticker: Stock ticker symbol
            report_date: Report date (date or ISO string)
            threshold_offset: Alert threshold the send was for

        Returns:
            True if a record was added.
            False if the exact (ticker, report date, offset) was already recorded.

        Raises:
            OSError if the ledger write fails.
        """
        record = SentAlertRecord(
            ticker=ticker.strip().upper(),
            report_date=_report_date_str(report_date),
            sent_at=format_timestamp(self._clock()),
            threshold_offset=threshold_offset,
        )

        with self._locked():
            records = self.load()
            if any(existing.key == record.key for existing in records):
                logger.debug(
                    f"Alert for {record.ticker} ({record.report_date}, "
                    f"offset {threshold_offset}) already recorded"
                )
                return False

            records.append(record)
            self.save(records)

        logger.info(
            f"Marked alert sent: {record.ticker} report {record.report_date}"
            + (f" (offset {threshold_offset})" if threshold_offset is not None else "")
        )
        return True

    def cleanup_old(self, days_to_keep: int = DEFAULT_DAYS_TO_KEEP, now: Optional[datetime] = None) -> int:
        """
        Remove records sent more than days_to_keep days ago.

        Records with an unreadable sentAt are kept, dropping them could
        re-send their alert.

        Args:
            days_to_keep: Retention window in days (default 30)
            now: Reference time (defaults to the ledger clock)

        Returns:
            Number of records removed.
        """
        cutoff = (now or self._clock()) - timedelta(days=days_to_keep)
        if cutoff.tzinfo is None:
            cutoff = pytz.utc.localize(cutoff)

        with self._locked():
            records = self.load()
            kept = []

            for record in records:
                try:
                    sent_at = parse_timestamp(record.sent_at)
                except ValueError:
                    logger.warning(
                        f"Keeping ledger entry for {record.ticker} with unreadable "
                        f"sentAt {record.sent_at!r}"
                    )
                    kept.append(record)
                    continue
                if sent_at >= cutoff:
                    kept.append(record)

            removed = len(records) - len(kept)
            if removed:
                self.save(kept)
                logger.info(f"Cleaned up {removed} ledger entries older than {days_to_keep} days")

        return removed

    def get_ledger_stats(self) -> Dict:
        """
        Get statistics about the ledger for monitoring/debugging.

        Returns:
            dict with total record count and counts by ticker.
        """
        records = self.load()
        stats = {
            "total_records": len(records),
            "by_ticker": {},
            "ledger_path": self.ledger_path,
        }

        for record in records:
            stats["by_ticker"][record.ticker] = stats["by_ticker"].get(record.ticker, 0) + 1

        return stats
