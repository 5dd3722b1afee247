"""
Session Classifier

Turns the free-form "time of day" text from the earnings sheet into a
SessionCategory. Handles:
- Named sessions: "premarket", "BMO", "after market close", "AMC", ...
- 12-hour clock times: "6:00am", "4:30 PM", "9am", "930am"
- 24-hour clock times: "16:00", "09:30", "0530"

Clock times are bucketed by the session windows below (inclusive bounds):
    Premarket:  5:00 AM - 9:30 AM ET
    Postmarket: 4:00 PM - 8:00 PM ET

Times outside both windows:
    Before 5:00 AM           -> premarket (overnight releases are out before the open)
    9:31 AM - 3:59 PM        -> unknown (released during regular hours)
    After 8:00 PM            -> postmarket

classify_session() never raises. Anything it cannot read is UNKNOWN, which
the alert scheduler treats the same as PREMARKET.
"""

import logging
import re
from datetime import time
from typing import Optional, Tuple

from earnings_alerts.models import SessionCategory

logger = logging.getLogger(__name__)

# Session windows (ET, inclusive)
PREMARKET_WINDOW_START = time(5, 0)
PREMARKET_WINDOW_END = time(9, 30)
POSTMARKET_WINDOW_START = time(16, 0)
POSTMARKET_WINDOW_END = time(20, 0)

# Sheet placeholders meaning "not announced yet"
UNKNOWN_MARKERS = ("unspecified", "xx", "tbd", "tba", "n/a", "na", "-")

PREMARKET_INDICATORS = (
    "premarket",
    "pre-market",
    "pre",
    "bmo",  # Before Market Open
    "before market open",
    "before market",
    "before open",
    "morning",
)

POSTMARKET_INDICATORS = (
    "postmarket",
    "post-market",
    "post",
    "amc",  # After Market Close
    "after market close",
    "after market",
    "after close",
    "after hours",
    "evening",
)

_TIME_WITH_PERIOD = re.compile(r"^(\d{1,2}):?(\d{2})?\s*([ap])\.?m\.?$")
_TIME_24H_COLON = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_24H_COMPACT = re.compile(r"^(\d{2})(\d{2})$")


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def _valid(hours: int, minutes: int) -> Optional[Tuple[int, int]]:
    if 0 <= hours <= 23 and 0 <= minutes <= 59:
        return hours, minutes
    return None


def parse_clock_time(text: str) -> Optional[Tuple[int, int]]:
    """
    Parse a clock time into (hours, minutes) on a 24-hour clock.

    Args:
        text: Lowercase, trimmed time string

    Returns:
        (hours, minutes) or None if the text is not a recognizable time
    """
    match = _TIME_WITH_PERIOD.match(text)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2) or 0)
        period = match.group(3)
        if hours > 12:
            return None

        # Convert to 24-hour
        if period == "p" and hours != 12:
            hours += 12
        elif period == "a" and hours == 12:
            hours = 0
        return _valid(hours, minutes)

    match = _TIME_24H_COLON.match(text) or _TIME_24H_COMPACT.match(text)
    if match:
        return _valid(int(match.group(1)), int(match.group(2)))

    return None


def categorize_time(hours: int, minutes: int) -> SessionCategory:
    """
    Bucket a 24-hour clock time into a session category.

    Args:
        hours: Hour (0-23)
        minutes: Minute (0-59)

    Returns:
        SessionCategory for the time
    """
    value = hours * 60 + minutes

    if _minutes(PREMARKET_WINDOW_START) <= value <= _minutes(PREMARKET_WINDOW_END):
        return SessionCategory.PREMARKET

    if _minutes(POSTMARKET_WINDOW_START) <= value <= _minutes(POSTMARKET_WINDOW_END):
        return SessionCategory.POSTMARKET

    # Midnight to 5:00 AM - the report is out before the open
    if value < _minutes(PREMARKET_WINDOW_START):
        return SessionCategory.PREMARKET

    # After 8:00 PM
    if value > _minutes(POSTMARKET_WINDOW_END):
        return SessionCategory.POSTMARKET

    # Regular trading hours
    return SessionCategory.UNKNOWN


def classify_session(raw_text: Optional[str]) -> SessionCategory:
    """
    Classify a raw "reports at" string into a session category.

    Checks, in order: empty/placeholder text, premarket names, postmarket
    names, then a clock time. Matching is case-insensitive.

    Args:
        raw_text: Time-of-day text from the sheet (may be None)

    Returns:
        SessionCategory (UNKNOWN when nothing can be determined)
    """
    if not raw_text or not isinstance(raw_text, str):
        return SessionCategory.UNKNOWN

    normalized = raw_text.strip().lower()
    if not normalized or normalized in UNKNOWN_MARKERS:
        return SessionCategory.UNKNOWN

    for indicator in PREMARKET_INDICATORS:
        if indicator in normalized:
            return SessionCategory.PREMARKET

    for indicator in POSTMARKET_INDICATORS:
        if indicator in normalized:
            return SessionCategory.POSTMARKET

    parsed = parse_clock_time(normalized)
    if parsed is not None:
        return categorize_time(*parsed)

    logger.debug(f"Unrecognized session text {raw_text!r} - treating as unknown")
    return SessionCategory.UNKNOWN
