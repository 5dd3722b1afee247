#!/usr/bin/env python3
"""
Trading Calendar Module

NYSE trading-day arithmetic used to schedule earnings alerts:
- Weekends (Saturday/Sunday) are never trading days
- Market holidays come from an explicit per-year table (no holiday rules)
- Stepping forward/backward to the nearest trading day
- Signed trading-day distance between two dates

The holiday table is reviewed by hand and must be extended every year.
Call get_holiday_coverage() to see which years it covers; dates outside the
covered years are treated as trading days on every weekday.

Key functions:
- is_trading_day(): Weekday and not a listed market holiday
- next_trading_day() / previous_trading_day(): Strict stepping (never returns input)
- trading_day_on_or_before() / trading_day_on_or_after(): Snap to a trading day
- trading_days_between(): Signed count, 0 = same day, 1 = next trading day
- trading_days_in_range(): All trading days in [from, to]
"""

import logging
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]

# weekday() returns 0=Monday, 6=Sunday
WEEKEND_DAYS = frozenset({5, 6})


# ============================================================================
# NYSE Holiday Dates
# ============================================================================

# Full-day market closures published by NYSE.
# Source: https://www.nyse.com/markets/hours-calendars
# Saturday holidays are observed Friday, Sunday holidays are observed Monday.

NYSE_HOLIDAYS_2024 = {
    date(2024, 1, 1): "New Year's Day",
    date(2024, 1, 15): "Martin Luther King Jr. Day",
    date(2024, 2, 19): "Presidents' Day",
    date(2024, 3, 29): "Good Friday",
    date(2024, 5, 27): "Memorial Day",
    date(2024, 6, 19): "Juneteenth",
    date(2024, 7, 4): "Independence Day",
    date(2024, 9, 2): "Labor Day",
    date(2024, 11, 28): "Thanksgiving Day",
    date(2024, 12, 25): "Christmas Day",
}

NYSE_HOLIDAYS_2025 = {
    date(2025, 1, 1): "New Year's Day",
    date(2025, 1, 9): "National Day of Mourning (President Carter)",
    date(2025, 1, 20): "Martin Luther King Jr. Day",
    date(2025, 2, 17): "Presidents' Day",
    date(2025, 4, 18): "Good Friday",
    date(2025, 5, 26): "Memorial Day",
    date(2025, 6, 19): "Juneteenth",
    date(2025, 7, 4): "Independence Day",
    date(2025, 9, 1): "Labor Day",
    date(2025, 11, 27): "Thanksgiving Day",
    date(2025, 12, 25): "Christmas Day",
}

NYSE_HOLIDAYS_2026 = {
    date(2026, 1, 1): "New Year's Day",
    date(2026, 1, 19): "Martin Luther King Jr. Day",
    date(2026, 2, 16): "Presidents' Day",
    date(2026, 4, 3): "Good Friday",
    date(2026, 5, 25): "Memorial Day",
    date(2026, 6, 19): "Juneteenth",
    date(2026, 7, 3): "Independence Day (observed)",   # July 4 is a Saturday
    date(2026, 9, 7): "Labor Day",
    date(2026, 11, 26): "Thanksgiving Day",
    date(2026, 12, 25): "Christmas Day",
}

NYSE_HOLIDAYS_2027 = {
    date(2027, 1, 1): "New Year's Day",
    date(2027, 1, 18): "Martin Luther King Jr. Day",
    date(2027, 2, 15): "Presidents' Day",
    date(2027, 3, 26): "Good Friday",
    date(2027, 5, 31): "Memorial Day",
    date(2027, 6, 18): "Juneteenth (observed)",         # June 19 is a Saturday
    date(2027, 7, 5): "Independence Day (observed)",    # July 4 is a Sunday
    date(2027, 9, 6): "Labor Day",
    date(2027, 11, 25): "Thanksgiving Day",
    date(2027, 12, 24): "Christmas Day (observed)",     # Dec 25 is a Saturday
}

NYSE_HOLIDAYS = {
    2024: NYSE_HOLIDAYS_2024,
    2025: NYSE_HOLIDAYS_2025,
    2026: NYSE_HOLIDAYS_2026,
    2027: NYSE_HOLIDAYS_2027,
}

# Flattened lookup, built once at import and never modified
NYSE_HOLIDAY_SET = frozenset(d for holidays in NYSE_HOLIDAYS.values() for d in holidays)


def _to_date(value: DateLike) -> date:
    """Strip the time component (datetime is a subclass of date)."""
    if isinstance(value, datetime):
        return value.date()
    return value


@lru_cache(maxsize=None)
def _warn_uncovered_year(year: int):
    # Cached so each missing year is only reported once per process
    logger.warning(
        f"No NYSE holiday table for {year} - only weekends are treated as closed. "
        f"Extend trading_calendar.NYSE_HOLIDAYS."
    )


def get_holiday_coverage() -> Tuple[int, int]:
    """
    Get the first and last year covered by the holiday table.

    Returns:
        tuple: (first_year, last_year)
    """
    return min(NYSE_HOLIDAYS), max(NYSE_HOLIDAYS)


def get_market_holidays(year: int) -> Dict[date, str]:
    """
    Get all NYSE full-day closures for a given year.

    Args:
        year: Year to get holidays for

    Returns:
        dict: Holiday date -> holiday name (empty if the year is not covered)
    """
    return dict(NYSE_HOLIDAYS.get(year, {}))


def get_holiday_name(check_date: DateLike) -> Optional[str]:
    """
    Get the name of the holiday if the given date is a market holiday.

    Args:
        check_date: Date to check

    Returns:
        str or None: Holiday name if it's a holiday, None otherwise
    """
    check_date = _to_date(check_date)
    holidays = NYSE_HOLIDAYS.get(check_date.year)
    if holidays is None:
        _warn_uncovered_year(check_date.year)
        return None
    return holidays.get(check_date)


def is_weekend(check_date: DateLike) -> bool:
    """Check if the given date is a Saturday or Sunday."""
    return _to_date(check_date).weekday() in WEEKEND_DAYS


def is_market_holiday(check_date: DateLike) -> bool:
    """Check if the given date is listed in the NYSE holiday table."""
    return _to_date(check_date) in NYSE_HOLIDAY_SET


def is_trading_day(check_date: DateLike) -> bool:
    """
    Check if the NYSE is open on the given date.

    Args:
        check_date: Date to check (a datetime is truncated to its date)

    Returns:
        bool: False on weekends and listed holidays, True otherwise

    Example:
        is_trading_day(date(2025, 1, 2))  # True - Thursday
        is_trading_day(date(2025, 1, 1))  # False - New Year's Day
        is_trading_day(date(2025, 1, 4))  # False - Saturday
    """
    check_date = _to_date(check_date)
    if is_weekend(check_date):
        return False
    if check_date.year not in NYSE_HOLIDAYS:
        _warn_uncovered_year(check_date.year)
    return check_date not in NYSE_HOLIDAY_SET


def next_trading_day(from_date: DateLike) -> date:
    """
    Get the first trading day strictly after the given date.

    Example:
        next_trading_day(date(2025, 1, 3))    # 2025-01-06 (Monday after Friday)
        next_trading_day(date(2025, 12, 24))  # 2025-12-26 (day after Christmas)
    """
    current = _to_date(from_date) + timedelta(days=1)
    while not is_trading_day(current):
        current += timedelta(days=1)
    return current


def previous_trading_day(from_date: DateLike) -> date:
    """
    Get the last trading day strictly before the given date.

    Example:
        previous_trading_day(date(2025, 1, 6))  # 2025-01-03 (Friday before Monday)
        previous_trading_day(date(2025, 1, 2))  # 2024-12-31 (skips New Year's Day)
    """
    current = _to_date(from_date) - timedelta(days=1)
    while not is_trading_day(current):
        current -= timedelta(days=1)
    return current


def trading_day_on_or_before(check_date: DateLike) -> date:
    """Return the date itself if it is a trading day, else the previous trading day."""
    check_date = _to_date(check_date)
    if is_trading_day(check_date):
        return check_date
    return previous_trading_day(check_date)


def trading_day_on_or_after(check_date: DateLike) -> date:
    """Return the date itself if it is a trading day, else the next trading day."""
    check_date = _to_date(check_date)
    if is_trading_day(check_date):
        return check_date
    return next_trading_day(check_date)


def trading_days_between(from_date: DateLike, to_date: DateLike) -> int:
    """
    Count trading days from one date to another in the direction of travel.

    The start date is excluded and the end date is included, so the result
    reads as "N trading days away": 0 = same day, 1 = next trading day.

    Args:
        from_date: Start date (excluded)
        to_date: End date (included if it is a trading day)

    Returns:
        int: Positive if to_date is after from_date, negative if before

    Example:
        trading_days_between(date(2026, 1, 2), date(2026, 1, 9))   # 5
        trading_days_between(date(2026, 1, 2), date(2026, 1, 2))   # 0
        trading_days_between(date(2026, 1, 9), date(2026, 1, 2))   # -5
    """
    start = _to_date(from_date)
    end = _to_date(to_date)

    if start == end:
        return 0

    step = timedelta(days=1) if end > start else timedelta(days=-1)
    count = 0
    current = start + step

    while (current <= end) if end > start else (current >= end):
        if is_trading_day(current):
            count += 1
        current += step

    return count if end > start else -count


def trading_days_in_range(from_date: DateLike, to_date: DateLike) -> List[date]:
    """
    Get all trading days in [from_date, to_date], ascending.

    Returns an empty list if to_date is before from_date.
    """
    current = _to_date(from_date)
    end = _to_date(to_date)
    result = []

    while current <= end:
        if is_trading_day(current):
            result.append(current)
        current += timedelta(days=1)

    return result


# Test function
if __name__ == "__main__":
    print("=" * 70)
    print("TRADING CALENDAR TEST")
    print("=" * 70)

    today = date.today()
    print(f"\nToday: {today.strftime('%A, %Y-%m-%d')}")
    print(f"Is trading day? {is_trading_day(today)}")
    holiday = get_holiday_name(today)
    if holiday:
        print(f"Holiday name: {holiday}")
    print(f"Previous trading day: {previous_trading_day(today)}")
    print(f"Next trading day: {next_trading_day(today)}")

    first_year, last_year = get_holiday_coverage()
    print(f"\nHoliday table covers {first_year}-{last_year}")
    print("\n" + "=" * 70)
    print(f"NYSE HOLIDAYS FOR {today.year}")
    print("=" * 70)
    for holiday_date, name in sorted(get_market_holidays(today.year).items()):
        print(f"  {holiday_date.strftime('%Y-%m-%d (%A)')}: {name}")
