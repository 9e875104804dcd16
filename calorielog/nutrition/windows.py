# -*- coding: utf-8 -*-
"""Nutrition — report window bounds (daily / weekly / monthly / range).

Bounds are inclusive and returned as naive UTC datetimes with second
precision, matching how `consumed_at` is stored. When a timezone name is
given, the calendar days are taken in that zone and converted to UTC.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

Window = Tuple[datetime, datetime]

_END_OF_DAY = time(23, 59, 59)


def parse_date(value: str, *, field: str = "date") -> date:
    try:
        return date.fromisoformat((value or "").strip()[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid {field}: {value!r} (expected YYYY-MM-DD)") from exc


def _zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {tz_name}") from exc


def _to_utc(value: datetime, tz_name: Optional[str]) -> datetime:
    if not tz_name:
        return value
    local = value.replace(tzinfo=_zone(tz_name))
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def day_bounds(first: date, last: date, tz_name: Optional[str] = None) -> Window:
    start = datetime.combine(first, time.min)
    end = datetime.combine(last, _END_OF_DAY)
    try:
        return _to_utc(start, tz_name), _to_utc(end, tz_name)
    except OverflowError as exc:
        raise ValueError(f"Date out of range: {first.isoformat()}..{last.isoformat()}") from exc


def daily_window(day: date, tz_name: Optional[str] = None) -> Window:
    return day_bounds(day, day, tz_name)


def weekly_window(day: date, tz_name: Optional[str] = None) -> Window:
    """Monday..Sunday of the ISO week containing `day`."""
    try:
        monday = day - timedelta(days=day.weekday())
        sunday = monday + timedelta(days=6)
    except OverflowError as exc:
        raise ValueError(f"Week of {day.isoformat()} is out of range") from exc
    return day_bounds(monday, sunday, tz_name)


def monthly_window(year: int, month: int, tz_name: Optional[str] = None) -> Window:
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month} (expected 1-12)")
    if not 1 <= year <= 9999:
        raise ValueError(f"Invalid year: {year}")
    last_day = calendar.monthrange(year, month)[1]
    return day_bounds(date(year, month, 1), date(year, month, last_day), tz_name)


def range_window(start: date, end: date, tz_name: Optional[str] = None) -> Window:
    if start > end:
        raise ValueError("startDate must not be after endDate")
    return day_bounds(start, end, tz_name)
