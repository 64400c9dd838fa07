from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TZ = "America/Sao_Paulo"


def is_known_tz(tz_name: str | None) -> bool:
    if not tz_name:
        return False
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def resolve_tz(tz_name: str | None, fallback: str = DEFAULT_TZ) -> str:
    """Return ``tz_name`` when it names a real zone, else ``fallback``."""
    if is_known_tz(tz_name):
        return str(tz_name)
    if tz_name:
        logger.warning("unknown time zone %r; using %s", tz_name, fallback)
    return fallback


def now_local(tz_name: str = DEFAULT_TZ) -> datetime:
    return datetime.now(tz=ZoneInfo(resolve_tz(tz_name)))


def local_today(tz_name: str | None = None) -> date:
    return now_local(tz_name or DEFAULT_TZ).date()


def to_local(dt: datetime, tz_name: str | None) -> datetime:
    if tz_name and dt.tzinfo is not None:
        return dt.astimezone(ZoneInfo(resolve_tz(tz_name)))
    return dt


@dataclass(frozen=True)
class QuestWindow:
    frequency: str
    anchor: date
    expires: date


def week_start_date(day: date) -> date:
    # weekday() is 0 for Monday, so a Sunday closes the week that began six days earlier.
    return day - timedelta(days=day.weekday())


def month_start_date(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def window_anchor(frequency: str, today: date) -> date:
    if frequency == "weekly":
        return week_start_date(today)
    if frequency == "monthly":
        return month_start_date(today)
    return today


def window_expiry(frequency: str, anchor: date) -> date:
    if frequency == "weekly":
        return anchor + timedelta(days=7)
    if frequency == "monthly":
        return add_months(anchor, 1)
    return anchor


def quest_window(frequency: str, today: date) -> QuestWindow:
    anchor = window_anchor(frequency, today)
    return QuestWindow(frequency=frequency, anchor=anchor, expires=window_expiry(frequency, anchor))
