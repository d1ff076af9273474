"""Next-run calculation for the scraper schedule and the manual trigger."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable

from huntrweb.cooldown import PathLike, write_trigger_file

log = logging.getLogger(__name__)

DAY_NUMBERS = {
    "Monday": 0,
    "Tuesday": 1,
    "Wednesday": 2,
    "Thursday": 3,
    "Friday": 4,
    "Saturday": 5,
    "Sunday": 6,
}

_DEFAULT_TIME = (9, 0)


def parse_time(value: str | None) -> tuple[int, int]:
    """Parse "HH:MM" into (hour, minute), falling back to 09:00."""
    if not value or len(value) < 5 or value[2] != ":":
        return _DEFAULT_TIME
    hour_text, minute_text = value[0:2], value[3:5]
    if not (hour_text.isdigit() and minute_text.isdigit()):
        return _DEFAULT_TIME
    hour, minute = int(hour_text), int(minute_text)
    if 0 <= hour <= 23 and 0 <= minute <= 59:
        return hour, minute
    return _DEFAULT_TIME


def _at(moment: datetime, hour: int, minute: int) -> datetime:
    return moment.replace(hour=hour, minute=minute, second=0, microsecond=0)


def _next_run(
    frequency: str,
    time_str: str | None,
    days: Iterable[str] | None,
    now: datetime,
) -> datetime | None:
    hour, minute = parse_time(time_str)

    if frequency == "daily":
        candidate = _at(now, hour, minute)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    if frequency == "weekly":
        targets = {DAY_NUMBERS[d] for d in days or () if d in DAY_NUMBERS}
        if not targets:
            return None
        for offset in range(7):
            candidate = _at(now + timedelta(days=offset), hour, minute)
            if candidate.weekday() in targets and candidate > now:
                return candidate
        return _at(now + timedelta(days=7), hour, minute)

    if frequency == "monthly":
        candidate = _at(now.replace(day=1), hour, minute)
        if candidate <= now:
            if candidate.month == 12:
                candidate = candidate.replace(year=candidate.year + 1, month=1)
            else:
                candidate = candidate.replace(month=candidate.month + 1)
        return candidate

    return None


def calculate_next_run(
    frequency: str,
    time_str: str | None,
    days: Iterable[str] | None = None,
) -> datetime | None:
    """Return the next scheduled run in local time, or None if it cannot be scheduled."""
    return _next_run(frequency, time_str, days, datetime.now().astimezone())


def trigger_scraper(trigger_file: PathLike | None = None) -> bool:
    """Write the scraper's trigger file; return whether that worked."""
    try:
        write_trigger_file(trigger_file)
    except OSError as exc:
        log.error("error triggering scraper: %s", exc)
        return False
    log.info("scraper triggered via trigger file")
    return True