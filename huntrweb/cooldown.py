"""Manual scrape trigger and cooldown tracking backed by small state files."""

from __future__ import annotations

import os
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]

DEFAULT_COOLDOWN_MINUTES = 30
DEFAULT_COOLDOWN_FILE = "/data/state/last_manual_scrape.txt"
TRIGGER_MANUAL_FILE = "/data/state/trigger_manual_scrape"

_DATE_TIME = r"([0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2})(?:\.([0-9]+))?"
_RFC3339_RE = re.compile(_DATE_TIME + r"(Z|z|[+-][0-9]{2}:[0-9]{2})")
_NAIVE_RE = re.compile(_DATE_TIME)


def _parse_offset(text: str) -> timezone | None:
    if text in ("Z", "z"):
        return timezone.utc
    sign = -1 if text[0] == "-" else 1
    hours, minutes = int(text[1:3]), int(text[4:6])
    try:
        return timezone(sign * timedelta(hours=hours, minutes=minutes))
    except ValueError:
        return None


def _parse_timestamp(raw: str) -> datetime | None:
    """Parse an RFC 3339 timestamp, or a zone-less ISO one taken as UTC."""
    match = _RFC3339_RE.fullmatch(raw)
    if match:
        tz = _parse_offset(match.group(3))
        if tz is None:
            return None
    else:
        match = _NAIVE_RE.fullmatch(raw)
        if not match:
            return None
        tz = timezone.utc
    try:
        base = datetime.strptime(match.group(1), "%Y-%m-%dT%H:%M:%S")
    except ValueError:
        return None
    fraction = (match.group(2) or "")[:6].ljust(6, "0")
    return base.replace(microsecond=int(fraction), tzinfo=tz)


def _now_stamp() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")


def _write_stamp(path: PathLike) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(_now_stamp(), encoding="utf-8")


def write_trigger_file(trigger_file: PathLike | None = None) -> None:
    """Create the manual-scrape trigger file so the scraper runs on its next poll."""
    _write_stamp(trigger_file or TRIGGER_MANUAL_FILE)


def get_last_trigger_time(cooldown_file: PathLike | None = None) -> datetime | None:
    """Return the last trigger time, or None if the file is missing, empty or invalid."""
    try:
        raw = Path(cooldown_file or DEFAULT_COOLDOWN_FILE).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None
    if not raw:
        return None
    return _parse_timestamp(raw)


def write_trigger_time(cooldown_file: PathLike | None = None) -> None:
    """Record the current time in the cooldown file."""
    _write_stamp(cooldown_file or DEFAULT_COOLDOWN_FILE)


def get_cooldown_remaining(
    cooldown_file: PathLike | None = None,
    cooldown_minutes: int = DEFAULT_COOLDOWN_MINUTES,
) -> tuple[bool, int]:
    """Return whether the cooldown is active and the whole minutes left."""
    if cooldown_minutes <= 0:
        cooldown_minutes = DEFAULT_COOLDOWN_MINUTES
    last = get_last_trigger_time(cooldown_file)
    if last is None:
        return False, 0
    since = datetime.now(timezone.utc) - last
    limit = timedelta(minutes=cooldown_minutes)
    if since < limit:
        remaining = limit - since
        return True, int(remaining.total_seconds() // 60)
    return False, 0