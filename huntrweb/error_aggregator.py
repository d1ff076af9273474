"""Error collection shared by all services, kept in JSON files on disk."""

from __future__ import annotations

import json
import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterator, Mapping

from huntrweb.cooldown import PathLike, _parse_timestamp

log = logging.getLogger(__name__)

ERROR_LOG_PATH = "/data/logs/errors.json"
SCRAPER_ERROR_PATH = "/data/logs/scraper_errors.json"
MAX_ERRORS = 100
ERROR_RETENTION_DAYS = 7
SUMMARY_RECENT_LIMIT = 10

_TEXT_FIELDS = {
    "timestamp": "timestamp",
    "service": "service",
    "type": "error_type",
    "message": "message",
}


@dataclass
class ErrorEntry:
    """A single logged error."""

    timestamp: str = ""
    service: str = ""
    error_type: str = ""
    message: str = ""
    details: dict[str, Any] | None = None

    @classmethod
    def from_json(cls, obj: Any) -> "ErrorEntry":
        """Build an entry from decoded JSON; ValueError if the shape is wrong."""
        if not isinstance(obj, dict):
            raise ValueError("error entry must be a JSON object")
        values: dict[str, Any] = {}
        for key, attr in _TEXT_FIELDS.items():
            value = obj.get(key)
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise ValueError(f"error entry field {key!r} must be a string")
            values[attr] = value
        details = obj.get("details")
        if details is not None and not isinstance(details, dict):
            raise ValueError("error entry details must be an object")
        return cls(**values, details=details)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "service": self.service,
            "type": self.error_type,
            "message": self.message,
        }
        if self.details:
            data["details"] = self.details
        return data


@dataclass
class ErrorSummary:
    """Aggregated error statistics."""

    total_errors: int = 0
    by_service: dict[str, int] = field(default_factory=dict)
    by_type: dict[str, int] = field(default_factory=dict)
    recent_errors: list[ErrorEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_errors": self.total_errors,
            "by_service": dict(self.by_service),
            "by_type": dict(self.by_type),
            "recent_errors": [entry.to_dict() for entry in self.recent_errors],
        }


def _is_after(timestamp: str, cutoff: datetime) -> bool:
    if not timestamp:
        return False
    moment = _parse_timestamp(timestamp)
    return moment is not None and moment > cutoff


def _now_stamp() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")


class ErrorAggregator:
    """Collects errors from every service into one JSON log."""

    def __init__(
        self,
        log_path: PathLike = ERROR_LOG_PATH,
        scraper_error_path: PathLike = SCRAPER_ERROR_PATH,
    ) -> None:
        self.log_path = Path(log_path)
        self.scraper_error_path = Path(scraper_error_path)
        self._lock = threading.Lock()

    def _read_log(self) -> list[ErrorEntry]:
        try:
            raw = self.log_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return []
        try:
            data = json.loads(raw)
            if data is None:
                return []
            if not isinstance(data, list):
                return []
            return [ErrorEntry.from_json(item) for item in data]
        except ValueError:
            return []

    def _read_scraper_log(self) -> Iterator[ErrorEntry]:
        try:
            handle = self.scraper_error_path.open(encoding="utf-8", errors="replace")
        except OSError:
            return
        with handle:
            for line in handle:
                line = line.rstrip("\r\n")
                if not line:
                    continue
                try:
                    yield ErrorEntry.from_json(json.loads(line))
                except ValueError:
                    continue

    def _load_errors(self) -> list[ErrorEntry]:
        cutoff = datetime.now(timezone.utc) - timedelta(days=ERROR_RETENTION_DAYS)
        errors = [
            entry
            for source in (self._read_log(), self._read_scraper_log())
            for entry in source
            if _is_after(entry.timestamp, cutoff)
        ]
        errors.sort(key=lambda entry: entry.timestamp, reverse=True)
        return errors

    def _save_errors(self, errors: list[ErrorEntry]) -> None:
        kept = errors[-MAX_ERRORS:]
        try:
            text = json.dumps([entry.to_dict() for entry in kept], indent=2)
        except (TypeError, ValueError) as exc:
            log.error("error marshalling errors: %s", exc)
            return
        try:
            self.log_path.write_text(text, encoding="utf-8")
        except OSError as exc:
            log.error("error writing errors: %s", exc)

    def log_error(
        self,
        service: str,
        error_type: str,
        message: str,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        """Record an error in the shared log."""
        entry = ErrorEntry(
            timestamp=_now_stamp(),
            service=service,
            error_type=error_type,
            message=message,
            details=dict(details) if details is not None else None,
        )
        with self._lock:
            errors = self._load_errors()
            errors.append(entry)
            self._save_errors(errors)
        log.error("[%s] %s: %s", service, error_type, message)

    def get_recent_errors(
        self,
        service: str | None = None,
        hours: int = 24,
        limit: int = 50,
    ) -> list[ErrorEntry]:
        """Return errors of the last hours, newest first, optionally for one service."""
        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
        filtered = [
            entry
            for entry in self._load_errors()
            if _is_after(entry.timestamp, cutoff) and (not service or entry.service == service)
        ]
        filtered.sort(key=lambda entry: entry.timestamp, reverse=True)
        return filtered[: max(limit, 0)] if len(filtered) > limit else filtered

    def get_error_summary(self, hours: int = 24) -> ErrorSummary:
        """Return counts by service and type, and the most recent errors."""
        recent = self.get_recent_errors(None, hours, MAX_ERRORS)
        return ErrorSummary(
            total_errors=len(recent),
            by_service=dict(Counter(entry.service for entry in recent)),
            by_type=dict(Counter(entry.error_type for entry in recent)),
            recent_errors=recent[:SUMMARY_RECENT_LIMIT],
        )


_global_aggregator: ErrorAggregator | None = None
_global_lock = threading.Lock()


def get_error_aggregator() -> ErrorAggregator:
    """Return the process-wide aggregator, creating it on first use."""
    global _global_aggregator
    with _global_lock:
        if _global_aggregator is None:
            _global_aggregator = ErrorAggregator()
            try:
                _global_aggregator.log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                log.warning("could not create error log directory: %s", exc)
        return _global_aggregator


def log_error(
    service: str,
    error_type: str,
    message: str,
    details: Mapping[str, Any] | None = None,
) -> None:
    """Record an error with the shared aggregator."""
    get_error_aggregator().log_error(service, error_type, message, details)


def get_recent_errors(service: str | None = None, hours: int = 24, limit: int = 50) -> list[ErrorEntry]:
    """Recent errors from the shared aggregator."""
    return get_error_aggregator().get_recent_errors(service, hours, limit)


def get_error_summary(hours: int = 24) -> ErrorSummary:
    """Error statistics from the shared aggregator."""
    return get_error_aggregator().get_error_summary(hours)