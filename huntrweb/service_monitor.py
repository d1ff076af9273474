"""Service liveness from log and data-directory activity, and the data paths."""

from __future__ import annotations

import os
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Iterable

SERVICE_TIMEOUT_SECONDS = 30 * 60
RUNNING_WINDOW_SECONDS = 5 * 60

_SERVICES = {
    "scraper": ("/data/logs/scraper.log", "/data/jobs/raw", ["/data/state/scraper_heartbeat"]),
    "processor": (
        "/data/logs/processor.log",
        "/data/jobs/scored",
        ["/data/jobs/raw", "/data/state/processor_heartbeat"],
    ),
    "web": ("/data/logs/web.log", "/data/dashboards", []),
}


@dataclass
class ServiceStatus:
    """Status of a single service."""

    name: str
    status: str = "unknown"
    last_activity: str = ""
    message: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def _latest_mtime_in_dir(directory: str | os.PathLike[str]) -> float | None:
    try:
        entries = list(os.scandir(directory))
    except OSError:
        return None
    latest = None
    for entry in entries:
        try:
            if entry.is_dir():
                continue
            mtime = entry.stat().st_mtime
        except OSError:
            continue
        if latest is None or mtime > latest:
            latest = mtime
    return latest


def _path_activity(path: str | os.PathLike[str]) -> float | None:
    try:
        if os.path.isdir(path):
            return _latest_mtime_in_dir(path)
        return os.stat(path).st_mtime
    except OSError:
        return None


def check_service_status(
    name: str,
    log_file: str | os.PathLike[str],
    data_dir: str | os.PathLike[str],
    extra_dirs: Iterable[str | os.PathLike[str]] | None = None,
) -> ServiceStatus:
    """Judge a service by the newest mtime among its log, data dir and extra paths."""
    status = ServiceStatus(name=name)

    candidates = []
    try:
        candidates.append(os.stat(log_file).st_mtime)
    except OSError:
        pass
    candidates.append(_latest_mtime_in_dir(data_dir))
    candidates.extend(_path_activity(extra) for extra in extra_dirs or ())
    candidates = [c for c in candidates if c is not None]

    if not candidates:
        status.message = "No activity detected"
        return status

    last = max(candidates)
    status.last_activity = datetime.fromtimestamp(last).astimezone().isoformat(timespec="seconds")
    age = time.time() - last
    minutes = int(age / 60)

    if age < RUNNING_WINDOW_SECONDS:
        status.status = "running"
        status.message = f"Active {minutes} minutes ago"
    elif age < SERVICE_TIMEOUT_SECONDS:
        status.status = "idle"
        status.message = f"Last activity {minutes} minutes ago"
    else:
        hours = int(age / 3600)
        status.status = "stale"
        status.message = f"No activity for {hours // 24} days, {hours % 24} hours"
    return status


def get_all_service_status() -> dict[str, ServiceStatus]:
    """Return the status of every known service."""
    return {
        name: check_service_status(name, log_file, data_dir, extra)
        for name, (log_file, data_dir, extra) in _SERVICES.items()
    }


@dataclass(frozen=True)
class DataPaths:
    """File system locations used by the web service."""

    config_file: str
    cv_upload_dir: str
    cv_profile_dir: str
    scored_dir: str
    raw_dir: str
    normalised_dir: str
    logs_dir: str
    state_dir: str
    template_dir: str

    def ensure_dirs(self) -> None:
        """Create every data directory that the service writes into."""
        for directory in (
            os.path.dirname(self.config_file),
            self.cv_upload_dir,
            self.cv_profile_dir,
            self.scored_dir,
            self.raw_dir,
            self.normalised_dir,
            self.logs_dir,
            self.state_dir,
        ):
            if directory:
                os.makedirs(directory, exist_ok=True)


def default_data_paths() -> DataPaths:
    """Return the standard /data locations."""
    return DataPaths(
        config_file="/data/config/config.json",
        cv_upload_dir="/data/cv/cv-latest",
        cv_profile_dir="/data/cv",
        scored_dir="/data/jobs/scored",
        raw_dir="/data/jobs/raw",
        normalised_dir="/data/jobs/normalised",
        logs_dir="/data/logs",
        state_dir="/data/state",
        template_dir="/app/templates",
    )