"""CV vector collections: naming, listing and the active selection."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, MutableMapping

from huntrweb.configstore import ConfigError, save_config

log = logging.getLogger(__name__)

VECTOR_DB_PATH = "/data/chromadb"

_CV_TIMESTAMP_RE = re.compile(r"cv_([0-9]{4})([0-9]{2})([0-9]{2})_([0-9]{2})([0-9]{2})([0-9]{2})")


@dataclass
class CollectionInfo:
    """A vector collection together with its display metadata."""

    name: str
    friendly_name: str
    created_at: str
    count: int
    active: bool

    def to_dict(self) -> dict:
        return asdict(self)


def _timestamp_of(name: str) -> datetime | None:
    match = _CV_TIMESTAMP_RE.fullmatch(name)
    if not match:
        return None
    try:
        return datetime.strptime("".join(match.groups()), "%Y%m%d%H%M%S")
    except ValueError:
        return None


def generate_friendly_name(name: str) -> str:
    """Turn "cv_20260127_143000" into "CV - 27/01/2026 14:30"; other names pass through."""
    stamp = _timestamp_of(name)
    if stamp is None:
        return name
    return f"CV - {stamp:%d/%m/%Y %H:%M}"


def created_at_from_name(name: str) -> str:
    """Return the RFC 3339 (UTC) time encoded in a collection name, or ""."""
    stamp = _timestamp_of(name)
    if stamp is None:
        return ""
    return f"{stamp:%Y-%m-%dT%H:%M:%S}Z"


def _configured_active(config: Mapping[str, Any] | None) -> str:
    if not config:
        return ""
    cv = config.get("cv") or {}
    vector_db = cv.get("vector_db") or {}
    return vector_db.get("active_collection") or ""


def get_active_collection(config: Mapping[str, Any] | None, collection_names: Iterable[str]) -> str:
    """Return the configured active collection, else the latest by name, else ""."""
    active = _configured_active(config)
    if active:
        return active
    return max(collection_names, default="")


def set_active_collection(
    config: MutableMapping[str, Any],
    name: str,
    config_path: str | os.PathLike[str],
) -> bool:
    """Record the active collection in the config and save it; return success."""
    cv = config.get("cv")
    if not isinstance(cv, dict):
        cv = config["cv"] = {}
    vector_db = cv.get("vector_db")
    if not isinstance(vector_db, dict):
        vector_db = cv["vector_db"] = {}
    vector_db["active_collection"] = name
    log.info("set active collection %s", name)
    try:
        save_config(config_path, config)
    except ConfigError as exc:
        log.error("failed to save active collection: %s", exc)
        return False
    return True


def delete_collection(store: MutableMapping[str, Any], name: str) -> bool:
    """Remove a collection from the store; a missing one counts as deleted."""
    try:
        store.pop(name, None)
    except OSError as exc:
        log.error("failed to delete collection %s: %s", name, exc)
        return False
    log.info("deleted collection %s", name)
    return True


def get_collections(
    config: Mapping[str, Any] | None,
    collection_counts: Mapping[str, int],
) -> list[CollectionInfo]:
    """List collections sorted by name; without a configured one the latest is active."""
    active = _configured_active(config)
    result = [
        CollectionInfo(
            name=name,
            friendly_name=generate_friendly_name(name),
            created_at=created_at_from_name(name),
            count=count,
            active=name == active,
        )
        for name, count in sorted(collection_counts.items())
    ]
    if not active and result:
        result[-1].active = True
    return result