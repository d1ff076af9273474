"""Job source management: listing, enabling, removing, adding and URL checks."""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, MutableMapping

log = logging.getLogger(__name__)

MAX_SOURCES = 50
VALIDATION_TIMEOUT_SECONDS = 10
USER_AGENT = "Mozilla/5.0 (X11; Linux armv7l) AppleWebKit/537.36"

SOURCES_WITH_PARSERS = frozenset(
    {
        "linkedin", "indeed", "glassdoor", "reed", "adzuna", "technojobs", "otta",
        "cvlibrary", "cv-library", "totaljobs", "remoteok", "remote ok",
        "weworkremotely", "we work remotely", "eustartups", "eu-startups",
        "eu startups jobs", "jobsite", "interquest", "interquestgroup",
        "understandingrecruitment", "understanding recruitment", "roberthalf",
        "robert half", "swiftra",
    }
)

_STRIP_TABLE = str.maketrans("", "", " -_")


@dataclass
class AddSourceResult:
    """Outcome of adding a source."""

    success: bool
    message: str
    source: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.source is not None:
            data["source"] = dict(self.source)
        return data


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _sources(config: MutableMapping[str, Any]) -> list[dict[str, Any]]:
    sources = config.get("job_sources")
    if not isinstance(sources, list):
        sources = config["job_sources"] = []
    return sources


def _find(config: MutableMapping[str, Any], name: str) -> int | None:
    lower = name.lower()
    return next(
        (i for i, s in enumerate(_sources(config)) if str(s.get("name", "")).lower() == lower),
        None,
    )


def normalise_source_name(name: str) -> str:
    """Lower-case a name and drop spaces, hyphens and underscores."""
    return name.translate(_STRIP_TABLE).lower()


def get_sources(config: MutableMapping[str, Any]) -> list[dict[str, Any]]:
    """Return the configured sources, each with a has_parser flag."""
    return [
        {**source, "has_parser": normalise_source_name(str(source.get("name", ""))) in SOURCES_WITH_PARSERS}
        for source in _sources(config)
    ]


def _set_enabled(config: MutableMapping[str, Any], name: str, enabled: bool) -> bool:
    index = _find(config, name)
    if index is None:
        return False
    _sources(config)[index]["enabled"] = enabled
    return True


def enable_source(config: MutableMapping[str, Any], name: str) -> bool:
    """Enable the source with this name (case-insensitive); return whether it was found."""
    return _set_enabled(config, name, True)


def disable_source(config: MutableMapping[str, Any], name: str) -> bool:
    """Disable the source with this name (case-insensitive); return whether it was found."""
    return _set_enabled(config, name, False)


def remove_source(config: MutableMapping[str, Any], name: str) -> bool:
    """Remove the source with this name (case-insensitive); return whether it was found."""
    index = _find(config, name)
    if index is None:
        return False
    del _sources(config)[index]
    return True


def add_source(
    config: MutableMapping[str, Any],
    name: str,
    url: str,
    dynamic: bool = False,
    group: str = "",
    skip_validation: bool = False,
) -> AddSourceResult:
    """Add an enabled source after checking the limit, duplicates and the URL."""
    sources = _sources(config)
    if sum(1 for s in sources if s.get("enabled")) >= MAX_SOURCES:
        return AddSourceResult(False, f"Maximum {MAX_SOURCES} enabled sources allowed")
    if _find(config, name) is not None:
        return AddSourceResult(False, f"Source {_quote(name)} already exists")
    if not skip_validation and not validate_source_url(url):
        return AddSourceResult(False, f"URL validation failed: {url}")

    new_source = {"name": name, "url": url, "dynamic": dynamic, "enabled": True, "group": group}
    sources.append(new_source)
    return AddSourceResult(True, f"Source {_quote(name)} added successfully", dict(new_source))


def validate_source_url_detail(url: str) -> tuple[bool, int, str]:
    """GET the URL; return (ok, status code, message), ok only for HTTP 200."""
    try:
        request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT}, method="GET")
    except ValueError as exc:
        log.warning("URL validation failed for %s: %s", url, exc)
        return False, 0, f"invalid URL: {exc}"
    try:
        with urllib.request.urlopen(request, timeout=VALIDATION_TIMEOUT_SECONDS) as response:
            status = response.status
    except urllib.error.HTTPError as exc:
        status = exc.code
        exc.close()
    except ValueError as exc:
        log.warning("URL validation failed for %s: %s", url, exc)
        return False, 0, f"invalid URL: {exc}"
    except (OSError, http.client.HTTPException) as exc:
        log.warning("URL validation failed for %s: %s", url, exc)
        return False, 0, f"request failed: {exc}"
    if status == 200:
        return True, status, "HTTP 200 OK"
    return False, status, f"HTTP {status} (expected 200)"


def validate_source_url(url: str) -> bool:
    """Whether a GET of the URL answers HTTP 200."""
    ok, _, _ = validate_source_url_detail(url)
    return ok