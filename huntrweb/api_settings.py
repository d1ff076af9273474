"""HTTP routes for configuration, scraper filters, job sources and the schedule."""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any

from flask import Blueprint, jsonify, request

from huntrweb.configstore import ConfigError, save_config
from huntrweb.scheduler import DAY_NUMBERS, calculate_next_run
from huntrweb.source_manager import (
    add_source,
    disable_source,
    enable_source,
    get_sources,
    remove_source,
    validate_source_url_detail,
)

log = logging.getLogger(__name__)

_VALID_FREQUENCIES = ("daily", "weekly", "monthly")
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


class _InvalidBody(Exception):
    """The request body is not the JSON object the route expects."""


def _body() -> dict[str, Any]:
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise _InvalidBody
    return data


def _field(data: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if kind is bool:
        valid = isinstance(value, bool)
    else:
        valid = isinstance(value, kind) and not isinstance(value, bool)
    if not valid:
        raise _InvalidBody
    return value


def _string_list(data: dict[str, Any], key: str) -> list[str] | None:
    value = _field(data, key, list, None)
    if value is not None and not all(isinstance(item, str) for item in value):
        raise _InvalidBody
    return value


def _strings_only(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, str)]


def _atoi(text: str) -> int:
    return int(text) if _INTEGER_RE.fullmatch(text) else 0


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def build_settings_blueprint(server: Any) -> Blueprint:
    """Routes under /api that read and change the configuration.

    The server must offer ``config_path``, ``paths`` (with ``state_dir``) and
    ``load_config()`` returning the configuration dictionary.
    """
    bp = Blueprint("settings", __name__, url_prefix="/api")

    @bp.errorhandler(_InvalidBody)
    def _invalid_body(_exc):
        return _error("Invalid JSON", 400)

    @bp.errorhandler(ConfigError)
    def _config_error(exc):
        return _error(str(exc), 500)

    def load() -> dict[str, Any]:
        try:
            return server.load_config()
        except OSError as exc:
            raise ConfigError(str(exc)) from exc

    def save_or_fail(config: dict[str, Any]):
        try:
            save_config(server.config_path, config)
        except ConfigError as exc:
            return _error(f"Failed to save config: {exc}", 500)
        return None

    @bp.get("/config")
    def config_get():
        return jsonify(load())

    @bp.post("/config")
    def config_post():
        new_config = _body()
        sources = new_config.get("job_sources")
        if not isinstance(sources, list) or not sources:
            return _error("Missing required section: job_sources", 400)
        save_config(server.config_path, new_config)
        log.info("configuration updated via API")
        return jsonify({"status": "success", "message": "Configuration updated"})

    @bp.get("/scraper-filters")
    def scraper_filters_get():
        preferences = load().get("preferences") or {}
        return jsonify(
            {
                "min_salary": preferences.get("min_salary", 0),
                "locations": preferences.get("locations"),
                "work_type": preferences.get("work_type"),
            }
        )

    @bp.post("/scraper-filters")
    def scraper_filters_post():
        data = _body()
        config = load()
        preferences = config.get("preferences")
        if not isinstance(preferences, dict):
            preferences = config["preferences"] = {}

        min_salary = data.get("min_salary")
        if isinstance(min_salary, (int, float)) and not isinstance(min_salary, bool):
            preferences["min_salary"] = int(min_salary)
        for key in ("locations", "work_type"):
            values = _strings_only(data.get(key))
            if values is not None:
                preferences[key] = values

        save_config(server.config_path, config)
        return jsonify(
            {
                "status": "success",
                "message": "Scraper filters saved. Future scrapes will apply these restrictions.",
            }
        )

    @bp.get("/sources")
    def sources_get():
        return jsonify({"sources": get_sources(load())})

    @bp.post("/sources")
    def sources_post():
        data = _body()
        name = _field(data, "name", str, "")
        url = _field(data, "url", str, "")
        dynamic = _field(data, "dynamic", bool, False)
        group = _field(data, "group", str, "")
        if not name or not url:
            return _error("Name and URL required", 400)

        config = load()
        result = add_source(config, name, url, dynamic, group, False)
        if not result.success:
            return jsonify(result.to_dict()), 400
        failure = save_or_fail(config)
        if failure:
            return failure
        return jsonify(result.to_dict())

    @bp.put("/sources")
    def sources_put():
        data = _body()
        action = _field(data, "action", str, "")
        name = _field(data, "name", str, "")
        if not name:
            return _error("Source name required", 400)

        config = load()
        if action == "enable":
            found = enable_source(config, name)
        elif action == "disable":
            found = disable_source(config, name)
        else:
            return _error('Invalid action. Use "enable" or "disable"', 400)

        if not found:
            return _error(f'Source "{name}" not found', 404)
        failure = save_or_fail(config)
        if failure:
            return failure
        return jsonify({"status": "success", "message": f'Source "{name}" {action}d'})

    @bp.delete("/sources")
    def sources_delete():
        data = _body()
        name = _field(data, "name", str, "")
        if not name:
            return _error("Source name required", 400)

        config = load()
        if not remove_source(config, name):
            return _error(f'Source "{name}" not found', 404)
        failure = save_or_fail(config)
        if failure:
            return failure
        log.info("source removed: %s", name)
        return jsonify({"status": "success", "message": f'Source "{name}" removed'})

    @bp.post("/sources/test")
    def sources_test():
        data = _body()
        url = _field(data, "url", str, "")
        _field(data, "dynamic", bool, False)
        if not url:
            return _error("URL required", 400)
        ok, status_code, message = validate_source_url_detail(url)
        return jsonify(
            {
                "success": ok,
                "message": message,
                "status_code": status_code,
                "recommended_type": "static",
                "note": "Reachability check only (HTTP 200); does not run the site parser "
                "or update Error History.",
            }
        )

    @bp.post("/sources/board/toggle")
    def board_toggle():
        data = _body()
        board = _field(data, "board", str, "")
        enabled = _field(data, "enabled", bool, False)
        if not board:
            return _error("Board ID required", 400)

        config = load()
        matching = [
            source
            for source in config.get("job_sources") or []
            if isinstance(source, dict) and source.get("group") == board
        ]
        for source in matching:
            source["enabled"] = enabled
        if matching:
            failure = save_or_fail(config)
            if failure:
                return failure
        return jsonify({"success": True, "affected_count": len(matching)})

    @bp.get("/sources/stats")
    def source_stats():
        path = os.path.join(server.paths.state_dir, "source_stats.json")
        try:
            with open(path, encoding="utf-8") as handle:
                stats = json.load(handle)
        except (OSError, ValueError):
            stats = {}
        if not isinstance(stats, dict):
            stats = {}
        return jsonify({"stats": stats})

    @bp.get("/schedule/next-run")
    def schedule_next_run():
        scheduling = load().get("scheduling") or {}
        schedule = scheduling.get("scraper") or {}
        if not schedule.get("enabled"):
            return jsonify({"next_run": None, "frequency": None, "time": None, "days": []})

        frequency = schedule.get("frequency") or ""
        time_str = schedule.get("time") or ""
        days = schedule.get("days")
        next_run = calculate_next_run(frequency, time_str, days)
        return jsonify(
            {
                "next_run": next_run.isoformat(timespec="seconds") if next_run else None,
                "frequency": frequency,
                "time": time_str,
                "days": [] if frequency == "daily" else days,
            }
        )

    @bp.post("/schedule")
    def schedule_post():
        data = _body()
        enabled = _field(data, "enabled", bool, False)
        frequency = _field(data, "frequency", str, "")
        time_str = _field(data, "time", str, "")
        days = _string_list(data, "days")

        if len(time_str) < 5 or time_str[2] != ":":
            return _error("Invalid time format. Use HH:MM", 400)
        hour, minute = _atoi(time_str[:2]), _atoi(time_str[3:5])
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            return _error("Invalid time format", 400)

        if frequency not in _VALID_FREQUENCIES:
            return _error("Invalid frequency. Use daily, weekly, or monthly", 400)

        if frequency == "weekly" and enabled:
            if not days:
                return _error("At least one day required for weekly schedule", 400)
            for day in days:
                if day not in DAY_NUMBERS:
                    return _error(f"Invalid day: {day}", 400)

        config = load()
        scheduling = config.get("scheduling")
        if not isinstance(scheduling, dict):
            scheduling = config["scheduling"] = {}
        scheduling["scraper"] = {
            "enabled": enabled,
            "frequency": frequency,
            "time": time_str,
            "days": days,
        }
        save_config(server.config_path, config)
        log.info("schedule updated: enabled=%s frequency=%s time=%s", enabled, frequency, time_str)
        return jsonify({"status": "success", "message": "Schedule saved successfully"})

    return bp