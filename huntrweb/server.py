"""The web service: dashboard, CV upload, collections, errors, logs and scraper control."""

from __future__ import annotations

import argparse
import json
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Sequence

from flask import Flask, jsonify, render_template, request

from huntrweb.api_settings import build_settings_blueprint
from huntrweb.collection_manager import (
    delete_collection,
    get_active_collection,
    get_collections,
    set_active_collection,
)
from huntrweb.configstore import ConfigError, load_or_create, save_config
from huntrweb.cooldown import (
    DEFAULT_COOLDOWN_MINUTES,
    get_cooldown_remaining,
    write_trigger_file,
    write_trigger_time,
)
from huntrweb.dashboard import DashboardContext, generate_dashboard
from huntrweb.error_aggregator import ErrorAggregator
from huntrweb.service_monitor import DataPaths, default_data_paths, get_all_service_status

log = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 << 20
DEFAULT_LOG_LINES = 500
MAX_LOG_LINES = 2000
DEFAULT_ERROR_HOURS = 24
ERROR_LIST_LIMIT = 50
CV_FILENAME = "cv_uploaded.docx"
PROFILE_FILENAME = "cv_profile.json"
DISPLAY_TIME_FORMAT = "%d/%m/%Y %H:%M"

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def _atoi(text: str | None) -> int:
    return int(text) if text and _INTEGER_RE.fullmatch(text) else 0


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _json_body() -> dict[str, Any] | None:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else None


def _has_files(directory: str) -> bool:
    """Whether a directory holds at least one entry that is not a directory."""
    try:
        with os.scandir(directory) as entries:
            return any(not entry.is_dir() for entry in entries)
    except OSError:
        return False


def _plain_files(directory: str) -> list[os.DirEntry]:
    try:
        with os.scandir(directory) as entries:
            return [entry for entry in entries if not entry.is_dir()]
    except OSError:
        return []


def _parse_jobs(data: bytes) -> list[dict[str, Any]]:
    """Accept either {"jobs": [...]} or a bare list of jobs."""
    try:
        decoded = json.loads(data)
    except ValueError:
        return []
    if isinstance(decoded, dict) and isinstance(decoded.get("jobs"), list):
        jobs = decoded["jobs"]
    elif isinstance(decoded, list):
        jobs = decoded
    else:
        return []
    return [job for job in jobs if isinstance(job, dict)]


def _no_cache(response):
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response


def _iso_mtime(mtime: float) -> str:
    return datetime.fromtimestamp(mtime).astimezone().isoformat(timespec="seconds")


class Server:
    """Shared state of the web service and the Flask application serving it."""

    def __init__(
        self,
        paths: DataPaths,
        default_config: Mapping[str, Any] | None = None,
        collections: MutableMapping[str, int] | None = None,
    ) -> None:
        self.paths = paths
        self.config_path = paths.config_file
        self.default_config = dict(default_config or {})
        self.collections = collections if collections is not None else {}
        self.errors = ErrorAggregator(
            os.path.join(paths.logs_dir, "errors.json"),
            os.path.join(paths.logs_dir, "scraper_errors.json"),
        )
        self.app = Flask(
            __name__,
            template_folder=os.path.abspath(paths.template_dir),
            static_folder=None,
        )
        self.app.register_blueprint(build_settings_blueprint(self))
        self._register_routes()

    def load_config(self) -> dict[str, Any]:
        """Load the configuration, writing the default one if none exists."""
        return load_or_create(self.config_path, self.default_config)

    def _load_config_quietly(self) -> dict[str, Any] | None:
        try:
            return self.load_config()
        except (ConfigError, OSError) as exc:
            log.error("could not load config: %s", exc)
            return None

    def detect_pipeline_status(self) -> str:
        """Report how far the job pipeline has got when no scored jobs exist."""
        if _has_files(self.paths.normalised_dir):
            return "awaiting_scoring"
        if _has_files(self.paths.raw_dir):
            return "awaiting_processing"
        return "no_scrape"

    def _register_routes(self) -> None:
        app = self.app

        @app.after_request
        def _log_request(response):
            log.info("%s %s %d", request.method, request.path, response.status_code)
            return response

        app.add_url_rule("/health", "health", self._health, methods=["GET"])
        app.add_url_rule("/", "dashboard", self._dashboard, methods=["GET"])
        app.add_url_rule("/api/status", "status", self._status, methods=["GET"])
        app.add_url_rule("/api/cv/upload", "cv_upload", self._cv_upload, methods=["POST"])
        app.add_url_rule("/api/cv/status", "cv_status", self._cv_status, methods=["GET"])
        app.add_url_rule("/api/collections", "collections_get", self._collections_get, methods=["GET"])
        app.add_url_rule("/api/collections", "collections_put", self._collections_put, methods=["PUT"])
        app.add_url_rule(
            "/api/collections", "collections_delete", self._collections_delete, methods=["DELETE"]
        )
        app.add_url_rule("/api/errors", "errors_get", self._errors_get, methods=["GET"])
        app.add_url_rule("/api/errors", "errors_post", self._errors_post, methods=["POST"])
        app.add_url_rule("/api/logs/scraper", "logs_scraper", self._logs_scraper, methods=["GET"])
        app.add_url_rule(
            "/api/logs/processor", "logs_processor", self._logs_processor, methods=["GET"]
        )
        app.add_url_rule(
            "/api/scraper/trigger", "scraper_trigger", self._scraper_trigger, methods=["POST"]
        )
        app.add_url_rule(
            "/api/scraper/cooldown", "scraper_cooldown", self._scraper_cooldown, methods=["GET"]
        )
        app.add_url_rule("/api/data/clear", "data_clear", self._data_clear, methods=["POST"])

    def _health(self):
        return jsonify({"status": "ok", "service": "huntr-web"})

    def _render_dashboard(self, context: DashboardContext):
        try:
            html = render_template("dashboard.html", **context.to_dict())
        except Exception as exc:  # missing or broken template
            log.error("error rendering template: %s", exc)
            response = jsonify({"error": "Template not found"})
            response.status_code = 500
            return _no_cache(response)
        response = self.app.response_class(html, mimetype="text/html")
        return _no_cache(response)

    def _dashboard(self):
        scored_files = sorted(
            (
                entry.path
                for entry in _plain_files(self.paths.scored_dir)
                if entry.name.startswith("jobs_scored_") and entry.name.endswith(".json")
            ),
            reverse=True,
        )
        if not scored_files:
            empty = DashboardContext(
                last_updated="Never",
                last_scrape_time="Never",
                pipeline_status=self.detect_pipeline_status(),
            )
            return self._render_dashboard(empty)

        latest = scored_files[0]
        try:
            data = Path(latest).read_bytes()
        except OSError as exc:
            log.error("error reading scored jobs: %s", exc)
            return _error("Dashboard generation failed", 500)

        try:
            last_scrape = datetime.fromtimestamp(os.stat(latest).st_mtime).strftime(
                DISPLAY_TIME_FORMAT
            )
        except OSError:
            last_scrape = "Never"

        context = generate_dashboard(_parse_jobs(data))
        context.last_scrape_time = last_scrape
        return self._render_dashboard(context)

    def _status(self):
        return jsonify({name: status.to_dict() for name, status in get_all_service_status().items()})

    def _cv_upload(self):
        if request.mimetype != "multipart/form-data":
            return _error("File too large or invalid form data", 400)
        upload = request.files.get("file")
        if upload is None:
            return _error("No file provided", 400)
        filename = upload.filename or ""
        if not filename:
            return _error("No file selected", 400)
        if not filename.lower().endswith(".docx"):
            return _error("Invalid file type. Only .docx files are allowed", 400)

        try:
            data = upload.read(MAX_UPLOAD_BYTES + 1)
        except OSError:
            return _error("Could not read file", 500)
        if len(data) > MAX_UPLOAD_BYTES:
            return _error("File too large. Maximum size is 10MB", 400)
        if not data:
            return _error("File is empty", 400)

        if len(data) >= 4 and data[:2] == b"PK":
            log.info("CV upload received: %s (%d bytes, docx/zip)", filename, len(data))
        else:
            log.warning(
                "CV upload: file is not a ZIP/DOCX, processor will attempt plain text fallback: "
                "%s (%d bytes, magic %s)",
                filename,
                len(data),
                data[:4].hex(" "),
            )

        save_path = os.path.join(self.paths.cv_upload_dir, CV_FILENAME)
        try:
            os.makedirs(self.paths.cv_upload_dir, exist_ok=True)
            Path(save_path).write_bytes(data)
        except OSError as exc:
            return _error(f"Upload failed: {exc}", 500)

        log.info("CV uploaded: %s", filename)
        return jsonify(
            {
                "status": "success",
                "message": "CV uploaded successfully",
                "filename": filename,
                "path": save_path,
            }
        )

    def _cv_status(self):
        profile_path = os.path.join(self.paths.cv_profile_dir, PROFILE_FILENAME)
        cv_file = os.path.join(self.paths.cv_upload_dir, CV_FILENAME)
        has_profile = os.path.exists(profile_path)
        result: dict[str, Any] = {
            "status": "no_cv",
            "has_cv": os.path.exists(cv_file),
            "has_profile": has_profile,
        }
        if has_profile:
            try:
                result["profile"] = json.loads(Path(profile_path).read_text(encoding="utf-8"))
            except (OSError, ValueError):
                result["profile"] = None
            result["status"] = "processed"
        elif result["has_cv"]:
            result["status"] = "uploaded_not_processed"
        return jsonify(result)

    def _collections_get(self):
        config = self._load_config_quietly()
        collections = get_collections(config, self.collections)
        active = get_active_collection(config, list(self.collections))
        return jsonify(
            {
                "collections": [info.to_dict() for info in collections],
                "active_collection": active,
            }
        )

    def _collections_put(self):
        data = _json_body()
        name = data.get("name") if data else None
        if not isinstance(name, str) or not name:
            return _error("Collection name required", 400)
        config = self._load_config_quietly()
        if config is not None and set_active_collection(config, name, self.config_path):
            return jsonify(
                {"status": "success", "message": f'Active collection set to "{name}"'}
            )
        return _error("Failed to set active collection", 500)

    def _collections_delete(self):
        name = request.args.get("name", "")
        if not name:
            return _error("Collection name required", 400)
        if not delete_collection(self.collections, name):
            return _error(f'Failed to delete collection "{name}"', 500)

        config = self._load_config_quietly()
        vector_db = ((config or {}).get("cv") or {}).get("vector_db")
        if isinstance(vector_db, dict) and vector_db.get("active_collection") == name:
            vector_db["active_collection"] = ""
            try:
                save_config(self.config_path, config)
            except ConfigError as exc:
                log.error("failed to clear active collection: %s", exc)
        return jsonify({"status": "success", "message": f'Collection "{name}" deleted'})

    def _errors_get(self):
        hours = _atoi(request.args.get("hours"))
        if hours <= 0:
            hours = DEFAULT_ERROR_HOURS
        service = request.args.get("service", "")
        summary = self.errors.get_error_summary(hours)
        recent = self.errors.get_recent_errors(service, hours, ERROR_LIST_LIMIT)
        return jsonify(
            {"summary": summary.to_dict(), "errors": [entry.to_dict() for entry in recent]}
        )

    def _errors_post(self):
        data = _json_body()
        if data is None:
            return _error("Invalid JSON", 400)
        texts = {}
        for key in ("service", "type", "message"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                return _error("Invalid JSON", 400)
            texts[key] = value or ""
        details = data.get("details")
        if details is not None and not isinstance(details, dict):
            return _error("Invalid JSON", 400)
        self.errors.log_error(
            texts["service"] or "web",
            texts["type"] or "client_error",
            texts["message"],
            details,
        )
        return jsonify({"status": "recorded"}), 201

    def _logs_scraper(self):
        return self._logs(os.path.join(self.paths.logs_dir, "scraper.log"))

    def _logs_processor(self):
        return self._logs(os.path.join(self.paths.logs_dir, "processor.log"))

    def _logs(self, log_path: str):
        requested = _atoi(request.args.get("lines"))
        if requested <= 0:
            requested = DEFAULT_LOG_LINES
        requested = min(requested, MAX_LOG_LINES)

        try:
            info = os.stat(log_path)
        except OSError:
            return jsonify(
                {"status": "empty", "content": "", "lines": 0, "last_modified": None, "file_size": 0}
            )
        try:
            text = Path(log_path).read_bytes().decode("utf-8", errors="replace")
        except OSError as exc:
            return _error(str(exc), 500)

        lines = text.split("\n")[-requested:]
        return jsonify(
            {
                "status": "ok",
                "content": "\n".join(lines),
                "lines": len(lines),
                "last_modified": _iso_mtime(info.st_mtime),
                "file_size": info.st_size,
            }
        )

    def _cooldown_file(self) -> str:
        return os.path.join(self.paths.state_dir, "last_manual_scrape.txt")

    def _scraper_trigger(self):
        cooldown_file = self._cooldown_file()
        active, remaining = get_cooldown_remaining(cooldown_file, DEFAULT_COOLDOWN_MINUTES)
        if active:
            return (
                jsonify(
                    {
                        "error": "Cooldown active",
                        "message": f"Please wait {remaining} more minutes before triggering "
                        "another manual scrape",
                        "cooldown_remaining_minutes": remaining,
                    }
                ),
                429,
            )

        try:
            write_trigger_file(os.path.join(self.paths.state_dir, "trigger_manual_scrape"))
        except OSError as exc:
            return _error(str(exc), 500)
        try:
            write_trigger_time(cooldown_file)
        except OSError as exc:
            log.warning("could not record trigger time: %s", exc)
        log.info("manual scrape triggered via API")
        return jsonify(
            {
                "status": "success",
                "message": "Manual scrape triggered successfully. Processing will begin shortly.",
                "cooldown_minutes": DEFAULT_COOLDOWN_MINUTES,
            }
        )

    def _scraper_cooldown(self):
        active, remaining = get_cooldown_remaining(self._cooldown_file(), DEFAULT_COOLDOWN_MINUTES)
        return jsonify({"cooldown_active": active, "cooldown_remaining_minutes": remaining})

    def _data_clear(self):
        removed: list[str] = []
        errors: list[str] = []
        for directory in (self.paths.raw_dir, self.paths.normalised_dir, self.paths.scored_dir):
            for entry in _plain_files(directory):
                try:
                    os.remove(entry.path)
                except OSError as exc:
                    errors.append(f"Failed to delete {entry.path}: {exc}")
                else:
                    removed.append(entry.path)

        lock_file = os.path.join(self.paths.cv_upload_dir, ".processing_lock")
        if os.path.exists(lock_file):
            try:
                os.remove(lock_file)
            except OSError as exc:
                errors.append(f"Failed to remove lock file: {exc}")
            else:
                removed.append(lock_file)

        log.info("clear_run_data: removed=%d errors=%d", len(removed), len(errors))
        return jsonify(
            {
                "status": "success",
                "message": f"Cleared {len(removed)} files",
                "removed_count": len(removed),
                "errors": errors,
            }
        )


def create_app(
    paths: DataPaths | None = None,
    default_config: Mapping[str, Any] | None = None,
    collections: MutableMapping[str, int] | None = None,
) -> Flask:
    """Build the Flask application for the given data locations."""
    return Server(paths or default_data_paths(), default_config, collections).app


def main(argv: Sequence[str] | None = None) -> int:
    """Run the web service."""
    parser = argparse.ArgumentParser(prog="huntrweb", description="Job hunting dashboard service.")
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    paths = default_data_paths()
    try:
        paths.ensure_dirs()
    except OSError as exc:
        log.error("could not create data directories: %s", exc)
        return 1
    create_app(paths).run(host=args.host, port=args.port)
    return 0