import os
import time
from dataclasses import fields
from datetime import datetime

from huntrweb.service_monitor import (
    DataPaths,
    check_service_status,
    default_data_paths,
    get_all_service_status,
)


def _age(path, seconds):
    stamp = time.time() - seconds
    os.utime(path, (stamp, stamp))
    return stamp


def test_no_activity(tmp_path):
    status = check_service_status("scraper", tmp_path / "none.log", tmp_path / "missing", [])
    assert status.status == "unknown"
    assert status.message == "No activity detected"
    assert status.last_activity == ""
    assert status.name == "scraper"


def test_fresh_log_is_running(tmp_path):
    log = tmp_path / "svc.log"
    log.write_text("line")
    status = check_service_status("web", log, tmp_path / "missing", None)
    assert status.status == "running"
    assert status.message.startswith("Active ")


def test_idle_when_recent(tmp_path):
    log = tmp_path / "svc.log"
    log.write_text("line")
    _age(log, 10 * 60)
    status = check_service_status("web", log, tmp_path / "missing", None)
    assert status.status == "idle"
    assert status.message.startswith("Last activity ")


def test_stale_message(tmp_path):
    log = tmp_path / "svc.log"
    log.write_text("line")
    _age(log, (3 * 24 + 2) * 3600 + 60)
    status = check_service_status("web", log, tmp_path / "missing", None)
    assert status.status == "stale"
    assert status.message == "No activity for 3 days, 2 hours"


def test_newest_candidate_wins(tmp_path):
    log = tmp_path / "svc.log"
    log.write_text("line")
    _age(log, 3 * 24 * 3600)
    data = tmp_path / "data"
    data.mkdir()
    (data / "job.json").write_text("{}")
    status = check_service_status("scraper", log, data, [])
    assert status.status == "running"
    parsed = datetime.fromisoformat(status.last_activity)
    assert abs(parsed.timestamp() - os.stat(data / "job.json").st_mtime) < 1


def test_subdirectories_are_ignored(tmp_path):
    data = tmp_path / "data"
    (data / "sub").mkdir(parents=True)
    status = check_service_status("scraper", tmp_path / "none.log", data, [])
    assert status.status == "unknown"


def test_extra_file_and_directory(tmp_path):
    heartbeat = tmp_path / "heartbeat"
    heartbeat.write_text("")
    status = check_service_status("processor", tmp_path / "none.log", tmp_path / "missing", [heartbeat])
    assert status.status == "running"

    extra_dir = tmp_path / "extra"
    extra_dir.mkdir()
    (extra_dir / "f.json").write_text("{}")
    status = check_service_status("processor", tmp_path / "none.log", tmp_path / "missing", [extra_dir])
    assert status.status == "running"


def test_get_all_service_status_covers_services():
    result = get_all_service_status()
    assert set(result) == {"scraper", "processor", "web"}
    assert all(status.name == name for name, status in result.items())


def test_default_paths():
    paths = default_data_paths()
    assert paths.config_file == "/data/config/config.json"
    assert paths.template_dir == "/app/templates"


def test_ensure_dirs_creates_everything(tmp_path):
    paths = DataPaths(
        config_file=str(tmp_path / "config" / "config.json"),
        cv_upload_dir=str(tmp_path / "cv" / "cv-latest"),
        cv_profile_dir=str(tmp_path / "cv"),
        scored_dir=str(tmp_path / "jobs" / "scored"),
        raw_dir=str(tmp_path / "jobs" / "raw"),
        normalised_dir=str(tmp_path / "jobs" / "normalised"),
        logs_dir=str(tmp_path / "logs"),
        state_dir=str(tmp_path / "state"),
        template_dir=str(tmp_path / "templates"),
    )
    before = check_service_status("scraper", os.path.join(paths.logs_dir, "scraper.log"), paths.raw_dir, [])
    assert before.status == "unknown"

    paths.ensure_dirs()
    paths.ensure_dirs()

    created = [getattr(paths, f.name) for f in fields(paths) if f.name not in ("config_file", "template_dir")]
    assert all(os.path.isdir(d) for d in created)
    assert os.path.isdir(os.path.dirname(paths.config_file))
    assert not os.path.exists(paths.template_dir)

    with open(os.path.join(paths.raw_dir, "jobs.json"), "w", encoding="utf-8") as handle:
        handle.write("{}")
    after = check_service_status("scraper", os.path.join(paths.logs_dir, "scraper.log"), paths.raw_dir, [])
    assert after.status == "running"
    assert after.name == "scraper"