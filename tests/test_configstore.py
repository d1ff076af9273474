import json

import pytest

from huntrweb.configstore import ConfigError, load_config, load_or_create, save_config

SAMPLE = {
    "job_sources": [{"name": "Test", "url": "https://example.com", "enabled": True}],
    "high_score_threshold": 80,
}


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "config.json")


def test_round_trip(tmp_path):
    path = tmp_path / "config" / "config.json"
    save_config(path, SAMPLE)
    assert load_config(path) == SAMPLE


def test_invalid_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_config(path)


def test_non_object_rejected(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2]")
    with pytest.raises(ConfigError):
        load_config(path)


def test_unserialisable_value(tmp_path):
    with pytest.raises(ConfigError):
        save_config(tmp_path / "config.json", {"bad": object()})


def test_write_failure(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(ConfigError):
        save_config(blocker / "config.json", SAMPLE)


def test_load_or_create_writes_default(tmp_path):
    path = tmp_path / "config" / "config.json"
    result = load_or_create(path, SAMPLE)
    assert result == SAMPLE
    assert json.loads(path.read_text()) == SAMPLE
    result["job_sources"].clear()
    assert len(SAMPLE["job_sources"]) == 1


def test_load_or_create_prefers_existing(tmp_path):
    path = tmp_path / "config.json"
    save_config(path, {"job_sources": []})
    assert load_or_create(path, SAMPLE) == {"job_sources": []}


def test_load_or_create_propagates_corruption(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("garbage")
    with pytest.raises(ConfigError):
        load_or_create(path, SAMPLE)