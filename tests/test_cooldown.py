from datetime import datetime, timezone

from huntrweb.cooldown import (
    get_cooldown_remaining,
    get_last_trigger_time,
    write_trigger_file,
    write_trigger_time,
)


def test_cooldown_functions(tmp_path):
    cooldown_file = tmp_path / "cooldown.txt"

    active, remaining = get_cooldown_remaining(cooldown_file, 30)
    assert active is False
    assert remaining == 0

    write_trigger_time(cooldown_file)

    active, remaining = get_cooldown_remaining(cooldown_file, 30)
    assert active is True
    assert remaining >= 29


def test_non_positive_minutes_uses_default(tmp_path):
    cooldown_file = tmp_path / "cooldown.txt"
    write_trigger_time(cooldown_file)
    active, remaining = get_cooldown_remaining(cooldown_file, 0)
    assert active is True
    assert 29 <= remaining <= 30


def test_old_trigger_is_not_active(tmp_path):
    cooldown_file = tmp_path / "cooldown.txt"
    cooldown_file.write_text("2000-01-01T00:00:00Z")
    assert get_cooldown_remaining(cooldown_file, 30) == (False, 0)


def test_missing_file_has_no_time(tmp_path):
    assert get_last_trigger_time(tmp_path / "absent.txt") is None


def test_empty_file_has_no_time(tmp_path):
    cooldown_file = tmp_path / "cooldown.txt"
    cooldown_file.write_text("   \n")
    assert get_last_trigger_time(cooldown_file) is None


def test_invalid_file_has_no_time(tmp_path):
    cooldown_file = tmp_path / "cooldown.txt"
    cooldown_file.write_text("yesterday")
    assert get_last_trigger_time(cooldown_file) is None
    assert get_cooldown_remaining(cooldown_file, 30) == (False, 0)


def test_iso_fallback_is_utc(tmp_path):
    cooldown_file = tmp_path / "cooldown.txt"
    cooldown_file.write_text("2024-01-02T03:04:05.123456\n")
    assert get_last_trigger_time(cooldown_file) == datetime(
        2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc
    )


def test_rfc3339_with_offset(tmp_path):
    cooldown_file = tmp_path / "cooldown.txt"
    cooldown_file.write_text("2024-01-02T03:04:05+02:00")
    assert get_last_trigger_time(cooldown_file) == datetime(
        2024, 1, 2, 1, 4, 5, tzinfo=timezone.utc
    )


def test_write_trigger_file_creates_parents(tmp_path):
    trigger = tmp_path / "state" / "nested" / "trigger_manual_scrape"
    before = datetime.now(timezone.utc).replace(microsecond=0)
    write_trigger_file(trigger)
    assert trigger.exists()
    written = get_last_trigger_time(trigger)
    assert written >= before