from datetime import datetime, timedelta, timezone

import pytest

from huntrweb.scheduler import _next_run, calculate_next_run, parse_time, trigger_scraper

NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)  # a Wednesday


def test_scheduler_calculation_daily():
    before = datetime.now().astimezone()
    nxt = calculate_next_run("daily", "09:00", None)
    assert nxt.hour == 9
    assert nxt.minute == 0
    assert nxt > before
    assert nxt - before <= timedelta(days=1, minutes=1)


def test_scheduler_calculation_monthly():
    nxt = calculate_next_run("monthly", "10:30", None)
    assert nxt.day == 1
    assert (nxt.hour, nxt.minute) == (10, 30)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("23:59", (23, 59)),
        ("00:00", (0, 0)),
        ("08:30", (8, 30)),
        ("25:00", (9, 0)),
        ("12:60", (9, 0)),
        ("7:30", (9, 0)),
        ("", (9, 0)),
        (None, (9, 0)),
        ("ab:cd", (9, 0)),
    ],
)
def test_parse_time(value, expected):
    assert parse_time(value) == expected


def test_daily_later_today():
    assert _next_run("daily", "13:00", None, NOW) == datetime(2024, 1, 10, 13, 0, tzinfo=timezone.utc)


def test_daily_rolls_to_tomorrow():
    assert _next_run("daily", "09:00", None, NOW) == datetime(2024, 1, 11, 9, 0, tzinfo=timezone.utc)


def test_daily_same_minute_rolls_over():
    assert _next_run("daily", "12:00", None, NOW) == datetime(2024, 1, 11, 12, 0, tzinfo=timezone.utc)


def test_weekly_next_monday():
    result = _next_run("weekly", "09:00", ["Monday"], NOW)
    assert result == datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


def test_weekly_same_day_passed_wraps_a_week():
    result = _next_run("weekly", "09:00", ["Wednesday"], NOW)
    assert result == datetime(2024, 1, 17, 9, 0, tzinfo=timezone.utc)


def test_weekly_same_day_later_today():
    result = _next_run("weekly", "18:00", ["Wednesday", "Friday"], NOW)
    assert result == datetime(2024, 1, 10, 18, 0, tzinfo=timezone.utc)


def test_weekly_without_valid_days():
    assert _next_run("weekly", "09:00", ["Funday"], NOW) is None
    assert _next_run("weekly", "09:00", None, NOW) is None


def test_monthly_next_month():
    assert _next_run("monthly", "10:30", None, NOW) == datetime(2024, 2, 1, 10, 30, tzinfo=timezone.utc)


def test_monthly_december_wraps_year():
    now = datetime(2024, 12, 5, 8, 0, tzinfo=timezone.utc)
    assert _next_run("monthly", "10:30", None, now) == datetime(2025, 1, 1, 10, 30, tzinfo=timezone.utc)


def test_monthly_first_of_month_still_ahead():
    now = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
    assert _next_run("monthly", "10:30", None, now) == datetime(2024, 3, 1, 10, 30, tzinfo=timezone.utc)


def test_unknown_frequency():
    assert calculate_next_run("biweekly", "09:00", None) is None


def test_trigger_scraper_writes_file(tmp_path):
    trigger = tmp_path / "state" / "trigger_manual_scrape"
    assert trigger_scraper(trigger) is True
    assert trigger.read_text().strip() != ""


def test_trigger_scraper_failure(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    assert trigger_scraper(blocker / "trigger") is False