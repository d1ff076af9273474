import json
import smtplib
from unittest import mock

import pytest

from huntrweb.notifications import (
    NotificationError,
    build_email,
    job_unique_id,
    load_notified_jobs,
    notify_new_jobs,
    save_notified_jobs,
    send_email,
)

SENDER = "sender@example.com"
RECIPIENT = "recipient@example.com"


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv("HUNTR_EMAIL", SENDER)
    monkeypatch.setenv("HUNTR_EMAIL_PASSWORD", "password")
    monkeypatch.setenv("HUNTR_EMAIL_RECIPIENT", RECIPIENT)


@pytest.fixture
def no_credentials(monkeypatch):
    for name in ("HUNTR_EMAIL", "HUNTR_EMAIL_PASSWORD", "HUNTR_EMAIL_RECIPIENT"):
        monkeypatch.delenv(name, raising=False)


def _job(title, score, **extra):
    return {"title": title, "company": "Acme", "location": "London", "score": score,
            "link": "https://example.com/job", **extra}


def test_job_unique_id_trims_fields():
    job = {"title": "  Go Dev ", "company": "Acme ", "location": " London"}
    assert job_unique_id(job) == "Go Dev|Acme|London"


def test_job_unique_id_missing_fields():
    assert job_unique_id({}) == "||"


def test_history_round_trip(tmp_path):
    path = tmp_path / "nested" / "notified.json"
    ids = {"Go Dev|Acme|London", "Python Dev|Corp|Leeds"}
    save_notified_jobs(ids, path)
    assert load_notified_jobs(path) == ids
    assert json.loads(path.read_text()) == sorted(ids)


def test_load_missing_history_is_empty(tmp_path):
    assert load_notified_jobs(tmp_path / "absent.json") == set()


def test_load_invalid_history_is_empty(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    assert load_notified_jobs(path) == set()
    path.write_text('{"a": 1}')
    assert load_notified_jobs(path) == set()


def test_build_email_layout():
    jobs = [_job("Go Dev", 85, salary="£50,000"), _job("Python Dev", 72)]
    message = build_email(jobs, SENDER, RECIPIENT)
    headers, body = message.split("\r\n\r\n", 1)
    assert headers.split("\r\n") == [
        f"From: {SENDER}",
        f"To: {RECIPIENT}",
        "Subject: New High-Score Jobs Alert - 2 job(s)",
    ]
    assert body.startswith("New High-Score Jobs Found:\n\n1. Go Dev at Acme\n")
    assert "   Score: 85\n" in body
    assert body.count("   Salary: ") == 1
    assert "2. Python Dev at Acme\n" in body


def test_send_email_requires_credentials(no_credentials):
    with pytest.raises(NotificationError, match="credentials not configured"):
        send_email([_job("Go Dev", 90)], {})


def test_send_email_uses_default_server(credentials):
    jobs = [_job("Go Dev", 90)]
    expected = build_email(jobs, SENDER, RECIPIENT)
    with mock.patch("smtplib.SMTP") as smtp_cls:
        send_email(jobs, {})
    assert smtp_cls.call_args[0][:2] == ("smtp.gmail.com", 587)
    smtp = smtp_cls.return_value.__enter__.return_value
    smtp.login.assert_called_once_with(SENDER, "password")
    from_addr, to_addrs, payload = smtp.sendmail.call_args[0]
    assert (from_addr, to_addrs) == (SENDER, [RECIPIENT])
    assert payload.decode("utf-8") == expected
    assert expected.startswith(f"From: {SENDER}\r\nTo: {RECIPIENT}\r\n")


def test_send_email_uses_configured_server(credentials):
    jobs = [_job("Go Dev", 90)]
    expected = build_email(jobs, SENDER, RECIPIENT)
    config = {"email_config": {"smtp_server": "mail.example.com", "smtp_port": 2525}}
    with mock.patch("smtplib.SMTP") as smtp_cls:
        send_email(jobs, config)
    assert smtp_cls.call_args[0][:2] == ("mail.example.com", 2525)
    smtp = smtp_cls.return_value.__enter__.return_value
    _, _, payload = smtp.sendmail.call_args[0]
    assert payload.decode("utf-8") == expected


def test_send_email_failure_raises(credentials):
    with mock.patch("smtplib.SMTP") as smtp_cls:
        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.sendmail.side_effect = smtplib.SMTPException("refused")
        with pytest.raises(NotificationError, match="send email"):
            send_email([_job("Go Dev", 90)], {})


def test_notify_disabled_sends_nothing(tmp_path, credentials):
    with mock.patch("smtplib.SMTP") as smtp_cls:
        count = notify_new_jobs([_job("Go Dev", 90)], {"email_enabled": False}, tmp_path / "h.json")
    assert count == 0
    assert smtp_cls.call_count == 0


def test_notify_below_threshold(tmp_path, credentials):
    config = {"email_enabled": True, "high_score_threshold": 80}
    with mock.patch("smtplib.SMTP") as smtp_cls:
        count = notify_new_jobs([_job("Go Dev", 79)], config, tmp_path / "h.json")
    assert count == 0
    assert smtp_cls.call_count == 0


def test_notify_only_new_jobs(tmp_path, credentials):
    history = tmp_path / "h.json"
    config = {"email_enabled": True}
    jobs = [_job("Go Dev", 85), _job("Python Dev", 40), _job("Rust Dev", 70)]
    with mock.patch("smtplib.SMTP"):
        first = notify_new_jobs(jobs, config, history)
        second = notify_new_jobs(jobs, config, history)
    assert first == 2
    assert second == 0
    assert load_notified_jobs(history) == {job_unique_id(jobs[0]), job_unique_id(jobs[2])}


def test_notify_failure_keeps_history_unchanged(tmp_path, no_credentials):
    history = tmp_path / "h.json"
    count = notify_new_jobs([_job("Go Dev", 90)], {"email_enabled": True}, history)
    assert count == 0
    assert not history.exists()