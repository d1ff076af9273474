"""E-mail alerts for newly found high-scoring jobs."""

from __future__ import annotations

import json
import logging
import os
import smtplib
import ssl
from pathlib import Path
from typing import Any, Iterable, Mapping

from huntrweb.cooldown import PathLike
from huntrweb.dashboard import sanitize_num

log = logging.getLogger(__name__)

NOTIFICATION_HISTORY_FILE = "/data/notifications/notified_jobs.json"
DEFAULT_SMTP_SERVER = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 587
DEFAULT_HIGH_SCORE_THRESHOLD = 70
SMTP_TIMEOUT_SECONDS = 30


class NotificationError(Exception):
    """A notification could not be sent."""


def _text(job: Mapping[str, Any], key: str) -> str:
    value = job.get(key)
    return value if isinstance(value, str) else ""


def _score_text(job: Mapping[str, Any]) -> str:
    score = sanitize_num(job.get("score"))
    return str(int(score)) if score.is_integer() else str(score)


def job_unique_id(job: Mapping[str, Any]) -> str:
    """Identify a job by its trimmed title, company and location."""
    return "|".join(_text(job, key).strip() for key in ("title", "company", "location"))


def load_notified_jobs(path: PathLike = NOTIFICATION_HISTORY_FILE) -> set[str]:
    """Return the IDs of jobs already notified; empty if the history is missing or bad."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return set()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        log.warning("error loading notification history: %s", exc)
        return set()
    if data is None:
        return set()
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        log.warning("error loading notification history: expected a list of strings")
        return set()
    return set(data)


def save_notified_jobs(ids: Iterable[str], path: PathLike = NOTIFICATION_HISTORY_FILE) -> None:
    """Persist the notified job IDs; failures are logged."""
    text = json.dumps(sorted(ids), indent=2)
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    except OSError as exc:
        log.error("error saving notification history: %s", exc)


def build_email(jobs: Iterable[Mapping[str, Any]], sender: str, recipient: str) -> str:
    """Compose the alert message, headers included."""
    jobs = list(jobs)
    subject = f"New High-Score Jobs Alert - {len(jobs)} job(s)"
    lines = ["New High-Score Jobs Found:\n\n"]
    for number, job in enumerate(jobs, start=1):
        lines.append(f"{number}. {_text(job, 'title')} at {_text(job, 'company')}\n")
        lines.append(f"   Location: {_text(job, 'location')}\n")
        lines.append(f"   Score: {_score_text(job)}\n")
        salary = _text(job, "salary")
        if salary:
            lines.append(f"   Salary: {salary}\n")
        lines.append(f"   Apply: {_text(job, 'link')}\n\n")
    body = "".join(lines)
    return f"From: {sender}\r\nTo: {recipient}\r\nSubject: {subject}\r\n\r\n{body}"


def send_email(jobs: Iterable[Mapping[str, Any]], config: Mapping[str, Any]) -> None:
    """Send the alert with credentials from the environment; NotificationError on failure."""
    sender = os.environ.get("HUNTR_EMAIL", "")
    password = os.environ.get("HUNTR_EMAIL_PASSWORD", "")
    recipient = os.environ.get("HUNTR_EMAIL_RECIPIENT", "")
    if not (sender and password and recipient):
        raise NotificationError("email credentials not configured")

    email_config = config.get("email_config") or {}
    server = email_config.get("smtp_server") or DEFAULT_SMTP_SERVER
    port = email_config.get("smtp_port") or DEFAULT_SMTP_PORT

    jobs = list(jobs)
    message = build_email(jobs, sender, recipient)
    try:
        with smtplib.SMTP(server, port, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
            smtp.ehlo()
            if smtp.has_extn("starttls"):
                smtp.starttls(context=ssl.create_default_context())
                smtp.ehlo()
            smtp.login(sender, password)
            smtp.sendmail(sender, [recipient], message.encode("utf-8"))
    except (smtplib.SMTPException, OSError) as exc:
        raise NotificationError(f"send email: {exc}") from exc
    log.info("email notification sent to %s for %d jobs", recipient, len(jobs))


def notify_new_jobs(
    jobs: Iterable[Mapping[str, Any]],
    config: Mapping[str, Any],
    history_file: PathLike = NOTIFICATION_HISTORY_FILE,
) -> int:
    """E-mail high-scoring jobs not notified before; return how many were sent."""
    if not config.get("email_enabled"):
        return 0
    threshold = sanitize_num(config.get("high_score_threshold")) or DEFAULT_HIGH_SCORE_THRESHOLD

    high_score = [job for job in jobs if sanitize_num(job.get("score")) >= threshold]
    if not high_score:
        return 0

    notified = load_notified_jobs(history_file)
    new_jobs = []
    for job in high_score:
        job_id = job_unique_id(job)
        if job_id not in notified:
            new_jobs.append(job)
            notified.add(job_id)
    if not new_jobs:
        return 0

    try:
        send_email(new_jobs, config)
    except NotificationError as exc:
        log.error("email notification failed: %s", exc)
        return 0
    save_notified_jobs(notified, history_file)
    log.info("notified %d new high-score jobs", len(new_jobs))
    return len(new_jobs)