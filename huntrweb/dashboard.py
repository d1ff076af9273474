"""Formatting of scored jobs into the dashboard's rendering context."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping

RESPONSIBILITIES_LIMIT = 200

_BREAKDOWN_KEYS = (
    "tech_stack_matches",
    "tech_stack_score",
    "domain_matches",
    "domain_score",
    "location_match",
    "location_score",
    "salary_threshold",
    "salary_score",
)


@dataclass
class FormattedJob:
    """A job prepared for display."""

    title: str
    company: str
    location: str
    salary: str
    salary_num: float
    work_type: str
    source: str
    description: str
    responsibilities: str
    benefits: str
    skills: str
    link: str
    score: float
    score_breakdown: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DashboardContext:
    """Everything the dashboard template needs."""

    jobs: list[FormattedJob] = field(default_factory=list)
    total_jobs: int = 0
    top_score: float = 0.0
    lowest_score: float = 0.0
    last_updated: str = ""
    last_scrape_time: str = ""
    pipeline_status: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def sanitize_num(value: Any) -> float:
    """Return value as a float, or 0 for NaN, infinities, None and non-numbers."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int):
        return float(value)
    if isinstance(value, float):
        return 0.0 if math.isnan(value) or math.isinf(value) else value
    return 0.0


def _text(job: Mapping[str, Any], key: str) -> str:
    value = job.get(key)
    return value if isinstance(value, str) else ""


def _breakdown(breakdown: Any) -> dict[str, Any]:
    if not isinstance(breakdown, Mapping):
        return {}
    return {key: breakdown.get(key) for key in _BREAKDOWN_KEYS}


def format_job_data(job: Mapping[str, Any]) -> FormattedJob:
    """Format one job, filling display defaults and shortening responsibilities."""
    responsibilities = _text(job, "responsibilities")
    if len(responsibilities) > RESPONSIBILITIES_LIMIT:
        responsibilities = responsibilities[:RESPONSIBILITIES_LIMIT] + "..."

    return FormattedJob(
        title=_text(job, "title") or "Unknown",
        company=_text(job, "company") or "Unknown",
        location=_text(job, "location") or "Unknown",
        salary=_text(job, "salary") or "Not specified",
        salary_num=sanitize_num(job.get("salary_num")),
        work_type=_text(job, "work_type"),
        source=_text(job, "source"),
        description=_text(job, "description"),
        responsibilities=responsibilities,
        benefits=_text(job, "benefits"),
        skills=_text(job, "skills"),
        link=_text(job, "link") or "#",
        score=sanitize_num(job.get("score")),
        score_breakdown=_breakdown(job.get("score_breakdown")),
    )


def generate_dashboard(jobs: Iterable[Mapping[str, Any]]) -> DashboardContext:
    """Build the dashboard context from jobs already sorted by score, best first."""
    jobs = list(jobs)
    top_score = sanitize_num(jobs[0].get("score")) if jobs else 0.0
    lowest_score = sanitize_num(jobs[-1].get("score")) if jobs else 0.0
    return DashboardContext(
        jobs=[format_job_data(job) for job in jobs],
        total_jobs=len(jobs),
        top_score=top_score,
        lowest_score=lowest_score,
        last_updated=datetime.now().strftime("%d/%m/%Y %H:%M"),
    )