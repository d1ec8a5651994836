"""Builds the allocator's Job view from stored job records.

Quote line items and generated task records are turned into labour tasks
with crew hints inferred from product codes and descriptions.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

import structlog

from labour_scheduler.config.settings import settings
from labour_scheduler.models.allocation import CrewHints, Job, Task, TaskSource
from labour_scheduler.utils.work_days import count_working_days, to_date

logger = structlog.get_logger(__name__)


# Keyword -> crew hint rules (case-insensitive substring match)
QUOTE_VAN_KEYWORDS = ("workstation", "desk", "cabinet")
QUOTE_FOOT_KEYWORDS = ("chair", "screen", "accessory")
QUOTE_SUPERVISOR_KEYWORDS = ("quality", "inspect")

GENERATED_VAN_ITEM_KEYWORDS = ("furniture", "desk", "cabinet")
GENERATED_FOOT_KEYWORDS = ("mount", "screen", "accessory")
GENERATED_SUPERVISOR_KEYWORDS = ("quality", "inspect", "check")

FALLBACK_TASKS = (
    Task(name="Installation work", hours=40, crew=CrewHints(van=1, foot=1), source=TaskSource.FALLBACK),
    Task(name="Quality check", hours=4, crew=CrewHints(supervisor=1), source=TaskSource.FALLBACK),
)


def _mentions(text: Optional[str], keywords: Sequence[str]) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in keywords)


def task_from_job_item(item: Dict[str, Any]) -> Task:
    """Labour task for one quote line stored against the job."""
    code = item.get("product_code")
    qty = item.get("qty") or 1
    hours_per_unit = item.get("hours_per_unit") or 1
    return Task(
        name=item.get("label") or code or "SmartQuote Item",
        hours=float(qty) * float(hours_per_unit),
        crew=CrewHints(
            van=1 if _mentions(code, QUOTE_VAN_KEYWORDS) else 0,
            foot=1 if _mentions(code, QUOTE_FOOT_KEYWORDS) else 0,
            supervisor=1 if _mentions(code, QUOTE_SUPERVISOR_KEYWORDS) else 0,
        ),
        source=TaskSource.QUOTE,
    )


def task_from_generated(record: Dict[str, Any]) -> Task:
    """Labour task for a generated task record (duration in minutes)."""
    description = record.get("description")
    minutes = record.get("estimated_time_minutes") or 60
    is_install = _mentions(description, ("install",))
    return Task(
        name=record.get("title") or "Generated Task",
        hours=float(minutes) / 60,
        crew=CrewHints(
            van=1 if is_install and _mentions(description, GENERATED_VAN_ITEM_KEYWORDS) else 0,
            foot=1 if _mentions(description, GENERATED_FOOT_KEYWORDS) else 0,
            supervisor=1 if _mentions(description, GENERATED_SUPERVISOR_KEYWORDS) else 0,
        ),
        source=TaskSource.GENERATED,
    )


def build_tasks(
    job_items: Sequence[Dict[str, Any]],
    generated_tasks: Sequence[Dict[str, Any]],
) -> List[Task]:
    """Combine quote and generated tasks, falling back to defaults when both are empty."""
    tasks = [task_from_job_item(item) for item in job_items]
    tasks.extend(task_from_generated(record) for record in generated_tasks)
    if not tasks:
        logger.info("job_tasks_fallback_used")
        tasks = [task.model_copy() for task in FALLBACK_TASKS]
    return tasks


def build_job(
    job_record: Dict[str, Any],
    job_items: Sequence[Dict[str, Any]] = (),
    generated_tasks: Sequence[Dict[str, Any]] = (),
    today: Optional[date] = None,
) -> Job:
    """Assemble the Job seen by the allocator.

    Args:
        job_record: Stored job document (must include ``id``)
        job_items: Quote lines stored against the job
        generated_tasks: Generated task records for the job
        today: Reference date for the default window

    Returns:
        Job with tasks, total hours and a working window. When the record has
        no dates the window is today .. today + DEFAULT_JOB_WINDOW_DAYS.
    """
    tasks = build_tasks(job_items, generated_tasks)
    today = today or date.today()

    start = to_date(job_record["start_date"]) if job_record.get("start_date") else today
    if job_record.get("end_date"):
        end = to_date(job_record["end_date"])
    else:
        end = start + timedelta(days=settings.default_job_window_days)

    return Job(
        id=str(job_record["id"]),
        reference=str(job_record.get("reference") or ""),
        client_name=str(job_record.get("client_name") or ""),
        title=str(job_record.get("title") or ""),
        status=str(job_record["status"]) if job_record.get("status") else None,
        tasks=tasks,
        total_hours=sum(task.hours for task in tasks),
        working_days=count_working_days(start, end),
        start_date=start,
        end_date=end,
    )
