"""Schedule logger for local debugging.

Prints a readable day-by-day view of an allocation alongside the
structured log event, so allocations are easy to eyeball in emulator logs.
"""

import structlog
from datetime import datetime
from typing import Optional

from labour_scheduler.models.allocation import AllocationMap, AllocationResult, ScheduleSummary

logger = structlog.get_logger()

BANNER_WIDTH = 80
ALLOCATION_BANNER_CHAR = "═"
SAVE_BANNER_CHAR = "─"


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def format_allocation_table(allocations: AllocationMap) -> str:
    """One line per day: date, weekday, van, foot, supervisor, hours."""
    lines = [f"{'Date':<12}{'Day':<5}{'Van':>5}{'Foot':>6}{'Sup':>5}{'Hours':>8}"]
    for day in sorted(allocations):
        allocation = allocations[day]
        weekday = datetime.strptime(day, "%Y-%m-%d").strftime("%a")
        lines.append(
            f"{day:<12}{weekday:<5}{allocation.van:>5}{allocation.foot:>6}"
            f"{allocation.supervisor:>5}{allocation.hours:>8.1f}"
        )
    return "\n".join(lines)


def log_allocation_result(
    job_id: str,
    strategy: str,
    result: AllocationResult,
    summary: Optional[ScheduleSummary] = None,
) -> None:
    """Log an allocation result with its day table."""
    print("\n")
    print(ALLOCATION_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(ALLOCATION_BANNER_CHAR, f"ALLOCATION: {strategy.upper()} → {result.status.value.upper()}"))
    print(ALLOCATION_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Job ID       : {job_id}")
    print(f"║ Days         : {len(result.allocations)}")
    if result.end_date:
        print(f"║ End Date     : {result.end_date.isoformat()}")
    if result.message:
        print(f"║ Message      : {result.message}")
    if summary is not None:
        print(f"║ Hours        : {summary.hours_total:.1f} allocated / {summary.required_hours:.1f} required")
    print(ALLOCATION_BANNER_CHAR * BANNER_WIDTH)
    for line in format_allocation_table(result.allocations).split("\n"):
        print(f"  {line}")
    print(ALLOCATION_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "allocation_result_logged",
        job_id=job_id,
        strategy=strategy,
        status=result.status.value,
        days=len(result.allocations),
    )


def log_schedule_saved(job_id: str, rows_written: int, user_role: Optional[str]) -> None:
    """Log a schedule save."""
    print(SAVE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(SAVE_BANNER_CHAR, f"✓ SCHEDULE SAVED: {job_id}"))
    print(f"│ Rows Written : {rows_written}")
    print(f"│ Saved By     : {user_role or 'unknown'}")
    print(SAVE_BANNER_CHAR * BANNER_WIDTH)

    logger.info(
        "schedule_saved_logged",
        job_id=job_id,
        rows_written=rows_written,
        role=user_role,
    )
