"""Utility modules for the labour scheduler."""

from labour_scheduler.utils.schedule_logger import (
    format_allocation_table,
    log_allocation_result,
    log_schedule_saved,
)
from labour_scheduler.utils.work_days import (
    count_working_days,
    format_date,
    is_working_day,
    iter_working_days,
)

__all__ = [
    "format_allocation_table",
    "log_allocation_result",
    "log_schedule_saved",
    "count_working_days",
    "format_date",
    "is_working_day",
    "iter_working_days",
]
