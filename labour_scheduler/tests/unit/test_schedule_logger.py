"""Tests for the schedule logger output."""

from labour_scheduler.models.allocation import AllocationResult, AllocationStatus, DayAllocation
from labour_scheduler.utils.schedule_logger import (
    format_allocation_table,
    log_allocation_result,
    log_schedule_saved,
)


def test_format_allocation_table():
    table = format_allocation_table({
        "2024-01-03": DayAllocation(van=1, supervisor=1),
        "2024-01-02": DayAllocation(foot=2),
    })

    lines = table.split("\n")
    assert lines[0].startswith("Date")
    assert lines[1].startswith("2024-01-02  Tue")
    assert lines[2].startswith("2024-01-03  Wed")
    assert lines[2].endswith("16.0")


def test_log_allocation_result_prints_banner(capsys):
    result = AllocationResult(
        status=AllocationStatus.EMPTY,
        message="Job has no labour hours to allocate.",
    )

    log_allocation_result("job-1", "auto", result)

    out = capsys.readouterr().out
    assert "ALLOCATION: AUTO" in out
    assert "job-1" in out
    assert "no labour hours" in out


def test_log_schedule_saved(capsys):
    log_schedule_saved("job-1", 4, None)

    out = capsys.readouterr().out
    assert "SCHEDULE SAVED: job-1" in out
    assert "unknown" in out
