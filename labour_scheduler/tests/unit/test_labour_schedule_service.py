"""Unit tests for LabourScheduleService."""

import json
from datetime import date
from unittest.mock import AsyncMock

import pytest

from labour_scheduler.config.errors import (
    ErrorCode,
    JobNotFoundError,
    LabourSchedulerError,
    PermissionDeniedError,
)
from labour_scheduler.models.allocation import AllocationStatus, AllocationStrategy, DayAllocation
from labour_scheduler.services.labour_schedule_service import can_edit_labour


@pytest.mark.parametrize("role,allowed", [
    ("admin", True),
    ("Director", True),
    ("manager", True),
    (" ops ", True),
    ("installer", False),
    ("viewer", False),
    ("", False),
    (None, False),
])
def test_can_edit_labour(role, allowed):
    assert can_edit_labour(role) is allowed


class TestLoadJob:

    @pytest.mark.asyncio
    async def test_load_job(self, labour_service):
        job = await labour_service.load_job("job-1")

        assert job.id == "job-1"
        assert job.client_name == "Acme Ltd"
        assert job.total_hours == 44.0
        assert job.working_days == 5

    @pytest.mark.asyncio
    async def test_missing_job(self, labour_service, mock_store):
        mock_store.get_job = AsyncMock(return_value=None)

        with pytest.raises(JobNotFoundError) as exc_info:
            await labour_service.load_job("job-missing")

        assert exc_info.value.code == ErrorCode.JOB_NOT_FOUND

    @pytest.mark.asyncio
    async def test_load_context(self, labour_service, mock_store):
        saved = {"2024-01-02": DayAllocation(van=1, foot=2)}
        mock_store.load_allocations = AsyncMock(return_value=saved)

        context = await labour_service.load_context("job-1")

        assert context.job.id == "job-1"
        assert context.allocations == saved


class TestAllocate:

    @pytest.mark.asyncio
    async def test_auto_uses_job_window(self, labour_service):
        result = await labour_service.allocate("job-1", AllocationStrategy.AUTO)

        assert result.status == AllocationStatus.SUCCESS
        assert len(result.allocations) == 5
        assert result.allocations["2024-01-03"].supervisor == 1

    @pytest.mark.asyncio
    async def test_preloaded_job_skips_reads(self, labour_service, mock_store):
        job = await labour_service.load_job("job-1")
        mock_store.get_job.reset_mock()

        result = await labour_service.allocate("job-1", AllocationStrategy.BALANCED, job=job)

        assert result.ok
        mock_store.get_job.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_balanced_with_explicit_window(self, labour_service):
        result = await labour_service.allocate(
            "job-1", AllocationStrategy.BALANCED,
            start_date=date(2024, 1, 8), end_date=date(2024, 1, 9),
        )

        # 44h over 2 days = 2.75 units -> 3
        assert sorted(result.allocations) == ["2024-01-08", "2024-01-09"]
        assert all((a.van, a.foot, a.supervisor) == (1, 1, 0) for a in result.allocations.values())

    @pytest.mark.asyncio
    async def test_job_length(self, labour_service):
        result = await labour_service.allocate("job-1", AllocationStrategy.JOB_LENGTH, desired_days=3)

        assert result.end_date == date(2024, 1, 3)
        assert len(result.allocations) == 3

    @pytest.mark.asyncio
    async def test_quote_without_quote_record(self, labour_service):
        current = {"2024-01-02": DayAllocation(van=1)}

        result = await labour_service.allocate("job-1", AllocationStrategy.QUOTE, current=current)

        assert result.status == AllocationStatus.EMPTY
        assert result.allocations == current
        assert "No quote found" in result.message

    @pytest.mark.asyncio
    async def test_quote_strategy(self, labour_service, mock_store):
        mock_store.get_latest_quote = AsyncMock(return_value={
            "id": "quote-1",
            "parsed_data": json.dumps({"results": [{"category": "Desk", "quantity": 10}]}),
        })

        result = await labour_service.allocate("job-1", AllocationStrategy.QUOTE)

        assert result.status == AllocationStatus.SUCCESS
        assert result.estimated_days == 1
        day = result.allocations["2024-01-01"]
        assert (day.van, day.foot) == (3, 1)

    @pytest.mark.asyncio
    async def test_quote_with_no_products(self, labour_service, mock_store):
        mock_store.get_latest_quote = AsyncMock(return_value={"id": "quote-1", "parsed_data": "{}"})

        result = await labour_service.allocate("job-1", AllocationStrategy.QUOTE)

        assert result.status == AllocationStatus.EMPTY
        assert result.message.startswith("No products found")

    @pytest.mark.asyncio
    async def test_unknown_strategy(self, labour_service):
        with pytest.raises(LabourSchedulerError) as exc_info:
            await labour_service.allocate("job-1", "fastest")

        assert exc_info.value.code == ErrorCode.UNKNOWN_STRATEGY


class TestSave:

    @pytest.mark.asyncio
    async def test_save_allowed(self, labour_service, mock_store):
        mock_store.save_allocations = AsyncMock(return_value=2)
        allocations = {"2024-01-02": DayAllocation(van=1, foot=2)}

        written = await labour_service.save("job-1", allocations, "manager")

        assert written == 2
        mock_store.save_allocations.assert_awaited_once_with("job-1", allocations)

    @pytest.mark.asyncio
    async def test_save_denied(self, labour_service, mock_store):
        with pytest.raises(PermissionDeniedError) as exc_info:
            await labour_service.save("job-1", {}, "installer")

        assert exc_info.value.code == ErrorCode.PERMISSION_DENIED
        mock_store.save_allocations.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_save_missing_job(self, labour_service, mock_store):
        mock_store.get_job = AsyncMock(return_value=None)

        with pytest.raises(JobNotFoundError):
            await labour_service.save("job-missing", {}, "admin")

        mock_store.save_allocations.assert_not_awaited()


@pytest.mark.asyncio
async def test_describe(labour_service, mock_store):
    mock_store.load_allocations = AsyncMock(return_value={
        "2024-01-01": DayAllocation(van=1),
        "2024-01-02": DayAllocation(van=1, supervisor=1),
    })
    context = await labour_service.load_context("job-1")

    payload = labour_service.describe(context)

    assert payload["job"]["id"] == "job-1"
    assert payload["job"]["start_date"] == "2024-01-01"
    assert payload["summary"]["hours_total"] == 32.0
    assert payload["summary"]["hours_variance"] == -12.0
    assert payload["suggestedCrew"]["van"] == 2
    assert payload["estimateCheck"] == {"is_valid": True, "errors": [], "warnings": []}
