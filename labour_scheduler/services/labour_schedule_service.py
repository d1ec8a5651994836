"""Labour schedule service.

Loads a job and its saved schedule, runs an allocation strategy and saves
the result. This is the layer the HTTP entry points call.
"""

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, Optional

import structlog

from labour_scheduler.config.errors import (
    ErrorCode,
    JobNotFoundError,
    LabourSchedulerError,
    PermissionDeniedError,
)
from labour_scheduler.models.allocation import (
    AllocationMap,
    AllocationResult,
    AllocationStatus,
    AllocationStrategy,
    Job,
    ScheduleSummary,
)
from labour_scheduler.services.allocation_calculator import (
    AllocationCalculator,
    NO_PRODUCTS_MESSAGE,
    get_allocation_calculator,
)
from labour_scheduler.services.schedule_store import ScheduleStore
from labour_scheduler.services.task_builder import build_job
from labour_scheduler.validators.labour_validator import validate_labour_estimate

logger = structlog.get_logger(__name__)

LABOUR_EDITOR_ROLES = frozenset({"admin", "director", "manager", "ops"})


def can_edit_labour(role: Optional[str]) -> bool:
    """Whether a user role may run allocations and save schedules."""
    return (role or "").strip().lower() in LABOUR_EDITOR_ROLES


@dataclass
class JobContext:
    """A job together with its saved allocation map."""
    job: Job
    allocations: AllocationMap = field(default_factory=dict)


class LabourScheduleService:
    """Coordinates persistence and allocation for one job at a time."""

    def __init__(
        self,
        store: Optional[ScheduleStore] = None,
        calculator: Optional[AllocationCalculator] = None,
    ):
        self.store = store or ScheduleStore()
        self.calculator = calculator or get_allocation_calculator()

    async def load_job(self, job_id: str, today: Optional[date] = None) -> Job:
        """Build the Job view from stored records.

        Raises:
            JobNotFoundError: If the job document does not exist.
        """
        record = await self.store.get_job(job_id)
        if record is None:
            raise JobNotFoundError(job_id)

        job_items = await self.store.list_job_items(job_id)
        generated = await self.store.list_generated_tasks(job_id)
        return build_job(record, job_items, generated, today=today)

    async def load_context(self, job_id: str, today: Optional[date] = None) -> JobContext:
        job = await self.load_job(job_id, today=today)
        allocations = await self.store.load_allocations(job_id)
        logger.info("job_context_loaded", job_id=job_id, days=len(allocations))
        return JobContext(job=job, allocations=allocations)

    async def allocate(
        self,
        job_id: str,
        strategy: AllocationStrategy,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        desired_days: Optional[int] = None,
        current: Optional[AllocationMap] = None,
        today: Optional[date] = None,
        job: Optional[Job] = None,
    ) -> AllocationResult:
        """Run an allocation strategy for a job. Nothing is saved.

        Args:
            job_id: Job to allocate
            strategy: auto, balanced, job_length or quote
            start_date: Window start (defaults to the job's start)
            end_date: Window end (defaults to the job's end)
            desired_days: Window length for the job_length strategy
            current: Map returned unchanged when nothing can be allocated
            today: Reference date for the job's default window
            job: Already-loaded job, skips the Firestore reads

        Returns:
            AllocationResult from the calculator
        """
        job = job or await self.load_job(job_id, today=today)
        start = start_date or job.start_date
        end = end_date or job.end_date
        current = current or {}

        if strategy == AllocationStrategy.AUTO:
            # Explicit windows use their own working-day count; the job's
            # default window uses the job's stored count.
            working_days = None if (start_date or end_date) else job.working_days
            return self.calculator.auto_allocate(
                job.total_hours, start, end, working_days=working_days, current=current
            )
        if strategy == AllocationStrategy.BALANCED:
            working_days = None if (start_date or end_date) else job.working_days
            return self.calculator.balanced_allocate(
                job.total_hours, start, end, working_days=working_days, current=current
            )
        if strategy == AllocationStrategy.JOB_LENGTH:
            return self.calculator.allocate_by_job_length(
                job.total_hours, start, desired_days or 0, current=current
            )
        if strategy == AllocationStrategy.QUOTE:
            return await self._allocate_from_quote(job_id, start, current)

        raise LabourSchedulerError(
            code=ErrorCode.UNKNOWN_STRATEGY,
            message=f"Unknown allocation strategy: {strategy}",
            details={"strategy": str(strategy)},
        )

    async def _allocate_from_quote(
        self,
        job_id: str,
        start: date,
        current: AllocationMap,
    ) -> AllocationResult:
        quote = await self.store.get_latest_quote(job_id)
        if quote is None:
            logger.info("quote_not_found", job_id=job_id)
            return AllocationResult(
                status=AllocationStatus.EMPTY,
                allocations=dict(current),
                message="No quote found for this job. Please create a quote first.",
            )

        line_items = self.calculator.quote_estimator.load_line_items(quote)
        result = self.calculator.allocate_from_quote(line_items, start, current=current)
        if result.message == NO_PRODUCTS_MESSAGE:
            logger.info("quote_has_no_products", job_id=job_id, quote_id=quote.get("id"))
        return result

    async def save(self, job_id: str, allocations: AllocationMap, user_role: Optional[str]) -> int:
        """Replace the saved schedule for a job.

        Raises:
            PermissionDeniedError: If the role may not edit labour.
            JobNotFoundError: If the job document does not exist.
        """
        if not can_edit_labour(user_role):
            logger.warning("schedule_save_denied", job_id=job_id, role=user_role)
            raise PermissionDeniedError(user_role, action="save_labour_schedule")
        if await self.store.get_job(job_id) is None:
            raise JobNotFoundError(job_id)
        return await self.store.save_allocations(job_id, allocations)

    def summarize(self, job: Job, allocations: AllocationMap) -> ScheduleSummary:
        return self.calculator.summarize(allocations, required_hours=job.total_hours)

    def describe(self, context: JobContext) -> Dict[str, Any]:
        """Job, schedule and crew hints for the labour calendar."""
        job = context.job
        suggestion = self.calculator.suggest_crew(job.total_hours, job.working_days)
        crew_size = suggestion["van"] * self.calculator.capacity.installers_per_van + suggestion["foot"]
        check = validate_labour_estimate(
            job.total_hours, crew_size, job.working_days, [task.hours for task in job.tasks]
        )
        return {
            "job": job.model_dump(mode="json"),
            "summary": self.summarize(job, context.allocations).model_dump(),
            "suggestedCrew": suggestion,
            "estimateCheck": asdict(check),
        }
