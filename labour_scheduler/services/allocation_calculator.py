"""Allocation Calculator Service.

Converts a job's labour hours into per-day crew allocations across a date
window, skipping weekends.

Strategies:
- auto: even crew mix every working day, one supervisor on the middle day
- balanced: even crew mix, no supervisor
- job_length: auto strategy over a window of a chosen number of days
- quote: crews sized from quote line items, supervisor every third day

All operations are pure: they return new maps wrapped in an
AllocationResult and never mutate their inputs. Allocated hours are at least
the required hours when the window holds ``working_days`` working days, with
at most one labour unit of slack per day (daily units are rounded up).
"""

from typing import Any, Dict, Iterable, Optional
import math

import structlog

from labour_scheduler.models.allocation import (
    AllocationMap,
    AllocationResult,
    AllocationStatus,
    CapacityConfig,
    DayAllocation,
    QuoteLineItem,
    ScheduleSummary,
)
from labour_scheduler.services.quote_estimator import (
    QuoteEstimatorService,
    get_quote_estimator,
)
from labour_scheduler.utils.work_days import (
    DateLike,
    count_working_days,
    format_date,
    iter_working_days,
    to_date,
    window_end,
)

logger = structlog.get_logger(__name__)

NO_PRODUCTS_MESSAGE = "No products found in quote to calculate labour from."
NO_HOURS_MESSAGE = "Job has no labour hours to allocate."
NO_WORKING_DAYS_MESSAGE = "Date range contains no working days."


def _ceil_units(units: float) -> int:
    # Round first so float noise (e.g. 4.000000000001) does not add a unit
    return int(math.ceil(round(units, 9)))


class AllocationCalculator:
    """Pure allocation strategies over an AllocationMap."""

    def __init__(
        self,
        capacity: Optional[CapacityConfig] = None,
        quote_estimator: Optional[QuoteEstimatorService] = None,
    ):
        """Initialize the calculator.

        Args:
            capacity: Productivity constants (defaults to settings)
            quote_estimator: Estimator used by the quote strategy
        """
        self.capacity = capacity or CapacityConfig.from_settings()
        self.quote_estimator = quote_estimator or get_quote_estimator()

    # -------------------------------------------------------------------------
    # Capacity formulas
    # -------------------------------------------------------------------------

    def daily_hours(self, van: int, foot: int) -> float:
        return self.capacity.daily_hours(van, foot)

    def hours_to_units(self, hours: float) -> float:
        return self.capacity.hours_to_units(hours)

    def units_to_hours(self, units: float) -> float:
        return self.capacity.units_to_hours(units)

    def daily_crew(self, total_hours: float, working_days: int) -> "tuple[int, int]":
        """Van/foot mix needed each day to cover ``total_hours``."""
        units = _ceil_units(self.hours_to_units(total_hours / working_days))
        return self.capacity.split_crew(units)

    def _day(self, van: int, foot: int, supervisor: int = 0) -> DayAllocation:
        return DayAllocation.for_crew(van, foot, supervisor, capacity=self.capacity)

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    def _even_allocation(
        self,
        strategy: str,
        total_hours: float,
        start_date: DateLike,
        end_date: DateLike,
        working_days: Optional[int],
        current: Optional[AllocationMap],
        middle_supervisor: bool,
    ) -> AllocationResult:
        previous = dict(current or {})
        start = to_date(start_date)
        end = to_date(end_date)

        if end < start:
            return AllocationResult(
                status=AllocationStatus.INVALID_RANGE,
                allocations=previous,
                message="End date is before start date.",
            )

        if working_days is None:
            working_days = count_working_days(start, end)
        if working_days <= 0:
            return AllocationResult(
                status=AllocationStatus.INVALID_RANGE,
                allocations=previous,
                message=NO_WORKING_DAYS_MESSAGE,
            )
        if total_hours <= 0:
            return AllocationResult(
                status=AllocationStatus.EMPTY,
                allocations=previous,
                message=NO_HOURS_MESSAGE,
            )

        van, foot = self.daily_crew(total_hours, working_days)
        middle = working_days // 2

        allocations: AllocationMap = {}
        for index, day in enumerate(iter_working_days(start, end)):
            supervisor = 1 if middle_supervisor and index == middle else 0
            allocations[format_date(day)] = self._day(van, foot, supervisor)

        logger.info(
            "allocation_generated",
            strategy=strategy,
            total_hours=total_hours,
            working_days=working_days,
            van=van,
            foot=foot,
            days=len(allocations),
        )
        return AllocationResult(
            status=AllocationStatus.SUCCESS,
            allocations=allocations,
            end_date=end,
            total_hours=total_hours,
        )

    def auto_allocate(
        self,
        total_hours: float,
        start_date: DateLike,
        end_date: DateLike,
        working_days: Optional[int] = None,
        current: Optional[AllocationMap] = None,
    ) -> AllocationResult:
        """Spread hours evenly with one supervisor on the middle working day.

        Args:
            total_hours: Labour hours the job requires
            start_date: First day of the window (inclusive)
            end_date: Last day of the window (inclusive)
            working_days: Working-day count used for the daily rate and the
                middle-day index. Defaults to the count inside the window.
            current: Map returned unchanged when nothing can be allocated

        Returns:
            AllocationResult with one entry per working day in the window
        """
        return self._even_allocation(
            "auto", total_hours, start_date, end_date, working_days, current,
            middle_supervisor=True,
        )

    def balanced_allocate(
        self,
        total_hours: float,
        start_date: DateLike,
        end_date: DateLike,
        working_days: Optional[int] = None,
        current: Optional[AllocationMap] = None,
    ) -> AllocationResult:
        """Same crew mix as auto_allocate with no supervisor on any day."""
        return self._even_allocation(
            "balanced", total_hours, start_date, end_date, working_days, current,
            middle_supervisor=False,
        )

    def allocate_by_job_length(
        self,
        total_hours: float,
        start_date: DateLike,
        desired_days: int,
        current: Optional[AllocationMap] = None,
    ) -> AllocationResult:
        """Auto-allocate over a window of ``desired_days`` calendar days.

        The new end date is ``start_date + desired_days - 1``. A window with
        no working days leaves ``current`` untouched but still reports the
        end date it computed.
        """
        previous = dict(current or {})
        if desired_days is None or desired_days <= 0:
            return AllocationResult(
                status=AllocationStatus.INVALID_RANGE,
                allocations=previous,
                message="Desired job length must be at least one day.",
            )

        start = to_date(start_date)
        end = window_end(start, desired_days)
        working_days = count_working_days(start, end)
        if working_days == 0:
            return AllocationResult(
                status=AllocationStatus.INVALID_RANGE,
                allocations=previous,
                end_date=end,
                message=NO_WORKING_DAYS_MESSAGE,
            )
        if total_hours <= 0:
            return AllocationResult(
                status=AllocationStatus.EMPTY,
                allocations=previous,
                end_date=end,
                message=NO_HOURS_MESSAGE,
            )

        van, foot = self.daily_crew(total_hours, working_days)
        middle = working_days // 2

        allocations: AllocationMap = {}
        for index, day in enumerate(iter_working_days(start, end)):
            if index >= desired_days:
                break
            supervisor = 1 if index == middle else 0
            allocations[format_date(day)] = self._day(van, foot, supervisor)

        logger.info(
            "allocation_generated",
            strategy="job_length",
            total_hours=total_hours,
            desired_days=desired_days,
            working_days=working_days,
            end_date=end.isoformat(),
        )
        return AllocationResult(
            status=AllocationStatus.SUCCESS,
            allocations=allocations,
            end_date=end,
            total_hours=total_hours,
        )

    def allocate_from_quote(
        self,
        line_items: Iterable[QuoteLineItem],
        start_date: DateLike,
        current: Optional[AllocationMap] = None,
    ) -> AllocationResult:
        """Size crews from quote line items.

        The job length is ``ceil(quote hours / quote_hours_per_day)`` days.
        Crew needs are spread evenly over those days (at least one van crew
        and one foot installer daily) and a supervisor is booked every third
        working day.

        Returns:
            ``empty`` with a "no products" message when ``line_items`` is empty
        """
        previous = dict(current or {})
        items = list(line_items)
        if not items:
            logger.info("quote_allocation_skipped", reason="no_products")
            return AllocationResult(
                status=AllocationStatus.EMPTY,
                allocations=previous,
                message=NO_PRODUCTS_MESSAGE,
            )

        estimate = self.quote_estimator.estimate(items)
        estimated_days = estimate.estimated_days
        start = to_date(start_date)
        end = window_end(start, estimated_days)

        daily_van = max(1, math.ceil(estimate.van_crews_needed / estimated_days))
        daily_foot = max(1, math.ceil(estimate.foot_installers_needed / estimated_days))
        interval = self.capacity.quote_supervisor_interval
        offset = self.capacity.quote_supervisor_offset

        allocations: AllocationMap = {}
        for index, day in enumerate(iter_working_days(start, end)):
            if index >= estimated_days:
                break
            supervisor = 1 if index % interval == offset else 0
            allocations[format_date(day)] = self._day(daily_van, daily_foot, supervisor)

        if not allocations:
            return AllocationResult(
                status=AllocationStatus.INVALID_RANGE,
                allocations=previous,
                end_date=end,
                estimated_days=estimated_days,
                total_hours=estimate.total_hours,
                message=NO_WORKING_DAYS_MESSAGE,
            )

        logger.info(
            "allocation_generated",
            strategy="quote",
            total_hours=round(estimate.total_hours, 2),
            estimated_days=estimated_days,
            van=daily_van,
            foot=daily_foot,
        )
        return AllocationResult(
            status=AllocationStatus.SUCCESS,
            allocations=allocations,
            end_date=end,
            estimated_days=estimated_days,
            total_hours=estimate.total_hours,
            message=(
                f"Estimated job duration: {estimated_days} days. "
                f"Daily allocation: {daily_van} van crews, {daily_foot} foot installers."
            ),
        )

    # -------------------------------------------------------------------------
    # Manual edits
    # -------------------------------------------------------------------------

    def toggle_manual_day(self, allocations: AllocationMap, day: DateLike) -> AllocationMap:
        """Remove a staffed day, or book the default manual crew on it."""
        key = format_date(day)
        updated = dict(allocations)
        existing = updated.get(key)
        if existing is not None and existing.has_installers:
            del updated[key]
        else:
            updated[key] = self._day(
                self.capacity.manual_day_van, self.capacity.manual_day_foot
            )
        return updated

    def clear(self) -> AllocationMap:
        return {}

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def summarize(self, allocations: AllocationMap, required_hours: float = 0.0) -> ScheduleSummary:
        """Totals across an allocation map."""
        van_total = sum(a.van for a in allocations.values())
        foot_total = sum(a.foot for a in allocations.values())
        supervisor_total = sum(a.supervisor for a in allocations.values())
        hours_total = sum(a.hours for a in allocations.values())
        allocated_days = sum(1 for a in allocations.values() if a.has_installers)
        return ScheduleSummary(
            van_total=van_total,
            foot_total=foot_total,
            supervisor_total=supervisor_total,
            hours_total=hours_total,
            allocated_days=allocated_days,
            required_hours=required_hours,
            hours_variance=hours_total - required_hours,
        )

    def suggest_crew(self, total_hours: float, working_days: int) -> Dict[str, Any]:
        """Rough crew hint based on a 6.4h effective installer day.

        6.4 = a 7 hour day less 0.6 hours of non-productive time.
        """
        if working_days <= 0:
            return {"daily_hours": 0.0, "van": 0, "foot": 0}
        crew_hours = self.capacity.suggested_crew_hours
        daily = total_hours / working_days
        return {
            "daily_hours": round(daily, 2),
            "van": math.ceil(daily / crew_hours),
            "foot": math.ceil((daily % crew_hours) / crew_hours),
        }


# Module-level singleton for easy access
_calculator_instance: Optional[AllocationCalculator] = None


def get_allocation_calculator() -> AllocationCalculator:
    """Get the singleton allocation calculator instance."""
    global _calculator_instance
    if _calculator_instance is None:
        _calculator_instance = AllocationCalculator()
    return _calculator_instance


def daily_hours(van: int, foot: int) -> float:
    return get_allocation_calculator().daily_hours(van, foot)


def hours_to_units(hours: float) -> float:
    return get_allocation_calculator().hours_to_units(hours)


def auto_allocate(total_hours: float, start_date: DateLike, end_date: DateLike, **kwargs) -> AllocationResult:
    return get_allocation_calculator().auto_allocate(total_hours, start_date, end_date, **kwargs)


def balanced_allocate(total_hours: float, start_date: DateLike, end_date: DateLike, **kwargs) -> AllocationResult:
    return get_allocation_calculator().balanced_allocate(total_hours, start_date, end_date, **kwargs)


def allocate_by_job_length(total_hours: float, start_date: DateLike, desired_days: int, **kwargs) -> AllocationResult:
    return get_allocation_calculator().allocate_by_job_length(total_hours, start_date, desired_days, **kwargs)


def allocate_from_quote(line_items: Iterable[QuoteLineItem], start_date: DateLike, **kwargs) -> AllocationResult:
    return get_allocation_calculator().allocate_from_quote(line_items, start_date, **kwargs)


def toggle_manual_day(allocations: AllocationMap, day: DateLike) -> AllocationMap:
    return get_allocation_calculator().toggle_manual_day(allocations, day)
