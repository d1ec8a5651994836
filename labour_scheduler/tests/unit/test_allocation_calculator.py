"""
Unit Tests for the Allocation Calculator.

Covers:
- Capacity formulas (daily hours, labour units)
- auto / balanced / job_length / quote strategies
- Weekend skipping and supervisor placement
- Manual day toggling and schedule summaries
"""

from datetime import date

import pytest

from labour_scheduler.models.allocation import (
    AllocationStatus,
    CapacityConfig,
    DayAllocation,
    QuoteLineItem,
)
from labour_scheduler.services.allocation_calculator import (
    AllocationCalculator,
    NO_PRODUCTS_MESSAGE,
    NO_WORKING_DAYS_MESSAGE,
)


# =============================================================================
# Capacity formulas
# =============================================================================


class TestCapacityFormulas:
    """Tests for daily_hours / hours_to_units."""

    @pytest.mark.parametrize("van,foot,expected", [
        (0, 0, 0.0),
        (1, 0, 16.0),
        (0, 1, 8.0),
        (2, 1, 40.0),
        (3, 2, 64.0),
    ])
    def test_daily_hours(self, calculator, van, foot, expected):
        assert calculator.daily_hours(van, foot) == expected

    @pytest.mark.parametrize("van,foot", [(0, 1), (1, 0), (2, 3), (5, 1)])
    def test_daily_hours_in_units(self, calculator, van, foot):
        assert calculator.hours_to_units(calculator.daily_hours(van, foot)) == 2 * van + foot

    def test_units_to_hours(self, calculator):
        assert calculator.units_to_hours(3) == 24.0

    def test_custom_capacity(self):
        calc = AllocationCalculator(capacity=CapacityConfig(hours_per_unit=7.5))

        assert calc.daily_hours(1, 1) == 22.5
        result = calc.balanced_allocate(22.5, "2024-01-01", "2024-01-01")
        assert result.allocations["2024-01-01"].hours == 22.5

    @pytest.mark.parametrize("hours,days,expected", [
        (320, 10, (2, 0)),   # 4 units per day
        (44, 5, (1, 0)),     # 1.1 units rounds up to 2
        (40, 5, (0, 1)),     # exactly 1 unit
        (120, 5, (1, 1)),    # 3 units
    ])
    def test_daily_crew(self, calculator, hours, days, expected):
        assert calculator.daily_crew(hours, days) == expected


# =============================================================================
# auto_allocate
# =============================================================================


class TestAutoAllocate:
    """Tests for the auto strategy."""

    def test_two_week_window(self, calculator):
        """320h over 10 working days: 2 vans daily, supervisor on index 5."""
        result = calculator.auto_allocate(320, "2024-01-01", "2024-01-12")

        assert result.status == AllocationStatus.SUCCESS
        assert len(result.allocations) == 10
        for allocation in result.allocations.values():
            assert allocation.van == 2
            assert allocation.foot == 0
            assert allocation.hours == 32.0

        supervised = [day for day, a in result.allocations.items() if a.supervisor]
        assert supervised == ["2024-01-08"]

    def test_single_week_supervisor_on_wednesday(self, calculator):
        """44h over Mon-Fri: 1 van daily, supervisor on Wednesday."""
        result = calculator.auto_allocate(44, "2024-01-01", "2024-01-05")

        assert sorted(result.allocations) == [
            "2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04", "2024-01-05",
        ]
        assert all(a.van == 1 and a.foot == 0 for a in result.allocations.values())
        assert result.allocations["2024-01-03"].supervisor == 1
        assert sum(a.supervisor for a in result.allocations.values()) == 1

    def test_skips_weekends(self, calculator):
        result = calculator.auto_allocate(100, "2024-01-01", "2024-01-14")

        assert "2024-01-06" not in result.allocations
        assert "2024-01-07" not in result.allocations
        assert "2024-01-13" not in result.allocations
        assert "2024-01-14" not in result.allocations
        assert len(result.allocations) == 10

    def test_allocated_hours_cover_requirement(self, calculator):
        result = calculator.auto_allocate(44, "2024-01-01", "2024-01-05")

        total = sum(a.hours for a in result.allocations.values())
        assert total >= 44
        assert total - 44 < 5 * 8 * 2

    def test_zero_hours_is_empty(self, calculator):
        current = {"2024-01-02": DayAllocation.for_crew(1, 2)}

        result = calculator.auto_allocate(0, "2024-01-01", "2024-01-05", current=current)

        assert result.status == AllocationStatus.EMPTY
        assert result.allocations == current

    def test_weekend_only_window(self, calculator):
        current = {"2024-01-02": DayAllocation.for_crew(1, 0)}

        result = calculator.auto_allocate(40, "2024-01-06", "2024-01-07", current=current)

        assert result.status == AllocationStatus.INVALID_RANGE
        assert result.message == NO_WORKING_DAYS_MESSAGE
        assert result.allocations == current

    def test_end_before_start(self, calculator):
        result = calculator.auto_allocate(40, "2024-01-05", "2024-01-01")

        assert result.status == AllocationStatus.INVALID_RANGE
        assert result.allocations == {}

    def test_explicit_working_days(self, calculator):
        """A stored working-day count drives the daily rate."""
        result = calculator.auto_allocate(80, "2024-01-01", "2024-01-05", working_days=10)

        # 80h / 10 days = 1 unit per day
        assert all(a.van == 0 and a.foot == 1 for a in result.allocations.values())
        assert len(result.allocations) == 5

    def test_does_not_mutate_current(self, calculator):
        current = {"2024-02-01": DayAllocation.for_crew(1, 1)}

        calculator.auto_allocate(44, "2024-01-01", "2024-01-05", current=current)

        assert list(current) == ["2024-02-01"]


# =============================================================================
# balanced_allocate
# =============================================================================


class TestBalancedAllocate:
    """Tests for the balanced strategy."""

    def test_same_crews_as_auto_without_supervisor(self, calculator):
        auto = calculator.auto_allocate(44, "2024-01-01", "2024-01-05")
        balanced = calculator.balanced_allocate(44, "2024-01-01", "2024-01-05")

        assert sorted(balanced.allocations) == sorted(auto.allocations)
        for day, allocation in balanced.allocations.items():
            assert allocation.van == auto.allocations[day].van
            assert allocation.foot == auto.allocations[day].foot
            assert allocation.supervisor == 0

    def test_no_supervisor_anywhere(self, calculator):
        result = calculator.balanced_allocate(320, "2024-01-01", "2024-01-12")

        assert all(a.supervisor == 0 for a in result.allocations.values())


# =============================================================================
# allocate_by_job_length
# =============================================================================


class TestAllocateByJobLength:
    """Tests for the job_length strategy."""

    def test_window_from_desired_days(self, calculator):
        result = calculator.allocate_by_job_length(44, "2024-01-01", 5)

        assert result.status == AllocationStatus.SUCCESS
        assert result.end_date == date(2024, 1, 5)
        assert len(result.allocations) == 5
        assert result.allocations["2024-01-03"].supervisor == 1

    def test_window_spanning_weekend(self, calculator):
        result = calculator.allocate_by_job_length(80, "2024-01-04", 5)

        # Thu, Fri, Mon -> 3 working days
        assert result.end_date == date(2024, 1, 8)
        assert sorted(result.allocations) == ["2024-01-04", "2024-01-05", "2024-01-08"]

    @pytest.mark.parametrize("desired_days", [0, -3])
    def test_non_positive_length_is_noop(self, calculator, desired_days):
        current = {"2024-01-02": DayAllocation.for_crew(1, 0)}

        result = calculator.allocate_by_job_length(44, "2024-01-01", desired_days, current=current)

        assert result.status == AllocationStatus.INVALID_RANGE
        assert result.allocations == current

    def test_weekend_window_is_noop_but_reports_end(self, calculator):
        current = {"2024-01-02": DayAllocation.for_crew(1, 0)}

        result = calculator.allocate_by_job_length(44, "2024-01-06", 2, current=current)

        assert result.status == AllocationStatus.INVALID_RANGE
        assert result.allocations == current
        assert result.end_date == date(2024, 1, 7)


# =============================================================================
# allocate_from_quote
# =============================================================================


class TestAllocateFromQuote:
    """Tests for the quote strategy."""

    def test_no_products(self, calculator):
        current = {"2024-01-02": DayAllocation.for_crew(1, 2)}

        result = calculator.allocate_from_quote([], "2024-01-01", current=current)

        assert result.status == AllocationStatus.EMPTY
        assert result.message == NO_PRODUCTS_MESSAGE
        assert result.allocations == current

    def test_single_day_quote(self, calculator):
        items = [QuoteLineItem(category="Desk", quantity=10)]

        result = calculator.allocate_from_quote(items, "2024-01-01")

        # 20h -> 1 day; ceil(10 / 4) = 3 vans; foot floor of 1
        assert result.status == AllocationStatus.SUCCESS
        assert result.estimated_days == 1
        assert result.total_hours == 20.0
        assert list(result.allocations) == ["2024-01-01"]
        day = result.allocations["2024-01-01"]
        assert (day.van, day.foot, day.supervisor) == (3, 1, 0)
        assert day.hours == 56.0

    def test_supervisor_every_third_day(self, calculator):
        items = [QuoteLineItem(category="Workstation", quantity=60)]

        result = calculator.allocate_from_quote(items, "2024-01-01")

        # 120h -> 3 days; 15 vans over 3 days = 5 daily
        assert result.estimated_days == 3
        assert sorted(result.allocations) == ["2024-01-01", "2024-01-02", "2024-01-03"]
        assert all(a.van == 5 and a.foot == 1 for a in result.allocations.values())
        assert [result.allocations[d].supervisor for d in sorted(result.allocations)] == [0, 1, 0]
        assert "3 days" in result.message

    def test_weekend_start_with_short_job(self, calculator):
        items = [QuoteLineItem(category="Chair", quantity=4)]

        result = calculator.allocate_from_quote(items, "2024-01-06")

        assert result.status == AllocationStatus.INVALID_RANGE
        assert result.allocations == {}
        assert result.estimated_days == 1


# =============================================================================
# Manual edits
# =============================================================================


class TestToggleManualDay:
    """Tests for toggle_manual_day."""

    def test_adds_default_crew(self, calculator):
        updated = calculator.toggle_manual_day({}, "2024-01-02")

        day = updated["2024-01-02"]
        assert (day.van, day.foot, day.supervisor) == (1, 2, 0)
        assert day.hours == 32.0

    def test_toggle_twice_restores_map(self, calculator):
        original = {"2024-01-01": DayAllocation.for_crew(2, 0)}

        once = calculator.toggle_manual_day(original, "2024-01-03")
        twice = calculator.toggle_manual_day(once, "2024-01-03")

        assert twice == original

    def test_removes_staffed_day(self, calculator):
        original = {"2024-01-03": DayAllocation.for_crew(1, 2)}

        once = calculator.toggle_manual_day(original, date(2024, 1, 3))
        twice = calculator.toggle_manual_day(once, date(2024, 1, 3))

        assert once == {}
        assert twice == original

    def test_does_not_mutate_input(self, calculator):
        original = {}

        calculator.toggle_manual_day(original, "2024-01-03")

        assert original == {}

    def test_clear(self, calculator):
        assert calculator.clear() == {}


# =============================================================================
# Reporting
# =============================================================================


class TestSummaries:
    """Tests for summarize / suggest_crew."""

    def test_summarize(self, calculator):
        allocations = {
            "2024-01-01": DayAllocation.for_crew(1, 2),
            "2024-01-02": DayAllocation.for_crew(1, 2, supervisor=1),
            "2024-01-03": DayAllocation.for_crew(0, 0, supervisor=1),
        }

        summary = calculator.summarize(allocations, required_hours=44)

        assert summary.van_total == 2
        assert summary.foot_total == 4
        assert summary.supervisor_total == 2
        assert summary.hours_total == 64.0
        assert summary.allocated_days == 2
        assert summary.hours_variance == 20.0

    def test_suggest_crew(self, calculator):
        suggestion = calculator.suggest_crew(44, 5)

        assert suggestion == {"daily_hours": 8.8, "van": 2, "foot": 1}

    def test_suggest_crew_without_days(self, calculator):
        assert calculator.suggest_crew(44, 0) == {"daily_hours": 0.0, "van": 0, "foot": 0}
