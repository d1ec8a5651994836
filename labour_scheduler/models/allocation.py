"""Labour allocation Pydantic models.

This module defines the data models for per-day crew allocation:
tasks, day allocations, persisted role rows and tagged allocation results.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from labour_scheduler.config.settings import settings


# =============================================================================
# CAPACITY
# =============================================================================


@dataclass(frozen=True)
class CapacityConfig:
    """Productivity constants shared by every allocation strategy.

    1 labour unit = ``hours_per_unit`` productive hours. A van crew counts as
    ``installers_per_van`` labour units, a foot installer as one.
    """

    hours_per_unit: float = 8.0
    installers_per_van: int = 2
    manual_day_van: int = 1
    manual_day_foot: int = 2
    quote_hours_per_day: float = 48.0
    quote_supervisor_interval: int = 3
    quote_supervisor_offset: int = 1
    suggested_crew_hours: float = 6.4

    @classmethod
    def from_settings(cls) -> "CapacityConfig":
        return cls(
            hours_per_unit=settings.hours_per_unit,
            installers_per_van=settings.installers_per_van,
            quote_hours_per_day=settings.quote_hours_per_day,
            suggested_crew_hours=settings.suggested_crew_hours,
        )

    def daily_hours(self, van: int, foot: int) -> float:
        """Productive hours delivered by ``van`` crews and ``foot`` installers."""
        return float((van * self.installers_per_van + foot) * self.hours_per_unit)

    def hours_to_units(self, hours: float) -> float:
        return hours / self.hours_per_unit

    def units_to_hours(self, units: float) -> float:
        return units * self.hours_per_unit

    def split_crew(self, units: int) -> "tuple[int, int]":
        """Split labour units into (van crews, foot installers), preferring vans."""
        return units // self.installers_per_van, units % self.installers_per_van


# =============================================================================
# ENUMS
# =============================================================================


class Role(str, Enum):
    """Role of a persisted allocation row."""

    INSTALLER = "installer"
    SUPERVISOR = "supervisor"


class CrewMode(str, Enum):
    """How installers travel to site."""

    VAN = "van"
    FOOT = "foot"


class TaskSource(str, Enum):
    """Where a labour task was derived from."""

    QUOTE = "quote"
    GENERATED = "generated"
    FALLBACK = "fallback"


class AllocationStatus(str, Enum):
    """Outcome of an allocation strategy."""

    SUCCESS = "success"
    EMPTY = "empty"  # Nothing to allocate (no hours / no products)
    INVALID_RANGE = "invalid_range"  # Window holds no working days


class AllocationStrategy(str, Enum):
    """Allocation strategies exposed to callers."""

    AUTO = "auto"
    BALANCED = "balanced"
    JOB_LENGTH = "job_length"
    QUOTE = "quote"


# =============================================================================
# TASK MODELS
# =============================================================================


class CrewHints(BaseModel):
    """Crew hints attached to a task."""

    van: int = Field(default=0, ge=0)
    foot: int = Field(default=0, ge=0)
    supervisor: int = Field(default=0, ge=0)


class Task(BaseModel):
    """Labour task derived from a quote line or generated task record."""

    name: str = Field(..., description="Task name")
    hours: float = Field(..., ge=0, description="Labour hours for the task")
    crew: CrewHints = Field(default_factory=CrewHints)
    source: TaskSource = Field(default=TaskSource.QUOTE)


class Job(BaseModel):
    """Job metadata as seen by the allocator. Read-only input."""

    id: str
    reference: str = ""
    client_name: str = ""
    title: str = ""
    status: Optional[str] = None
    tasks: List[Task] = Field(default_factory=list)
    total_hours: float = Field(default=0.0, ge=0)
    working_days: int = Field(default=0, ge=0)
    start_date: date
    end_date: date


class QuoteLineItem(BaseModel):
    """Product line from a parsed quote."""

    quantity: float = Field(default=1.0, ge=0)
    category: str = Field(default="")

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v: Any) -> Any:
        """Missing or zero quantities count as one unit."""
        if v is None or v == 0 or v == "":
            return 1.0
        return v

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> Any:
        return v or ""


# =============================================================================
# ALLOCATION MODELS
# =============================================================================


class DayAllocation(BaseModel):
    """Crew committed to one job on one date.

    ``hours`` is always derived from ``van`` and ``foot``; any supplied value
    is replaced. Pass ``context={"capacity": CapacityConfig(...)}`` to
    ``model_validate`` to derive it from non-default constants.
    """

    model_config = ConfigDict(frozen=True)

    van: int = Field(default=0, ge=0, description="Van crews")
    foot: int = Field(default=0, ge=0, description="Foot installers")
    supervisor: int = Field(default=0, ge=0, description="Supervisors")
    hours: float = Field(default=0.0, ge=0, validate_default=True)

    @field_validator("hours", mode="before")
    @classmethod
    def derive_hours(cls, v: Any, info: ValidationInfo) -> float:
        # Supplied values are discarded before the field's own checks run
        if "van" not in info.data or "foot" not in info.data:
            return 0.0
        capacity = None
        if info.context:
            capacity = info.context.get("capacity")
        if capacity is None:
            capacity = CapacityConfig.from_settings()
        return capacity.daily_hours(info.data["van"], info.data["foot"])

    @classmethod
    def for_crew(
        cls,
        van: int,
        foot: int,
        supervisor: int = 0,
        capacity: Optional[CapacityConfig] = None,
    ) -> "DayAllocation":
        return cls.model_validate(
            {"van": van, "foot": foot, "supervisor": supervisor},
            context={"capacity": capacity} if capacity else None,
        )

    @property
    def has_installers(self) -> bool:
        return self.van > 0 or self.foot > 0


AllocationMap = Dict[str, DayAllocation]


class AllocationResult(BaseModel):
    """Tagged result of an allocation strategy.

    On ``empty`` and ``invalid_range`` the ``allocations`` field carries the
    caller's previous map unchanged.
    """

    status: AllocationStatus
    allocations: Dict[str, DayAllocation] = Field(default_factory=dict)
    end_date: Optional[date] = None
    estimated_days: Optional[int] = None
    total_hours: Optional[float] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == AllocationStatus.SUCCESS


class AllocationRow(BaseModel):
    """Persisted role row. Unique per (job_id, work_date, role, crew_mode)."""

    job_id: str
    work_date: date
    role: Role
    crew_mode: Optional[CrewMode] = None
    headcount: int = Field(..., ge=1)

    @property
    def document_id(self) -> str:
        mode = self.crew_mode.value if self.crew_mode else "none"
        return f"{self.work_date.isoformat()}_{self.role.value}_{mode}"

    def to_firestore(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "work_date": self.work_date.isoformat(),
            "role": self.role.value,
            "crew_mode": self.crew_mode.value if self.crew_mode else None,
            "headcount": self.headcount,
        }


class ScheduleSummary(BaseModel):
    """Totals shown beside the labour calendar."""

    van_total: int = 0
    foot_total: int = 0
    supervisor_total: int = 0
    hours_total: float = 0.0
    allocated_days: int = 0
    required_hours: float = 0.0
    hours_variance: float = Field(
        default=0.0, description="Allocated minus required hours"
    )


def serialize_allocations(allocations: AllocationMap) -> Dict[str, Dict[str, Any]]:
    """Plain-dict form of an allocation map, sorted by date."""
    return {day: allocations[day].model_dump() for day in sorted(allocations)}
