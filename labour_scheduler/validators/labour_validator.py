"""Request parsing and labour estimate validation.

Parses JSON payloads from the HTTP layer into typed requests and checks
labour estimates against business rules before allocation.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator
import structlog

from labour_scheduler.config.errors import ValidationError
from labour_scheduler.models.allocation import AllocationMap, AllocationStrategy, DayAllocation
from labour_scheduler.utils.work_days import format_date, is_working_day

logger = structlog.get_logger(__name__)

# Business-rule thresholds
MAX_REASONABLE_HOURS = 2000
MAX_REASONABLE_CREW = 8
MAX_REASONABLE_DAYS = 60
PRODUCT_HOURS_TOLERANCE = 1.0


class AllocationRequest(BaseModel):
    """Payload for the allocate endpoint."""

    job_id: str = Field(..., alias="jobId", min_length=1)
    strategy: AllocationStrategy = AllocationStrategy.AUTO
    start_date: Optional[date] = Field(None, alias="startDate")
    end_date: Optional[date] = Field(None, alias="endDate")
    desired_days: Optional[int] = Field(None, alias="desiredDays")
    allocations: Dict[str, DayAllocation] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    @field_validator("allocations")
    @classmethod
    def normalize_dates(cls, v: Dict[str, DayAllocation]) -> Dict[str, DayAllocation]:
        return {format_date(day): allocation for day, allocation in v.items()}


class SaveScheduleRequest(BaseModel):
    """Payload for the save endpoint."""

    job_id: str = Field(..., alias="jobId", min_length=1)
    user_role: Optional[str] = Field(None, alias="userRole")
    allocations: Dict[str, DayAllocation] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    @field_validator("allocations")
    @classmethod
    def normalize_dates(cls, v: Dict[str, DayAllocation]) -> Dict[str, DayAllocation]:
        return {format_date(day): allocation for day, allocation in v.items()}


def _parse(model, data: Any):
    if not isinstance(data, dict):
        raise ValidationError(message="Request body must be a JSON object")
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field_name = ".".join(str(part) for part in first.get("loc", ()))
        errors = [f"{err['loc']}: {err['msg']}" for err in e.errors()]
        logger.warning("request_validation_failed", model=model.__name__, errors=errors)
        raise ValidationError(
            message=f"Invalid {field_name or 'request'}: {first.get('msg')}",
            field=field_name or None,
            details={"errors": errors},
        )


def parse_allocation_request(data: Dict[str, Any]) -> AllocationRequest:
    """Parse an allocate payload.

    Raises:
        ValidationError: On missing or malformed fields.
    """
    request = _parse(AllocationRequest, data)
    if request.start_date and request.end_date and request.end_date < request.start_date:
        raise ValidationError(message="endDate must not be before startDate", field="endDate")
    if request.strategy == AllocationStrategy.JOB_LENGTH and not request.desired_days:
        raise ValidationError(message="desiredDays is required for the job_length strategy", field="desiredDays")
    return request


def parse_save_request(data: Dict[str, Any]) -> SaveScheduleRequest:
    """Parse a save payload.

    Raises:
        ValidationError: On missing or malformed fields.
    """
    return _parse(SaveScheduleRequest, data)


@dataclass
class ValidationResult:
    """Result of labour estimate validation."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def validate_labour_estimate(
    total_hours: float,
    crew_size: int,
    total_days: int,
    product_hours: List[float],
) -> ValidationResult:
    """Check a labour estimate against business rules.

    Args:
        total_hours: Estimated labour hours for the job
        crew_size: Planned crew size
        total_days: Planned job length in days
        product_hours: Hours per product line

    Returns:
        ValidationResult; errors make it invalid, warnings do not
    """
    errors: List[str] = []
    warnings: List[str] = []

    if total_hours <= 0:
        errors.append("Total hours must be greater than zero")
    if total_hours > MAX_REASONABLE_HOURS:
        warnings.append(
            f"Total hours exceeds {MAX_REASONABLE_HOURS} - consider breaking into multiple jobs"
        )

    if crew_size == 0:
        errors.append("Crew size cannot be zero")
    if crew_size > MAX_REASONABLE_CREW:
        warnings.append(f"Crew size exceeds {MAX_REASONABLE_CREW} - may impact productivity")

    if total_days > MAX_REASONABLE_DAYS:
        warnings.append(f"Job duration exceeds {MAX_REASONABLE_DAYS} days - consider project phasing")

    if not product_hours:
        errors.append("Job must contain at least one product")
    elif abs(sum(product_hours) - total_hours) > PRODUCT_HOURS_TOLERANCE:
        warnings.append("Product hours do not match estimate total")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_allocations(allocations: AllocationMap) -> List[str]:
    """Warnings for a schedule about to be saved (weekend bookings, empty days)."""
    warnings = []
    for day in sorted(allocations):
        allocation = allocations[day]
        if not is_working_day(day) and allocation.has_installers:
            warnings.append(f"{day} is a weekend day")
        if not allocation.has_installers and allocation.supervisor == 0:
            warnings.append(f"{day} has no crew booked")
    return warnings
