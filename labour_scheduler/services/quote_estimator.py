"""Quote Estimator Service.

Turns parsed quote line items into labour hours and crew requirements using
per-category productivity constants for office furniture installation.

The constants are business heuristics carried over from the quoting tool:
they have not been derived from measured site data.
"""

from typing import Dict, Any, Optional, List, Iterable
from dataclasses import dataclass, field
from enum import Enum
import json
import math

from pydantic import ValidationError as PydanticValidationError
import structlog

from labour_scheduler.config.errors import ValidationError
from labour_scheduler.config.settings import settings
from labour_scheduler.models.allocation import QuoteLineItem

logger = structlog.get_logger(__name__)


class CrewType(Enum):
    """Crew that installs a product category."""
    VAN = "van"
    FOOT = "foot"


@dataclass(frozen=True)
class CategoryProductivity:
    """Productivity data for one product category."""
    name: str
    keywords: tuple
    hours_per_unit: float
    crew: CrewType
    units_per_crew_day: int  # Units one crew (or installer) finishes per day


# =============================================================================
# CATEGORY PRODUCTIVITY TABLE
# =============================================================================
# Matched by case-insensitive substring on the line category, first match wins.

CATEGORY_PRODUCTIVITY: List[CategoryProductivity] = [
    CategoryProductivity(
        name="workstation", keywords=("workstation", "desk"),
        hours_per_unit=2.0, crew=CrewType.VAN, units_per_crew_day=4,
    ),
    CategoryProductivity(
        name="seating", keywords=("chair", "seating"),
        hours_per_unit=0.5, crew=CrewType.FOOT, units_per_crew_day=16,
    ),
    CategoryProductivity(
        name="screen", keywords=("screen", "panel"),
        hours_per_unit=1.0, crew=CrewType.FOOT, units_per_crew_day=8,
    ),
]

DEFAULT_PRODUCTIVITY = CategoryProductivity(
    name="general", keywords=(),
    hours_per_unit=1.0, crew=CrewType.FOOT, units_per_crew_day=8,
)


@dataclass
class QuoteEstimate:
    """Labour totals derived from a quote."""
    total_hours: float = 0.0
    van_crews_needed: int = 0
    foot_installers_needed: int = 0
    estimated_days: int = 0
    line_count: int = 0
    by_category: Dict[str, Dict[str, float]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.line_count == 0


class QuoteEstimatorService:
    """Service for estimating labour from quote line items."""

    def __init__(
        self,
        table: Optional[List[CategoryProductivity]] = None,
        hours_per_estimated_day: Optional[float] = None,
    ):
        """Initialize the quote estimator.

        Args:
            table: Category productivity table (defaults to CATEGORY_PRODUCTIVITY)
            hours_per_estimated_day: Productive hours that make up one estimated
                job day (defaults to settings.quote_hours_per_day)
        """
        self.table = table if table is not None else CATEGORY_PRODUCTIVITY
        self.hours_per_estimated_day = hours_per_estimated_day or settings.quote_hours_per_day

    def classify(self, category: str) -> CategoryProductivity:
        """Find the productivity entry for a product category."""
        category_lower = (category or "").lower()
        for entry in self.table:
            if any(keyword in category_lower for keyword in entry.keywords):
                return entry
        return DEFAULT_PRODUCTIVITY

    def estimate(self, line_items: Iterable[QuoteLineItem]) -> QuoteEstimate:
        """Sum hours and crew needs across quote lines.

        Args:
            line_items: Parsed quote lines

        Returns:
            QuoteEstimate; ``is_empty`` when no lines were supplied
        """
        result = QuoteEstimate()

        for item in line_items:
            productivity = self.classify(item.category)
            hours = item.quantity * productivity.hours_per_unit
            crews = math.ceil(item.quantity / productivity.units_per_crew_day)

            result.total_hours += hours
            if productivity.crew == CrewType.VAN:
                result.van_crews_needed += crews
            else:
                result.foot_installers_needed += crews
            result.line_count += 1

            bucket = result.by_category.setdefault(
                productivity.name, {"quantity": 0.0, "hours": 0.0}
            )
            bucket["quantity"] += item.quantity
            bucket["hours"] += hours

        if result.line_count:
            result.estimated_days = max(
                1, math.ceil(result.total_hours / self.hours_per_estimated_day)
            )

        logger.debug(
            "quote_estimated",
            lines=result.line_count,
            total_hours=round(result.total_hours, 2),
            estimated_days=result.estimated_days,
        )
        return result

    def load_line_items(self, quote_record: Dict[str, Any]) -> List[QuoteLineItem]:
        """Extract line items from a stored quote record.

        ``parsed_data`` may be a JSON string or an already-decoded dict; the
        lines live under its ``results`` key.

        Raises:
            ValidationError: If ``parsed_data`` is not valid JSON or a line
                has a malformed or negative quantity.
        """
        parsed = quote_record.get("parsed_data") or {}
        if isinstance(parsed, str):
            try:
                parsed = json.loads(parsed or "{}")
            except json.JSONDecodeError as e:
                raise ValidationError(
                    message=f"Quote parsed_data is not valid JSON: {e}",
                    field="parsed_data",
                )
        if not isinstance(parsed, dict):
            raise ValidationError(message="Quote parsed_data must be an object", field="parsed_data")

        results = parsed.get("results") or []
        try:
            return [QuoteLineItem.model_validate(item) for item in results if isinstance(item, dict)]
        except PydanticValidationError as e:
            errors = [f"{err['loc']}: {err['msg']}" for err in e.errors()]
            logger.warning("quote_line_items_invalid", quote_id=quote_record.get("id"), errors=errors)
            raise ValidationError(
                message=f"Quote line item is invalid: {e.errors()[0].get('msg')}",
                field="parsed_data.results",
                details={"errors": errors},
            )


# Module-level singleton for easy access
_service_instance: Optional[QuoteEstimatorService] = None


def get_quote_estimator() -> QuoteEstimatorService:
    """Get the singleton quote estimator instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = QuoteEstimatorService()
    return _service_instance
