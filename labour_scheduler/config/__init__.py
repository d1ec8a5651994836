"""Labour scheduler configuration.

This package contains:
- settings: Environment variables and capacity constants
- errors: Custom exceptions and error codes
"""

from labour_scheduler.config.settings import settings
from labour_scheduler.config.errors import LabourSchedulerError

__all__ = [
    "settings",
    "LabourSchedulerError",
]
