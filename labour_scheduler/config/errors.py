"""Labour scheduler error handling.

Custom exceptions and error codes for allocation and persistence.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    UNKNOWN_STRATEGY = "UNKNOWN_STRATEGY"

    # Access Errors (2xxx)
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Lookup Errors (3xxx)
    JOB_NOT_FOUND = "JOB_NOT_FOUND"
    QUOTE_NOT_FOUND = "QUOTE_NOT_FOUND"

    # Firestore Errors (5xxx)
    FIRESTORE_ERROR = "FIRESTORE_ERROR"
    FIRESTORE_WRITE_FAILED = "FIRESTORE_WRITE_FAILED"

    # Internal Errors (9xxx)
    ALLOCATION_FAILED = "ALLOCATION_FAILED"


class LabourSchedulerError(Exception):
    """Base exception for labour scheduler errors.

    Provides structured error information for API responses.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize LabourSchedulerError.

        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"LabourSchedulerError(code={self.code!r}, message={self.message!r})"


class ValidationError(LabourSchedulerError):
    """Validation-specific error."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )
        self.field = field


class PermissionDeniedError(LabourSchedulerError):
    """Raised when a role may not edit labour schedules."""

    def __init__(self, role: Optional[str], action: str = "edit_labour"):
        super().__init__(
            code=ErrorCode.PERMISSION_DENIED,
            message="You do not have permission to save labour schedules",
            details={"role": role, "action": action}
        )
        self.role = role


class JobNotFoundError(LabourSchedulerError):
    """Raised when a job document does not exist."""

    def __init__(self, job_id: str):
        super().__init__(
            code=ErrorCode.JOB_NOT_FOUND,
            message=f"Job not found: {job_id}",
            details={"job_id": job_id}
        )
        self.job_id = job_id
