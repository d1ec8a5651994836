"""Cloud Function entry points for the labour scheduler.

Provides HTTP endpoints for:
- Running an allocation strategy for a job (nothing is saved)
- Saving a job's labour schedule
- Loading a job with its saved schedule
"""

import asyncio
import json
from typing import Dict, Any
from datetime import datetime, date

import structlog
from firebase_functions import https_fn, options
from firebase_admin import initialize_app

from labour_scheduler.config.settings import settings
from labour_scheduler.config.errors import (
    LabourSchedulerError,
    ErrorCode,
    ValidationError,
    PermissionDeniedError,
)
from labour_scheduler.models.allocation import serialize_allocations
from labour_scheduler.services.labour_schedule_service import LabourScheduleService
from labour_scheduler.utils.schedule_logger import log_allocation_result, log_schedule_saved
from labour_scheduler.validators.labour_validator import (
    parse_allocation_request,
    parse_save_request,
    validate_allocations,
)

# Initialize Firebase Admin SDK
try:
    initialize_app()
except ValueError:
    # Already initialized
    pass

logger = structlog.get_logger()

# Fail at cold start on unusable capacity constants
settings.validate()
logger.debug("labour_functions_initialized", emulator_mode=settings.is_emulator_mode)

# ============================================================================
# Helper Functions
# ============================================================================


def success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """Build success response."""
    return {"success": True, "data": data}


def error_response(code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    """Build error response."""
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {}
        }
    }


def get_request_json(req: https_fn.Request) -> Dict[str, Any]:
    """Extract JSON from request body.

    Args:
        req: HTTP request object.

    Returns:
        Parsed JSON data.

    Raises:
        ValidationError: If JSON is invalid.
    """
    try:
        return req.get_json(force=True) or {}
    except Exception as e:
        raise ValidationError(
            message=f"Invalid JSON in request body: {str(e)}"
        )


def status_for_error(error: LabourSchedulerError) -> int:
    """HTTP status for a domain error."""
    if isinstance(error, ValidationError) or error.code in (
        ErrorCode.VALIDATION_ERROR,
        ErrorCode.MISSING_FIELD,
        ErrorCode.INVALID_FIELD,
        ErrorCode.INVALID_DATE_RANGE,
        ErrorCode.UNKNOWN_STRATEGY,
    ):
        return 400
    if isinstance(error, PermissionDeniedError):
        return 403
    if error.code in (ErrorCode.JOB_NOT_FOUND, ErrorCode.QUOTE_NOT_FOUND):
        return 404
    return 500


# ============================================================================
# Labour Schedule Entry Points
# ============================================================================


@https_fn.on_request(
    timeout_sec=60,
    memory=options.MemoryOption.MB_256,
    region="us-central1"
)
def allocate_labour(req: https_fn.Request) -> https_fn.Response:
    """Run an allocation strategy for a job.

    The result is returned to the caller for review; saving is a
    separate call.

    Request body:
    {
        "jobId": "job-123",
        "strategy": "auto",            // auto | balanced | job_length | quote
        "startDate": "2024-01-01",     // Optional, defaults to the job's start
        "endDate": "2024-01-12",       // Optional, defaults to the job's end
        "desiredDays": 5,              // Required for job_length
        "allocations": {...}           // Optional current map
    }

    Response:
    {
        "success": true,
        "data": {
            "status": "success",
            "allocations": {"2024-01-01": {"van": 2, "foot": 0, ...}},
            "endDate": null,
            "estimatedDays": null,
            "message": null,
            "summary": {...}
        }
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        request = parse_allocation_request(data)

        result = asyncio.run(_allocate_async(request))

        return _json_response(success_response(result))

    except LabourSchedulerError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=status_for_error(e)
        )
    except Exception as e:
        logger.exception("allocate_labour_error", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.ALLOCATION_FAILED,
                f"Failed to allocate labour: {str(e)}"
            ),
            status=500
        )


async def _allocate_async(request) -> Dict[str, Any]:
    """Run the requested strategy and shape the response payload."""
    service = LabourScheduleService()

    job = await service.load_job(request.job_id)
    result = await service.allocate(
        request.job_id,
        request.strategy,
        start_date=request.start_date,
        end_date=request.end_date,
        desired_days=request.desired_days,
        current=request.allocations,
        job=job,
    )
    summary = service.summarize(job, result.allocations)

    log_allocation_result(request.job_id, request.strategy.value, result, summary)
    logger.info(
        "allocate_labour_completed",
        job_id=request.job_id,
        strategy=request.strategy.value,
        status=result.status.value,
        days=len(result.allocations),
    )

    return {
        "status": result.status.value,
        "allocations": serialize_allocations(result.allocations),
        "endDate": result.end_date,
        "estimatedDays": result.estimated_days,
        "message": result.message,
        "summary": summary.model_dump(),
    }


@https_fn.on_request(
    timeout_sec=60,
    memory=options.MemoryOption.MB_256,
    region="us-central1"
)
def save_labour_schedule(req: https_fn.Request) -> https_fn.Response:
    """Replace a job's saved labour schedule.

    Request body:
    {
        "jobId": "job-123",
        "userRole": "manager",
        "allocations": {"2024-01-01": {"van": 1, "foot": 2, "supervisor": 0}}
    }

    Response:
    {
        "success": true,
        "data": {"jobId": "job-123", "rowsWritten": 2, "warnings": []}
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        request = parse_save_request(data)

        result = asyncio.run(_save_async(request))

        return _json_response(success_response(result))

    except LabourSchedulerError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=status_for_error(e)
        )
    except Exception as e:
        logger.exception("save_labour_schedule_error", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.FIRESTORE_WRITE_FAILED,
                f"Failed to save labour schedule: {str(e)}"
            ),
            status=500
        )


async def _save_async(request) -> Dict[str, Any]:
    """Save the schedule and report soft warnings."""
    service = LabourScheduleService()

    warnings = validate_allocations(request.allocations)
    if warnings:
        logger.warning("schedule_save_warnings", job_id=request.job_id, warnings=warnings)

    rows_written = await service.save(request.job_id, request.allocations, request.user_role)
    log_schedule_saved(request.job_id, rows_written, request.user_role)

    return {"jobId": request.job_id, "rowsWritten": rows_written, "warnings": warnings}


@https_fn.on_request(
    timeout_sec=30,
    memory=options.MemoryOption.MB_256,
    region="us-central1"
)
def get_labour_schedule(req: https_fn.Request) -> https_fn.Response:
    """Load a job with its saved schedule.

    Request body:
    {
        "jobId": "job-123"
    }

    Response:
    {
        "success": true,
        "data": {
            "job": {...},
            "allocations": {...},
            "summary": {...},
            "suggestedCrew": {...},
            "estimateCheck": {"is_valid": true, "errors": [], "warnings": []}
        }
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        job_id = data.get("jobId")

        if not job_id:
            return _json_response(
                error_response(
                    ErrorCode.MISSING_FIELD,
                    "Missing jobId in request"
                ),
                status=400
            )

        result = asyncio.run(_get_schedule_async(job_id))

        return _json_response(success_response(result))

    except LabourSchedulerError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=status_for_error(e)
        )
    except Exception as e:
        logger.exception("get_labour_schedule_error", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.FIRESTORE_ERROR,
                f"Failed to load labour schedule: {str(e)}"
            ),
            status=500
        )


async def _get_schedule_async(job_id: str) -> Dict[str, Any]:
    """Load job context and describe it for the calendar."""
    service = LabourScheduleService()

    context = await service.load_context(job_id)
    payload = service.describe(context)
    payload["allocations"] = serialize_allocations(context.allocations)
    return payload


# ============================================================================
# Response Helpers
# ============================================================================

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "3600"
}


def _cors_response() -> https_fn.Response:
    """Return CORS preflight response."""
    return https_fn.Response(
        "",
        status=204,
        headers=CORS_HEADERS
    )


def _json_default(o: Any):
    """JSON serializer for dates and Firestore timestamp types."""
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    if hasattr(o, "isoformat"):
        return o.isoformat()
    if hasattr(o, "value"):
        # Enums
        return o.value
    return str(o)


def _json_response(data: dict, status: int = 200) -> https_fn.Response:
    """Return JSON response with CORS headers."""
    return https_fn.Response(
        json.dumps(data, default=_json_default),
        status=status,
        mimetype="application/json",
        headers=CORS_HEADERS
    )
