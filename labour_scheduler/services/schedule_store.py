"""Firestore persistence for labour schedules.

Stores allocation role rows, and reads the job records the allocator needs.

Layout:
  /jobs/{jobId}
  /jobs/{jobId}/labourAllocations/{workDate}_{role}_{crewMode|none}
  /jobs/{jobId}/jobItems/{itemId}
  /jobs/{jobId}/generatedTasks/{taskId}
  /smartquotes/{quoteId}            (field job_id links a quote to its job)
"""

from typing import Dict, Any, Optional, List, Iterable
import inspect
import structlog

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from labour_scheduler.config.errors import LabourSchedulerError, ErrorCode
from labour_scheduler.models.allocation import (
    AllocationMap,
    AllocationRow,
    CrewMode,
    DayAllocation,
    Role,
)
from labour_scheduler.utils.work_days import format_date, to_date

logger = structlog.get_logger()

# Firestore limit on writes per batch
MAX_BATCH_OPS = 500


def rows_from_allocations(job_id: str, allocations: AllocationMap) -> List[AllocationRow]:
    """Flatten an allocation map into role rows, omitting zero headcounts."""
    rows: List[AllocationRow] = []
    for work_date in sorted(allocations):
        allocation = allocations[work_date]
        day = to_date(work_date)
        if allocation.van > 0:
            rows.append(AllocationRow(
                job_id=job_id, work_date=day, role=Role.INSTALLER,
                crew_mode=CrewMode.VAN, headcount=allocation.van,
            ))
        if allocation.foot > 0:
            rows.append(AllocationRow(
                job_id=job_id, work_date=day, role=Role.INSTALLER,
                crew_mode=CrewMode.FOOT, headcount=allocation.foot,
            ))
        if allocation.supervisor > 0:
            rows.append(AllocationRow(
                job_id=job_id, work_date=day, role=Role.SUPERVISOR,
                crew_mode=None, headcount=allocation.supervisor,
            ))
    return rows


def allocations_from_rows(rows: Iterable[AllocationRow]) -> AllocationMap:
    """Rebuild an allocation map from role rows. Hours are recomputed."""
    crews: Dict[str, Dict[str, int]] = {}
    for row in rows:
        key = format_date(row.work_date)
        day = crews.setdefault(key, {"van": 0, "foot": 0, "supervisor": 0})
        if row.role == Role.INSTALLER and row.crew_mode == CrewMode.VAN:
            day["van"] = row.headcount
        elif row.role == Role.INSTALLER and row.crew_mode == CrewMode.FOOT:
            day["foot"] = row.headcount
        elif row.role == Role.SUPERVISOR:
            day["supervisor"] = row.headcount
    return {key: DayAllocation.for_crew(**crew) for key, crew in crews.items()}


class ScheduleStore:
    """Service for Firestore operations on labour schedules.

    Note: Firebase Admin SDK for Python is synchronous. Methods are
    marked async for interface compatibility but operations are sync.
    """

    COLLECTION_JOBS = "jobs"
    COLLECTION_QUOTES = "smartquotes"
    SUBCOLLECTION_ALLOCATIONS = "labourAllocations"
    SUBCOLLECTION_JOB_ITEMS = "jobItems"
    SUBCOLLECTION_GENERATED_TASKS = "generatedTasks"

    def __init__(self, db=None):
        """Initialize ScheduleStore.

        Args:
            db: Optional Firestore client. If not provided, uses default.
        """
        self._db = db

    @property
    def db(self):
        """Get Firestore client (lazy initialization)."""
        if self._db is None:
            self._db = firestore.client()
        return self._db

    async def _maybe_await(self, result: Any) -> Any:
        """Await result if it is awaitable (supports AsyncMock in unit tests)."""
        if inspect.isawaitable(result):
            return await result
        return result

    def _job_ref(self, job_id: str):
        return self.db.collection(self.COLLECTION_JOBS).document(job_id)

    def _allocations_ref(self, job_id: str):
        return self._job_ref(job_id).collection(self.SUBCOLLECTION_ALLOCATIONS)

    async def _list_subcollection(self, job_id: str, name: str) -> List[Dict[str, Any]]:
        try:
            docs = self._job_ref(job_id).collection(name).stream()
            return [{"id": doc.id, **(doc.to_dict() or {})} for doc in docs]
        except Exception as e:
            logger.error("job_subcollection_list_failed", job_id=job_id, subcollection=name, error=str(e))
            raise LabourSchedulerError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to list {name}: {str(e)}",
                details={"job_id": job_id}
            )

    async def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Fetch job document by ID.

        Returns:
            Job document data or None if not found.

        Raises:
            LabourSchedulerError: If Firestore operation fails.
        """
        try:
            doc = await self._maybe_await(self._job_ref(job_id).get())
            if doc.exists:
                return {"id": doc.id, **(doc.to_dict() or {})}
            return None
        except Exception as e:
            logger.error("firestore_get_failed", job_id=job_id, error=str(e))
            raise LabourSchedulerError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to get job: {str(e)}",
                details={"job_id": job_id}
            )

    async def list_job_items(self, job_id: str) -> List[Dict[str, Any]]:
        return await self._list_subcollection(job_id, self.SUBCOLLECTION_JOB_ITEMS)

    async def list_generated_tasks(self, job_id: str) -> List[Dict[str, Any]]:
        return await self._list_subcollection(job_id, self.SUBCOLLECTION_GENERATED_TASKS)

    async def get_latest_quote(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Most recently created quote linked to the job, or None."""
        try:
            query = (
                self.db
                .collection(self.COLLECTION_QUOTES)
                .where(filter=FieldFilter("job_id", "==", job_id))
                .order_by("created_at", direction=firestore.Query.DESCENDING)
                .limit(1)
            )
            for doc in query.stream():
                return {"id": doc.id, **(doc.to_dict() or {})}
            return None
        except Exception as e:
            logger.error("quote_lookup_failed", job_id=job_id, error=str(e))
            raise LabourSchedulerError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to load quote: {str(e)}",
                details={"job_id": job_id}
            )

    async def load_rows(self, job_id: str) -> List[AllocationRow]:
        """Load the persisted allocation rows for a job."""
        try:
            docs = self._allocations_ref(job_id).stream()
            rows = []
            for doc in docs:
                data = doc.to_dict() or {}
                if (data.get("headcount") or 0) < 1:
                    continue
                rows.append(AllocationRow(
                    job_id=data.get("job_id") or job_id,
                    work_date=data["work_date"],
                    role=data["role"],
                    crew_mode=data.get("crew_mode"),
                    headcount=data["headcount"],
                ))
            return rows
        except Exception as e:
            logger.error("allocations_load_failed", job_id=job_id, error=str(e))
            raise LabourSchedulerError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to load labour allocations: {str(e)}",
                details={"job_id": job_id}
            )

    async def load_allocations(self, job_id: str) -> AllocationMap:
        """Load a job's allocation map (empty when nothing is saved)."""
        return allocations_from_rows(await self.load_rows(job_id))

    async def save_allocations(self, job_id: str, allocations: AllocationMap) -> int:
        """Replace all allocation rows for a job.

        Rows have deterministic document IDs. Every set is queued ahead of
        every delete, and operations are committed in batches of
        MAX_BATCH_OPS, so stale rows are only removed in the same batch as
        the last new rows or a later one. A failure part-way never leaves
        the job without a schedule, but once more than one batch is needed
        it can leave new rows mixed with rows from the previous schedule.

        Returns:
            Number of rows written.

        Raises:
            LabourSchedulerError: If Firestore operation fails.
        """
        rows = rows_from_allocations(job_id, allocations)
        try:
            coll_ref = self._allocations_ref(job_id)
            existing_ids = {doc.id for doc in coll_ref.stream()}
            new_ids = {row.document_id for row in rows}
            stale_ids = sorted(existing_ids - new_ids)

            operations = []
            for row in rows:
                data = row.to_firestore()
                data["updatedAt"] = firestore.SERVER_TIMESTAMP
                operations.append(("set", coll_ref.document(row.document_id), data))
            for doc_id in stale_ids:
                operations.append(("delete", coll_ref.document(doc_id), None))

            batches = 0
            for offset in range(0, len(operations), MAX_BATCH_OPS):
                batch = self.db.batch()
                for op, doc_ref, data in operations[offset:offset + MAX_BATCH_OPS]:
                    if op == "set":
                        batch.set(doc_ref, data)
                    else:
                        batch.delete(doc_ref)
                await self._maybe_await(batch.commit())
                batches += 1

            logger.info(
                "schedule_saved",
                job_id=job_id,
                rows=len(rows),
                deleted=len(stale_ids),
                batches=batches,
            )
            return len(rows)

        except Exception as e:
            logger.error("schedule_save_failed", job_id=job_id, error=str(e))
            raise LabourSchedulerError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to save labour schedule: {str(e)}",
                details={"job_id": job_id}
            )
