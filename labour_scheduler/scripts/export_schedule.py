"""
Export a job's saved labour schedule from Firestore to JSON.

Writes the raw allocation rows from jobs/{jobId}/labourAllocations together
with the day-by-day allocation map rebuilt from them, so a saved schedule can
be inspected locally (especially with the Firestore emulator).

Usage (Firestore emulator):
  export FIRESTORE_EMULATOR_HOST="127.0.0.1:8081"
  export GCLOUD_PROJECT="labour-scheduler-dev"
  python -m labour_scheduler.scripts.export_schedule --job-id job-123 --out schedule.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import socket
from datetime import datetime, timezone
from typing import Any, Dict


def _check_emulator_reachable() -> None:
    """Fail fast if FIRESTORE_EMULATOR_HOST is set but not reachable.

    firebase-admin will otherwise block on network calls which feels like a hang.
    """
    host = os.environ.get("FIRESTORE_EMULATOR_HOST")
    if not host or ":" not in host:
        return
    h, p = host.rsplit(":", 1)
    try:
        port = int(p)
    except ValueError:
        return

    try:
        with socket.create_connection((h, port), timeout=1.5):
            return
    except OSError as e:
        raise RuntimeError(
            f"FIRESTORE_EMULATOR_HOST is set to '{host}' but it's not reachable. "
            f"Is the Firestore emulator running? Underlying error: {e}"
        )


async def _export(job_id: str) -> Dict[str, Any]:
    from labour_scheduler.models.allocation import serialize_allocations
    from labour_scheduler.services.schedule_store import ScheduleStore, allocations_from_rows

    store = ScheduleStore()
    job = await store.get_job(job_id)
    if job is None:
        return {}

    rows = await store.load_rows(job_id)
    return {
        "job": {k: job.get(k) for k in ("id", "reference", "client_name", "title", "status")},
        "rows": [row.to_firestore() for row in sorted(rows, key=lambda r: r.document_id)],
        "allocations": serialize_allocations(allocations_from_rows(rows)),
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Export jobs/{jobId}/labourAllocations to JSON")
    parser.add_argument("--job-id", required=True, help="Job document ID")
    parser.add_argument("--out", required=False, help="Output file path (defaults to ./schedule-export.json)")
    parser.add_argument(
        "--project-id",
        required=False,
        help="GCP/Firebase project id (if not set, uses GCLOUD_PROJECT / FIREBASE_PROJECT_ID)",
    )
    args = parser.parse_args()

    out_path = args.out or "schedule-export.json"
    project_id = (
        args.project_id
        or os.environ.get("GCLOUD_PROJECT")
        or os.environ.get("FIREBASE_PROJECT_ID")
        or "labour-scheduler-dev"
    )

    # Import firebase_admin lazily so this script can still display help without deps.
    import firebase_admin

    try:
        _check_emulator_reachable()
    except RuntimeError as e:
        print(str(e))
        return 3

    if not firebase_admin._apps:
        # For emulator usage, credentials are not required. Providing projectId helps routing.
        firebase_admin.initialize_app(options={"projectId": project_id})

    data = asyncio.run(_export(args.job_id))
    if not data:
        print(f"Job not found: jobs/{args.job_id}")
        return 2

    export = {
        "jobId": args.job_id,
        "projectId": project_id,
        "exportedAt": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }

    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(export, f, indent=2, sort_keys=True, default=str)

    print(f"Wrote {out_path} ({len(data['rows'])} rows)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
