"""Pytest configuration and shared fixtures for labour scheduler tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock
from typing import Dict, Any


# ============================================================================
# Ensure `labour_scheduler` is importable as a top-level package
# ============================================================================
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# Firebase Mocks
# ============================================================================


def make_snapshot(doc_id: str, data: Dict[str, Any], exists: bool = True) -> MagicMock:
    """Firestore document snapshot stand-in."""
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = exists
    snapshot.to_dict.return_value = data
    return snapshot


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def mock_firestore_client():
    """Mock Firestore client.

    Chain: client.collection().document().collection().document()
    Batches: client.batch() returns the same batch mock each call.
    """
    client = MagicMock()

    collection_mock = MagicMock()
    document_mock = MagicMock()
    client.collection.return_value = collection_mock
    collection_mock.document.return_value = document_mock

    document_mock.get = AsyncMock(return_value=make_snapshot(
        "job-1", {"reference": "J-0001", "start_date": "2024-01-01", "end_date": "2024-01-05"}
    ))

    # Subcollections (labourAllocations, jobItems, generatedTasks)
    subcollection_mock = MagicMock()
    document_mock.collection.return_value = subcollection_mock
    subcollection_mock.stream.return_value = []
    subcollection_mock.document.side_effect = lambda doc_id: MagicMock(id=doc_id)

    batch_mock = MagicMock()
    batch_mock.commit = AsyncMock()
    client.batch.return_value = batch_mock

    return client


@pytest.fixture
def schedule_store(mock_firestore_client):
    """ScheduleStore with mocked client."""
    from labour_scheduler.services.schedule_store import ScheduleStore

    return ScheduleStore(db=mock_firestore_client)


@pytest.fixture
def mock_store():
    """ScheduleStore stand-in with async methods."""
    store = MagicMock()
    store.get_job = AsyncMock(return_value={
        "id": "job-1",
        "reference": "J-0001",
        "client_name": "Acme Ltd",
        "title": "Floor 3 fit-out",
        "status": "scheduled",
        "start_date": "2024-01-01",
        "end_date": "2024-01-05",
    })
    # 22 desks at 2h each = 44h
    store.list_job_items = AsyncMock(return_value=[
        {"id": "item-1", "product_code": "DESK-1600", "label": "Desk 1600", "qty": 22, "hours_per_unit": 2},
    ])
    store.list_generated_tasks = AsyncMock(return_value=[])
    store.load_allocations = AsyncMock(return_value={})
    store.get_latest_quote = AsyncMock(return_value=None)
    store.save_allocations = AsyncMock(return_value=0)
    return store


@pytest.fixture
def calculator():
    """Calculator with default capacity constants."""
    from labour_scheduler.models.allocation import CapacityConfig
    from labour_scheduler.services.allocation_calculator import AllocationCalculator
    from labour_scheduler.services.quote_estimator import QuoteEstimatorService

    return AllocationCalculator(
        capacity=CapacityConfig(),
        quote_estimator=QuoteEstimatorService(hours_per_estimated_day=48),
    )


@pytest.fixture
def labour_service(mock_store, calculator):
    """LabourScheduleService wired to the mock store."""
    from labour_scheduler.services.labour_schedule_service import LabourScheduleService

    return LabourScheduleService(store=mock_store, calculator=calculator)
