"""
Pytest configuration and fixtures for Health Export tests.

This module provides shared fixtures: a reference clock, record factories,
an in-memory record store, and recording transport and notifier doubles.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set
from unittest.mock import Mock

import pytest
from dotenv import load_dotenv

from healthexport.catalog import capability_for
from healthexport.exceptions import DeliveryError, StoreError
from healthexport.notifications import Notifier
from healthexport.orchestrator import ExportContext, StaticDestination
from healthexport.records import Metadata, RecordKind, StepsRecord, HeartRateRecord, HeartRateSample
from healthexport.store.interface import RecordStore
from healthexport.transport import PayloadTransport
from healthexport.window import TimeWindow

# Load environment variables from .env file at module level
env_file_path = Path(__file__).parent.parent / '.env'
if env_file_path.exists():
    load_dotenv(env_file_path)


EXPORT_ENV_VARS = [
    "EXPORT_DESTINATION", "EXPORT_TIMEZONE", "EXPORT_HEADERS", "EXPORT_TIMEOUT",
    "EXPORT_FETCH_CONCURRENCY", "EXPORT_DELIVERY_MAX_RETRIES",
    "EXPORT_DELIVERY_RETRY_DELAY", "EXPORT_SCHEDULE_DAY_OF_WEEK",
    "EXPORT_SCHEDULE_HOUR", "EXPORT_SCHEDULE_MINUTE",
    "HEALTH_GRANTED_PERMISSIONS", "HEALTH_INDEX_PREFIX", "HEALTH_PAGE_SIZE",
    "LOG_FORMAT", "LOG_FILE", "WORKER_LOG_LEVEL",
]


class FakeRecordStore(RecordStore):
    """In-memory store; records are returned unfiltered for their kind."""

    def __init__(self, granted: Iterable[str] = (),
                 records: Optional[Dict[RecordKind, List]] = None,
                 failing: Iterable[RecordKind] = ()):
        self.granted = set(granted)
        self.records = records or {}
        self.failing = set(failing)
        self.queries: List[RecordKind] = []
        self.windows: List[TimeWindow] = []
        self.closed = False

    def list_granted_capabilities(self) -> Set[str]:
        return set(self.granted)

    def query(self, kind: RecordKind, window: TimeWindow) -> List:
        self.queries.append(kind)
        self.windows.append(window)
        if kind in self.failing:
            raise StoreError(f"index for {kind.value} unavailable")
        return list(self.records.get(kind, []))

    def close(self) -> None:
        self.closed = True


class RecordingTransport(PayloadTransport):
    """Keeps every delivered body; optionally fails with a DeliveryError."""

    def __init__(self, error: Optional[DeliveryError] = None):
        self.error = error
        self.deliveries: List[tuple] = []

    def deliver(self, destination: str, body: str) -> None:
        self.deliveries.append((destination, body))
        if self.error is not None:
            raise self.error


@pytest.fixture
def clean_env(monkeypatch):
    """Remove export configuration from the environment."""
    for name in EXPORT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def wednesday():
    """Reference instant: Wednesday 2024-03-13 12:00 UTC."""
    return datetime(2024, 3, 13, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def last_week(wednesday):
    """Window resolved from ``wednesday`` in UTC."""
    return TimeWindow(
        start=datetime(2024, 3, 4, tzinfo=timezone.utc),
        end=datetime(2024, 3, 11, tzinfo=timezone.utc),
    )


@pytest.fixture
def make_metadata():
    def _make(record_id: str = "rec-1", origin: str = "com.example.tracker") -> Metadata:
        return Metadata(
            id=record_id,
            data_origin=origin,
            last_modified_time=datetime(2024, 3, 10, 8, 0, tzinfo=timezone.utc),
            recording_method=1,
        )
    return _make


@pytest.fixture
def make_steps(make_metadata):
    """Factory for step records spread across last week."""
    def _make(count: int = 3) -> List[StepsRecord]:
        start = datetime(2024, 3, 5, 9, 0, tzinfo=timezone.utc)
        return [
            StepsRecord(
                metadata=make_metadata(f"steps-{i}"),
                start_time=start + timedelta(days=i),
                end_time=start + timedelta(days=i, hours=1),
                count=1000 * (i + 1),
            )
            for i in range(count)
        ]
    return _make


@pytest.fixture
def heart_rate_record(make_metadata):
    start = datetime(2024, 3, 6, 7, 0, tzinfo=timezone.utc)
    return HeartRateRecord(
        metadata=make_metadata("hr-1"),
        start_time=start,
        end_time=start + timedelta(minutes=2),
        samples=(
            HeartRateSample(time=start, beats_per_minute=61),
            HeartRateSample(time=start + timedelta(minutes=1), beats_per_minute=64),
        ),
    )


@pytest.fixture
def steps_permission():
    return capability_for(RecordKind.STEPS)


@pytest.fixture
def mock_notifier():
    """Notifier double recording every call."""
    return Mock(spec=Notifier)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def make_context(transport, mock_notifier):
    """Build an ExportContext around a store, with test doubles elsewhere."""
    def _make(store: RecordStore, destination: Optional[str] = "export.example.com/ingest",
              **overrides) -> ExportContext:
        values = {
            "store": store,
            "transport": transport,
            "destination": StaticDestination(destination),
            "notifier": mock_notifier,
            "timezone": timezone.utc,
        }
        values.update(overrides)
        return ExportContext(**values)
    return _make


@pytest.fixture
def store_document():
    """Snake_case store document for a weight record."""
    return {
        "type": "WeightRecord",
        "metadata": {
            "id": "w-1",
            "data_origin": "com.example.scale",
            "last_modified_time": "2024-03-07T06:30:00Z",
            "recording_method": 2,
        },
        "time": "2024-03-07T06:29:00Z",
        "weight": {"value": 72500, "unit": "grams"},
    }


@pytest.fixture
def env_overrides(clean_env):
    """Set export variables for the duration of a test."""
    def _set(**values):
        for name, value in values.items():
            clean_env.setenv(name, value)
    return _set


@pytest.fixture
def make_store():
    """Factory for in-memory record stores."""
    return FakeRecordStore


@pytest.fixture
def failing_transport():
    """Factory for transports that reject every delivery."""
    def _make(message: str = "HTTP 503: upstream unavailable", status_code: Optional[int] = 503):
        return RecordingTransport(DeliveryError(message, status_code=status_code))
    return _make


@pytest.fixture
def make_transport():
    """Factory for recording transports."""
    return RecordingTransport
