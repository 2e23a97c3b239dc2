"""
Weekly export orchestration.

One run: check permissions → check destination → resolve last week's window
→ fetch and normalize every granted kind → assemble → serialize → POST.
A kind whose query fails is logged and skipped; only permission,
configuration and delivery failures end a run early.
"""
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol, Set, Tuple

from .catalog import RECORD_KINDS, all_capabilities, capability_for
from .exceptions import (ConfigurationError, DeliveryError, FetchError,
                         HealthExportError, PermissionDeniedError, configuration_error)
from .normalizer import NormalizedRecord, normalize_all
from .notifications import Notifier, NullNotifier
from .records import RecordKind
from .store.interface import RecordStore
from .transport import PayloadTransport
from .window import TimeWindow, as_utc, format_instant, resolve_window


logger = logging.getLogger(__name__)


class RunState(Enum):
    INIT = "init"
    CHECKING_PERMISSIONS = "checking_permissions"
    CHECKING_DESTINATION = "checking_destination"
    FETCHING = "fetching"
    ASSEMBLING = "assembling"
    SERIALIZING = "serializing"
    DELIVERING = "delivering"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class DestinationSource(Protocol):
    def get_destination(self) -> Optional[str]:
        ...


@dataclass(frozen=True)
class StaticDestination:
    """Destination fixed at construction time"""

    destination: Optional[str]

    def get_destination(self) -> Optional[str]:
        return self.destination


@dataclass
class ExportContext:
    """Collaborators for one export run"""

    store: RecordStore
    transport: PayloadTransport
    destination: DestinationSource
    notifier: Notifier = field(default_factory=NullNotifier)
    timezone: tzinfo = timezone.utc
    max_workers: int = 1


@dataclass(frozen=True)
class ExportPayload:
    """Assembled export; immutable once built"""

    export_time: datetime
    window: TimeWindow
    data: Mapping[str, Tuple[NormalizedRecord, ...]]

    @property
    def record_types(self) -> List[str]:
        return list(self.data.keys())

    @property
    def total_records(self) -> int:
        return sum(len(records) for records in self.data.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exportTime": format_instant(self.export_time),
            "timeRangeStart": format_instant(self.window.start),
            "timeRangeEnd": format_instant(self.window.end),
            "recordTypes": self.record_types,
            "totalRecords": self.total_records,
            "data": {kind: list(records) for kind, records in self.data.items()},
        }


@dataclass(frozen=True)
class ExportResult:
    """Terminal outcome of one run"""

    state: RunState
    error: Optional[HealthExportError] = None
    payload: Optional[ExportPayload] = None
    skipped_kinds: Tuple[str, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "status": self.state.value,
            "error": str(self.error) if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
            "skipped_kinds": list(self.skipped_kinds),
        }
        if self.payload is not None:
            result.update({
                "time_range_start": format_instant(self.payload.window.start),
                "time_range_end": format_instant(self.payload.window.end),
                "record_types": self.payload.record_types,
                "total_records": self.payload.total_records,
            })
        return result


def build_payload(data: Mapping[str, List[NormalizedRecord]], window: TimeWindow,
                  now: datetime) -> ExportPayload:
    """Assemble a payload, keeping only kinds that produced records"""
    return ExportPayload(
        export_time=as_utc(now),
        window=window,
        data={kind: tuple(records) for kind, records in data.items() if records},
    )


def serialize_payload(payload: ExportPayload) -> str:
    return json.dumps(payload.to_dict(), indent=2, ensure_ascii=False)


def granted_kinds(granted: Set[str]) -> List[RecordKind]:
    """Catalog kinds whose read permission is granted, in catalog order"""
    return [kind for kind in RECORD_KINDS if capability_for(kind) in granted]


def fetch_kind(store: RecordStore, kind: RecordKind, window: TimeWindow) -> List[NormalizedRecord]:
    """
    Read and normalize one kind.

    Raises:
        FetchError: If the store query fails
    """
    try:
        records = store.query(kind, window)
    except Exception as e:
        raise FetchError(kind.value, e) from e
    return normalize_all(records)


class _Run:
    """State for a single export attempt"""

    def __init__(self, context: ExportContext, now: datetime):
        self.context = context
        self.now = as_utc(now)
        self.state = RunState.INIT
        self.skipped: List[str] = []
        self.payload: Optional[ExportPayload] = None

    def transition(self, state: RunState) -> None:
        logger.debug(f"Export state {self.state.value} -> {state.value}")
        self.state = state

    def notify(self, method: str, *args) -> None:
        try:
            getattr(self.context.notifier, method)(*args)
        except Exception as e:
            logger.warning(f"Notifier {method} failed: {e}")

    def check_permissions(self) -> Set[str]:
        self.transition(RunState.CHECKING_PERMISSIONS)
        granted = set(self.context.store.list_granted_capabilities())
        catalog_granted = all_capabilities() & granted
        if not catalog_granted:
            raise PermissionDeniedError("No health record read permission granted")
        logger.debug("✅ Health record permissions granted")
        return granted

    def check_destination(self) -> str:
        self.transition(RunState.CHECKING_DESTINATION)
        destination = self.context.destination.get_destination()
        if destination is None or not destination.strip():
            raise configuration_error("Export destination not set")
        logger.debug("✅ Export destination set")
        return destination.strip()

    def fetch(self, kinds: List[RecordKind], window: TimeWindow) -> Dict[str, List[NormalizedRecord]]:
        self.transition(RunState.FETCHING)
        store = self.context.store
        outcomes: Dict[RecordKind, Any] = {}

        if self.context.max_workers > 1 and len(kinds) > 1:
            with ThreadPoolExecutor(max_workers=self.context.max_workers,
                                    thread_name_prefix="export-fetch") as pool:
                futures = {kind: pool.submit(fetch_kind, store, kind, window) for kind in kinds}
                for kind, future in futures.items():
                    try:
                        outcomes[kind] = future.result()
                    except FetchError as e:
                        outcomes[kind] = e
        else:
            for kind in kinds:
                logger.debug(f"Reading {kind.value}...")
                try:
                    outcomes[kind] = fetch_kind(store, kind, window)
                except FetchError as e:
                    outcomes[kind] = e

        data: Dict[str, List[NormalizedRecord]] = {}
        for kind in kinds:
            outcome = outcomes[kind]
            if isinstance(outcome, FetchError):
                logger.warning(f"⚠️ {outcome}")
                self.skipped.append(kind.value)
            elif outcome:
                data[kind.value] = outcome
                logger.debug(f"✅ {kind.value}: {len(outcome)} records")
            else:
                logger.debug(f"⏭️ {kind.value}: no records")
        return data

    def execute(self) -> ExportResult:
        granted = self.check_permissions()
        destination = self.check_destination()

        self.notify("show_in_progress")

        window = resolve_window(self.now, self.context.timezone)
        logger.info(f"Fetching health data from {format_instant(window.start)} to {format_instant(window.end)}")

        kinds = granted_kinds(granted)
        skipped_permissions = len(RECORD_KINDS) - len(kinds)
        if skipped_permissions:
            logger.debug(f"Skipping {skipped_permissions} record types without permission")

        data = self.fetch(kinds, window)

        self.transition(RunState.ASSEMBLING)
        payload = self.payload = build_payload(data, window, self.now)

        self.transition(RunState.SERIALIZING)
        body = serialize_payload(payload)
        logger.info(f"Total export size: {len(body)} chars, {payload.total_records} records")

        self.transition(RunState.DELIVERING)
        try:
            self.context.transport.deliver(destination, body)
        except DeliveryError as e:
            logger.error(f"❌ Failed to export data: {e}")
            self.notify("show_failure", str(e))
            raise

        self.notify("clear")
        self.transition(RunState.SUCCEEDED)
        return ExportResult(RunState.SUCCEEDED, payload=payload, skipped_kinds=tuple(self.skipped))


def run_export(context: ExportContext, now: Optional[datetime] = None) -> ExportResult:
    """
    Export last week's health records to the configured destination.

    Args:
        context: Store, transport, destination, notifier and timezone for the run
        now: Reference instant for the window and export timestamp (defaults to now)

    Returns:
        ExportResult; terminal errors are reported in ``error`` rather than raised
    """
    run = _Run(context, now or datetime.now(timezone.utc))
    try:
        return run.execute()
    except (PermissionDeniedError, ConfigurationError) as e:
        logger.info(f"Export not ready: {e}")
        run.transition(RunState.FAILED)
        return ExportResult(RunState.FAILED, error=e)
    except DeliveryError as e:
        run.transition(RunState.FAILED)
        return ExportResult(RunState.FAILED, error=e, payload=run.payload,
                            skipped_kinds=tuple(run.skipped))
