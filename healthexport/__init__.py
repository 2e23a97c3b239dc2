#!/usr/bin/env python3
"""
Health Export - weekly export of health records to an HTTP endpoint
Catalog, time window, record normalization and export orchestration
"""

from .catalog import RECORD_KINDS, capability_for, all_capabilities
from .exceptions import (
    HealthExportError, PermissionDeniedError, ConfigurationError,
    FetchError, DeliveryError, StoreError, RecordDecodeError,
)
from .normalizer import normalize
from .notifications import Notifier, LoggingNotifier, NullNotifier
from .orchestrator import (
    ExportContext, ExportPayload, ExportResult, RunState, StaticDestination,
    run_export, build_payload, serialize_payload,
)
from .records import RecordKind, Metadata, decode_record
from .store import RecordStore, ElasticsearchRecordStore
from .transport import PayloadTransport, HttpTransport
from .window import TimeWindow, resolve_window

__version__ = "0.1.0"

__all__ = [
    # Catalog and model
    'RECORD_KINDS', 'capability_for', 'all_capabilities',
    'RecordKind', 'Metadata', 'decode_record',
    'TimeWindow', 'resolve_window',
    'normalize',

    # Errors
    'HealthExportError', 'PermissionDeniedError', 'ConfigurationError',
    'FetchError', 'DeliveryError', 'StoreError', 'RecordDecodeError',

    # Collaborators
    'RecordStore', 'ElasticsearchRecordStore',
    'PayloadTransport', 'HttpTransport',
    'Notifier', 'LoggingNotifier', 'NullNotifier',

    # Orchestration
    'ExportContext', 'ExportPayload', 'ExportResult', 'RunState',
    'StaticDestination', 'run_export', 'build_payload', 'serialize_payload',
]
