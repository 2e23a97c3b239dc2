"""
Weekly health export task.

Runs one export of last week's records: store → normalize → POST. Delivery
failures are retried by Celery when EXPORT_DELIVERY_MAX_RETRIES allows it;
every retry reuses the original reference instant so the window never moves.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from healthexport import (
    ElasticsearchRecordStore, HttpTransport, ExportContext, ExportResult,
    RunState, Notifier, PayloadTransport, run_export,
)
from healthexport.orchestrator import DestinationSource
from healthexport.exceptions import ConfigurationError, DeliveryError, StoreError
from healthexport.window import format_instant, parse_instant

from ..celery_app import celery_app
from ..config import ExportSettings, StoreSettings, get_export_settings, get_store_settings
from ..exceptions import export_task_error
from ..utils.logging import get_task_logger

logger = logging.getLogger(__name__)

# Task configuration
TASK_CONFIG = {
    "export_last_week": {
        "time_limit": 900,  # 15 minutes
        "soft_time_limit": 840,
    }
}


class TaskStateNotifier(Notifier):
    """Reports export status through the Celery result backend"""

    def __init__(self, task):
        self.task = task

    def _update(self, meta: Dict[str, Any]) -> None:
        # No backend state outside a worker
        if not getattr(self.task.request, 'id', None):
            return
        self.task.update_state(state='PROGRESS', meta=meta)

    def show_in_progress(self) -> None:
        self._update({'stage': 'exporting'})

    def show_failure(self, message: str) -> None:
        self._update({'stage': 'failed', 'error': message})

    def clear(self) -> None:
        self._update({'stage': 'delivered'})


def build_context(export_settings: ExportSettings, store_settings: StoreSettings,
                  notifier: Optional[Notifier] = None,
                  transport: Optional[PayloadTransport] = None,
                  destination: Optional[DestinationSource] = None) -> ExportContext:
    """
    Wire the Elasticsearch store and HTTP transport from configuration.

    Args:
        export_settings: Destination, timezone, headers and concurrency
        store_settings: Elasticsearch connection and granted permissions
        notifier: Status surface (defaults to none)
        transport: Overrides the configured HTTP transport
        destination: Overrides the configured destination

    Raises:
        ConfigurationError: If the configured timezone is unknown
        StoreError: If the Elasticsearch client cannot be created
    """
    tz = export_settings.get_timezone()
    store = ElasticsearchRecordStore.from_config(store_settings.to_dict())
    if transport is None:
        transport = HttpTransport(headers=export_settings.headers, timeout=export_settings.timeout)

    context = ExportContext(
        store=store,
        transport=transport,
        destination=destination or export_settings,
        timezone=tz,
        max_workers=export_settings.fetch_concurrency,
    )
    if notifier is not None:
        context.notifier = notifier
    return context


def close_context(context: ExportContext) -> None:
    for resource in (context.transport, context.store):
        try:
            resource.close()
        except Exception as e:
            logger.warning(f"Failed to close {type(resource).__name__}: {e}")


@celery_app.task(bind=True, **TASK_CONFIG["export_last_week"])
def export_last_week(self, now: Optional[str] = None) -> Dict[str, Any]:
    """
    Export last week's health records to the configured destination.

    Args:
        now: Reference instant as ISO-8601 (defaults to the current time)

    Returns:
        Export summary: status, error, skipped kinds, window and totals

    Raises:
        ExportTaskError: Delivery failed after all retries, or the store is unavailable
    """
    export_settings = get_export_settings()
    reference = parse_instant(now) if now else datetime.now(timezone.utc)
    log = get_task_logger(self.name, self.request.id, reference=format_instant(reference))

    store_settings = get_store_settings()

    try:
        context = build_context(export_settings, store_settings, TaskStateNotifier(self))
    except ConfigurationError as e:
        log.warning("Export not configured", error=str(e))
        return ExportResult(RunState.FAILED, error=e).to_dict()
    except StoreError as e:
        log.error("Record store unavailable", error=str(e))
        raise export_task_error(f"Record store unavailable: {e}", hosts=store_settings.hosts) from e

    try:
        result = run_export(context, reference)
    finally:
        close_context(context)

    summary = result.to_dict()

    if isinstance(result.error, DeliveryError):
        retries = self.request.retries or 0
        if retries < export_settings.delivery_max_retries:
            log.warning("Export delivery failed, retrying",
                        error=str(result.error), attempt=retries + 1,
                        countdown=export_settings.delivery_retry_delay)
            raise self.retry(
                exc=result.error,
                kwargs={'now': format_instant(reference)},
                countdown=export_settings.delivery_retry_delay,
                max_retries=export_settings.delivery_max_retries,
            )
        log.error("Export delivery failed", error=str(result.error), attempts=retries + 1)
        raise export_task_error(f"Export delivery failed: {result.error}", summary, attempts=retries + 1)

    if result.succeeded:
        log.info("Export delivered",
                 record_types=len(summary['record_types']),
                 total_records=summary['total_records'],
                 skipped_kinds=summary['skipped_kinds'])
    else:
        log.info("Export not run", error=summary['error'], error_type=summary['error_type'])

    return summary
