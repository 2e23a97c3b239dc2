"""
Celery application setup for Health Export Tasks.

This module creates and configures the Celery application instance that runs
the weekly export. It includes configuration loading, the beat schedule, and
signal handlers for monitoring.
"""

import logging
from celery import Celery
from celery.signals import (
    task_prerun,
    task_postrun,
    task_failure,
    task_retry,
    worker_ready,
    worker_shutdown,
)

from healthexport_tasks.config import get_celery_config, get_settings
from healthexport_tasks.utils.logging import setup_logging


logger = logging.getLogger(__name__)


def create_celery_app() -> Celery:
    """
    Create and configure Celery application.

    Returns:
        Configured Celery application instance
    """
    config = get_celery_config()
    settings = get_settings()

    app = Celery("healthexport_tasks")
    app.config_from_object(config)
    app.autodiscover_tasks(["healthexport_tasks.tasks.export"])

    configure_logging(settings.debug)

    _register_signal_handlers()

    logger.info("✅ Celery application initialized successfully")
    return app


def configure_logging(debug: bool = False) -> None:
    """
    Apply LOG_FORMAT, LOG_FILE and the worker log level from settings.

    Args:
        debug: Log at DEBUG regardless of WORKER_LOG_LEVEL
    """
    settings = get_settings()
    setup_logging(
        level="DEBUG" if debug else settings.celery.worker_log_level,
        format_type=settings.log_format,
        enable_structlog=True,
        log_file=settings.log_file,
    )


def _register_signal_handlers() -> None:
    """Register Celery signal handlers for monitoring and logging."""

    @task_prerun.connect
    def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **kwds):
        logger.info(f"🚀 Task {task.name} [{task_id}] started")
        logger.debug(f"Task args: {args}, kwargs: {kwargs}")

    @task_postrun.connect
    def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None,
                             retval=None, state=None, **kwds):
        logger.info(f"✅ Task {task.name} [{task_id}] completed with state: {state}")

    @task_retry.connect
    def task_retry_handler(sender=None, request=None, reason=None, **kwds):
        logger.warning(f"🔄 Task {sender.name} [{request.id}] retrying: {reason}")

    @task_failure.connect
    def task_failure_handler(sender=None, task_id=None, exception=None, traceback=None, einfo=None, **kwds):
        logger.error(f"❌ Task {sender.name} [{task_id}] failed: {exception}")
        logger.debug(f"Traceback: {traceback}")

    @worker_ready.connect
    def worker_ready_handler(sender=None, **kwds):
        logger.info(f"🔄 Worker {sender.hostname} is ready")

    @worker_shutdown.connect
    def worker_shutdown_handler(sender=None, **kwds):
        logger.info(f"🛑 Worker {sender.hostname} is shutting down")


celery_app = create_celery_app()

app = celery_app
