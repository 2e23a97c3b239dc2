"""
Custom exception classes for Health Export Tasks.

Errors raised by the task layer itself. Export pipeline errors live in
``healthexport.exceptions`` and are reused here.
"""

from typing import Optional, Any, Dict

from healthexport.exceptions import HealthExportError


class ExportTaskError(HealthExportError):
    """
    Raised when the export task gives up.

    Examples:
    - Delivery still failing after the configured Celery retries
    - Record store could not be created
    """

    def __init__(self, message: str, result: Optional[Dict[str, Any]] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.result = result or {}


def export_task_error(message: str, result: Optional[Dict[str, Any]] = None, **details) -> ExportTaskError:
    """Create an export task error with details."""
    return ExportTaskError(message, result, details)
