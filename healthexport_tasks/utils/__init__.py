"""
Utility modules for Health Export Tasks.
"""

from .logging import setup_logging, setup_structlog, get_task_logger

__all__ = ["setup_logging", "setup_structlog", "get_task_logger"]
