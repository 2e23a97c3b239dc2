"""
Logging configuration and utilities for Health Export Tasks.

This module provides structured logging configuration with support for console
and JSON output, and structlog loggers bound to Celery task context. All log
output goes to stderr; stdout is left to command output.
"""

import json
import logging
import logging.config
import sys
from datetime import datetime
from typing import Optional

import structlog
from structlog.typing import FilteringBoundLogger


_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'exc_info', 'exc_text',
    'stack_info', 'taskName', 'message', 'asctime',
])


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for log shipping.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        # Extra fields (task_id, kind, ...)
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Colored formatter for console output.
    """

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, '')
        if not color:
            return super().format(record)
        original = record.levelname
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(
    level: str = "INFO",
    format_type: str = "console",
    enable_structlog: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """
    Setup logging configuration for Health Export Tasks.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Output format ('console', 'json')
        enable_structlog: Enable structured logging with structlog
        log_file: Optional log file path
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'console': {
                'class': 'healthexport_tasks.utils.logging.ColoredFormatter',
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
            'json': {
                'class': 'healthexport_tasks.utils.logging.JSONFormatter',
            },
            'file': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': log_level,
                'formatter': format_type,
                'stream': sys.stderr,
            },
        },
        'loggers': {
            'healthexport_tasks': {
                'level': log_level,
                'handlers': ['console'],
                'propagate': False,
            },
            'healthexport': {
                'level': log_level,
                'handlers': ['console'],
                'propagate': False,
            },
            'celery': {
                'level': 'WARNING',
                'handlers': ['console'],
                'propagate': False,
            },
            'celery.app.trace': {
                'level': 'INFO',
                'handlers': ['console'],
                'propagate': False,
            },
            'elastic_transport': {
                'level': 'WARNING',
                'handlers': ['console'],
                'propagate': False,
            },
            'httpx': {
                'level': 'WARNING',
                'handlers': ['console'],
                'propagate': False,
            },
        },
        'root': {
            'level': 'WARNING',
            'handlers': ['console'],
        },
    }

    if log_file:
        config['handlers']['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'level': log_level,
            'formatter': 'file',
            'filename': log_file,
            'maxBytes': 10_000_000,  # 10MB
            'backupCount': 5,
        }

        for logger_config in config['loggers'].values():
            logger_config['handlers'].append('file')
        config['root']['handlers'].append('file')

    logging.config.dictConfig(config)

    if enable_structlog:
        setup_structlog(level, json_output=format_type == "json")


def setup_structlog(level: str = "INFO", json_output: bool = False) -> None:
    """
    Setup structured logging with structlog.

    Args:
        level: Logging level
        json_output: Render one JSON object per line instead of console text
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_task_logger(task_name: str, task_id: Optional[str] = None, **context) -> FilteringBoundLogger:
    """
    Get a structured logger for a specific task.

    Args:
        task_name: Name of the task
        task_id: Task ID (optional)
        **context: Additional context to include in logs

    Returns:
        Structured logger with task context
    """
    logger = structlog.get_logger(task_name)

    if task_id:
        logger = logger.bind(task_id=task_id)

    if context:
        logger = logger.bind(**context)

    return logger
