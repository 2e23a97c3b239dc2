"""
Health Export Tasks - scheduled delivery of the weekly health record export.

This package provides the Celery layer around the healthexport library:
- Weekly beat schedule
- Export task with delivery retry
- Command-line interface for workers and one-off exports
"""

__version__ = "0.1.0"

from healthexport_tasks.celery_app import celery_app

__all__ = ["celery_app"]
