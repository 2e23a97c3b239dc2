"""
Configuration management for Health Export Tasks.

This module provides centralized configuration management using environment variables
and default values. Configuration is loaded from environment variables with
fallbacks to sensible defaults for development.
"""

from datetime import tzinfo
from pathlib import Path
from typing import Dict, Any, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from celery.schedules import crontab
from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from healthexport.exceptions import configuration_error
from healthexport.window import host_timezone

# Load .env file from the project directory
project_root = Path(__file__).parent.parent
env_file = project_root / ".env"
load_dotenv(env_file)

# Also try to load from the current working directory
load_dotenv()


class RabbitMQConfig(BaseSettings):
    """RabbitMQ connection configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    host: str = Field(default="localhost", alias="RABBITMQ_HOST")
    port: int = Field(default=5672, alias="RABBITMQ_PORT")
    username: str = Field(default="admin", alias="RABBITMQ_DEFAULT_USER")
    password: str = Field(default="ChangeMe", alias="RABBITMQ_DEFAULT_PASS")
    vhost: str = Field(default="/", alias="RABBITMQ_VHOST")

    @property
    def broker_url(self) -> str:
        """Get the complete broker URL for Celery."""
        # Root vhost must not produce a double slash
        vhost_part = self.vhost if self.vhost != '/' else ''
        return f"pyamqp://{self.username}:{self.password}@{self.host}:{self.port}/{vhost_part}"

    @property
    def result_backend(self) -> str:
        """Get the result backend URL."""
        return "rpc://"


class StoreSettings(BaseSettings):
    """Elasticsearch record store configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    host: str = Field(default="http://localhost:9200", alias="ELASTICSEARCH_HOST")
    username: str = Field(default="elastic", alias="ELASTICSEARCH_USER")
    password: str = Field(default="ChangeMe", alias="ELASTIC_PASSWORD")
    timeout: int = Field(default=30, alias="ELASTICSEARCH_TIMEOUT")
    verify_certs: bool = Field(default=False, alias="ELASTICSEARCH_VERIFY_CERTS")
    index_prefix: str = Field(default="health-records", alias="HEALTH_INDEX_PREFIX")
    page_size: int = Field(default=10000, alias="HEALTH_PAGE_SIZE")
    granted_permissions: List[str] = Field(default_factory=list, alias="HEALTH_GRANTED_PERMISSIONS")

    @property
    def hosts(self) -> List[str]:
        """Get hosts as a list for Elasticsearch client."""
        return [self.host]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for ElasticsearchRecordStore.from_config."""
        return {
            'hosts': self.hosts,
            'username': self.username,
            'password': self.password,
            'timeout': self.timeout,
            'verify_certs': self.verify_certs,
            'index_prefix': self.index_prefix,
            'page_size': self.page_size,
            'granted_permissions': list(self.granted_permissions),
        }


class ExportSettings(BaseSettings):
    """Export destination, timezone and schedule configuration."""

    model_config = SettingsConfigDict(env_prefix="", env_ignore_empty=True)

    destination: Optional[str] = Field(default=None, alias="EXPORT_DESTINATION")
    timezone: Optional[str] = Field(default=None, alias="EXPORT_TIMEZONE")
    headers: Dict[str, str] = Field(default_factory=dict, alias="EXPORT_HEADERS")
    timeout: float = Field(default=30.0, alias="EXPORT_TIMEOUT")
    fetch_concurrency: int = Field(default=1, alias="EXPORT_FETCH_CONCURRENCY")

    # Delivery retry via Celery; 0 means a single attempt
    delivery_max_retries: int = Field(default=0, alias="EXPORT_DELIVERY_MAX_RETRIES")
    delivery_retry_delay: int = Field(default=300, alias="EXPORT_DELIVERY_RETRY_DELAY")

    # Weekly beat schedule
    schedule_day_of_week: str = Field(default="mon", alias="EXPORT_SCHEDULE_DAY_OF_WEEK")
    schedule_hour: int = Field(default=3, alias="EXPORT_SCHEDULE_HOUR")
    schedule_minute: int = Field(default=0, alias="EXPORT_SCHEDULE_MINUTE")

    @field_validator("fetch_concurrency")
    @classmethod
    def validate_fetch_concurrency(cls, v):
        """Fetch concurrency must be at least one worker."""
        if v < 1:
            raise ValueError("EXPORT_FETCH_CONCURRENCY must be >= 1")
        return v

    @field_validator("delivery_max_retries", "delivery_retry_delay")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("Delivery retry settings must be >= 0")
        return v

    def get_destination(self) -> Optional[str]:
        """Configured destination, or None when unset or blank."""
        if self.destination is None or not self.destination.strip():
            return None
        return self.destination.strip()

    def get_timezone(self) -> tzinfo:
        """
        Timezone used to place week boundaries.

        Raises:
            ConfigurationError: If EXPORT_TIMEZONE names an unknown zone
        """
        if not self.timezone:
            return host_timezone()
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise configuration_error(f"Unknown timezone: {self.timezone}", error=str(e))

    def get_schedule(self) -> crontab:
        """Celery crontab for the weekly export."""
        return crontab(
            minute=self.schedule_minute,
            hour=self.schedule_hour,
            day_of_week=self.schedule_day_of_week,
        )


class CeleryConfig(BaseSettings):
    """Celery application configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    task_serializer: str = Field(default="json")
    result_serializer: str = Field(default="json")
    accept_content: List[str] = Field(default=["json"])
    timezone: str = Field(default="UTC", alias="CELERY_TIMEZONE")
    enable_utc: bool = Field(default=True)

    # Task configuration
    task_always_eager: bool = Field(default=False, alias="CELERY_TASK_ALWAYS_EAGER")
    task_eager_propagates: bool = Field(default=True)
    task_acks_late: bool = Field(default=True)
    worker_prefetch_multiplier: int = Field(default=1)

    # Task time limits
    task_soft_time_limit: int = Field(default=300)  # 5 minutes
    task_time_limit: int = Field(default=600)  # 10 minutes

    # Worker configuration
    worker_concurrency: int = Field(default=1, alias="WORKER_CONCURRENCY")
    worker_log_level: str = Field(default="INFO", alias="WORKER_LOG_LEVEL")

    task_routes: Dict[str, Dict[str, str]] = Field(default={
        "healthexport_tasks.tasks.export.*": {"queue": "export"},
    })

    task_annotations: Dict[str, Dict[str, Any]] = Field(default={
        "healthexport_tasks.tasks.export.export_last_week": {
            "time_limit": 900,  # 15 minutes
            "soft_time_limit": 840,
        },
    })


class Settings(BaseSettings):
    """Main application settings combining all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore"
    )

    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # Logging
    log_format: str = Field(default="console", alias="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Log format must be one of the configured formatters."""
        v = v.lower()
        if v not in ("console", "json"):
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")
        return v

    # Configuration sections
    rabbitmq: RabbitMQConfig = Field(default_factory=RabbitMQConfig)
    store: StoreSettings = Field(default_factory=StoreSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    celery: CeleryConfig = Field(default_factory=CeleryConfig)

    def get_celery_config(self) -> Dict[str, Any]:
        """Get complete Celery configuration dictionary."""
        return {
            # Broker settings
            "broker_url": self.rabbitmq.broker_url,
            "result_backend": self.rabbitmq.result_backend,

            # Serialization
            "task_serializer": self.celery.task_serializer,
            "result_serializer": self.celery.result_serializer,
            "accept_content": self.celery.accept_content,

            # Timezone
            "timezone": self.celery.timezone,
            "enable_utc": self.celery.enable_utc,

            # Task configuration
            "task_always_eager": self.celery.task_always_eager,
            "task_eager_propagates": self.celery.task_eager_propagates,
            "task_acks_late": self.celery.task_acks_late,
            "worker_prefetch_multiplier": self.celery.worker_prefetch_multiplier,

            # Time limits
            "task_soft_time_limit": self.celery.task_soft_time_limit,
            "task_time_limit": self.celery.task_time_limit,

            # Task routing
            "task_routes": self.celery.task_routes,
            "task_annotations": self.celery.task_annotations,

            # Weekly export
            "beat_schedule": {
                "weekly-health-export": {
                    "task": "healthexport_tasks.tasks.export.export_last_week",
                    "schedule": self.export.get_schedule(),
                    "options": {"queue": "export"},
                },
            },

            # Result configuration
            "result_expires": 3600,  # 1 hour
            "result_persistent": True,

            # Worker configuration
            "worker_send_task_events": True,
            "task_send_sent_event": True,

            "include": [
                "healthexport_tasks.tasks.export",
            ],
        }


# Global settings instance
settings = Settings()


def get_store_settings() -> StoreSettings:
    """Get record store configuration."""
    return settings.store


def get_export_settings() -> ExportSettings:
    """Get export configuration."""
    return settings.export


def get_celery_config() -> Dict[str, Any]:
    """Get Celery configuration dictionary."""
    return settings.get_celery_config()


def get_settings() -> Settings:
    """Get complete application settings."""
    return settings
