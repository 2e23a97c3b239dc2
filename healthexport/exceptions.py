"""
Custom exception classes for the health export pipeline.

This module defines the exception hierarchy used throughout the exporter.
Only PermissionDeniedError, ConfigurationError and DeliveryError terminate a
run; FetchError is absorbed per record kind.
"""

from typing import Optional, Any, Dict


class HealthExportError(Exception):
    """
    Base exception for all health export errors.

    All custom exceptions in this package should inherit from this class.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class PermissionDeniedError(HealthExportError):
    """
    Raised when the record store grants no read capability at all.

    Terminal: the run aborts before any record is fetched and no
    notification is shown.
    """
    pass


class ConfigurationError(HealthExportError):
    """
    Raised when there are configuration-related errors.

    Examples:
    - Export destination not set
    - Unknown timezone name
    - Invalid configuration values
    """
    pass


class FetchError(HealthExportError):
    """
    Raised when reading one record kind from the store fails.

    Never terminal: the orchestrator logs it and skips that kind.
    """

    def __init__(self, kind: str, cause: Exception):
        super().__init__(f"Failed to read {kind}: {cause}", {"kind": kind})
        self.kind = kind
        self.cause = cause


class DeliveryError(HealthExportError):
    """
    Raised when the payload POST fails.

    Examples:
    - Network connectivity issues
    - TLS or DNS failures
    - Non-success HTTP status from the destination
    """

    def __init__(self, message: str, status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.status_code = status_code


class StoreError(HealthExportError):
    """
    Raised by record store implementations.

    Examples:
    - Elasticsearch connection errors
    - Query execution errors
    """
    pass


class RecordDecodeError(StoreError):
    """Raised when a store document cannot be decoded into its record type."""
    pass


# Convenience functions for creating common exceptions

def configuration_error(message: str, **details) -> ConfigurationError:
    """Create a configuration error with details."""
    return ConfigurationError(message, details)


def delivery_error(message: str, status_code: Optional[int] = None, **details) -> DeliveryError:
    """Create a delivery error with details."""
    return DeliveryError(message, status_code, details)


def store_error(message: str, **details) -> StoreError:
    """Create a store error with details."""
    return StoreError(message, details)
