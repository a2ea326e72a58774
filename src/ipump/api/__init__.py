"""Shared infrastructure for the device service.

This package provides the building blocks the devices module is wired
from: the patient service client, database helpers and the exception
hierarchy.

Classes:
    ServiceClient: Generic aiohttp JSON client (typed errors, no retry)
    PatientAPI: Patient service endpoints built on ServiceClient

Exceptions:
    DeviceServiceError: Base exception for all service errors
    ConfigurationError: Missing or invalid configuration
    RemoteCallError: Patient service call failures
    PatientNotFoundError: The patient service has no such patient
    DatabaseError: Database operation failures
    IntegrityError: Constraint violations (e.g. duplicate serial number)
"""
from .client import ServiceClient
from .concurrency import process_concurrent
from .database import (
    check_database_health,
    close_pool,
    create_pool,
    database_connection,
    database_transaction,
)
from .error_sanitizer import ErrorSanitizer, sanitize_error_message
from .exceptions import (
    APIError,
    ConfigurationError,
    ConnectionError,
    ConnectionPoolError,
    DatabaseError,
    DeviceServiceError,
    IntegrityError,
    NetworkError,
    NotFoundError,
    PatientNotFoundError,
    RemoteCallError,
    ServerError,
    TimeoutError,
    TransactionError,
    ValidationError,
)
from .patients import PatientAPI

__all__ = [
    # Clients
    "ServiceClient",
    "PatientAPI",
    # Database
    "create_pool",
    "close_pool",
    "check_database_health",
    "database_connection",
    "database_transaction",
    # Helpers
    "process_concurrent",
    "ErrorSanitizer",
    "sanitize_error_message",
    # Exceptions
    "DeviceServiceError",
    "ConfigurationError",
    "RemoteCallError",
    "APIError",
    "NotFoundError",
    "PatientNotFoundError",
    "ValidationError",
    "ServerError",
    "NetworkError",
    "ConnectionError",
    "TimeoutError",
    "DatabaseError",
    "ConnectionPoolError",
    "TransactionError",
    "IntegrityError",
]
