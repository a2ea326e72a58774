"""FastAPI dependency injection for the device API.

This module provides dependency injection functions that create
and return adapter instances for use in API endpoints.

Lifecycle Management:
- Device store: PostgreSQL pool or in-memory store, created at startup
- Patient client: aiohttp session opened at startup, shared across requests
- Both are closed at application shutdown

Configuration:
- DEVICE_STORE: "postgres" (default) or "memory"
- DATABASE_URL, DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE: PostgreSQL settings
- PATIENT_SERVICE_URL, PATIENT_SERVICE_TIMEOUT: patient service settings
- ENRICHMENT_CONCURRENCY: max parallel patient lookups for list results
"""

import logging
import os
from typing import Optional

import asyncpg
from fastapi import Depends

from ...api.client import ServiceClient
from ...api.database import close_pool, create_pool
from ...api.exceptions import ConfigurationError
from ...api.patients import PatientAPI
from ..adapters import (
    InMemoryDeviceRepository,
    PatientDirectoryAdapter,
    PostgresDeviceRepository,
)
from ..domain.ports import IDeviceRepository, IPatientDirectory
from ..use_cases import DeviceLifecycleService

logger = logging.getLogger(__name__)

# ========== Global State ==========

# Global connection pool (postgres store only)
_db_pool: Optional[asyncpg.Pool] = None

# Device store (initialized on startup)
_device_repo: Optional[IDeviceRepository] = None

# Patient service client and adapter (initialized on startup)
_patient_client: Optional[ServiceClient] = None
_patient_directory: Optional[IPatientDirectory] = None


async def init_device_store():
    """Initialize the device store selected by DEVICE_STORE.

    Should be called on application startup.

    Raises:
        ConfigurationError: If the store kind is unknown or DATABASE_URL is missing
    """
    global _db_pool, _device_repo

    store = os.getenv("DEVICE_STORE", "postgres").strip().lower()

    if store == "memory":
        _device_repo = InMemoryDeviceRepository()
        logger.info("Using in-memory device store")
        return

    if store != "postgres":
        raise ConfigurationError(
            f"Unknown DEVICE_STORE '{store}'. Use 'postgres' or 'memory'.",
        )

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise ConfigurationError(
            "DATABASE_URL environment variable is required",
            missing_keys=["DATABASE_URL"],
        )

    _db_pool = await create_pool(
        database_url,
        min_size=int(os.getenv("DB_POOL_MIN_SIZE", "2")),
        max_size=int(os.getenv("DB_POOL_MAX_SIZE", "10")),
    )
    repo = PostgresDeviceRepository(_db_pool)
    await repo.ensure_schema()
    _device_repo = repo


async def init_patient_client():
    """Open the patient service session.

    Should be called on application startup after init_device_store().
    """
    global _patient_client, _patient_directory

    client = ServiceClient()
    await client.__aenter__()
    _patient_client = client
    _patient_directory = PatientDirectoryAdapter(PatientAPI(client))

    logger.info(f"Patient client initialized for {client.base_url}")


async def close_device_store():
    """Close the device store.

    Should be called on application shutdown.
    """
    global _db_pool, _device_repo

    if _db_pool:
        await close_pool(_db_pool)
        _db_pool = None
    _device_repo = None


async def close_patient_client():
    """Close the patient client.

    Should be called on application shutdown.
    """
    global _patient_client, _patient_directory

    if _patient_client:
        await _patient_client.__aexit__(None, None, None)
        _patient_client = None
    _patient_directory = None

    logger.info("Patient client closed")


def get_db_pool() -> Optional[asyncpg.Pool]:
    """Get the database connection pool, None for the in-memory store."""
    return _db_pool


# ========== Dependency Functions ==========


def get_device_repo() -> IDeviceRepository:
    """Get the device store."""
    if _device_repo is None:
        raise RuntimeError("Device store not initialized. Call init_device_store() first.")
    return _device_repo


def get_patient_directory() -> Optional[IPatientDirectory]:
    """Get the patient directory, None if the client failed to start."""
    return _patient_directory


def get_device_service(
    device_repo: IDeviceRepository = Depends(get_device_repo),
    patient_directory: Optional[IPatientDirectory] = Depends(get_patient_directory),
) -> DeviceLifecycleService:
    """Get a device lifecycle service bound to the shared store and client."""
    return DeviceLifecycleService(
        device_repo,
        patient_directory,
        enrichment_concurrency=int(
            os.getenv(
                "ENRICHMENT_CONCURRENCY",
                str(DeviceLifecycleService.DEFAULT_ENRICHMENT_CONCURRENCY),
            )
        ),
    )
