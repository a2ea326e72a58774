"""Infrastructure adapters for the device service.

These adapters implement the port interfaces defined in the domain layer,
connecting the application to PostgreSQL, a process-local store and the
patient service.
"""

from .memory_device_repo import InMemoryDeviceRepository
from .patient_directory import PatientDirectoryAdapter
from .postgres_device_repo import PostgresDeviceRepository

__all__ = [
    "PostgresDeviceRepository",
    "InMemoryDeviceRepository",
    "PatientDirectoryAdapter",
]
