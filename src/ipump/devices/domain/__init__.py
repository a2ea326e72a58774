"""Domain layer for insulin pump devices.

Contains:
- Entities: Core business objects
- Exceptions: Device-level errors
- Ports: Interface definitions for infrastructure adapters
"""

from .entities import (
    Device,
    DeviceSpec,
    DeviceStatus,
    DeviceView,
    FieldError,
    PatientSummary,
    ValidationResult,
)
from .exceptions import (
    DeviceAlreadyExistsError,
    DeviceNotFoundError,
    DeviceValidationError,
)
from .ports import IDeviceRepository, IPatientDirectory

__all__ = [
    # Entities
    "Device",
    "DeviceSpec",
    "DeviceStatus",
    "DeviceView",
    "FieldError",
    "PatientSummary",
    "ValidationResult",
    # Exceptions
    "DeviceNotFoundError",
    "DeviceAlreadyExistsError",
    "DeviceValidationError",
    # Ports
    "IDeviceRepository",
    "IPatientDirectory",
]
