"""Domain errors for device operations.

Each error maps to one HTTP status at the API boundary (see app.py):
    DeviceNotFoundError       -> 404
    DeviceAlreadyExistsError  -> 409
    DeviceValidationError     -> 400
"""

from typing import Any, Optional

from ...api.exceptions import DeviceServiceError
from .entities import FieldError


class DeviceNotFoundError(DeviceServiceError):
    """No device matches the lookup key.

    Attributes:
        field: Name of the lookup key ("id", "serial number")
        value: The value that was looked up
    """

    def __init__(self, value: Any, field: str = "id", **kwargs):
        super().__init__(
            f"Device not found with {field}: {value}",
            code="DEVICE_NOT_FOUND",
            details={"field": field, "value": value},
            **kwargs,
        )
        self.field = field
        self.value = value


class DeviceAlreadyExistsError(DeviceServiceError):
    """Another device already holds the serial number."""

    def __init__(self, serial_no: str, **kwargs):
        super().__init__(
            f"A device already exists with serial number: {serial_no}",
            code="DEVICE_ALREADY_EXISTS",
            details={"serial_no": serial_no},
            **kwargs,
        )
        self.serial_no = serial_no


class DeviceValidationError(DeviceServiceError):
    """The device spec failed one or more field rules."""

    def __init__(self, errors: list[FieldError], message: Optional[str] = None):
        summary = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(
            message or f"Device validation failed: {summary}",
            code="VALIDATION_ERROR",
        )
        self.errors = errors
