"""Domain entities for insulin pump devices.

These are pure domain objects with no infrastructure dependencies.
They represent the device record, the create/update payload and the
read-only patient summary attached to outgoing device views.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional


class DeviceStatus(str, Enum):
    """Operational status of a pump.

    Any status may move to any other; entering MAINTENANCE stamps the
    maintenance date.
    """

    ACTIVE = "ACTIVE"  # In normal use
    INACTIVE = "INACTIVE"  # Not in use
    MAINTENANCE = "MAINTENANCE"  # Undergoing service

    @classmethod
    def parse(cls, value: Any) -> "DeviceStatus":
        """Convert a raw value into a DeviceStatus (exact, case-sensitive).

        Raises:
            ValueError: If the value is not a member name
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValueError(f"Invalid status '{value}'. Allowed: {allowed}")


@dataclass
class FieldError:
    """A validation error for one field of a device spec.

    field uses the request body name (e.g. "serialNo").
    """

    field: str
    message: str


@dataclass
class ValidationResult:
    """Result of validating a device spec."""

    errors: list[FieldError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add(self, field_name: str, message: str) -> None:
        self.errors.append(FieldError(field=field_name, message=message))


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


@dataclass
class DeviceSpec:
    """Create/update payload: every device field except the id."""

    serial_no: Optional[str] = None
    model: Optional[str] = None
    manufacturer: Optional[str] = None
    status: Optional[DeviceStatus] = None

    patient_id: Optional[int] = None
    manufacture_date: Optional[date] = None
    last_maintenance_date: Optional[date] = None

    # Pump configuration
    max_basal_rate: Optional[float] = None
    max_bolus_amount: Optional[float] = None
    reservoir_capacity: Optional[int] = None
    firmware_version: Optional[str] = None
    battery_type: Optional[str] = None

    def validate(self) -> ValidationResult:
        """Check required fields and positive limits.

        Returns:
            ValidationResult listing every failing field
        """
        result = ValidationResult()

        if _is_blank(self.serial_no):
            result.add("serialNo", "Serial number is required")
        if _is_blank(self.model):
            result.add("model", "Model is required")
        if _is_blank(self.manufacturer):
            result.add("manufacturer", "Manufacturer is required")

        if self.status is None:
            result.add("status", "Status is required")
        elif not isinstance(self.status, DeviceStatus):
            try:
                self.status = DeviceStatus.parse(self.status)
            except ValueError as e:
                result.add("status", str(e))

        if self.max_basal_rate is not None and self.max_basal_rate <= 0:
            result.add("maxBasalRate", "Max basal rate must be positive")
        if self.max_bolus_amount is not None and self.max_bolus_amount <= 0:
            result.add("maxBolusAmount", "Max bolus amount must be positive")
        if self.reservoir_capacity is not None and self.reservoir_capacity <= 0:
            result.add("reservoirCapacity", "Reservoir capacity must be positive")

        return result


@dataclass
class Device:
    """A persisted pump record.

    id is None until the store assigns one on first save.
    """

    serial_no: str
    model: str
    manufacturer: str
    status: DeviceStatus
    id: Optional[int] = None

    patient_id: Optional[int] = None
    manufacture_date: Optional[date] = None
    last_maintenance_date: Optional[date] = None

    max_basal_rate: Optional[float] = None
    max_bolus_amount: Optional[float] = None
    reservoir_capacity: Optional[int] = None
    firmware_version: Optional[str] = None
    battery_type: Optional[str] = None

    @classmethod
    def from_spec(cls, spec: DeviceSpec) -> "Device":
        """Build an unsaved device from a validated spec."""
        device = cls(
            serial_no=spec.serial_no,
            model=spec.model,
            manufacturer=spec.manufacturer,
            status=DeviceStatus.parse(spec.status),
        )
        device.apply_spec(spec)
        return device

    def apply_spec(self, spec: DeviceSpec) -> None:
        """Overwrite every field except id.

        Optional fields missing from the payload are cleared.
        """
        self.serial_no = spec.serial_no
        self.model = spec.model
        self.manufacturer = spec.manufacturer
        self.status = DeviceStatus.parse(spec.status)
        self.patient_id = spec.patient_id
        self.manufacture_date = spec.manufacture_date
        self.last_maintenance_date = spec.last_maintenance_date
        self.max_basal_rate = spec.max_basal_rate
        self.max_bolus_amount = spec.max_bolus_amount
        self.reservoir_capacity = spec.reservoir_capacity
        self.firmware_version = spec.firmware_version
        self.battery_type = spec.battery_type

    def change_status(self, status: DeviceStatus, today: date) -> None:
        self.status = status
        if status == DeviceStatus.MAINTENANCE:
            self.last_maintenance_date = today

    @property
    def is_assigned(self) -> bool:
        return self.patient_id is not None


@dataclass
class PatientSummary:
    """Read-only patient data owned by the patient service."""

    id: int
    name: Optional[str] = None
    age: Optional[int] = None
    medical_id: Optional[str] = None
    assigned_device_id: Optional[int] = None
    diabetes_type: Optional[str] = None


@dataclass
class DeviceView:
    """A device as returned to callers, with the patient when enrichment succeeded."""

    device: Device
    patient: Optional[PatientSummary] = None
