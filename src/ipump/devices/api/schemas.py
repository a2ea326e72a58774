"""Pydantic schemas for API request/response validation.

JSON bodies use camelCase keys; the models accept either the alias or
the field name on input and serialize by alias.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..domain.entities import DeviceSpec, DeviceStatus, DeviceView, PatientSummary


class DeviceSpecRequest(BaseModel):
    """Create/update body.

    Every field is optional at this layer; required fields and positive
    limits are checked by DeviceSpec.validate() so all problems are
    reported together.
    """

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    serial_no: Optional[str] = Field(default=None, alias="serialNo")
    model: Optional[str] = None
    manufacturer: Optional[str] = None
    status: Optional[DeviceStatus] = None

    patient_id: Optional[int] = Field(default=None, alias="patientId")
    manufacture_date: Optional[date] = Field(default=None, alias="manufactureDate")
    last_maintenance_date: Optional[date] = Field(default=None, alias="lastMaintenanceDate")

    max_basal_rate: Optional[float] = Field(default=None, alias="maxBasalRate")
    max_bolus_amount: Optional[float] = Field(default=None, alias="maxBolusAmount")
    reservoir_capacity: Optional[int] = Field(default=None, alias="reservoirCapacity")
    firmware_version: Optional[str] = Field(default=None, alias="firmwareVersion")
    battery_type: Optional[str] = Field(default=None, alias="batteryType")

    def to_spec(self) -> DeviceSpec:
        return DeviceSpec(
            serial_no=self.serial_no,
            model=self.model,
            manufacturer=self.manufacturer,
            status=self.status,
            patient_id=self.patient_id,
            manufacture_date=self.manufacture_date,
            last_maintenance_date=self.last_maintenance_date,
            max_basal_rate=self.max_basal_rate,
            max_bolus_amount=self.max_bolus_amount,
            reservoir_capacity=self.reservoir_capacity,
            firmware_version=self.firmware_version,
            battery_type=self.battery_type,
        )


class PatientSummaryDTO(BaseModel):
    """Patient attached to a device view."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: Optional[str] = None
    age: Optional[int] = None
    medical_id: Optional[str] = Field(default=None, alias="medicalId")
    diabetes_type: Optional[str] = Field(default=None, alias="diabetesType")

    @classmethod
    def from_summary(cls, patient: PatientSummary) -> "PatientSummaryDTO":
        return cls(
            id=patient.id,
            name=patient.name,
            age=patient.age,
            medical_id=patient.medical_id,
            diabetes_type=patient.diabetes_type,
        )


class PatientResponse(PatientSummaryDTO):
    """Patient as returned by GET /api/devices/{id}/patient."""

    device_id: Optional[int] = Field(default=None, alias="deviceId")

    @classmethod
    def from_summary(cls, patient: PatientSummary) -> "PatientResponse":
        return cls(
            id=patient.id,
            name=patient.name,
            age=patient.age,
            medical_id=patient.medical_id,
            diabetes_type=patient.diabetes_type,
            device_id=patient.assigned_device_id,
        )


class DeviceResponse(BaseModel):
    """Device view body."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    id: int
    serial_no: str = Field(alias="serialNo")
    model: str
    manufacturer: str
    status: str
    manufacture_date: Optional[date] = Field(default=None, alias="manufactureDate")
    last_maintenance_date: Optional[date] = Field(default=None, alias="lastMaintenanceDate")
    max_basal_rate: Optional[float] = Field(default=None, alias="maxBasalRate")
    max_bolus_amount: Optional[float] = Field(default=None, alias="maxBolusAmount")
    reservoir_capacity: Optional[int] = Field(default=None, alias="reservoirCapacity")
    patient: Optional[PatientSummaryDTO] = None

    @classmethod
    def from_view(cls, view: DeviceView) -> "DeviceResponse":
        device = view.device
        return cls(
            id=device.id,
            serial_no=device.serial_no,
            model=device.model,
            manufacturer=device.manufacturer,
            status=DeviceStatus.parse(device.status).value,
            manufacture_date=device.manufacture_date,
            last_maintenance_date=device.last_maintenance_date,
            max_basal_rate=device.max_basal_rate,
            max_bolus_amount=device.max_bolus_amount,
            reservoir_capacity=device.reservoir_capacity,
            patient=PatientSummaryDTO.from_summary(view.patient) if view.patient else None,
        )


class FieldErrorDTO(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Error body shared by every failure response."""

    detail: str
    code: str
    errors: Optional[list[FieldErrorDTO]] = None
