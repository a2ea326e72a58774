"""Patient service adapter.

This adapter wraps PatientAPI to implement the IPatientDirectory
interface. Errors from the remote call are not caught here; they reach
the service as RemoteCallError subtypes. Payloads that do not parse as a
patient are reported as an APIError with code UNEXPECTED_PAYLOAD.
"""

import logging
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ...api.exceptions import APIError
from ...api.patients import PatientAPI
from ..domain.entities import PatientSummary
from ..domain.ports import IPatientDirectory

logger = logging.getLogger(__name__)


class PatientPayload(BaseModel):
    """Patient record as served by the patient service.

    The service speaks camelCase; snake_case keys are accepted too.
    Unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    name: Optional[str] = None
    age: Optional[int] = None
    medical_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("medicalId", "medical_id"),
    )
    device_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("deviceId", "device_id"),
    )
    diabetes_type: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("diabetesType", "diabetes_type"),
    )

    def to_summary(self) -> PatientSummary:
        return PatientSummary(
            id=self.id,
            name=self.name,
            age=self.age,
            medical_id=self.medical_id,
            assigned_device_id=self.device_id,
            diabetes_type=self.diabetes_type,
        )


class PatientDirectoryAdapter(IPatientDirectory):
    """Adapter wrapping PatientAPI.

    This adapter converts patient-service payloads into PatientSummary.
    """

    def __init__(self, patient_api: PatientAPI):
        """Initialize with an existing PatientAPI.

        Args:
            patient_api: PatientAPI bound to an open ServiceClient
        """
        self.api = patient_api

    def _to_summary(self, payload: dict[str, Any], endpoint: str) -> PatientSummary:
        try:
            return PatientPayload.model_validate(payload).to_summary()
        except PydanticValidationError as e:
            logger.warning(f"Malformed patient payload from {endpoint}: {e.error_count()} errors")
            raise APIError(
                f"Malformed patient payload from {endpoint}",
                status_code=502,
                endpoint=endpoint,
                code="UNEXPECTED_PAYLOAD",
                cause=e,
            )

    async def get_patient_by_id(self, patient_id: int) -> PatientSummary:
        payload = await self.api.get_patient(patient_id)
        return self._to_summary(payload, f"{PatientAPI.ENDPOINT}/{patient_id}")

    async def get_patient_by_device_id(self, device_id: int) -> PatientSummary:
        payload = await self.api.get_patient_by_device(device_id)
        return self._to_summary(payload, f"{PatientAPI.ENDPOINT}/device/{device_id}")

    async def assign_device_to_patient(
        self,
        patient_id: int,
        device_id: int,
    ) -> PatientSummary:
        payload = await self.api.assign_device(patient_id, device_id)
        return self._to_summary(
            payload,
            f"{PatientAPI.ENDPOINT}/{patient_id}/device/{device_id}",
        )
