#!/usr/bin/env python3
"""Patient Service Operations.

This module provides the PatientAPI class, which knows the endpoints of
the external patient-management service. It composes a ServiceClient and
returns raw JSON payloads; conversion into domain objects happens in the
devices adapter layer.

API Details:
    - GET /api/patients/{id}                          patient by id
    - GET /api/patients/device/{deviceId}             patient holding a device
    - PUT /api/patients/{patientId}/device/{deviceId} record an assignment

    The PUT is idempotent on the patient side: repeating it with the same
    pair leaves the patient record unchanged.

Example:
    async with ServiceClient(base_url) as client:
        patients = PatientAPI(client)
        patient = await patients.get_patient(42)
        await patients.assign_device(42, 7)
"""
import logging
from typing import Any

from .client import ServiceClient
from .exceptions import APIError, NotFoundError, PatientNotFoundError

logger = logging.getLogger(__name__)


class PatientAPI:
    """Read and assignment operations against the patient service.

    Attributes:
        client: ServiceClient instance for API communication
    """

    ENDPOINT = "/api/patients"

    def __init__(self, client: ServiceClient):
        """Initialize PatientAPI.

        Args:
            client: Configured ServiceClient instance
        """
        self.client = client

    def _expect_object(self, payload: Any, endpoint: str) -> dict[str, Any]:
        if not isinstance(payload, dict):
            raise APIError(
                f"Expected a patient object from {endpoint}",
                status_code=502,
                endpoint=endpoint,
                code="UNEXPECTED_PAYLOAD",
            )
        return payload

    async def get_patient(self, patient_id: int) -> dict[str, Any]:
        """Fetch a patient by id.

        Raises:
            PatientNotFoundError: If the service answers 404
            RemoteCallError: For any other failure
        """
        endpoint = f"{self.ENDPOINT}/{patient_id}"
        try:
            payload = await self.client.get(endpoint)
        except PatientNotFoundError:
            raise
        except NotFoundError as e:
            raise PatientNotFoundError(
                str(patient_id),
                endpoint=endpoint,
                response_body=e.response_body,
                cause=e,
            )
        return self._expect_object(payload, endpoint)

    async def get_patient_by_device(self, device_id: int) -> dict[str, Any]:
        """Fetch the patient that holds the given device.

        Raises:
            PatientNotFoundError: If no patient holds the device
            RemoteCallError: For any other failure
        """
        endpoint = f"{self.ENDPOINT}/device/{device_id}"
        try:
            payload = await self.client.get(endpoint)
        except PatientNotFoundError:
            raise
        except NotFoundError as e:
            raise PatientNotFoundError(
                f"device:{device_id}",
                endpoint=endpoint,
                response_body=e.response_body,
                cause=e,
            )
        return self._expect_object(payload, endpoint)

    async def assign_device(self, patient_id: int, device_id: int) -> dict[str, Any]:
        """Record on the patient side that the patient holds the device.

        Raises:
            PatientNotFoundError: If the patient does not exist
            RemoteCallError: For any other failure
        """
        endpoint = f"{self.ENDPOINT}/{patient_id}/device/{device_id}"
        logger.info(f"Recording device {device_id} on patient {patient_id}")
        try:
            payload = await self.client.put(endpoint)
        except PatientNotFoundError:
            raise
        except NotFoundError as e:
            raise PatientNotFoundError(
                str(patient_id),
                endpoint=endpoint,
                method="PUT",
                response_body=e.response_body,
                cause=e,
            )
        return self._expect_object(payload, endpoint)
