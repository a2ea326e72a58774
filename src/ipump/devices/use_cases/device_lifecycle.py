"""Device Lifecycle use case.

This use case owns every operation on a device record:

- Reads and searches, enriched with patient data where possible
- Create / full update with serial number uniqueness
- Status changes (entering MAINTENANCE stamps the maintenance date)
- Assignment to a patient, recorded on both sides
- Hard delete

Enrichment is best-effort: if the patient lookup fails for any reason the
device is returned without a patient and the failure is only logged.
"""

import logging
from datetime import date
from typing import Callable, Optional

from ...api.concurrency import process_concurrent
from ...api.exceptions import IntegrityError, RemoteCallError
from ..domain.entities import Device, DeviceSpec, DeviceStatus, DeviceView, PatientSummary
from ..domain.exceptions import (
    DeviceAlreadyExistsError,
    DeviceNotFoundError,
    DeviceValidationError,
)
from ..domain.ports import IDeviceRepository, IPatientDirectory

logger = logging.getLogger(__name__)


class DeviceLifecycleService:
    """Orchestrates the device store and the patient directory.

    Key constraints:
    - Serial numbers are unique; the store's constraint is the real guard,
      the exists check is only an early exit
    - Assignment verifies the patient first and never rolls back the local
      write if the patient-side record fails
    - Nothing is retried
    """

    DEFAULT_ENRICHMENT_CONCURRENCY = 10

    def __init__(
        self,
        device_repo: IDeviceRepository,
        patient_directory: Optional[IPatientDirectory],
        enrichment_concurrency: int = DEFAULT_ENRICHMENT_CONCURRENCY,
        clock: Callable[[], date] = date.today,
    ):
        """Initialize the service.

        Args:
            device_repo: Device store
            patient_directory: Patient service port, None when it is unavailable
            enrichment_concurrency: Max parallel patient lookups for list results
            clock: Returns the current date (used for the maintenance stamp)
        """
        self.devices = device_repo
        self.patients = patient_directory
        self.enrichment_concurrency = enrichment_concurrency
        self.clock = clock

    # ----------------------------------------
    # Enrichment
    # ----------------------------------------

    async def _enrich(self, device: Device) -> DeviceView:
        if device.patient_id is None:
            return DeviceView(device=device)

        if self.patients is None:
            logger.warning(
                f"Patient service unavailable, returning device {device.id} without patient"
            )
            return DeviceView(device=device)

        try:
            patient = await self.patients.get_patient_by_id(device.patient_id)
        except Exception as e:
            logger.warning(
                f"Could not fetch patient {device.patient_id} for device {device.id}: {e}"
            )
            return DeviceView(device=device)

        return DeviceView(device=device, patient=patient)

    async def _enrich_all(self, devices: list[Device]) -> list[DeviceView]:
        return await process_concurrent(
            devices,
            self._enrich,
            max_concurrent=self.enrichment_concurrency,
        )

    def _require_directory(self) -> IPatientDirectory:
        if self.patients is None:
            raise RemoteCallError(
                "Patient service is not available",
                code="PATIENT_SERVICE_UNAVAILABLE",
            )
        return self.patients

    async def _require_device(self, device_id: int) -> Device:
        device = await self.devices.find_by_id(device_id)
        if device is None:
            raise DeviceNotFoundError(device_id)
        return device

    async def _save(self, device: Device) -> Device:
        """Persist, translating a serial collision into DeviceAlreadyExistsError."""
        try:
            return await self.devices.save(device)
        except IntegrityError as e:
            if e.is_unique_violation:
                raise DeviceAlreadyExistsError(device.serial_no, cause=e)
            raise

    @staticmethod
    def _check(spec: DeviceSpec) -> None:
        result = spec.validate()
        if not result.is_valid:
            raise DeviceValidationError(result.errors)

    # ----------------------------------------
    # Reads
    # ----------------------------------------

    async def list_all(self) -> list[DeviceView]:
        return await self._enrich_all(await self.devices.find_all())

    async def list_by_patient(self, patient_id: int) -> list[DeviceView]:
        return await self._enrich_all(await self.devices.find_by_patient_id(patient_id))

    async def list_by_status(self, status: DeviceStatus) -> list[DeviceView]:
        return await self._enrich_all(
            await self.devices.find_by_status(DeviceStatus.parse(status))
        )

    async def search_by_model(self, text: str) -> list[DeviceView]:
        return await self._enrich_all(await self.devices.find_by_model_containing(text))

    async def search_by_manufacturer(self, text: str) -> list[DeviceView]:
        return await self._enrich_all(
            await self.devices.find_by_manufacturer_containing(text)
        )

    async def get_by_id(self, device_id: int) -> DeviceView:
        """Raises DeviceNotFoundError if absent."""
        return await self._enrich(await self._require_device(device_id))

    async def get_by_serial_no(self, serial_no: str) -> DeviceView:
        """Raises DeviceNotFoundError naming the serial number if absent."""
        device = await self.devices.find_by_serial_no(serial_no)
        if device is None:
            raise DeviceNotFoundError(serial_no, field="serial number")
        return await self._enrich(device)

    async def get_assigned_patient(self, device_id: int) -> PatientSummary:
        """Ask the patient service which patient holds the device.

        Raises:
            DeviceNotFoundError: If the device does not exist
            RemoteCallError: If the lookup fails (including PatientNotFoundError)
        """
        await self._require_device(device_id)
        return await self._require_directory().get_patient_by_device_id(device_id)

    # ----------------------------------------
    # Writes
    # ----------------------------------------

    async def create(self, spec: DeviceSpec) -> DeviceView:
        """Create a device.

        Raises:
            DeviceValidationError: If the payload breaks a field rule
            DeviceAlreadyExistsError: If the serial number is taken
        """
        self._check(spec)
        logger.info(f"Creating device {spec.serial_no}")

        if await self.devices.exists_by_serial_no(spec.serial_no):
            raise DeviceAlreadyExistsError(spec.serial_no)

        saved = await self._save(Device.from_spec(spec))
        logger.info(f"Created device {saved.id} ({saved.serial_no})")
        return await self._enrich(saved)

    async def update(self, device_id: int, spec: DeviceSpec) -> DeviceView:
        """Replace every field of a device except its id.

        Optional fields left out of the payload are cleared.

        Raises:
            DeviceValidationError: If the payload breaks a field rule
            DeviceNotFoundError: If the device does not exist
            DeviceAlreadyExistsError: If the new serial number belongs to another device
        """
        self._check(spec)
        logger.info(f"Updating device {device_id}")

        device = await self._require_device(device_id)
        if spec.serial_no != device.serial_no and await self.devices.exists_by_serial_no(
            spec.serial_no
        ):
            raise DeviceAlreadyExistsError(spec.serial_no)

        device.apply_spec(spec)
        saved = await self._save(device)
        logger.info(f"Updated device {saved.id}")
        return await self._enrich(saved)

    async def update_status(self, device_id: int, status: DeviceStatus) -> DeviceView:
        """Set the status; entering MAINTENANCE stamps today's date."""
        status = DeviceStatus.parse(status)
        logger.info(f"Setting device {device_id} status to {status.value}")

        device = await self._require_device(device_id)
        device.change_status(status, self.clock())
        saved = await self._save(device)
        return await self._enrich(saved)

    async def assign_to_patient(self, device_id: int, patient_id: int) -> DeviceView:
        """Assign a device to a patient on both sides.

        The patient is verified before anything is written. If recording the
        assignment on the patient side fails afterwards, the local assignment
        stays in place and the error is raised to the caller.

        Raises:
            DeviceNotFoundError: If the device does not exist
            PatientNotFoundError: If the patient does not exist
            RemoteCallError: If a patient-service call fails
        """
        logger.info(f"Assigning device {device_id} to patient {patient_id}")
        device = await self._require_device(device_id)
        directory = self._require_directory()

        await directory.get_patient_by_id(patient_id)

        device.patient_id = patient_id
        saved = await self._save(device)

        try:
            await directory.assign_device_to_patient(patient_id, device_id)
        except Exception as e:
            logger.error(
                f"Device {device_id} assigned locally but patient {patient_id} "
                f"was not updated: {e}"
            )
            raise

        logger.info(f"Assigned device {device_id} to patient {patient_id}")
        return await self._enrich(saved)

    async def delete(self, device_id: int) -> None:
        """Raises DeviceNotFoundError if absent; the patient side is not touched."""
        device = await self._require_device(device_id)
        await self.devices.delete(device)
        logger.info(f"Deleted device {device_id}")
