"""Port interfaces for the device service.

These are abstract interfaces (ports) that define how the domain
interacts with external systems. Concrete implementations (adapters)
are provided in the adapters module.

This follows the Hexagonal Architecture pattern.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .entities import Device, DeviceStatus, PatientSummary


class IDeviceRepository(ABC):
    """Port for device persistence.

    Implementations might use PostgreSQL, in-memory storage, etc.
    List results are returned in id order.
    """

    @abstractmethod
    async def find_all(self) -> list[Device]:
        ...

    @abstractmethod
    async def find_by_id(self, device_id: int) -> Optional[Device]:
        """Find a device by id.

        Returns:
            Device if found, None otherwise
        """
        ...

    @abstractmethod
    async def find_by_serial_no(self, serial_no: str) -> Optional[Device]:
        """Find a device by exact, case-sensitive serial number."""
        ...

    @abstractmethod
    async def find_by_patient_id(self, patient_id: int) -> list[Device]:
        ...

    @abstractmethod
    async def find_by_status(self, status: DeviceStatus) -> list[Device]:
        ...

    @abstractmethod
    async def find_by_model_containing(self, text: str) -> list[Device]:
        """Case-sensitive substring match on model."""
        ...

    @abstractmethod
    async def find_by_manufacturer_containing(self, text: str) -> list[Device]:
        """Case-sensitive substring match on manufacturer."""
        ...

    @abstractmethod
    async def exists_by_serial_no(self, serial_no: str) -> bool:
        ...

    @abstractmethod
    async def save(self, device: Device) -> Device:
        """Insert when device.id is None, otherwise overwrite the stored record.

        Returns:
            The stored device (with its id on insert)

        Raises:
            IntegrityError: constraint="unique" when the serial is taken
            DeviceNotFoundError: When updating an id that no longer exists
        """
        ...

    @abstractmethod
    async def delete(self, device: Device) -> None:
        """Permanently remove the device."""
        ...


class IPatientDirectory(ABC):
    """Port for the external patient service."""

    @abstractmethod
    async def get_patient_by_id(self, patient_id: int) -> PatientSummary:
        """Look up a patient.

        Raises:
            PatientNotFoundError: If the patient does not exist
            RemoteCallError: For any other failure
        """
        ...

    @abstractmethod
    async def get_patient_by_device_id(self, device_id: int) -> PatientSummary:
        ...

    @abstractmethod
    async def assign_device_to_patient(
        self,
        patient_id: int,
        device_id: int,
    ) -> PatientSummary:
        """Record the assignment on the patient side. Repeating it is harmless."""
        ...
