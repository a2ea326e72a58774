"""In-memory adapter for device repository.

Process-local store for local development (DEVICE_STORE=memory) and
tests. It applies the same serial number rule as the PostgreSQL table
and hands out copies so callers cannot mutate stored records.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Optional

from ...api.exceptions import IntegrityError
from ..domain.entities import Device, DeviceStatus
from ..domain.exceptions import DeviceNotFoundError
from ..domain.ports import IDeviceRepository

logger = logging.getLogger(__name__)


class InMemoryDeviceRepository(IDeviceRepository):
    """Dict-backed implementation of IDeviceRepository."""

    def __init__(self):
        self._devices: dict[int, Device] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    def _select(self, predicate: Callable[[Device], bool]) -> list[Device]:
        return [
            replace(self._devices[device_id])
            for device_id in sorted(self._devices)
            if predicate(self._devices[device_id])
        ]

    async def find_all(self) -> list[Device]:
        return self._select(lambda d: True)

    async def find_by_id(self, device_id: int) -> Optional[Device]:
        device = self._devices.get(device_id)
        return replace(device) if device else None

    async def find_by_serial_no(self, serial_no: str) -> Optional[Device]:
        matches = self._select(lambda d: d.serial_no == serial_no)
        return matches[0] if matches else None

    async def find_by_patient_id(self, patient_id: int) -> list[Device]:
        return self._select(lambda d: d.patient_id == patient_id)

    async def find_by_status(self, status: DeviceStatus) -> list[Device]:
        status = DeviceStatus.parse(status)
        return self._select(lambda d: d.status == status)

    async def find_by_model_containing(self, text: str) -> list[Device]:
        return self._select(lambda d: text in (d.model or ""))

    async def find_by_manufacturer_containing(self, text: str) -> list[Device]:
        return self._select(lambda d: text in (d.manufacturer or ""))

    async def exists_by_serial_no(self, serial_no: str) -> bool:
        return any(d.serial_no == serial_no for d in self._devices.values())

    async def save(self, device: Device) -> Device:
        """Insert or fully update a device.

        Raises:
            IntegrityError: If another device holds the serial number
            DeviceNotFoundError: If updating an id that no longer exists
        """
        async with self._lock:
            if device.id is not None and device.id not in self._devices:
                raise DeviceNotFoundError(device.id)

            for existing in self._devices.values():
                if existing.serial_no == device.serial_no and existing.id != device.id:
                    raise IntegrityError(
                        f"Duplicate serial number: {device.serial_no}",
                        constraint="unique",
                        details={"constraint_name": "devices_serial_no_key"},
                    )

            if device.id is None:
                stored = replace(device, id=self._next_id)
                self._next_id += 1
            else:
                stored = replace(device)

            self._devices[stored.id] = stored
            logger.debug(f"Stored device {stored.id} ({stored.serial_no})")
            return replace(stored)

    async def delete(self, device: Device) -> None:
        async with self._lock:
            self._devices.pop(device.id, None)
