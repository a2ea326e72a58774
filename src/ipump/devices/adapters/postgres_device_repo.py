"""PostgreSQL adapter for device repository.

This adapter implements IDeviceRepository using asyncpg
to query the devices table. Serial number uniqueness is enforced by the
table's UNIQUE constraint; a collision surfaces from save() as an
IntegrityError with constraint="unique".
"""

import logging
from typing import Optional

import asyncpg

from ...api.database import database_connection, database_transaction
from ..domain.entities import Device, DeviceStatus
from ..domain.exceptions import DeviceNotFoundError
from ..domain.ports import IDeviceRepository

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS devices (
    id                      BIGSERIAL PRIMARY KEY,
    serial_no               TEXT NOT NULL,
    model                   TEXT NOT NULL,
    manufacturer            TEXT NOT NULL,
    status                  TEXT NOT NULL
        CHECK (status IN ('ACTIVE', 'INACTIVE', 'MAINTENANCE')),
    patient_id              BIGINT,
    manufacture_date        DATE,
    last_maintenance_date   DATE,
    max_basal_rate          DOUBLE PRECISION,
    max_bolus_amount        DOUBLE PRECISION,
    reservoir_capacity      INTEGER,
    firmware_version        TEXT,
    battery_type            TEXT,
    CONSTRAINT devices_serial_no_key UNIQUE (serial_no)
);

CREATE INDEX IF NOT EXISTS idx_devices_patient_id ON devices (patient_id);
CREATE INDEX IF NOT EXISTS idx_devices_status ON devices (status);
"""

COLUMNS = """
    id, serial_no, model, manufacturer, status, patient_id,
    manufacture_date, last_maintenance_date,
    max_basal_rate, max_bolus_amount, reservoir_capacity,
    firmware_version, battery_type
"""


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so the text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresDeviceRepository(IDeviceRepository):
    """PostgreSQL implementation of IDeviceRepository."""

    def __init__(self, pool: asyncpg.Pool):
        """Initialize with database connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    async def ensure_schema(self) -> None:
        """Create the devices table if it does not exist."""
        async with database_connection(self.pool) as conn:
            await conn.execute(SCHEMA)
        logger.info("Device schema ensured")

    async def _fetch_many(self, where: str = "", *args) -> list[Device]:
        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                f"SELECT {COLUMNS} FROM devices {where} ORDER BY id",
                *args,
            )
            return [self._row_to_device(row) for row in rows]

    async def _fetch_one(self, where: str, *args) -> Optional[Device]:
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(
                f"SELECT {COLUMNS} FROM devices {where} LIMIT 1",
                *args,
            )
            if row is None:
                return None
            return self._row_to_device(row)

    async def find_all(self) -> list[Device]:
        return await self._fetch_many()

    async def find_by_id(self, device_id: int) -> Optional[Device]:
        return await self._fetch_one("WHERE id = $1", device_id)

    async def find_by_serial_no(self, serial_no: str) -> Optional[Device]:
        return await self._fetch_one("WHERE serial_no = $1", serial_no)

    async def find_by_patient_id(self, patient_id: int) -> list[Device]:
        return await self._fetch_many("WHERE patient_id = $1", patient_id)

    async def find_by_status(self, status: DeviceStatus) -> list[Device]:
        return await self._fetch_many("WHERE status = $1", DeviceStatus.parse(status).value)

    async def find_by_model_containing(self, text: str) -> list[Device]:
        return await self._fetch_many(
            "WHERE model LIKE $1 ESCAPE '\\'",
            f"%{escape_like(text)}%",
        )

    async def find_by_manufacturer_containing(self, text: str) -> list[Device]:
        return await self._fetch_many(
            "WHERE manufacturer LIKE $1 ESCAPE '\\'",
            f"%{escape_like(text)}%",
        )

    async def exists_by_serial_no(self, serial_no: str) -> bool:
        async with database_connection(self.pool) as conn:
            return await conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM devices WHERE serial_no = $1)",
                serial_no,
            )

    async def save(self, device: Device) -> Device:
        """Insert or fully update a device inside a transaction.

        Raises:
            IntegrityError: If the serial number is already taken
            DeviceNotFoundError: If updating an id that no longer exists
        """
        values = (
            device.serial_no,
            device.model,
            device.manufacturer,
            DeviceStatus.parse(device.status).value,
            device.patient_id,
            device.manufacture_date,
            device.last_maintenance_date,
            device.max_basal_rate,
            device.max_bolus_amount,
            device.reservoir_capacity,
            device.firmware_version,
            device.battery_type,
        )

        async with database_transaction(self.pool) as conn:
            if device.id is None:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO devices (
                        serial_no, model, manufacturer, status, patient_id,
                        manufacture_date, last_maintenance_date,
                        max_basal_rate, max_bolus_amount, reservoir_capacity,
                        firmware_version, battery_type
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
                    RETURNING {COLUMNS}
                    """,
                    *values,
                )
                logger.debug(f"Inserted device {row['id']} ({device.serial_no})")
            else:
                row = await conn.fetchrow(
                    f"""
                    UPDATE devices SET
                        serial_no = $2,
                        model = $3,
                        manufacturer = $4,
                        status = $5,
                        patient_id = $6,
                        manufacture_date = $7,
                        last_maintenance_date = $8,
                        max_basal_rate = $9,
                        max_bolus_amount = $10,
                        reservoir_capacity = $11,
                        firmware_version = $12,
                        battery_type = $13
                    WHERE id = $1
                    RETURNING {COLUMNS}
                    """,
                    device.id,
                    *values,
                )
                if row is None:
                    raise DeviceNotFoundError(device.id)
                logger.debug(f"Updated device {device.id}")

        return self._row_to_device(row)

    async def delete(self, device: Device) -> None:
        async with database_transaction(self.pool) as conn:
            await conn.execute("DELETE FROM devices WHERE id = $1", device.id)
        logger.debug(f"Deleted device {device.id}")

    def _row_to_device(self, row: asyncpg.Record) -> Device:
        """Convert a database row to a Device."""
        return Device(
            id=row["id"],
            serial_no=row["serial_no"],
            model=row["model"],
            manufacturer=row["manufacturer"],
            status=DeviceStatus(row["status"]),
            patient_id=row["patient_id"],
            manufacture_date=row["manufacture_date"],
            last_maintenance_date=row["last_maintenance_date"],
            max_basal_rate=row["max_basal_rate"],
            max_bolus_amount=row["max_bolus_amount"],
            reservoir_capacity=row["reservoir_capacity"],
            firmware_version=row["firmware_version"],
            battery_type=row["battery_type"],
        )
