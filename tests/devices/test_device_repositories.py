"""Tests for device repository adapters.

The in-memory store is tested directly. The PostgreSQL adapter is tested
against a mocked pool for query shape; real database behaviour is covered
by tests/test_database.py.
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest

from src.ipump.api.exceptions import ConnectionPoolError, DatabaseError, IntegrityError
from src.ipump.devices.adapters import InMemoryDeviceRepository, PostgresDeviceRepository
from src.ipump.devices.adapters.postgres_device_repo import escape_like
from src.ipump.devices.domain.entities import Device, DeviceStatus
from src.ipump.devices.domain.exceptions import DeviceNotFoundError


def make_device(**overrides) -> Device:
    values = dict(
        serial_no="ABC123",
        model="Model X",
        manufacturer="Manufacturer A",
        status=DeviceStatus.ACTIVE,
    )
    values.update(overrides)
    return Device(**values)


# ============================================
# In-memory store
# ============================================


class TestInMemoryDeviceRepository:
    """Tests for InMemoryDeviceRepository."""

    @pytest.fixture
    def repo(self):
        return InMemoryDeviceRepository()

    @pytest.mark.asyncio
    async def test_insert_assigns_sequential_ids(self, repo):
        first = await repo.save(make_device(serial_no="SN-1"))
        second = await repo.save(make_device(serial_no="SN-2"))

        assert (first.id, second.id) == (1, 2)

    @pytest.mark.asyncio
    async def test_returns_copies(self, repo):
        saved = await repo.save(make_device())
        saved.model = "Mutated"

        stored = await repo.find_by_id(saved.id)
        assert stored.model == "Model X"

    @pytest.mark.asyncio
    async def test_duplicate_serial_on_insert(self, repo):
        await repo.save(make_device())

        with pytest.raises(IntegrityError) as exc_info:
            await repo.save(make_device(model="Other"))

        assert exc_info.value.is_unique_violation
        assert len(await repo.find_all()) == 1

    @pytest.mark.asyncio
    async def test_update_keeping_own_serial(self, repo):
        saved = await repo.save(make_device())
        saved.model = "Model Y"

        updated = await repo.save(saved)

        assert updated.model == "Model Y"
        assert len(await repo.find_all()) == 1

    @pytest.mark.asyncio
    async def test_update_to_taken_serial(self, repo):
        first = await repo.save(make_device(serial_no="SN-1"))
        await repo.save(make_device(serial_no="SN-2"))
        first.serial_no = "SN-2"

        with pytest.raises(IntegrityError):
            await repo.save(first)

    @pytest.mark.asyncio
    async def test_update_deleted_device(self, repo):
        saved = await repo.save(make_device())
        await repo.delete(saved)

        with pytest.raises(DeviceNotFoundError):
            await repo.save(saved)

    @pytest.mark.asyncio
    async def test_serial_lookup_is_exact(self, repo):
        await repo.save(make_device(serial_no="abc-1"))

        assert await repo.find_by_serial_no("ABC-1") is None
        assert await repo.exists_by_serial_no("ABC-1") is False
        assert (await repo.find_by_serial_no("abc-1")).serial_no == "abc-1"
        assert await repo.exists_by_serial_no("abc-1") is True

    @pytest.mark.asyncio
    async def test_results_in_id_order(self, repo):
        for serial in ("C", "A", "B"):
            await repo.save(make_device(serial_no=serial, patient_id=1))

        devices = await repo.find_by_patient_id(1)

        assert [d.serial_no for d in devices] == ["C", "A", "B"]
        assert [d.id for d in devices] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, repo):
        await repo.save(make_device(serial_no="SN-1", model="Pump_100%"))
        await repo.save(make_device(serial_no="SN-2", model="Pump 1000"))

        devices = await repo.find_by_model_containing("_100%")

        assert [d.serial_no for d in devices] == ["SN-1"]

    @pytest.mark.asyncio
    async def test_find_by_status(self, repo):
        await repo.save(make_device(serial_no="SN-1", status=DeviceStatus.MAINTENANCE))
        await repo.save(make_device(serial_no="SN-2"))

        devices = await repo.find_by_status("MAINTENANCE")

        assert [d.serial_no for d in devices] == ["SN-1"]

    @pytest.mark.asyncio
    async def test_delete(self, repo):
        saved = await repo.save(make_device())

        await repo.delete(saved)

        assert await repo.find_all() == []


# ============================================
# PostgreSQL adapter (mocked pool)
# ============================================


class TestEscapeLike:
    """Tests for escape_like."""

    def test_plain_text_unchanged(self):
        assert escape_like("Model X") == "Model X"

    def test_wildcards_escaped(self):
        assert escape_like("50%_off") == "50\\%\\_off"

    def test_backslash_escaped_first(self):
        assert escape_like("a\\%") == "a\\\\\\%"


@pytest.fixture
def mock_conn():
    return AsyncMock()


@pytest.fixture
def mock_pool(mock_conn):
    pool = MagicMock()
    pool.acquire = AsyncMock(return_value=mock_conn)
    pool.release = AsyncMock()
    return pool


def db_row(**overrides) -> dict:
    row = dict(
        id=1,
        serial_no="ABC123",
        model="Model X",
        manufacturer="Manufacturer A",
        status="MAINTENANCE",
        patient_id=None,
        manufacture_date=date(2023, 3, 1),
        last_maintenance_date=None,
        max_basal_rate=2.0,
        max_bolus_amount=10.0,
        reservoir_capacity=300,
        firmware_version=None,
        battery_type=None,
    )
    row.update(overrides)
    return row


class TestPostgresDeviceRepository:
    """Tests for PostgresDeviceRepository read paths."""

    @pytest.mark.asyncio
    async def test_find_by_id_maps_row(self, mock_pool, mock_conn):
        mock_conn.fetchrow.return_value = db_row()
        repo = PostgresDeviceRepository(mock_pool)

        device = await repo.find_by_id(1)

        assert device.id == 1
        assert device.status is DeviceStatus.MAINTENANCE
        assert device.manufacture_date == date(2023, 3, 1)
        query, device_id = mock_conn.fetchrow.call_args.args
        assert "WHERE id = $1" in query
        assert device_id == 1

    @pytest.mark.asyncio
    async def test_find_by_id_missing(self, mock_pool, mock_conn):
        mock_conn.fetchrow.return_value = None
        repo = PostgresDeviceRepository(mock_pool)

        assert await repo.find_by_id(5) is None

    @pytest.mark.asyncio
    async def test_search_escapes_pattern(self, mock_pool, mock_conn):
        mock_conn.fetch.return_value = [db_row()]
        repo = PostgresDeviceRepository(mock_pool)

        devices = await repo.find_by_manufacturer_containing("10%")

        query, pattern = mock_conn.fetch.call_args.args
        assert "manufacturer LIKE $1 ESCAPE" in query
        assert "ORDER BY id" in query
        assert pattern == "%10\\%%"
        assert len(devices) == 1

    @pytest.mark.asyncio
    async def test_find_by_status_passes_value(self, mock_pool, mock_conn):
        mock_conn.fetch.return_value = []
        repo = PostgresDeviceRepository(mock_pool)

        await repo.find_by_status(DeviceStatus.INACTIVE)

        assert mock_conn.fetch.call_args.args[1] == "INACTIVE"

    @pytest.mark.asyncio
    async def test_ensure_schema(self, mock_pool, mock_conn):
        repo = PostgresDeviceRepository(mock_pool)

        await repo.ensure_schema()

        ddl = mock_conn.execute.call_args.args[0]
        assert "CREATE TABLE IF NOT EXISTS devices" in ddl
        assert "UNIQUE (serial_no)" in ddl

    @pytest.mark.asyncio
    async def test_read_error_becomes_database_error(self, mock_pool, mock_conn):
        mock_conn.fetchrow.side_effect = asyncpg.PostgresConnectionError("connection lost")
        repo = PostgresDeviceRepository(mock_pool)

        with pytest.raises(DatabaseError) as exc_info:
            await repo.find_by_id(1)

        assert isinstance(exc_info.value.cause, asyncpg.PostgresConnectionError)
        mock_pool.release.assert_awaited_once_with(mock_conn)

    @pytest.mark.asyncio
    async def test_exists_error_becomes_database_error(self, mock_pool, mock_conn):
        mock_conn.fetchval.side_effect = asyncpg.InterfaceError("connection is closed")
        repo = PostgresDeviceRepository(mock_pool)

        with pytest.raises(DatabaseError):
            await repo.exists_by_serial_no("ABC123")

    @pytest.mark.asyncio
    async def test_acquire_failure_becomes_pool_error(self, mock_pool):
        mock_pool.acquire.side_effect = OSError("connection refused")
        repo = PostgresDeviceRepository(mock_pool)

        with pytest.raises(ConnectionPoolError):
            await repo.find_all()
