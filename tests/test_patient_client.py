#!/usr/bin/env python3
"""Unit tests for the patient service client stack.

Tests cover:
    - ServiceClient configuration and status-code translation
    - ServiceClient transport error translation
    - PatientAPI endpoints and not-found conversion
    - PatientDirectoryAdapter payload conversion

Note: These tests mock the aiohttp session / ServiceClient rather than
making real HTTP calls.
"""
import asyncio
import json
import sys
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.ipump.api.client import ServiceClient
from src.ipump.api.exceptions import (
    APIError,
    ConfigurationError,
    ConnectionError,
    NetworkError,
    NotFoundError,
    PatientNotFoundError,
    RemoteCallError,
    ServerError,
    TimeoutError,
    ValidationError,
)
from src.ipump.api.patients import PatientAPI
from src.ipump.devices.adapters import PatientDirectoryAdapter

BASE_URL = "http://patient-service:8080"


def fake_response(status: int, body=None, text: str = ""):
    response = MagicMock()
    response.status = status
    response.content_length = None if body is not None else 0
    response.json = AsyncMock(return_value=body)
    response.text = AsyncMock(return_value=text)
    return response


def session_returning(response=None, error: Exception = None):
    session = MagicMock()
    session.closed = False

    @asynccontextmanager
    async def request(**kwargs):
        session.last_request = kwargs
        if error is not None:
            raise error
        yield response

    session.request = request
    return session


# ============================================
# ServiceClient
# ============================================


class TestServiceClientInit:
    """Test ServiceClient configuration."""

    def test_requires_base_url(self, monkeypatch):
        monkeypatch.delenv("PATIENT_SERVICE_URL", raising=False)

        with pytest.raises(ConfigurationError) as exc_info:
            ServiceClient()

        assert exc_info.value.details["missing_keys"] == ["PATIENT_SERVICE_URL"]

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PATIENT_SERVICE_URL", BASE_URL + "/")
        monkeypatch.setenv("PATIENT_SERVICE_TIMEOUT", "3.5")

        client = ServiceClient()

        assert client.base_url == BASE_URL
        assert client.timeout_seconds == 3.5

    def test_default_timeout(self, monkeypatch):
        monkeypatch.delenv("PATIENT_SERVICE_TIMEOUT", raising=False)

        client = ServiceClient(BASE_URL)

        assert client.timeout_seconds == 10.0
        assert client.is_open is False

    @pytest.mark.asyncio
    async def test_request_outside_context(self):
        client = ServiceClient(BASE_URL)

        with pytest.raises(RuntimeError, match="async context manager"):
            await client.get("/api/patients/1")

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes(self):
        async with ServiceClient(BASE_URL) as client:
            assert client.is_open is True

        assert client.is_open is False


class TestServiceClientRequests:
    """Test ServiceClient request handling."""

    @pytest.mark.asyncio
    async def test_returns_json(self):
        client = ServiceClient(BASE_URL)
        client._session = session_returning(fake_response(200, {"id": 1}))

        data = await client.get("/api/patients/1")

        assert data == {"id": 1}
        assert client._session.last_request["url"] == f"{BASE_URL}/api/patients/1"
        assert client._session.last_request["method"] == "GET"

    @pytest.mark.asyncio
    async def test_empty_body_returns_none(self):
        client = ServiceClient(BASE_URL)
        client._session = session_returning(fake_response(204))

        assert await client.put("/api/patients/1/device/2") is None

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        response = fake_response(200, text="<html>")
        response.content_length = 6
        response.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)
        client = ServiceClient(BASE_URL)
        client._session = session_returning(response)

        with pytest.raises(APIError) as exc_info:
            await client.put("/api/patients/1/device/2")

        assert isinstance(exc_info.value, RemoteCallError)
        assert exc_info.value.code == "UNEXPECTED_PAYLOAD"
        assert exc_info.value.status_code == 502
        assert exc_info.value.method == "PUT"
        assert isinstance(exc_info.value.cause, json.JSONDecodeError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error_type",
        [
            (404, NotFoundError),
            (400, ValidationError),
            (422, ValidationError),
            (500, ServerError),
            (503, ServerError),
            (409, APIError),
        ],
    )
    async def test_status_translation(self, status, error_type):
        client = ServiceClient(BASE_URL)
        client._session = session_returning(fake_response(status, text="nope"))

        with pytest.raises(error_type) as exc_info:
            await client.get("/api/patients/1")

        assert exc_info.value.status_code == status
        assert exc_info.value.response_body == "nope"
        assert isinstance(exc_info.value, RemoteCallError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,error_type",
        [
            (asyncio.TimeoutError(), TimeoutError),
            (aiohttp.ServerTimeoutError(), TimeoutError),
            (aiohttp.ClientConnectionError("refused"), ConnectionError),
            (aiohttp.ClientPayloadError("bad payload"), NetworkError),
        ],
    )
    async def test_transport_errors(self, error, error_type):
        client = ServiceClient(BASE_URL, timeout_seconds=2)
        client._session = session_returning(error=error)

        with pytest.raises(error_type) as exc_info:
            await client.get("/api/patients/1")

        assert exc_info.value.recoverable is True
        assert exc_info.value.cause is error


# ============================================
# PatientAPI
# ============================================


@pytest.fixture
def mock_client():
    client = MagicMock(spec=ServiceClient)
    client.get = AsyncMock()
    client.put = AsyncMock()
    return client


class TestPatientAPI:
    """Test PatientAPI endpoints."""

    def test_endpoint_constant(self):
        assert PatientAPI.ENDPOINT == "/api/patients"

    @pytest.mark.asyncio
    async def test_get_patient(self, mock_client):
        mock_client.get.return_value = {"id": 5}
        api = PatientAPI(mock_client)

        assert await api.get_patient(5) == {"id": 5}
        mock_client.get.assert_awaited_once_with("/api/patients/5")

    @pytest.mark.asyncio
    async def test_get_patient_by_device(self, mock_client):
        mock_client.get.return_value = {"id": 5, "deviceId": 9}
        api = PatientAPI(mock_client)

        await api.get_patient_by_device(9)

        mock_client.get.assert_awaited_once_with("/api/patients/device/9")

    @pytest.mark.asyncio
    async def test_assign_device(self, mock_client):
        mock_client.put.return_value = {"id": 5, "deviceId": 9}
        api = PatientAPI(mock_client)

        await api.assign_device(5, 9)

        mock_client.put.assert_awaited_once_with("/api/patients/5/device/9")

    @pytest.mark.asyncio
    async def test_not_found_becomes_patient_not_found(self, mock_client):
        mock_client.get.side_effect = NotFoundError(
            "Resource", "/api/patients/5", endpoint="/api/patients/5"
        )
        api = PatientAPI(mock_client)

        with pytest.raises(PatientNotFoundError) as exc_info:
            await api.get_patient(5)

        assert exc_info.value.code == "PATIENT_NOT_FOUND"
        assert exc_info.value.status_code == 404
        assert exc_info.value.resource_id == "5"

    @pytest.mark.asyncio
    async def test_server_error_passes_through(self, mock_client):
        mock_client.put.side_effect = ServerError("down", status_code=503)
        api = PatientAPI(mock_client)

        with pytest.raises(ServerError):
            await api.assign_device(5, 9)

    @pytest.mark.asyncio
    async def test_non_object_payload(self, mock_client):
        mock_client.get.return_value = [{"id": 5}]
        api = PatientAPI(mock_client)

        with pytest.raises(APIError) as exc_info:
            await api.get_patient(5)

        assert exc_info.value.code == "UNEXPECTED_PAYLOAD"


# ============================================
# PatientDirectoryAdapter
# ============================================


class TestPatientDirectoryAdapter:
    """Test PatientDirectoryAdapter conversion."""

    @pytest.mark.asyncio
    async def test_get_patient_by_id(self):
        api = AsyncMock()
        api.get_patient.return_value = {
            "id": 5,
            "name": "Jane Doe",
            "age": 34,
            "medicalId": "MED-5",
            "diabetesType": "TYPE_1",
        }
        adapter = PatientDirectoryAdapter(api)

        patient = await adapter.get_patient_by_id(5)

        assert patient.id == 5
        assert patient.medical_id == "MED-5"

    @pytest.mark.asyncio
    async def test_assign_returns_summary(self):
        api = AsyncMock()
        api.assign_device.return_value = {"id": 5, "deviceId": 9}
        adapter = PatientDirectoryAdapter(api)

        patient = await adapter.assign_device_to_patient(5, 9)

        assert patient.assigned_device_id == 9
        api.assign_device.assert_awaited_once_with(5, 9)

    @pytest.mark.asyncio
    async def test_snake_case_payload(self):
        api = AsyncMock()
        api.get_patient.return_value = {
            "id": 6,
            "medical_id": "MED-6",
            "device_id": 3,
            "diabetes_type": "TYPE_2",
            "ward": "ignored",
        }
        adapter = PatientDirectoryAdapter(api)

        patient = await adapter.get_patient_by_id(6)

        assert patient.medical_id == "MED-6"
        assert patient.assigned_device_id == 3
        assert patient.diabetes_type == "TYPE_2"
        assert patient.name is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "Nobody"},
            {"id": None},
            {"id": 7, "age": "unknown"},
            {"id": 7, "medicalId": 12345},
            {"id": 7, "deviceId": "nine"},
        ],
    )
    async def test_malformed_payload(self, payload):
        api = AsyncMock()
        api.get_patient_by_device.return_value = payload
        adapter = PatientDirectoryAdapter(api)

        with pytest.raises(APIError) as exc_info:
            await adapter.get_patient_by_device_id(9)

        assert exc_info.value.code == "UNEXPECTED_PAYLOAD"
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        api = AsyncMock()
        api.get_patient.side_effect = PatientNotFoundError("5")
        adapter = PatientDirectoryAdapter(api)

        with pytest.raises(PatientNotFoundError):
            await adapter.get_patient_by_id(5)
