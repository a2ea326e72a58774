#!/usr/bin/env python3
"""Generic HTTP Client for downstream JSON services.

This module provides a small, composable HTTP client that handles the
common concerns of talking to another microservice:

    - Connection pooling via a shared aiohttp session
    - A single request timeout taken from configuration
    - Translation of HTTP failures into typed exceptions

Design Philosophy:
    This client knows HOW to talk to a JSON service, but not WHAT to fetch.
    It has no knowledge of patients or devices. That knowledge belongs in
    the resource classes that compose this client (see patients.py).

    Requests are never retried here. A failed call surfaces immediately as
    a RemoteCallError subtype and the caller decides what to do with it.

Usage:
    async with ServiceClient("http://patient-service:8080") as client:
        data = await client.get("/api/patients/42")
        await client.put("/api/patients/42/device/7")
"""
import asyncio
import logging
import os
from typing import Any, Optional

import aiohttp

from .exceptions import (
    APIError,
    ConfigurationError,
    ConnectionError,
    NetworkError,
    NotFoundError,
    ServerError,
    TimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class ServiceClient:
    """Async HTTP client for a JSON microservice.

    Use as an async context manager so the session is always closed:

        async with ServiceClient(base_url) as client:
            data = await client.get("/some/endpoint")

    Attributes:
        base_url: Base URL for requests (e.g., "http://patient-service:8080")
        timeout_seconds: Total timeout applied to each request
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        base_url_env: str = "PATIENT_SERVICE_URL",
    ):
        """Initialize the ServiceClient.

        Args:
            base_url: Service base URL. If not provided, read from base_url_env.
            timeout_seconds: Request timeout. If not provided, read from
                PATIENT_SERVICE_TIMEOUT, falling back to 10 seconds.
            base_url_env: Environment variable consulted for the base URL.

        Raises:
            ConfigurationError: If no base URL is configured.
        """
        self.base_url = (base_url or os.getenv(base_url_env, "")).rstrip("/")

        if not self.base_url:
            raise ConfigurationError(
                f"Base URL is required. Provide base_url parameter or set {base_url_env} environment variable.",
                missing_keys=[base_url_env],
            )

        if timeout_seconds is None:
            timeout_seconds = float(
                os.getenv("PATIENT_SERVICE_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS))
            )
        self.timeout_seconds = timeout_seconds

        # Session is created in __aenter__, closed in __aexit__
        self._session: Optional[aiohttp.ClientSession] = None

    # ----------------------------------------
    # Context Manager Protocol
    # ----------------------------------------

    async def __aenter__(self) -> "ServiceClient":
        """Enter async context: create the HTTP session."""
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(
                limit=20,
                limit_per_host=20,
            ),
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            headers={"Accept": "application/json"},
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context: close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    @property
    def is_open(self) -> bool:
        return self._session is not None and not self._session.closed

    # ----------------------------------------
    # Requests
    # ----------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> Any:
        """Make a single HTTP request.

        Args:
            method: HTTP method (GET, PUT, POST, DELETE)
            endpoint: Path relative to base_url (e.g., "/api/patients/1")
            params: Query parameters
            json_body: JSON request body

        Returns:
            Parsed JSON response, or None for an empty body

        Raises:
            APIError: If response status is not 2xx (typed subclass where known)
                or a success body is not valid JSON
            RuntimeError: If called outside of async context manager
            ConnectionError: If connection to server fails
            TimeoutError: If request times out
            NetworkError: For any other transport failure
        """
        if not self._session:
            raise RuntimeError(
                "ServiceClient must be used as async context manager: "
                "async with ServiceClient(...) as client:"
            )

        url = f"{self.base_url}{endpoint}"
        logger.debug(f"{method} {url}")

        try:
            async with self._session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise self._create_api_error(
                        status=response.status,
                        method=method,
                        endpoint=endpoint,
                        response_body=error_text,
                    )

                if response.status == 204 or response.content_length == 0:
                    return None

                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise APIError(
                        f"Response from {endpoint} is not valid JSON",
                        status_code=502,
                        endpoint=endpoint,
                        method=method,
                        code="UNEXPECTED_PAYLOAD",
                        cause=e,
                    )

        # ServerTimeoutError is also a ClientConnectionError, so timeouts go first
        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Request to {endpoint} timed out",
                timeout_seconds=self.timeout_seconds,
                cause=e,
            )

        except aiohttp.ClientConnectionError as e:
            raise ConnectionError(
                f"Failed to connect to {self.base_url}",
                host=self.base_url,
                cause=e,
            )

        except aiohttp.ClientError as e:
            raise NetworkError(
                f"Network error during {method} {endpoint}: {e}",
                cause=e,
            )

    def _create_api_error(
        self,
        status: int,
        method: str,
        endpoint: str,
        response_body: str,
    ) -> APIError:
        """Create appropriate APIError subclass based on status code."""
        if status == 404:
            return NotFoundError(
                resource_type="Resource",
                resource_id=endpoint,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        if status == 400 or status == 422:
            return ValidationError(
                f"Validation failed for {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        if status >= 500:
            return ServerError(
                f"Server error ({status}) for {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        return APIError(
            f"{method} {endpoint} failed",
            status_code=status,
            endpoint=endpoint,
            method=method,
            response_body=response_body,
        )

    async def get(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """GET request returning parsed JSON."""
        return await self._request("GET", endpoint, params=params)

    async def put(self, endpoint: str, json_body: Optional[dict] = None) -> Any:
        """PUT request returning parsed JSON."""
        return await self._request("PUT", endpoint, json_body=json_body)
