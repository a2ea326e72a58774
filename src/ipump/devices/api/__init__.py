"""API layer for the device service.

Contains:
- FastAPI routers with endpoints
- Pydantic schemas for request/response validation
- Dependency wiring for the store and the patient client
"""

from .health_router import router as health_router
from .router import router
from .schemas import (
    DeviceResponse,
    DeviceSpecRequest,
    ErrorResponse,
    FieldErrorDTO,
    PatientResponse,
    PatientSummaryDTO,
)

__all__ = [
    "router",
    "health_router",
    "DeviceSpecRequest",
    "DeviceResponse",
    "PatientSummaryDTO",
    "PatientResponse",
    "ErrorResponse",
    "FieldErrorDTO",
]
