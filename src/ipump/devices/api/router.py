"""FastAPI router for device endpoints.

Handlers only translate between HTTP and DeviceLifecycleService. Domain
and remote errors propagate to the exception handlers registered in
app.py, which map them to status codes.
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status

from ..domain.entities import DeviceStatus
from ..use_cases import DeviceLifecycleService
from .dependencies import get_device_service
from .schemas import DeviceResponse, DeviceSpecRequest, ErrorResponse, PatientResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/devices",
    tags=["Devices"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


# ========== Reads ==========


@router.get("", response_model=list[DeviceResponse])
async def list_devices(
    service: DeviceLifecycleService = Depends(get_device_service),
):
    """List every device, enriched with patient data where available."""
    views = await service.list_all()
    return [DeviceResponse.from_view(v) for v in views]


@router.get("/serial/{serial_no}", response_model=DeviceResponse)
async def get_device_by_serial(
    serial_no: str,
    service: DeviceLifecycleService = Depends(get_device_service),
):
    return DeviceResponse.from_view(await service.get_by_serial_no(serial_no))


@router.get("/patient/{patient_id}", response_model=list[DeviceResponse])
async def list_devices_by_patient(
    patient_id: int,
    service: DeviceLifecycleService = Depends(get_device_service),
):
    views = await service.list_by_patient(patient_id)
    return [DeviceResponse.from_view(v) for v in views]


@router.get("/status/{device_status}", response_model=list[DeviceResponse])
async def list_devices_by_status(
    device_status: DeviceStatus,
    service: DeviceLifecycleService = Depends(get_device_service),
):
    """List devices in one status. Unknown statuses are rejected with 400."""
    views = await service.list_by_status(device_status)
    return [DeviceResponse.from_view(v) for v in views]


@router.get("/search/model", response_model=list[DeviceResponse])
async def search_devices_by_model(
    model: str = Query(..., description="Substring of the model name (case-sensitive)"),
    service: DeviceLifecycleService = Depends(get_device_service),
):
    views = await service.search_by_model(model)
    return [DeviceResponse.from_view(v) for v in views]


@router.get("/search/manufacturer", response_model=list[DeviceResponse])
async def search_devices_by_manufacturer(
    manufacturer: str = Query(..., description="Substring of the manufacturer (case-sensitive)"),
    service: DeviceLifecycleService = Depends(get_device_service),
):
    views = await service.search_by_manufacturer(manufacturer)
    return [DeviceResponse.from_view(v) for v in views]


@router.get("/{device_id}", response_model=DeviceResponse)
async def get_device(
    device_id: int,
    service: DeviceLifecycleService = Depends(get_device_service),
):
    return DeviceResponse.from_view(await service.get_by_id(device_id))


@router.get(
    "/{device_id}/patient",
    response_model=PatientResponse,
    responses={502: {"model": ErrorResponse}},
)
async def get_device_patient(
    device_id: int,
    service: DeviceLifecycleService = Depends(get_device_service),
):
    """Ask the patient service which patient holds this device."""
    return PatientResponse.from_summary(await service.get_assigned_patient(device_id))


# ========== Writes ==========


@router.post(
    "",
    response_model=DeviceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def create_device(
    request: DeviceSpecRequest,
    service: DeviceLifecycleService = Depends(get_device_service),
):
    """Create a device. The serial number must not be in use."""
    return DeviceResponse.from_view(await service.create(request.to_spec()))


@router.put(
    "/{device_id}",
    response_model=DeviceResponse,
    responses={409: {"model": ErrorResponse}},
)
async def update_device(
    device_id: int,
    request: DeviceSpecRequest,
    service: DeviceLifecycleService = Depends(get_device_service),
):
    """Replace a device. Optional fields left out of the body are cleared."""
    return DeviceResponse.from_view(await service.update(device_id, request.to_spec()))


@router.patch("/{device_id}/status", response_model=DeviceResponse)
async def update_device_status(
    device_id: int,
    device_status: DeviceStatus = Query(..., alias="status"),
    service: DeviceLifecycleService = Depends(get_device_service),
):
    """Change the status. MAINTENANCE also stamps the maintenance date."""
    return DeviceResponse.from_view(await service.update_status(device_id, device_status))


@router.put(
    "/{device_id}/assign/{patient_id}",
    response_model=DeviceResponse,
    responses={502: {"model": ErrorResponse}},
)
async def assign_device_to_patient(
    device_id: int,
    patient_id: int,
    service: DeviceLifecycleService = Depends(get_device_service),
):
    """Assign a device to a patient and record it on the patient side."""
    return DeviceResponse.from_view(await service.assign_to_patient(device_id, patient_id))


@router.delete("/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device(
    device_id: int,
    service: DeviceLifecycleService = Depends(get_device_service),
):
    await service.delete(device_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
