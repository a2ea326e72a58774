"""FastAPI router for service health.

Reports the state of the device store and whether the patient client
is available. The patient service itself is not called.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ...api.database import check_database_health
from .dependencies import get_db_pool, get_device_repo, get_patient_directory

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
@router.get("/api/health")
async def health_check():
    """Health check. 503 when the device store is unhealthy."""
    pool = get_db_pool()
    if pool is not None:
        store = await check_database_health(pool)
        store["type"] = "postgres"
    else:
        # In-memory store (or not yet started)
        try:
            get_device_repo()
            store = {"healthy": True, "type": "memory"}
        except RuntimeError as e:
            store = {"healthy": False, "error": str(e)}

    body = {
        "status": "healthy" if store["healthy"] else "unhealthy",
        "service": "insulin-pump-device-service",
        "store": store,
        "patient_service": "connected" if get_patient_directory() else "unavailable",
    }

    if not store["healthy"]:
        logger.warning(f"Health check failed: {store.get('error')}")
        return JSONResponse(status_code=503, content=body)
    return body
