import logging

from fastapi import APIRouter, Depends

from expenser.core.context import AppServices, get_services
from expenser.domain.storage.services import StorageError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", summary="Health check")
async def health(services: AppServices = Depends(get_services)) -> dict[str, str]:
    """Simple health check that also touches the storage table."""
    try:
        await services.storage.keys()
        storage_status = "ok"
    except StorageError:
        storage_status = "error"
        logger.exception("Storage healthcheck failed")

    return {"status": "ok", "storage": storage_status}
