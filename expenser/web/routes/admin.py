import logging

from fastapi import APIRouter, Depends

from expenser.core.admin import require_admin
from expenser.core.context import AppServices, get_services
from expenser.domain.users.schemas import Identity

logger = logging.getLogger("expenser.security")

router = APIRouter(prefix="/admin")


@router.post("/storage/clear")
async def clear_storage(
    identity: Identity = Depends(require_admin),
    services: AppServices = Depends(get_services),
) -> dict[str, int]:
    """Wipe every stored key for every user."""
    removed = await services.storage.clear()
    services.stores.clear()
    services.cache.clear()
    logger.warning("Global storage clear by %s removed %s keys", identity.email, removed)
    return {"removed": removed}
