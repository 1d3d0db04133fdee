"""Profile, account statistics and account data management."""
from __future__ import annotations

import io
import logging
from datetime import date

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response, StreamingResponse

from expenser.core.context import AppServices, get_services, get_store
from expenser.core.cookies import clear_session_cookie
from expenser.core.session import get_current_user
from expenser.domain.transactions.store import TransactionStore
from expenser.domain.users.schemas import Identity
from expenser.services.exports import render_data_export
from expenser.services.reports import build_profile_stats

logger = logging.getLogger("expenser.security")

router = APIRouter(prefix="/profile")

DATA_EXPORT_FILENAME = "expenser-data-export.json"


@router.get("")
async def get_profile(
    identity: Identity = Depends(get_current_user),
    store: TransactionStore = Depends(get_store),
):
    return {
        "user": identity.model_dump(by_alias=True),
        "stats": build_profile_stats(identity, store.list(), date.today()),
    }


@router.get("/export")
async def export_profile_data(
    identity: Identity = Depends(get_current_user),
    store: TransactionStore = Depends(get_store),
) -> StreamingResponse:
    """Everything stored for the user, as one JSON download."""
    content = render_data_export(identity.model_dump(by_alias=True), store.list(), store.categories)
    return StreamingResponse(
        io.BytesIO(content.encode("utf-8")),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{DATA_EXPORT_FILENAME}"'},
    )


@router.delete("/data", status_code=status.HTTP_204_NO_CONTENT)
async def delete_profile_data(
    identity: Identity = Depends(get_current_user),
    services: AppServices = Depends(get_services),
) -> Response:
    """Remove the user's stored transactions and categories, then sign out."""
    await services.stores.forget(identity.uid)
    services.cache.invalidate(identity.uid)
    await services.sessions.logout(identity)
    logger.warning("Stored data deleted for %s", identity.uid)

    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_session_cookie(response)
    return response
