"""JSON API router for the signed-in user's data."""
from __future__ import annotations

from fastapi import APIRouter

from expenser.web.routes import (
    api_categories,
    api_chat,
    api_profile,
    api_reports,
    api_summary,
    api_transactions,
)

router = APIRouter()

router.include_router(api_transactions.router, prefix="/transactions", tags=["transactions"])
router.include_router(api_categories.router, prefix="/categories", tags=["categories"])
router.include_router(api_summary.router, tags=["summary"])
router.include_router(api_reports.router, tags=["reports"])
router.include_router(api_chat.router, tags=["chat"])
router.include_router(api_profile.router, tags=["profile"])
