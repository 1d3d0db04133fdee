"""API routes for managing categories."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from expenser.core.context import get_store
from expenser.domain.categories.schemas import Category, CategoryCreate
from expenser.domain.categories.services import DuplicateCategoryError
from expenser.domain.transactions.store import TransactionStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[Category])
async def list_categories(store: TransactionStore = Depends(get_store)) -> list[Category]:
    """Return the default categories followed by the user's own."""
    return store.categories


@router.post("", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    store: TransactionStore = Depends(get_store),
) -> Category:
    try:
        category = await store.add_category(payload)
    except DuplicateCategoryError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    logger.info("Category %s created for %s", category.name, store.uid)
    return category
