"""API routes for the signed-in user's transactions."""
from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response

from expenser.core.context import get_store
from expenser.domain.transactions.schemas import TransactionCreate, TransactionOut, TransactionUpdate
from expenser.domain.transactions.store import TransactionStore
from expenser.services.analytics import TransactionFilter, filter_transactions
from expenser.services.reports import with_category_display

logger = logging.getLogger(__name__)

router = APIRouter()


def _out(store: TransactionStore, transaction) -> TransactionOut:
    return TransactionOut.model_validate(with_category_display(transaction, store.categories))


@router.get("", response_model=list[TransactionOut])
async def list_transactions(
    search: str = Query("", max_length=200),
    category: Optional[str] = Query(None),
    type: Optional[Literal["income", "expense"]] = Query(None),
    store: TransactionStore = Depends(get_store),
) -> list[TransactionOut]:
    """Return transactions matching the filters, newest created first."""
    transaction_filter = TransactionFilter(
        categories=(category,) if category and category != "all" else (),
        include_income=type in (None, "income"),
        include_expenses=type in (None, "expense"),
        search=search.strip(),
    )
    matches = filter_transactions(store.list(), transaction_filter)
    matches.sort(key=lambda t: t.created_at, reverse=True)
    return [_out(store, t) for t in matches]


@router.post("", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    store: TransactionStore = Depends(get_store),
) -> TransactionOut:
    transaction = await store.add(payload)
    logger.info("Transaction %s created for %s", transaction.id, store.uid)
    return _out(store, transaction)


@router.patch("/{transaction_id}", response_model=Optional[TransactionOut])
async def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    store: TransactionStore = Depends(get_store),
) -> Optional[TransactionOut]:
    """Merge the sent fields. An unknown id changes nothing and returns null."""
    transaction = await store.update(transaction_id, payload)
    if transaction is None:
        logger.debug("Update ignored for unknown transaction %s", transaction_id)
        return None
    return _out(store, transaction)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: str,
    store: TransactionStore = Depends(get_store),
) -> Response:
    if not await store.remove(transaction_id):
        logger.debug("Delete ignored for unknown transaction %s", transaction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
