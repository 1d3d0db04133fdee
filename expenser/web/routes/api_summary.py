"""API routes for the dashboard and analytics overviews."""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from expenser.core.context import AppServices, get_services, get_store
from expenser.domain.transactions.store import TransactionStore
from expenser.services.analytics import TIME_RANGE_MONTHS
from expenser.services.reports import DEFAULT_TIME_RANGE, build_analytics, build_dashboard

router = APIRouter()


@router.get("/dashboard")
async def get_dashboard(
    store: TransactionStore = Depends(get_store),
    services: AppServices = Depends(get_services),
):
    """Totals, recent activity, monthly series and category distribution."""
    today = date.today()
    return services.cache.get_or_build(
        (store.uid, store.version, "dashboard", today),
        lambda: build_dashboard(store.list(), store.categories, today),
    )


@router.get("/analytics")
async def get_analytics(
    time_range: str = Query(DEFAULT_TIME_RANGE, alias="timeRange"),
    category: str = Query("all"),
    store: TransactionStore = Depends(get_store),
    services: AppServices = Depends(get_services),
):
    if time_range not in TIME_RANGE_MONTHS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"timeRange must be one of {', '.join(TIME_RANGE_MONTHS)}",
        )
    today = date.today()
    return services.cache.get_or_build(
        (store.uid, store.version, "analytics", today, time_range, category),
        lambda: build_analytics(
            store.list(),
            store.categories,
            today,
            time_range=time_range,
            category=category,
        ),
    )
