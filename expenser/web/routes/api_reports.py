"""Report summary and export downloads."""
from __future__ import annotations

import io
import logging
from datetime import date, datetime, timezone
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from expenser.core.context import AppServices, get_services, get_store
from expenser.domain.transactions.store import TransactionStore
from expenser.services.analytics import TransactionFilter, filter_transactions
from expenser.services.exports import (
    ReportParameters,
    csv_filename,
    render_csv,
    render_json,
    render_pdf,
    report_filename,
)
from expenser.services.reports import build_report_summary, default_report_range

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports")


def report_parameters(
    start: Optional[date] = Query(None, alias="from"),
    end: Optional[date] = Query(None, alias="to"),
    categories: Optional[List[str]] = Query(None, alias="category"),
    include_income: bool = Query(True, alias="includeIncome"),
    include_expenses: bool = Query(True, alias="includeExpenses"),
    report_type: Literal["summary", "detailed"] = Query("summary", alias="reportType"),
) -> ReportParameters:
    default_start, default_end = default_report_range(date.today())
    params = ReportParameters(
        start=start or default_start,
        end=end or default_end,
        categories=tuple(categories or ()),
        include_income=include_income,
        include_expenses=include_expenses,
        report_type=report_type,
        generated_on=datetime.now(timezone.utc),
    )
    if params.start > params.end:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="'from' must not be after 'to'",
        )
    return params


def _as_filter(params: ReportParameters) -> TransactionFilter:
    return TransactionFilter(
        start=params.start,
        end=params.end,
        categories=params.categories,
        include_income=params.include_income,
        include_expenses=params.include_expenses,
    )


def _report(store: TransactionStore, services: AppServices, params: ReportParameters):
    transaction_filter = _as_filter(params)
    transactions = filter_transactions(store.list(), transaction_filter)
    summary = services.cache.get_or_build(
        (store.uid, store.version, "report", transaction_filter),
        lambda: build_report_summary(transactions, store.categories),
    )
    return transactions, summary


def _download(content: bytes, media_type: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/summary")
async def get_report_summary(
    params: ReportParameters = Depends(report_parameters),
    store: TransactionStore = Depends(get_store),
    services: AppServices = Depends(get_services),
):
    _transactions, summary = _report(store, services, params)
    return {"from": params.start, "to": params.end, **summary}


@router.get("/export.csv")
async def export_csv(
    params: ReportParameters = Depends(report_parameters),
    store: TransactionStore = Depends(get_store),
    services: AppServices = Depends(get_services),
) -> StreamingResponse:
    transactions, _summary = _report(store, services, params)
    return _download(
        render_csv(transactions).encode("utf-8"),
        "text/csv",
        csv_filename(params.start, params.end),
    )


@router.get("/export.json")
async def export_json(
    params: ReportParameters = Depends(report_parameters),
    store: TransactionStore = Depends(get_store),
    services: AppServices = Depends(get_services),
) -> StreamingResponse:
    transactions, summary = _report(store, services, params)
    return _download(
        render_json(transactions, summary, params).encode("utf-8"),
        "application/json",
        report_filename(params.start, params.end, "json"),
    )


@router.get("/export.pdf")
async def export_pdf(
    params: ReportParameters = Depends(report_parameters),
    store: TransactionStore = Depends(get_store),
    services: AppServices = Depends(get_services),
) -> StreamingResponse:
    transactions, summary = _report(store, services, params)
    logger.info("PDF report requested by %s (%s)", store.uid, params.report_type)
    return _download(
        render_pdf(transactions, summary, params),
        "application/pdf",
        report_filename(params.start, params.end, "pdf"),
    )
