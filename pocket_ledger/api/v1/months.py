"""GET /v1/months - month view/tick endpoints"""

import time
import logging
from fastapi import APIRouter, Depends, Request

from pocket_ledger.api.v1.schemas import (
    AutoPaymentSchema,
    CoverageSchema,
    MonthSummarySchema,
    MonthViewResponse,
    MonthsResponse,
)
from pocket_ledger.api.dependencies import get_ledger, get_request_id
from pocket_ledger.services.month import Ledger

router = APIRouter()


@router.get("/months", response_model=MonthsResponse)
async def list_months(ledger: Ledger = Depends(get_ledger)):
    """Months that have at least one transaction, ascending"""
    return MonthsResponse(months=await ledger.balance.months_with_transactions())


@router.get("/months/{month}", response_model=MonthViewResponse)
async def view_month(
    month: str,
    request: Request,
    ledger: Ledger = Depends(get_ledger),
):
    """
    Open a month.

    Accrues pending yields, settles closed card cycles through their payer
    cards, and covers a negative balance from an investment before
    returning the summary.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    view = await ledger.process_month(month)
    category_totals = await ledger.balance.category_totals(month)

    duration_ms = (time.time() - start_time) * 1000
    logging.info(
        "Month view served",
        extra={"request_id": request_id, "month": month, "duration_ms": round(duration_ms, 2)},
    )

    return MonthViewResponse(
        month=view.month,
        yield_total_cents=view.yield_total_cents,
        summary=MonthSummarySchema.model_validate(view.summary),
        auto_payments=AutoPaymentSchema.model_validate(view.auto_payments),
        coverage=CoverageSchema.model_validate(view.coverage) if view.coverage else None,
        category_totals=category_totals,
    )
