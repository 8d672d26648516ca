"""Investment endpoints"""

from fastapi import APIRouter, Depends, Response

from pocket_ledger.api.v1.schemas import (
    AmountRequest,
    InvestmentCreate,
    InvestmentListResponse,
    InvestmentSchema,
    YieldEntrySchema,
    YieldHistoryResponse,
)
from pocket_ledger.api.dependencies import get_ledger
from pocket_ledger.services.month import Ledger

router = APIRouter()


@router.get("/investments", response_model=InvestmentListResponse)
async def list_investments(ledger: Ledger = Depends(get_ledger)):
    investments = await ledger.investments.get_investments()
    return InvestmentListResponse(
        investments=[InvestmentSchema.model_validate(i) for i in investments],
        total_invested_cents=sum(i.principal_cents for i in investments),
    )


@router.post("/investments", response_model=InvestmentSchema, status_code=201)
async def create_investment(request_body: InvestmentCreate, ledger: Ledger = Depends(get_ledger)):
    """Without a yield_rate the investment uses the default rate from settings"""
    investment = await ledger.investments.create_investment(
        name=request_body.name,
        amount_cents=request_body.amount_cents,
        rate=request_body.yield_rate,
        start_date=request_body.start_date,
    )
    return InvestmentSchema.model_validate(investment)


@router.post("/investments/{investment_id}/deposit", response_model=InvestmentSchema)
async def deposit(investment_id: str, request_body: AmountRequest, ledger: Ledger = Depends(get_ledger)):
    investment = await ledger.investments.add_to_investment(investment_id, request_body.amount_cents)
    return InvestmentSchema.model_validate(investment)


@router.post("/investments/{investment_id}/withdraw", response_model=InvestmentSchema)
async def withdraw(investment_id: str, request_body: AmountRequest, ledger: Ledger = Depends(get_ledger)):
    investment = await ledger.investments.withdraw_from_investment(investment_id, request_body.amount_cents)
    return InvestmentSchema.model_validate(investment)


@router.delete("/investments/{investment_id}", status_code=204)
async def delete_investment(investment_id: str, ledger: Ledger = Depends(get_ledger)):
    await ledger.investments.delete_investment(investment_id)
    return Response(status_code=204)


@router.get("/investments/{investment_id}/yields", response_model=YieldHistoryResponse)
async def yield_history(investment_id: str, ledger: Ledger = Depends(get_ledger)):
    entries = await ledger.investments.get_yield_history(investment_id)
    return YieldHistoryResponse(
        investment_id=investment_id,
        entries=[YieldEntrySchema.model_validate(e) for e in entries],
    )
