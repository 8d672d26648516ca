"""Income and expense entry endpoints"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response

from pocket_ledger.api.v1.schemas import TransactionCreate, TransactionSchema
from pocket_ledger.api.dependencies import get_ledger
from pocket_ledger.services.month import Ledger

router = APIRouter()


@router.get("/transactions", response_model=List[TransactionSchema])
async def list_transactions(
    month: Optional[str] = Query(None, description="Calendar month, YYYY-MM"),
    ledger: Ledger = Depends(get_ledger),
):
    transactions = await ledger.transactions.list_transactions(month)
    return [TransactionSchema.model_validate(t) for t in transactions]


@router.post("/transactions", response_model=TransactionSchema, status_code=201)
async def create_transaction(
    request_body: TransactionCreate,
    ledger: Ledger = Depends(get_ledger),
):
    txn = await ledger.transactions.add_transaction(
        type=request_body.type,
        amount_cents=request_body.amount_cents,
        txn_date=request_body.date,
        category=request_body.category,
        description=request_body.description,
    )
    return TransactionSchema.model_validate(txn)


@router.delete("/transactions/{transaction_id}", status_code=204)
async def delete_transaction(transaction_id: str, ledger: Ledger = Depends(get_ledger)):
    """Delete a transaction; limits of cards it touched are recomputed"""
    await ledger.transactions.delete_transaction(transaction_id)
    return Response(status_code=204)
