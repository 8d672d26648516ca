"""Credit card endpoints: configuration, purchases, statements and invoice payments"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response

from pocket_ledger.api.v1.schemas import (
    AutoPaymentSchema,
    CardCreate,
    CardSchema,
    CardStatementResponse,
    CardUpdate,
    CardUpdateResponse,
    InvoicePaymentRequest,
    PurchaseCreate,
    TransactionSchema,
)
from pocket_ledger.api.dependencies import get_ledger, get_request_id
from pocket_ledger.services.month import Ledger
from pocket_ledger.utils.date_utils import validate_month

router = APIRouter()


@router.get("/cards", response_model=List[CardSchema])
async def list_cards(ledger: Ledger = Depends(get_ledger)):
    return [CardSchema.model_validate(c) for c in await ledger.cards.get_cards()]


@router.post("/cards", response_model=CardSchema, status_code=201)
async def create_card(request_body: CardCreate, ledger: Ledger = Depends(get_ledger)):
    card = await ledger.cards.create_card(
        name=request_body.name,
        limit_cents=request_body.limit_cents,
        closing_day=request_body.closing_day,
        due_day=request_body.due_day,
        default_payer_card_id=request_body.default_payer_card_id,
    )
    return CardSchema.model_validate(card)


@router.get("/cards/{card_id}", response_model=CardSchema)
async def get_card(card_id: str, ledger: Ledger = Depends(get_ledger)):
    return CardSchema.model_validate(await ledger.cards.get_card(card_id))


@router.patch("/cards/{card_id}", response_model=CardUpdateResponse)
async def update_card(
    card_id: str,
    request_body: CardUpdate,
    request: Request,
    ledger: Ledger = Depends(get_ledger),
):
    """
    Edit a card.

    Only fields present in the body change; sending default_payer_card_id as
    null removes the payer. Closed cycles are then reconciled so a newly
    assigned payer settles them right away.
    """
    changes = request_body.model_dump(exclude_unset=True)
    await ledger.cards.update_card(card_id, **changes)
    reconciled = await ledger.cards.reconcile_auto_payments(card_id)
    card = await ledger.cards.get_card(card_id)

    logging.info(
        "Card updated",
        extra={
            "request_id": get_request_id(request),
            "card_id": card_id,
            "fields": sorted(changes),
            "auto_payments_created": len(reconciled.created),
        },
    )
    return CardUpdateResponse(
        card=CardSchema.model_validate(card),
        auto_payments=AutoPaymentSchema.model_validate(reconciled),
    )


@router.delete("/cards/{card_id}", status_code=204)
async def delete_card(card_id: str, ledger: Ledger = Depends(get_ledger)):
    await ledger.cards.delete_card(card_id)
    return Response(status_code=204)


@router.post("/cards/{card_id}/purchases", response_model=TransactionSchema, status_code=201)
async def post_purchase(
    card_id: str,
    request_body: PurchaseCreate,
    ledger: Ledger = Depends(get_ledger),
):
    """Charge the card; a purchase above the available limit is rejected with 422"""
    purchase = await ledger.cards.post_purchase(
        card_id=card_id,
        amount_cents=request_body.amount_cents,
        purchase_date=request_body.date,
        category=request_body.category,
        description=request_body.description,
    )
    return TransactionSchema.model_validate(purchase)


@router.get("/cards/{card_id}/statement", response_model=CardStatementResponse)
async def get_statement(
    card_id: str,
    month: str = Query(..., description="Billing month, YYYY-MM"),
    ledger: Ledger = Depends(get_ledger),
):
    statement = await ledger.cards.get_statement(card_id, month)
    return CardStatementResponse.model_validate(statement)


@router.post("/cards/{card_id}/invoices/{month}/payment", response_model=TransactionSchema, status_code=201)
async def pay_invoice(
    card_id: str,
    month: str,
    request_body: Optional[InvoicePaymentRequest] = None,
    ledger: Ledger = Depends(get_ledger),
):
    """Settle a card cycle that has no payer card, from the balance"""
    validate_month(month)
    payment_date = request_body.date if request_body else None
    payment = await ledger.cards.pay_invoice(card_id, month, payment_date)
    return TransactionSchema.model_validate(payment)
