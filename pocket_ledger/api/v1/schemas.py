"""Pydantic schemas for API request/response validation"""

import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from pocket_ledger.domain.models import CycleStatus, TransactionType


class TransactionCreate(BaseModel):
    """Request body for POST /v1/transactions"""

    type: TransactionType
    amount_cents: int = Field(..., gt=0, description="Amount in cents")
    date: datetime.date
    category: str = "other"
    description: str = ""


class TransactionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: TransactionType
    amount_cents: int
    date: datetime.date
    month: str
    category: str
    description: str
    source_card_id: Optional[str] = None
    source_investment_id: Optional[str] = None
    auto_generated: bool = False
    billing_month: Optional[str] = None
    paid_card_id: Optional[str] = None
    paid_month: Optional[str] = None


class CardCreate(BaseModel):
    """Request body for POST /v1/cards"""

    name: str = Field(..., min_length=1)
    limit_cents: int = Field(..., ge=0, description="Total credit line in cents")
    closing_day: Optional[int] = Field(None, ge=1, le=31)
    due_day: Optional[int] = Field(None, ge=1, le=31)
    default_payer_card_id: Optional[str] = None


class CardUpdate(BaseModel):
    """Request body for PATCH /v1/cards/{card_id}; omitted fields stay as they are"""

    name: Optional[str] = Field(None, min_length=1)
    limit_cents: Optional[int] = Field(None, ge=0)
    closing_day: Optional[int] = Field(None, ge=1, le=31)
    due_day: Optional[int] = Field(None, ge=1, le=31)
    default_payer_card_id: Optional[str] = None


class CardSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    limit_cents: int
    available_limit_cents: int
    closing_day: int
    due_day: int
    default_payer_card_id: Optional[str] = None


class PurchaseCreate(BaseModel):
    """Request body for POST /v1/cards/{card_id}/purchases"""

    amount_cents: int = Field(..., gt=0)
    date: datetime.date
    category: str = "other"
    description: str = ""


class InvoicePaymentRequest(BaseModel):
    date: Optional[datetime.date] = None


class SkippedPaymentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    card_id: str
    month: str
    reason: str


class AutoPaymentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    created: List[TransactionSchema]
    skipped: List[SkippedPaymentSchema]


class CardStatementResponse(BaseModel):
    """Response for GET /v1/cards/{card_id}/statement"""

    model_config = ConfigDict(from_attributes=True)

    card: CardSchema
    month: str
    purchases: List[TransactionSchema]
    total_cents: int
    status: CycleStatus


class CardUpdateResponse(BaseModel):
    card: CardSchema
    auto_payments: AutoPaymentSchema


class InvestmentCreate(BaseModel):
    """Request body for POST /v1/investments"""

    name: str = Field(..., min_length=1)
    amount_cents: int = Field(..., ge=0)
    yield_rate: Optional[float] = Field(None, ge=0, description="Monthly rate in percent")
    start_date: Optional[datetime.date] = None


class AmountRequest(BaseModel):
    amount_cents: int = Field(..., gt=0)


class InvestmentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    principal_cents: int
    yield_rate: float
    start_date: datetime.date
    last_yield_month: Optional[str] = None


class InvestmentListResponse(BaseModel):
    investments: List[InvestmentSchema]
    total_invested_cents: int


class YieldEntrySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    amount_cents: int
    rate_applied: float
    principal_after_cents: int


class YieldHistoryResponse(BaseModel):
    investment_id: str
    entries: List[YieldEntrySchema]


class SettingsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    default_yield_rate: float = Field(..., ge=0)
    balance_yield_enabled: bool
    coverage_investment_id: Optional[str] = None


class MonthSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_balance_cents: int
    income_cents: int
    projected_expenses_cents: int
    projected_balance_cents: int
    balance_yield_cents: int


class CoverageSchema(BaseModel):
    """Coverage alert payload; the client decides when to dismiss it"""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    amount_cents: int
    investment_id: Optional[str] = None
    investment_name: Optional[str] = None
    transaction_id: Optional[str] = None
    reason: Optional[str] = None


class MonthViewResponse(BaseModel):
    """Response for GET /v1/months/{month}"""

    month: str
    yield_total_cents: int
    summary: MonthSummarySchema
    auto_payments: AutoPaymentSchema
    coverage: Optional[CoverageSchema] = None
    category_totals: Dict[str, int]


class MonthsResponse(BaseModel):
    months: List[str]
