"""Domain models - pure Python dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pocket_ledger.utils.date_utils import month_key


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class CycleStatus(str, Enum):
    """Billing cycle state of one card for one month"""

    OPEN = "open"  # purchases accruing
    CLOSED = "closed"  # total fixed, auto-payment pending
    PAID = "paid"
    UNPAID = "unpaid"  # closed, no payer configured


@dataclass
class Transaction:
    """Ledger entry; amounts are always positive, direction comes from type"""

    id: str
    type: TransactionType
    amount_cents: int
    date: date
    category: str = "other"
    description: str = ""
    source_card_id: Optional[str] = None
    source_investment_id: Optional[str] = None
    auto_generated: bool = False
    billing_month: Optional[str] = None
    paid_card_id: Optional[str] = None  # card cycle this payment settles
    paid_month: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def month(self) -> str:
        return month_key(self.date)

    @property
    def effective_month(self) -> str:
        """Billing month for card purchases, calendar month otherwise"""
        return self.billing_month or self.month

    @property
    def is_card_purchase(self) -> bool:
        return self.source_card_id is not None

    @property
    def is_invoice_settlement(self) -> bool:
        """Manual payment marker; the purchases it settles already hit the balance"""
        return self.paid_card_id is not None and self.source_card_id is None

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME


@dataclass
class CreditCard:
    id: str
    name: str
    limit_cents: int
    available_limit_cents: int
    closing_day: int = 25
    due_day: int = 5
    default_payer_card_id: Optional[str] = None


@dataclass
class Investment:
    id: str
    name: str
    principal_cents: int
    yield_rate: float  # monthly %
    start_date: date
    last_yield_month: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def start_month(self) -> str:
        return month_key(self.start_date)


@dataclass
class YieldHistoryEntry:
    investment_id: str
    month: str
    amount_cents: int
    rate_applied: float
    principal_after_cents: int


@dataclass
class AppSettings:
    """User-level settings consumed (not owned) by the engines"""

    default_yield_rate: float = 6.5
    balance_yield_enabled: bool = False
    coverage_investment_id: Optional[str] = None


@dataclass
class MonthSummary:
    month: str
    current_balance_cents: int
    income_cents: int
    projected_expenses_cents: int
    projected_balance_cents: int
    balance_yield_cents: int = 0


@dataclass
class CoverageResult:
    """Outcome of an automatic coverage attempt, shown as a dismissible alert"""

    success: bool
    amount_cents: int
    investment_id: Optional[str] = None
    investment_name: Optional[str] = None
    transaction_id: Optional[str] = None
    reason: Optional[str] = None  # no_investment | insufficient_funds


@dataclass
class SkippedPayment:
    card_id: str
    month: str
    reason: str


@dataclass
class AutoPaymentResult:
    created: List[Transaction] = field(default_factory=list)
    skipped: List[SkippedPayment] = field(default_factory=list)


@dataclass
class CardStatement:
    card: CreditCard
    month: str
    purchases: List[Transaction]
    total_cents: int
    status: CycleStatus


@dataclass
class MonthView:
    """Everything produced by one month view/tick"""

    month: str
    yield_total_cents: int
    auto_payments: AutoPaymentResult
    summary: MonthSummary
    coverage: Optional[CoverageResult] = None
