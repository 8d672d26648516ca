"""Month balance derivation from the transaction ledger"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Set, Tuple

from pocket_ledger.domain.models import MonthSummary, Transaction
from pocket_ledger.domain.yields import monthly_yield_cents
from pocket_ledger.infrastructure.database.repositories import LedgerRepository, LedgerStore
from pocket_ledger.utils.date_utils import Clock, validate_month


def auto_settled_cycles(transactions: Iterable[Transaction]) -> Set[Tuple[str, str]]:
    """(card, billing month) pairs settled by a charge on a payer card"""
    return {
        (t.paid_card_id, t.paid_month)
        for t in transactions
        if t.source_card_id is not None and t.paid_card_id is not None
    }


def affects_balance(
    txn: Transaction,
    payer_backed_cards: Set[str],
    auto_settled: Set[Tuple[str, str]],
) -> bool:
    """
    Whether a transaction moves the user's balance.

    A purchase whose cycle was settled by a payer card reaches the balance
    through that payer charge, whatever the card's payer is today. Purchases
    in unsettled cycles of a card that currently has a payer wait for its
    auto-payment. Manual invoice settlements only mark purchases that were
    already counted in their billing month.
    """
    if txn.is_invoice_settlement:
        return False
    if txn.source_card_id is None:
        return True
    if (txn.source_card_id, txn.billing_month) in auto_settled:
        return False
    return txn.source_card_id not in payer_backed_cards


def summarize(
    month: str,
    transactions: Iterable[Transaction],
    payer_backed_cards: Set[str],
    today: date,
) -> tuple[int, int, int]:
    """
    Returns (current_balance, income, projected_expenses) in cents.

    Requirements:
    - Income and balance are cumulative over every effective month <= month,
      counting only entries dated on or before today
    - Projected expenses are entries of this exact month dated after today
    """
    transactions = list(transactions)
    auto_settled = auto_settled_cycles(transactions)
    income = 0
    spent = 0
    projected = 0

    for txn in transactions:
        if not affects_balance(txn, payer_backed_cards, auto_settled):
            continue
        effective = txn.effective_month
        if effective > month:
            continue

        if txn.is_income:
            if txn.date <= today:
                income += txn.amount_cents
        elif txn.date <= today:
            spent += txn.amount_cents
        elif effective == month:
            projected += txn.amount_cents

    return income - spent, income, projected


class BalanceEngine:
    """Read-only month summaries; safe to call repeatedly and concurrently"""

    def __init__(self, store: LedgerStore, clock: Clock):
        self.store = store
        self.clock = clock

    async def compute_month_summary(self, month: str) -> MonthSummary:
        validate_month(month)
        async with self.store.read() as repo:
            return await self.summarize(repo, month)

    async def summarize(self, repo: LedgerRepository, month: str) -> MonthSummary:
        """Summary against an already-open repository (used inside units of work)"""
        transactions = await repo.get_all_transactions()
        payer_backed = await self._payer_backed_cards(repo)
        current_balance, income, projected = summarize(month, transactions, payer_backed, self.clock.today())

        balance_yield = 0
        app_settings = await repo.get_settings()
        if app_settings.balance_yield_enabled and current_balance > 0:
            balance_yield = monthly_yield_cents(current_balance, app_settings.default_yield_rate)

        return MonthSummary(
            month=month,
            current_balance_cents=current_balance,
            income_cents=income,
            projected_expenses_cents=projected,
            projected_balance_cents=current_balance - projected,
            balance_yield_cents=balance_yield,
        )

    async def category_totals(self, month: str) -> Dict[str, int]:
        """Expense totals per category for one effective month"""
        validate_month(month)
        async with self.store.read() as repo:
            transactions = await repo.get_all_transactions()
            payer_backed = await self._payer_backed_cards(repo)

        auto_settled = auto_settled_cycles(transactions)
        totals: Dict[str, int] = defaultdict(int)
        for txn in transactions:
            if txn.is_income or txn.effective_month != month:
                continue
            if affects_balance(txn, payer_backed, auto_settled):
                totals[txn.category] += txn.amount_cents
        return dict(totals)

    async def months_with_transactions(self) -> List[str]:
        async with self.store.read() as repo:
            return await repo.get_months_with_transactions()

    @staticmethod
    async def _payer_backed_cards(repo: LedgerRepository) -> Set[str]:
        cards = await repo.get_credit_cards()
        return {card.id for card in cards if card.default_payer_card_id}
