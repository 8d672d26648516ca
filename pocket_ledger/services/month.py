"""Month view/tick: the ordered run of every engine for one month"""

import logging

from pocket_ledger.domain.exceptions import NotFoundError
from pocket_ledger.domain.models import AppSettings, MonthView
from pocket_ledger.infrastructure.database.repositories import LedgerStore
from pocket_ledger.services.balance import BalanceEngine
from pocket_ledger.services.coverage import CoverageEngine
from pocket_ledger.services.credit_cards import CreditCardCycleEngine
from pocket_ledger.services.investments import InvestmentYieldEngine
from pocket_ledger.services.transactions import TransactionService
from pocket_ledger.utils.date_utils import Clock, validate_month


class Ledger:
    """Wires the engines over one store and clock"""

    def __init__(self, store: LedgerStore, clock: Clock):
        self.store = store
        self.clock = clock
        self.balance = BalanceEngine(store, clock)
        self.cards = CreditCardCycleEngine(store, clock)
        self.investments = InvestmentYieldEngine(store, clock)
        self.coverage = CoverageEngine(store, clock, self.balance)
        self.transactions = TransactionService(store, self.cards)

    async def get_settings(self) -> AppSettings:
        async with self.store.read() as repo:
            return await repo.get_settings()

    async def update_settings(self, app_settings: AppSettings) -> AppSettings:
        """Persist user settings; the coverage investment must exist when given"""
        async with self.store.transaction() as repo:
            if app_settings.coverage_investment_id is not None:
                if await repo.get_investment_by_id(app_settings.coverage_investment_id) is None:
                    raise NotFoundError(f"Investment {app_settings.coverage_investment_id} not found")
            await repo.save_settings(app_settings)
            return await repo.get_settings()

    async def process_month(self, month: str) -> MonthView:
        """
        Run one month view/tick.

        Flow:
        1. Accrue investment yields (coverage needs current balances)
        2. Generate auto-payments for closed card cycles of the month
        3. Compute the month summary
        4. If the balance is negative, cover it from an investment and recompute
        """
        validate_month(month)

        yield_total = await self.investments.process_monthly_yields(month)
        auto_payments = await self.cards.generate_auto_payments(month)
        summary = await self.balance.compute_month_summary(month)

        coverage = None
        if summary.current_balance_cents < 0:
            coverage = await self.coverage.cover_negative_balance(month)
            if coverage is not None and coverage.success:
                summary = await self.balance.compute_month_summary(month)

        logging.info(
            "Month processed",
            extra={
                "step": "month_tick",
                "month": month,
                "yield_total_cents": yield_total,
                "auto_payments_created": len(auto_payments.created),
                "current_balance_cents": summary.current_balance_cents,
                "coverage_outcome": None if coverage is None else ("covered" if coverage.success else coverage.reason),
            },
        )

        return MonthView(
            month=month,
            yield_total_cents=yield_total,
            auto_payments=auto_payments,
            summary=summary,
            coverage=coverage,
        )
