"""Automatic coverage of negative balances from investments"""

from datetime import date
from typing import List, Optional

from pocket_ledger.domain.exceptions import InsufficientFundsError
from pocket_ledger.domain.models import CoverageResult, Investment, Transaction, TransactionType
from pocket_ledger.infrastructure.database.repositories import LedgerRepository, LedgerStore
from pocket_ledger.infrastructure.observability.logging import log_coverage
from pocket_ledger.infrastructure.observability.metrics import record_coverage
from pocket_ledger.services.balance import BalanceEngine
from pocket_ledger.utils.date_utils import Clock, validate_month


def select_coverage_investment(investments: List[Investment], designated_id: Optional[str]) -> Optional[Investment]:
    """User-designated investment when it still exists, otherwise the largest balance"""
    if designated_id is not None:
        for investment in investments:
            if investment.id == designated_id:
                return investment
    if not investments:
        return None
    return max(investments, key=lambda inv: inv.principal_cents)


class CoverageEngine:
    """
    Withdraws the shortfall of a negative month from an investment and books
    it as income.

    The balance check, withdrawal and income posting share one unit of work,
    so a failure in any step leaves the ledger untouched.
    """

    def __init__(self, store: LedgerStore, clock: Clock, balance: BalanceEngine):
        self.store = store
        self.clock = clock
        self.balance = balance

    async def cover_negative_balance(self, month: str) -> Optional[CoverageResult]:
        """
        Cover today's shortfall while `month` is the current month or later.

        Returns:
            None for a month already over, when today's balance is not negative,
            or when today was already covered;
            otherwise a CoverageResult; success=False means nothing was posted
        """
        validate_month(month)
        today_month = self.clock.current_month()
        if month < today_month:
            return None

        async with self.store.transaction() as repo:
            # The shortfall is the running balance as of today
            summary = await self.balance.summarize(repo, today_month)
            if summary.current_balance_cents >= 0:
                return None

            posted_on = self.clock.today()
            if await self._already_covered(repo, posted_on):
                return None

            shortfall = -summary.current_balance_cents
            app_settings = await repo.get_settings()
            investment = select_coverage_investment(
                await repo.get_investments(), app_settings.coverage_investment_id
            )
            if investment is None:
                return self._failed(month, shortfall, None, "no_investment")

            try:
                await repo.withdraw_from_investment(investment.id, shortfall)
            except InsufficientFundsError:
                return self._failed(month, shortfall, investment, "insufficient_funds")

            income = await repo.add_transaction(
                Transaction(
                    id="",
                    type=TransactionType.INCOME,
                    amount_cents=shortfall,
                    date=posted_on,
                    category="income",
                    description=f"Automatic coverage: {investment.name}",
                    source_investment_id=investment.id,
                    auto_generated=True,
                )
            )

        record_coverage(success=True)
        log_coverage(month, True, shortfall, investment.id)
        return CoverageResult(
            success=True,
            amount_cents=shortfall,
            investment_id=investment.id,
            investment_name=investment.name,
            transaction_id=income.id,
        )

    @staticmethod
    async def _already_covered(repo: LedgerRepository, posted_on: date) -> bool:
        """A negative-balance event is identified by its posting day"""
        return any(
            t.is_income and t.source_investment_id is not None
            and t.date == posted_on
            for t in await repo.get_auto_generated_transactions()
        )

    @staticmethod
    def _failed(month: str, shortfall: int, investment: Optional[Investment], reason: str) -> CoverageResult:
        record_coverage(success=False, reason=reason)
        log_coverage(month, False, shortfall, investment.id if investment else None, reason)
        return CoverageResult(
            success=False,
            amount_cents=shortfall,
            investment_id=investment.id if investment else None,
            investment_name=investment.name if investment else None,
            reason=reason,
        )
