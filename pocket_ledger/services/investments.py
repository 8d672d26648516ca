"""Investment balances and monthly yield accrual"""

from datetime import date
from typing import List, Optional

from pocket_ledger.domain.exceptions import InvalidAmountError, NotFoundError
from pocket_ledger.domain.models import Investment, YieldHistoryEntry
from pocket_ledger.domain.yields import monthly_yield_cents
from pocket_ledger.infrastructure.database.repositories import LedgerRepository, LedgerStore
from pocket_ledger.infrastructure.observability.logging import log_yield_applied
from pocket_ledger.infrastructure.observability.metrics import yield_counter
from pocket_ledger.utils.date_utils import Clock, months_in_range, next_month, validate_month


def pending_yield_months(investment: Investment, target_month: str) -> List[str]:
    """
    Months still owed yield, oldest first.

    Starts right after last_yield_month, or at the start month for an
    investment that never accrued. Empty when already up to date.
    """
    if investment.last_yield_month is not None:
        first = next_month(investment.last_yield_month)
    else:
        first = investment.start_month
    return months_in_range(first, target_month)


class InvestmentYieldEngine:
    """Compounds investments monthly; every run is idempotent per month"""

    def __init__(self, store: LedgerStore, clock: Clock):
        self.store = store
        self.clock = clock

    async def process_monthly_yields(self, month: str) -> int:
        """
        Apply every month of yield owed up to `month` (never past the current month).

        Multiple elapsed months compound sequentially: each step adds yield to
        the principal before the next one is computed. Returns the total
        yield applied in cents.
        """
        validate_month(month)
        target = min(month, self.clock.current_month())

        total = 0
        async with self.store.transaction() as repo:
            for investment in await repo.get_investments():
                total += await self._accrue(repo, investment, target)
        return total

    async def _accrue(self, repo: LedgerRepository, investment: Investment, target: str) -> int:
        months = pending_yield_months(investment, target)
        if not months:
            return 0

        already_recorded = {entry.month for entry in await repo.get_yield_history(investment.id)}
        applied = 0
        for month in months:
            if month not in already_recorded:
                amount = monthly_yield_cents(investment.principal_cents, investment.yield_rate)
                investment.principal_cents += amount
                await repo.add_yield_history(
                    YieldHistoryEntry(
                        investment_id=investment.id,
                        month=month,
                        amount_cents=amount,
                        rate_applied=investment.yield_rate,
                        principal_after_cents=investment.principal_cents,
                    )
                )
                applied += amount
                yield_counter.inc()
                log_yield_applied(investment.id, month, amount, investment.principal_cents)
            investment.last_yield_month = month

        await repo.update_investment(investment)
        return applied

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------
    async def create_investment(
        self,
        name: str,
        amount_cents: int,
        rate: Optional[float] = None,
        start_date: Optional[date] = None,
    ) -> Investment:
        if amount_cents < 0:
            raise InvalidAmountError("Initial amount cannot be negative")
        if rate is not None and rate < 0:
            raise InvalidAmountError("Yield rate cannot be negative")
        async with self.store.transaction() as repo:
            return await repo.create_investment(name, amount_cents, rate, start_date or self.clock.today())

    async def delete_investment(self, investment_id: str) -> None:
        async with self.store.transaction() as repo:
            await repo.delete_investment(investment_id)

    async def add_to_investment(self, investment_id: str, amount_cents: int) -> Investment:
        _require_positive(amount_cents)
        async with self.store.transaction() as repo:
            return await repo.add_to_investment(investment_id, amount_cents)

    async def withdraw_from_investment(self, investment_id: str, amount_cents: int) -> Investment:
        """
        Raises:
            NotFoundError: Unknown investment
            InsufficientFundsError: Amount exceeds the principal (nothing changes)
        """
        _require_positive(amount_cents)
        async with self.store.transaction() as repo:
            return await repo.withdraw_from_investment(investment_id, amount_cents)

    async def get_investments(self) -> List[Investment]:
        async with self.store.read() as repo:
            return await repo.get_investments()

    async def get_yield_history(self, investment_id: str) -> List[YieldHistoryEntry]:
        async with self.store.read() as repo:
            if await repo.get_investment_by_id(investment_id) is None:
                raise NotFoundError(f"Investment {investment_id} not found")
            return await repo.get_yield_history(investment_id)

    async def get_total_invested(self) -> int:
        async with self.store.read() as repo:
            return await repo.get_total_invested()

    async def get_default_yield_rate(self) -> float:
        async with self.store.read() as repo:
            return await repo.get_default_yield_rate()

    async def set_default_yield_rate(self, rate: float) -> None:
        if rate < 0:
            raise InvalidAmountError("Yield rate cannot be negative")
        async with self.store.transaction() as repo:
            await repo.set_default_yield_rate(rate)


def _require_positive(amount_cents: int) -> None:
    if amount_cents <= 0:
        raise InvalidAmountError(f"Amount must be positive, got {amount_cents}")
