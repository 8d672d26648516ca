"""Data access layer for ledger entities"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pocket_ledger.config import settings
from pocket_ledger.domain.exceptions import InsufficientFundsError, NotFoundError, RepositoryError
from pocket_ledger.domain.models import (
    AppSettings,
    CreditCard,
    Investment,
    Transaction,
    TransactionType,
    YieldHistoryEntry,
)
from pocket_ledger.infrastructure.database.models import (
    CreditCardRow,
    InvestmentRow,
    SettingRow,
    TransactionRow,
    YieldHistoryRow,
    new_id,
)


def _to_transaction(row: TransactionRow) -> Transaction:
    return Transaction(
        id=row.id,
        type=TransactionType(row.type),
        amount_cents=row.amount_cents,
        date=row.date,
        category=row.category,
        description=row.description,
        source_card_id=row.source_card_id,
        source_investment_id=row.source_investment_id,
        auto_generated=row.auto_generated,
        billing_month=row.billing_month,
        paid_card_id=row.paid_card_id,
        paid_month=row.paid_month,
        created_at=row.created_at,
    )


def _to_card(row: CreditCardRow) -> CreditCard:
    return CreditCard(
        id=row.id,
        name=row.name,
        limit_cents=row.limit_cents,
        available_limit_cents=row.available_limit_cents,
        closing_day=row.closing_day,
        due_day=row.due_day,
        default_payer_card_id=row.default_payer_card_id,
    )


def _to_investment(row: InvestmentRow) -> Investment:
    return Investment(
        id=row.id,
        name=row.name,
        principal_cents=row.principal_cents,
        yield_rate=row.yield_rate,
        start_date=row.start_date,
        last_yield_month=row.last_yield_month,
        created_at=row.created_at,
    )


def _to_yield_entry(row: YieldHistoryRow) -> YieldHistoryEntry:
    return YieldHistoryEntry(
        investment_id=row.investment_id,
        month=row.month,
        amount_cents=row.amount_cents,
        rate_applied=row.rate_applied,
        principal_after_cents=row.principal_after_cents,
    )


class LedgerRepository:
    """Repository for transactions, cards, investments, yield history and settings"""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    async def add_transaction(self, txn: Transaction) -> Transaction:
        """Persist a transaction; a blank id gets a fresh one"""
        row = TransactionRow(
            id=txn.id or new_id(),
            type=txn.type.value,
            amount_cents=txn.amount_cents,
            date=txn.date,
            month=txn.month,
            category=txn.category,
            description=txn.description,
            source_card_id=txn.source_card_id,
            source_investment_id=txn.source_investment_id,
            auto_generated=txn.auto_generated,
            billing_month=txn.billing_month,
            paid_card_id=txn.paid_card_id,
            paid_month=txn.paid_month,
        )
        self.session.add(row)
        await self.session.flush()  # Get server defaults without committing
        await self.session.refresh(row)
        return _to_transaction(row)

    async def get_transaction_by_id(self, transaction_id: str) -> Optional[Transaction]:
        row = await self.session.get(TransactionRow, transaction_id)
        return _to_transaction(row) if row else None

    async def delete_transaction(self, transaction_id: str) -> None:
        row = await self.session.get(TransactionRow, transaction_id)
        if row is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        await self.session.delete(row)
        await self.session.flush()

    async def get_all_transactions(self) -> List[Transaction]:
        """All transactions, newest first"""
        result = await self.session.execute(
            select(TransactionRow).order_by(TransactionRow.date.desc(), TransactionRow.created_at.desc())
        )
        return [_to_transaction(row) for row in result.scalars()]

    async def get_auto_generated_transactions(self) -> List[Transaction]:
        result = await self.session.execute(
            select(TransactionRow).where(TransactionRow.auto_generated.is_(True))
        )
        return [_to_transaction(row) for row in result.scalars()]

    async def get_settlements(self, card_id: str) -> List[Transaction]:
        """Payments (automatic or manual) that settle cycles of a card"""
        result = await self.session.execute(
            select(TransactionRow).where(TransactionRow.paid_card_id == card_id)
        )
        return [_to_transaction(row) for row in result.scalars()]

    async def get_months_with_transactions(self) -> List[str]:
        """Sorted calendar and billing months that hold any transaction"""
        calendar_months = await self.session.execute(select(TransactionRow.month).distinct())
        billing_months = await self.session.execute(
            select(TransactionRow.billing_month).where(TransactionRow.billing_month.is_not(None)).distinct()
        )
        months = set(calendar_months.scalars()) | set(billing_months.scalars())
        return sorted(months)

    # ------------------------------------------------------------------
    # Credit cards
    # ------------------------------------------------------------------
    async def get_credit_cards(self) -> List[CreditCard]:
        result = await self.session.execute(select(CreditCardRow).order_by(CreditCardRow.created_at))
        return [_to_card(row) for row in result.scalars()]

    async def get_credit_card_by_id(self, card_id: str) -> Optional[CreditCard]:
        row = await self.session.get(CreditCardRow, card_id)
        return _to_card(row) if row else None

    async def add_credit_card(
        self,
        name: str,
        limit_cents: int,
        closing_day: int,
        due_day: int,
        default_payer_card_id: Optional[str] = None,
    ) -> CreditCard:
        """New cards start with their full limit available"""
        row = CreditCardRow(
            id=new_id(),
            name=name.strip(),
            limit_cents=limit_cents,
            available_limit_cents=limit_cents,
            closing_day=closing_day,
            due_day=due_day,
            default_payer_card_id=default_payer_card_id,
        )
        self.session.add(row)
        await self.session.flush()
        return _to_card(row)

    async def update_credit_card(self, card: CreditCard) -> CreditCard:
        row = await self.session.get(CreditCardRow, card.id)
        if row is None:
            raise NotFoundError(f"Credit card {card.id} not found")
        row.name = card.name
        row.limit_cents = card.limit_cents
        row.available_limit_cents = card.available_limit_cents
        row.closing_day = card.closing_day
        row.due_day = card.due_day
        row.default_payer_card_id = card.default_payer_card_id
        await self.session.flush()
        return _to_card(row)

    async def delete_credit_card(self, card_id: str) -> None:
        row = await self.session.get(CreditCardRow, card_id)
        if row is None:
            raise NotFoundError(f"Credit card {card_id} not found")
        await self.session.delete(row)
        await self.session.flush()

    async def get_card_purchases(self, card_id: str, month: Optional[str] = None) -> List[Transaction]:
        """Purchases on a card, optionally restricted to one billing month, newest first"""
        stmt = select(TransactionRow).where(TransactionRow.source_card_id == card_id)
        if month is not None:
            stmt = stmt.where(TransactionRow.billing_month == month)
        stmt = stmt.order_by(TransactionRow.date.desc(), TransactionRow.created_at.desc())
        result = await self.session.execute(stmt)
        return [_to_transaction(row) for row in result.scalars()]

    async def get_card_monthly_total(self, card_id: str, month: str) -> int:
        result = await self.session.execute(
            select(func.coalesce(func.sum(TransactionRow.amount_cents), 0)).where(
                TransactionRow.source_card_id == card_id,
                TransactionRow.billing_month == month,
            )
        )
        return int(result.scalar_one())

    # ------------------------------------------------------------------
    # Investments
    # ------------------------------------------------------------------
    async def get_investments(self) -> List[Investment]:
        """All investments, newest first"""
        result = await self.session.execute(
            select(InvestmentRow).order_by(InvestmentRow.created_at.desc(), InvestmentRow.id)
        )
        return [_to_investment(row) for row in result.scalars()]

    async def get_investment_by_id(self, investment_id: str) -> Optional[Investment]:
        row = await self.session.get(InvestmentRow, investment_id)
        return _to_investment(row) if row else None

    async def create_investment(
        self,
        name: str,
        amount_cents: int,
        rate: Optional[float] = None,
        start_date: Optional[date] = None,
    ) -> Investment:
        if rate is None:
            rate = await self.get_default_yield_rate()
        row = InvestmentRow(
            id=new_id(),
            name=name.strip(),
            principal_cents=amount_cents,
            yield_rate=rate,
            start_date=start_date or date.today(),
        )
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return _to_investment(row)

    async def update_investment(self, investment: Investment) -> Investment:
        row = await self._investment_row(investment.id)
        row.name = investment.name
        row.principal_cents = investment.principal_cents
        row.yield_rate = investment.yield_rate
        row.start_date = investment.start_date
        row.last_yield_month = investment.last_yield_month
        await self.session.flush()
        return _to_investment(row)

    async def delete_investment(self, investment_id: str) -> None:
        """Delete an investment together with its yield history"""
        row = await self._investment_row(investment_id)
        await self.session.execute(
            delete(YieldHistoryRow).where(YieldHistoryRow.investment_id == investment_id)
        )
        await self.session.delete(row)
        await self.session.flush()

    async def add_to_investment(self, investment_id: str, amount_cents: int) -> Investment:
        row = await self._investment_row(investment_id)
        row.principal_cents += amount_cents
        await self.session.flush()
        return _to_investment(row)

    async def withdraw_from_investment(self, investment_id: str, amount_cents: int) -> Investment:
        """
        Reduce an investment's principal.

        Raises:
            NotFoundError: Unknown investment id
            InsufficientFundsError: Amount exceeds the principal
        """
        row = await self._investment_row(investment_id)
        if amount_cents > row.principal_cents:
            raise InsufficientFundsError(investment_id, amount_cents, row.principal_cents)
        row.principal_cents -= amount_cents
        await self.session.flush()
        return _to_investment(row)

    async def get_total_invested(self) -> int:
        result = await self.session.execute(
            select(func.coalesce(func.sum(InvestmentRow.principal_cents), 0))
        )
        return int(result.scalar_one())

    async def _investment_row(self, investment_id: str) -> InvestmentRow:
        row = await self.session.get(InvestmentRow, investment_id)
        if row is None:
            raise NotFoundError(f"Investment {investment_id} not found")
        return row

    # ------------------------------------------------------------------
    # Yield history
    # ------------------------------------------------------------------
    async def get_yield_history(self, investment_id: str) -> List[YieldHistoryEntry]:
        """Yield entries for an investment, newest month first"""
        result = await self.session.execute(
            select(YieldHistoryRow)
            .where(YieldHistoryRow.investment_id == investment_id)
            .order_by(YieldHistoryRow.month.desc())
        )
        return [_to_yield_entry(row) for row in result.scalars()]

    async def add_yield_history(self, entry: YieldHistoryEntry) -> None:
        self.session.add(
            YieldHistoryRow(
                investment_id=entry.investment_id,
                month=entry.month,
                amount_cents=entry.amount_cents,
                rate_applied=entry.rate_applied,
                principal_after_cents=entry.principal_after_cents,
            )
        )
        await self.session.flush()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    async def get_settings(self) -> AppSettings:
        """Stored settings, falling back to configured defaults"""
        result = await self.session.execute(select(SettingRow))
        values = {row.key: row.value for row in result.scalars()}

        app_settings = AppSettings(
            default_yield_rate=settings.default_yield_rate,
            balance_yield_enabled=settings.balance_yield_enabled,
        )
        if values.get("default_yield_rate") is not None:
            app_settings.default_yield_rate = float(values["default_yield_rate"])
        if values.get("balance_yield_enabled") is not None:
            app_settings.balance_yield_enabled = values["balance_yield_enabled"] == "true"
        app_settings.coverage_investment_id = values.get("coverage_investment_id") or None
        return app_settings

    async def save_settings(self, app_settings: AppSettings) -> None:
        await self._put_setting("default_yield_rate", str(app_settings.default_yield_rate))
        await self._put_setting("balance_yield_enabled", "true" if app_settings.balance_yield_enabled else "false")
        await self._put_setting("coverage_investment_id", app_settings.coverage_investment_id)
        await self.session.flush()

    async def get_default_yield_rate(self) -> float:
        return (await self.get_settings()).default_yield_rate

    async def set_default_yield_rate(self, rate: float) -> None:
        await self._put_setting("default_yield_rate", str(rate))
        await self.session.flush()

    async def _put_setting(self, key: str, value: Optional[str]) -> None:
        row = await self.session.get(SettingRow, key)
        if row is None:
            self.session.add(SettingRow(key=key, value=value))
        else:
            row.value = value


class LedgerStore:
    """
    Hands out repositories bound to a session.

    read() opens a plain session for queries. transaction() is the unit of
    work: it holds the single-writer lock and a session.begin() block, so the
    whole scope commits on success and rolls back on any exception. Storage
    failures are raised as RepositoryError.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[LedgerRepository]:
        try:
            async with self._session_factory() as session:
                yield LedgerRepository(session)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Ledger read failed: {e}") from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[LedgerRepository]:
        async with self._write_lock:
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        yield LedgerRepository(session)
            except SQLAlchemyError as e:
                raise RepositoryError(f"Ledger write failed: {e}") from e
