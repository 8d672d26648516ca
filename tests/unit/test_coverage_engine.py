"""Unit tests for automatic coverage of negative balances"""

import pytest
from datetime import date
from sqlalchemy.exc import SQLAlchemyError
from pocket_ledger.domain.exceptions import RepositoryError
from pocket_ledger.domain.models import AppSettings, Investment, TransactionType
from pocket_ledger.infrastructure.database.repositories import LedgerRepository
from pocket_ledger.services.coverage import select_coverage_investment
from pocket_ledger.services.month import Ledger

EXPENSE = TransactionType.EXPENSE


def _investment(id: str, principal: int) -> Investment:
    return Investment(id=id, name=id, principal_cents=principal, yield_rate=1.0, start_date=date(2025, 1, 1))


def test_select_largest_investment_by_default():
    investments = [_investment("a", 1000), _investment("b", 5000), _investment("c", 3000)]
    assert select_coverage_investment(investments, None).id == "b"


def test_select_designated_investment():
    investments = [_investment("a", 1000), _investment("b", 5000)]
    assert select_coverage_investment(investments, "a").id == "a"
    # A designation that no longer exists falls back to the largest
    assert select_coverage_investment(investments, "gone").id == "b"
    assert select_coverage_investment([], None) is None


async def test_negative_balance_covered_from_investment(ledger: Ledger):
    """-$200 with $1000 invested: $200 withdrawn and booked as income"""
    investment = await ledger.investments.create_investment("Reserve", 100000, rate=1.0)
    await ledger.transactions.add_transaction(EXPENSE, 20000, date(2025, 10, 5))

    result = await ledger.coverage.cover_negative_balance("2025-10")

    assert result.success is True
    assert result.amount_cents == 20000
    assert result.investment_id == investment.id
    assert result.investment_name == "Reserve"

    [updated] = await ledger.investments.get_investments()
    assert updated.principal_cents == 80000

    income = [t for t in await ledger.transactions.list_transactions() if t.type == TransactionType.INCOME]
    assert len(income) == 1
    assert income[0].id == result.transaction_id
    assert income[0].amount_cents == 20000
    assert income[0].source_investment_id == investment.id
    assert income[0].auto_generated is True
    assert income[0].date == date(2025, 10, 15)

    summary = await ledger.balance.compute_month_summary("2025-10")
    assert summary.current_balance_cents == 0


async def test_coverage_runs_once_per_event(ledger: Ledger):
    await ledger.investments.create_investment("Reserve", 100000, rate=1.0)
    await ledger.transactions.add_transaction(EXPENSE, 20000, date(2025, 10, 5))

    await ledger.coverage.cover_negative_balance("2025-10")
    # A second negative swing on the same day is not covered again
    await ledger.transactions.add_transaction(EXPENSE, 5000, date(2025, 10, 14))

    assert await ledger.coverage.cover_negative_balance("2025-10") is None
    [investment] = await ledger.investments.get_investments()
    assert investment.principal_cents == 80000


async def test_non_negative_balance_is_left_alone(ledger: Ledger):
    await ledger.investments.create_investment("Reserve", 100000, rate=1.0)
    await ledger.transactions.add_transaction(TransactionType.INCOME, 1000, date(2025, 10, 1))

    assert await ledger.coverage.cover_negative_balance("2025-10") is None


async def test_insufficient_funds_reports_failure(ledger: Ledger):
    await ledger.investments.create_investment("Reserve", 10000, rate=1.0)
    await ledger.transactions.add_transaction(EXPENSE, 20000, date(2025, 10, 5))

    result = await ledger.coverage.cover_negative_balance("2025-10")

    assert result.success is False
    assert result.reason == "insufficient_funds"
    assert result.amount_cents == 20000
    [investment] = await ledger.investments.get_investments()
    assert investment.principal_cents == 10000
    assert len(await ledger.transactions.list_transactions()) == 1


async def test_no_investment_reports_failure(ledger: Ledger):
    await ledger.transactions.add_transaction(EXPENSE, 20000, date(2025, 10, 5))

    result = await ledger.coverage.cover_negative_balance("2025-10")

    assert result.success is False
    assert result.reason == "no_investment"


async def test_designated_investment_from_settings(ledger: Ledger):
    small = await ledger.investments.create_investment("Small", 30000, rate=1.0)
    await ledger.investments.create_investment("Large", 900000, rate=1.0)
    await ledger.update_settings(AppSettings(coverage_investment_id=small.id))
    await ledger.transactions.add_transaction(EXPENSE, 20000, date(2025, 10, 5))

    result = await ledger.coverage.cover_negative_balance("2025-10")

    assert result.investment_id == small.id


async def test_past_month_is_never_covered(ledger: Ledger):
    """A short September does not touch investments once October is in the black"""
    await ledger.investments.create_investment("Reserve", 100000, rate=0.0)
    await ledger.transactions.add_transaction(EXPENSE, 20000, date(2025, 9, 5))
    await ledger.transactions.add_transaction(TransactionType.INCOME, 500000, date(2025, 10, 1))

    view = await ledger.process_month("2025-09")

    assert view.summary.current_balance_cents == -20000
    assert view.coverage is None
    [investment] = await ledger.investments.get_investments()
    assert investment.principal_cents == 100000


async def test_past_month_shortfall_left_to_current_month(ledger: Ledger):
    await ledger.investments.create_investment("Reserve", 100000, rate=0.0)
    await ledger.transactions.add_transaction(EXPENSE, 20000, date(2025, 9, 5))

    assert await ledger.coverage.cover_negative_balance("2025-09") is None

    result = await ledger.coverage.cover_negative_balance("2025-10")
    assert result.success is True
    assert result.amount_cents == 20000
    income = [t for t in await ledger.transactions.list_transactions() if t.id == result.transaction_id]
    assert income[0].date == date(2025, 10, 15)


async def test_future_month_covers_todays_shortfall(ledger: Ledger):
    await ledger.investments.create_investment("Reserve", 100000, rate=0.0)
    await ledger.transactions.add_transaction(EXPENSE, 20000, date(2025, 10, 5))

    result = await ledger.coverage.cover_negative_balance("2025-12")

    assert result.amount_cents == 20000
    assert (await ledger.balance.compute_month_summary("2025-10")).current_balance_cents == 0


async def test_failed_income_posting_rolls_back_withdrawal(ledger: Ledger, monkeypatch):
    await ledger.investments.create_investment("Reserve", 100000, rate=1.0)
    await ledger.transactions.add_transaction(EXPENSE, 20000, date(2025, 10, 5))

    async def broken_add_transaction(self, txn):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(LedgerRepository, "add_transaction", broken_add_transaction)

    with pytest.raises(RepositoryError):
        await ledger.coverage.cover_negative_balance("2025-10")

    monkeypatch.undo()
    [investment] = await ledger.investments.get_investments()
    assert investment.principal_cents == 100000
