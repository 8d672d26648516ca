"""Unit tests for month balance derivation"""

import pytest
from datetime import date
from pocket_ledger.domain.exceptions import InvalidMonthError
from pocket_ledger.domain.models import AppSettings, Transaction, TransactionType
from pocket_ledger.services.balance import affects_balance, auto_settled_cycles, summarize
from pocket_ledger.services.month import Ledger

INCOME = TransactionType.INCOME
EXPENSE = TransactionType.EXPENSE


def _txn(type: TransactionType, amount: int, on: date, **kwargs) -> Transaction:
    return Transaction(id=f"{type.value}-{on}-{amount}", type=type, amount_cents=amount, date=on, **kwargs)


def test_summarize_counts_past_entries_and_projects_future_ones():
    transactions = [
        _txn(INCOME, 100000, date(2025, 10, 1)),
        _txn(EXPENSE, 30000, date(2025, 10, 5)),
        _txn(EXPENSE, 10000, date(2025, 10, 20)),
    ]

    balance, income, projected = summarize("2025-10", transactions, set(), date(2025, 10, 15))

    assert balance == 70000
    assert income == 100000
    assert projected == 10000


def test_summarize_is_cumulative_over_earlier_months():
    transactions = [
        _txn(INCOME, 50000, date(2025, 9, 1)),
        _txn(EXPENSE, 20000, date(2025, 10, 3)),
    ]
    today = date(2025, 10, 15)

    assert summarize("2025-09", transactions, set(), today)[0] == 50000
    assert summarize("2025-10", transactions, set(), today)[0] == 30000


def test_card_purchases_count_in_their_billing_month():
    purchase = _txn(EXPENSE, 5000, date(2025, 9, 28), source_card_id="visa", billing_month="2025-10")
    today = date(2025, 10, 15)

    assert summarize("2025-09", [purchase], set(), today)[0] == 0
    assert summarize("2025-10", [purchase], set(), today)[0] == -5000


def test_payer_backed_purchases_and_settlements_do_not_affect_balance():
    backed = _txn(EXPENSE, 5000, date(2025, 10, 1), source_card_id="amex", billing_month="2025-10")
    settlement = _txn(EXPENSE, 5000, date(2025, 10, 12), paid_card_id="visa", paid_month="2025-10")
    own = _txn(EXPENSE, 5000, date(2025, 10, 1), source_card_id="visa", billing_month="2025-10")

    assert affects_balance(backed, {"amex"}, set()) is False
    assert affects_balance(settlement, {"amex"}, set()) is False
    assert affects_balance(own, {"amex"}, set()) is True


def test_auto_settled_purchases_stay_out_after_payer_removed():
    purchase = _txn(EXPENSE, 5000, date(2025, 10, 5), source_card_id="amex", billing_month="2025-10")
    later = _txn(EXPENSE, 3000, date(2025, 10, 12), source_card_id="amex", billing_month="2025-11")
    payment = _txn(
        EXPENSE, 5000, date(2025, 10, 20),
        source_card_id="visa", billing_month="2025-11", paid_card_id="amex", paid_month="2025-10",
    )
    settled = auto_settled_cycles([purchase, later, payment])

    assert settled == {("amex", "2025-10")}
    # No card has a payer any more: only the unsettled cycle counts
    assert affects_balance(purchase, set(), settled) is False
    assert affects_balance(later, set(), settled) is True
    assert affects_balance(payment, set(), settled) is True


async def test_month_summary_from_store(ledger: Ledger):
    await ledger.transactions.add_transaction(INCOME, 100000, date(2025, 10, 1), category="salary")
    await ledger.transactions.add_transaction(EXPENSE, 30000, date(2025, 10, 5), category="food")
    await ledger.transactions.add_transaction(EXPENSE, 10000, date(2025, 10, 28), category="rent")

    summary = await ledger.balance.compute_month_summary("2025-10")

    assert summary.current_balance_cents == 70000
    assert summary.income_cents == 100000
    assert summary.projected_expenses_cents == 10000
    assert summary.projected_balance_cents == 60000
    assert summary.balance_yield_cents == 0


async def test_auto_payment_reaches_balance_through_payer(ledger: Ledger, paired_cards):
    card, _ = paired_cards
    await ledger.cards.post_purchase(card.id, 20000, date(2025, 10, 5))

    # Purchase on a payer-backed card alone leaves the balance untouched
    assert (await ledger.balance.compute_month_summary("2025-10")).current_balance_cents == 0

    await ledger.cards.generate_auto_payments("2025-10")

    # The payment lands on the payer on 2025-10-20, after its own closing day
    november = await ledger.balance.compute_month_summary("2025-11")
    assert november.current_balance_cents == 0
    assert november.projected_expenses_cents == 20000


async def test_removing_payer_keeps_settled_cycles_out_of_balance(ledger: Ledger, paired_cards):
    card, _ = paired_cards
    await ledger.cards.post_purchase(card.id, 50000, date(2025, 10, 5))
    await ledger.cards.generate_auto_payments("2025-10")

    await ledger.cards.set_default_payer(card.id, None)
    await ledger.cards.reconcile_auto_payments()

    november = await ledger.balance.compute_month_summary("2025-11")
    assert november.current_balance_cents == 0
    assert november.projected_expenses_cents == 50000
    assert (await ledger.balance.compute_month_summary("2025-10")).current_balance_cents == 0

    # New purchases on the card now hit the balance directly
    await ledger.cards.post_purchase(card.id, 7000, date(2025, 10, 12))
    november = await ledger.balance.compute_month_summary("2025-11")
    assert november.current_balance_cents == -7000


async def test_manual_invoice_payment_is_not_counted_twice(ledger: Ledger):
    card = await ledger.cards.create_card("Visa", limit_cents=50000, closing_day=10, due_day=20)
    await ledger.cards.post_purchase(card.id, 30000, date(2025, 10, 1))
    await ledger.cards.pay_invoice(card.id, "2025-10")

    summary = await ledger.balance.compute_month_summary("2025-10")

    assert summary.current_balance_cents == -30000


async def test_balance_yield_when_enabled(ledger: Ledger):
    await ledger.transactions.add_transaction(INCOME, 100000, date(2025, 10, 1))
    await ledger.update_settings(AppSettings(default_yield_rate=1.0, balance_yield_enabled=True))

    summary = await ledger.balance.compute_month_summary("2025-10")

    assert summary.balance_yield_cents == 1000


async def test_category_totals(ledger: Ledger):
    await ledger.transactions.add_transaction(EXPENSE, 3000, date(2025, 10, 2), category="food")
    await ledger.transactions.add_transaction(EXPENSE, 2000, date(2025, 10, 9), category="food")
    await ledger.transactions.add_transaction(EXPENSE, 9000, date(2025, 10, 3), category="rent")
    await ledger.transactions.add_transaction(EXPENSE, 7000, date(2025, 9, 3), category="rent")
    await ledger.transactions.add_transaction(INCOME, 50000, date(2025, 10, 1), category="salary")

    assert await ledger.balance.category_totals("2025-10") == {"food": 5000, "rent": 9000}


async def test_months_with_transactions(ledger: Ledger):
    card = await ledger.cards.create_card("Visa", limit_cents=50000, closing_day=25, due_day=5)
    await ledger.transactions.add_transaction(INCOME, 1000, date(2025, 9, 1))
    await ledger.cards.post_purchase(card.id, 1000, date(2025, 12, 28))

    assert await ledger.balance.months_with_transactions() == ["2025-09", "2025-12", "2026-01"]


async def test_summary_rejects_bad_month(ledger: Ledger):
    with pytest.raises(InvalidMonthError):
        await ledger.balance.compute_month_summary("2025-13")
