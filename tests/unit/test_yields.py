"""Unit tests for yield math"""

from datetime import date
from pocket_ledger.domain.models import Investment
from pocket_ledger.domain.yields import monthly_yield_cents
from pocket_ledger.services.investments import pending_yield_months


def _investment(start: date, last_yield_month=None) -> Investment:
    return Investment(
        id="inv",
        name="Savings",
        principal_cents=100000,
        yield_rate=6.5,
        start_date=start,
        last_yield_month=last_yield_month,
    )


def test_monthly_yield_exact_rate():
    """$1000.00 at 6.5% yields $65.00"""
    assert monthly_yield_cents(100000, 6.5) == 6500


def test_monthly_yield_rounds_half_up():
    # 1001 * 0.5% = 5.005 cents -> 5
    assert monthly_yield_cents(1001, 0.5) == 5
    # 150 * 1% = 1.5 cents -> 2
    assert monthly_yield_cents(150, 1.0) == 2
    # 250 * 1% = 2.5 cents -> 3
    assert monthly_yield_cents(250, 1.0) == 3


def test_monthly_yield_zero_for_empty_or_zero_rate():
    assert monthly_yield_cents(0, 6.5) == 0
    assert monthly_yield_cents(100000, 0) == 0


def test_pending_months_start_at_start_month():
    assert pending_yield_months(_investment(date(2025, 9, 12)), "2025-10") == ["2025-09", "2025-10"]


def test_pending_months_resume_after_last_yield():
    investment = _investment(date(2025, 6, 1), last_yield_month="2025-09")
    assert pending_yield_months(investment, "2025-10") == ["2025-10"]


def test_pending_months_empty_when_up_to_date():
    investment = _investment(date(2025, 6, 1), last_yield_month="2025-10")
    assert pending_yield_months(investment, "2025-10") == []
