"""Credit card billing cycle rules

A card's cycle for month M collects purchases made from the closing day of
M-1 up to the day before the closing day of M. Purchases made on the closing
day itself bill in the next cycle.
"""

from datetime import date

from pocket_ledger.domain.exceptions import InvalidCardConfigurationError
from pocket_ledger.domain.models import CycleStatus
from pocket_ledger.utils.date_utils import day_in_month, month_key, next_month


def validate_cycle_days(closing_day: int, due_day: int) -> None:
    for name, day in (("closing_day", closing_day), ("due_day", due_day)):
        if not 1 <= day <= 31:
            raise InvalidCardConfigurationError(f"{name} must be between 1 and 31, got {day}")


def billing_month_for(purchase_date: date, closing_day: int) -> str:
    """
    Billing month a purchase belongs to.

    Example (closing day 25):
        2025-10-24 -> 2025-10
        2025-10-25 -> 2025-11 (closing day bills next cycle)
        2025-12-30 -> 2026-01
    """
    purchase_month = month_key(purchase_date)
    closing_date = day_in_month(purchase_month, closing_day)
    if purchase_date >= closing_date:
        return next_month(purchase_month)
    return purchase_month


def closing_date(month: str, closing_day: int) -> date:
    """Date the cycle for `month` closes (day clamped to month length)"""
    return day_in_month(month, closing_day)


def due_date(month: str, closing_day: int, due_day: int) -> date:
    """
    Due date of the cycle for `month`.

    Due day after the closing day falls in the same month, otherwise it rolls
    into the following month.
    """
    if due_day > closing_day:
        return day_in_month(month, due_day)
    return day_in_month(next_month(month), due_day)


def is_cycle_closed(month: str, closing_day: int, today: date) -> bool:
    return today >= closing_date(month, closing_day)


def cycle_status(
    month: str,
    closing_day: int,
    today: date,
    has_payer: bool,
    is_settled: bool,
) -> CycleStatus:
    """Map a card/month pair onto OPEN -> CLOSED -> PAID | UNPAID"""
    if is_settled:
        return CycleStatus.PAID
    if not is_cycle_closed(month, closing_day, today):
        return CycleStatus.OPEN
    if has_payer:
        return CycleStatus.CLOSED
    return CycleStatus.UNPAID
