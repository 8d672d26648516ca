"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request

from pocket_ledger.infrastructure.database.repositories import LedgerStore
from pocket_ledger.infrastructure.database.session import get_store
from pocket_ledger.services.month import Ledger
from pocket_ledger.utils.date_utils import Clock, SystemClock


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_clock() -> Clock:
    """Provide the wall clock; tests override this with a FixedClock"""
    return SystemClock()


def get_ledger(
    store: LedgerStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> Ledger:
    """Provide the engines bound to the shared store"""
    return Ledger(store, clock)
