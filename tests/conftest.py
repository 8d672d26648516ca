"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import AsyncIterator
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from pocket_ledger.api.dependencies import get_clock
from pocket_ledger.api.main import create_app
from pocket_ledger.infrastructure.database.repositories import LedgerStore
from pocket_ledger.infrastructure.database.session import get_store, init_models
from pocket_ledger.services.month import Ledger
from pocket_ledger.utils.date_utils import FixedClock


# Mid-month, so cards closing on the 10th are closed and cards closing on the 25th are open
TODAY = date(2025, 10, 15)


@pytest.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    """Create test database in a temporary file"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_models(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def store(engine: AsyncEngine) -> LedgerStore:
    return LedgerStore(async_sessionmaker(engine, expire_on_commit=False, autoflush=False))


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TODAY)


@pytest.fixture
def ledger(store: LedgerStore, clock: FixedClock) -> Ledger:
    return Ledger(store, clock)


@pytest.fixture
async def client(store: LedgerStore, clock: FixedClock) -> AsyncIterator[AsyncClient]:
    """Create API client bound to the test store and clock"""
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
async def paired_cards(ledger: Ledger):
    """A card closing on the 10th that is paid by a second card"""
    payer = await ledger.cards.create_card("Payer", limit_cents=500000, closing_day=10, due_day=20)
    card = await ledger.cards.create_card(
        "Groceries", limit_cents=200000, closing_day=10, due_day=20, default_payer_card_id=payer.id
    )
    return card, payer
