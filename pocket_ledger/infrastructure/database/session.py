"""Async database engine, session factory and the shared ledger store"""

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from pocket_ledger.config import settings
from pocket_ledger.infrastructure.database.models import Base
from pocket_ledger.infrastructure.database.repositories import LedgerStore

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,  # Verify connections before using
)

SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

# One store per process: its write lock is what serializes mutations
store = LedgerStore(SessionLocal)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create tables that do not exist yet"""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def get_store() -> LedgerStore:
    """Dependency injection for the ledger store"""
    return store
