"""SQLAlchemy ORM models for the ledger"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, Float, DateTime, Date, Integer, ForeignKey, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def new_id() -> str:
    return uuid.uuid4().hex


class TransactionRow(Base):
    """Income or expense entry; card purchases carry their billing month"""

    __tablename__ = "ledger_transaction"

    id = Column(String(32), primary_key=True, default=new_id)
    type = Column(String(16), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    date = Column(Date, nullable=False, index=True)
    month = Column(String(7), nullable=False, index=True)
    category = Column(Text, nullable=False, default="other")
    description = Column(Text, nullable=False, default="")
    source_card_id = Column(String(32), nullable=True, index=True)
    source_investment_id = Column(String(32), nullable=True)
    auto_generated = Column(Boolean, nullable=False, default=False)
    billing_month = Column(String(7), nullable=True, index=True)
    paid_card_id = Column(String(32), nullable=True, index=True)
    paid_month = Column(String(7), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class CreditCardRow(Base):
    """Credit card with its live available limit"""

    __tablename__ = "credit_card"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    limit_cents = Column(BigInteger, nullable=False)
    available_limit_cents = Column(BigInteger, nullable=False)
    closing_day = Column(Integer, nullable=False, default=25)
    due_day = Column(Integer, nullable=False, default=5)
    default_payer_card_id = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class InvestmentRow(Base):
    """Investment balance, including accrued yield"""

    __tablename__ = "investment"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    principal_cents = Column(BigInteger, nullable=False)
    yield_rate = Column(Float, nullable=False)
    start_date = Column(Date, nullable=False)
    last_yield_month = Column(String(7), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class YieldHistoryRow(Base):
    """Append-only yield log; one row per (investment, month) is kept by the engine"""

    __tablename__ = "yield_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    investment_id = Column(String(32), ForeignKey("investment.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(String(7), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    rate_applied = Column(Float, nullable=False)
    principal_after_cents = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SettingRow(Base):
    """Key/value application settings"""

    __tablename__ = "app_setting"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=True)
