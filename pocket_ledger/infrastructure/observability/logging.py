"""Structured JSON logging for ledger events"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger.json import JsonFormatter

from pocket_ledger.config import settings


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_auto_payment(card_id: str, payer_card_id: str, month: str, amount_cents: int, transaction_id: str) -> None:
    """Log an automatic card payment created for a closed cycle"""
    logging.info(
        "Auto-payment created",
        extra={
            "step": "auto_payment",
            "card_id": card_id,
            "payer_card_id": payer_card_id,
            "billing_month": month,
            "amount_cents": amount_cents,
            "transaction_id": transaction_id,
        },
    )


def log_yield_applied(investment_id: str, month: str, amount_cents: int, principal_after_cents: int) -> None:
    logging.info(
        "Yield applied",
        extra={
            "step": "yield",
            "investment_id": investment_id,
            "month": month,
            "amount_cents": amount_cents,
            "principal_after_cents": principal_after_cents,
        },
    )


def log_coverage(month: str, success: bool, amount_cents: int, investment_id: str | None, reason: str | None = None) -> None:
    """Log a coverage attempt; failures go out as warnings"""
    level = logging.INFO if success else logging.WARNING
    logging.log(
        level,
        "Negative balance covered" if success else "Negative balance not covered",
        extra={
            "step": "coverage",
            "month": month,
            "coverage_outcome": "covered" if success else "failed",
            "amount_cents": amount_cents,
            "investment_id": investment_id,
            "reason": reason,
        },
    )
