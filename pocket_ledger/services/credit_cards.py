"""Credit card cycle management: purchases, limits and automatic payments"""

import logging
from datetime import date
from typing import Dict, List, Optional, Set, Tuple

from pocket_ledger.config import settings
from pocket_ledger.domain import billing
from pocket_ledger.domain.exceptions import (
    InsufficientLimitError,
    InvalidAmountError,
    InvalidCardConfigurationError,
    NotFoundError,
)
from pocket_ledger.domain.models import (
    AutoPaymentResult,
    CardStatement,
    CreditCard,
    CycleStatus,
    SkippedPayment,
    Transaction,
    TransactionType,
)
from pocket_ledger.infrastructure.database.repositories import LedgerRepository, LedgerStore
from pocket_ledger.infrastructure.observability.logging import log_auto_payment
from pocket_ledger.infrastructure.observability.metrics import (
    auto_payment_counter,
    auto_payment_skipped_counter,
    record_purchase,
)
from pocket_ledger.utils.date_utils import Clock, validate_month

logger = logging.getLogger(__name__)

_UNSET = object()


class CreditCardCycleEngine:
    """
    Tracks purchases against card limits and settles closed cycles.

    Every mutating method is one unit of work: the limit change and the
    transaction it pairs with commit together or not at all.
    """

    def __init__(self, store: LedgerStore, clock: Clock):
        self.store = store
        self.clock = clock

    # ------------------------------------------------------------------
    # Card configuration
    # ------------------------------------------------------------------
    async def create_card(
        self,
        name: str,
        limit_cents: int,
        closing_day: Optional[int] = None,
        due_day: Optional[int] = None,
        default_payer_card_id: Optional[str] = None,
    ) -> CreditCard:
        if limit_cents < 0:
            raise InvalidAmountError("Card limit cannot be negative")
        closing_day = closing_day or settings.default_closing_day
        due_day = due_day or settings.default_due_day
        billing.validate_cycle_days(closing_day, due_day)

        async with self.store.transaction() as repo:
            if default_payer_card_id is not None:
                await self._require_card(repo, default_payer_card_id)
            return await repo.add_credit_card(
                name=name,
                limit_cents=limit_cents,
                closing_day=closing_day,
                due_day=due_day,
                default_payer_card_id=default_payer_card_id,
            )

    async def update_card(
        self,
        card_id: str,
        name: Optional[str] = None,
        limit_cents: Optional[int] = None,
        closing_day: Optional[int] = None,
        due_day: Optional[int] = None,
        default_payer_card_id=_UNSET,
    ) -> CreditCard:
        """
        Edit card settings.

        Changing the limit shifts the available limit by the same delta. The
        caller runs reconcile_auto_payments() afterwards when the payer changed.
        """
        async with self.store.transaction() as repo:
            card = await self._require_card(repo, card_id)

            if name is not None:
                card.name = name.strip()
            if limit_cents is not None:
                outstanding = card.limit_cents - card.available_limit_cents
                if limit_cents < outstanding:
                    raise InvalidCardConfigurationError(
                        f"Limit {limit_cents} is below the outstanding {outstanding} cents"
                    )
                card.limit_cents = limit_cents
                card.available_limit_cents = limit_cents - outstanding
            if closing_day is not None or due_day is not None:
                billing.validate_cycle_days(closing_day or card.closing_day, due_day or card.due_day)
                card.closing_day = closing_day or card.closing_day
                card.due_day = due_day or card.due_day
            if default_payer_card_id is not _UNSET:
                await self._check_payer(repo, card.id, default_payer_card_id)
                card.default_payer_card_id = default_payer_card_id

            return await repo.update_credit_card(card)

    async def set_default_payer(self, card_id: str, payer_card_id: Optional[str]) -> CreditCard:
        return await self.update_card(card_id, default_payer_card_id=payer_card_id)

    async def delete_card(self, card_id: str) -> None:
        async with self.store.transaction() as repo:
            await self._require_card(repo, card_id)
            dependants = [c.name for c in await repo.get_credit_cards() if c.default_payer_card_id == card_id]
            if dependants:
                raise InvalidCardConfigurationError(
                    f"Card {card_id} still pays for: {', '.join(dependants)}"
                )
            await repo.delete_credit_card(card_id)

    async def get_cards(self) -> List[CreditCard]:
        async with self.store.read() as repo:
            return await repo.get_credit_cards()

    async def get_card(self, card_id: str) -> CreditCard:
        async with self.store.read() as repo:
            return await self._require_card(repo, card_id)

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------
    async def post_purchase(
        self,
        card_id: str,
        amount_cents: int,
        purchase_date: date,
        category: str = "other",
        description: str = "",
    ) -> Transaction:
        """
        Charge a purchase to a card.

        Raises:
            NotFoundError: Unknown card
            InvalidAmountError: Amount is not positive
            InsufficientLimitError: Amount exceeds the available limit (limit unchanged)
        """
        async with self.store.transaction() as repo:
            try:
                txn = await self._charge(repo, card_id, amount_cents, purchase_date, category, description)
            except InsufficientLimitError as e:
                record_purchase(posted=False)
                logger.warning(
                    f"Purchase rejected: {e}",
                    extra={"card_id": card_id, "amount_cents": amount_cents},
                )
                raise

        record_purchase(posted=True)
        return txn

    async def get_card_purchases(self, card_id: str, month: str) -> List[Transaction]:
        validate_month(month)
        async with self.store.read() as repo:
            await self._require_card(repo, card_id)
            return await repo.get_card_purchases(card_id, month)

    async def get_card_monthly_total(self, card_id: str, month: str) -> int:
        validate_month(month)
        async with self.store.read() as repo:
            await self._require_card(repo, card_id)
            return await repo.get_card_monthly_total(card_id, month)

    async def get_cycle_status(self, card_id: str, month: str) -> CycleStatus:
        return (await self.get_statement(card_id, month)).status

    async def get_statement(self, card_id: str, month: str) -> CardStatement:
        """Purchases, total and cycle state of one billing month"""
        validate_month(month)
        async with self.store.read() as repo:
            card = await self._require_card(repo, card_id)
            purchases = await repo.get_card_purchases(card_id, month)
            settled = any(t.paid_month == month for t in await repo.get_settlements(card_id))

        status = billing.cycle_status(
            month,
            card.closing_day,
            self.clock.today(),
            has_payer=card.default_payer_card_id is not None,
            is_settled=settled,
        )
        return CardStatement(
            card=card,
            month=month,
            purchases=purchases,
            total_cents=sum(p.amount_cents for p in purchases),
            status=status,
        )

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------
    async def generate_auto_payments(self, month: str) -> AutoPaymentResult:
        """
        Settle closed cycles of payer-backed cards for one billing month.

        Idempotent: a (card, month) pair that already has a settlement is
        skipped without error.
        """
        validate_month(month)
        result = AutoPaymentResult()
        async with self.store.transaction() as repo:
            settled = await self._settled_cycles(repo)
            for card in await repo.get_credit_cards():
                if card.default_payer_card_id:
                    await self._auto_pay(repo, card.id, month, settled, result)
        return result

    async def reconcile_auto_payments(self, card_id: Optional[str] = None) -> AutoPaymentResult:
        """
        Generate every pending auto-payment, for one card or all of them.

        Run after any card configuration change so history catches up
        without double-charging.
        """
        result = AutoPaymentResult()
        async with self.store.transaction() as repo:
            if card_id is not None:
                await self._require_card(repo, card_id)
            settled = await self._settled_cycles(repo)
            for card in await repo.get_credit_cards():
                if not card.default_payer_card_id or (card_id is not None and card.id != card_id):
                    continue
                purchases = await repo.get_card_purchases(card.id)
                for month in sorted({p.billing_month for p in purchases if p.billing_month}):
                    await self._auto_pay(repo, card.id, month, settled, result)
        return result

    async def pay_invoice(self, card_id: str, month: str, payment_date: Optional[date] = None) -> Transaction:
        """
        Record a manual payment of a card's cycle and restore its limit.

        Paying an already settled cycle returns the existing settlement.
        """
        validate_month(month)
        async with self.store.transaction() as repo:
            card = await self._require_card(repo, card_id)
            if card.default_payer_card_id:
                raise InvalidCardConfigurationError(
                    f"Card {card.name} is paid automatically by card {card.default_payer_card_id}"
                )

            for existing in await repo.get_settlements(card_id):
                if existing.paid_month == month:
                    return existing

            total = await repo.get_card_monthly_total(card_id, month)
            if total <= 0:
                raise InvalidAmountError(f"Nothing to pay on card {card.name} for {month}")

            settlement = await repo.add_transaction(
                Transaction(
                    id="",
                    type=TransactionType.EXPENSE,
                    amount_cents=total,
                    date=payment_date or self.clock.today(),
                    category="other",
                    description=f"{card.name} invoice {month}",
                    paid_card_id=card.id,
                    paid_month=month,
                )
            )
            await self._restore_limit(repo, card_id, total)
            return settlement

    async def recalculate_available_limit(self, card_id: str) -> CreditCard:
        async with self.store.transaction() as repo:
            return await self.recalculate_with(repo, card_id)

    async def recalculate_with(self, repo: LedgerRepository, card_id: str) -> CreditCard:
        """Available limit = limit - purchases whose billing month is not settled"""
        card = await self._require_card(repo, card_id)
        settled_months = {t.paid_month for t in await repo.get_settlements(card_id)}
        unpaid = sum(
            p.amount_cents
            for p in await repo.get_card_purchases(card_id)
            if p.billing_month not in settled_months
        )
        card.available_limit_cents = max(0, card.limit_cents - unpaid)
        return await repo.update_credit_card(card)

    # ------------------------------------------------------------------
    # Internals (run inside an open unit of work)
    # ------------------------------------------------------------------
    async def _charge(
        self,
        repo: LedgerRepository,
        card_id: str,
        amount_cents: int,
        purchase_date: date,
        category: str,
        description: str,
        auto_generated: bool = False,
        paid_card_id: Optional[str] = None,
        paid_month: Optional[str] = None,
    ) -> Transaction:
        if amount_cents <= 0:
            raise InvalidAmountError(f"Purchase amount must be positive, got {amount_cents}")

        card = await self._require_card(repo, card_id)
        if amount_cents > card.available_limit_cents:
            raise InsufficientLimitError(card.id, amount_cents, card.available_limit_cents)

        card.available_limit_cents -= amount_cents
        await repo.update_credit_card(card)

        return await repo.add_transaction(
            Transaction(
                id="",
                type=TransactionType.EXPENSE,
                amount_cents=amount_cents,
                date=purchase_date,
                category=category,
                description=description,
                source_card_id=card.id,
                auto_generated=auto_generated,
                billing_month=billing.billing_month_for(purchase_date, card.closing_day),
                paid_card_id=paid_card_id,
                paid_month=paid_month,
            )
        )

    async def _auto_pay(
        self,
        repo: LedgerRepository,
        card_id: str,
        month: str,
        settled: Set[Tuple[str, str]],
        result: AutoPaymentResult,
    ) -> None:
        if (card_id, month) in settled:
            return

        # Re-read: an earlier payment in this run may have charged this card as a payer
        card = await self._require_card(repo, card_id)
        if not billing.is_cycle_closed(month, card.closing_day, self.clock.today()):
            return
        total = await repo.get_card_monthly_total(card.id, month)
        if total <= 0:
            return

        payer = await repo.get_credit_card_by_id(card.default_payer_card_id)
        if payer is None:
            self._skip(result, card.id, month, "payer_not_found")
            return

        try:
            payment = await self._charge(
                repo,
                payer.id,
                total,
                billing.due_date(month, card.closing_day, card.due_day),
                category="other",
                description=f"Payment of {card.name} invoice {month}",
                auto_generated=True,
                paid_card_id=card.id,
                paid_month=month,
            )
        except InsufficientLimitError:
            self._skip(result, card.id, month, "payer_limit_exceeded")
            return

        await self._restore_limit(repo, card.id, total)
        settled.add((card.id, month))
        result.created.append(payment)

        auto_payment_counter.inc()
        log_auto_payment(card.id, payer.id, month, total, payment.id)

    @staticmethod
    def _skip(result: AutoPaymentResult, card_id: str, month: str, reason: str) -> None:
        result.skipped.append(SkippedPayment(card_id=card_id, month=month, reason=reason))
        auto_payment_skipped_counter.labels(reason=reason).inc()
        logger.warning(
            f"Auto-payment skipped: {reason}",
            extra={"card_id": card_id, "billing_month": month},
        )

    async def _restore_limit(self, repo: LedgerRepository, card_id: str, amount_cents: int) -> CreditCard:
        card = await self._require_card(repo, card_id)
        card.available_limit_cents = min(card.limit_cents, card.available_limit_cents + amount_cents)
        return await repo.update_credit_card(card)

    async def _check_payer(self, repo: LedgerRepository, card_id: str, payer_card_id: Optional[str]) -> None:
        """Reject self-payment and payer chains that loop back to this card"""
        if payer_card_id is None:
            return
        if payer_card_id == card_id:
            raise InvalidCardConfigurationError("A card cannot pay its own invoice")

        cards: Dict[str, CreditCard] = {c.id: c for c in await repo.get_credit_cards()}
        if payer_card_id not in cards:
            raise NotFoundError(f"Credit card {payer_card_id} not found")

        seen = {card_id}
        current = payer_card_id
        while current is not None:
            if current in seen:
                raise InvalidCardConfigurationError("Payer chain would form a cycle")
            seen.add(current)
            current = cards[current].default_payer_card_id if current in cards else None

    @staticmethod
    async def _settled_cycles(repo: LedgerRepository) -> Set[Tuple[str, str]]:
        return {
            (t.paid_card_id, t.paid_month)
            for t in await repo.get_all_transactions()
            if t.paid_card_id and t.paid_month
        }

    @staticmethod
    async def _require_card(repo: LedgerRepository, card_id: str) -> CreditCard:
        card = await repo.get_credit_card_by_id(card_id)
        if card is None:
            raise NotFoundError(f"Credit card {card_id} not found")
        return card
