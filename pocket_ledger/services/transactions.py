"""Plain income/expense entries"""

from datetime import date
from typing import List, Optional

from pocket_ledger.domain.exceptions import InvalidAmountError, NotFoundError
from pocket_ledger.domain.models import Transaction, TransactionType
from pocket_ledger.infrastructure.database.repositories import LedgerStore
from pocket_ledger.services.credit_cards import CreditCardCycleEngine
from pocket_ledger.utils.date_utils import validate_month


class TransactionService:
    """Records user-entered transactions; deletions keep card limits consistent"""

    def __init__(self, store: LedgerStore, cards: CreditCardCycleEngine):
        self.store = store
        self.cards = cards

    async def add_transaction(
        self,
        type: TransactionType,
        amount_cents: int,
        txn_date: date,
        category: str = "other",
        description: str = "",
    ) -> Transaction:
        """Card purchases go through CreditCardCycleEngine.post_purchase instead"""
        if amount_cents <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {amount_cents}")
        async with self.store.transaction() as repo:
            return await repo.add_transaction(
                Transaction(
                    id="",
                    type=type,
                    amount_cents=amount_cents,
                    date=txn_date,
                    category=category,
                    description=description,
                )
            )

    async def delete_transaction(self, transaction_id: str) -> None:
        """
        Delete a transaction and recompute the limits of every card it touched
        (the card it was charged to and the card whose cycle it settled).
        """
        async with self.store.transaction() as repo:
            txn = await repo.get_transaction_by_id(transaction_id)
            if txn is None:
                raise NotFoundError(f"Transaction {transaction_id} not found")
            await repo.delete_transaction(transaction_id)

            for card_id in {txn.source_card_id, txn.paid_card_id} - {None}:
                if await repo.get_credit_card_by_id(card_id) is not None:
                    await self.cards.recalculate_with(repo, card_id)

    async def list_transactions(self, month: Optional[str] = None) -> List[Transaction]:
        """All transactions, or those whose calendar month is `month`, newest first"""
        if month is not None:
            validate_month(month)
        async with self.store.read() as repo:
            transactions = await repo.get_all_transactions()
        if month is not None:
            transactions = [t for t in transactions if t.month == month]
        return transactions
