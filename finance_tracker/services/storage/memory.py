"""
In-Memory Storage Implementation

Process-local store used when MongoDB is unreachable. Nothing here is
persisted: records and id counters live only as long as the instance.

Ids come from per-entity counters that start at 1 and are never reused,
even after deletes. Every record handed out is a copy, so callers cannot
mutate stored state behind the store's back.
"""

from typing import Optional

from finance_tracker.models.transaction import (
    InsertTransaction,
    Transaction,
    TransactionUpdate,
)
from finance_tracker.models.user import InsertUser, User
from finance_tracker.services.storage.interface import StorageInterface


class MemoryStorage(StorageInterface):
    """Dictionary-backed implementation of the storage contract."""

    def __init__(self):
        self._transactions: dict[int, Transaction] = {}
        self._users: dict[int, User] = {}
        self._next_transaction_id = 1
        self._next_user_id = 1

    async def get_user(self, user_id: int) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self._users.values():
            if user.username == username:
                return user.model_copy()
        return None

    async def create_user(self, user: InsertUser) -> User:
        user_id = self._next_user_id
        self._next_user_id += 1

        stored = User(id=user_id, **user.model_dump())
        self._users[user_id] = stored
        return stored.model_copy()

    async def list_transactions(self) -> list[Transaction]:
        # sorted() is stable, so equal dates keep insertion order
        transactions = sorted(
            self._transactions.values(),
            key=lambda t: t.date,
            reverse=True,
        )
        return [t.model_copy() for t in transactions]

    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        transaction = self._transactions.get(transaction_id)
        return transaction.model_copy() if transaction else None

    async def create_transaction(self, transaction: InsertTransaction) -> Transaction:
        transaction_id = self._next_transaction_id
        self._next_transaction_id += 1

        stored = Transaction.model_validate(
            {**transaction.to_document(), "id": transaction_id}
        )
        self._transactions[transaction_id] = stored
        return stored.model_copy()

    async def update_transaction(
        self,
        transaction_id: int,
        update: TransactionUpdate,
    ) -> Optional[Transaction]:
        existing = self._transactions.get(transaction_id)
        if existing is None:
            return None

        merged = Transaction.model_validate(
            {**existing.to_document(), **update.changes(), "id": transaction_id}
        )
        self._transactions[transaction_id] = merged
        return merged.model_copy()

    async def delete_transaction(self, transaction_id: int) -> bool:
        return self._transactions.pop(transaction_id, None) is not None
