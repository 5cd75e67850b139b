"""
MongoDB Storage Implementation

DESIGN DECISION: Availability over consistency. Every operation is tried
against MongoDB first; if anything goes wrong on that path (no connection,
rate-limited reconnect, malformed id, driver error) the same logical
operation is served by an in-memory fallback store instead.

TRADEOFFS:
- The API always responds, even with the database down
- Records written in degraded mode are ephemeral and are never
  migrated back to MongoDB
- Clients cannot tell which store served a request

The primary path returns a PrimaryOutcome value rather than raising;
each operation checks the outcome and only then decides whether to
delegate to the fallback store.

ID MAPPING: documents carry MongoDB's ObjectId as _id. The API exposes a
small integer derived from the ObjectId (see identifiers.py); on insert
that integer is also written as an explicit `id` field so later lookups
by integer id find the document.

WARNING: the integer is the ObjectId timestamp, so two documents inserted
in the same second share it, and lookups by that id reach only the older
one. The insert still goes ahead; an id_collision audit event is logged so
the overlap is visible in operations.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

import structlog
from bson import ObjectId
from pydantic import ValidationError
from pymongo import ReturnDocument

from finance_tracker.audit import AuditLogger
from finance_tracker.config import DatabaseSettings, get_settings
from finance_tracker.models.transaction import (
    InsertTransaction,
    Transaction,
    TransactionUpdate,
)
from finance_tracker.models.user import InsertUser, User
from finance_tracker.services.storage.connection import MongoConnectionManager
from finance_tracker.services.storage.identifiers import (
    id_filter,
    integer_id_from_object_id,
)
from finance_tracker.services.storage.interface import StorageInterface
from finance_tracker.services.storage.memory import MemoryStorage


logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PrimaryOutcome(Generic[T]):
    """Result of running one operation against MongoDB."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def available(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: T) -> "PrimaryOutcome[T]":
        return cls(value=value)

    @classmethod
    def unavailable(cls, error: BaseException) -> "PrimaryOutcome[T]":
        return cls(error=error)


def _public_id(document: dict) -> int:
    """Prefer an explicit integer id field; otherwise derive from _id."""
    explicit = document.get("id")
    if isinstance(explicit, int) and not isinstance(explicit, bool):
        return explicit
    return integer_id_from_object_id(document["_id"])


class MongoStorage(StorageInterface):
    """
    MongoDB implementation of the storage contract with in-memory fallback.

    The fallback store is composed in, not inherited: pass the instance the
    rest of the application should share, or let the adapter create one.
    """

    def __init__(
        self,
        connection: MongoConnectionManager,
        fallback: Optional[StorageInterface] = None,
        settings: Optional[DatabaseSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._connection = connection
        self._fallback = fallback or MemoryStorage()
        self._settings = settings or get_settings().database
        self._audit = audit_logger or AuditLogger()

    async def _run_primary(
        self,
        operation: str,
        collection_name: str,
        action: Callable[[Any], Awaitable[T]],
    ) -> PrimaryOutcome[T]:
        """Run an action against a collection, capturing any failure."""
        try:
            collection = await self._connection.collection(collection_name)
            return PrimaryOutcome.ok(await action(collection))
        except Exception as e:
            self._audit.log_primary_unavailable(operation, e)
            return PrimaryOutcome.unavailable(e)

    async def _check_id_collision(
        self,
        collection,
        entity_type: str,
        integer_id: int,
        object_id: ObjectId,
    ) -> None:
        if await collection.find_one({"id": integer_id}) is not None:
            self._audit.log_id_collision(entity_type, integer_id, str(object_id))

    # -------------------------------------------------------------------------
    # Document conversion
    # -------------------------------------------------------------------------

    def _to_transaction(self, document: dict) -> Transaction:
        fields = {k: v for k, v in document.items() if k not in ("_id", "id")}
        return Transaction.model_validate({**fields, "id": _public_id(document)})

    def _to_user(self, document: dict) -> User:
        return User(
            id=_public_id(document),
            username=document["username"],
            password=document["password"],
        )

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: int) -> Optional[User]:
        async def find(collection):
            document = await collection.find_one(id_filter(user_id))
            return self._to_user(document) if document else None

        outcome = await self._run_primary(
            "get_user", self._settings.users_collection, find
        )
        if outcome.available:
            return outcome.value
        return await self._fallback.get_user(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        async def find(collection):
            document = await collection.find_one({"username": username})
            return self._to_user(document) if document else None

        outcome = await self._run_primary(
            "get_user_by_username", self._settings.users_collection, find
        )
        if outcome.available:
            return outcome.value
        return await self._fallback.get_user_by_username(username)

    async def create_user(self, user: InsertUser) -> User:
        async def insert(collection):
            object_id = ObjectId()
            user_id = integer_id_from_object_id(object_id)
            await self._check_id_collision(collection, "user", user_id, object_id)
            await collection.insert_one(
                {**user.model_dump(), "_id": object_id, "id": user_id}
            )
            return User(id=user_id, **user.model_dump())

        outcome = await self._run_primary(
            "create_user", self._settings.users_collection, insert
        )
        if outcome.available:
            return outcome.value
        return await self._fallback.create_user(user)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        async def fetch(collection):
            documents = await collection.find().sort("date", -1).to_list(None)
            transactions = []
            for document in documents:
                try:
                    transactions.append(self._to_transaction(document))
                except (ValidationError, KeyError) as e:
                    # Skip malformed documents
                    logger.warning(
                        "transaction_document_skipped",
                        object_id=str(document.get("_id")),
                        error=str(e),
                    )
            return transactions

        outcome = await self._run_primary(
            "list_transactions", self._settings.transactions_collection, fetch
        )
        if outcome.available:
            return outcome.value
        return await self._fallback.list_transactions()

    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        async def find(collection):
            document = await collection.find_one(id_filter(transaction_id))
            return self._to_transaction(document) if document else None

        outcome = await self._run_primary(
            "get_transaction", self._settings.transactions_collection, find
        )
        if outcome.available:
            return outcome.value
        return await self._fallback.get_transaction(transaction_id)

    async def create_transaction(self, transaction: InsertTransaction) -> Transaction:
        async def insert(collection):
            object_id = ObjectId()
            transaction_id = integer_id_from_object_id(object_id)
            await self._check_id_collision(
                collection, "transaction", transaction_id, object_id
            )
            document = transaction.to_document()
            await collection.insert_one(
                {**document, "_id": object_id, "id": transaction_id}
            )
            return Transaction.model_validate({**document, "id": transaction_id})

        outcome = await self._run_primary(
            "create_transaction", self._settings.transactions_collection, insert
        )
        if outcome.available:
            return outcome.value
        return await self._fallback.create_transaction(transaction)

    async def update_transaction(
        self,
        transaction_id: int,
        update: TransactionUpdate,
    ) -> Optional[Transaction]:
        changes = update.changes()

        async def apply(collection):
            if changes:
                document = await collection.find_one_and_update(
                    id_filter(transaction_id),
                    {"$set": changes},
                    return_document=ReturnDocument.AFTER,
                )
            else:
                document = await collection.find_one(id_filter(transaction_id))
            return self._to_transaction(document) if document else None

        outcome = await self._run_primary(
            "update_transaction", self._settings.transactions_collection, apply
        )
        if outcome.available:
            return outcome.value
        return await self._fallback.update_transaction(transaction_id, update)

    async def delete_transaction(self, transaction_id: int) -> bool:
        async def delete(collection):
            result = await collection.delete_one(id_filter(transaction_id))
            return result.deleted_count == 1

        outcome = await self._run_primary(
            "delete_transaction", self._settings.transactions_collection, delete
        )
        if outcome.available:
            return outcome.value
        return await self._fallback.delete_transaction(transaction_id)
