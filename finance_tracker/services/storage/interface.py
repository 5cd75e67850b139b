"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Serve the same contract from MongoDB or from memory
2. Let the MongoDB adapter hold a fallback store of the same type
3. Use a fresh in-memory store per test

Not-found is a normal outcome: lookups return None and deletes return
False. Exceptions are reserved for failures of the backend itself.
"""

from abc import ABC, abstractmethod
from typing import Optional

from finance_tracker.models.transaction import (
    InsertTransaction,
    Transaction,
    TransactionUpdate,
)
from finance_tracker.models.user import InsertUser, User


class StorageInterface(ABC):
    """
    Abstract interface for user and transaction storage.

    Any storage implementation (MongoDB, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        """Retrieve a user by id, or None."""
        pass

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]:
        """Retrieve a user by username, or None."""
        pass

    @abstractmethod
    async def create_user(self, user: InsertUser) -> User:
        """Store a new user and return it with its assigned id."""
        pass

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """
        List all transactions.

        Returns:
            Transactions ordered by date, newest first
        """
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """
        Retrieve a transaction by its id.

        Returns:
            The transaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_transaction(self, transaction: InsertTransaction) -> Transaction:
        """
        Store a new transaction.

        Returns:
            The stored transaction with its assigned id
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        transaction_id: int,
        update: TransactionUpdate,
    ) -> Optional[Transaction]:
        """
        Merge the supplied fields onto an existing transaction.

        Fields absent from the update keep their stored values.

        Returns:
            The updated transaction, or None if it doesn't exist
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: int) -> bool:
        """
        Delete a transaction by id.

        Returns:
            True if a record was removed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class ConnectionInProgressError(ConnectionError):
    """Another coroutine is already connecting to the backend."""
    pass


class ConnectionRateLimitedError(ConnectionError):
    """The previous connection attempt started inside the cooldown window."""
    pass
