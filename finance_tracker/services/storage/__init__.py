"""
Storage Services Package

Provides the storage contract and its two implementations: MongoDB as the
primary store and an in-memory store it falls back to.
"""

from finance_tracker.services.storage.interface import (
    ConnectionError,
    ConnectionInProgressError,
    ConnectionRateLimitedError,
    StorageError,
    StorageInterface,
)
from finance_tracker.services.storage.connection import (
    ConnectionState,
    MongoConnectionManager,
)
from finance_tracker.services.storage.memory import MemoryStorage
from finance_tracker.services.storage.mongo import MongoStorage, PrimaryOutcome

__all__ = [
    # Interface
    "StorageInterface",
    # Exceptions
    "ConnectionError",
    "ConnectionInProgressError",
    "ConnectionRateLimitedError",
    "StorageError",
    # Implementations
    "ConnectionState",
    "MemoryStorage",
    "MongoConnectionManager",
    "MongoStorage",
    "PrimaryOutcome",
]
