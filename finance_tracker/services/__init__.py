"""Services package."""

from finance_tracker.services.storage import (
    ConnectionError,
    ConnectionInProgressError,
    ConnectionRateLimitedError,
    ConnectionState,
    MemoryStorage,
    MongoConnectionManager,
    MongoStorage,
    StorageError,
    StorageInterface,
)

__all__ = [
    "ConnectionError",
    "ConnectionInProgressError",
    "ConnectionRateLimitedError",
    "ConnectionState",
    "MemoryStorage",
    "MongoConnectionManager",
    "MongoStorage",
    "StorageError",
    "StorageInterface",
]
