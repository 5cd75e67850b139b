"""
MongoDB Connection Manager

Owns the single, lazily-established connection to the primary store.

DESIGN DECISION: Connection attempts fail fast instead of retrying.
- A cached handle is returned as-is for the life of the process
- A second caller arriving while an attempt is underway gets
  ConnectionInProgressError instead of waiting
- An attempt starting within the cooldown window of the previous
  attempt's start gets ConnectionRateLimitedError without touching
  the network

Callers (the storage adapter) treat every one of these errors as
"primary store unavailable" and serve the request from memory, so a dead
database costs at most one network probe per cooldown window.

The in-progress flag is a plain attribute. It is set before the first
await of an attempt, and asyncio does not switch tasks between two
statements without an await, so no lock is needed.
"""

import time
from enum import Enum
from typing import Any, Callable, Optional
from urllib.parse import urlsplit, urlunsplit

from pymongo import AsyncMongoClient

from finance_tracker.audit import AuditLogger
from finance_tracker.config import DEFAULT_MONGODB_URI, DatabaseSettings, get_settings
from finance_tracker.services.storage.interface import (
    ConnectionError,
    ConnectionInProgressError,
    ConnectionRateLimitedError,
)


class ConnectionState(str, Enum):
    """Lifecycle of the primary store connection."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def redact_uri(uri: str) -> str:
    """Hide credentials before a connection string reaches the logs."""
    parts = urlsplit(uri)
    if "@" not in parts.netloc:
        return uri
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=f"***@{host}"))


class MongoConnectionManager:
    """
    Lazily connects to MongoDB and caches the database handle.

    The client factory and clock are injectable so tests can run
    without a server and without waiting out the cooldown.
    """

    def __init__(
        self,
        settings: Optional[DatabaseSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        client_factory: Optional[Callable[..., Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings or get_settings().database
        self._audit = audit_logger or AuditLogger()
        self._client_factory = client_factory or AsyncMongoClient
        self._clock = clock

        self._client: Optional[Any] = None
        self._database: Optional[Any] = None
        self._in_progress = False
        self._last_attempt_at: Optional[float] = None

    @property
    def state(self) -> ConnectionState:
        if self._database is not None:
            return ConnectionState.CONNECTED
        if self._in_progress:
            return ConnectionState.CONNECTING
        return ConnectionState.DISCONNECTED

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    async def acquire(self):
        """
        Return the database handle, connecting first if needed.

        Raises:
            ConnectionInProgressError: Another attempt is underway
            ConnectionRateLimitedError: Last attempt started inside the cooldown
            ConnectionError: The attempt itself failed
        """
        if self._database is not None:
            return self._database

        if self._in_progress:
            raise ConnectionInProgressError("MongoDB connection already in progress")

        now = self._clock()
        if (
            self._last_attempt_at is not None
            and now - self._last_attempt_at < self._settings.retry_cooldown_seconds
        ):
            raise ConnectionRateLimitedError("MongoDB connection attempt rate limited")

        self._in_progress = True
        self._last_attempt_at = now
        client = None
        try:
            self._audit.log_connection_attempted(redact_uri(self._settings.uri))
            if "uri" not in self._settings.model_fields_set:
                self._audit.log_connection_uri_defaulted(DEFAULT_MONGODB_URI)

            client = self._client_factory(
                self._settings.uri,
                serverSelectionTimeoutMS=self._settings.server_selection_timeout_ms,
            )
            await client.admin.command("ping")
            database = client.get_default_database(
                default=self._settings.database_name
            )
        except Exception as e:
            self._audit.log_connection_failed(str(e))
            if client is not None:
                await self._close_client(client)
            raise ConnectionError(f"Failed to connect to MongoDB: {e}") from e
        finally:
            self._in_progress = False

        self._client = client
        self._database = database
        self._audit.log_connection_succeeded(database.name)
        return database

    async def collection(self, name: str):
        """Return a collection handle from the (possibly new) connection."""
        database = await self.acquire()
        return database[name]

    async def close(self) -> None:
        """Close the cached connection, if any. Never raises."""
        client = self._client
        self._client = None
        self._database = None
        if client is not None:
            await self._close_client(client)

    async def _close_client(self, client) -> None:
        try:
            await client.close()
        except Exception as e:
            self._audit.log_connection_closed(str(e))
        else:
            self._audit.log_connection_closed()
