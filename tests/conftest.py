"""
Shared fixtures and fakes.

No test talks to a real MongoDB. The fakes below implement just the
slice of the pymongo asyncio API the storage layer uses, and return
naive UTC datetimes the way pymongo does by default.
"""

import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import urlsplit

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.config import DatabaseSettings
from finance_tracker.services.storage import (
    MemoryStorage,
    MongoConnectionManager,
    MongoStorage,
)


# =============================================================================
# Fake pymongo driver
# =============================================================================

def _as_mongo_value(value: Any) -> Any:
    """Mongo stores datetimes in UTC and hands them back naive."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _matches(document: dict, query: dict) -> bool:
    if "$or" in query:
        return any(_matches(document, clause) for clause in query["$or"])
    return all(document.get(key) == value for key, value in query.items())


class FakeInsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class FakeDeleteResult:
    def __init__(self, deleted_count: int):
        self.deleted_count = deleted_count


class FakeCursor:
    def __init__(self, documents: list[dict]):
        self._documents = documents

    def sort(self, key: str, direction: int) -> "FakeCursor":
        self._documents.sort(key=lambda d: d[key], reverse=direction < 0)
        return self

    async def to_list(self, length: Optional[int] = None) -> list[dict]:
        return self._documents if length is None else self._documents[:length]


class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.documents: list[dict] = []

    def seed(self, document: dict) -> None:
        self.documents.append({k: _as_mongo_value(v) for k, v in document.items()})

    def find(self, query: Optional[dict] = None) -> FakeCursor:
        query = query or {}
        return FakeCursor([copy.deepcopy(d) for d in self.documents if _matches(d, query)])

    async def find_one(self, query: dict) -> Optional[dict]:
        for document in self.documents:
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    async def insert_one(self, document: dict) -> FakeInsertResult:
        self.seed(document)
        return FakeInsertResult(document["_id"])

    async def find_one_and_update(self, query: dict, update: dict, return_document=None):
        for document in self.documents:
            if _matches(document, query):
                for key, value in update["$set"].items():
                    document[key] = _as_mongo_value(value)
                return copy.deepcopy(document)
        return None

    async def delete_one(self, query: dict) -> FakeDeleteResult:
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                del self.documents[index]
                return FakeDeleteResult(1)
        return FakeDeleteResult(0)


class FakeDatabase:
    def __init__(self, name: str):
        self.name = name
        self.collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


class FakeAdmin:
    def __init__(self, client: "FakeClient"):
        self._client = client

    async def command(self, name: str) -> dict:
        self._client.commands.append(name)
        if self._client.gate is not None:
            await self._client.gate.wait()
        if self._client.ping_error is not None:
            raise self._client.ping_error
        return {"ok": 1.0}


class FakeClient:
    def __init__(self, uri: str, database: FakeDatabase, ping_error=None, gate=None, **options):
        self.uri = uri
        self.options = options
        self.commands: list[str] = []
        self.closed = False
        self.ping_error = ping_error
        self.gate = gate
        self.admin = FakeAdmin(self)
        self._database = database

    def get_default_database(self, default: Optional[str] = None) -> FakeDatabase:
        name = urlsplit(self.uri).path.strip("/") or default
        self._database.name = name
        return self._database

    async def close(self) -> None:
        self.closed = True


class FakeClientFactory:
    """Callable standing in for AsyncMongoClient; records every client built."""

    def __init__(self, ping_error: Optional[Exception] = None):
        self.database = FakeDatabase("finance")
        self.ping_error = ping_error
        self.gate: Optional[asyncio.Event] = None
        self.clients: list[FakeClient] = []

    def __call__(self, uri: str, **options) -> FakeClient:
        client = FakeClient(
            uri,
            self.database,
            ping_error=self.ping_error,
            gate=self.gate,
            **options,
        )
        self.clients.append(client)
        return client

    @property
    def calls(self) -> int:
        return len(self.clients)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingLogger:
    """Stands in for a structlog logger; keeps (level, event, fields)."""

    def __init__(self):
        self.records: list[tuple[str, str, dict]] = []

    def _record(self, level: str, event: str, **fields) -> None:
        self.records.append((level, event, fields))

    def debug(self, event, **fields):
        self._record("debug", event, **fields)

    def info(self, event, **fields):
        self._record("info", event, **fields)

    def warning(self, event, **fields):
        self._record("warning", event, **fields)

    def error(self, event, **fields):
        self._record("error", event, **fields)

    def event_types(self) -> list[str]:
        return [fields.get("event_type") for _, _, fields in self.records]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def recorder() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def audit_logger(recorder) -> AuditLogger:
    return AuditLogger(logger=recorder)


@pytest.fixture
def database_settings() -> DatabaseSettings:
    return DatabaseSettings(
        uri="mongodb://db.example:27017/finance",
        retry_cooldown_seconds=30,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client_factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def unreachable_factory() -> FakeClientFactory:
    return FakeClientFactory(ping_error=OSError("connection refused"))


@pytest.fixture
def connection(database_settings, audit_logger, client_factory, clock) -> MongoConnectionManager:
    return MongoConnectionManager(
        database_settings,
        audit_logger,
        client_factory=client_factory,
        clock=clock,
    )


@pytest.fixture
def fallback() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def mongo_storage(connection, fallback, database_settings, audit_logger) -> MongoStorage:
    return MongoStorage(
        connection,
        fallback=fallback,
        settings=database_settings,
        audit_logger=audit_logger,
    )


@pytest.fixture
def offline_storage(database_settings, audit_logger, unreachable_factory, clock, fallback) -> MongoStorage:
    connection = MongoConnectionManager(
        database_settings,
        audit_logger,
        client_factory=unreachable_factory,
        clock=clock,
    )
    return MongoStorage(
        connection,
        fallback=fallback,
        settings=database_settings,
        audit_logger=audit_logger,
    )
