"""
Tests for the MongoDB storage adapter.

The adapter runs against the fake driver in conftest.py. "Offline" tests
use a driver whose ping always fails, so every operation falls back to
the in-memory store.
"""

from datetime import datetime, timezone

import pytest
from bson import ObjectId
from bson.errors import InvalidId

from finance_tracker.models.transaction import InsertTransaction, TransactionUpdate
from finance_tracker.models.user import InsertUser
from finance_tracker.services.storage import PrimaryOutcome
from finance_tracker.services.storage.identifiers import (
    id_filter,
    integer_id_from_object_id,
    object_id_guess,
)


def make_transaction(description="Coffee", date="2024-01-05", category="Food & Dining", amount="4.50"):
    return InsertTransaction.model_validate({
        "description": description,
        "amount": amount,
        "date": date,
        "category": category,
    })


@pytest.fixture
def transactions(client_factory):
    return client_factory.database["transactions"]


class TestIdentifiers:
    """ObjectId to integer id translation."""

    def test_integer_id_is_timestamp_prefix(self):
        object_id = ObjectId("65a1b2c3d4e5f60718293a4b")
        assert integer_id_from_object_id(object_id) == 0x65A1B2C3

    def test_object_id_guess_pads_decimal(self):
        assert str(object_id_guess(42)) == "000000000000000000000042"

    @pytest.mark.parametrize("bad_id", [-1, 10 ** 25])
    def test_object_id_guess_rejects_unrepresentable(self, bad_id):
        with pytest.raises(InvalidId):
            object_id_guess(bad_id)

    def test_filter_matches_explicit_or_padded(self):
        assert id_filter(7) == {
            "$or": [{"id": 7}, {"_id": ObjectId("000000000000000000000007")}]
        }


class TestPrimaryOutcome:
    def test_ok(self):
        outcome = PrimaryOutcome.ok(None)
        assert outcome.available is True

    def test_unavailable(self):
        outcome = PrimaryOutcome.unavailable(OSError("down"))
        assert outcome.available is False
        assert outcome.value is None


class TestMongoTransactions:
    """Operations served by MongoDB."""

    async def test_create_writes_explicit_id(self, mongo_storage, transactions):
        created = await mongo_storage.create_transaction(make_transaction())

        [document] = transactions.documents
        assert document["id"] == created.id
        assert created.id == integer_id_from_object_id(document["_id"])
        assert document["isIncome"] is False
        assert document["category"] == "Food & Dining"

    async def test_create_then_get(self, mongo_storage):
        created = await mongo_storage.create_transaction(make_transaction())
        fetched = await mongo_storage.get_transaction(created.id)

        assert fetched is not None
        assert fetched.description == "Coffee"
        assert fetched.amount == 4.5

    async def test_dates_come_back_as_utc(self, mongo_storage, transactions):
        created = await mongo_storage.create_transaction(make_transaction(date="2024-01-05T10:00:00+02:00"))
        assert transactions.documents[0]["date"].tzinfo is None

        fetched = await mongo_storage.get_transaction(created.id)
        assert fetched.date == datetime(2024, 1, 5, 8, 0, tzinfo=timezone.utc)

    async def test_list_sorted_by_date_descending(self, mongo_storage):
        await mongo_storage.create_transaction(make_transaction("Old", date="2024-01-01"))
        await mongo_storage.create_transaction(make_transaction("New", date="2024-03-01"))

        listed = await mongo_storage.list_transactions()
        assert [t.description for t in listed] == ["New", "Old"]

    async def test_list_derives_id_for_documents_without_one(self, mongo_storage, transactions):
        object_id = ObjectId("65a1b2c3d4e5f60718293a4b")
        transactions.seed({
            "_id": object_id,
            "description": "Rent",
            "amount": 1200.0,
            "date": datetime(2024, 1, 1),
            "category": "Housing",
            "isIncome": False,
        })

        [listed] = await mongo_storage.list_transactions()
        assert listed.id == 0x65A1B2C3

    async def test_list_skips_malformed_documents(self, mongo_storage, transactions):
        await mongo_storage.create_transaction(make_transaction())
        transactions.seed({"_id": ObjectId(), "description": "Broken", "date": datetime(2024, 2, 1)})

        listed = await mongo_storage.list_transactions()
        assert [t.description for t in listed] == ["Coffee"]

    async def test_legacy_padded_id_lookup(self, mongo_storage, transactions):
        transactions.seed({
            "_id": ObjectId("000000000000000000000042"),
            "description": "Legacy",
            "amount": 10.0,
            "date": datetime(2023, 6, 1),
            "category": "Other",
            "isIncome": False,
        })

        fetched = await mongo_storage.get_transaction(42)
        assert fetched.description == "Legacy"

    async def test_missing_does_not_fall_back(self, mongo_storage, fallback):
        await fallback.create_transaction(make_transaction("Only in memory"))
        assert await mongo_storage.get_transaction(1) is None

    async def test_update_sets_fields(self, mongo_storage, transactions):
        created = await mongo_storage.create_transaction(make_transaction())
        updated = await mongo_storage.update_transaction(
            created.id, TransactionUpdate.model_validate({"amount": "5.00", "category": "Income"})
        )

        assert updated.amount == 5.0
        assert updated.is_income is True
        assert updated.id == created.id
        assert updated.date == created.date
        assert transactions.documents[0]["amount"] == 5.0

    async def test_update_with_date_stores_utc_timestamp(self, mongo_storage, transactions):
        created = await mongo_storage.create_transaction(make_transaction())
        updated = await mongo_storage.update_transaction(
            created.id,
            TransactionUpdate.model_validate({"date": "2024-03-01T12:00:00+02:00"}),
        )

        assert updated.date == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
        assert updated.amount == created.amount
        assert transactions.documents[0]["date"] == datetime(2024, 3, 1, 10)

    async def test_empty_update_returns_current(self, mongo_storage):
        created = await mongo_storage.create_transaction(make_transaction())
        unchanged = await mongo_storage.update_transaction(created.id, TransactionUpdate())
        assert unchanged == created

    async def test_update_missing_returns_none(self, mongo_storage):
        update = TransactionUpdate.model_validate({"amount": 1})
        assert await mongo_storage.update_transaction(12345, update) is None

    async def test_delete(self, mongo_storage, transactions):
        created = await mongo_storage.create_transaction(make_transaction())

        assert await mongo_storage.delete_transaction(created.id) is True
        assert transactions.documents == []
        assert await mongo_storage.delete_transaction(created.id) is False

    async def test_same_second_inserts_log_id_collision(self, mongo_storage, transactions, recorder, monkeypatch):
        object_ids = iter([
            ObjectId("65a1b2c3000000000000000a"),
            ObjectId("65a1b2c3000000000000000b"),
        ])
        monkeypatch.setattr(
            "finance_tracker.services.storage.mongo.ObjectId", lambda: next(object_ids)
        )

        first = await mongo_storage.create_transaction(make_transaction("First"))
        assert "id_collision" not in recorder.event_types()

        second = await mongo_storage.create_transaction(make_transaction("Second"))

        assert first.id == second.id == 0x65A1B2C3
        assert len(transactions.documents) == 2
        collisions = [
            (level, fields) for level, _, fields in recorder.records
            if fields.get("event_type") == "id_collision"
        ]
        [(level, fields)] = collisions
        assert level == "warning"
        assert fields["entity_id"] == 0x65A1B2C3
        assert fields["details"] == {"object_id": "65a1b2c3000000000000000b"}

    async def test_invalid_id_is_served_by_fallback(self, mongo_storage, recorder):
        assert await mongo_storage.get_transaction(-1) is None
        assert "primary_storage_unavailable" in recorder.event_types()


class TestMongoUsers:
    """User operations served by MongoDB."""

    async def test_create_and_lookup(self, mongo_storage, client_factory):
        user = await mongo_storage.create_user(InsertUser(username="alice", password="secret1"))

        [document] = client_factory.database["users"].documents
        assert document["id"] == user.id
        assert (await mongo_storage.get_user(user.id)).username == "alice"
        assert (await mongo_storage.get_user_by_username("alice")).id == user.id

    async def test_unknown_user(self, mongo_storage):
        assert await mongo_storage.get_user_by_username("nobody") is None


class TestFallback:
    """Every operation degrades to the in-memory store."""

    async def test_create_and_list_use_memory(self, offline_storage, fallback):
        created = await offline_storage.create_transaction(make_transaction())

        assert created.id == 1
        assert await fallback.get_transaction(1) == created
        assert await offline_storage.list_transactions() == [created]

    async def test_full_lifecycle_offline(self, offline_storage):
        created = await offline_storage.create_transaction(make_transaction())
        updated = await offline_storage.update_transaction(
            created.id, TransactionUpdate.model_validate({"amount": "5.00"})
        )
        assert updated.amount == 5.0
        assert (await offline_storage.get_transaction(created.id)).amount == 5.0
        assert await offline_storage.delete_transaction(created.id) is True
        assert await offline_storage.get_transaction(created.id) is None

    async def test_users_offline(self, offline_storage):
        user = await offline_storage.create_user(InsertUser(username="alice", password="secret1"))
        assert user.id == 1
        assert (await offline_storage.get_user(1)).username == "alice"
        assert (await offline_storage.get_user_by_username("alice")).id == 1

    async def test_reconnects_are_rate_limited(self, offline_storage, unreachable_factory, recorder):
        for _ in range(3):
            await offline_storage.list_transactions()

        assert unreachable_factory.calls == 1
        assert recorder.event_types().count("primary_storage_unavailable") == 3

    async def test_fallback_errors_are_logged_with_operation(self, offline_storage, recorder):
        await offline_storage.get_transaction(1)

        fallbacks = [
            fields for _, _, fields in recorder.records
            if fields.get("event_type") == "primary_storage_unavailable"
        ]
        assert fallbacks[0]["details"]["operation"] == "get_transaction"
        assert fallbacks[0]["details"]["error_type"] == "ConnectionError"

    async def test_driver_errors_fall_back(self, mongo_storage, transactions, fallback):
        async def broken_find_one(query):
            raise RuntimeError("cursor killed")

        transactions.find_one = broken_find_one
        memory_copy = await fallback.create_transaction(make_transaction())

        assert await mongo_storage.get_transaction(memory_copy.id) == memory_copy
