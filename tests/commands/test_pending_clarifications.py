"""Tests for the pending clarification slot."""

import time
from datetime import UTC, datetime, timedelta

import pytest

from stocktalk.commands.pending_clarifications import (
    PendingClarificationManager,
    PendingCommand,
    RedisPendingClarificationManager,
)


@pytest.fixture
def manager() -> PendingClarificationManager:
    """Create a pending clarification manager."""
    return PendingClarificationManager(default_expiry_seconds=30)


def _create(manager, session_id: str, **kwargs) -> PendingCommand:
    return manager.create(
        session_id,
        "ADD_STOCK",
        {"item": "bearings", "quantity": 5},
        ["location"],
        "Where should the bearings go?",
        **kwargs,
    )


class TestCreate:
    """Test creating clarifications."""

    def test_create(self, manager, session_id) -> None:
        pending = _create(manager, session_id)

        assert pending.id
        assert pending.action == "ADD_STOCK"
        assert pending.missing_fields == ["location"]
        assert pending.prompt == "Where should the bearings go?"
        assert pending.expires_at > datetime.now(UTC)

    def test_default_ttl(self, manager, session_id) -> None:
        pending = _create(manager, session_id)

        ttl = (pending.expires_at - pending.created_at).total_seconds()
        assert ttl == pytest.approx(30, abs=1)

    def test_custom_ttl(self, manager, session_id) -> None:
        pending = _create(manager, session_id, expiry_seconds=120)

        ttl = (pending.expires_at - datetime.now(UTC)).total_seconds()
        assert 115 < ttl < 125

    def test_optional_fields(self, manager, session_id) -> None:
        pending = _create(
            manager,
            session_id,
            pending_action="CREATE_CATALOGUE_ITEM_AND_ADD_STOCK",
            context={"origin": "stock"},
            options=["warehouse", "van"],
        )

        assert pending.pending_action == "CREATE_CATALOGUE_ITEM_AND_ADD_STOCK"
        assert pending.options == ["warehouse", "van"]

    def test_create_replaces_existing(self, manager, session_id) -> None:
        _create(manager, session_id)
        manager.create(session_id, "REMOVE_STOCK", {}, ["item"], "Which item?")

        assert manager.get(session_id).action == "REMOVE_STOCK"

    def test_parameters_copied(self, manager, session_id) -> None:
        params = {"item": "bearings"}
        manager.create(session_id, "ADD_STOCK", params, ["quantity"], "How many?")
        params["item"] = "changed"

        assert manager.get(session_id).parameters == {"item": "bearings"}


class TestCompleteAndClear:
    """Test consuming clarifications."""

    def test_complete_merges_new_over_old(self, manager, session_id) -> None:
        _create(manager, session_id)

        result = manager.complete(session_id, {"location": "van", "quantity": 6})

        assert result == ("ADD_STOCK", {"item": "bearings", "quantity": 6, "location": "van"})

    def test_complete_consumes(self, manager, session_id) -> None:
        _create(manager, session_id)
        manager.complete(session_id, {"location": "van"})

        assert manager.get(session_id) is None
        assert manager.complete(session_id, {"location": "van"}) is None

    def test_complete_without_pending(self, manager, session_id) -> None:
        assert manager.complete(session_id, {}) is None

    def test_has_active(self, manager, session_id) -> None:
        assert not manager.has_active(session_id)
        _create(manager, session_id)
        assert manager.has_active(session_id)

    def test_clear(self, manager, session_id) -> None:
        _create(manager, session_id)

        assert manager.clear(session_id) is True
        assert manager.clear(session_id) is False

    def test_sessions_isolated(self, manager, session_id, other_session_id) -> None:
        _create(manager, session_id)

        assert manager.get(other_session_id) is None


class TestExpiry:
    """Test TTL handling."""

    def test_expired_not_returned(self, session_id) -> None:
        manager = PendingClarificationManager(default_expiry_seconds=1)
        _create(manager, session_id)

        time.sleep(1.1)

        assert manager.get(session_id) is None
        assert manager.complete(session_id, {"location": "van"}) is None

    def test_cleanup_expired(self, manager, session_id, other_session_id) -> None:
        _create(manager, session_id)
        _create(manager, other_session_id)
        manager._pending[session_id].expires_at = datetime.now(UTC) - timedelta(seconds=1)

        assert manager.cleanup_expired() == 1
        assert manager.get(other_session_id) is not None


class TestSerialization:
    """Test the persisted JSON shape."""

    def test_round_trip(self, manager, session_id) -> None:
        pending = _create(manager, session_id, options=["van"])

        data = pending.to_dict()
        assert data["missingFields"] == ["location"]
        assert PendingCommand.from_dict(data) == pending


class TestRedisFallback:
    """Test the Redis manager without a Redis client."""

    def test_fallback_behaves_like_in_memory(self, session_id) -> None:
        manager = RedisPendingClarificationManager(redis_client=None, default_expiry_seconds=30)
        _create(manager, session_id)

        assert manager.has_active(session_id)
        assert manager.complete(session_id, {"location": "van"})[0] == "ADD_STOCK"
        assert manager.get(session_id) is None
        assert manager.cleanup_expired() == 0
