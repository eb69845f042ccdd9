"""Pending clarification slot for short single-field follow-ups."""

import json
import logging
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import redis

logger = logging.getLogger(__name__)


@dataclass
class PendingCommand:
    """A partially-specified command awaiting the user's answer."""

    id: str
    action: str
    parameters: dict[str, Any]
    missing_fields: list[str]
    prompt: str
    created_at: datetime
    expires_at: datetime
    pending_action: str | None = None
    context: dict[str, Any] | None = None
    options: list[str] = field(default_factory=list)

    def is_expired(self) -> bool:
        """Check if this clarification has expired."""
        return datetime.now(UTC) >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "parameters": self.parameters,
            "missingFields": self.missing_fields,
            "prompt": self.prompt,
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
            "pendingAction": self.pending_action,
            "context": self.context,
            "options": self.options,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PendingCommand":
        return cls(
            id=data["id"],
            action=data["action"],
            parameters=data.get("parameters") or {},
            missing_fields=list(data.get("missingFields") or []),
            prompt=data.get("prompt") or "",
            created_at=datetime.fromisoformat(data["createdAt"]),
            expires_at=datetime.fromisoformat(data["expiresAt"]),
            pending_action=data.get("pendingAction"),
            context=data.get("context"),
            options=list(data.get("options") or []),
        )


def _new_pending(
    action: str,
    parameters: dict[str, Any],
    missing_fields: list[str],
    prompt: str,
    expiry: int,
    pending_action: str | None,
    context: dict[str, Any] | None,
    options: list[str] | None,
) -> PendingCommand:
    now = datetime.now(UTC)
    return PendingCommand(
        id=secrets.token_urlsafe(16),
        action=action,
        parameters=dict(parameters),
        missing_fields=list(missing_fields),
        prompt=prompt,
        created_at=now,
        expires_at=now + timedelta(seconds=expiry),
        pending_action=pending_action,
        context=context,
        options=list(options or []),
    )


class PendingClarificationManager:
    """Hold at most one pending clarification per session."""

    def __init__(self, default_expiry_seconds: int = 30) -> None:
        """Initialize the manager.

        Args:
            default_expiry_seconds: Time until a clarification expires (default: 30s)
        """
        self.default_expiry_seconds = default_expiry_seconds
        # session_id -> PendingCommand
        self._pending: dict[str, PendingCommand] = {}

    def create(
        self,
        session_id: str,
        action: str,
        parameters: dict[str, Any],
        missing_fields: list[str],
        prompt: str,
        pending_action: str | None = None,
        context: dict[str, Any] | None = None,
        options: list[str] | None = None,
        expiry_seconds: int | None = None,
    ) -> PendingCommand:
        """Create (or replace) the session's pending clarification.

        Args:
            session_id: Session identifier
            action: Action awaiting more parameters
            parameters: Parameters known so far
            missing_fields: Fields still required
            prompt: Question put to the user
            pending_action: Follow-up action to run after this one, if any
            context: Free-form context for the follow-up
            options: Suggested answers
            expiry_seconds: Custom expiry time, or use default

        Returns:
            The stored PendingCommand
        """
        pending = _new_pending(
            action,
            parameters,
            missing_fields,
            prompt,
            expiry_seconds or self.default_expiry_seconds,
            pending_action,
            context,
            options,
        )
        self._pending[session_id] = pending
        return pending

    def get(self, session_id: str) -> PendingCommand | None:
        """Return the session's clarification, or None if absent or expired."""
        pending = self._pending.get(session_id)
        if pending is None:
            return None

        if pending.is_expired():
            del self._pending[session_id]
            return None

        return pending

    def has_active(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def complete(
        self, session_id: str, new_parameters: dict[str, Any]
    ) -> tuple[str, dict[str, Any]] | None:
        """Merge the user's answer into the pending command and consume it.

        Args:
            session_id: Session identifier
            new_parameters: Parameters supplied by the follow-up turn

        Returns:
            (action, merged parameters), or None if nothing is pending
        """
        pending = self.get(session_id)
        if pending is None:
            return None

        del self._pending[session_id]
        return pending.action, {**pending.parameters, **new_parameters}

    def clear(self, session_id: str) -> bool:
        """Drop the session's clarification. Returns True if one was active."""
        if self.get(session_id) is None:
            return False
        del self._pending[session_id]
        return True

    def cleanup_expired(self) -> int:
        """Remove all expired clarifications.

        Returns:
            Number of expired clarifications removed
        """
        now = datetime.now(UTC)
        expired = [sid for sid, pending in self._pending.items() if pending.expires_at <= now]
        for session_id in expired:
            del self._pending[session_id]
        return len(expired)


class RedisPendingClarificationManager:
    """Redis-backed pending clarifications with atomic consumption.

    This implementation provides:
    - Shared storage across worker processes
    - Atomic consumption (a clarification is completed exactly once)
    - Automatic expiration via Redis TTL
    - Fallback to in-memory if Redis unavailable
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        default_expiry_seconds: int = 30,
        key_prefix: str = "pending_clarification:",
    ) -> None:
        """Initialize the Redis-backed manager.

        Args:
            redis_client: Redis client instance (None to use in-memory fallback)
            default_expiry_seconds: Time until a clarification expires (default: 30s)
            key_prefix: Prefix for Redis keys (default: "pending_clarification:")
        """
        self.redis = redis_client
        self.default_expiry_seconds = default_expiry_seconds
        self.key_prefix = key_prefix

        if self.redis is None:
            logger.warning(
                "Redis not available, using in-memory fallback for pending clarifications"
            )
            self._fallback: PendingClarificationManager | None = PendingClarificationManager(
                default_expiry_seconds
            )
        else:
            logger.info("Using Redis-backed pending clarification storage")
            self._fallback = None

    def _make_redis_key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    @staticmethod
    def _decode(data: Any) -> PendingCommand:
        if isinstance(data, bytes):
            data = data.decode()
        return PendingCommand.from_dict(json.loads(data))

    def create(
        self,
        session_id: str,
        action: str,
        parameters: dict[str, Any],
        missing_fields: list[str],
        prompt: str,
        pending_action: str | None = None,
        context: dict[str, Any] | None = None,
        options: list[str] | None = None,
        expiry_seconds: int | None = None,
    ) -> PendingCommand:
        """Create (or replace) the session's pending clarification."""
        if self._fallback is not None:
            return self._fallback.create(
                session_id,
                action,
                parameters,
                missing_fields,
                prompt,
                pending_action=pending_action,
                context=context,
                options=options,
                expiry_seconds=expiry_seconds,
            )

        expiry = expiry_seconds or self.default_expiry_seconds
        pending = _new_pending(
            action, parameters, missing_fields, prompt, expiry, pending_action, context, options
        )

        try:
            serialized = json.dumps(pending.to_dict(), default=str)
            self.redis.setex(self._make_redis_key(session_id), expiry, serialized)
            logger.debug("Created pending clarification %s with TTL %ds", pending.id[:8], expiry)
        except redis.RedisError as e:
            logger.error("Redis error creating pending clarification: %s", e)

        return pending

    def get(self, session_id: str) -> PendingCommand | None:
        """Return the session's clarification, or None if absent or expired."""
        if self._fallback is not None:
            return self._fallback.get(session_id)

        try:
            redis_key = self._make_redis_key(session_id)
            data = self.redis.get(redis_key)
            if data is None:
                return None

            pending = self._decode(data)
            if pending.is_expired():
                self.redis.delete(redis_key)
                return None
            return pending

        except redis.RedisError as e:
            logger.error("Redis error retrieving pending clarification: %s", e)
            return None
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.error("Error deserializing pending clarification: %s", e)
            return None

    def has_active(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def complete(
        self, session_id: str, new_parameters: dict[str, Any]
    ) -> tuple[str, dict[str, Any]] | None:
        """Merge the user's answer and consume the clarification atomically."""
        if self._fallback is not None:
            return self._fallback.complete(session_id, new_parameters)

        redis_key = self._make_redis_key(session_id)
        try:
            # WATCH/MULTI so only one caller consumes the slot
            pipe = self.redis.pipeline()
            pipe.watch(redis_key)

            data = pipe.get(redis_key)
            if data is None:
                pipe.unwatch()
                return None

            pending = self._decode(data)
            if pending.is_expired():
                pipe.unwatch()
                self.redis.delete(redis_key)
                return None

            pipe.multi()
            pipe.delete(redis_key)
            pipe.execute()

            logger.debug("Completed pending clarification %s", pending.id[:8])
            return pending.action, {**pending.parameters, **new_parameters}

        except redis.WatchError:
            logger.debug("Concurrent completion detected for session %s", session_id[:8])
            return None
        except redis.RedisError as e:
            logger.error("Redis error completing pending clarification: %s", e)
            return None
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.error("Error deserializing pending clarification: %s", e)
            return None

    def clear(self, session_id: str) -> bool:
        """Drop the session's clarification. Returns True if one was active."""
        if self._fallback is not None:
            return self._fallback.clear(session_id)

        try:
            return self.redis.delete(self._make_redis_key(session_id)) > 0
        except redis.RedisError as e:
            logger.error("Redis error clearing pending clarification: %s", e)
            return False

    def cleanup_expired(self) -> int:
        """Remove expired clarifications.

        Redis expires keys itself, so this only does work for the fallback.
        """
        if self._fallback is not None:
            return self._fallback.cleanup_expired()

        logger.debug("cleanup_expired called on Redis backend (no-op)")
        return 0
