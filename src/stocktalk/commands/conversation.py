"""Conversation context tracking across independent command requests.

Keeps a short, expiring history of recent turns per session, resolves
anaphoric references ("add 5 more", "same thing to the van"), renders a
context summary for the classifier/extractor prompts, and holds the
multi-step flow state for the session.

All state is keyed by an explicit session id and lives in an injected store.
"""

import copy
import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

import redis

from ..assistant_config import AssistantConfig

logger = logging.getLogger(__name__)

# Verbs that move or count stock and therefore imply a location
_STOCK_VERB_PATTERN = re.compile(r"\b(add|put|receive|use|take|remove|got|have|count)\b")
_MORE_PATTERN = re.compile(r"\bmore\b")
_SAME_PATTERN = re.compile(r"\bsame(\s+thing)?\b")
_QUERY_PATTERN = re.compile(r"^\s*(what|which|where|how|show|list|search|find|look)\b|\?\s*$")

# Actions whose schema requires a stock location
LOCATION_ACTIONS = frozenset({"ADD_STOCK", "REMOVE_STOCK", "COUNT_STOCK"})


@dataclass
class ConversationMessage:
    """A single user turn and how it was interpreted."""

    user_input: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    action: str | None = None
    parameters: dict[str, Any] | None = None
    success: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "userInput": self.user_input,
            "action": self.action,
            "parameters": self.parameters,
            "success": self.success,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationMessage":
        return cls(
            id=data["id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            user_input=data["userInput"],
            action=data.get("action"),
            parameters=data.get("parameters"),
            success=data.get("success"),
        )


@dataclass
class MultiStepFlowState:
    """Progress through a multi-step clarification flow."""

    flow_id: str
    current_step: int
    total_steps: int
    collected_data: dict[str, Any] = field(default_factory=dict)
    pending_action: str = ""
    # Parameters known before the flow started; merged in on completion
    known_parameters: dict[str, Any] = field(default_factory=dict)
    subject_label: str = ""

    @property
    def is_complete(self) -> bool:
        return self.current_step >= self.total_steps

    def to_dict(self) -> dict[str, Any]:
        return {
            "flowId": self.flow_id,
            "currentStep": self.current_step,
            "totalSteps": self.total_steps,
            "collectedData": self.collected_data,
            "pendingAction": self.pending_action,
            "knownParameters": self.known_parameters,
            "subjectLabel": self.subject_label,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MultiStepFlowState":
        return cls(
            flow_id=data["flowId"],
            current_step=int(data["currentStep"]),
            total_steps=int(data["totalSteps"]),
            collected_data=data.get("collectedData") or {},
            pending_action=data.get("pendingAction") or "",
            known_parameters=data.get("knownParameters") or {},
            subject_label=data.get("subjectLabel") or "",
        )


@dataclass
class ConversationContext:
    """Recent history for one session plus derived shortcuts."""

    messages: list[ConversationMessage] = field(default_factory=list)
    last_action: str | None = None
    last_parameters: dict[str, Any] | None = None
    last_item: str | None = None
    last_location: str | None = None
    last_quantity: float | None = None
    multi_step_state: MultiStepFlowState | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "lastAction": self.last_action,
            "lastParameters": self.last_parameters,
            "lastItem": self.last_item,
            "lastLocation": self.last_location,
            "lastQuantity": self.last_quantity,
            "multiStepState": self.multi_step_state.to_dict() if self.multi_step_state else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationContext":
        state = data.get("multiStepState")
        return cls(
            messages=[ConversationMessage.from_dict(m) for m in data.get("messages") or []],
            last_action=data.get("lastAction"),
            last_parameters=data.get("lastParameters"),
            last_item=data.get("lastItem"),
            last_location=data.get("lastLocation"),
            last_quantity=data.get("lastQuantity"),
            multi_step_state=MultiStepFlowState.from_dict(state) if state else None,
        )


class ConversationStore(Protocol):
    """Storage for per-session conversation contexts."""

    def load(self, session_id: str) -> ConversationContext | None: ...

    def save(self, session_id: str, context: ConversationContext) -> None: ...

    def delete(self, session_id: str) -> None: ...


class InMemoryConversationStore:
    """Process-local conversation store keyed by session id.

    Sessions idle for longer than ttl_seconds are dropped lazily on save,
    like key expiry in the Redis store.
    """

    def __init__(self, ttl_seconds: int = 30 * 60) -> None:
        # Maps session_id -> ConversationContext
        self._contexts: dict[str, ConversationContext] = {}
        # Maps session_id -> time of last save
        self._touched: dict[str, datetime] = {}
        self.ttl_seconds = ttl_seconds

    def _drop_idle(self, now: datetime) -> None:
        cutoff = now - timedelta(seconds=self.ttl_seconds)
        for session_id in [s for s, touched in self._touched.items() if touched <= cutoff]:
            self.delete(session_id)

    def load(self, session_id: str) -> ConversationContext | None:
        context = self._contexts.get(session_id)
        return copy.deepcopy(context) if context is not None else None

    def save(self, session_id: str, context: ConversationContext) -> None:
        now = datetime.now(UTC)
        self._drop_idle(now)
        self._contexts[session_id] = copy.deepcopy(context)
        self._touched[session_id] = now

    def delete(self, session_id: str) -> None:
        self._contexts.pop(session_id, None)
        self._touched.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._contexts)


class RedisConversationStore:
    """Redis-backed conversation store.

    This implementation provides:
    - Conversation context that survives process restarts
    - Automatic expiration of idle sessions via Redis TTL
    - Fallback to in-memory if Redis unavailable
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        ttl_seconds: int = 30 * 60,
        key_prefix: str = "conversation:",
    ) -> None:
        """Initialize the Redis-backed store.

        Args:
            redis_client: Redis client instance (None to use in-memory fallback)
            ttl_seconds: TTL for idle sessions (default: 30 minutes)
            key_prefix: Prefix for Redis keys (default: "conversation:")
        """
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

        if self.redis is None:
            logger.warning("Redis not available, using in-memory fallback for conversation context")
            self._fallback: InMemoryConversationStore | None = InMemoryConversationStore(
                ttl_seconds
            )
        else:
            logger.info("Using Redis-backed conversation context storage")
            self._fallback = None

    def _make_redis_key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    def load(self, session_id: str) -> ConversationContext | None:
        if self._fallback is not None:
            return self._fallback.load(session_id)

        try:
            data = self.redis.get(self._make_redis_key(session_id))
            if data is None:
                return None
            if isinstance(data, bytes):
                data = data.decode()
            return ConversationContext.from_dict(json.loads(data))
        except redis.RedisError as e:
            logger.error("Redis error loading conversation context: %s", e)
            return None
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.error("Error deserializing conversation context: %s", e)
            return None

    def save(self, session_id: str, context: ConversationContext) -> None:
        if self._fallback is not None:
            self._fallback.save(session_id, context)
            return

        try:
            serialized = json.dumps(context.to_dict(), default=str)
            self.redis.setex(self._make_redis_key(session_id), self.ttl_seconds, serialized)
            logger.debug("Saved conversation context for %s", session_id[:8])
        except redis.RedisError as e:
            logger.error("Redis error saving conversation context: %s", e)

    def delete(self, session_id: str) -> None:
        if self._fallback is not None:
            self._fallback.delete(session_id)
            return

        try:
            self.redis.delete(self._make_redis_key(session_id))
        except redis.RedisError as e:
            logger.error("Redis error clearing conversation context: %s", e)


def _sets_shortcuts(message: ConversationMessage) -> bool:
    return bool(message.success and message.action and message.parameters is not None)


def _apply_shortcuts(context: ConversationContext, message: ConversationMessage) -> None:
    params = message.parameters or {}
    context.last_action = message.action
    context.last_parameters = dict(params)
    context.last_item = params.get("item") or params.get("partNumber")
    context.last_location = params.get("location")
    quantity = params.get("quantity")
    context.last_quantity = quantity if isinstance(quantity, (int, float)) else None


def _clear_shortcuts(context: ConversationContext) -> None:
    context.last_action = None
    context.last_parameters = None
    context.last_item = None
    context.last_location = None
    context.last_quantity = None


class ConversationContextManager:
    """Manage conversation context for voice and chat commands.

    Tracks recent turns per session so follow-ups like "add 3 more" can
    reuse the item and location of the previous successful command.
    """

    def __init__(
        self,
        store: ConversationStore | None = None,
        config: AssistantConfig | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            store: Conversation store (default: in-memory)
            config: Assistant configuration for TTL and history limits
        """
        self.config = config or AssistantConfig()
        self.store = (
            store
            if store is not None
            else InMemoryConversationStore(ttl_seconds=self.config.message_ttl_seconds)
        )

    def _evict_expired(self, context: ConversationContext) -> bool:
        """Drop expired messages and re-derive the shortcuts from the survivors.

        Returns:
            True if any message was evicted
        """
        cutoff = datetime.now(UTC) - timedelta(seconds=self.config.message_ttl_seconds)
        kept = [m for m in context.messages if m.timestamp > cutoff]
        if len(kept) == len(context.messages):
            return False

        context.messages = kept
        latest = next((m for m in reversed(kept) if _sets_shortcuts(m)), None)
        if latest is None:
            _clear_shortcuts(context)
        else:
            _apply_shortcuts(context, latest)
        return True

    def _load(self, session_id: str) -> ConversationContext:
        return self.store.load(session_id) or ConversationContext()

    def _load_current(self, session_id: str) -> ConversationContext:
        """Load the context without expired turns, writing the pruned state back."""
        context = self._load(session_id)
        if self._evict_expired(context):
            if not context.messages and context.multi_step_state is None:
                self.store.delete(session_id)
            else:
                self.store.save(session_id, context)
        return context

    def add_message(self, session_id: str, message: ConversationMessage) -> None:
        """Add a turn to the session's history.

        Expired messages are evicted first and the history is capped. If the
        turn succeeded and carries an action and parameters, the shortcut
        fields are recomputed from it.
        """
        context = self._load(session_id)
        self._evict_expired(context)

        context.messages.append(message)
        if len(context.messages) > self.config.max_messages:
            context.messages = context.messages[-self.config.max_messages :]

        if _sets_shortcuts(message):
            _apply_shortcuts(context, message)

        self.store.save(session_id, context)

    def get_context(self, session_id: str) -> ConversationContext:
        """Get a copy of the session's context with expired messages dropped."""
        return self._load_current(session_id)

    def resolve_contextual_references(
        self,
        session_id: str,
        user_input: str,
        parameters: dict[str, Any],
        action: str | None = None,
    ) -> dict[str, Any]:
        """Fill implicit references from recent context.

        "more" / "same" / "same thing" reuse the last item. A stock-moving
        verb without an extracted location reuses the last location, except
        for query-style input or actions that take no stock location.

        Args:
            session_id: Session identifier
            user_input: Raw user command
            parameters: Newly extracted parameters
            action: Resolved action, if known

        Returns:
            New parameter dict with references substituted
        """
        context = self.get_context(session_id)
        lower = user_input.lower()
        resolved = dict(parameters)

        if not parameters.get("item") and context.last_item:
            if _MORE_PATTERN.search(lower) or _SAME_PATTERN.search(lower):
                resolved["item"] = context.last_item

        if not parameters.get("location") and context.last_location:
            needs_location = bool(_STOCK_VERB_PATTERN.search(lower))
            if action is not None:
                needs_location = needs_location and action in LOCATION_ACTIONS
            elif _QUERY_PATTERN.search(lower):
                needs_location = False
            if needs_location:
                resolved["location"] = context.last_location

        return resolved

    def get_context_summary(self, session_id: str) -> str:
        """Summarize the most recent turns for classifier/extractor prompts."""
        context = self.get_context(session_id)
        recent = context.messages[-self.config.summary_message_count :]
        if not recent:
            return "No recent context."

        lines = []
        for message in recent:
            action = message.action or "unknown"
            params = (
                json.dumps(message.parameters, separators=(",", ":"), default=str)
                if message.parameters
                else "no params"
            )
            lines.append(f'- "{message.user_input}" → {action} {params}')

        summary = "Recent commands:\n" + "\n".join(lines)
        if context.last_item:
            summary += f"\n\nLast item: {context.last_item}"
        if context.last_location:
            summary += f"\nLast location: {context.last_location}"
        return summary

    def clear(self, session_id: str) -> None:
        """Clear all context for a session."""
        self.store.delete(session_id)

    def set_multi_step_state(self, session_id: str, state: MultiStepFlowState) -> None:
        """Store multi-step flow state for a session."""
        context = self._load(session_id)
        context.multi_step_state = state
        self.store.save(session_id, context)

    def get_multi_step_state(self, session_id: str) -> MultiStepFlowState | None:
        """Get the session's current multi-step flow state."""
        return self._load(session_id).multi_step_state

    def update_multi_step_data(self, session_id: str, data: dict[str, Any]) -> None:
        """Merge data into the active flow's collected data (no-op without a flow)."""
        context = self._load(session_id)
        if context.multi_step_state is None:
            return
        context.multi_step_state.collected_data = {
            **context.multi_step_state.collected_data,
            **data,
        }
        self.store.save(session_id, context)

    def clear_multi_step_state(self, session_id: str) -> None:
        """Drop the session's multi-step flow state."""
        context = self._load(session_id)
        if context.multi_step_state is None:
            return
        context.multi_step_state = None
        self.store.save(session_id, context)
