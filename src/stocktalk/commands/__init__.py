"""Command interpretation for the inventory assistant.

This module implements:
- Regex fallback parsing of common phrasings
- Per-session conversation context and anaphora resolution
- Pending clarifications and multi-step flows
- The classify/extract orchestration pipeline
"""

from .conversation import (
    ConversationContext,
    ConversationContextManager,
    ConversationMessage,
    InMemoryConversationStore,
    MultiStepFlowState,
    RedisConversationStore,
)
from .fallback_parser import FallbackParser, FallbackResult, try_fallback_parse
from .flows import FlowEngine, FlowOutcome, get_flow, process_step_input
from .llm_client import IntentClassifier, ParameterExtractor
from .orchestrator import CommandOrchestrator, create_orchestrator
from .pending_clarifications import (
    PendingClarificationManager,
    PendingCommand,
    RedisPendingClarificationManager,
)

__all__ = [
    "CommandOrchestrator",
    "ConversationContext",
    "ConversationContextManager",
    "ConversationMessage",
    "FallbackParser",
    "FallbackResult",
    "FlowEngine",
    "FlowOutcome",
    "InMemoryConversationStore",
    "IntentClassifier",
    "MultiStepFlowState",
    "ParameterExtractor",
    "PendingClarificationManager",
    "PendingCommand",
    "RedisConversationStore",
    "RedisPendingClarificationManager",
    "create_orchestrator",
    "get_flow",
    "process_step_input",
    "try_fallback_parse",
]
