"""Two-stage command interpretation pipeline.

Turns a free-text command into a ParsedCommand: classify the intent, fall
back to regex templates when the classifier is unsure, extract parameters,
resolve references to earlier turns, and decide whether the user must be
asked for more information. The pipeline never raises to its caller.
"""

import logging
import time
from typing import Any, Protocol

import duckdb
import redis

from ..actions.registry import normalize_action_name
from ..assistant_config import AssistantConfig, get_assistant_config
from ..db.command_log import record_parsed_command
from ..logging_utils import (
    clear_request_id,
    get_request_id,
    log_error,
    log_info,
    log_warning,
    set_request_id,
)
from ..metrics import MetricsCollector, get_metrics_collector, is_metrics_enabled
from ..models import (
    ClassificationResult,
    ExtractionResult,
    ParseDebug,
    ParsedCommand,
    PipelinePath,
    StageOneDebug,
    StageTwoDebug,
)
from ..redis_client import get_redis_client
from .conversation import (
    ConversationContextManager,
    ConversationMessage,
    MultiStepFlowState,
    RedisConversationStore,
)
from .fallback_parser import FallbackResult, try_fallback_parse
from .flows import resolve_flow_id
from .llm_client import DEGRADED_CONFIDENCE, IntentClassifier, ParameterExtractor
from .normalization import extract_search_term, normalize_parameters
from .pending_clarifications import PendingClarificationManager, RedisPendingClarificationManager

logger = logging.getLogger(__name__)

TERMINAL_ACTION = "QUERY_INVENTORY"
TERMINAL_CONFIDENCE = 0.1
TERMINAL_CLARIFICATION = (
    "Sorry, I could not understand that command. "
    "Please try rephrasing or provide more details."
)

_STOCK_KEYWORDS = ("stock", "inventory", "in stock", "available")


class Classifier(Protocol):
    def classify(
        self, command: str, context_summary: str | None = None
    ) -> ClassificationResult: ...


class Extractor(Protocol):
    def extract(
        self, command: str, action: str, context_summary: str | None = None
    ) -> ExtractionResult: ...


def _clarification_text(missing: list[str]) -> str:
    return f"Missing required information: {', '.join(missing)}. Please provide these details."


class CommandOrchestrator:
    """Coordinate classification, extraction and conversation state."""

    def __init__(
        self,
        classifier: Classifier,
        extractor: Extractor,
        context_manager: ConversationContextManager,
        pending_clarifications: PendingClarificationManager | RedisPendingClarificationManager,
        config: AssistantConfig | None = None,
        metrics: MetricsCollector | None = None,
        command_log: duckdb.DuckDBPyConnection | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            classifier: Stage 1 intent classifier
            extractor: Stage 2 parameter extractor
            context_manager: Per-session conversation state
            pending_clarifications: Per-session single-field follow-ups
            config: Thresholds and TTLs
            metrics: Metrics collector (default: global one when enabled)
            command_log: Optional DuckDB connection for the audit log
        """
        self.classifier = classifier
        self.extractor = extractor
        self.context_manager = context_manager
        self.pending_clarifications = pending_clarifications
        self.config = config or context_manager.config
        if metrics is None and is_metrics_enabled():
            metrics = get_metrics_collector()
        self.metrics = metrics
        self.command_log = command_log

    def parse_command(self, command: str, session_id: str) -> ParsedCommand:
        """Interpret a command for one conversation.

        Args:
            command: Raw user command
            session_id: Conversation identifier

        Returns:
            ParsedCommand; a low-confidence QUERY_INVENTORY with a
            clarification request when nothing else works
        """
        owns_request_id = get_request_id() is None
        if owns_request_id:
            set_request_id()
        started = time.perf_counter()

        try:
            try:
                result = self._run_pipeline(command, session_id)
            except Exception:
                logger.exception("Command pipeline failed for session %s", session_id[:8])
                result = self._recover(command)

            latency_ms = (time.perf_counter() - started) * 1000
            path = result.debug.path.value if result.debug else PipelinePath.LLM.value
            log_info(
                logger,
                "Parsed command",
                session=session_id[:8],
                action=result.action,
                confidence=round(result.confidence, 3),
                path=path,
                latency_ms=round(latency_ms, 1),
            )
            if self.metrics is not None:
                self.metrics.record_parse(result.action, path, latency_ms)
            self._audit(session_id, command, result)
            return result
        finally:
            if owns_request_id:
                clear_request_id()

    def clear_context(self, session_id: str) -> None:
        """Forget conversation history, flow state and pending clarification."""
        self.context_manager.clear(session_id)
        self.pending_clarifications.clear(session_id)

    def _context_summary(self, session_id: str) -> str:
        summary = self.context_manager.get_context_summary(session_id)
        pending = self.pending_clarifications.get(session_id)
        if pending is not None:
            summary += (
                f"\n\nPending clarification: {pending.action} "
                f"needs {', '.join(pending.missing_fields) or 'more details'}"
            )
        return summary

    def _run_pipeline(self, command: str, session_id: str) -> ParsedCommand:
        logger.debug("Parsing command: %s", command)
        context_summary = self._context_summary(session_id)

        classification = self.classifier.classify(command, context_summary)
        logger.info(
            "Classification: %s (confidence: %.2f)",
            classification.action,
            classification.confidence,
        )
        stage1 = StageOneDebug(
            action=classification.action,
            confidence=classification.confidence,
            reasoning=classification.reasoning,
        )

        if classification.confidence < self.config.low_confidence_threshold:
            fallback = try_fallback_parse(command)
            if fallback is not None and fallback.confidence > classification.confidence:
                logger.info("Fallback parser matched: %s", fallback.action)
                return self._fallback_result(command, session_id, fallback, stage1)

        action = normalize_action_name(classification.action)
        extraction = self.extractor.extract(command, action, context_summary)

        if (
            classification.confidence <= DEGRADED_CONFIDENCE
            and extraction.confidence <= DEGRADED_CONFIDENCE
            and not extraction.parameters
        ):
            log_warning(
                logger,
                "Classification, fallback and extraction all failed",
                session=session_id[:8],
            )
            self.context_manager.add_message(
                session_id, ConversationMessage(user_input=command, success=False)
            )
            return self._terminal_result(command, PipelinePath.EXHAUSTED)

        resolved = self.context_manager.resolve_contextual_references(
            session_id, command, extraction.parameters, action=action
        )
        parameters = normalize_parameters(resolved)

        final_action = action
        path = PipelinePath.LLM
        override_reason: str | None = None
        search_term = extract_search_term(parameters)
        if (
            classification.confidence < self.config.low_intent_threshold
            and extraction.confidence >= self.config.param_override_threshold
            and search_term
        ):
            final_action, override_reason = self._search_override(
                command, parameters, extraction.confidence
            )
            path = PipelinePath.OVERRIDE
            logger.info("Search override to %s", final_action)
            logger.debug("Override search term: %s", search_term)

        missing = list(extraction.missing_required)
        completed = None
        pending = self.pending_clarifications.get(session_id)
        if pending is not None and pending.action == final_action:
            completed = self.pending_clarifications.complete(session_id, parameters)
        if completed is not None:
            parameters = completed[1]
            missing = [name for name in missing if parameters.get(name) is None]
            if path is PipelinePath.LLM:
                path = PipelinePath.PENDING

        confidence = min(classification.confidence, extraction.confidence)
        result = ParsedCommand(
            action=final_action,
            parameters=parameters,
            confidence=confidence,
            reasoning=override_reason
            or classification.reasoning
            or f"Classified as {final_action} with {len(parameters)} parameters",
            missing_required=missing,
            clarification_needed=_clarification_text(missing) if missing else None,
            debug=ParseDebug(
                stage1=stage1,
                stage2=StageTwoDebug(
                    parameters=parameters,
                    confidence=extraction.confidence,
                    missing_required=missing,
                ),
                used_override=override_reason is not None,
                override_reason=override_reason,
                path=path,
            ),
        )

        self._record_turn(command, session_id, result, classification.action)
        return result

    def _search_override(
        self, command: str, parameters: dict[str, Any], extraction_confidence: float
    ) -> tuple[str, str]:
        lower = command.lower()
        if parameters.get("queryType") == "stock" or any(k in lower for k in _STOCK_KEYWORDS):
            return (
                "SEARCH_STOCK",
                "Overridden to SEARCH_STOCK due to high-confidence search parameter "
                f"({extraction_confidence}) and stock context",
            )
        return (
            "SEARCH_CATALOGUE",
            "Overridden to SEARCH_CATALOGUE due to high-confidence search parameter "
            f"({extraction_confidence})",
        )

    def _record_turn(
        self,
        command: str,
        session_id: str,
        result: ParsedCommand,
        classified_label: str | None = None,
    ) -> None:
        """Add the turn to history and persist follow-up state.

        Step markers in the parameters start flow state. The flow is taken
        from an explicit flowId, else from the classifier's label before
        alias normalization, else from the resolved action's default flow.
        """
        parameters = result.parameters
        self.context_manager.add_message(
            session_id,
            ConversationMessage(
                user_input=command,
                action=result.action,
                parameters=parameters,
                success=True,
            ),
        )

        flow_id = None
        if "currentStep" in parameters and "totalSteps" in parameters:
            flow_id = resolve_flow_id(
                str(parameters.get("flowId") or ""), classified_label, result.action
            )
            if flow_id is None:
                log_warning(
                    logger,
                    "Ignoring step markers for action without a flow",
                    session=session_id[:8],
                    action=result.action,
                )

        if flow_id is not None:
            collected = parameters.get("collectedData")
            self.context_manager.set_multi_step_state(
                session_id,
                MultiStepFlowState(
                    flow_id=flow_id,
                    current_step=int(parameters["currentStep"]),
                    total_steps=int(parameters["totalSteps"]),
                    collected_data=collected if isinstance(collected, dict) else {},
                    pending_action=result.action,
                ),
            )
        elif result.clarification_needed:
            self.pending_clarifications.create(
                session_id,
                result.action,
                parameters,
                result.missing_required or [],
                result.clarification_needed,
                expiry_seconds=self.config.pending_ttl_seconds,
            )

    def _fallback_result(
        self,
        command: str,
        session_id: str,
        fallback: FallbackResult,
        stage1: StageOneDebug,
    ) -> ParsedCommand:
        self.context_manager.add_message(
            session_id,
            ConversationMessage(
                user_input=command,
                action=fallback.action,
                parameters=fallback.parameters,
                success=True,
            ),
        )
        return ParsedCommand(
            action=fallback.action,
            parameters=fallback.parameters,
            confidence=fallback.confidence,
            reasoning="Local regex fallback",
            debug=ParseDebug(stage1=stage1, path=PipelinePath.FALLBACK),
        )

    def _recover(self, command: str) -> ParsedCommand:
        """Last resort after an unexpected error: regex templates, then give up."""
        try:
            fallback = try_fallback_parse(command)
        except Exception:
            logger.exception("Fallback parser failed during recovery")
            fallback = None

        if fallback is not None:
            return ParsedCommand(
                action=fallback.action,
                parameters=fallback.parameters,
                confidence=fallback.confidence,
                reasoning="Fallback parser after error",
                debug=ParseDebug(path=PipelinePath.ERROR_FALLBACK),
            )
        return self._terminal_result(command, PipelinePath.EXHAUSTED)

    @staticmethod
    def _terminal_result(command: str, path: PipelinePath) -> ParsedCommand:
        return ParsedCommand(
            action=TERMINAL_ACTION,
            parameters={"search": command},
            confidence=TERMINAL_CONFIDENCE,
            reasoning="Failed to parse command - all methods exhausted",
            clarification_needed=TERMINAL_CLARIFICATION,
            debug=ParseDebug(path=path),
        )

    def _audit(self, session_id: str, command: str, result: ParsedCommand) -> None:
        if self.command_log is None:
            return
        try:
            record_parsed_command(
                self.command_log,
                session_id,
                command,
                result,
                store_command_text=self.config.store_command_text,
            )
        except duckdb.Error as e:
            log_error(logger, "Failed to write command audit log", session=session_id[:8], error=e)


def create_orchestrator(
    config: AssistantConfig | None = None,
    command_log: duckdb.DuckDBPyConnection | None = None,
    redis_client: redis.Redis | None = None,
) -> CommandOrchestrator:
    """Build an orchestrator wired to the configured services and stores.

    Conversation context and pending clarifications are kept in Redis when a
    client is available (get_redis_client() when none is passed) and in
    process memory otherwise.

    Args:
        config: Assistant configuration (default: get_assistant_config())
        command_log: Optional DuckDB connection for the audit log
        redis_client: Redis client for session state

    Returns:
        A ready CommandOrchestrator
    """
    config = config or get_assistant_config()
    if redis_client is None:
        redis_client = get_redis_client()

    metrics = get_metrics_collector() if is_metrics_enabled() else None
    context_manager = ConversationContextManager(
        store=RedisConversationStore(redis_client, ttl_seconds=config.message_ttl_seconds),
        config=config,
    )
    return CommandOrchestrator(
        classifier=IntentClassifier(config, metrics),
        extractor=ParameterExtractor(config, metrics),
        context_manager=context_manager,
        pending_clarifications=RedisPendingClarificationManager(
            redis_client, default_expiry_seconds=config.pending_ttl_seconds
        ),
        config=config,
        metrics=metrics,
        command_log=command_log,
    )
