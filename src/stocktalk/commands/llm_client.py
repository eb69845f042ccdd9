"""Clients for the remote intent classification and parameter extraction services.

Both calls degrade instead of raising: on any transport, HTTP or contract
failure they return a confidence-0.1 stub result so the pipeline can fall
back to local parsing.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..actions.registry import is_registered, normalize_action_name
from ..assistant_config import AssistantConfig, get_assistant_config
from ..logging_utils import get_request_id, redact_secrets
from ..metrics import MetricsCollector
from ..models import ClassificationResult, ExtractionResult, ServiceResponse

logger = logging.getLogger(__name__)

DEGRADED_CONFIDENCE = 0.1
UNKNOWN_ACTION_CONFIDENCE = 0.3
DEFAULT_ACTION = "QUERY_INVENTORY"


class ServiceUnavailableError(Exception):
    """The remote service could not produce a usable response."""


def _build_headers(config: AssistantConfig) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if config.api_key:
        headers["Authorization"] = f"Bearer {config.api_key}"
    request_id = get_request_id()
    if request_id:
        headers["X-Request-ID"] = request_id
    return headers


def _post(url: str, payload: dict[str, Any], config: AssistantConfig) -> dict[str, Any]:
    """POST a request and unwrap the {success, data, message} envelope.

    Raises:
        ServiceUnavailableError: On transport errors, non-2xx status, bad JSON,
            or a response with success=false or no data
    """
    try:
        response = httpx.post(
            url,
            json=payload,
            headers=_build_headers(config),
            timeout=config.request_timeout_seconds,
        )
        response.raise_for_status()
        envelope = ServiceResponse.model_validate(response.json())
    except httpx.TimeoutException as e:
        raise ServiceUnavailableError(f"Request to {url} timed out: {e}") from e
    except httpx.HTTPStatusError as e:
        raise ServiceUnavailableError(
            f"{url} returned HTTP {e.response.status_code}: {redact_secrets(e.response.text[:200])}"
        ) from e
    except httpx.HTTPError as e:
        raise ServiceUnavailableError(f"Request to {url} failed: {e}") from e
    except (ValueError, ValidationError) as e:
        raise ServiceUnavailableError(f"Malformed response from {url}: {e}") from e

    if not envelope.success or envelope.data is None:
        raise ServiceUnavailableError(envelope.message or f"{url} reported failure")
    return envelope.data


class IntentClassifier:
    """Stage 1: ask the classification service which action the user wants."""

    def __init__(
        self,
        config: AssistantConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.config = config or get_assistant_config()
        self.metrics = metrics

    def classify(self, command: str, context_summary: str | None = None) -> ClassificationResult:
        """Classify a command into a registered action.

        Args:
            command: Raw user command
            context_summary: Recent conversation summary

        Returns:
            ClassificationResult; degraded to QUERY_INVENTORY on failure
        """
        payload: dict[str, Any] = {"command": command}
        if context_summary:
            payload["context"] = context_summary

        try:
            data = _post(self.config.classify_url, payload, self.config)
            result = ClassificationResult.model_validate(data)
        except (ServiceUnavailableError, ValidationError) as e:
            logger.error("Intent classification failed: %s", e)
            if self.metrics is not None:
                self.metrics.record_service_failure("classify")
            return ClassificationResult(
                action=DEFAULT_ACTION,
                confidence=DEGRADED_CONFIDENCE,
                reasoning="Classification service unavailable",
            )

        if not is_registered(result.action):
            logger.warning("Classifier returned unregistered action %s", result.action)
            return ClassificationResult(
                action=DEFAULT_ACTION,
                confidence=UNKNOWN_ACTION_CONFIDENCE,
                reasoning=f"Unrecognised action {result.action}",
            )

        return ClassificationResult(
            action=normalize_action_name(result.action),
            confidence=result.confidence,
            reasoning=result.reasoning,
        )


class ParameterExtractor:
    """Stage 2: ask the extraction service for the action's parameters."""

    def __init__(
        self,
        config: AssistantConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.config = config or get_assistant_config()
        self.metrics = metrics

    def extract(
        self, command: str, action: str, context_summary: str | None = None
    ) -> ExtractionResult:
        """Extract parameters for an already-classified action.

        Args:
            command: Raw user command
            action: Canonical action name
            context_summary: Recent conversation summary

        Returns:
            ExtractionResult; empty with confidence 0.1 on failure
        """
        payload: dict[str, Any] = {"command": command, "action": action}
        if context_summary:
            payload["context"] = context_summary

        try:
            data = _post(self.config.extract_url, payload, self.config)
            return ExtractionResult.model_validate(data)
        except (ServiceUnavailableError, ValidationError) as e:
            logger.error("Parameter extraction failed for %s: %s", action, e)
            if self.metrics is not None:
                self.metrics.record_service_failure("extract")
            return ExtractionResult(
                parameters={}, missing_required=[], confidence=DEGRADED_CONFIDENCE
            )


def classify_intent(command: str, context_summary: str | None = None) -> ClassificationResult:
    """Classify a command using the globally configured service."""
    return IntentClassifier().classify(command, context_summary)


def extract_parameters(
    command: str, action: str, context_summary: str | None = None
) -> ExtractionResult:
    """Extract parameters using the globally configured service."""
    return ParameterExtractor().extract(command, action, context_summary)
