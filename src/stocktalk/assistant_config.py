"""Assistant configuration loader.

Loads confidence thresholds, TTLs and service endpoints from a YAML file
with safe defaults. Environment variables override the endpoint settings.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssistantConfig:
    """Tunable settings for the command interpretation pipeline."""

    # Below this classifier confidence the regex fallback is consulted
    low_confidence_threshold: float = 0.6
    # Classifier confidence below which a search override may fire
    low_intent_threshold: float = 0.65
    # Extractor confidence required for a search override
    param_override_threshold: float = 0.8
    message_ttl_seconds: int = 30 * 60
    max_messages: int = 10
    summary_message_count: int = 3
    pending_ttl_seconds: int = 30
    classify_url: str = "http://localhost:3000/api/ai/classify-intent"
    extract_url: str = "http://localhost:3000/api/ai/extract-params"
    request_timeout_seconds: float = 10.0
    api_key: str | None = None
    # Keep raw command text in the audit log
    store_command_text: bool = False


_THRESHOLD_FIELDS = (
    "low_confidence_threshold",
    "low_intent_threshold",
    "param_override_threshold",
)
_POSITIVE_INT_FIELDS = (
    "message_ttl_seconds",
    "max_messages",
    "summary_message_count",
    "pending_ttl_seconds",
)
_STRING_FIELDS = ("classify_url", "extract_url")


def _parse_assistant_config(data: dict[str, Any]) -> AssistantConfig:
    """Parse a configuration dictionary into an AssistantConfig.

    Unknown keys are rejected; absent keys keep their defaults.

    Args:
        data: Dictionary containing assistant configuration.

    Returns:
        AssistantConfig object with parsed values.

    Raises:
        ValueError: If a field is unknown or has an invalid value.
    """
    defaults = AssistantConfig()
    known = set(defaults.__dataclass_fields__)
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config fields: {', '.join(unknown)}")

    for field in _THRESHOLD_FIELDS:
        if field in data:
            value = data[field]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Field '{field}' must be a number")
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Field '{field}' must be between 0 and 1")

    for field in _POSITIVE_INT_FIELDS:
        if field in data:
            value = data[field]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"Field '{field}' must be an integer")
            if value <= 0:
                raise ValueError(f"Field '{field}' must be positive")

    for field in _STRING_FIELDS:
        if field in data and not isinstance(data[field], str):
            raise ValueError(f"Field '{field}' must be a string")
    if data.get("api_key") is not None and not isinstance(data["api_key"], str):
        raise ValueError("Field 'api_key' must be a string")

    if "store_command_text" in data and not isinstance(data["store_command_text"], bool):
        raise ValueError("Field 'store_command_text' must be a boolean")

    if "request_timeout_seconds" in data:
        timeout = data["request_timeout_seconds"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError("Field 'request_timeout_seconds' must be a positive number")

    return replace(defaults, **data)


def _apply_env_overrides(config: AssistantConfig) -> AssistantConfig:
    overrides: dict[str, Any] = {}
    if os.environ.get("STOCKTALK_CLASSIFY_URL"):
        overrides["classify_url"] = os.environ["STOCKTALK_CLASSIFY_URL"]
    if os.environ.get("STOCKTALK_EXTRACT_URL"):
        overrides["extract_url"] = os.environ["STOCKTALK_EXTRACT_URL"]
    if os.environ.get("STOCKTALK_API_KEY"):
        overrides["api_key"] = os.environ["STOCKTALK_API_KEY"]
    return replace(config, **overrides) if overrides else config


def load_assistant_config(config_path: str | None = None) -> AssistantConfig:
    """Load assistant configuration from a YAML file.

    Args:
        config_path: Path to the YAML file. If None, uses STOCKTALK_CONFIG_PATH
                    or the default path: config/assistant.yaml

    Returns:
        AssistantConfig. If the file is missing or invalid, safe defaults are
        returned (environment overrides still apply).
    """
    if config_path is None:
        config_path = os.environ.get("STOCKTALK_CONFIG_PATH")
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent
        config_path = os.path.join(project_root, "config", "assistant.yaml")

    if not os.path.exists(config_path):
        return _apply_env_overrides(AssistantConfig())

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("Config file must contain a YAML dictionary")

        # Settings may sit under an "assistant" section or at the top level
        section = data.get("assistant", data)
        if not isinstance(section, dict):
            raise ValueError("'assistant' section must be a dictionary")

        config = _parse_assistant_config(section)

    except (yaml.YAMLError, ValueError, OSError) as e:
        logger.warning("Failed to load assistant config from %s: %s", config_path, e)
        logger.warning("Using default assistant configuration")
        config = AssistantConfig()

    return _apply_env_overrides(config)


_cached_config: AssistantConfig | None = None


def get_assistant_config(config_path: str | None = None) -> AssistantConfig:
    """Get the assistant configuration (cached)."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_assistant_config(config_path)
    return _cached_config


def reload_assistant_config(config_path: str | None = None) -> AssistantConfig:
    """Reload assistant configuration from file."""
    global _cached_config
    _cached_config = load_assistant_config(config_path)
    return _cached_config
