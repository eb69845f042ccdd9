"""Inventory action catalogue and typed payloads."""

from .payloads import ActionPayload, payload_model_for, validate_payload
from .registry import (
    ACTION_ALIASES,
    ACTION_REGISTRY,
    ActionDefinition,
    ParameterDefinition,
    find_action,
    get_actions_by_category,
    normalize_action_name,
)

__all__ = [
    "ACTION_ALIASES",
    "ACTION_REGISTRY",
    "ActionDefinition",
    "ActionPayload",
    "ParameterDefinition",
    "find_action",
    "get_actions_by_category",
    "normalize_action_name",
    "payload_model_for",
    "validate_payload",
]
