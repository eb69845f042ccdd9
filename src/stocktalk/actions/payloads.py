"""Typed per-action payloads built from the registry's parameter definitions.

Every registered action gets a pydantic model whose required fields mirror
the action's required parameters, so a payload that validates is guaranteed
to carry them.
"""

from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from .registry import ACTION_REGISTRY, ActionDefinition, find_action, normalize_action_name

_TYPE_MAP: dict[str, Any] = {
    "string": str,
    "number": float,
    "boolean": bool,
    "array": list[Any],
    "object": dict[str, Any],
}


class ActionPayload(BaseModel):
    """Base class for generated action payloads."""

    # Extra keys (e.g. flow bookkeeping) are kept rather than rejected
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    def to_parameters(self) -> dict[str, Any]:
        """Dump back to a parameter dict, dropping unset optional fields."""
        return self.model_dump(exclude_none=True)


def _model_name(action_name: str) -> str:
    return "".join(part.capitalize() for part in action_name.split("_")) + "Payload"


def _build_payload_model(action: ActionDefinition) -> type[ActionPayload]:
    fields: dict[str, Any] = {}
    for param in action.parameters:
        python_type = _TYPE_MAP[param.type]
        if param.required:
            fields[param.name] = (python_type, ...)
        else:
            fields[param.name] = (python_type | None, None)
    return create_model(_model_name(action.name), __base__=ActionPayload, **fields)


@lru_cache(maxsize=None)
def payload_model_for(action: str) -> type[ActionPayload]:
    """Return the payload model for an action (aliases are resolved).

    Raises:
        ValueError: If the action is not registered
    """
    definition = find_action(normalize_action_name(action))
    if definition is None:
        raise ValueError(f"Unknown action: {action}")
    return _build_payload_model(definition)


def validate_payload(action: str, parameters: dict[str, Any]) -> ActionPayload:
    """Validate a parameter bag against an action's payload model.

    Args:
        action: Action name (aliases allowed)
        parameters: Extracted parameters

    Returns:
        Typed payload instance

    Raises:
        ValueError: If the action is unknown or required parameters are
            missing or have the wrong type
    """
    model = payload_model_for(action)
    try:
        return model.model_validate(parameters)
    except ValidationError as e:
        missing = [
            str(err["loc"][0]) for err in e.errors() if err["type"] == "missing" and err["loc"]
        ]
        if missing:
            raise ValueError(
                f"Missing required parameters for {normalize_action_name(action)}: "
                f"{', '.join(missing)}"
            ) from e
        raise ValueError(
            f"Invalid parameters for {normalize_action_name(action)}: {e.error_count()} error(s)"
        ) from e


def all_payload_models() -> dict[str, type[ActionPayload]]:
    """Build payload models for every registered action."""
    return {action.name: payload_model_for(action.name) for action in ACTION_REGISTRY}
