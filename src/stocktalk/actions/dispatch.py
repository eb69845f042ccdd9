"""Dispatch parsed commands to action handlers.

The handler table is checked against the action registry when the
dispatcher is built: every registered action needs exactly one handler and
no handler may name an action the registry does not know.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from ..commands.flows import FlowOutcome
from ..models import ParsedCommand
from .payloads import ActionPayload, validate_payload
from .registry import ACTION_REGISTRY, find_action, normalize_action_name

logger = logging.getLogger(__name__)

ActionHandler = Callable[[ActionPayload], Any]


class ActionDispatcher:
    """Route canonical action names to typed handlers."""

    def __init__(self, handlers: Mapping[str, ActionHandler]) -> None:
        """Build the lookup table.

        Args:
            handlers: Action name (aliases allowed, any case) -> handler

        Raises:
            ValueError: If a registered action has no handler, an action has
                more than one handler, or a handler names an unknown action
        """
        table: dict[str, ActionHandler] = {}
        unknown: list[str] = []
        duplicates: list[str] = []

        for name, handler in handlers.items():
            canonical = normalize_action_name(name)
            if find_action(canonical) is None:
                unknown.append(name)
                continue
            if canonical in table:
                duplicates.append(canonical)
                continue
            table[canonical] = handler

        missing = [action.name for action in ACTION_REGISTRY if action.name not in table]

        problems = []
        if missing:
            problems.append(f"no handler for: {', '.join(missing)}")
        if duplicates:
            problems.append(f"multiple handlers for: {', '.join(sorted(set(duplicates)))}")
        if unknown:
            problems.append(f"unregistered actions: {', '.join(unknown)}")
        if problems:
            raise ValueError("Invalid action handler table: " + "; ".join(problems))

        self._handlers = table

    def handler_for(self, action: str) -> ActionHandler:
        """Look up the handler for an action name (case-insensitive, aliases allowed).

        Raises:
            ValueError: If the action is not registered
        """
        canonical = normalize_action_name(action)
        handler = self._handlers.get(canonical)
        if handler is None:
            raise ValueError(f"Unknown action: {action}")
        return handler

    def dispatch_action(self, action: str, parameters: dict[str, Any]) -> Any:
        """Validate parameters into the action's payload and run its handler."""
        handler = self.handler_for(action)
        payload = validate_payload(action, parameters)
        logger.info("Dispatching %s", normalize_action_name(action))
        return handler(payload)

    def dispatch(self, parsed_command: ParsedCommand) -> Any:
        """Execute a parsed command.

        Raises:
            ValueError: If the action is unknown or its required parameters
                are missing
        """
        return self.dispatch_action(parsed_command.action, parsed_command.parameters)

    def dispatch_completed_flow(self, outcome: FlowOutcome) -> Any:
        """Execute the pending action of a completed multi-step flow."""
        if not outcome.completed or not outcome.action:
            raise ValueError(f"Flow {outcome.flow_id} has not completed")
        return self.dispatch_action(outcome.action, outcome.parameters)
