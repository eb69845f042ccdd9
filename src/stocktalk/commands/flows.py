"""Multi-step clarification flows.

A flow is an ordered list of steps, each collecting one field for a complex
action (e.g. creating a catalogue item with cost, markup and supplier). The
engine persists progress in the session's conversation context, so each
user turn advances the flow by exactly one step.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..actions.registry import normalize_action_name
from ..metrics import MetricsCollector
from .conversation import ConversationContextManager, MultiStepFlowState

logger = logging.getLogger(__name__)

SKIP_TOKEN = "skip"

_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))")
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    error: str | None = None


@dataclass(frozen=True)
class FlowStep:
    """One field collected by a flow."""

    field: str
    prompt: Callable[[str], str]
    optional: bool = True
    validator: Callable[[str], ValidationOutcome] | None = None
    skip_text: str | None = None


@dataclass(frozen=True)
class MultiStepFlow:
    id: str
    steps: tuple[FlowStep, ...]

    @property
    def total_steps(self) -> int:
        return len(self.steps)


@dataclass(frozen=True)
class StepInput:
    """Result of interpreting the user's answer to one step."""

    value: Any
    skipped: bool
    error: str | None = None


@dataclass
class FlowOutcome:
    """What happened when the user answered a flow step.

    status is one of "advanced", "invalid", "completed" or "inactive".
    """

    status: str
    flow_id: str | None = None
    prompt: str | None = None
    error: str | None = None
    action: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)
    collected_data: dict[str, Any] = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        return self.status == "completed"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": self.status, "flowId": self.flow_id}
        if self.prompt is not None:
            result["prompt"] = self.prompt
        if self.error is not None:
            result["error"] = self.error
        if self.completed:
            result["action"] = self.action
            result["parameters"] = self.parameters
            result["collectedData"] = self.collected_data
        return result


def _parse_float(value: str) -> float | None:
    match = _FLOAT_PREFIX.match(value)
    return float(match.group(1)) if match else None


def _parse_int(value: str) -> int | None:
    match = _INT_PREFIX.match(value)
    return int(match.group(1)) if match else None


def _is_skip(value: str) -> bool:
    text = value.lower().strip()
    return text == SKIP_TOKEN or text == ""


def _non_negative(parse: Callable[[str], float | int | None]) -> Callable[[str], ValidationOutcome]:
    def validate(value: str) -> ValidationOutcome:
        if _is_skip(value):
            return ValidationOutcome(valid=True)
        number = parse(value.strip())
        if number is None or number < 0:
            return ValidationOutcome(
                valid=False, error='Please enter a valid positive number or "skip"'
            )
        return ValidationOutcome(valid=True)

    return validate


SUPPLIER_DETAILS_STEPS: tuple[FlowStep, ...] = (
    FlowStep(
        field="address",
        prompt=lambda name: (
            f'(Supplier Details 1/4) What is the address for "{name}"? '
            "(Enter address or type 'skip')"
        ),
        skip_text="No address provided",
    ),
    FlowStep(
        field="email",
        prompt=lambda name: (
            f'(Supplier Details 2/4) What is the email for "{name}"? '
            "(Enter email or type 'skip')"
        ),
        skip_text="No email provided",
    ),
    FlowStep(
        field="website",
        prompt=lambda name: (
            f'(Supplier Details 3/4) What is the website for "{name}"? '
            "(Enter website or type 'skip')"
        ),
        skip_text="No website provided",
    ),
    FlowStep(
        field="phone",
        prompt=lambda name: (
            f'(Supplier Details 4/4) What is the phone number for "{name}"? '
            "(Enter phone or type 'skip')"
        ),
        skip_text="No phone provided",
    ),
)

CATALOGUE_ITEM_STEPS: tuple[FlowStep, ...] = (
    FlowStep(
        field="unitCost",
        prompt=lambda name: (
            f'(Step 1/6) What is the supplier/cost price for "{name}"? '
            "(Enter price or type 'skip' to leave blank)"
        ),
        validator=_non_negative(_parse_float),
        skip_text="No cost price set",
    ),
    FlowStep(
        field="markup",
        prompt=lambda name: (
            "(Step 2/6) What markup percentage should be applied? "
            "(e.g., 35 for 35%, or type 'skip')"
        ),
        validator=_non_negative(_parse_float),
        skip_text="No markup set",
    ),
    FlowStep(
        field="preferredSupplierName",
        prompt=lambda name: "(Step 3/6) Who is the preferred supplier? (Enter name or type 'skip')",
        skip_text="No preferred supplier set",
    ),
    FlowStep(
        field="manufacturer",
        prompt=lambda name: "(Step 4/6) Who is the manufacturer? (Enter name or type 'skip')",
        skip_text="No manufacturer set",
    ),
    FlowStep(
        field="category",
        prompt=lambda name: (
            "(Step 5/6) What category does this item belong to? "
            "(e.g., 'Electrical', 'Plumbing', or type 'skip')"
        ),
        skip_text="No category set",
    ),
    FlowStep(
        field="minQuantity",
        prompt=lambda name: (
            "(Step 6/6) What is the minimum stock level for reorder alerts? "
            "(Enter number or type 'skip')"
        ),
        validator=_non_negative(_parse_int),
        skip_text="No minimum stock level set",
    ),
)

CREATE_CATALOGUE_ITEM_FLOW = MultiStepFlow(
    id="CREATE_CATALOGUE_ITEM_AND_ADD_STOCK", steps=CATALOGUE_ITEM_STEPS
)
CREATE_CATALOGUE_ITEM_WITH_DETAILS_FLOW = MultiStepFlow(
    id="CREATE_CATALOGUE_ITEM_WITH_DETAILS", steps=CATALOGUE_ITEM_STEPS
)
SUPPLIER_DETAILS_FLOW = MultiStepFlow(id="SUPPLIER_DETAILS", steps=SUPPLIER_DETAILS_STEPS)

FLOWS: dict[str, MultiStepFlow] = {
    flow.id: flow
    for flow in (
        CREATE_CATALOGUE_ITEM_FLOW,
        CREATE_CATALOGUE_ITEM_WITH_DETAILS_FLOW,
        SUPPLIER_DETAILS_FLOW,
    )
}


# Flow run for an action when step markers arrive without a flow id
DEFAULT_FLOW_FOR_ACTION: dict[str, str] = {
    "ADD_PRODUCT": CREATE_CATALOGUE_ITEM_FLOW.id,
    "ADD_SUPPLIER": SUPPLIER_DETAILS_FLOW.id,
}


def get_flow(flow_id: str) -> MultiStepFlow | None:
    """Get a flow by id, or None if unknown."""
    return FLOWS.get(flow_id)


def resolve_flow_id(*labels: str | None) -> str | None:
    """Find the flow named by the first label that is a flow id.

    Labels are tried in order, case-insensitively, as flow ids first (an
    explicit flowId, or a raw classifier label such as
    CREATE_CATALOGUE_ITEM_AND_ADD_STOCK) and then as actions with a
    default flow (ADD_PRODUCT, aliases included).

    Returns:
        A registered flow id, or None if no label maps to a flow
    """
    candidates = [label.strip().upper() for label in labels if label and label.strip()]
    for candidate in candidates:
        if candidate in FLOWS:
            return candidate
    for candidate in candidates:
        flow_id = DEFAULT_FLOW_FOR_ACTION.get(normalize_action_name(candidate))
        if flow_id is not None:
            return flow_id
    return None


def supplier_exists(supplier_name: str | None, known_supplier_names: list[str]) -> bool:
    """Check whether a supplier is already known (case/whitespace-insensitive).

    An empty name counts as existing, so no supplier-details sub-flow is
    started for it.
    """
    if not supplier_name or not supplier_name.strip():
        return True
    wanted = supplier_name.lower().strip()
    return any(name.lower().strip() == wanted for name in known_supplier_names)


def process_step_input(step: FlowStep, user_input: str) -> StepInput:
    """Interpret the user's answer to a flow step.

    Args:
        step: The step being answered
        user_input: Raw answer text

    Returns:
        StepInput with the typed value, a skipped flag, or a validation error
    """
    if _is_skip(user_input):
        if not step.optional:
            return StepInput(value=None, skipped=False, error=f"{step.field} is required")
        return StepInput(value=None, skipped=True)

    if step.validator is not None:
        outcome = step.validator(user_input)
        if not outcome.valid:
            return StepInput(value=None, skipped=False, error=outcome.error)

    text = user_input.strip()
    if step.field in ("unitCost", "markup"):
        return StepInput(value=_parse_float(text), skipped=False)
    if step.field == "minQuantity":
        return StepInput(value=_parse_int(text), skipped=False)
    return StepInput(value=text, skipped=False)


class FlowEngine:
    """Drive multi-step flows one user turn at a time."""

    def __init__(
        self,
        context_manager: ConversationContextManager,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.context_manager = context_manager
        self.metrics = metrics

    def _record(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.record_flow_outcome(outcome)

    def _active_flow(self, session_id: str) -> tuple[MultiStepFlowState, MultiStepFlow] | None:
        """Load the session's flow state, bounded by the flow's own step count.

        State may come from extractor markers, so its step counters are not
        trusted: total_steps always follows the flow definition and a
        negative current_step restarts the flow.
        """
        state = self.context_manager.get_multi_step_state(session_id)
        if state is None:
            return None
        flow = get_flow(state.flow_id)
        if flow is None:
            logger.warning("Dropping state for unknown flow %s", state.flow_id)
            self.context_manager.clear_multi_step_state(session_id)
            return None
        if state.total_steps != flow.total_steps:
            logger.debug(
                "Flow %s state reports %d steps, flow has %d",
                flow.id,
                state.total_steps,
                flow.total_steps,
            )
            state.total_steps = flow.total_steps
        state.current_step = max(state.current_step, 0)
        return state, flow

    def _complete(
        self, session_id: str, state: MultiStepFlowState, flow: MultiStepFlow
    ) -> FlowOutcome:
        self.context_manager.clear_multi_step_state(session_id)
        self._record("completed")
        logger.info("Completed flow %s for session %s", flow.id, session_id[:8])
        return FlowOutcome(
            status="completed",
            flow_id=flow.id,
            action=state.pending_action,
            parameters={**state.known_parameters, **state.collected_data},
            collected_data=dict(state.collected_data),
        )

    def start(
        self,
        session_id: str,
        flow_id: str,
        pending_action: str,
        known_parameters: dict[str, Any] | None = None,
        subject_label: str = "",
    ) -> str:
        """Start a flow for the session, replacing any flow in progress.

        Args:
            session_id: Session identifier
            flow_id: Id of a registered flow
            pending_action: Action executed with the merged data on completion
            known_parameters: Parameters already known before the flow
            subject_label: Name of the thing being described, used in prompts

        Returns:
            The first step's prompt

        Raises:
            ValueError: If the flow id is unknown
        """
        flow = get_flow(flow_id)
        if flow is None:
            raise ValueError(f"Unknown flow: {flow_id}")

        state = MultiStepFlowState(
            flow_id=flow.id,
            current_step=0,
            total_steps=flow.total_steps,
            collected_data={},
            pending_action=pending_action,
            known_parameters=dict(known_parameters or {}),
            subject_label=subject_label,
        )
        self.context_manager.set_multi_step_state(session_id, state)
        self._record("started")
        logger.info("Started flow %s for session %s", flow.id, session_id[:8])
        return flow.steps[0].prompt(subject_label)

    def is_active(self, session_id: str) -> bool:
        return self._active_flow(session_id) is not None

    def current_prompt(self, session_id: str) -> str | None:
        """Prompt for the step awaiting an answer.

        Returns None without a flow, or when every step has been answered
        and the next advance() will complete it.
        """
        active = self._active_flow(session_id)
        if active is None:
            return None
        state, flow = active
        if state.current_step >= flow.total_steps:
            return None
        return flow.steps[state.current_step].prompt(state.subject_label)

    def advance(self, session_id: str, user_input: str) -> FlowOutcome:
        """Apply the user's answer to the current step.

        Invalid answers leave the flow where it was. After the last step the
        flow state is cleared and the outcome carries the pending action with
        the known parameters overlaid by the collected data. A state already
        past its last step completes without consuming the input.
        """
        active = self._active_flow(session_id)
        if active is None:
            return FlowOutcome(status="inactive")

        state, flow = active
        if state.current_step >= flow.total_steps:
            return self._complete(session_id, state, flow)

        step = flow.steps[state.current_step]
        result = process_step_input(step, user_input)

        if result.error is not None:
            self._record("invalid")
            return FlowOutcome(
                status="invalid",
                flow_id=flow.id,
                prompt=step.prompt(state.subject_label),
                error=result.error,
            )

        if not result.skipped:
            state.collected_data = {**state.collected_data, step.field: result.value}
        state.current_step += 1

        if state.current_step >= flow.total_steps:
            return self._complete(session_id, state, flow)

        self.context_manager.set_multi_step_state(session_id, state)
        self._record("advanced")
        return FlowOutcome(
            status="advanced",
            flow_id=flow.id,
            prompt=flow.steps[state.current_step].prompt(state.subject_label),
            collected_data=dict(state.collected_data),
        )
