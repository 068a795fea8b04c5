"""Pipeline orchestration: stage ordering and the run loop."""

from launchpad.orchestrator.state_machine import (
    PipelineState,
    PipelineStateMachine,
    StateTransition,
    TransitionError,
    TransitionReason,
)
from launchpad.orchestrator.pipeline import (
    EXIT_CANCELLED,
    EXIT_INTERNAL_ERROR,
    EXIT_OK,
    EXIT_UNKNOWN_RUNTIME,
    Pipeline,
    PipelineResult,
    TriggerEvent,
)

__all__ = [
    "PipelineState",
    "PipelineStateMachine",
    "StateTransition",
    "TransitionError",
    "TransitionReason",
    "EXIT_CANCELLED",
    "EXIT_INTERNAL_ERROR",
    "EXIT_OK",
    "EXIT_UNKNOWN_RUNTIME",
    "Pipeline",
    "PipelineResult",
    "TriggerEvent",
]
