"""
Launchpad Pipeline State Machine

Tracks which stage a run is in and rejects out-of-order moves:

    IDLE → INSPECTING → BUILDING → RESOLVING → DEPLOYING → REPORTING → COMPLETE
                 ↓           ↓          ↓           ↓             ↓
                 └───────────┴──────────┴───────────┴──→ REPORTING → FAILED

Every working state may jump to REPORTING: a failed stage short-circuits the
rest, but the summary is always published.
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field
import uuid


class PipelineState(str, Enum):
    """States of a pipeline run."""
    IDLE = "IDLE"
    INSPECTING = "INSPECTING"   # Project Inspector
    BUILDING = "BUILDING"       # Package Builder
    RESOLVING = "RESOLVING"     # Environment Resolver + promotion gate
    DEPLOYING = "DEPLOYING"     # Deployment Executor
    REPORTING = "REPORTING"     # Status Reporter
    COMPLETE = "COMPLETE"       # Run finished, exit code 0
    FAILED = "FAILED"           # Run finished with a non-zero exit code


class TransitionReason(str, Enum):
    """Reasons for state transitions."""
    TRIGGERED = "triggered"
    STAGE_PASSED = "stage_passed"
    STAGE_SKIPPED = "stage_skipped"
    STAGE_FAILED = "stage_failed"
    GATE_BLOCKED = "gate_blocked"
    CANCELLED = "cancelled"
    REPORTED = "reported"


@dataclass
class StateTransition:
    """Record of a single state transition."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    from_state: PipelineState = PipelineState.IDLE
    to_state: PipelineState = PipelineState.IDLE
    reason: TransitionReason = TransitionReason.TRIGGERED
    details: Dict[str, Any] = field(default_factory=dict)


class TransitionError(Exception):
    """Raised when a state transition is invalid."""
    def __init__(self, from_state: PipelineState, to_state: PipelineState, reason: str):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        super().__init__(f"Cannot transition from {from_state.value} to {to_state.value}: {reason}")


class PipelineStateMachine:
    """
    Deterministic state machine for one pipeline run.

    The machine does not decide anything; the pipeline tells it where it is
    going and it refuses moves the stage order does not allow.
    """

    VALID_TRANSITIONS: Dict[PipelineState, List[PipelineState]] = {
        PipelineState.IDLE: [
            PipelineState.INSPECTING,
        ],
        PipelineState.INSPECTING: [
            PipelineState.BUILDING,
            PipelineState.REPORTING,
        ],
        PipelineState.BUILDING: [
            PipelineState.RESOLVING,
            PipelineState.REPORTING,
        ],
        PipelineState.RESOLVING: [
            PipelineState.DEPLOYING,
            PipelineState.REPORTING,   # No match, blocked, or build-only event
        ],
        PipelineState.DEPLOYING: [
            PipelineState.REPORTING,
        ],
        PipelineState.REPORTING: [
            PipelineState.COMPLETE,
            PipelineState.FAILED,
        ],
        PipelineState.COMPLETE: [
            PipelineState.IDLE,
        ],
        PipelineState.FAILED: [
            PipelineState.IDLE,
        ],
    }

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id or str(uuid.uuid4())
        self.current_state = PipelineState.IDLE
        self.history: List[StateTransition] = []
        self.started_at = datetime.now(timezone.utc)

    def can_transition(self, to_state: PipelineState) -> bool:
        allowed = self.VALID_TRANSITIONS.get(self.current_state, [])
        return to_state in allowed

    def transition(
        self,
        to_state: PipelineState,
        reason: TransitionReason = TransitionReason.STAGE_PASSED,
        details: Optional[Dict[str, Any]] = None,
    ) -> StateTransition:
        """
        Move to a new state.

        Raises:
            TransitionError: If the move is not allowed from the current state
        """
        if not self.can_transition(to_state):
            raise TransitionError(
                self.current_state,
                to_state,
                f"Transition not allowed from {self.current_state.value}"
            )
        return self._record(to_state, reason, details or {})

    def force_transition(self, to_state: PipelineState, reason: str) -> StateTransition:
        """
        Move without validation. Used when a run is cancelled mid-stage and
        must still reach REPORTING.
        """
        return self._record(to_state, TransitionReason.CANCELLED, {"forced_reason": reason})

    def _record(self, to_state: PipelineState, reason: TransitionReason, details: Dict[str, Any]) -> StateTransition:
        transition = StateTransition(
            from_state=self.current_state,
            to_state=to_state,
            reason=reason,
            details=details,
        )
        self.history.append(transition)
        self.current_state = to_state
        return transition

    def visited(self, state: PipelineState) -> bool:
        return any(t.to_state == state for t in self.history)

    def get_history(self) -> List[StateTransition]:
        return self.history.copy()

    def get_summary(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "current_state": self.current_state.value,
            "started_at": self.started_at.isoformat(),
            "transition_count": len(self.history),
            "path": [t.to_state.value for t in self.history],
        }
