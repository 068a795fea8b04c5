"""
Launchpad Error Recovery System

Classifies pipeline failures and decides whether to retry:
- Transient platform errors are retried with bounded exponential backoff
- Everything else is fatal for the run (no retry)
- Ambiguous classification only warns

Error Categories:
1. Warn and continue: CLASSIFICATION_AMBIGUOUS
2. Retry with backoff, then fatal: TRANSIENT_PLATFORM_ERROR
3. Fatal, no retry: dependency resolution, artifact build, promotion gate,
   credential exchange, permanent platform rejection
"""

from enum import Enum
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field


class ErrorType(str, Enum):
    """Types of errors that can occur during a pipeline run."""
    # Category 1: Warn, continue
    CLASSIFICATION_AMBIGUOUS = "CLASSIFICATION_AMBIGUOUS"

    # Category 2: Bounded retry
    TRANSIENT_PLATFORM_ERROR = "TRANSIENT_PLATFORM_ERROR"

    # Category 3: Fatal
    DEPENDENCY_RESOLUTION_FAILED = "DEPENDENCY_RESOLUTION_FAILED"
    ARTIFACT_BUILD_FAILED = "ARTIFACT_BUILD_FAILED"
    PROMOTION_GATE_BLOCKED = "PROMOTION_GATE_BLOCKED"
    CREDENTIAL_EXCHANGE_FAILED = "CREDENTIAL_EXCHANGE_FAILED"
    PERMANENT_PLATFORM_REJECTION = "PERMANENT_PLATFORM_REJECTION"


class RecoveryStatus(str, Enum):
    """Status of recovery decision."""
    CONTINUE = "CONTINUE"
    RETRY = "RETRY"
    ESCALATED = "ESCALATED"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LaunchpadError(Exception):
    """Base class for every classified pipeline failure."""

    error_type: ErrorType = ErrorType.ARTIFACT_BUILD_FAILED

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ClassificationAmbiguous(LaunchpadError):
    """Markers for more than one runtime; the run continues with a warning."""
    error_type = ErrorType.CLASSIFICATION_AMBIGUOUS


class DependencyResolutionFailed(LaunchpadError):
    """A dependency tool (npm, pip, poetry) failed or timed out."""
    error_type = ErrorType.DEPENDENCY_RESOLUTION_FAILED


class ArtifactBuildFailed(LaunchpadError):
    """The archive could not be produced."""
    error_type = ErrorType.ARTIFACT_BUILD_FAILED


class PromotionGateBlocked(LaunchpadError):
    """The predecessor environment has not successfully deployed."""
    error_type = ErrorType.PROMOTION_GATE_BLOCKED


class CredentialExchangeFailed(LaunchpadError):
    """The federated token could not be exchanged for role credentials."""
    error_type = ErrorType.CREDENTIAL_EXCHANGE_FAILED


class TransientPlatformError(LaunchpadError):
    """Network failure, throttling or timeout talking to the platform."""
    error_type = ErrorType.TRANSIENT_PLATFORM_ERROR


class PermanentPlatformRejection(LaunchpadError):
    """The platform refused the artifact (bad package, access denied...)."""
    error_type = ErrorType.PERMANENT_PLATFORM_REJECTION


# ============================================================================
# RECOVERY CONFIGURATION
# ============================================================================

@dataclass
class RecoveryResult:
    """Result of a recovery decision."""
    status: RecoveryStatus
    error_type: ErrorType
    message: str
    attempts: int = 0
    delay_seconds: float = 0.0
    exit_code: int = 0


@dataclass
class ErrorRecoveryConfig:
    """Configuration for error recovery."""
    max_attempts: int
    exit_code: int
    escalate_immediately: bool = False
    warn_only: bool = False
    reason: str = ""


class ErrorRecoverySystem:
    """
    Decides what happens after a classified error.

    This system:
    - Maps each error type to a retry budget and exit code
    - Tracks retry attempts per logical operation
    - Computes exponential backoff delays
    - Escalates (fatal) once the budget is spent
    """

    RECOVERY_CONFIGS: Dict[ErrorType, ErrorRecoveryConfig] = {
        ErrorType.CLASSIFICATION_AMBIGUOUS: ErrorRecoveryConfig(
            max_attempts=0,
            exit_code=0,
            warn_only=True,
            reason="Multiple runtime markers found"
        ),
        ErrorType.TRANSIENT_PLATFORM_ERROR: ErrorRecoveryConfig(
            max_attempts=3,
            exit_code=3,
            reason="Platform unavailable after retries"
        ),
        ErrorType.DEPENDENCY_RESOLUTION_FAILED: ErrorRecoveryConfig(
            max_attempts=0,
            exit_code=1,
            escalate_immediately=True,
            reason="Production dependencies could not be resolved"
        ),
        ErrorType.ARTIFACT_BUILD_FAILED: ErrorRecoveryConfig(
            max_attempts=0,
            exit_code=1,
            escalate_immediately=True,
            reason="Artifact could not be built"
        ),
        ErrorType.PROMOTION_GATE_BLOCKED: ErrorRecoveryConfig(
            max_attempts=0,
            exit_code=2,
            escalate_immediately=True,
            reason="Blocked by promotion gate"
        ),
        ErrorType.CREDENTIAL_EXCHANGE_FAILED: ErrorRecoveryConfig(
            max_attempts=0,
            exit_code=3,
            escalate_immediately=True,
            reason="Credential exchange failed (check the role trust policy)"
        ),
        ErrorType.PERMANENT_PLATFORM_REJECTION: ErrorRecoveryConfig(
            max_attempts=0,
            exit_code=3,
            escalate_immediately=True,
            reason="Deployment rejected by platform"
        ),
    }

    def __init__(
        self,
        max_transient_attempts: Optional[int] = None,
        backoff_base: float = 1.0,
        backoff_max: float = 30.0,
    ):
        """
        Initialize error recovery system.

        Args:
            max_transient_attempts: Total tries allowed for transient errors
            backoff_base: Delay before the first retry, in seconds
            backoff_max: Upper bound for any single delay
        """
        self._attempt_counts: Dict[str, int] = {}
        self._configs = dict(self.RECOVERY_CONFIGS)
        if max_transient_attempts is not None:
            self._configs[ErrorType.TRANSIENT_PLATFORM_ERROR] = ErrorRecoveryConfig(
                max_attempts=max(1, max_transient_attempts),
                exit_code=3,
                reason="Platform unavailable after retries"
            )
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max

    def get_config(self, error_type: ErrorType) -> ErrorRecoveryConfig:
        """Get recovery config for error type."""
        return self._configs[error_type]

    def exit_code_for(self, error_type: ErrorType) -> int:
        """CLI exit code for a fatal error type."""
        return self.get_config(error_type).exit_code

    def record_attempt(self, operation_id: str) -> int:
        """Record a failed try and return new count."""
        self._attempt_counts[operation_id] = self._attempt_counts.get(operation_id, 0) + 1
        return self._attempt_counts[operation_id]

    def get_attempts(self, operation_id: str) -> int:
        """Get failed-try count for an operation."""
        return self._attempt_counts.get(operation_id, 0)

    def reset_attempts(self, operation_id: str) -> None:
        """Reset attempt count (after success)."""
        self._attempt_counts.pop(operation_id, None)

    def backoff_delay(self, attempt: int) -> float:
        """Exponential delay after the given (1-based) failed attempt."""
        return min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)

    def handle_error(self, error: LaunchpadError, operation_id: str) -> RecoveryResult:
        """
        Decide whether to retry an operation after an error.

        Args:
            error: Classified error
            operation_id: Identifier of the logical operation (for tracking tries)

        Returns:
            RecoveryResult with status, delay and exit code
        """
        config = self.get_config(error.error_type)

        if config.warn_only:
            return RecoveryResult(
                status=RecoveryStatus.CONTINUE,
                error_type=error.error_type,
                message=error.message,
            )

        if config.escalate_immediately:
            return self._escalate(error, config, self.get_attempts(operation_id))

        attempts = self.record_attempt(operation_id)
        if attempts >= config.max_attempts:
            return self._escalate(error, config, attempts)

        return RecoveryResult(
            status=RecoveryStatus.RETRY,
            error_type=error.error_type,
            message=f"{error.message} (attempt {attempts}/{config.max_attempts})",
            attempts=attempts,
            delay_seconds=self.backoff_delay(attempts),
            exit_code=config.exit_code,
        )

    def _escalate(
        self,
        error: LaunchpadError,
        config: ErrorRecoveryConfig,
        attempts: int
    ) -> RecoveryResult:
        """Give up: the error becomes fatal for this run."""
        message = f"{config.reason}: {error.message}" if config.reason else error.message
        return RecoveryResult(
            status=RecoveryStatus.ESCALATED,
            error_type=error.error_type,
            message=message,
            attempts=attempts,
            exit_code=config.exit_code,
        )

    def get_summary(self) -> Dict[str, int]:
        """Get summary of attempt counts."""
        return self._attempt_counts.copy()
