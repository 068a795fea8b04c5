"""
Tests for the error taxonomy and retry decisions.
"""

import pytest

from launchpad.core.error_recovery import (
    ArtifactBuildFailed,
    ClassificationAmbiguous,
    CredentialExchangeFailed,
    DependencyResolutionFailed,
    ErrorRecoverySystem,
    ErrorType,
    PermanentPlatformRejection,
    PromotionGateBlocked,
    RecoveryStatus,
    TransientPlatformError,
)


class TestErrorRecoverySystem:

    @pytest.mark.parametrize("error, exit_code", [
        (DependencyResolutionFailed("npm failed"), 1),
        (ArtifactBuildFailed("zip failed"), 1),
        (PromotionGateBlocked("staging failed"), 2),
        (CredentialExchangeFailed("trust policy"), 3),
        (PermanentPlatformRejection("access denied"), 3),
    ])
    def test_fatal_errors_escalate_immediately(self, error, exit_code):
        recovery = ErrorRecoverySystem()

        result = recovery.handle_error(error, "run-1")

        assert result.status == RecoveryStatus.ESCALATED
        assert result.exit_code == exit_code
        assert recovery.get_attempts("run-1") == 0

    def test_transient_errors_retry_then_escalate(self):
        recovery = ErrorRecoverySystem(max_transient_attempts=3, backoff_base=1.0, backoff_max=30.0)
        error = TransientPlatformError("throttled")

        first = recovery.handle_error(error, "attempt-1")
        second = recovery.handle_error(error, "attempt-1")
        third = recovery.handle_error(error, "attempt-1")

        assert first.status == RecoveryStatus.RETRY
        assert first.delay_seconds == 1.0
        assert second.status == RecoveryStatus.RETRY
        assert second.delay_seconds == 2.0
        assert third.status == RecoveryStatus.ESCALATED
        assert third.exit_code == 3
        assert third.attempts == 3

    def test_attempts_tracked_per_operation(self):
        recovery = ErrorRecoverySystem(max_transient_attempts=2)
        error = TransientPlatformError("timeout")

        recovery.handle_error(error, "a")
        assert recovery.handle_error(error, "b").status == RecoveryStatus.RETRY
        assert recovery.get_summary() == {"a": 1, "b": 1}

        recovery.reset_attempts("a")
        assert recovery.get_attempts("a") == 0

    def test_backoff_is_capped(self):
        recovery = ErrorRecoverySystem(backoff_base=2.0, backoff_max=10.0)

        assert [recovery.backoff_delay(n) for n in (1, 2, 3, 4)] == [2.0, 4.0, 8.0, 10.0]

    def test_single_attempt_budget_never_retries(self):
        recovery = ErrorRecoverySystem(max_transient_attempts=1)
        result = recovery.handle_error(TransientPlatformError("down"), "x")

        assert result.status == RecoveryStatus.ESCALATED

    def test_ambiguity_only_warns(self):
        recovery = ErrorRecoverySystem()

        assert recovery.get_config(ErrorType.CLASSIFICATION_AMBIGUOUS).warn_only
        assert recovery.exit_code_for(ErrorType.CLASSIFICATION_AMBIGUOUS) == 0

        result = recovery.handle_error(ClassificationAmbiguous("package.json and setup.py"), "inspect")
        assert result.status == RecoveryStatus.CONTINUE
        assert result.error_type == ErrorType.CLASSIFICATION_AMBIGUOUS
        assert recovery.get_attempts("inspect") == 0

    def test_escalation_message_carries_reason(self):
        result = ErrorRecoverySystem().handle_error(PromotionGateBlocked("staging Failed"), "run")
        assert result.message == "Blocked by promotion gate: staging Failed"
