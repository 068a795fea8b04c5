"""
Launchpad Core Module

Provides centralized logging, configuration and the error taxonomy.
"""

from launchpad.core.logger import (
    setup_logging,
    get_logger,
    dev_log,
    truncate_for_log,
    log_timing,
    IS_DEV,
)

from launchpad.core.error_recovery import (
    ErrorType,
    ErrorRecoverySystem,
    RecoveryStatus,
    RecoveryResult,
    LaunchpadError,
    ClassificationAmbiguous,
    DependencyResolutionFailed,
    ArtifactBuildFailed,
    PromotionGateBlocked,
    CredentialExchangeFailed,
    TransientPlatformError,
    PermanentPlatformRejection,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "dev_log",
    "truncate_for_log",
    "log_timing",
    "IS_DEV",
    # Errors
    "ErrorType",
    "ErrorRecoverySystem",
    "RecoveryStatus",
    "RecoveryResult",
    "LaunchpadError",
    "ClassificationAmbiguous",
    "DependencyResolutionFailed",
    "ArtifactBuildFailed",
    "PromotionGateBlocked",
    "CredentialExchangeFailed",
    "TransientPlatformError",
    "PermanentPlatformRejection",
]
