"""Deployment Executor: credentials, platform adapter and the retry loop."""

from launchpad.deploy.credentials import (
    CredentialProvider,
    ShortLivedCredentials,
    WebIdentityCredentialProvider,
)
from launchpad.deploy.platform import (
    DeploymentPlatform,
    LambdaPlatform,
    PlatformState,
    PlatformStatus,
    Submission,
    classify_sdk_error,
    lambda_platform_factory,
)
from launchpad.deploy.executor import (
    DeploymentExecutor,
    DeploymentFailed,
    DeploymentResult,
)

__all__ = [
    "CredentialProvider",
    "ShortLivedCredentials",
    "WebIdentityCredentialProvider",
    "DeploymentPlatform",
    "LambdaPlatform",
    "PlatformState",
    "PlatformStatus",
    "Submission",
    "classify_sdk_error",
    "lambda_platform_factory",
    "DeploymentExecutor",
    "DeploymentFailed",
    "DeploymentResult",
]
