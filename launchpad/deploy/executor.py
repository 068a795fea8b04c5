"""
Deployment Executor

Submits an artifact to one environment and records the attempt.

Flow:
1. Idempotency: if the environment's latest attempt Succeeded with this
   artifact it is live and is not resubmitted; a rollback to an older
   artifact is a new attempt
2. Open a Pending attempt
3. Exchange the federated token for role credentials
4. Submit and poll, retrying transient platform errors with backoff
5. Close the attempt Succeeded or Failed

Cancellation leaves the attempt Pending: the outcome on the platform is
unknown, so neither terminal state would be true.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from launchpad.builder.models import Artifact
from launchpad.config import PipelineSettings
from launchpad.core.error_recovery import (
    ErrorRecoverySystem,
    LaunchpadError,
    PermanentPlatformRejection,
    RecoveryStatus,
    TransientPlatformError,
)
from launchpad.core.logger import get_logger, log_timing
from launchpad.deploy.credentials import CredentialProvider, ShortLivedCredentials
from launchpad.deploy.platform import DeploymentPlatform, PlatformState, Submission
from launchpad.environments.models import Environment
from launchpad.models.deployments import AttemptOutcome
from launchpad.services.deployment_history import DeploymentAttempt, DeploymentHistory

logger = get_logger("executor")

PlatformFactory = Callable[[Environment, ShortLivedCredentials], DeploymentPlatform]
Sleep = Callable[[float], Awaitable[None]]


class DeploymentResult(BaseModel):
    """What the executor did for one environment."""
    attempt: DeploymentAttempt
    reused: bool = False
    tries: int = 0
    revision: Optional[str] = None
    version: Optional[str] = None


class DeploymentFailed(LaunchpadError):
    """
    Wraps the fatal error of a deployment together with its closed attempt.

    error_type mirrors the underlying cause so the exit code stays correct.
    """

    def __init__(self, cause: LaunchpadError, attempt: Optional[DeploymentAttempt] = None):
        super().__init__(cause.message, cause.details)
        self.cause = cause
        self.attempt = attempt
        self.error_type = cause.error_type


class DeploymentExecutor:
    """
    Deploys artifacts with bounded retries and an append-only attempt log.

    Usage:
        executor = DeploymentExecutor(history, provider, lambda_platform_factory(), settings)
        result = await executor.deploy(environment, artifact, ref="refs/heads/develop")
    """

    def __init__(
        self,
        history: DeploymentHistory,
        credential_provider: CredentialProvider,
        platform_factory: PlatformFactory,
        settings: Optional[PipelineSettings] = None,
        recovery: Optional[ErrorRecoverySystem] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.history = history
        self.credential_provider = credential_provider
        self.platform_factory = platform_factory
        self.settings = settings or PipelineSettings()
        self.recovery = recovery or ErrorRecoverySystem(
            max_transient_attempts=self.settings.max_attempts,
            backoff_base=self.settings.backoff_base,
            backoff_max=self.settings.backoff_max,
        )
        self._sleep = sleep

    @log_timing(logger)
    async def deploy(
        self,
        environment: Environment,
        artifact: Artifact,
        ref: Optional[str] = None,
    ) -> DeploymentResult:
        """
        Deploy an artifact to an environment.

        Raises:
            DeploymentFailed: Credential, permanent, or exhausted transient failure.
                The attempt has been closed Failed.
            asyncio.CancelledError: Propagated; the attempt stays Pending.
        """
        existing = await self.history.find_succeeded(environment.name, artifact.sha256)
        if existing is not None:
            logger.info(
                f"[EXECUTOR] ♻️ {artifact.short_hash} is already live in {environment.name} "
                f"(attempt {existing.attempt_id[:8]}), skipping upload"
            )
            return DeploymentResult(attempt=existing, reused=True)

        attempt = await self.history.open_attempt(environment.name, artifact.sha256, ref=ref)
        operation_id = attempt.attempt_id
        tries = 0

        try:
            credentials = await self.credential_provider.get_credentials(environment)
            platform = self.platform_factory(environment, credentials)

            while True:
                tries += 1
                try:
                    submission = await self._submit_and_wait(platform, environment, artifact)
                    break
                except TransientPlatformError as e:
                    decision = self.recovery.handle_error(e, operation_id)
                    if decision.status != RecoveryStatus.RETRY:
                        raise TransientPlatformError(decision.message, e.details)
                    logger.warning(
                        f"[EXECUTOR] 🔁 {environment.name}: {decision.message}, "
                        f"retrying in {decision.delay_seconds:.1f}s"
                    )
                    await self._sleep(decision.delay_seconds)

        except asyncio.CancelledError:
            logger.warning(
                f"[EXECUTOR] 🛑 Cancelled during {environment.name} deployment; "
                f"attempt {operation_id[:8]} left Pending"
            )
            raise

        except LaunchpadError as e:
            self.recovery.reset_attempts(operation_id)
            closed = await self.history.close_attempt(operation_id, AttemptOutcome.FAILED, detail=e.message)
            logger.error(f"[EXECUTOR] ❌ {environment.name} deployment failed: {e.message}")
            raise DeploymentFailed(e, closed)

        self.recovery.reset_attempts(operation_id)
        closed = await self.history.close_attempt(
            operation_id,
            AttemptOutcome.SUCCEEDED,
            detail=f"revision {submission.revision}" if submission.revision else None,
        )
        logger.info(f"[EXECUTOR] 🚀 {artifact.file_name} live in {environment.name} (tries: {tries})")
        return DeploymentResult(
            attempt=closed,
            tries=tries,
            revision=submission.revision,
            version=submission.version,
        )

    async def _submit_and_wait(
        self,
        platform: DeploymentPlatform,
        environment: Environment,
        artifact: Artifact,
    ) -> Submission:
        """One try: upload, then poll until the platform settles."""
        try:
            submission = await asyncio.wait_for(
                platform.submit(environment.function_name, artifact.content),
                timeout=self.settings.upload_timeout,
            )
        except asyncio.TimeoutError:
            raise TransientPlatformError(
                f"Upload to {environment.function_name} timed out after {self.settings.upload_timeout:.0f}s"
            )

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.poll_timeout

        while True:
            status = await platform.get_status(environment.function_name)
            if status.state == PlatformState.SUCCEEDED:
                return submission
            if status.state == PlatformState.FAILED:
                raise PermanentPlatformRejection(
                    f"{environment.function_name} update failed: {status.reason or 'no reason given'}"
                )
            if loop.time() >= deadline:
                raise TransientPlatformError(
                    f"{environment.function_name} still updating after {self.settings.poll_timeout:.0f}s"
                )
            await self._sleep(self.settings.poll_interval)
