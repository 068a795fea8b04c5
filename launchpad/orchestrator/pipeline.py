"""
Launchpad Pipeline

Runs the five stages for one source-control event:

    Inspect → Build → Resolve (+ promotion gate) → Deploy → Report

Each stage receives its inputs explicitly. A failing stage short-circuits
the ones after it; the reporter always runs. The exit code comes from the
error taxonomy, never from the reporter.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import BaseModel

from launchpad.builder import Artifact, PackageBuilder, describe_artifact
from launchpad.config import LaunchpadConfig, RuntimeSettings
from launchpad.core.error_recovery import (
    ErrorRecoverySystem,
    ErrorType,
    LaunchpadError,
    PromotionGateBlocked,
)
from launchpad.core.logger import get_logger
from launchpad.deploy import (
    DeploymentExecutor,
    DeploymentResult,
    WebIdentityCredentialProvider,
    lambda_platform_factory,
)
from launchpad.environments import EnvironmentResolver, ResolutionStatus, match_environment, normalize_ref
from launchpad.inspector import ProjectAnalysis, describe, inspect_project
from launchpad.orchestrator.state_machine import (
    PipelineState,
    PipelineStateMachine,
    TransitionReason,
)
from launchpad.reporter import (
    DatabaseStatusStore,
    GitHubCommentStore,
    RunStatus,
    RunSummary,
    StageName,
    StageOutcome,
    StageStatus,
    StatusReporter,
    StatusStore,
)
from launchpad.services import DeploymentHistory

logger = get_logger("pipeline")

EXIT_OK = 0
EXIT_INTERNAL_ERROR = 1
EXIT_UNKNOWN_RUNTIME = 4
EXIT_CANCELLED = 130

# Artifact name suffix when no environment is targeted
BUILD_ONLY_NAME = "build"

STAGE_ORDER = [StageName.INSPECT, StageName.BUILD, StageName.RESOLVE, StageName.DEPLOY]

STAGE_FOR_STATE = {
    PipelineState.INSPECTING: StageName.INSPECT,
    PipelineState.BUILDING: StageName.BUILD,
    PipelineState.RESOLVING: StageName.RESOLVE,
    PipelineState.DEPLOYING: StageName.DEPLOY,
}

FAILURE_TARGETS = {
    ErrorType.DEPENDENCY_RESOLUTION_FAILED: "dependency resolution failed",
    ErrorType.ARTIFACT_BUILD_FAILED: "packaging failed",
    ErrorType.PROMOTION_GATE_BLOCKED: "blocked by promotion gate",
    ErrorType.CREDENTIAL_EXCHANGE_FAILED: "credential exchange failed",
    ErrorType.TRANSIENT_PLATFORM_ERROR: "platform unavailable",
    ErrorType.PERMANENT_PLATFORM_REJECTION: "rejected by platform",
}


class TriggerEvent(BaseModel):
    """The source-control event a run was started for."""
    ref: str
    pull_request: Optional[int] = None
    sha: Optional[str] = None

    @property
    def is_pull_request(self) -> bool:
        return self.pull_request is not None


@dataclass
class PipelineResult:
    """Outcome of a run."""
    exit_code: int
    summary: RunSummary
    analysis: Optional[ProjectAnalysis] = None
    artifact: Optional[Artifact] = None
    deployment: Optional[DeploymentResult] = None
    report: Optional[str] = None
    path: List[str] = field(default_factory=list)

    @property
    def stages(self) -> List[StageOutcome]:
        return self.summary.stages


class Pipeline:
    """
    Orchestrates a pipeline run.

    Usage:
        pipeline = Pipeline.from_config(project_path, config, RuntimeSettings.from_env())
        result = await pipeline.run(TriggerEvent(ref="refs/heads/develop"))
        sys.exit(result.exit_code)
    """

    def __init__(
        self,
        project_path: str | Path,
        config: LaunchpadConfig,
        builder: PackageBuilder,
        resolver: EnvironmentResolver,
        executor: DeploymentExecutor,
        reporter: StatusReporter,
        inspector: Callable[[str | Path], ProjectAnalysis] = inspect_project,
        log_url: Optional[str] = None,
    ):
        self.project_path = Path(project_path)
        self.config = config
        self.builder = builder
        self.resolver = resolver
        self.executor = executor
        self.reporter = reporter
        self.inspector = inspector
        self.log_url = log_url or config.pipeline.log_url
        self.recovery = ErrorRecoverySystem()

    @classmethod
    def from_config(
        cls,
        project_path: str | Path,
        config: LaunchpadConfig,
        runtime: RuntimeSettings,
        status_store: Optional[StatusStore] = None,
    ) -> "Pipeline":
        """Wire the default collaborators (database history, STS, Lambda, GitHub)."""
        settings = config.pipeline
        history = DeploymentHistory()

        if status_store is None:
            if runtime.github_token and runtime.github_repository:
                status_store = GitHubCommentStore(
                    runtime.github_repository,
                    runtime.github_token,
                    api_url=runtime.github_api_url,
                )
            else:
                status_store = DatabaseStatusStore()

        return cls(
            project_path=project_path,
            config=config,
            builder=PackageBuilder(
                output_dir=settings.output_dir,
                component=settings.component,
                dependency_timeout=settings.dependency_timeout,
            ),
            resolver=EnvironmentResolver(config.environments, history),
            executor=DeploymentExecutor(
                history=history,
                credential_provider=WebIdentityCredentialProvider(
                    token_file=runtime.web_identity_token_file,
                    request_url=runtime.oidc_request_url,
                    request_token=runtime.oidc_request_token,
                    audience=runtime.oidc_audience,
                    run_id=runtime.github_run_id,
                ),
                platform_factory=lambda_platform_factory(read_timeout=settings.upload_timeout),
                settings=settings,
            ),
            reporter=StatusReporter(status_store, component=settings.component),
            log_url=settings.log_url or runtime.run_log_url,
        )

    async def run(self, event: TriggerEvent) -> PipelineResult:
        """
        Run all stages for an event.

        Returns:
            PipelineResult; unclassified errors are reported with exit code 1

        Raises:
            asyncio.CancelledError: After the "Cancelled" summary is published
        """
        machine = PipelineStateMachine(run_id=str(uuid.uuid4()))
        ref = normalize_ref(event.ref)
        stages: List[StageOutcome] = []
        warnings: List[str] = []
        analysis: Optional[ProjectAnalysis] = None
        artifact: Optional[Artifact] = None
        deployment: Optional[DeploymentResult] = None
        status = RunStatus.PASSED
        target = "nothing to deploy"
        exit_code = EXIT_OK

        logger.info(f"[PIPELINE] 🚀 Run {machine.run_id[:8]} for {ref}" + (f" (PR #{event.pull_request})" if event.is_pull_request else ""))

        try:
            # 1. Inspect
            machine.transition(PipelineState.INSPECTING, TransitionReason.TRIGGERED)
            analysis = self.inspector(self.project_path)
            warnings.extend(analysis.warnings)
            stages.append(StageOutcome(
                stage=StageName.INSPECT,
                status=StageStatus.PASSED,
                detail=f"{analysis.classification.value} ({analysis.package_manager.value})",
            ))

            # 2. Build
            machine.transition(PipelineState.BUILDING)
            matched = None if event.is_pull_request else match_environment(ref, self.config.environments)
            artifact = await self.builder.build(
                self.project_path,
                analysis,
                matched.name if matched else BUILD_ONLY_NAME,
            )
            stages.append(StageOutcome(stage=StageName.BUILD, status=StageStatus.PASSED, detail=describe_artifact(artifact)))

            # 3. Resolve
            machine.transition(PipelineState.RESOLVING)
            if event.is_pull_request:
                stages.append(StageOutcome(stage=StageName.RESOLVE, status=StageStatus.SKIPPED, detail="pull request: build only"))
                target = "build only"
                machine.transition(PipelineState.REPORTING, TransitionReason.STAGE_SKIPPED)
            else:
                resolution = await self.resolver.resolve(ref)

                if resolution.status == ResolutionStatus.BLOCKED:
                    raise PromotionGateBlocked(
                        "; ".join([resolution.reason] + resolution.issues),
                        details={"environment": resolution.environment.name},
                    )

                if resolution.status == ResolutionStatus.NO_MATCH:
                    stages.append(StageOutcome(stage=StageName.RESOLVE, status=StageStatus.SKIPPED, detail=resolution.reason))
                    machine.transition(PipelineState.REPORTING, TransitionReason.STAGE_SKIPPED)

                else:
                    environment = resolution.environment
                    stages.append(StageOutcome(stage=StageName.RESOLVE, status=StageStatus.PASSED, detail=f"{ref} → {environment.name}"))

                    if not analysis.is_known:
                        if self.config.pipeline.fail_on_unknown:
                            status = RunStatus.FAILED
                            target = "no runtime detected"
                            exit_code = EXIT_UNKNOWN_RUNTIME
                        stages.append(StageOutcome(stage=StageName.DEPLOY, status=StageStatus.SKIPPED, detail="no runtime detected"))
                        machine.transition(PipelineState.REPORTING, TransitionReason.STAGE_SKIPPED)
                    else:
                        # 4. Deploy
                        machine.transition(PipelineState.DEPLOYING)
                        deployment = await self.executor.deploy(environment, artifact, ref=ref)
                        detail = (
                            f"already deployed (attempt {deployment.attempt.attempt_id[:8]})"
                            if deployment.reused
                            else f"attempt {deployment.attempt.attempt_id[:8]}"
                            + (f", version {deployment.version}" if deployment.version else "")
                        )
                        stages.append(StageOutcome(stage=StageName.DEPLOY, status=StageStatus.PASSED, detail=detail))
                        target = f"deployed to {environment.name}"
                        machine.transition(PipelineState.REPORTING)

        except LaunchpadError as e:
            failed_stage = STAGE_FOR_STATE.get(machine.current_state, StageName.INSPECT)
            blocked = e.error_type == ErrorType.PROMOTION_GATE_BLOCKED
            stages.append(StageOutcome(
                stage=failed_stage,
                status=StageStatus.BLOCKED if blocked else StageStatus.FAILED,
                detail=e.message,
            ))
            status = RunStatus.BLOCKED if blocked else RunStatus.FAILED
            target = FAILURE_TARGETS.get(e.error_type, "failed")
            exit_code = self.recovery.exit_code_for(e.error_type)
            logger.error(f"[PIPELINE] ❌ {failed_stage.value} {e.error_type.value}: {e.message}")
            machine.transition(PipelineState.REPORTING, TransitionReason.GATE_BLOCKED if blocked else TransitionReason.STAGE_FAILED)

        except Exception as e:
            # Unclassified (database, filesystem, bug): still report, exit 1
            failed_stage = STAGE_FOR_STATE.get(machine.current_state, StageName.INSPECT)
            if failed_stage not in {s.stage for s in stages}:
                stages.append(StageOutcome(
                    stage=failed_stage,
                    status=StageStatus.FAILED,
                    detail=f"{type(e).__name__}: {e}",
                ))
            status = RunStatus.FAILED
            target = "internal error"
            exit_code = EXIT_INTERNAL_ERROR
            logger.exception(f"[PIPELINE] 💥 Unexpected error in {failed_stage.value}: {e}")
            if machine.can_transition(PipelineState.REPORTING):
                machine.transition(PipelineState.REPORTING, TransitionReason.STAGE_FAILED)
            else:
                machine.force_transition(PipelineState.REPORTING, "unexpected error")

        except asyncio.CancelledError:
            cancelled_stage = STAGE_FOR_STATE.get(machine.current_state)
            if cancelled_stage is not None:
                stages.append(StageOutcome(stage=cancelled_stage, status=StageStatus.CANCELLED, detail="superseded or interrupted"))
            machine.force_transition(PipelineState.REPORTING, "cancelled")
            summary = self._summary(RunStatus.CANCELLED, analysis, "cancelled", stages, warnings, event, ref)
            logger.warning(f"[PIPELINE] 🛑 Run {machine.run_id[:8]} cancelled")
            await self.reporter.report(summary, event.pull_request)
            raise

        # 5. Report
        summary = self._summary(status, analysis, target, stages, warnings, event, ref)
        body = await self.reporter.report(summary, event.pull_request)
        machine.transition(PipelineState.COMPLETE if exit_code == EXIT_OK else PipelineState.FAILED, TransitionReason.REPORTED)

        logger.info(f"[PIPELINE] 🏁 {summary.headline} (exit {exit_code})")
        return PipelineResult(
            exit_code=exit_code,
            summary=summary,
            analysis=analysis,
            artifact=artifact,
            deployment=deployment,
            report=body,
            path=[t.to_state.value for t in machine.get_history()],
        )

    def _summary(
        self,
        status: RunStatus,
        analysis: Optional[ProjectAnalysis],
        target: str,
        stages: List[StageOutcome],
        warnings: List[str],
        event: TriggerEvent,
        ref: str,
    ) -> RunSummary:
        recorded = {s.stage for s in stages}
        complete = list(stages) + [
            StageOutcome(stage=name, status=StageStatus.SKIPPED)
            for name in STAGE_ORDER
            if name not in recorded
        ]
        complete.sort(key=lambda s: STAGE_ORDER.index(s.stage))
        return RunSummary(
            status=status,
            classification=describe(analysis),
            target=target,
            stages=complete,
            warnings=warnings,
            ref=ref,
            sha=event.sha,
            log_url=self.log_url,
        )
