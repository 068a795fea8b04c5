"""
Environment Resolver

Maps a source ref to a deployment environment and enforces promotion
order. Matching is a pure function; the promotion gate reads deployment
history and fails closed.
"""

import fnmatch
from typing import Iterable, Optional, Protocol, Sequence, Dict, List, Tuple

from launchpad.core.logger import get_logger
from launchpad.environments.models import Environment, Resolution, ResolutionStatus, normalize_ref
from launchpad.environments.quality_gates import QualityGate
from launchpad.models.deployments import AttemptOutcome

logger = get_logger("resolver")


class AttemptHistory(Protocol):
    """The slice of deployment history the promotion gate needs."""

    async def latest_attempt(self, environment: str): ...


def match_environment(ref: str, environments: Iterable[Environment]) -> Optional[Environment]:
    """
    Find the environment whose ref pattern matches.

    First match in declaration order wins. No match returns None: pushes to
    untracked branches simply do not deploy.
    """
    full_ref = normalize_ref(ref)
    for env in environments:
        if fnmatch.fnmatchcase(full_ref, env.ref_pattern):
            return env
    return None


class EnvironmentResolver:
    """
    Resolves refs to environments with the promotion gate applied.

    Usage:
        resolver = EnvironmentResolver(config.environments, DeploymentHistory())
        resolution = await resolver.resolve("refs/heads/staging")
    """

    def __init__(self, environments: Sequence[Environment], history: AttemptHistory):
        self.environments = list(environments)
        self._by_name: Dict[str, Environment] = {e.name: e for e in self.environments}
        self.history = history

    def promotion_gate(self, environment: Environment) -> QualityGate:
        gate = QualityGate(name=f"Promotion to {environment.name}")
        if environment.promotion_predecessor:
            gate.add_check(
                "predecessor_succeeded",
                f"Latest {environment.promotion_predecessor} deployment must have succeeded",
            )
        return gate

    async def check_promotion_gate(self, environment: Environment) -> Tuple[bool, List[str]]:
        """
        Evaluate the promotion gate for an environment.

        Returns:
            (passed, issues)
        """
        predecessor = environment.promotion_predecessor

        async def predecessor_succeeded() -> Tuple[bool, List[str]]:
            latest = await self.history.latest_attempt(predecessor)
            if latest is None:
                return False, [f"{predecessor} has never been deployed"]
            if latest.outcome != AttemptOutcome.SUCCEEDED:
                return False, [
                    f"Latest {predecessor} deployment is {latest.outcome.value} "
                    f"(artifact {latest.artifact_hash[:12]})"
                ]
            return True, []

        gate = self.promotion_gate(environment)
        passed, _ = await gate.run_all({"predecessor_succeeded": predecessor_succeeded})
        return passed, gate.get_issues()

    async def resolve(self, ref: str) -> Resolution:
        """
        Resolve a ref to a deployable environment.

        Returns:
            Resolution with MATCHED, NO_MATCH, or BLOCKED (promotion gate)
        """
        full_ref = normalize_ref(ref)
        environment = match_environment(full_ref, self.environments)

        if environment is None:
            logger.info(f"[RESOLVER] ⏭️ No environment tracks {full_ref}")
            return Resolution(
                status=ResolutionStatus.NO_MATCH,
                ref=full_ref,
                reason=f"No environment configured for {full_ref}",
            )

        if environment.promotion_predecessor:
            passed, issues = await self.check_promotion_gate(environment)
            if not passed:
                logger.warning(f"[RESOLVER] 🚧 {environment.name} blocked by promotion gate: {issues}")
                return Resolution(
                    status=ResolutionStatus.BLOCKED,
                    ref=full_ref,
                    environment=environment,
                    reason="Blocked by promotion gate",
                    issues=issues,
                )

        logger.info(f"[RESOLVER] 🎯 {full_ref} -> {environment.name}")
        return Resolution(
            status=ResolutionStatus.MATCHED,
            ref=full_ref,
            environment=environment,
        )
