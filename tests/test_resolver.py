"""
Tests for the Environment Resolver

- Ref normalization and glob matching
- Promotion gate fails closed
"""

from unittest.mock import AsyncMock

import pytest

from launchpad.environments import (
    Environment,
    EnvironmentResolver,
    GateCheckStatus,
    QualityGate,
    ResolutionStatus,
    match_environment,
    normalize_ref,
)
from launchpad.models import AttemptOutcome
from launchpad.services import DeploymentHistory

HASH = "c" * 64


class TestMatchEnvironment:

    def test_short_and_full_refs_are_equivalent(self, environments):
        assert normalize_ref("develop") == "refs/heads/develop"
        assert match_environment("develop", environments).name == "develop"
        assert match_environment("refs/heads/develop", environments).name == "develop"

    def test_no_match_is_none(self, environments):
        assert match_environment("refs/heads/feature/login", environments) is None

    def test_glob_patterns(self):
        envs = [
            Environment(
                name="production",
                ref_pattern="refs/tags/v*",
                credential_reference="arn:aws:iam::123456789012:role/p",
                function_name="f",
            ),
        ]
        assert match_environment("refs/tags/v1.2.0", envs).name == "production"
        assert match_environment("refs/heads/v1", envs) is None

    def test_first_match_wins(self):
        role = "arn:aws:iam::123456789012:role/r"
        envs = [
            Environment(name="preview", ref_pattern="refs/heads/*", credential_reference=role, function_name="a"),
            Environment(name="develop", ref_pattern="refs/heads/develop", credential_reference=role, function_name="b"),
        ]
        assert match_environment("develop", envs).name == "preview"

    def test_matching_is_case_sensitive(self, environments):
        assert match_environment("refs/heads/Develop", environments) is None


class TestPromotionGate:

    @pytest.mark.asyncio
    async def test_environment_without_predecessor_matches(self, environments, database):
        resolution = await EnvironmentResolver(environments, DeploymentHistory()).resolve("develop")

        assert resolution.status == ResolutionStatus.MATCHED
        assert resolution.deployable
        assert resolution.environment.name == "develop"

    @pytest.mark.asyncio
    async def test_unmatched_ref(self, environments, database):
        resolution = await EnvironmentResolver(environments, DeploymentHistory()).resolve("feature/x")

        assert resolution.status == ResolutionStatus.NO_MATCH
        assert not resolution.deployable
        assert resolution.environment is None

    @pytest.mark.asyncio
    async def test_blocked_when_predecessor_failed(self, environments, database):
        """production after a Failed staging attempt is BLOCKED."""
        history = DeploymentHistory()
        attempt = await history.open_attempt("staging", HASH)
        await history.close_attempt(attempt.attempt_id, AttemptOutcome.FAILED)

        resolution = await EnvironmentResolver(environments, history).resolve("refs/heads/main")

        assert resolution.status == ResolutionStatus.BLOCKED
        assert resolution.environment.name == "production"
        assert resolution.reason == "Blocked by promotion gate"
        assert "Failed" in resolution.issues[0]

    @pytest.mark.asyncio
    async def test_blocked_when_predecessor_never_deployed(self, environments, database):
        resolution = await EnvironmentResolver(environments, DeploymentHistory()).resolve("staging")

        assert resolution.status == ResolutionStatus.BLOCKED
        assert "never been deployed" in resolution.issues[0]

    @pytest.mark.asyncio
    async def test_blocked_when_predecessor_pending(self, environments, database):
        history = DeploymentHistory()
        await history.open_attempt("develop", HASH)

        resolution = await EnvironmentResolver(environments, history).resolve("staging")

        assert resolution.status == ResolutionStatus.BLOCKED

    @pytest.mark.asyncio
    async def test_matched_when_predecessor_succeeded(self, environments, database):
        history = DeploymentHistory()
        attempt = await history.open_attempt("staging", HASH)
        await history.close_attempt(attempt.attempt_id, AttemptOutcome.SUCCEEDED)

        resolution = await EnvironmentResolver(environments, history).resolve("main")

        assert resolution.status == ResolutionStatus.MATCHED
        assert resolution.environment.name == "production"

    @pytest.mark.asyncio
    async def test_history_unavailable_fails_closed(self, environments):
        history = AsyncMock()
        history.latest_attempt.side_effect = ConnectionError("database is locked")

        resolution = await EnvironmentResolver(environments, history).resolve("staging")

        assert resolution.status == ResolutionStatus.BLOCKED
        assert "could not be evaluated" in resolution.issues[0]

    @pytest.mark.asyncio
    async def test_gate_reads_only_the_predecessor(self, environments):
        history = AsyncMock()
        history.latest_attempt.return_value = None

        await EnvironmentResolver(environments, history).resolve("main")

        history.latest_attempt.assert_awaited_once_with("staging")


class TestQualityGate:

    @pytest.mark.asyncio
    async def test_check_without_function_is_skipped(self):
        gate = QualityGate(name="g")
        check = gate.add_check("noop")

        passed, results = await gate.run_all({})

        assert passed
        assert results == {"noop": True}
        assert check.status == GateCheckStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_failed_checks_and_issues(self):
        gate = QualityGate(name="g")
        gate.add_check("ok")
        gate.add_check("bad")

        async def ok():
            return True, []

        async def bad():
            return False, ["nope"]

        passed, _ = await gate.run_all({"ok": ok, "bad": bad})

        assert not passed
        assert [c.name for c in gate.get_failed_checks()] == ["bad"]
        assert gate.get_issues() == ["nope"]
