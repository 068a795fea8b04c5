"""
Tests for the deployment history service

The attempt log is append-only: closing an attempt adds a row.
"""

import pytest
from sqlalchemy import func, select

from launchpad.database import get_session
from launchpad.models import AttemptOutcome, DeploymentAttemptEvent
from launchpad.services import AttemptStateError, DeploymentHistory

HASH_A = "a" * 64
HASH_B = "b" * 64


async def count_rows() -> int:
    async with get_session() as session:
        return (await session.execute(select(func.count()).select_from(DeploymentAttemptEvent))).scalar_one()


class TestDeploymentHistory:

    @pytest.mark.asyncio
    async def test_open_and_close(self, database):
        history = DeploymentHistory()

        attempt = await history.open_attempt("develop", HASH_A, ref="refs/heads/develop")
        assert attempt.outcome == AttemptOutcome.PENDING

        closed = await history.close_attempt(attempt.attempt_id, AttemptOutcome.SUCCEEDED, detail="revision r1")

        assert closed.attempt_id == attempt.attempt_id
        assert closed.outcome == AttemptOutcome.SUCCEEDED
        assert closed.ref == "refs/heads/develop"
        assert (await history.get_attempt(attempt.attempt_id)).outcome == AttemptOutcome.SUCCEEDED
        # Append-only: Pending row kept, terminal row added
        assert await count_rows() == 2

    @pytest.mark.asyncio
    async def test_terminal_attempt_cannot_be_closed_again(self, database):
        history = DeploymentHistory()
        attempt = await history.open_attempt("develop", HASH_A)
        await history.close_attempt(attempt.attempt_id, AttemptOutcome.FAILED)

        with pytest.raises(AttemptStateError, match="already"):
            await history.close_attempt(attempt.attempt_id, AttemptOutcome.SUCCEEDED)

    @pytest.mark.asyncio
    async def test_close_requires_terminal_outcome(self, database):
        history = DeploymentHistory()
        attempt = await history.open_attempt("develop", HASH_A)

        with pytest.raises(AttemptStateError):
            await history.close_attempt(attempt.attempt_id, AttemptOutcome.PENDING)

    @pytest.mark.asyncio
    async def test_unknown_attempt(self, database):
        with pytest.raises(AttemptStateError, match="Unknown"):
            await DeploymentHistory().close_attempt("missing", AttemptOutcome.FAILED)
        assert await DeploymentHistory().get_attempt("missing") is None

    @pytest.mark.asyncio
    async def test_latest_attempt_is_most_recently_opened(self, database):
        """An older attempt closing late does not mask a newer one."""
        history = DeploymentHistory()
        older = await history.open_attempt("staging", HASH_A)
        newer = await history.open_attempt("staging", HASH_B)
        await history.close_attempt(newer.attempt_id, AttemptOutcome.FAILED)
        await history.close_attempt(older.attempt_id, AttemptOutcome.SUCCEEDED)

        latest = await history.latest_attempt("staging")

        assert latest.attempt_id == newer.attempt_id
        assert latest.outcome == AttemptOutcome.FAILED

    @pytest.mark.asyncio
    async def test_latest_attempt_none_when_never_deployed(self, database):
        await DeploymentHistory().open_attempt("develop", HASH_A)
        assert await DeploymentHistory().latest_attempt("production") is None

    @pytest.mark.asyncio
    async def test_find_succeeded(self, database):
        history = DeploymentHistory()
        failed = await history.open_attempt("develop", HASH_A)
        await history.close_attempt(failed.attempt_id, AttemptOutcome.FAILED)
        assert await history.find_succeeded("develop", HASH_A) is None

        ok = await history.open_attempt("develop", HASH_A)
        await history.close_attempt(ok.attempt_id, AttemptOutcome.SUCCEEDED)

        found = await history.find_succeeded("develop", HASH_A)
        assert found.attempt_id == ok.attempt_id
        assert await history.find_succeeded("staging", HASH_A) is None
        assert await history.find_succeeded("develop", HASH_B) is None

    @pytest.mark.asyncio
    async def test_find_succeeded_only_matches_live_artifact(self, database):
        """A then B: A succeeded once but B is live, so A is not current."""
        history = DeploymentHistory()
        for artifact_hash in (HASH_A, HASH_B):
            attempt = await history.open_attempt("develop", artifact_hash)
            await history.close_attempt(attempt.attempt_id, AttemptOutcome.SUCCEEDED)

        assert await history.find_succeeded("develop", HASH_A) is None
        assert (await history.find_succeeded("develop", HASH_B)).artifact_hash == HASH_B

    @pytest.mark.asyncio
    async def test_find_succeeded_ignores_success_behind_pending(self, database):
        history = DeploymentHistory()
        ok = await history.open_attempt("develop", HASH_A)
        await history.close_attempt(ok.attempt_id, AttemptOutcome.SUCCEEDED)
        await history.open_attempt("develop", HASH_A)

        assert await history.find_succeeded("develop", HASH_A) is None

    @pytest.mark.asyncio
    async def test_list_attempts_current_state_newest_first(self, database):
        history = DeploymentHistory()
        first = await history.open_attempt("develop", HASH_A)
        await history.close_attempt(first.attempt_id, AttemptOutcome.SUCCEEDED)
        second = await history.open_attempt("staging", HASH_A)

        attempts = await history.list_attempts()

        assert [a.attempt_id for a in attempts] == [second.attempt_id, first.attempt_id]
        assert attempts[1].outcome == AttemptOutcome.SUCCEEDED
        assert [a.attempt_id for a in await history.list_attempts("develop")] == [first.attempt_id]
        assert len(await history.list_attempts(limit=1)) == 1
