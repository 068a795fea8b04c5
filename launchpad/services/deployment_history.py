"""
Deployment History Service

Append-only log of deployment attempts backed by the database. The
promotion gate reads it, the executor writes it, and idempotent
resubmission is decided from it.
"""

import uuid
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel
from sqlalchemy import select

from launchpad.core.logger import get_logger
from launchpad.database import get_session
from launchpad.models.deployments import AttemptOutcome, DeploymentAttemptEvent

logger = get_logger("history")


class DeploymentAttempt(BaseModel):
    """Current state of a logical deployment attempt."""
    attempt_id: str
    environment: str
    artifact_hash: str
    outcome: AttemptOutcome
    timestamp: datetime
    detail: Optional[str] = None
    ref: Optional[str] = None

    @classmethod
    def from_row(cls, row: DeploymentAttemptEvent) -> "DeploymentAttempt":
        return cls(
            attempt_id=row.attempt_id,
            environment=row.environment,
            artifact_hash=row.artifact_hash,
            outcome=AttemptOutcome(row.outcome),
            timestamp=row.created_at,
            detail=row.detail,
            ref=row.ref,
        )


class AttemptStateError(Exception):
    """Raised when an attempt is closed twice or does not exist."""


class DeploymentHistory:
    """
    Reads and appends deployment attempt events.

    Usage:
        history = DeploymentHistory()
        attempt = await history.open_attempt("develop", artifact.sha256)
        await history.close_attempt(attempt.attempt_id, AttemptOutcome.SUCCEEDED)
    """

    async def open_attempt(
        self,
        environment: str,
        artifact_hash: str,
        ref: Optional[str] = None,
    ) -> DeploymentAttempt:
        """Record a new Pending attempt."""
        row = DeploymentAttemptEvent(
            attempt_id=str(uuid.uuid4()),
            environment=environment,
            artifact_hash=artifact_hash,
            outcome=AttemptOutcome.PENDING.value,
            ref=ref,
        )
        async with get_session() as session:
            session.add(row)
            await session.flush()
            attempt = DeploymentAttempt.from_row(row)

        logger.info(f"[HISTORY] 📝 Attempt {attempt.attempt_id[:8]} opened for {environment} ({artifact_hash[:12]})")
        return attempt

    async def close_attempt(
        self,
        attempt_id: str,
        outcome: AttemptOutcome,
        detail: Optional[str] = None,
    ) -> DeploymentAttempt:
        """
        Append the terminal outcome of an attempt.

        Raises:
            AttemptStateError: Unknown attempt, already terminal, or non-terminal outcome
        """
        if not outcome.is_terminal:
            raise AttemptStateError("An attempt can only be closed with a terminal outcome")

        async with get_session() as session:
            current = await self._latest_row(session, attempt_id)
            if current is None:
                raise AttemptStateError(f"Unknown attempt: {attempt_id}")
            if AttemptOutcome(current.outcome).is_terminal:
                raise AttemptStateError(
                    f"Attempt {attempt_id} is already {current.outcome}"
                )

            row = DeploymentAttemptEvent(
                attempt_id=attempt_id,
                environment=current.environment,
                artifact_hash=current.artifact_hash,
                outcome=outcome.value,
                detail=detail,
                ref=current.ref,
            )
            session.add(row)
            await session.flush()
            attempt = DeploymentAttempt.from_row(row)

        icon = "✅" if outcome == AttemptOutcome.SUCCEEDED else "❌"
        logger.info(f"[HISTORY] {icon} Attempt {attempt_id[:8]} {outcome.value}")
        return attempt

    async def get_attempt(self, attempt_id: str) -> Optional[DeploymentAttempt]:
        async with get_session() as session:
            row = await self._latest_row(session, attempt_id)
            return DeploymentAttempt.from_row(row) if row else None

    async def latest_attempt(self, environment: str) -> Optional[DeploymentAttempt]:
        """Current state of the most recently opened attempt for an environment."""
        async with get_session() as session:
            stmt = (
                select(DeploymentAttemptEvent.attempt_id)
                .where(
                    DeploymentAttemptEvent.environment == environment,
                    DeploymentAttemptEvent.outcome == AttemptOutcome.PENDING.value,
                )
                .order_by(DeploymentAttemptEvent.id.desc())
                .limit(1)
            )
            attempt_id = (await session.execute(stmt)).scalar_one_or_none()
            if attempt_id is None:
                return None
            row = await self._latest_row(session, attempt_id)
            return DeploymentAttempt.from_row(row) if row else None

    async def find_succeeded(self, environment: str, artifact_hash: str) -> Optional[DeploymentAttempt]:
        """
        The environment's latest attempt, if it Succeeded with this artifact.

        An older success of the same hash does not count: after deploying
        A, B, then A again, B is live and A must be resubmitted.
        """
        latest = await self.latest_attempt(environment)
        if latest is None:
            return None
        if latest.outcome != AttemptOutcome.SUCCEEDED or latest.artifact_hash != artifact_hash:
            return None
        return latest

    async def list_attempts(self, environment: Optional[str] = None, limit: int = 20) -> List[DeploymentAttempt]:
        """Current state of recent attempts, newest first."""
        async with get_session() as session:
            stmt = select(DeploymentAttemptEvent).order_by(DeploymentAttemptEvent.id.desc())
            if environment:
                stmt = stmt.where(DeploymentAttemptEvent.environment == environment)
            rows = (await session.execute(stmt)).scalars().all()

        attempts: List[DeploymentAttempt] = []
        seen = set()
        for row in rows:
            if row.attempt_id in seen:
                continue
            seen.add(row.attempt_id)
            attempts.append(DeploymentAttempt.from_row(row))
            if len(attempts) >= limit:
                break
        return attempts

    @staticmethod
    async def _latest_row(session, attempt_id: str) -> Optional[DeploymentAttemptEvent]:
        stmt = (
            select(DeploymentAttemptEvent)
            .where(DeploymentAttemptEvent.attempt_id == attempt_id)
            .order_by(DeploymentAttemptEvent.id.desc())
            .limit(1)
        )
        return (await session.execute(stmt)).scalar_one_or_none()
