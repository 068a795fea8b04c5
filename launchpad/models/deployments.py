"""
Deployment Attempt Model - append-only deployment log.

Each logical attempt is written at least twice under the same attempt_id:
- PENDING when the executor is invoked
- SUCCEEDED or FAILED once the platform reports a terminal state

Rows are never updated. The current state of an attempt is its latest row.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from sqlalchemy import String, Integer, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from launchpad.database.base import Base


class AttemptOutcome(str, Enum):
    PENDING = "Pending"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self != AttemptOutcome.PENDING


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeploymentAttemptEvent(Base):
    """
    One state change of a deployment attempt.

    Attributes:
        id: Monotonic row id (defines ordering)
        attempt_id: Logical attempt identifier (UUID string)
        environment: Target environment name
        artifact_hash: SHA-256 of the deployed archive
        outcome: Pending / Succeeded / Failed
        detail: Platform revision, error message...
        ref: Source ref that triggered the run
        created_at: When this row was written
    """

    __tablename__ = "deployment_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    attempt_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    environment: Mapped[str] = mapped_column(String(64), nullable=False)
    artifact_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    outcome: Mapped[str] = mapped_column(String(16), nullable=False)
    detail: Mapped[Optional[str]] = mapped_column(Text)
    ref: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    __table_args__ = (
        Index("ix_deployment_attempts_env_id", "environment", "id"),
        Index("ix_deployment_attempts_env_hash", "environment", "artifact_hash"),
    )

    def __repr__(self) -> str:
        return f"<DeploymentAttemptEvent {self.attempt_id} {self.environment} {self.outcome}>"
