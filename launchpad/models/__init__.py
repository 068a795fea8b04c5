"""Database models package."""

from launchpad.models.deployments import AttemptOutcome, DeploymentAttemptEvent
from launchpad.models.status_records import StatusRecordRow

__all__ = [
    "AttemptOutcome",
    "DeploymentAttemptEvent",
    "StatusRecordRow",
]
