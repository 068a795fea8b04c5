"""Persistence-backed services."""

from launchpad.services.deployment_history import (
    DeploymentAttempt,
    DeploymentHistory,
    AttemptStateError,
)

__all__ = [
    "DeploymentAttempt",
    "DeploymentHistory",
    "AttemptStateError",
]
