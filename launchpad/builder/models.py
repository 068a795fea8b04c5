"""
Artifact Model

A deployable archive is immutable and content-addressed: the SHA-256 of its
bytes is its identity everywhere downstream (history, idempotency, reports).
"""

import hashlib
from datetime import datetime, timezone
from typing import Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator

from launchpad.inspector.project_inspector import ProjectClassification


def artifact_file_name(component: str, environment: str) -> str:
    """{component}-{environment}.zip"""
    return f"{component}-{environment}.zip"


class Artifact(BaseModel):
    """A built deployment archive."""
    model_config = ConfigDict(frozen=True)

    component: str
    environment: str
    classification: ProjectClassification
    content: bytes = Field(..., repr=False)
    sha256: str
    members: Tuple[str, ...] = ()
    built_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def verify_hash(self) -> "Artifact":
        if hashlib.sha256(self.content).hexdigest() != self.sha256:
            raise ValueError("Artifact hash does not match its content")
        return self

    @classmethod
    def from_bytes(
        cls,
        content: bytes,
        component: str,
        environment: str,
        classification: ProjectClassification,
        members: Tuple[str, ...] = (),
    ) -> "Artifact":
        return cls(
            component=component,
            environment=environment,
            classification=classification,
            content=content,
            sha256=hashlib.sha256(content).hexdigest(),
            members=tuple(members),
        )

    @property
    def file_name(self) -> str:
        return artifact_file_name(self.component, self.environment)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def short_hash(self) -> str:
        return self.sha256[:12]
