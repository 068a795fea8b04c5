"""
Environment Types

Pydantic models for deployment targets and resolution results.
"""

import re
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator


ROLE_ARN_RE = re.compile(r"^arn:aws[a-z-]*:iam::\d{12}:role/[\w+=,.@/-]+$")


def normalize_ref(ref: str) -> str:
    """Expand short branch names to full refs (develop -> refs/heads/develop)."""
    ref = ref.strip()
    if ref.startswith("refs/"):
        return ref
    return f"refs/heads/{ref}"


class Environment(BaseModel):
    """A statically configured deployment target."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Environment name (develop, staging, production)")
    ref_pattern: str = Field(..., description="Glob matched against the full source ref")
    credential_reference: str = Field(..., description="IAM role ARN assumed via web identity")
    function_name: str = Field(..., description="Target function on the platform")
    region: str = Field(default="us-east-1")
    promotion_predecessor: Optional[str] = Field(
        default=None,
        description="Environment that must have succeeded before this one"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not re.fullmatch(r"[a-z0-9][a-z0-9_-]*", v):
            raise ValueError(f"Invalid environment name: {v!r}")
        return v

    @field_validator("ref_pattern")
    @classmethod
    def validate_ref_pattern(cls, v: str) -> str:
        return normalize_ref(v)

    @field_validator("credential_reference")
    @classmethod
    def validate_credential_reference(cls, v: str) -> str:
        """Only role ARNs are accepted; static access keys are never configured."""
        if not ROLE_ARN_RE.match(v):
            raise ValueError(
                "credential_reference must be an IAM role ARN assumed through "
                "a federated identity, not a static key"
            )
        return v


class ResolutionStatus(str, Enum):
    """Outcome of mapping a ref to an environment."""
    MATCHED = "matched"
    NO_MATCH = "no_match"
    BLOCKED = "blocked"


class Resolution(BaseModel):
    """Result of environment resolution."""
    status: ResolutionStatus
    ref: str
    environment: Optional[Environment] = None
    reason: str = ""
    issues: List[str] = Field(default_factory=list)

    @property
    def deployable(self) -> bool:
        return self.status == ResolutionStatus.MATCHED
