"""
Run Summary Types

Shell exit codes become tagged stage outcomes; the reporter renders them and
the CLI turns the overall status into an exit code.
"""

from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field


class StageName(str, Enum):
    INSPECT = "Inspect"
    BUILD = "Build"
    RESOLVE = "Resolve"
    DEPLOY = "Deploy"


class StageStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"


class RunStatus(str, Enum):
    PASSED = "Passed"
    FAILED = "Failed"
    BLOCKED = "Blocked"
    CANCELLED = "Cancelled"


STAGE_ICONS = {
    StageStatus.PASSED: "✅",
    StageStatus.FAILED: "❌",
    StageStatus.SKIPPED: "⏭️",
    StageStatus.BLOCKED: "🚧",
    StageStatus.CANCELLED: "🛑",
}

RUN_ICONS = {
    RunStatus.PASSED: "✅",
    RunStatus.FAILED: "❌",
    RunStatus.BLOCKED: "🚧",
    RunStatus.CANCELLED: "🛑",
}


class StageOutcome(BaseModel):
    """Result of one pipeline stage."""
    stage: StageName
    status: StageStatus
    detail: str = ""


class RunSummary(BaseModel):
    """Everything the status record shows about a run."""
    status: RunStatus
    classification: str
    target: str = Field(..., description="e.g. 'deployed to develop', 'build only'")
    stages: List[StageOutcome] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    ref: Optional[str] = None
    sha: Optional[str] = None
    log_url: Optional[str] = None

    @property
    def headline(self) -> str:
        """Passed, NodeRuntime, deployed to develop"""
        return f"{self.status.value}, {self.classification}, {self.target}"
