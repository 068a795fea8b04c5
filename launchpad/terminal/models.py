"""
Terminal Execution Types

Pydantic models for dependency-tool command execution.
"""

from typing import Optional, List, Dict
from pydantic import BaseModel, Field


class CommandRequest(BaseModel):
    """Request to execute a dependency tool."""
    args: List[str] = Field(..., min_length=1, description="Program and arguments (no shell)")
    cwd: str = Field(..., description="Working directory (staging path)")
    timeout: Optional[int] = Field(600, description="Timeout in seconds")
    env: Dict[str, str] = Field(default_factory=dict, description="Extra environment variables")

    @property
    def display(self) -> str:
        return " ".join(self.args)


class CommandResult(BaseModel):
    """Result of a command execution."""
    success: bool
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None
    timed_out: bool = False
    duration_ms: int = 0

    def failure_summary(self, limit: int = 800) -> str:
        """Most useful part of the output for an error report."""
        text = self.error or self.stderr or self.stdout or f"exit code {self.exit_code}"
        text = text.strip()
        return text[-limit:] if len(text) > limit else text


class AllowedCommand(BaseModel):
    """Configuration for an allowed program."""
    program: str
    description: str
    max_timeout: int = 900  # seconds
