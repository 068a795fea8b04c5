"""
Launchpad Quality Gates

A gate is a set of checks that must all pass before the pipeline may move
on. The promotion gate (predecessor environment succeeded) is the one the
resolver enforces before any deployment.

Checks fail closed: an exception inside a check counts as a failure.
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Callable, Tuple, Awaitable
from dataclasses import dataclass, field

from launchpad.core.logger import get_logger

logger = get_logger("gates")

CheckFunction = Callable[[], Awaitable[Tuple[bool, List[str]]]]


class GateCheckStatus(str, Enum):
    """Status of an individual gate check."""
    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    PENDING = "PENDING"


@dataclass
class GateCheck:
    """
    A single check within a quality gate.

    Example: "predecessor_succeeded" verifies the previous environment's
    latest attempt succeeded.
    """
    name: str
    description: str = ""
    status: GateCheckStatus = GateCheckStatus.PENDING
    passed: bool = False
    issues: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[datetime] = None

    async def run(self, check_fn: CheckFunction) -> "GateCheck":
        """
        Execute the check function and update status.

        Args:
            check_fn: Coroutine function returning (passed, issues_list)

        Returns:
            Self for chaining
        """
        try:
            self.passed, self.issues = await check_fn()
            self.status = GateCheckStatus.PASSED if self.passed else GateCheckStatus.FAILED
        except Exception as e:
            logger.warning(f"[GATES] ⚠️ Check '{self.name}' errored, failing closed: {e}")
            self.passed = False
            self.issues = [f"{self.name} could not be evaluated: {e}"]
            self.status = GateCheckStatus.FAILED

        self.timestamp = datetime.now(timezone.utc)
        return self


@dataclass
class QualityGate:
    """A collection of checks that must all pass."""
    name: str
    checks: List[GateCheck] = field(default_factory=list)
    passed: bool = False
    timestamp: Optional[datetime] = None

    def add_check(self, name: str, description: str = "") -> GateCheck:
        """Add a check to this gate."""
        check = GateCheck(name=name, description=description)
        self.checks.append(check)
        return check

    async def run_all(
        self,
        check_functions: Dict[str, CheckFunction]
    ) -> Tuple[bool, Dict[str, bool]]:
        """
        Run all checks in this gate.

        A check without a function is skipped (and counts as passed).

        Returns:
            Tuple of (all_passed, {check_name: passed})
        """
        results: Dict[str, bool] = {}

        for check in self.checks:
            if check.name in check_functions:
                await check.run(check_functions[check.name])
            else:
                check.status = GateCheckStatus.SKIPPED
                check.passed = True

            results[check.name] = check.passed

        self.passed = all(c.passed for c in self.checks)
        self.timestamp = datetime.now(timezone.utc)

        return self.passed, results

    def get_failed_checks(self) -> List[GateCheck]:
        """Get list of checks that failed."""
        return [c for c in self.checks if not c.passed]

    def get_issues(self) -> List[str]:
        """Get all issues from all checks."""
        issues = []
        for check in self.checks:
            issues.extend(check.issues)
        return issues
