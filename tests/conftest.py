"""Shared fixtures for Launchpad tests."""

import json
from pathlib import Path
from typing import List

import pytest
import pytest_asyncio

from launchpad.database import DatabaseConnection
from launchpad.environments import Environment
from launchpad.terminal import CommandRequest, CommandResult


@pytest_asyncio.fixture
async def database():
    """Fresh in-memory SQLite database for each test."""
    await DatabaseConnection.close()
    DatabaseConnection.configure("sqlite+aiosqlite:///:memory:")
    await DatabaseConnection.init_schema()
    yield DatabaseConnection
    await DatabaseConnection.close()


@pytest.fixture
def environments() -> List[Environment]:
    """develop -> staging -> production promotion chain."""
    return [
        Environment(
            name="develop",
            ref_pattern="refs/heads/develop",
            credential_reference="arn:aws:iam::123456789012:role/deploy-develop",
            function_name="app-develop",
        ),
        Environment(
            name="staging",
            ref_pattern="refs/heads/staging",
            credential_reference="arn:aws:iam::123456789012:role/deploy-staging",
            function_name="app-staging",
            promotion_predecessor="develop",
        ),
        Environment(
            name="production",
            ref_pattern="refs/heads/main",
            credential_reference="arn:aws:iam::123456789012:role/deploy-production",
            function_name="app-production",
            promotion_predecessor="staging",
        ),
    ]


@pytest.fixture
def node_project(tmp_path) -> Path:
    """A small Lambda handler with package.json and some repository debris."""
    project = tmp_path / "service"
    project.mkdir()
    (project / "package.json").write_text(json.dumps({
        "name": "service",
        "dependencies": {"uuid": "^9.0.0"},
        "devDependencies": {"jest": "^29.0.0"},
    }))
    (project / "package-lock.json").write_text("{}")
    (project / "index.js").write_text("exports.handler = async () => ({ statusCode: 200 });\n")
    (project / "lib").mkdir()
    (project / "lib" / "util.js").write_text("module.exports = {};\n")
    (project / "README.md").write_text("# service\n")
    (project / ".gitignore").write_text("node_modules\n")
    (project / ".git").mkdir()
    (project / ".git" / "HEAD").write_text("ref: refs/heads/develop\n")
    (project / ".github" / "workflows").mkdir(parents=True)
    (project / ".github" / "workflows" / "deploy.yml").write_text("on: push\n")
    (project / "docs").mkdir()
    (project / "docs" / "guide.txt").write_text("guide\n")
    (project / "node_modules" / "jest").mkdir(parents=True)
    (project / "node_modules" / "jest" / "index.js").write_text("// dev dependency\n")
    return project


class FakeCommandRunner:
    """
    Stands in for execute_command.

    npm writes node_modules/<dep>/index.js, pip writes <dep>/__init__.py,
    poetry writes the exported requirements file; each call is recorded.
    """

    def __init__(self, fail: bool = False, timed_out: bool = False):
        self.fail = fail
        self.timed_out = timed_out
        self.calls: List[CommandRequest] = []

    async def __call__(self, request: CommandRequest) -> CommandResult:
        self.calls.append(request)
        if self.fail or self.timed_out:
            return CommandResult(
                success=False,
                exit_code=None if self.timed_out else 1,
                stderr="" if self.timed_out else "npm ERR! 404 Not Found",
                error="Command timed out after 600 seconds" if self.timed_out else None,
                timed_out=self.timed_out,
            )

        cwd = Path(request.cwd)
        program = request.args[0]
        if program == "npm":
            target = cwd / "node_modules" / "uuid"
            target.mkdir(parents=True, exist_ok=True)
            (target / "index.js").write_text("module.exports = {};\n")
        elif program == "pip":
            target = Path(request.args[request.args.index("--target") + 1]) / "requests"
            target.mkdir(parents=True, exist_ok=True)
            (target / "__init__.py").write_text("")
        elif program == "poetry":
            out = request.args[request.args.index("--output") + 1]
            (cwd / out).write_text("requests==2.31.0\n")
        return CommandResult(success=True, exit_code=0)

    @property
    def programs(self) -> List[str]:
        return [" ".join(c.args[:2]) for c in self.calls]


@pytest.fixture
def command_runner() -> FakeCommandRunner:
    return FakeCommandRunner()
