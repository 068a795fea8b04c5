"""
Dependency Vendoring

Resolves production dependencies into the staging directory so the archive
is self-contained. One strategy per package manager; a failing tool is a
hard failure of the build (no retry).
"""

from pathlib import Path
from typing import Awaitable, Callable, List

from launchpad.core.error_recovery import DependencyResolutionFailed
from launchpad.core.logger import dev_log, get_logger
from launchpad.inspector.project_inspector import PackageManager, ProjectAnalysis
from launchpad.terminal import CommandRequest, CommandResult, execute_command

logger = get_logger("vendoring")

CommandRunner = Callable[[CommandRequest], Awaitable[CommandResult]]

POETRY_EXPORT_FILE = "requirements.launchpad.txt"


def npm_install_args(has_lockfile: bool) -> List[str]:
    if has_lockfile:
        return ["npm", "ci", "--omit=dev"]
    return ["npm", "install", "--omit=dev", "--no-package-lock"]


def pip_install_args(requirements_file: str, target: Path) -> List[str]:
    return [
        "pip", "install",
        "-r", requirements_file,
        "--target", str(target),
        "--no-compile",
        "--no-input",
        "--disable-pip-version-check",
    ]


def poetry_export_args() -> List[str]:
    return [
        "poetry", "export",
        "--without-hashes",
        "--format", "requirements.txt",
        "--output", POETRY_EXPORT_FILE,
    ]


class DependencyVendor:
    """Runs the package manager that matches a project analysis."""

    def __init__(self, timeout: int = 600, command_runner: CommandRunner = execute_command):
        self.timeout = timeout
        self._run = command_runner

    async def vendor(self, analysis: ProjectAnalysis, staging: Path) -> None:
        """
        Install production dependencies into staging.

        Raises:
            DependencyResolutionFailed: If any tool fails or times out
        """
        manager = analysis.package_manager

        if manager == PackageManager.NPM:
            await self._checked(npm_install_args(analysis.has_lockfile), staging)

        elif manager == PackageManager.PIP:
            await self._checked(pip_install_args("requirements.txt", staging), staging)

        elif manager == PackageManager.POETRY:
            await self._checked(poetry_export_args(), staging)
            try:
                await self._checked(pip_install_args(POETRY_EXPORT_FILE, staging), staging)
            finally:
                (staging / POETRY_EXPORT_FILE).unlink(missing_ok=True)

        else:
            logger.info("[VENDOR] ⏭️ No package manager: source files only")
            return

        logger.info(f"[VENDOR] ✅ {manager.value} dependencies vendored")

    async def _checked(self, args: List[str], cwd: Path) -> CommandResult:
        result = await self._run(CommandRequest(args=args, cwd=str(cwd), timeout=self.timeout))
        if not result.success:
            raise DependencyResolutionFailed(
                f"`{' '.join(args)}` failed: {result.failure_summary()}",
                details={"exit_code": result.exit_code, "timed_out": result.timed_out},
            )
        dev_log(logger, "[VENDOR] %s output:\n%s", args[0], result.stdout)
        return result
