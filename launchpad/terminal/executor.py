"""
Terminal Executor Module

Executes validated dependency-tool commands as async subprocesses.
Handles timeouts and output capture; the child is killed on timeout or
when the run is cancelled, so a superseded run never leaves npm/pip behind.
"""

import asyncio
import os
import time

from launchpad.core.logger import get_logger
from .models import CommandRequest, CommandResult
from .security import validate_command, get_allowed_command_config

logger = get_logger("terminal")


def _command_env(request: CommandRequest) -> dict:
    return {
        **os.environ,
        "CI": "true",
        "npm_config_yes": "true",
        "npm_config_fund": "false",
        "npm_config_audit": "false",
        "PIP_DISABLE_PIP_VERSION_CHECK": "1",
        **request.env,
    }


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


async def execute_command(request: CommandRequest) -> CommandResult:
    """
    Execute a command and return the result.

    Never raises for command failures; callers inspect CommandResult.
    Cancellation kills the child and propagates.
    """
    start_time = time.time()

    is_valid, error = validate_command(request)
    if not is_valid:
        logger.warning(f"[EXECUTOR] ❌ Validation failed: {error}")
        return CommandResult(
            success=False,
            error=error,
            duration_ms=int((time.time() - start_time) * 1000)
        )

    cmd_config = get_allowed_command_config(request.args[0])
    timeout = request.timeout or cmd_config.max_timeout

    logger.info(f"[EXECUTOR] 🚀 Running: {request.display}")
    try:
        process = await asyncio.create_subprocess_exec(
            *request.args,
            cwd=request.cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=_command_env(request),
        )
    except OSError as e:
        # Program missing from PATH, permission denied...
        logger.error(f"[EXECUTOR] ❌ Execution error: {e}")
        return CommandResult(
            success=False,
            error=str(e),
            duration_ms=int((time.time() - start_time) * 1000)
        )

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(process)
        duration = int((time.time() - start_time) * 1000)
        logger.warning(f"[EXECUTOR] ⏰ Command timed out after {timeout}s, killed")
        return CommandResult(
            success=False,
            error=f"Command timed out after {timeout} seconds",
            timed_out=True,
            duration_ms=duration
        )
    except asyncio.CancelledError:
        await _kill(process)
        logger.warning(f"[EXECUTOR] 🛑 Cancelled, killed: {request.display}")
        raise

    duration = int((time.time() - start_time) * 1000)
    logger.info(f"[EXECUTOR] {'✅' if process.returncode == 0 else '❌'} Exit code: {process.returncode} in {duration}ms")

    stdout_text = stdout.decode(errors="replace") if stdout else ""
    stderr_text = stderr.decode(errors="replace") if stderr else ""
    return CommandResult(
        success=process.returncode == 0,
        exit_code=process.returncode,
        stdout=stdout_text[:10000],
        stderr=stderr_text[:5000],
        duration_ms=duration
    )
