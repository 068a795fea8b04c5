"""
Terminal Security Module

Command validation for dependency resolution. Only package managers run,
only inside the build staging directory.
"""

from pathlib import Path
from typing import Tuple, Optional, List

from launchpad.core.logger import get_logger
from .models import AllowedCommand, CommandRequest

logger = get_logger("terminal")


# ============================================================================
# WHITELISTED PROGRAMS
# ============================================================================

ALLOWED_COMMANDS: List[AllowedCommand] = [
    AllowedCommand(program="npm", description="Node package manager"),
    AllowedCommand(program="pip", description="Python package installer"),
    AllowedCommand(program="pip3", description="Python package installer"),
    AllowedCommand(program="python", description="Python interpreter (python -m pip)"),
    AllowedCommand(program="python3", description="Python interpreter (python -m pip)"),
    AllowedCommand(program="poetry", description="Poetry dependency manager", max_timeout=300),
]

BLOCKED_SUBCOMMANDS: dict = {
    "npm": ["exec", "x", "publish", "run", "run-script", "start", "test"],
    "poetry": ["publish", "run", "shell"],
    "python": ["-c"],
    "python3": ["-c"],
}


# ============================================================================
# FORBIDDEN PATHS
# ============================================================================

FORBIDDEN_PATHS = [
    "/system",
    "/usr",
    "/bin",
    "/sbin",
    "/etc",
    "/var",
    "/proc",
    "c:/windows",
    "c:/program files",
]


# ============================================================================
# VALIDATION FUNCTIONS
# ============================================================================

def is_path_safe(working_dir: str) -> Tuple[bool, str]:
    """
    Validate that a working directory is safe for command execution.

    Returns:
        Tuple of (is_safe, error_message)
    """
    if not working_dir:
        return False, "No working directory provided"

    resolved = Path(working_dir).resolve()

    if not resolved.exists():
        return False, f"Path does not exist: {working_dir}"

    if not resolved.is_dir():
        return False, f"Path is not a directory: {working_dir}"

    normalized = str(resolved).lower().replace("\\", "/")
    for forbidden in FORBIDDEN_PATHS:
        if normalized == forbidden or normalized.startswith(forbidden + "/"):
            return False, f"Cannot execute commands in system directory: {forbidden}"

    return True, ""


def get_allowed_command_config(program: str) -> Optional[AllowedCommand]:
    """Get the config for an allowed program."""
    name = Path(program).name.lower()
    for ac in ALLOWED_COMMANDS:
        if ac.program == name:
            return ac
    return None


def validate_command(request: CommandRequest) -> Tuple[bool, str]:
    """
    Validate a command for execution.

    Returns:
        Tuple of (is_valid, error_message)
    """
    path_safe, path_error = is_path_safe(request.cwd)
    if not path_safe:
        return False, path_error

    program = Path(request.args[0]).name.lower()
    sub_command = request.args[1].lower() if len(request.args) > 1 else None

    if not get_allowed_command_config(program):
        allowed_list = ", ".join(ac.program for ac in ALLOWED_COMMANDS)
        return False, f"Command '{program}' is not allowed. Whitelist: {allowed_list}"

    if sub_command and sub_command in BLOCKED_SUBCOMMANDS.get(program, []):
        return False, f"Subcommand '{program} {sub_command}' is blocked"

    logger.debug(f"[SECURITY] ✅ Command validated: {request.display[:80]}")
    return True, ""
