"""
Terminal Module

Whitelisted execution of dependency tools (npm, pip, poetry) for the
package builder.

Usage:
    from launchpad.terminal import execute_command, CommandRequest

    result = await execute_command(CommandRequest(
        args=["npm", "ci", "--omit=dev"],
        cwd="/path/to/staging"
    ))
"""

from .models import (
    CommandRequest,
    CommandResult,
    AllowedCommand,
)

from .security import (
    ALLOWED_COMMANDS,
    validate_command,
    is_path_safe,
    get_allowed_command_config,
)

from .executor import execute_command

__all__ = [
    # Models
    "CommandRequest",
    "CommandResult",
    "AllowedCommand",
    # Security
    "ALLOWED_COMMANDS",
    "validate_command",
    "is_path_safe",
    "get_allowed_command_config",
    # Executor
    "execute_command",
]
