"""
Launchpad Centralized Logging Configuration

Provides:
- Environment-based log levels (dev=DEBUG, prod=INFO)
- Namespaced loggers under 'launchpad.*'
- Secret redaction for CI logs
- Third-party log silencing

Usage:
    from launchpad.core.logger import get_logger, dev_log

    logger = get_logger("builder")
    logger.info("[BUILDER] Always visible")
    dev_log(logger, "Only in dev mode: %s", some_data)
"""

import logging
import os
import re
import sys
from functools import wraps

# ============================================================================
# ENVIRONMENT DETECTION
# ============================================================================

def is_dev_mode() -> bool:
    """Check if running in development mode."""
    env = os.getenv("LAUNCHPAD_ENV", "development").lower()
    return env in ("development", "dev", "local")

IS_DEV = is_dev_mode()

# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

class SensitiveDataFilter(logging.Filter):
    """
    Filter to keep credentials out of CI logs.

    Session tokens, OIDC tokens and secret keys are easy to leak through
    f-string log lines; any record mentioning them is redacted.
    """

    SENSITIVE_PATTERNS = [
        "secretaccesskey",
        "secret_access_key",
        "sessiontoken",
        "session_token",
        "webidentitytoken",
        "bearer",
        "authorization",
    ]

    # AWS access key ids (long-lived AKIA, short-lived ASIA)
    ACCESS_KEY_RE = re.compile(r"\b(AKIA|ASIA)[A-Z0-9]{16}\b")

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        lowered = msg.lower()
        for pattern in self.SENSITIVE_PATTERNS:
            if pattern in lowered:
                record.msg = "[REDACTED - contains sensitive data]"
                record.args = ()
                return True

        if self.ACCESS_KEY_RE.search(msg):
            record.msg = self.ACCESS_KEY_RE.sub("[REDACTED-KEY]", msg)
            record.args = ()

        return True


def setup_logging() -> logging.Logger:
    """
    Configure centralized logging for Launchpad.

    Call this ONCE at process startup (in the CLI entry point).

    Returns:
        Root Launchpad logger
    """
    level = logging.DEBUG if IS_DEV else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,  # stdout carries command output (--json)
        force=True
    )

    launchpad_logger = logging.getLogger("launchpad")
    launchpad_logger.setLevel(level)

    # Redaction is on in every mode: CI logs are public on open repositories.
    # Handler filters also see records propagated from launchpad.* children.
    for handler in logging.getLogger().handlers:
        handler.addFilter(SensitiveDataFilter())

    # ================================================================
    # SILENCE NOISY THIRD-PARTY LOGGERS
    # ================================================================
    noisy_loggers = [
        ("boto3", logging.WARNING),
        ("botocore", logging.WARNING),
        ("urllib3", logging.WARNING),
        ("httpx", logging.WARNING),
        ("httpcore", logging.WARNING),
        ("aiosqlite", logging.WARNING),
        ("sqlalchemy.engine", logging.WARNING),
        ("asyncio", logging.WARNING),
    ]

    for logger_name, log_level in noisy_loggers:
        logging.getLogger(logger_name).setLevel(log_level)

    mode = "DEVELOPMENT" if IS_DEV else "PRODUCTION"
    launchpad_logger.info(f"🔧 Logging initialized ({mode} mode, level={logging.getLevelName(level)})")

    return launchpad_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a namespaced logger under launchpad.*.

    Args:
        name: Module name (e.g., "inspector", "builder", "executor")

    Returns:
        Logger instance

    Example:
        logger = get_logger("resolver")
        logger.info("[RESOLVER] Matched develop")
    """
    return logging.getLogger(f"launchpad.{name}")


# ============================================================================
# DEV-ONLY LOGGING UTILITIES
# ============================================================================

def dev_log(logger: logging.Logger, message: str, *args, level: int = logging.DEBUG):
    """
    Log a message ONLY in development mode.

    Args:
        logger: Logger instance
        message: Log message (can use %s formatting)
        *args: Format arguments
        level: Log level (default DEBUG)
    """
    if IS_DEV:
        logger.log(level, message, *args)


def truncate_for_log(content: str, max_length: int = 100) -> str:
    """
    Truncate content for safe logging.

    Args:
        content: String to truncate
        max_length: Max length (default 100)

    Returns:
        Truncated string with ... suffix if needed
    """
    if len(content) <= max_length:
        return content
    return content[:max_length] + "..."


# ============================================================================
# TIMING DECORATOR (Dev only)
# ============================================================================

def log_timing(logger: logging.Logger):
    """
    Decorator to log stage execution time (dev mode only).

    Example:
        @log_timing(logger)
        async def build(...):
            ...
    """
    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            if not IS_DEV:
                return await func(*args, **kwargs)

            import time
            start = time.perf_counter()
            result = await func(*args, **kwargs)
            duration = (time.perf_counter() - start) * 1000
            logger.debug(f"⏱️ {func.__name__} completed in {duration:.2f}ms")
            return result

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            if not IS_DEV:
                return func(*args, **kwargs)

            import time
            start = time.perf_counter()
            result = func(*args, **kwargs)
            duration = (time.perf_counter() - start) * 1000
            logger.debug(f"⏱️ {func.__name__} completed in {duration:.2f}ms")
            return result

        import asyncio
        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
