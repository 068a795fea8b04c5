"""
Launchpad Configuration

Two sources, both explicit:
- launchpad.toml in the project: pipeline tuning and the environment list
- Process environment (loaded from .env by the CLI): database URL, tokens,
  CI endpoints

Nothing below reads os.environ after load time; stages receive these
objects as arguments.
"""

import os
import tomllib
from pathlib import Path
from typing import Optional, List, Dict

from pydantic import BaseModel, Field, ValidationError, model_validator

from launchpad.database.connection import DEFAULT_DATABASE_URL
from launchpad.environments.models import Environment


CONFIG_FILE_NAME = "launchpad.toml"


class ConfigError(Exception):
    """Raised when launchpad.toml is missing or invalid."""


class PipelineSettings(BaseModel):
    """Tuning for a pipeline run."""
    component: str = Field(default="app", description="Artifact prefix: {component}-{environment}.zip")
    output_dir: str = Field(default="dist")
    fail_on_unknown: bool = Field(default=False, description="Exit 4 when no runtime is detected")

    # Retry policy for transient platform errors
    max_attempts: int = Field(default=3, ge=1)
    backoff_base: float = Field(default=2.0, ge=0)
    backoff_max: float = Field(default=30.0, ge=0)

    # Timeouts (seconds)
    poll_interval: float = Field(default=5.0, gt=0)
    poll_timeout: float = Field(default=300.0, gt=0)
    upload_timeout: float = Field(default=120.0, gt=0)
    dependency_timeout: int = Field(default=600, gt=0)

    log_url: Optional[str] = Field(default=None, description="Link to the detailed run log")


class LaunchpadConfig(BaseModel):
    """Validated contents of launchpad.toml."""
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    environments: List[Environment] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_promotion_chain(self) -> "LaunchpadConfig":
        names = [env.name for env in self.environments]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate environment names: {sorted(duplicates)}")

        by_name = {env.name: env for env in self.environments}
        for env in self.environments:
            if env.promotion_predecessor and env.promotion_predecessor not in by_name:
                raise ValueError(
                    f"Environment '{env.name}' promotes from unknown environment "
                    f"'{env.promotion_predecessor}'"
                )

        # Walk each chain; a chain longer than the env count is a cycle
        for env in self.environments:
            seen = {env.name}
            current = env
            while current.promotion_predecessor:
                current = by_name[current.promotion_predecessor]
                if current.name in seen:
                    raise ValueError(f"Promotion cycle through '{env.name}'")
                seen.add(current.name)
        return self

    def get_environment(self, name: str) -> Optional[Environment]:
        for env in self.environments:
            if env.name == name:
                return env
        return None

    def environments_by_name(self) -> Dict[str, Environment]:
        return {env.name: env for env in self.environments}


def load_config(project_path: str | Path, config_file: Optional[str | Path] = None) -> LaunchpadConfig:
    """
    Load and validate launchpad.toml.

    Args:
        project_path: Project root (the file is looked up there by default)
        config_file: Explicit path overriding the default location

    Returns:
        LaunchpadConfig

    Raises:
        ConfigError: If the file is missing, not TOML, or fails validation
    """
    path = Path(config_file) if config_file else Path(project_path) / CONFIG_FILE_NAME
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}")

    try:
        return LaunchpadConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}")


class RuntimeSettings(BaseModel):
    """Process-level settings taken from environment variables."""
    database_url: str = DEFAULT_DATABASE_URL
    github_token: Optional[str] = None
    github_repository: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    github_server_url: str = "https://github.com"
    github_run_id: Optional[str] = None
    web_identity_token_file: Optional[str] = None
    oidc_request_url: Optional[str] = None
    oidc_request_token: Optional[str] = None
    oidc_audience: str = "sts.amazonaws.com"

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        return cls(
            database_url=os.getenv("LAUNCHPAD_DATABASE_URL", DEFAULT_DATABASE_URL),
            github_token=os.getenv("GITHUB_TOKEN"),
            github_repository=os.getenv("GITHUB_REPOSITORY"),
            github_api_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
            github_server_url=os.getenv("GITHUB_SERVER_URL", "https://github.com"),
            github_run_id=os.getenv("GITHUB_RUN_ID"),
            web_identity_token_file=os.getenv("AWS_WEB_IDENTITY_TOKEN_FILE"),
            oidc_request_url=os.getenv("ACTIONS_ID_TOKEN_REQUEST_URL"),
            oidc_request_token=os.getenv("ACTIONS_ID_TOKEN_REQUEST_TOKEN"),
            oidc_audience=os.getenv("LAUNCHPAD_OIDC_AUDIENCE", "sts.amazonaws.com"),
        )

    @property
    def run_log_url(self) -> Optional[str]:
        """URL of the CI run, when known."""
        if self.github_repository and self.github_run_id:
            return f"{self.github_server_url}/{self.github_repository}/actions/runs/{self.github_run_id}"
        return None
