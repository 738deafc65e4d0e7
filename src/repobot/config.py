"""Bot configuration using pydantic-settings.

This module defines the BotSettings class that reads configuration from
environment variables with the REPO_BOT_ prefix. When running as a GitHub
Action the inputs are exposed as INPUT_* variables, which are accepted as
aliases for the fields the Action declares (token, org_admins, api_url).
"""

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_COMMAND_PREFIX = "/repo-bot"


class BotSettings(BaseSettings):
    """Repository bot configuration from environment variables.

    All environment variables are prefixed with REPO_BOT_ (e.g.,
    REPO_BOT_GITHUB_TOKEN).

    Required fields (must be set via environment variables):
    - github_token: GitHub API token used for every platform call
    - org_admins: team or user mentioned by the ping-admins command
    """

    model_config = SettingsConfigDict(
        env_prefix="REPO_BOT_",
        case_sensitive=False,
        populate_by_name=True,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    # Token with repo, admin:org and workflow scopes on the organization
    github_token: str = Field(
        validation_alias=AliasChoices("REPO_BOT_GITHUB_TOKEN", "INPUT_TOKEN"),
    )

    # Base URL for GitHub API (supports GitHub Enterprise)
    github_base_url: str = Field(
        default="https://api.github.com",
        validation_alias=AliasChoices("REPO_BOT_GITHUB_BASE_URL", "INPUT_API_URL"),
    )

    # Team or user mentioned by the ping-admins command
    org_admins: str = Field(
        validation_alias=AliasChoices("REPO_BOT_ORG_ADMINS", "INPUT_ORG_ADMINS"),
    )

    # Optional secret for validating X-Hub-Signature-256
    webhook_secret: Optional[str] = None

    # -------------------------------------------------------------------------
    # Command Configuration
    # -------------------------------------------------------------------------
    command_prefix: str = DEFAULT_COMMAND_PREFIX

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"
    port: int = 8080

    # -------------------------------------------------------------------------
    # Logging Configuration
    # -------------------------------------------------------------------------
    log_level: str = "INFO"

    # Render log records as JSON lines instead of console output
    log_json: bool = True

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_token")
    @classmethod
    def validate_github_token(cls, v: str) -> str:
        """Validate that GitHub token is not empty."""
        if not v or not v.strip():
            raise ValueError("github_token cannot be empty")
        return v.strip()

    @field_validator("github_base_url")
    @classmethod
    def validate_github_base_url(cls, v: str) -> str:
        """Validate the API URL, falling back to github.com when blank."""
        if not v or not v.strip():
            return "https://api.github.com"
        if not v.startswith(("http://", "https://")):
            raise ValueError("github_base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("org_admins")
    @classmethod
    def validate_org_admins(cls, v: str) -> str:
        """Strip a leading @ so mentions are not doubled."""
        admins = v.strip().lstrip("@")
        if not admins:
            raise ValueError("org_admins cannot be empty")
        return admins

    @field_validator("command_prefix")
    @classmethod
    def validate_command_prefix(cls, v: str) -> str:
        """Validate that the command prefix looks like a slash command."""
        v = v.strip()
        if not v.startswith("/") or len(v) < 2:
            raise ValueError("command_prefix must start with / followed by a name")
        if any(ch.isspace() for ch in v):
            raise ValueError("command_prefix cannot contain whitespace")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that the log level is a known logging level name."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log_level: {v}")
        return level

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v


def get_settings() -> BotSettings:
    """Create and return BotSettings instance.

    Returns:
        BotSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return BotSettings()
