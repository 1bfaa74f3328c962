"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import ClassVar, Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    """Metrics endpoint configuration."""

    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(9500, ge=1, le=65535)


class RefreshConfig(BaseModel):
    """Refresh loop configuration."""

    interval: float = Field(600.0, ge=1.0, description="Seconds between refreshes")
    request_timeout: float = Field(30.0, gt=0.0, le=300.0, description="Per-request timeout")


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("/var/log/pr-wip-exporter/exporter.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: FileLoggingConfig = FileLoggingConfig()

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        """Accept lower-case level names."""
        return v.upper() if isinstance(v, str) else v


class ExporterConfig(BaseSettings):
    """Root configuration for the exporter.

    The repository is fixed; only the token is required from the
    environment.
    """

    REPOSITORY_OWNER: ClassVar[str] = "gitpod-io"
    REPOSITORY_NAME: ClassVar[str] = "gitpod"

    github_token: SecretStr = Field(
        validation_alias=AliasChoices("github_token", "GITHUB_TOKEN"),
    )
    graphql_url: str = "https://api.github.com/graphql"
    server: ServerConfig = ServerConfig()
    refresh: RefreshConfig = RefreshConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_prefix="PR_WIP_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("github_token")
    @classmethod
    def validate_github_token(cls, v: SecretStr) -> SecretStr:
        """Reject empty or whitespace-only tokens."""
        if not v.get_secret_value().strip():
            raise ValueError("GitHub token must not be empty")
        return v

    @property
    def owner(self) -> str:
        """Owner of the monitored repository."""
        return self.REPOSITORY_OWNER

    @property
    def name(self) -> str:
        """Name of the monitored repository."""
        return self.REPOSITORY_NAME

    @property
    def repository(self) -> str:
        """Monitored repository as ``owner/name``."""
        return f"{self.owner}/{self.name}"
