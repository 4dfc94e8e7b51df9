"""Application settings using pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ADDON_RELEASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config_path: Path = Field(
        default=Path.home() / ".addon-release" / "config.json",
        description="Path to the addon configuration file",
    )

    workspace_dir: Path = Field(
        default=Path("."),
        description="Directory the target repository is cloned into",
    )

    staging_dir: Path = Field(
        default=Path("."),
        description="Directory holding the unzipped-<addon> artifact folders",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Release target
    github_owner: str = Field(
        default="elamaran11",
        description="Owner of the marketplace repository",
    )

    github_repo: str = Field(
        default="aws-sleek-transformer",
        description="Name of the marketplace repository",
    )

    base_branch: str = Field(
        default="main",
        description="Branch pull requests are opened against",
    )

    secret_name: str = Field(
        default="github-access-token-secret",
        description="Secrets Manager secret holding the GitHub access token",
    )

    repo_url: str | None = Field(
        default=None,
        description="Clone URL override (default: https://github.com/<owner>/<repo>.git)",
    )

    # GitHub API settings
    github_api_base_url: str = Field(
        default="https://api.github.com",
        description="GitHub API base URL (for GitHub Enterprise)",
    )

    # Timeouts
    git_timeout: int = Field(
        default=300,
        description="Seconds before a clone, fetch or push is killed",
    )

    network_timeout: int = Field(
        default=30,
        description="Seconds allowed for secret lookups and GitHub API calls",
    )


# Global settings instance - lazy loaded
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
