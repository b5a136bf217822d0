"""Environment configuration and validation.

This module defines strongly-typed application settings loaded from environment variables
(optionally via a local `.env` file).

The backend proxy coordinates (project id and server URL) are optional at load time: a process can
start, look up ISBNs, or print help without them. They are only enforced when a query is executed,
through `Settings.backend()`.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bookharmony.query.errors import ConfigurationError


@dataclass(frozen=True)
class BackendConfig:
    """Resolved coordinates of the remote backend proxy."""

    project_id: str
    server_url: str

    @property
    def query_url(self) -> str:
        return f"{self.server_url}/api/projects/{self.project_id}/query"

    def auth_url(self, action: str) -> str:
        return f"{self.server_url}/api/projects/{self.project_id}/auth/{action}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    project_id: str | None = Field(default=None, alias="PROJECT_ID")
    server_url: str | None = Field(default=None, alias="ANYX_SERVER_URL")

    session_store_path: str = Field(default=".bookharmony/storage.json", alias="SESSION_STORE_PATH")
    openlibrary_url: str = Field(default="https://openlibrary.org", alias="OPENLIBRARY_URL")
    sign_in_path: str = Field(default="/auth", alias="SIGN_IN_PATH")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("server_url", "openlibrary_url")
    @classmethod
    def strip_trailing_slash(cls, value: str | None) -> str | None:
        """Normalize base URLs so path joining never produces `//`."""

        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None

    @field_validator("project_id")
    @classmethod
    def blank_project_id_is_missing(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    def backend(self) -> BackendConfig:
        """Return the backend proxy coordinates.

        Raises:
            ConfigurationError: If the project id or the server URL is not configured.
        """

        if not self.project_id:
            raise ConfigurationError(
                "Database configuration error: Missing project ID. "
                "Please check your environment variables."
            )
        if not self.server_url:
            raise ConfigurationError(
                "Database configuration error: Missing server URL. "
                "Please check your environment variables."
            )
        return BackendConfig(project_id=self.project_id, server_url=self.server_url)


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        RuntimeError: If the environment configuration is invalid.
    """

    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc
