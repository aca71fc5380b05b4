"""
Client configuration and settings.

Centralises all external configuration (env-vars / .env) and
version discovery.  Credential persistence lives in
``insightlens.services.credential_store`` and the session layer
in ``insightlens.services.session``.
"""

from __future__ import annotations

import importlib.metadata
import logging
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


# ── Package version (single source of truth from pyproject.toml) ────────


def get_version() -> str:
    """Return the installed package version.

    Falls back to ``"0.0.0-dev"`` when the package metadata
    is not available (e.g. when running from a source checkout).

    Returns:
        Semantic version string.
    """
    try:
        return importlib.metadata.version("insightlens-client")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0-dev"


# ── Settings ────────────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """Client configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    # General
    APP_NAME: str = "InsightLens Client"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Service endpoints.  The frontend build variables are
    # accepted as aliases so one .env serves both clients.
    API_URL: str = Field(
        default="http://localhost:8000/api",
        validation_alias=AliasChoices(
            "API_URL",
            "VITE_API_URL",
            "REACT_APP_API_URL",
        ),
    )
    SEARCH_URL: str = "http://127.0.0.1:8000/api/product/api/product/"
    LOGIN_URL: str = "/login"

    # HTTP
    REQUEST_TIMEOUT: float = 30.0  # seconds

    # ── Search pipeline ─────────────────────────────────────────────
    SEARCH_DEBOUNCE_MS: int = 300
    REVIEW_PREVIEW_COUNT: int = 3

    # ── Credential persistence ──────────────────────────────────────
    CREDENTIAL_BACKEND: str = "disk"  # disk | redis | memory
    CREDENTIAL_STORE_DIR: str = ".insightlens_credentials"

    # Redis (only used by the ``redis`` credential backend)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    @field_validator("API_URL", "SEARCH_URL")
    @classmethod
    def _strip_url(cls, v: str) -> str:
        """Drop surrounding whitespace from configured URLs."""
        return v.strip()

    @field_validator("CREDENTIAL_BACKEND")
    @classmethod
    def _normalise_backend(cls, v: str) -> str:
        """Accept backend names case-insensitively."""
        backend = v.strip().lower()
        if backend not in ("disk", "redis", "memory"):
            raise ValueError(
                f"Unknown credential backend '{v}'. "
                "Expected one of: disk, redis, memory."
            )
        return backend

    @property
    def search_debounce_seconds(self) -> float:
        """Debounce quiet period in seconds."""
        return self.SEARCH_DEBOUNCE_MS / 1000

    # Derived URLs
    @property
    def REDIS_URL(self) -> str:  # noqa: N802
        """Full Redis connection URL."""
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Using ``lru_cache`` ensures the .env file is read exactly
    once.  Tests construct ``Settings`` directly and pass it in.
    """
    return Settings()
