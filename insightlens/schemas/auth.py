"""Auth payloads exchanged with the service."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LoginCredentials(BaseModel):
    """Body of the login and register calls."""

    username: str
    password: str


class User(BaseModel):
    """Profile of the authenticated user.

    The service may send more fields than ``id`` / ``username``;
    they are kept so callers can render them.
    """

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    username: str


class AuthResponse(BaseModel):
    """Successful login / register payload.

    ``refresh`` is optional: a login that only returns an
    access credential is still a successful login.
    """

    access: str
    refresh: str | None = None
    user: User | None = None


class RefreshResponse(BaseModel):
    """Payload of the token-refresh call; rotation is optional."""

    access: str
    refresh: str | None = None


class TokenDebugInfo(BaseModel):
    """Redacted view of the stored credentials for diagnostics."""

    has_access_token: bool = Field(
        ...,
        description="Whether an access credential is stored",
    )
    has_refresh_token: bool = Field(
        ...,
        description="Whether a refresh credential is stored",
    )
    access_token_start: str | None = Field(
        default=None,
        description="First characters of the access credential",
    )
    refresh_token_start: str | None = Field(
        default=None,
        description="First characters of the refresh credential",
    )
