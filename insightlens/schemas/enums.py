"""State and error enumerations used across the client."""

from __future__ import annotations

from enum import StrEnum


class CredentialKind(StrEnum):
    """Persisted credential slots; values are the storage keys."""

    ACCESS = "access_token"
    REFRESH = "refresh_token"


class SessionState(StrEnum):
    """Derived authentication state of a session."""

    INITIALIZING = "initializing"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class AuthErrorKind(StrEnum):
    """Classification of login / register / profile failures."""

    INVALID_CREDENTIALS = "invalid_credentials"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"


class SearchPhase(StrEnum):
    """Lifecycle of the current search query."""

    IDLE = "idle"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class SearchErrorKind(StrEnum):
    """Classification of a failed search."""

    EMPTY_QUERY = "empty_query"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    UNEXPECTED = "unexpected"
