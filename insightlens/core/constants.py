"""
Centralised constants used across the client.

Keeping magic strings in one place makes it easy to rename
routes and keys, avoids silent typos, and keeps ``grep``
useful when debugging.
"""

from __future__ import annotations

# ── Auth routes (relative to API_URL) ───────────────────────────────────────

AUTH_LOGIN_PATH: str = "/auth/login/"
"""Exchange username/password for an access + refresh pair."""

AUTH_REGISTER_PATH: str = "/auth/register/"
"""Create an account.  Does not log the user in."""

AUTH_REFRESH_PATH: str = "/auth/token/refresh/"
"""Exchange a refresh credential for a new access credential."""

AUTH_PROFILE_PATH: str = "/auth/profile/"
"""Profile of the user owning the access credential."""

# Requests to these routes never carry a bearer header and a
# 401 from them never triggers a refresh.
AUTH_EXEMPT_PATHS: tuple[str, ...] = (
    AUTH_LOGIN_PATH,
    AUTH_REGISTER_PATH,
    AUTH_REFRESH_PATH,
)

# ── Credential store ────────────────────────────────────────────────────────

REDIS_PREFIX_CREDENTIALS: str = "credentials:"
"""Prefix for credential slots in the ``redis`` backend."""

# ── Token debugging ─────────────────────────────────────────────────────────

TOKEN_DEBUG_PREFIX_CHARS: int = 10
"""Characters of a credential revealed by ``token_debug_info``."""

# ── Search ──────────────────────────────────────────────────────────────────

URI_COMPONENT_SAFE_CHARS: str = "-_.!~*'()"
"""Characters left unescaped by JavaScript ``encodeURIComponent``."""

DEFAULT_PRODUCT_NAME: str = "Unknown Product"
"""Shown when the search service returns a product without a name."""
