"""
Token-based session management.

``SessionManager`` owns the ``httpx.AsyncClient`` every other
service talks through.  It attaches ``Authorization: Bearer``
to outgoing requests and, when the server answers 401, runs the
refresh protocol:

1. A 401 from the refresh route, or from a request that was
   already retried once, is terminal: both credentials are
   cleared and the navigation callback is sent to the login URL.
2. Otherwise the refresh credential is exchanged once.  The
   exchange is single-flight: concurrent 401s await the same
   ``asyncio.Task`` instead of starting their own, and a request
   whose credential was already replaced reuses the replacement.
3. On success the original request is re-issued exactly once
   with the new credential.
4. On failure the session ends as in (1).

Forced navigation happens at most once per granted session,
however many requests fail together.

The login, register and refresh routes are exempt: they never
carry a bearer header and their 401s never trigger a refresh.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

import httpx

from insightlens.core.config import Settings, get_settings, get_version
from insightlens.core.constants import (
    AUTH_EXEMPT_PATHS,
    AUTH_LOGIN_PATH,
    AUTH_PROFILE_PATH,
    AUTH_REFRESH_PATH,
    AUTH_REGISTER_PATH,
    TOKEN_DEBUG_PREFIX_CHARS,
)
from insightlens.core.metrics import record_session_expired, record_token_refresh
from insightlens.schemas.auth import (
    AuthResponse,
    LoginCredentials,
    RefreshResponse,
    TokenDebugInfo,
    User,
)
from insightlens.schemas.enums import AuthErrorKind, CredentialKind, SessionState
from insightlens.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

#: Receives the login URL on irrecoverable auth failure.  May be
#: a plain function or a coroutine function.
Navigator = Callable[[str], Any]


# ── Errors ──────────────────────────────────────────────────


class AuthError(Exception):
    """Base class for classified authentication failures.

    Attributes:
        kind: Taxonomy bucket of the failure.
        status: HTTP status, when a response was received.
    """

    kind: AuthErrorKind = AuthErrorKind.SERVER_ERROR

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class InvalidCredentialsError(AuthError):
    """The server rejected the credentials (4xx)."""

    kind = AuthErrorKind.INVALID_CREDENTIALS


class AuthServerError(AuthError):
    """The server failed or answered with an unusable payload."""

    kind = AuthErrorKind.SERVER_ERROR


class AuthNetworkError(AuthError):
    """No response was received."""

    kind = AuthErrorKind.NETWORK_ERROR


# ── Helpers ─────────────────────────────────────────────────


def _is_exempt(url: httpx.URL) -> bool:
    """Whether *url* targets a route that bypasses interception."""
    return url.path.endswith(AUTH_EXEMPT_PATHS)


def _is_refresh(url: httpx.URL) -> bool:
    return url.path.endswith(AUTH_REFRESH_PATH)


def _bearer_token(request: httpx.Request) -> str | None:
    """Return the bearer credential *request* was sent with."""
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer ") :]
    return None


def _error_detail(response: httpx.Response) -> str | None:
    """Pull ``message`` or ``detail`` out of an error body."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for field in ("message", "detail"):
        value = body.get(field)
        if isinstance(value, str) and value:
            return value
    return None


def _classify_failure(response: httpx.Response, default: str) -> AuthError:
    """Map a non-2xx auth response onto the ``AuthError`` taxonomy."""
    message = _error_detail(response) or default
    if 400 <= response.status_code < 500:
        return InvalidCredentialsError(message, status=response.status_code)
    return AuthServerError(message, status=response.status_code)


def _redact(token: str | None) -> str | None:
    if not token:
        return None
    return f"{token[:TOKEN_DEBUG_PREFIX_CHARS]}..."


# ── Session manager ─────────────────────────────────────────


class SessionManager:
    """Authenticated HTTP session over a ``CredentialStore``.

    Usage::

        session = SessionManager(store, settings, navigate=on_logout)
        await session.login("alice", "s3cret")
        user = await session.current_user()
        response = await session.request("POST", url, json=body)
        await session.aclose()

    Args:
        store: Where the access / refresh credentials live.
        settings: Client settings; defaults to ``get_settings()``.
        navigate: Called with ``LOGIN_URL`` when the session ends
            irrecoverably.
        transport: Optional ``httpx`` transport (tests inject a
            ``MockTransport``).
    """

    def __init__(
        self,
        store: CredentialStore,
        settings: Settings | None = None,
        *,
        navigate: Navigator | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store
        self._navigate = navigate
        self._client = httpx.AsyncClient(
            base_url=self._settings.API_URL,
            timeout=self._settings.REQUEST_TIMEOUT,
            headers={
                "Content-Type": "application/json",
                "User-Agent": f"insightlens-client/{get_version()}",
            },
            event_hooks={"request": [self._attach_credentials]},
            transport=transport,
        )
        self._user: User | None = None
        self._initializing = False
        self._refresh_task: asyncio.Task[str | None] | None = None
        # Incremented on every credential grant; navigation to login
        # happens once per epoch.
        self._epoch = 0
        self._expired_epoch = -1
        # Incremented on login and logout; a refresh that started
        # under an older value must not write its result.
        self._credentials_version = 0

    # ── Derived state ───────────────────────────────────────

    @property
    def state(self) -> SessionState:
        """Current ``SessionState``, derived from credentials and user."""
        if self._initializing:
            return SessionState.INITIALIZING
        if self._user is not None and self.is_authenticated():
            return SessionState.AUTHENTICATED
        return SessionState.ANONYMOUS

    @property
    def user(self) -> User | None:
        """The last fetched profile, if the session is authenticated."""
        return self._user if self.is_authenticated() else None

    def is_authenticated(self) -> bool:
        """Whether an access credential is stored.

        A UI hint only; the server stays authoritative.
        """
        return bool(self._store.get(CredentialKind.ACCESS))

    def token_debug_info(self) -> TokenDebugInfo:
        """Describe the stored credentials without revealing them."""
        access = self._store.get(CredentialKind.ACCESS)
        refresh = self._store.get(CredentialKind.REFRESH)
        return TokenDebugInfo(
            has_access_token=bool(access),
            has_refresh_token=bool(refresh),
            access_token_start=_redact(access),
            refresh_token_start=_redact(refresh),
        )

    # ── Auth operations ─────────────────────────────────────

    async def login(self, username: str, password: str) -> AuthResponse:
        """Exchange username / password for a credential pair.

        Stores the access credential, and the refresh credential
        only when the payload carries one.

        Raises:
            InvalidCredentialsError: On a 4xx answer.
            AuthServerError: On a 5xx answer or a payload without
                ``access``.
            AuthNetworkError: When no response was received.
        """
        logger.info("Attempting login for %s", username)
        response = await self._post_credentials(
            AUTH_LOGIN_PATH,
            LoginCredentials(username=username, password=password),
            default_error="Login failed",
        )
        payload = self._parse_auth_response(response)

        self._store.set(CredentialKind.ACCESS, payload.access)
        if payload.refresh:
            self._store.set(CredentialKind.REFRESH, payload.refresh)
        else:
            self._store.clear(CredentialKind.REFRESH)
        self._epoch += 1
        self._credentials_version += 1
        self._user = payload.user
        logger.info(
            "Login succeeded for %s (refresh credential %s)",
            username,
            "stored" if payload.refresh else "absent",
        )
        return payload

    async def register(self, username: str, password: str) -> AuthResponse:
        """Create an account.  Stores nothing; the caller logs in next.

        Raises:
            InvalidCredentialsError: On a 4xx answer.
            AuthServerError: On a 5xx answer or an unusable payload.
            AuthNetworkError: When no response was received.
        """
        response = await self._post_credentials(
            AUTH_REGISTER_PATH,
            LoginCredentials(username=username, password=password),
            default_error="Registration failed",
        )
        logger.info("Registered %s", username)
        return self._parse_auth_response(response)

    async def current_user(self) -> User:
        """Fetch the profile behind the stored access credential.

        Expiry is handled by the interception protocol; a 401 that
        survives it means the session is gone.

        Raises:
            InvalidCredentialsError: On 401 / 403.
            AuthServerError: On any other non-2xx or a bad payload.
            AuthNetworkError: When no response was received.
        """
        try:
            response = await self.request("GET", AUTH_PROFILE_PATH)
        except httpx.RequestError as exc:
            logger.error("Failed to fetch user profile: %s", exc)
            raise AuthNetworkError("Failed to fetch user profile") from exc

        if response.status_code in (401, 403):
            raise InvalidCredentialsError(
                _error_detail(response) or "Not authenticated",
                status=response.status_code,
            )
        if not response.is_success:
            raise AuthServerError(
                _error_detail(response) or "Failed to fetch user profile",
                status=response.status_code,
            )
        try:
            user = User.model_validate(response.json())
        except ValueError as exc:
            raise AuthServerError(
                "Invalid profile payload",
                status=response.status_code,
            ) from exc

        self._user = user
        return user

    async def initialize(self) -> SessionState:
        """Restore a persisted session on start-up.

        With an access credential stored, fetches the profile while
        reporting ``INITIALIZING``; any ``AuthError`` logs the
        session out.  Without one, the session is ``ANONYMOUS``.
        """
        if not self.is_authenticated():
            return self.state

        self._initializing = True
        try:
            await self.current_user()
        except AuthError as exc:
            logger.warning("Stored session could not be restored: %s", exc)
            self.logout()
        finally:
            self._initializing = False
        return self.state

    def logout(self) -> None:
        """Forget both credentials and the cached profile."""
        self._store.clear_all()
        self._user = None
        self._credentials_version += 1
        logger.info("Logged out")

    # ── Authenticated requests ──────────────────────────────

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request, refreshing once on 401.

        Args:
            method: HTTP method.
            url: Path relative to ``API_URL`` or an absolute URL.
            **kwargs: Forwarded to ``httpx.AsyncClient.request``.

        Returns:
            The final response.  Non-2xx answers are returned, not
            raised; the caller classifies them.

        Raises:
            httpx.RequestError: When no response was received.
        """
        response = await self._client.request(method, url, **kwargs)
        if response.status_code != 401:
            return response

        if _is_refresh(response.request.url):
            await self._expire_session("refresh route rejected")
            return response
        if _is_exempt(response.request.url):
            return response

        access = await self._refreshed_access(_bearer_token(response.request))
        if access is None:
            return response

        logger.debug("Retrying %s %s after refresh", method, response.request.url.path)
        retried = await self._client.request(method, url, **kwargs)
        if retried.status_code == 401:
            await self._expire_session("request rejected after refresh")
        return retried

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> SessionManager:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ── Internals ───────────────────────────────────────────

    async def _attach_credentials(self, request: httpx.Request) -> None:
        """``httpx`` request hook adding the bearer header.

        The store is read synchronously on the event loop.  The
        memory and disk backends answer locally; a remote Redis
        backend adds one round trip per request.
        """
        if _is_exempt(request.url):
            return
        access = self._store.get(CredentialKind.ACCESS)
        if access:
            request.headers["Authorization"] = f"Bearer {access}"

    async def _post_credentials(
        self,
        path: str,
        credentials: LoginCredentials,
        *,
        default_error: str,
    ) -> httpx.Response:
        try:
            response = await self._client.post(path, json=credentials.model_dump())
        except httpx.RequestError as exc:
            logger.error("%s: no response from %s: %s", default_error, path, exc)
            raise AuthNetworkError("Network error occurred") from exc

        if not response.is_success:
            error = _classify_failure(response, default_error)
            logger.warning(
                "%s (status %s): %s",
                default_error,
                response.status_code,
                error,
            )
            raise error
        return response

    @staticmethod
    def _parse_auth_response(response: httpx.Response) -> AuthResponse:
        try:
            return AuthResponse.model_validate(response.json())
        except ValueError as exc:
            logger.error("Invalid auth response format")
            raise AuthServerError(
                "Invalid response format - missing access token",
                status=response.status_code,
            ) from exc

    async def _refreshed_access(self, stale: str | None) -> str | None:
        """Return a fresh access credential, refreshing at most once.

        Args:
            stale: The credential the failed request carried.

        Returns:
            The new access credential, or ``None`` if the session
            has ended.
        """
        current = self._store.get(CredentialKind.ACCESS)
        if current is not None and current != stale:
            return current

        if self._refresh_task is None:
            self._refresh_task = asyncio.create_task(self._run_refresh())
        # Shielded so a cancelled caller leaves the shared refresh running.
        return await asyncio.shield(self._refresh_task)

    async def _run_refresh(self) -> str | None:
        version = self._credentials_version
        try:
            refresh = self._store.get(CredentialKind.REFRESH)
            if not refresh:
                await self._expire_session("no refresh credential")
                return None

            logger.info("Access credential rejected; refreshing")
            try:
                response = await self._client.post(
                    AUTH_REFRESH_PATH,
                    json={"refresh": refresh},
                )
            except httpx.RequestError as exc:
                if self._superseded(version):
                    return None
                logger.error("Token refresh failed: %s", exc)
                record_token_refresh(success=False)
                await self._expire_session("refresh unreachable")
                return None

            if self._superseded(version):
                return None

            if not response.is_success:
                logger.error("Token refresh failed (status %s)", response.status_code)
                record_token_refresh(success=False)
                await self._expire_session("refresh rejected")
                return None

            try:
                payload = RefreshResponse.model_validate(response.json())
            except ValueError:
                logger.error("Token refresh returned no access credential")
                record_token_refresh(success=False)
                await self._expire_session("refresh payload invalid")
                return None

            self._store.set(CredentialKind.ACCESS, payload.access)
            if payload.refresh:
                self._store.set(CredentialKind.REFRESH, payload.refresh)
            self._epoch += 1
            record_token_refresh(success=True)
            logger.info("Access credential refreshed")
            return payload.access
        finally:
            self._refresh_task = None

    def _superseded(self, version: int) -> bool:
        """Whether a login or logout happened since *version* was read."""
        if version == self._credentials_version:
            return False
        logger.info("Discarding refresh result; session changed while refreshing")
        return True

    async def _expire_session(self, reason: str) -> None:
        """End the session and navigate to login once per epoch."""
        self.logout()
        if self._expired_epoch == self._epoch:
            return
        self._expired_epoch = self._epoch
        record_session_expired()

        login_url = self._settings.LOGIN_URL
        logger.warning("Session expired (%s); redirecting to %s", reason, login_url)
        if self._navigate is None:
            return
        try:
            result = self._navigate(login_url)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Navigation to %s failed", login_url)
