"""
Durable storage for the access and refresh credentials.

The store is a dumb pair of string slots keyed ``access_token``
and ``refresh_token``.  It does no validation and keeps no expiry
metadata; deciding whether a credential is still good is the
server's job.

**Backends**

===============  ==========================================
``disk``         Default.  ``diskcache`` directory that
                 survives process restarts.
``redis``        Shared keyspace under ``credentials:``.
``memory``       Process-local.  Tests and one-off scripts.
===============  ==========================================

Select via the ``CREDENTIAL_BACKEND`` setting.  Unlike a cache,
a failed write here is fatal: backend errors propagate.
"""

from __future__ import annotations

import contextlib
import logging

from insightlens.core.config import Settings
from insightlens.core.constants import REDIS_PREFIX_CREDENTIALS
from insightlens.schemas.enums import CredentialKind

logger = logging.getLogger(__name__)


# ── Backend protocol ────────────────────────────────────────


class _CredentialBackend:
    """Minimal protocol that concrete backends implement."""

    def get(self, key: str) -> str | None:
        """Return the stored value or ``None``."""
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        raise NotImplementedError

    def delete(self, key: str) -> None:
        """Remove *key*; a missing key is not an error."""
        raise NotImplementedError

    def close(self) -> None:
        """Release resources (optional)."""


# ── Memory backend ──────────────────────────────────────────


class _MemoryBackend(_CredentialBackend):
    """Dict-backed slots that live as long as the process."""

    def __init__(self) -> None:
        self._slots: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._slots.get(key)

    def set(self, key: str, value: str) -> None:
        self._slots[key] = value

    def delete(self, key: str) -> None:
        self._slots.pop(key, None)


# ── Disk backend ────────────────────────────────────────────


class _DiskBackend(_CredentialBackend):
    """``diskcache``-backed slots that survive restarts.

    The directory comes from ``CREDENTIAL_STORE_DIR``.
    """

    def __init__(self, directory: str) -> None:
        import diskcache

        self._cache = diskcache.Cache(directory)
        logger.info(
            "Disk credential store opened at %s",
            directory,
        )

    def get(self, key: str) -> str | None:
        return self._cache.get(key)

    def set(self, key: str, value: str) -> None:
        self._cache.set(key, value)

    def delete(self, key: str) -> None:
        self._cache.delete(key)

    def close(self) -> None:
        """Close the underlying diskcache store."""
        with contextlib.suppress(Exception):
            self._cache.close()


# ── Redis backend ───────────────────────────────────────────


class _RedisBackend(_CredentialBackend):
    """Redis-backed slots using the shared pool.

    Values are stored as plain strings under the
    ``credentials:`` prefix, without TTL.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def get(self, key: str) -> str | None:
        from insightlens.core.redis import get_redis_client

        client = get_redis_client(self._settings)
        try:
            return client.get(f"{REDIS_PREFIX_CREDENTIALS}{key}")
        finally:
            client.close()

    def set(self, key: str, value: str) -> None:
        from insightlens.core.redis import get_redis_client

        client = get_redis_client(self._settings)
        try:
            client.set(f"{REDIS_PREFIX_CREDENTIALS}{key}", value)
        finally:
            client.close()

    def delete(self, key: str) -> None:
        from insightlens.core.redis import get_redis_client

        client = get_redis_client(self._settings)
        try:
            client.delete(f"{REDIS_PREFIX_CREDENTIALS}{key}")
        finally:
            client.close()


# ── Facade ──────────────────────────────────────────────────


class CredentialStore:
    """Access / refresh credential slots over a pluggable backend.

    Usage::

        store = create_credential_store(get_settings())
        store.set(CredentialKind.ACCESS, token)
        token = store.get(CredentialKind.ACCESS)
        store.clear_all()
    """

    def __init__(self, backend: _CredentialBackend | None = None) -> None:
        self._backend = backend if backend is not None else _MemoryBackend()

    def get(self, kind: CredentialKind) -> str | None:
        """Return the stored credential of *kind*, if any."""
        return self._backend.get(kind.value)

    def set(self, kind: CredentialKind, value: str) -> None:
        """Store *value* as the credential of *kind*."""
        self._backend.set(kind.value, value)
        logger.debug("Stored %s", kind.value)

    def clear(self, kind: CredentialKind) -> None:
        """Forget the credential of *kind*."""
        self._backend.delete(kind.value)

    def clear_all(self) -> None:
        """Forget both credentials."""
        for kind in CredentialKind:
            self._backend.delete(kind.value)
        logger.debug("Cleared all credentials")

    def close(self) -> None:
        """Release the backend."""
        self._backend.close()


def create_credential_store(settings: Settings) -> CredentialStore:
    """Build a ``CredentialStore`` for ``settings.CREDENTIAL_BACKEND``.

    Args:
        settings: Client settings.

    Returns:
        A store over the ``disk``, ``redis`` or ``memory`` backend.
    """
    backend_name = settings.CREDENTIAL_BACKEND
    if backend_name == "memory":
        backend: _CredentialBackend = _MemoryBackend()
    elif backend_name == "redis":
        backend = _RedisBackend(settings)
    else:
        backend = _DiskBackend(settings.CREDENTIAL_STORE_DIR)
    logger.info("Credential store initialised (backend=%s)", backend_name)
    return CredentialStore(backend)
