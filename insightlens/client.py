"""
Client facade wiring the session, search and product services.

``InsightLensClient`` is the one object a presentation layer
needs: it builds the credential store, the session manager, the
search orchestrator and the product service from a single
``Settings`` and tears them down together.

Usage::

    async with InsightLensClient(navigate=router.go) as client:
        await client.session.login("alice", "s3cret")
        client.search.perform_search("battery life")
        await client.search.wait_settled()
        print(client.search.state.results)
"""

from __future__ import annotations

import logging

import httpx

from insightlens.core.config import Settings, get_settings
from insightlens.services.credential_store import (
    CredentialStore,
    create_credential_store,
)
from insightlens.services.products import ProductService
from insightlens.services.search import SearchOrchestrator, StateListener
from insightlens.services.session import Navigator, SessionManager

logger = logging.getLogger(__name__)


class InsightLensClient:
    """One session's worth of collaborators.

    Args:
        settings: Client settings; defaults to ``get_settings()``.
        store: Credential store; built from ``CREDENTIAL_BACKEND``
            when omitted.
        navigate: Receives ``LOGIN_URL`` on irrecoverable auth
            failure.
        listener: Receives search state snapshots.
        transport: Optional ``httpx`` transport shared by every call.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: CredentialStore | None = None,
        navigate: Navigator | None = None,
        listener: StateListener | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._owns_store = store is None
        if store is None:
            store = create_credential_store(self.settings)
        self.store = store
        self.session = SessionManager(
            self.store,
            self.settings,
            navigate=navigate,
            transport=transport,
        )
        self.search = SearchOrchestrator(
            self.session,
            self.settings,
            listener=listener,
        )
        self.products = ProductService(self.session, self.settings)

    async def aclose(self) -> None:
        """Dispose the search pipeline and close the HTTP client."""
        await self.search.aclose()
        await self.session.aclose()
        if self._owns_store:
            self.store.close()
        logger.debug("InsightLens client closed")

    async def __aenter__(self) -> InsightLensClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
