"""End-to-end tests for the ``InsightLensClient`` facade."""

from __future__ import annotations

import httpx

from insightlens import InsightLensClient
from insightlens.schemas.enums import SearchPhase, SessionState
from insightlens.services.credential_store import CredentialStore
from insightlens.services.products import summarize_aspects
from tests.conftest import LOGIN, PROFILE, SEARCH, bearer, products

_USER = {"id": 1, "username": "alice"}


class TestInsightLensClient:
    """The facade wires one session through every service."""

    async def test_login_search_and_details(self, settings, router):
        """A full session: login, search, product details."""
        router.json("POST", LOGIN, 200, {"access": "a1", "refresh": "r1"})
        router.json("GET", PROFILE, 200, _USER)
        router.json("POST", SEARCH, 200, products({"id": 5, "name": "Kindle"}))
        router.json(
            "GET",
            "/api/product/5",
            200,
            {
                "id": 5,
                "name": "Kindle",
                "aspect_sentiment_counts": {"screen": {"positive": 3}},
            },
        )
        snapshots = []

        async with InsightLensClient(
            settings,
            store=CredentialStore(),
            listener=snapshots.append,
            transport=httpx.MockTransport(router),
        ) as client:
            await client.session.login("alice", "s3cret")
            assert await client.session.initialize() is SessionState.AUTHENTICATED

            client.search.perform_search("kindle")
            await client.search.wait_settled()
            first = client.search.state.results[0]
            product = await client.products.get_product(first.id)

        assert client.search.state.phase is SearchPhase.SUCCEEDED
        assert summarize_aspects(product).aspects == ["screen"]
        assert all(bearer(r) == "a1" for r in router.requests if r.url.path != LOGIN)
        assert snapshots[-1].phase is SearchPhase.SUCCEEDED

    async def test_close_disposes_search(self, settings, router):
        """Leaving the context stops pending searches."""
        router.json("POST", SEARCH, 200, products({"id": 5}))

        async with InsightLensClient(
            settings,
            store=CredentialStore(),
            transport=httpx.MockTransport(router),
        ) as client:
            client.search.perform_search("kindle")

        assert router.requests == []

    async def test_builds_store_from_settings(self, settings):
        """Without an explicit store, ``CREDENTIAL_BACKEND`` decides."""
        async with InsightLensClient(settings) as client:
            assert client.session.is_authenticated() is False
