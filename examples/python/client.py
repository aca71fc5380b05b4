"""
InsightLens client: command-line example.

Demonstrates:
  1. Log in (or restore a persisted session).
  2. Run a debounced search and print the results.
  3. Load one product and print its aspect summary.

Requirements:
  pip install -e .

Usage:
  API_URL=http://localhost:8000/api python examples/python/client.py \
      alice s3cret "battery life"
"""

from __future__ import annotations

import asyncio
import sys

from insightlens import AuthError, InsightLensClient
from insightlens.core.config import get_settings
from insightlens.logging_config import setup_logging
from insightlens.schemas import SessionState
from insightlens.services.products import ProductFetchError, summarize_aspects


def on_session_expired(login_url: str) -> None:
    """Stand-in for a router redirect."""
    print(f"  session expired, please log in again at {login_url}")


async def main(username: str, password: str, query: str) -> int:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    async with InsightLensClient(settings, navigate=on_session_expired) as client:
        print("\n── Session ──────────────────────────────────────")
        if await client.session.initialize() is not SessionState.AUTHENTICATED:
            try:
                await client.session.login(username, password)
            except AuthError as exc:
                print(f"  login failed ({exc.kind}): {exc}")
                return 1
        print(f"  {client.session.token_debug_info().model_dump()}")

        print("\n── Search ───────────────────────────────────────")
        client.search.perform_search(query)
        await client.search.wait_settled()
        state = client.search.state
        if client.search.error_message:
            print(f"  {client.search.error_message}")
            return 1
        for result in state.results:
            print(f"  [{result.id}] {result.product_name}: {result.summary}")
            for review in client.search.visible_reviews(result):
                print(f"      - {review}")

        print("\n── Product details ──────────────────────────────")
        try:
            product = await client.products.get_product(state.results[0].id)
        except ProductFetchError as exc:
            print(f"  {exc}")
            return 1
        summary = summarize_aspects(product)
        for aspect in summary.aspects:
            print(f"  {aspect}: {summary.aspect_totals[aspect]} mentions")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(*sys.argv[1:4])))
