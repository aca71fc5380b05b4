"""
Product details and aspect/sentiment aggregation.

``ProductService.get_product`` fetches one product, with its
per-aspect sentiment counts, through the authenticated session.
``summarize_aspects`` turns those counts into the totals and
orderings a details view needs.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from insightlens.core.config import Settings, get_settings
from insightlens.schemas.product import AspectSort, AspectSummary, ProductDetails
from insightlens.services.session import SessionManager

logger = logging.getLogger(__name__)


class ProductFetchError(Exception):
    """Raised when a product cannot be loaded.

    Attributes:
        status: HTTP status, or ``None`` when no response arrived.
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ProductNotFoundError(ProductFetchError):
    """Raised when the service has no product with the given id."""


class ProductService:
    """Loads single products from the search service."""

    def __init__(
        self,
        session: SessionManager,
        settings: Settings | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()

    def product_url(self, product_id: str | int) -> str:
        """Absolute URL of *product_id* under ``SEARCH_URL``."""
        base = self._settings.SEARCH_URL.rstrip("/")
        return f"{base}/{quote(str(product_id), safe='')}"

    async def get_product(self, product_id: str | int) -> ProductDetails:
        """Fetch *product_id* with its aspect sentiment counts.

        Raises:
            ProductNotFoundError: On 404.
            ProductFetchError: On any other failure, including a
                missing response or a malformed body.
        """
        try:
            response = await self._session.request("GET", self.product_url(product_id))
        except httpx.RequestError as exc:
            logger.error("Error fetching product %s: %s", product_id, exc)
            raise ProductFetchError(
                "Failed to load product details. Please try again later."
            ) from exc

        if response.status_code == 404:
            raise ProductNotFoundError(
                f"Product {product_id} not found",
                status=404,
            )
        if not response.is_success:
            logger.error(
                "Error fetching product %s: HTTP %s",
                product_id,
                response.status_code,
            )
            raise ProductFetchError(
                f"HTTP error! Status: {response.status_code}",
                status=response.status_code,
            )

        try:
            return ProductDetails.model_validate(response.json())
        except ValueError as exc:
            raise ProductFetchError(
                f"Malformed product payload for {product_id}",
                status=response.status_code,
            ) from exc


def summarize_aspects(
    product: ProductDetails,
    *,
    sort_by: AspectSort = "mentions",
    min_mentions: int = 0,
) -> AspectSummary:
    """Aggregate ``product.aspect_sentiment_counts``.

    Args:
        product: The product to summarise.
        sort_by: ``"mentions"`` orders aspects by total mentions,
            most first (ties keep payload order); ``"alphabetical"``
            orders them by name.
        min_mentions: Aspects with fewer total mentions are left
            out of ``aspects``.  Totals still include them.

    Returns:
        The aggregated ``AspectSummary``.
    """
    sentiment_totals: dict[str, int] = {}
    aspect_totals: dict[str, int] = {}

    for aspect, sentiments in product.aspect_sentiment_counts.items():
        aspect_totals[aspect] = sum(sentiments.values())
        for sentiment, count in sentiments.items():
            sentiment_totals[sentiment] = sentiment_totals.get(sentiment, 0) + count

    if sort_by == "alphabetical":
        aspects = sorted(aspect_totals)
    else:
        aspects = sorted(aspect_totals, key=lambda a: -aspect_totals[a])

    if min_mentions > 0:
        aspects = [a for a in aspects if aspect_totals[a] >= min_mentions]

    return AspectSummary(
        sentiment_totals=sentiment_totals,
        aspect_totals=aspect_totals,
        aspects=aspects,
        sentiments=list(sentiment_totals),
        total_mentions=sum(sentiment_totals.values()),
    )
