"""Search payloads and the orchestrator's observable state."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from insightlens.core.constants import DEFAULT_PRODUCT_NAME
from insightlens.schemas.enums import SearchErrorKind, SearchPhase


def _as_list(v: Any) -> list[Any]:
    """Coerce anything that is not a list into an empty list."""
    return v if isinstance(v, list) else []


class ApiProduct(BaseModel):
    """One product as returned by the search service."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    name: str | None = None
    summary_text: str | None = None
    reviews: list[str] = Field(default_factory=list)
    extracted_aspects: list[str] = Field(default_factory=list)
    image: str | None = None
    price: float | None = None

    @field_validator("reviews", "extracted_aspects", mode="before")
    @classmethod
    def _coerce_sequence(cls, v: Any) -> list[Any]:
        """Missing or malformed sequences become empty lists."""
        return _as_list(v)


class SearchApiResponse(BaseModel):
    """Search service response.

    ``products`` arrives either as a single object or as a list;
    it is always normalised to a list here.
    """

    model_config = ConfigDict(extra="ignore")

    products: list[ApiProduct] = Field(default_factory=list)
    total_count: int | None = None
    message: str | None = None

    @field_validator("products", mode="before")
    @classmethod
    def _normalise_products(cls, v: Any) -> list[Any]:
        """Wrap a lone product and drop a missing one."""
        if v is None:
            return []
        if isinstance(v, dict):
            return [v]
        return v


class SearchResult(BaseModel):
    """A product as presented to the caller."""

    id: str
    product_name: str
    summary: str = ""
    reviews: list[str] = Field(default_factory=list)
    extracted_aspects: list[str] = Field(default_factory=list)
    image: str | None = None
    price: float | None = None

    @classmethod
    def from_product(cls, product: ApiProduct) -> SearchResult:
        """Build a result from the service's product shape."""
        return cls(
            id=product.id,
            product_name=product.name or DEFAULT_PRODUCT_NAME,
            summary=product.summary_text or "",
            reviews=list(product.reviews),
            extracted_aspects=list(product.extracted_aspects),
            image=product.image,
            price=product.price,
        )


class SearchQueryState(BaseModel):
    """Everything the presentation layer renders for a search."""

    raw_query: str = ""
    committed_query: str = ""
    results: list[SearchResult] = Field(default_factory=list)
    phase: SearchPhase = SearchPhase.IDLE
    error_kind: SearchErrorKind | None = None
    error_status: int | None = Field(
        default=None,
        description="HTTP status behind an ``UNEXPECTED`` error",
    )
    expansion: dict[str, bool] = Field(default_factory=dict)

    @property
    def loading(self) -> bool:
        """``True`` while a search is pending."""
        return self.phase is SearchPhase.PENDING
