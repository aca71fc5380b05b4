"""Product detail payload and its aspect/sentiment aggregation."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AspectSort = Literal["mentions", "alphabetical"]


class ProductDetails(BaseModel):
    """A single product with per-aspect sentiment counts."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    name: str
    summary_text: str = ""
    reviews: list[str] = Field(default_factory=list)
    extracted_aspects: list[str] = Field(default_factory=list)
    aspect_sentiment_counts: dict[str, dict[str, int]] = Field(
        default_factory=dict,
        description="aspect -> sentiment -> number of mentions",
    )


class AspectSummary(BaseModel):
    """Totals derived from ``aspect_sentiment_counts``."""

    sentiment_totals: dict[str, int] = Field(
        default_factory=dict,
        description="Mentions per sentiment across all aspects",
    )
    aspect_totals: dict[str, int] = Field(
        default_factory=dict,
        description="Mentions per aspect across all sentiments",
    )
    aspects: list[str] = Field(
        default_factory=list,
        description="Aspects kept by the threshold, in display order",
    )
    sentiments: list[str] = Field(
        default_factory=list,
        description="Every sentiment seen, in first-seen order",
    )
    total_mentions: int = 0
