"""Tests for the auth, search and product schemas."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from insightlens.schemas import (
    ApiProduct,
    AuthResponse,
    RefreshResponse,
    SearchApiResponse,
    SearchPhase,
    SearchQueryState,
    SearchResult,
    User,
)


class TestAuthSchemas:
    """Auth payloads."""

    def test_refresh_is_optional(self):
        resp = AuthResponse.model_validate({"access": "a1"})
        assert resp.refresh is None
        assert resp.user is None

    def test_access_is_required(self):
        with pytest.raises(ValidationError):
            AuthResponse.model_validate({"refresh": "r1"})

    def test_user_keeps_extra_fields(self):
        """Numeric ids become strings; unknown fields are kept."""
        user = User.model_validate({"id": 3, "username": "bob", "email": "b@x.io"})
        assert user.id == "3"
        assert user.model_extra == {"email": "b@x.io"}

    def test_refresh_rotation_optional(self):
        assert RefreshResponse.model_validate({"access": "a2"}).refresh is None


class TestSearchApiResponse:
    """Normalisation of the search payload."""

    def test_single_object_is_wrapped(self):
        resp = SearchApiResponse.model_validate({"products": {"id": 1, "name": "A"}})
        assert [p.id for p in resp.products] == ["1"]

    def test_list_is_kept_in_order(self):
        resp = SearchApiResponse.model_validate(
            {"products": [{"id": 2}, {"id": 1}], "total_count": 2},
        )
        assert [p.id for p in resp.products] == ["2", "1"]
        assert resp.total_count == 2

    def test_missing_products(self):
        resp = SearchApiResponse.model_validate({"message": "No products"})
        assert resp.products == []
        assert resp.message == "No products"

    def test_non_list_sequences_become_empty(self):
        """Malformed reviews / aspects do not fail the whole search."""
        product = ApiProduct.model_validate(
            {"id": 1, "reviews": "great", "extracted_aspects": None},
        )
        assert product.reviews == []
        assert product.extracted_aspects == []

    def test_product_without_id_is_invalid(self):
        with pytest.raises(ValidationError):
            SearchApiResponse.model_validate({"products": [{"name": "A"}]})


class TestSearchResult:
    """Tests for ``SearchResult.from_product``."""

    def test_defaults(self):
        result = SearchResult.from_product(ApiProduct(id="9"))
        assert result.product_name == "Unknown Product"
        assert result.summary == ""
        assert result.image is None
        assert result.price is None

    def test_copies_fields(self):
        product = ApiProduct(
            id="9",
            name="Kindle",
            summary_text="Light and sharp.",
            reviews=["ok"],
            extracted_aspects=["weight"],
            image="https://img.example/k.png",
            price=99.5,
        )
        result = SearchResult.from_product(product)
        assert result.product_name == "Kindle"
        assert result.summary == "Light and sharp."
        assert result.reviews == ["ok"]
        assert result.extracted_aspects == ["weight"]
        assert result.price == 99.5


class TestSearchQueryState:
    def test_initial_state(self):
        state = SearchQueryState()
        assert state.phase is SearchPhase.IDLE
        assert state.results == []
        assert state.error_kind is None
        assert state.expansion == {}
        assert state.loading is False
