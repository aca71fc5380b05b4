"""
Pydantic models and enumerations for the InsightLens client.

All data contracts live here so that the session manager, the
search orchestrator and the product service can import
lightweight schema objects without circular dependencies.

Every public model is re-exported from this ``__init__`` so that
``from insightlens.schemas import SearchResult`` works.
"""

from insightlens.schemas.auth import (
    AuthResponse,
    LoginCredentials,
    RefreshResponse,
    TokenDebugInfo,
    User,
)
from insightlens.schemas.enums import (
    AuthErrorKind,
    CredentialKind,
    SearchErrorKind,
    SearchPhase,
    SessionState,
)
from insightlens.schemas.product import AspectSort, AspectSummary, ProductDetails
from insightlens.schemas.search import (
    ApiProduct,
    SearchApiResponse,
    SearchQueryState,
    SearchResult,
)

__all__ = [
    "ApiProduct",
    "AspectSort",
    "AspectSummary",
    "AuthErrorKind",
    "AuthResponse",
    "CredentialKind",
    "LoginCredentials",
    "ProductDetails",
    "RefreshResponse",
    "SearchApiResponse",
    "SearchErrorKind",
    "SearchPhase",
    "SearchQueryState",
    "SearchResult",
    "SessionState",
    "TokenDebugInfo",
    "User",
]
