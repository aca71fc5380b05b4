"""InsightLens: session and search client for the product review service."""

from insightlens.client import InsightLensClient
from insightlens.services.session import (
    AuthError,
    AuthNetworkError,
    AuthServerError,
    InvalidCredentialsError,
)

__all__ = [
    "AuthError",
    "AuthNetworkError",
    "AuthServerError",
    "InsightLensClient",
    "InvalidCredentialsError",
]
