"""Shared route dependencies."""

from fastapi import Request

from bodycomp.core.credentials import CredentialService
from bodycomp.core.models import SessionClaims
from bodycomp.errors import AuthenticationError


def get_credentials(request: Request) -> CredentialService:
    return request.app.state.credentials


def current_claims(request: Request) -> SessionClaims:
    """Claims placed on the request by BearerAuthMiddleware."""
    claims = getattr(request.state, "claims", None)
    if claims is None:
        raise AuthenticationError("No token provided.")
    return claims
