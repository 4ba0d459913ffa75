"""Protected account endpoints — profile, self-deletion, statistics."""

from fastapi import APIRouter, Depends, Query, Request

from bodycomp.core.credentials import CredentialService
from bodycomp.core.models import SessionClaims
from bodycomp.routes.deps import current_claims, get_credentials

router = APIRouter(tags=["Users"])


@router.get("/profile")
async def profile(
    claims: SessionClaims = Depends(current_claims),
    credentials: CredentialService = Depends(get_credentials),
):
    """Return the caller's own non-secret account fields."""
    account = await credentials.profile(claims)
    return {"message": f"Welcome, {account.username}!", "user": account.public()}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    claims: SessionClaims = Depends(current_claims),
    credentials: CredentialService = Depends(get_credentials),
):
    """Delete the caller's own account."""
    await credentials.delete_account(claims, user_id)
    return {"message": "User deleted."}


@router.get("/stats")
async def stats(
    request: Request,
    limit: int = Query(100, ge=1, le=500),
    claims: SessionClaims = Depends(current_claims),
):
    """List the caller's body measurements, newest first."""
    entries = await request.app.state.statistics.for_user(claims.user_id, limit)
    return {"stats": [e.as_dict() for e in entries]}
