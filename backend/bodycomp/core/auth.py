"""Session tokens — HS256 JWTs carrying the account id and username."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from bodycomp.core.models import SessionClaims

JWT_ALGORITHM = "HS256"
DEFAULT_TOKEN_TTL = timedelta(hours=1)


def create_token(
    user_id: int,
    username: str,
    secret: str,
    expires_in: timedelta = DEFAULT_TOKEN_TTL,
    now: Optional[datetime] = None,
) -> str:
    """Create a signed token for the given account. Never put credentials in here."""
    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "username": username,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> Optional[SessionClaims]:
    """Validate signature and expiry. Tampered, expired and garbled tokens all give None."""
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
        return SessionClaims(
            user_id=int(payload["sub"]),
            username=str(payload.get("username", "")),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        return None
