"""Identity tokens.

Sign-in and sign-up belong to the external identity provider; this API
only verifies the bearer JWT it hands out and turns the claims into an
explicit :class:`Identity` that every core operation receives.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import jwt

from coparent.config import settings


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as reported by the identity provider."""

    user_id: str
    email: str | None = None
    display_name: str | None = None


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Sign an access token carrying ``data`` (``sub``, ``email``, ``name``)."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT. Raises ``jose.JWTError`` when invalid."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def identity_from_claims(payload: dict) -> Identity | None:
    user_id = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        return None
    return Identity(
        user_id=str(user_id),
        email=payload.get("email"),
        display_name=payload.get("name"),
    )
