from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from coparent.core.errors import NotFamilyMember
from coparent.core.security import Identity, decode_token, identity_from_claims
from coparent.database import get_db

bearer_scheme = HTTPBearer(auto_error=False)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_optional_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Identity | None:
    """Identity from the bearer token, or None when no token was sent.

    A token that is present but invalid is still rejected with 401.
    """
    if credentials is None:
        return None
    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise _credentials_exception()

    identity = identity_from_claims(payload)
    if identity is None:
        raise _credentials_exception()
    return identity


async def get_identity(
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
) -> Identity:
    """Extract and validate the caller's identity.

    Raises:
        HTTPException 401: If the token is missing or invalid.
    """
    if identity is None:
        raise _credentials_exception()
    return identity


async def get_current_user(
    identity: Annotated[Identity, Depends(get_identity)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Return the caller's User row, creating it on first sight."""
    # Import here to avoid circular imports (services -> models -> database)
    from coparent.services.membership_service import ensure_user

    return await ensure_user(db, identity)


def require_family_member():
    """Factory that returns a dependency checking family membership.

    Verifies the authenticated user is linked to the family identified by
    the ``family_id`` path parameter. Membership is determined by ``User.family_id``.

    Usage::

        @router.get("/families/{family_id}/children")
        async def list_children(
            family_id: str,
            user=Depends(require_family_member()),
        ):
            ...
    """

    async def _check_family_member(
        family_id: str,
        current_user=Depends(get_current_user),
    ):
        if current_user.family_id != family_id:
            raise NotFamilyMember()
        return current_user

    return _check_family_member
