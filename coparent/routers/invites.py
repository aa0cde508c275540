"""Invites router.

Public side of an invitation link: preview it before signing in, and
accept it once an identity is available.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from coparent.core.dependencies import get_optional_identity
from coparent.core.rate_limit import INVITE_PUBLIC_LIMIT, limiter
from coparent.core.security import Identity
from coparent.database import get_db
from coparent.schemas.invitation import (
    AcceptanceResponse,
    AcceptanceState,
    AcceptInviteRequest,
    InvitePreviewResponse,
)
from coparent.services.acceptance_service import accept_invite
from coparent.services.invitation_service import lookup_invite

router = APIRouter(prefix="/invites", tags=["Invites"])


@router.get("/preview", response_model=InvitePreviewResponse)
@limiter.limit(INVITE_PUBLIC_LIMIT)
async def preview_invitation(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    family: str = Query(...),
    token: str = Query(...),
):
    """Show whom a pending invite is for, so sign-up can prefill the email."""
    invite = await lookup_invite(db, family, token)
    return InvitePreviewResponse(
        family_id=invite.family_id,
        email=invite.email,
        role_suggested=invite.role_suggested,
    )


@router.post(
    "/accept",
    response_model=AcceptanceResponse,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": AcceptanceResponse}},
)
@limiter.limit(INVITE_PUBLIC_LIMIT)
async def accept_invitation(
    request: Request,
    body: AcceptInviteRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    identity: Identity | None = Depends(get_optional_identity),
):
    """Accept an invite for the calling identity.

    Without a bearer token the response is 401 and carries the sign-up
    redirect that brings the caller back here with the same parameters.
    Accepting twice as the same user is answered like the first time.
    """
    outcome = await accept_invite(db, identity, body.family, body.token)

    if outcome.state == AcceptanceState.FAILED:
        raise outcome.error

    response = AcceptanceResponse(
        state=outcome.state,
        family_id=outcome.family_id,
        role=outcome.role,
        replayed=outcome.replayed,
        redirect_to=outcome.redirect_to,
    )
    if outcome.state == AcceptanceState.UNAUTHENTICATED:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=response.model_dump(mode="json"),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return response
