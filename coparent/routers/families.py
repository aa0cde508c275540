"""Families router.

Endpoints for creating a family, viewing and updating its settings,
listing members and managing invitations.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from coparent.core.dependencies import get_identity, require_family_member
from coparent.core.rate_limit import INVITE_ISSUE_LIMIT, family_key, limiter
from coparent.core.security import Identity
from coparent.database import get_db
from coparent.models.user import User
from coparent.schemas.family import (
    FamilyCreate,
    FamilyResponse,
    FamilyUpdate,
    MembershipResponse,
)
from coparent.schemas.invitation import (
    InvitationCreate,
    InvitationResponse,
    InviteLinkResponse,
)
from coparent.services import invitation_service, membership_service

router = APIRouter(prefix="/families", tags=["Families"])


@router.post("", response_model=FamilyResponse, status_code=status.HTTP_201_CREATED)
async def create_family(
    body: FamilyCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    identity: Identity = Depends(get_identity),
):
    """Create a family and link the caller to it as its first parent."""
    return await membership_service.create_family(
        db, identity, body.name, body.timezone,
    )


@router.get("/{family_id}", response_model=FamilyResponse)
async def get_family(
    family_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Get family details. Requires the caller to be a family member."""
    return await membership_service.get_family(db, family_id)


@router.put("/{family_id}", response_model=FamilyResponse)
async def update_family(
    family_id: str,
    body: FamilyUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Rename the family or change its timezone."""
    family = await membership_service.get_family(db, family_id)
    return await membership_service.update_family(
        db, family, name=body.name, timezone=body.timezone,
    )


@router.get("/{family_id}/members", response_model=list[MembershipResponse])
async def list_family_members(
    family_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """List all members of a family."""
    return await membership_service.list_members(db, family_id)


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

@router.post(
    "/{family_id}/invites",
    response_model=InviteLinkResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(INVITE_ISSUE_LIMIT, key_func=family_key)
async def create_invitation(
    request: Request,
    family_id: str,
    body: InvitationCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Invite the co-parent by email and return a shareable link.

    Fails with 409 while an invite for the address is pending, unless
    ``reissue`` is set to rotate its token.
    """
    issued = await invitation_service.issue_invite(
        db,
        family_id,
        body.email,
        body.role_suggested,
        current_user.id,
        reissue=body.reissue,
    )
    return InviteLinkResponse(
        family_id=family_id,
        email=issued.invite.email,
        role_suggested=issued.invite.role_suggested,
        version=issued.invite.version,
        token=issued.token,
        link=issued.link,
    )


@router.get("/{family_id}/invites", response_model=list[InvitationResponse])
async def list_invitations(
    family_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """List the family's invites, newest first. Tokens are not exposed."""
    return await invitation_service.list_invites(db, family_id)


@router.delete(
    "/{family_id}/invites/{email_key}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_invitation(
    family_id: str,
    email_key: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Revoke a pending invite."""
    await invitation_service.revoke_invite(db, family_id, email_key)
    return None
