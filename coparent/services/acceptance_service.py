"""Acceptance Service.

Turns an invite link into a membership. One attempt moves through

    unauthenticated -> resolving -> accepting -> accepted
                                              \\-> failed (with reason)

The accepting phase is a single unit of work: the membership row, the
user's family link and the invite's switch to ``accepted`` are committed
together or not at all. Replaying an acceptance that already went through
for the same user is answered with ``accepted`` instead of an error.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urlencode

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from coparent.core.errors import AlreadyAccepted, CoParentError, InviteInvalid, InviteNotFound
from coparent.core.security import Identity
from coparent.models.invitation import INVITE_ACCEPTED, INVITE_PENDING, FamilyInvite
from coparent.schemas.invitation import AcceptanceState
from coparent.services.invitation_service import find_by_token
from coparent.services.membership_service import ensure_user, link_member, link_user_to_family

logger = logging.getLogger(__name__)


@dataclass
class AcceptanceOutcome:
    state: AcceptanceState
    family_id: str
    token: str
    role: str | None = None
    replayed: bool = False
    redirect_to: str | None = None
    error: CoParentError | None = None


def signup_redirect(family_id: str, token: str) -> str:
    """Where to send a caller without identity, keeping the invite parameters."""
    accept_path = f"/accept-invite?{urlencode({'family': family_id, 'token': token})}"
    return "/invite-signup?" + urlencode(
        {"family": family_id, "invite": token, "next": accept_path}
    )


async def _consume(
    db: AsyncSession,
    invite: FamilyInvite,
    token: str,
    user_id: str,
) -> bool:
    """Flip the invite to accepted if it is still pending under ``token``."""
    result = await db.execute(
        update(FamilyInvite)
        .where(
            FamilyInvite.family_id == invite.family_id,
            FamilyInvite.email_key == invite.email_key,
            FamilyInvite.token == token,
            FamilyInvite.status == INVITE_PENDING,
        )
        .values(
            status=INVITE_ACCEPTED,
            accepted_by=user_id,
            accepted_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    await db.refresh(invite)
    return True


def _resolved_outcome(
    invite: FamilyInvite,
    identity: Identity,
    family_id: str,
    token: str,
) -> AcceptanceOutcome | None:
    """Outcome for an invite that is no longer pending, else None."""
    if invite.status == INVITE_PENDING:
        return None
    if invite.accepted_by == identity.user_id:
        return AcceptanceOutcome(
            AcceptanceState.ACCEPTED, family_id, token,
            role=invite.role_suggested, replayed=True,
        )
    return AcceptanceOutcome(
        AcceptanceState.FAILED, family_id, token, error=AlreadyAccepted(),
    )


async def accept_invite(
    db: AsyncSession,
    identity: Identity | None,
    family_id: str,
    token: str,
) -> AcceptanceOutcome:
    """Run one acceptance attempt and report where it ended.

    Failures are reported in the outcome (``state=failed``, ``error`` set)
    after the session has been rolled back, so nothing of a failed attempt
    is ever committed. Retrying from the start is always safe.

    A token that matches no invite fails with InviteNotFound (404), the
    narrower InviteInvalid that the preview endpoint reports too; a token
    whose invite was rotated away mid-acceptance fails with InviteInvalid (410).
    """
    # Unauthenticated
    if identity is None:
        return AcceptanceOutcome(
            AcceptanceState.UNAUTHENTICATED, family_id, token,
            redirect_to=signup_redirect(family_id, token),
        )

    # Resolving
    invite = await find_by_token(db, family_id, token)
    if invite is None:
        return AcceptanceOutcome(
            AcceptanceState.FAILED, family_id, token, error=InviteNotFound(),
        )
    done = _resolved_outcome(invite, identity, family_id, token)
    if done is not None:
        return done

    # Accepting
    try:
        user = await ensure_user(db, identity)
        await link_member(
            db, family_id, user.id, invite.role_suggested, user.display_name,
        )
        await link_user_to_family(db, user, family_id, invite.role_suggested)

        if not await _consume(db, invite, token, user.id):
            # Someone consumed or rotated the token since we resolved it
            await db.rollback()
            current = await find_by_token(db, family_id, token)
            if current is None:
                raise InviteInvalid()
            done = _resolved_outcome(current, identity, family_id, token)
            if done is not None:
                return done
            raise InviteInvalid()
    except CoParentError as exc:
        await db.rollback()
        logger.warning(
            "Invite acceptance for family %s by %s failed: %s",
            family_id, identity.user_id, exc.code,
        )
        return AcceptanceOutcome(AcceptanceState.FAILED, family_id, token, error=exc)

    logger.info("User %s joined family %s as %s", user.id, family_id, invite.role_suggested)
    return AcceptanceOutcome(
        AcceptanceState.ACCEPTED, family_id, token, role=invite.role_suggested,
    )
