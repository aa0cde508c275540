"""Invitation Service.

Issues and resolves single-use invite tokens for the second parent.

Each family holds at most one invite per normalized email: the row is
keyed by the SHA-256 of the address, so inviting the same person again
rewrites that row (new token, ``version + 1``) instead of adding another.
Two near-simultaneous re-invites may both hand out a link; only the token
written last stays consumable.
"""

import hashlib
import logging
import secrets
from typing import NamedTuple
from urllib.parse import urlencode

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coparent.config import settings
from coparent.core.errors import AlreadyPending, InviteInvalid, InviteNotFound
from coparent.models.invitation import INVITE_PENDING, FamilyInvite
from coparent.schemas.schedule_rule import ParentRole

logger = logging.getLogger(__name__)


class InviteLink(NamedTuple):
    invite: FamilyInvite
    token: str
    link: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


def email_key(email: str) -> str:
    """Deterministic storage key for an address (SHA-256 of the normalized form)."""
    return hashlib.sha256(normalize_email(email).encode()).hexdigest()


def generate_token() -> str:
    """Random invite token, ``INVITE_TOKEN_BYTES`` bytes of entropy, hex encoded."""
    return secrets.token_hex(settings.INVITE_TOKEN_BYTES)


def build_invite_link(family_id: str, token: str, base_url: str | None = None) -> str:
    base = (base_url or settings.INVITE_BASE_URL).rstrip("/")
    return f"{base}/accept-invite?{urlencode({'family': family_id, 'token': token})}"


async def issue_invite(
    db: AsyncSession,
    family_id: str,
    email: str,
    role_suggested: ParentRole | str,
    creator_id: str,
    reissue: bool = False,
) -> InviteLink:
    """Create (or rotate) the invite for ``email`` and return its link.

    A pending invite for the same address fails with AlreadyPending unless
    ``reissue`` is set; rotating is an explicit caller decision. An absent
    or already accepted invite is (re)written as pending with a new token.
    """
    normalized = normalize_email(email)
    key = email_key(normalized)
    token = generate_token()

    invite = await db.get(FamilyInvite, (family_id, key))

    if invite is None:
        invite = FamilyInvite(
            family_id=family_id,
            email_key=key,
            email=normalized,
            role_suggested=str(role_suggested),
            token=token,
            status=INVITE_PENDING,
            version=1,
            created_by=creator_id,
        )
        db.add(invite)
        try:
            await db.flush()
        except IntegrityError:
            # A concurrent request created the row for this address first
            logger.warning("Concurrent invite for family %s collided on %s", family_id, key)
            raise AlreadyPending()
    else:
        if invite.status == INVITE_PENDING and not reissue:
            raise AlreadyPending()
        invite.email = normalized
        invite.role_suggested = str(role_suggested)
        invite.token = token
        invite.status = INVITE_PENDING
        invite.version = FamilyInvite.version + 1
        invite.created_by = creator_id
        invite.accepted_by = None
        invite.accepted_at = None
        await db.flush()

    await db.refresh(invite)
    logger.info(
        "Invite v%d issued for family %s by %s", invite.version, family_id, creator_id,
    )
    return InviteLink(invite=invite, token=token, link=build_invite_link(family_id, token))


async def find_by_token(
    db: AsyncSession,
    family_id: str,
    token: str,
) -> FamilyInvite | None:
    """Equality scan on ``token`` within one family, any status."""
    if not family_id or not token:
        return None
    result = await db.execute(
        select(FamilyInvite).where(
            FamilyInvite.family_id == family_id,
            FamilyInvite.token == token,
        )
    )
    return result.scalars().first()


async def lookup_invite(db: AsyncSession, family_id: str, token: str) -> FamilyInvite:
    """Return the pending invite for ``token``.

    Raises:
        InviteNotFound: No invite of this family carries the token.
        InviteInvalid: The invite exists but is no longer pending.
    """
    invite = await find_by_token(db, family_id, token)
    if invite is None:
        raise InviteNotFound()
    if invite.status != INVITE_PENDING:
        raise InviteInvalid()
    return invite


async def list_invites(db: AsyncSession, family_id: str) -> list[FamilyInvite]:
    result = await db.execute(
        select(FamilyInvite)
        .where(FamilyInvite.family_id == family_id)
        .order_by(FamilyInvite.created_at.desc())
    )
    return list(result.scalars().all())


async def revoke_invite(db: AsyncSession, family_id: str, key: str) -> None:
    """Delete a pending invite so its token can no longer be used."""
    result = await db.execute(
        delete(FamilyInvite).where(
            FamilyInvite.family_id == family_id,
            FamilyInvite.email_key == key,
            FamilyInvite.status == INVITE_PENDING,
        )
    )
    if result.rowcount == 0:
        raise InviteNotFound("No pending invite for this address")
    logger.info("Invite %s of family %s revoked", key, family_id)
