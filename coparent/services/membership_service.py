"""Membership Service.

Owns the invariant "a user belongs to at most one family".

A user's ``family_id`` only ever moves from NULL to a single value. Every
write that sets it is a conditional ``UPDATE ... WHERE family_id IS NULL``
whose row count is checked, so two concurrent requests cannot both link
the same user. Callers run each operation inside one session (the unit of
work) and commit or roll back as a whole.
"""

import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from coparent.core.errors import (
    AlreadyLinked,
    AlreadyLinkedElsewhere,
    FamilyNotFound,
    ValidationError,
)
from coparent.core.security import Identity
from coparent.models.family import Family, Membership, new_family_id
from coparent.models.user import User
from coparent.schemas.schedule_rule import ParentRole

logger = logging.getLogger(__name__)


def validate_timezone(name: str) -> str:
    """Return ``name`` if it is a known IANA zone, else raise ValidationError."""
    name = (name or "").strip()
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {name!r}", field="timezone")
    return name


def _insert_for(db: AsyncSession):
    """Dialect insert construct supporting ON CONFLICT (PostgreSQL or SQLite)."""
    if db.bind.dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


async def ensure_user(db: AsyncSession, identity: Identity) -> User:
    """Return the caller's user row, creating it from the identity if missing."""
    user = await db.get(User, identity.user_id)
    email = identity.email.strip().lower() if identity.email else None

    if user is None:
        # A concurrent first request may insert the same id; keep its row
        result = await db.execute(
            _insert_for(db)(User.__table__)
            .values(id=identity.user_id, email=email, display_name=identity.display_name)
            .on_conflict_do_nothing(index_elements=["id"])
        )
        user = await db.get(User, identity.user_id, populate_existing=True)
        if result.rowcount == 1:
            logger.info("User %s registered from identity provider", identity.user_id)
        return user

    if email and user.email != email:
        user.email = email
    if identity.display_name and not user.display_name:
        user.display_name = identity.display_name
    return user


async def get_family(db: AsyncSession, family_id: str) -> Family:
    family = await db.get(Family, family_id)
    if family is None:
        raise FamilyNotFound()
    return family


async def create_family(
    db: AsyncSession,
    identity: Identity,
    name: str,
    timezone: str,
) -> Family:
    """Create a family owned by the caller and link the caller to it.

    Steps (one unit of work):
    1. Read the creator; abort with AlreadyLinked if they have a family
    2. Insert the family under a fresh random identifier
    3. Link the creator with a conditional update; zero rows means a
       concurrent request linked them first -> AlreadyLinked
    4. Record the creator's membership

    Raising leaves the session dirty; the caller's rollback discards the
    family row together with everything else.
    """
    timezone = validate_timezone(timezone)
    name = name.strip()
    if not name:
        raise ValidationError("Please enter a family name.", field="name")

    await ensure_user(db, identity)
    result = await db.execute(
        select(User)
        .where(User.id == identity.user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one()

    if user.family_id:
        raise AlreadyLinked()

    family = Family(
        id=new_family_id(),
        name=name,
        timezone=timezone,
        owners=[user.id],
    )
    db.add(family)
    await db.flush()

    role = user.role or ParentRole.PARENT_A.value
    linked = await db.execute(
        update(User)
        .where(User.id == user.id, User.family_id.is_(None))
        .values(family_id=family.id, role=role)
        .execution_options(synchronize_session=False)
    )
    if linked.rowcount != 1:
        logger.warning(
            "Family creation by %s lost a race; user is already linked", user.id,
        )
        raise AlreadyLinked()

    await db.refresh(user)
    await link_member(db, family.id, user.id, role, user.display_name)
    await db.refresh(family)

    logger.info("Family %s (%r) created by %s", family.id, family.name, user.id)
    return family


async def link_member(
    db: AsyncSession,
    family_id: str,
    user_id: str,
    role: ParentRole | str | None,
    display_name: str | None = None,
) -> Membership:
    """Idempotent merge of the (family, user) membership row.

    Calling it again with the same arguments changes nothing; ``None``
    values never clear what is already stored.
    """
    member = await db.get(Membership, (family_id, user_id))
    if member is None:
        member = Membership(
            family_id=family_id,
            user_id=user_id,
            role=str(role) if role is not None else None,
            display_name=display_name,
        )
        db.add(member)
    else:
        if role is not None:
            member.role = str(role)
        if display_name is not None:
            member.display_name = display_name

    await db.flush()
    return member


async def link_user_to_family(
    db: AsyncSession,
    user: User,
    family_id: str,
    role: ParentRole | str | None = None,
) -> None:
    """Set ``user.family_id`` if it is still empty.

    Already linked to ``family_id`` is a no-op; linked to any other family
    raises AlreadyLinkedElsewhere. An existing role is never overwritten.
    """
    result = await db.execute(
        update(User)
        .where(User.id == user.id, User.family_id.is_(None))
        .values(family_id=family_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current = await db.execute(select(User.family_id).where(User.id == user.id))
        if current.scalar_one_or_none() != family_id:
            raise AlreadyLinkedElsewhere()

    if role is not None:
        await db.execute(
            update(User)
            .where(User.id == user.id, User.role.is_(None))
            .values(role=str(role))
            .execution_options(synchronize_session=False)
        )

    await db.refresh(user)


async def list_members(db: AsyncSession, family_id: str) -> list[Membership]:
    result = await db.execute(
        select(Membership)
        .where(Membership.family_id == family_id)
        .order_by(Membership.joined_at)
    )
    return list(result.scalars().all())


async def update_family(
    db: AsyncSession,
    family: Family,
    name: str | None = None,
    timezone: str | None = None,
) -> Family:
    """Rename a family or move it to another timezone. The id never changes."""
    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationError("Please enter a family name.", field="name")
        family.name = name
    if timezone is not None:
        family.timezone = validate_timezone(timezone)

    await db.flush()
    await db.refresh(family)
    return family


async def update_profile(
    db: AsyncSession,
    user: User,
    display_name: str | None = None,
    photo_url: str | None = None,
    role: ParentRole | None = None,
) -> User:
    """Update the caller's profile and mirror it onto their membership row."""
    if display_name is not None:
        user.display_name = display_name.strip()
    if photo_url is not None:
        user.photo_url = photo_url or None
    if role is not None:
        user.role = str(role)
    await db.flush()

    if user.family_id:
        await link_member(
            db, user.family_id, user.id, role,
            user.display_name if display_name is not None else None,
        )

    await db.refresh(user)
    return user
