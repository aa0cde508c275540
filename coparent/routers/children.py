"""Children router.

Endpoints for managing the children a family's schedule is about.
"""

import re
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coparent.core.dependencies import require_family_member
from coparent.core.errors import ValidationError
from coparent.database import get_db
from coparent.models.child import Child
from coparent.models.user import User
from coparent.schemas.user import ChildCreate, ChildResponse, ChildUpdate

router = APIRouter(prefix="/families/{family_id}/children", tags=["Children"])

HEX_COLOR_RE = re.compile(r"#[0-9A-Fa-f]{6}")
MAX_NAME_LENGTH = 60


def _clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("Please enter a name.", field="name")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name is too long (max {MAX_NAME_LENGTH}).", field="name")
    return name


def _check_birthdate(birthdate: date) -> date:
    if birthdate > date.today():
        raise ValidationError("Birthdate cannot be in the future.", field="birthdate")
    return birthdate


def _check_color(color: str) -> str:
    if not HEX_COLOR_RE.fullmatch(color):
        raise ValidationError("Please choose a valid color.", field="color")
    return color


async def _get_child(db: AsyncSession, family_id: str, child_id: str) -> Child:
    result = await db.execute(
        select(Child).where(Child.id == child_id, Child.family_id == family_id)
    )
    child = result.scalar_one_or_none()
    if child is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Child not found",
        )
    return child


@router.get("", response_model=list[ChildResponse])
async def list_children(
    family_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """List the family's children, oldest first."""
    result = await db.execute(
        select(Child)
        .where(Child.family_id == family_id)
        .order_by(Child.birthdate.asc())
    )
    return result.scalars().all()


@router.post("", response_model=ChildResponse, status_code=status.HTTP_201_CREATED)
async def create_child(
    family_id: str,
    body: ChildCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Add a child to the family."""
    child = Child(
        family_id=family_id,
        name=_clean_name(body.name),
        birthdate=_check_birthdate(body.birthdate),
        color=_check_color(body.color),
    )
    db.add(child)
    await db.flush()
    await db.refresh(child)
    return child


@router.put("/{child_id}", response_model=ChildResponse)
async def update_child(
    family_id: str,
    child_id: str,
    body: ChildUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Update a child's name, birthdate or color."""
    child = await _get_child(db, family_id, child_id)

    if body.name is not None:
        child.name = _clean_name(body.name)
    if body.birthdate is not None:
        child.birthdate = _check_birthdate(body.birthdate)
    if body.color is not None:
        child.color = _check_color(body.color)

    await db.flush()
    await db.refresh(child)
    return child


@router.delete("/{child_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_child(
    family_id: str,
    child_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Remove a child from the family."""
    child = await _get_child(db, family_id, child_id)
    await db.delete(child)
    await db.flush()
    return None
