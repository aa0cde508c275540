"""Users router.

The caller's own profile: name, photo and which parent they are.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coparent.core.dependencies import get_current_user
from coparent.database import get_db
from coparent.models.user import User
from coparent.schemas.user import ProfileUpdate, UserResponse
from coparent.services.membership_service import update_profile

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Return the caller's profile, creating it on first call."""
    return current_user


@router.put("/me", response_model=UserResponse)
async def update_me(
    body: ProfileUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(get_current_user),
):
    """Update the caller's profile; name and role are mirrored to their membership."""
    return await update_profile(
        db,
        current_user,
        display_name=body.display_name,
        photo_url=body.photo_url,
        role=body.role,
    )
