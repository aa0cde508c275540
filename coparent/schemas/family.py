from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from coparent.config import settings
from coparent.schemas.schedule_rule import ParentRole


class FamilyBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    timezone: str = settings.DEFAULT_TIMEZONE


class FamilyCreate(FamilyBase):
    pass


class FamilyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    timezone: str | None = None


class FamilyResponse(FamilyBase):
    id: str
    owners: list[str] = []
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MembershipResponse(BaseModel):
    family_id: str
    user_id: str
    role: ParentRole | None = None
    display_name: str | None = None
    joined_at: datetime
    model_config = ConfigDict(from_attributes=True)
