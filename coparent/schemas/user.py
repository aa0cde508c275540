from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from coparent.schemas.schedule_rule import ParentRole


class UserResponse(BaseModel):
    id: str
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    role: ParentRole | None = None
    family_id: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=100)
    photo_url: str | None = None
    role: ParentRole | None = None


class ChildCreate(BaseModel):
    name: str
    birthdate: date
    color: str = "#4f46e5"


class ChildUpdate(BaseModel):
    name: str | None = None
    birthdate: date | None = None
    color: str | None = None


class ChildResponse(BaseModel):
    id: str
    family_id: str
    name: str
    birthdate: date
    color: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
