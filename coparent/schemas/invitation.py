from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, EmailStr

from coparent.schemas.schedule_rule import ParentRole


class InvitationCreate(BaseModel):
    email: EmailStr
    role_suggested: ParentRole = ParentRole.PARENT_B
    reissue: bool = False  # explicit re-invite: rotate the token of a pending invite


class InvitationResponse(BaseModel):
    family_id: str
    email_key: str
    email: str
    role_suggested: ParentRole
    status: str
    version: int
    created_by: str
    accepted_by: str | None = None
    accepted_at: datetime | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class InviteLinkResponse(BaseModel):
    family_id: str
    email: str
    role_suggested: ParentRole
    version: int
    token: str
    link: str


class InvitePreviewResponse(BaseModel):
    family_id: str
    email: str
    role_suggested: ParentRole


class AcceptInviteRequest(BaseModel):
    family: str
    token: str


class AcceptanceState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    RESOLVING = "resolving"
    ACCEPTING = "accepting"
    ACCEPTED = "accepted"
    FAILED = "failed"


class AcceptanceResponse(BaseModel):
    state: AcceptanceState
    family_id: str
    role: ParentRole | None = None
    replayed: bool = False
    redirect_to: str | None = None
