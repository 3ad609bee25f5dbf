from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional, List
from datetime import datetime

from app.config.permissions_config import MEMBERSHIP_ROLES


class InvitationCreate(BaseModel):
    email: EmailStr
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        if value not in MEMBERSHIP_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(MEMBERSHIP_ROLES)}")
        return value


class InvitationResponse(BaseModel):
    id: str
    project_id: str
    email: str
    role: str
    status: str
    invited_by: Optional[str] = None
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvitationCreateResponse(InvitationResponse):
    invitation_link: str
    email_sent: bool


class InvitationListResponse(BaseModel):
    invitations: List[InvitationResponse]


class PublicInvitation(BaseModel):
    email: str
    role: str
    project_id: str
    project_name: Optional[str] = None
    expires_at: datetime
