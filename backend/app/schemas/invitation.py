"""Pydantic schemas for team invitations"""
from pydantic import BaseModel, Field, EmailStr
from typing import Optional
from datetime import datetime


class InvitationCreate(BaseModel):
    """Invite someone to a team by email"""
    email: EmailStr = Field(..., description="Email of person to invite")
    team_id: str = Field(..., min_length=1, max_length=255, description="Team the invitee will join")
    team_name: Optional[str] = Field(None, max_length=255, description="Shown in the invitation email")
    send_email: bool = Field(default=True, description="Deliver the invitation email")


class InvitationCreateResponse(BaseModel):
    """Issued invitation; the caller stores `token` with the invitation record"""
    token: str
    invite_link: str
    email: str
    expires_at: datetime
    email_sent: bool = False


class InvitationVerifyResponse(BaseModel):
    """Result of verifying an invitation token"""
    valid: bool
    email: str
    raw_token: str
    lookup_token: str = Field(..., description="Key for the stored invitation record")
    expires_at: datetime
