"""
Team invitation endpoints: issue signed invite links and verify them.

Invitation records live in the data store; the token returned on issue is
the key they are stored under, and `lookup_token` on verify is the key to
find them again.
"""

from fastapi import APIRouter, Depends, Query

from app.core.logging_config import logger, set_team_id
from app.schemas.invitation import (
    InvitationCreate,
    InvitationCreateResponse,
    InvitationVerifyResponse,
)
from app.services.email_service import EmailService, email_service
from app.services.invite_token_service import TokenCodec, build_invite_link


router = APIRouter(prefix="/invitations", tags=["Invitations"])


def get_token_codec() -> TokenCodec:
    return TokenCodec.from_settings()


def get_email_service() -> EmailService:
    return email_service


@router.post("", response_model=InvitationCreateResponse, status_code=201)
async def create_invitation(
    invitation_data: InvitationCreate,
    codec: TokenCodec = Depends(get_token_codec),
    mailer: EmailService = Depends(get_email_service),
):
    """
    Issue an invitation token for an email address and build the invite link.

    The email is sent only when `send_email` is true; a delivery failure is
    reported through `email_sent` and does not fail the request.
    """
    set_team_id(invitation_data.team_id)
    issued = codec.issue(invitation_data.email)
    invite_link = build_invite_link(issued.token, invitation_data.team_id)

    email_sent = False
    if invitation_data.send_email:
        email_sent = await mailer.send_invitation_email(
            issued.email,
            invitation_data.team_name or invitation_data.team_id,
            invite_link,
        )

    logger.info(f"Invitation issued to {issued.email} for team {invitation_data.team_id} (email_sent={email_sent})")

    return InvitationCreateResponse(
        token=issued.token,
        invite_link=invite_link,
        email=issued.email,
        expires_at=issued.expires_at_datetime,
        email_sent=email_sent,
    )


@router.get("/verify", response_model=InvitationVerifyResponse)
async def verify_invitation(
    token: str = Query(..., min_length=1, description="Invitation token from the invite link"),
    codec: TokenCodec = Depends(get_token_codec),
):
    """
    Verify an invitation token.

    Malformed and tampered tokens both yield 400 "Invalid invitation";
    expired tokens yield 410.
    """
    result = codec.verify(token).raise_for_status()
    return InvitationVerifyResponse(
        valid=result.valid,
        email=result.email,
        raw_token=result.raw_token,
        lookup_token=result.lookup_token,
        expires_at=result.expires_at_datetime,
    )
