from fastapi import APIRouter, Depends
from app.config import settings
from app.database.supabase_client import get_supabase
from app.modules.invitations.schemas import (
    InvitationCreate, InvitationCreateResponse, InvitationListResponse, PublicInvitation
)
from app.modules.invitations.service import InvitationService
from app.core.dependencies import get_current_user_id, get_service_client_or_500, require_project_access
from supabase import Client
from typing import Dict
import httpx

router = APIRouter(prefix="/projects/{project_id}/invitations", tags=["invitations"])
public_router = APIRouter(prefix="/invitations", tags=["invitations"])


def get_email_client():
    client = httpx.Client(timeout=settings.http_timeout_seconds)
    try:
        yield client
    finally:
        client.close()


def get_invitation_service(
    supabase: Client = Depends(get_supabase),
    http: httpx.Client = Depends(get_email_client)
) -> InvitationService:
    return InvitationService(supabase, http)


def get_token_invitation_service(supabase: Client = Depends(get_service_client_or_500)) -> InvitationService:
    """Service-role client for token lookups"""
    return InvitationService(supabase)


@router.post("", response_model=InvitationCreateResponse, status_code=201)
async def create_invitation(
    project_id: str,
    invitation: InvitationCreate,
    user_data: Dict = Depends(require_project_access("admin")),
    service: InvitationService = Depends(get_invitation_service)
):
    """Invite someone to the project by email"""
    return service.create_invitation(project_id, invitation, user_data)


@router.get("", response_model=InvitationListResponse)
async def list_invitations(
    project_id: str,
    user_data: Dict = Depends(require_project_access("admin")),
    service: InvitationService = Depends(get_invitation_service)
):
    return service.list_invitations(project_id)


@router.delete("/{invitation_id}")
async def revoke_invitation(
    project_id: str,
    invitation_id: str,
    user_data: Dict = Depends(require_project_access("admin")),
    service: InvitationService = Depends(get_invitation_service)
):
    return service.revoke_invitation(project_id, invitation_id)


@public_router.get("/{token}", response_model=PublicInvitation)
async def get_invitation(
    token: str,
    service: InvitationService = Depends(get_token_invitation_service)
):
    return service.get_public_invitation(token)


@public_router.post("/{token}/accept")
async def accept_invitation(
    token: str,
    current_user: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_token_invitation_service)
):
    return service.accept_invitation(token, current_user)
