import secrets
import logging
from datetime import datetime, timedelta, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, Optional

import httpx

from app.config.settings import settings
from app.modules.invitations.email import build_invitation_email, send_email
from app.modules.invitations.schemas import (
    InvitationCreate, InvitationResponse, InvitationCreateResponse, InvitationListResponse, PublicInvitation
)

logger = logging.getLogger(__name__)


def generate_invitation_token() -> str:
    return secrets.token_hex(32)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class InvitationService:
    def __init__(self, supabase: Client, http: Optional[httpx.Client] = None):
        self.supabase = supabase
        self.http = http

    def _get_project(self, project_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("projects")\
                .select("id, project_name")\
                .eq("id", project_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")
        if not result.data:
            raise HTTPException(status_code=404, detail="Project not found")
        return result.data[0]

    def create_invitation(self, project_id: str, data: InvitationCreate, inviter: Dict[str, Any]) -> InvitationCreateResponse:
        """Store a pending invitation and email the link"""
        project = self._get_project(project_id)
        email = data.email.lower()
        try:
            existing = self.supabase.table("project_invitations")\
                .select("id")\
                .eq("project_id", project_id)\
                .eq("email", email)\
                .eq("status", "pending")\
                .gt("expires_at", datetime.now(timezone.utc).isoformat())\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error checking invitations for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")
        if existing.data:
            raise HTTPException(status_code=409, detail="A pending invitation already exists for this email")

        token = generate_invitation_token()
        expires_at = datetime.now(timezone.utc) + timedelta(days=settings.invitation_ttl_days)
        try:
            result = self.supabase.table("project_invitations").insert({
                "project_id": project_id,
                "email": email,
                "role": data.role,
                "token": token,
                "status": "pending",
                "invited_by": inviter["id"],
                "expires_at": expires_at.isoformat()
            }).execute()
        except Exception as e:
            logger.error(f"Error creating invitation for {email}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create invitation")
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create invitation")

        link = settings.build_app_url(f"/auth?invitation={token}")
        metadata = inviter.get("user_metadata") or {}
        inviter_name = " ".join(
            part for part in (metadata.get("first_name"), metadata.get("last_name")) if part
        ) or inviter.get("email") or "A teammate"
        subject, html_body, text_body = build_invitation_email(
            project.get("project_name") or "a project", inviter_name, data.role, link, settings.invitation_ttl_days
        )
        email_sent = send_email(email, subject, html_body, text_body, self.http)

        logger.info(f"Invitation created for {email} on project {project_id} (email_sent={email_sent})")
        return InvitationCreateResponse(**result.data[0], invitation_link=link, email_sent=email_sent)

    def list_invitations(self, project_id: str) -> InvitationListResponse:
        try:
            result = self.supabase.table("project_invitations")\
                .select("*")\
                .eq("project_id", project_id)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            logger.error(f"Error listing invitations for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")
        return InvitationListResponse(invitations=[InvitationResponse(**row) for row in result.data or []])

    def revoke_invitation(self, project_id: str, invitation_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("project_invitations")\
                .update({"status": "revoked"})\
                .eq("id", invitation_id)\
                .eq("project_id", project_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error revoking invitation {invitation_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to revoke invitation")
        if not result.data:
            raise HTTPException(status_code=404, detail="Invitation not found")
        return {"success": True, "message": "Invitation revoked"}

    def _get_valid_invitation(self, token: str) -> Dict[str, Any]:
        """Pending, unexpired invitation for the token: 404 unknown, 400 no longer pending, 410 expired"""
        try:
            result = self.supabase.table("project_invitations")\
                .select("*")\
                .eq("token", token)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching invitation: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")
        if not result.data:
            raise HTTPException(status_code=404, detail="Invitation not found")

        invitation = result.data[0]
        if invitation.get("status") != "pending":
            raise HTTPException(status_code=400, detail=f"Invitation has already been {invitation.get('status')}")
        if _parse_timestamp(invitation["expires_at"]) < datetime.now(timezone.utc):
            raise HTTPException(status_code=410, detail="Invitation has expired")
        return invitation

    def get_public_invitation(self, token: str) -> PublicInvitation:
        invitation = self._get_valid_invitation(token)
        project = self._get_project(invitation["project_id"])
        return PublicInvitation(
            email=invitation["email"],
            role=invitation["role"],
            project_id=invitation["project_id"],
            project_name=project.get("project_name"),
            expires_at=invitation["expires_at"]
        )

    def accept_invitation(self, token: str, user: Dict[str, Any]) -> Dict[str, Any]:
        """Join the project as the invited role; the signed-in email must match the invitation"""
        invitation = self._get_valid_invitation(token)
        if (user.get("email") or "").lower() != invitation["email"].lower():
            raise HTTPException(status_code=403, detail="This invitation was sent to a different email address")

        project_id = invitation["project_id"]
        try:
            existing = self.supabase.table("user_projects")\
                .select("id")\
                .eq("user_id", user["id"])\
                .eq("project_id", project_id)\
                .limit(1)\
                .execute()
            if not existing.data:
                self.supabase.table("user_projects").insert({
                    "user_id": user["id"],
                    "project_id": project_id,
                    "role": invitation["role"],
                    "is_owner": False
                }).execute()
            self.supabase.table("project_invitations")\
                .update({
                    "status": "accepted",
                    "accepted_at": datetime.now(timezone.utc).isoformat(),
                    "accepted_by": user["id"]
                })\
                .eq("id", invitation["id"])\
                .execute()
        except Exception as e:
            logger.error(f"Error accepting invitation {invitation['id']}: {e}")
            raise HTTPException(status_code=500, detail="Failed to accept invitation")

        logger.info(f"User {user['id']} joined project {project_id} via invitation")
        return {"success": True, "project_id": project_id, "role": invitation["role"]}
