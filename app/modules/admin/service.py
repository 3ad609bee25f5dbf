import re
import secrets
import string
import logging
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, List, Optional

from app.config.permissions_config import DEFAULT_ACCOUNT_TYPE, DEFAULT_JOB_ROLE, DEFAULT_TRACKER_SYSTEM
from app.database.supabase_client import fetch_all
from app.modules.admin.schemas import (
    CreateUserRequest, CreateUserResponse, CreatedUser, CreateProjectRequest,
    AssignUserRequest, RemoveUserRequest, AdminUser, UserProjectSummary,
    ListUsersResponse
)
from app.modules.analytics.schemas import ProjectDataResponse
from app.modules.analytics.service import AnalyticsService
from app.modules.piles.status import to_number

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_SPECIALS = "!@#$%^&*"
PASSWORD_LENGTH = 16

# Child tables removed before the project row itself, in order
PROJECT_CHILD_TABLES = [
    "pile_activities",
    "piles",
    "preliminary_production",
    "pile_lookup_data",
    "weather_data",
    "project_invitations",
    "user_projects",
]


def generate_temporary_password(length: int = PASSWORD_LENGTH) -> str:
    """Random password with at least one upper, lower, digit and special character"""
    pools = [string.ascii_uppercase, string.ascii_lowercase, string.digits, PASSWORD_SPECIALS]
    alphabet = "".join(pools)
    chars = [secrets.choice(pool) for pool in pools]
    chars += [secrets.choice(alphabet) for _ in range(length - len(pools))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def _parse_int(value: Any, default: int = 0) -> int:
    number = to_number(value)
    return int(number) if number else default


def _parse_float(value: Any, default: float) -> float:
    number = to_number(value)
    return number if number else default


class AdminService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_user(self, data: CreateUserRequest) -> CreateUserResponse:
        """Create a confirmed auth user with a generated temporary password"""
        if not data.email:
            raise HTTPException(status_code=400, detail="Email is required")
        email = data.email.strip()
        if not EMAIL_PATTERN.match(email):
            raise HTTPException(status_code=400, detail="Invalid email format")
        try:
            temporary_password = generate_temporary_password()
            response = self.supabase.auth.admin.create_user({
                "email": email,
                "password": temporary_password,
                "email_confirm": True,
                "user_metadata": {
                    "first_name": data.first_name or "",
                    "last_name": data.last_name or "",
                    "account_type": data.account_type or DEFAULT_ACCOUNT_TYPE
                }
            })
            if not response or not response.user:
                raise HTTPException(status_code=400, detail="Failed to create user")
            logger.info(f"Admin created user {response.user.id}")
            return CreateUserResponse(
                user=CreatedUser(
                    id=response.user.id,
                    email=response.user.email or email,
                    first_name=data.first_name,
                    last_name=data.last_name
                ),
                temporary_password=temporary_password
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating user: {e}")
            raise HTTPException(status_code=400, detail=str(e))

    def create_project(self, data: CreateProjectRequest) -> Dict[str, Any]:
        if not data.project_name or not data.project_location:
            raise HTTPException(status_code=400, detail="Project name and location are required")
        try:
            result = self.supabase.table("projects").insert({
                "project_name": data.project_name,
                "name": data.project_name,
                "project_location": data.project_location,
                "total_project_piles": _parse_int(data.total_project_piles),
                "tracker_system": data.tracker_system or DEFAULT_TRACKER_SYSTEM,
                "geotech_company": data.geotech_company or "",
                "role": data.role or DEFAULT_JOB_ROLE,
                "embedment_tolerance": _parse_float(data.embedment_tolerance, 1.0)
            }).execute()
            if not result.data:
                raise HTTPException(status_code=400, detail="Failed to create project")
            return {"success": True, "project": result.data[0]}
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating project: {e}")
            raise HTTPException(status_code=400, detail=str(e))

    def assign_user_to_project(self, data: AssignUserRequest) -> Dict[str, Any]:
        if not data.user_id or not data.project_id or not data.role:
            raise HTTPException(status_code=400, detail="Missing required fields: user_id, project_id, role")
        try:
            existing = self.supabase.table("user_projects")\
                .select("id")\
                .eq("user_id", data.user_id)\
                .eq("project_id", data.project_id)\
                .limit(1)\
                .execute()

            if existing.data:
                result = self.supabase.table("user_projects")\
                    .update({"role": data.role, "is_owner": data.is_owner})\
                    .eq("id", existing.data[0]["id"])\
                    .execute()
                return {"success": True, "assignment": result.data[0] if result.data else None, "updated": True}

            result = self.supabase.table("user_projects").insert({
                "user_id": data.user_id,
                "project_id": data.project_id,
                "role": data.role,
                "is_owner": data.is_owner
            }).execute()
            return {"success": True, "assignment": result.data[0] if result.data else None}
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error assigning user to project: {e}")
            raise HTTPException(status_code=400, detail=str(e))

    def remove_user_from_project(self, data: RemoveUserRequest) -> Dict[str, Any]:
        if not data.user_id or not data.project_id:
            raise HTTPException(status_code=400, detail="Missing required fields: user_id, project_id")
        try:
            self.supabase.table("user_projects")\
                .delete()\
                .eq("user_id", data.user_id)\
                .eq("project_id", data.project_id)\
                .execute()
            return {"success": True, "message": "User removed from project"}
        except Exception as e:
            logger.error(f"Error removing user from project: {e}")
            raise HTTPException(status_code=400, detail=str(e))

    def list_users(self, page: int = 1, per_page: int = 50) -> ListUsersResponse:
        try:
            users = self.supabase.auth.admin.list_users(page=page, per_page=per_page) or []
        except Exception as e:
            logger.error(f"Error listing auth users: {e}")
            raise HTTPException(status_code=400, detail=str(e))

        user_ids = [u.id for u in users]
        memberships: List[Dict[str, Any]] = []
        super_admin_ids = set()
        project_names: Dict[str, str] = {}
        if user_ids:
            try:
                memberships = self.supabase.table("user_projects")\
                    .select("user_id, project_id, role, is_owner")\
                    .in_("user_id", user_ids)\
                    .execute().data or []
                admins = self.supabase.table("super_admins")\
                    .select("user_id")\
                    .in_("user_id", user_ids)\
                    .execute().data or []
                super_admin_ids = {a["user_id"] for a in admins}
                project_ids = list({m["project_id"] for m in memberships})
                if project_ids:
                    projects = self.supabase.table("projects")\
                        .select("id, project_name")\
                        .in_("id", project_ids)\
                        .execute().data or []
                    project_names = {p["id"]: p.get("project_name") for p in projects}
            except Exception as e:
                logger.error(f"Error loading user memberships: {e}")
                raise HTTPException(status_code=500, detail="Internal server error")

        result = []
        for user in users:
            metadata = user.user_metadata or {}
            result.append(AdminUser(
                id=user.id,
                email=user.email,
                first_name=metadata.get("first_name") or "",
                last_name=metadata.get("last_name") or "",
                account_type=metadata.get("account_type") or DEFAULT_ACCOUNT_TYPE,
                created_at=user.created_at,
                email_confirmed=bool(getattr(user, "email_confirmed_at", None)),
                is_super_admin=user.id in super_admin_ids,
                projects=[
                    UserProjectSummary(
                        project_id=m["project_id"],
                        project_name=project_names.get(m["project_id"]) or "Unknown",
                        role=m.get("role"),
                        is_owner=bool(m.get("is_owner"))
                    )
                    for m in memberships if m["user_id"] == user.id
                ]
            ))
        return ListUsersResponse(users=result, total=len(result))

    def list_projects(self) -> Dict[str, Any]:
        try:
            projects = self.supabase.table("projects")\
                .select("*")\
                .order("created_at", desc=True)\
                .execute().data or []
            memberships = fetch_all(
                lambda: self.supabase.table("user_projects").select("project_id")
            )
        except Exception as e:
            logger.error(f"Error listing projects: {e}")
            raise HTTPException(status_code=400, detail=str(e))
        counts: Dict[str, int] = {}
        for m in memberships:
            counts[m["project_id"]] = counts.get(m["project_id"], 0) + 1
        return {"projects": [{**p, "user_count": counts.get(p["id"], 0)} for p in projects]}

    def grant_super_admin(self, user_id: Optional[str], granted_by: str) -> Dict[str, Any]:
        if not user_id:
            raise HTTPException(status_code=400, detail="Missing required field: user_id")
        try:
            existing = self.supabase.table("super_admins")\
                .select("id")\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
            if existing.data:
                raise HTTPException(status_code=400, detail="User is already a super admin")
            self.supabase.table("super_admins").insert({
                "user_id": user_id,
                "granted_by": granted_by
            }).execute()
            logger.info(f"Super admin granted to {user_id} by {granted_by}")
            return {"success": True, "message": "Super admin privileges granted"}
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error granting super admin: {e}")
            raise HTTPException(status_code=400, detail=str(e))

    def revoke_super_admin(self, user_id: Optional[str], current_user_id: str) -> Dict[str, Any]:
        if not user_id:
            raise HTTPException(status_code=400, detail="Missing required field: user_id")
        if user_id == current_user_id:
            raise HTTPException(status_code=400, detail="Cannot revoke your own super admin privileges")
        try:
            self.supabase.table("super_admins")\
                .delete()\
                .eq("user_id", user_id)\
                .execute()
            logger.info(f"Super admin revoked from {user_id} by {current_user_id}")
            return {"success": True, "message": "Super admin privileges revoked"}
        except Exception as e:
            logger.error(f"Error revoking super admin: {e}")
            raise HTTPException(status_code=400, detail=str(e))

    def delete_user(self, user_id: Optional[str], current_user_id: str) -> Dict[str, Any]:
        if not user_id:
            raise HTTPException(status_code=400, detail="Missing required field: user_id")
        if user_id == current_user_id:
            raise HTTPException(status_code=400, detail="Cannot delete your own account")

        for table in ("user_projects", "super_admins"):
            try:
                self.supabase.table(table).delete().eq("user_id", user_id).execute()
            except Exception as e:
                logger.warning(f"Error deleting {table} rows for user {user_id}: {e}")

        try:
            self.supabase.auth.admin.delete_user(user_id)
        except Exception as e:
            logger.error(f"Error deleting auth user {user_id}: {e}")
            raise HTTPException(status_code=400, detail=str(e))
        logger.info(f"Deleted user {user_id}")
        return {"success": True, "message": "User deleted successfully"}

    def _get_project(self, project_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("projects")\
                .select("*")\
                .eq("id", project_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")
        if not result.data:
            raise HTTPException(status_code=404, detail="Project not found")
        return result.data[0]

    def delete_project(self, project_id: Optional[str]) -> Dict[str, Any]:
        if not project_id:
            raise HTTPException(status_code=400, detail="Missing required field: project_id")
        project = self._get_project(project_id)

        for table in PROJECT_CHILD_TABLES:
            try:
                self.supabase.table(table).delete().eq("project_id", project_id).execute()
                logger.info(f"Deleted {table} rows for project {project_id}")
            except Exception as e:
                logger.error(f"Error deleting {table} rows for project {project_id}: {e}")

        try:
            self.supabase.table("projects").delete().eq("id", project_id).execute()
        except Exception as e:
            logger.error(f"Error deleting project {project_id}: {e}")
            raise HTTPException(status_code=400, detail=str(e))

        name = project.get("project_name") or project.get("name") or project_id
        return {"success": True, "message": f'Project "{name}" deleted successfully'}

    def get_piles(self, project_id: str, page: int = 0, page_size: int = 1000, count_only: bool = False) -> Dict[str, Any]:
        try:
            if count_only:
                result = self.supabase.table("piles")\
                    .select("*", count="exact", head=True)\
                    .eq("project_id", project_id)\
                    .execute()
                return {"count": result.count or 0}

            start = page * page_size
            result = self.supabase.table("piles")\
                .select("*", count="exact")\
                .eq("project_id", project_id)\
                .order("created_at")\
                .range(start, start + page_size - 1)\
                .execute()
            return {
                "piles": result.data or [],
                "count": result.count or 0,
                "page": page,
                "page_size": page_size
            }
        except Exception as e:
            logger.error(f"Error fetching piles for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Error fetching piles")

    def get_project_data(self, project_id: str) -> ProjectDataResponse:
        return AnalyticsService(self.supabase).get_dashboard(project_id)
