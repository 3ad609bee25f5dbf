"""
Core dependencies for route protection and project access checks
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config.permissions_config import DEFAULT_ACCOUNT_TYPE, PROJECT_ADMIN_ROLES, can_edit
from app.database.supabase_client import get_supabase, get_service_supabase
from app.modules.auth.service import AuthService
from supabase import Client
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()

ACCESS_LEVELS = ["member", "editor", "owner", "admin"]


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (is_super_admin, memberships by project id)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    return auth_service.get_current_user(token)


def get_account_type(user_data: dict) -> str:
    metadata = user_data.get("user_metadata") or {}
    return metadata.get("account_type") or DEFAULT_ACCOUNT_TYPE


def is_super_admin(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> bool:
    """Check the super_admins table. Uses request-scoped cache when provided."""
    if cache is not None and "is_super_admin" in cache:
        return cache["is_super_admin"]
    try:
        result = supabase.table("super_admins")\
            .select("id")\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        value = bool(result.data)
    except Exception as e:
        logger.error(f"Error checking super admin status: {e}")
        value = False
    if cache is not None:
        cache["is_super_admin"] = value
    return value


def get_service_client_or_500(service_client: Optional[Client] = Depends(get_service_supabase)) -> Client:
    """Service-role client for admin operations; 500 when the key is not configured."""
    if service_client is None:
        logger.error("SUPABASE_SERVICE_ROLE_KEY is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error"
        )
    return service_client


def require_super_admin(
    request: Request,
    user_data: dict = Depends(get_current_user_id),
    service_client: Client = Depends(get_service_client_or_500)
) -> dict:
    """Dependency for /admin routes: caller must have a super_admins row"""
    cache = _get_request_cache(request)
    if not is_super_admin(user_data["id"], service_client, cache):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Super admin access required"
        )
    return user_data


def get_project_membership(
    project_id: str,
    user_id: str,
    supabase: Client,
    cache: Optional[Dict[str, Any]] = None
) -> Optional[Dict[str, Any]]:
    """Return the user_projects row for (user, project) or None. Uses request-scoped cache when provided."""
    memberships = cache.setdefault("memberships", {}) if cache is not None else {}
    if project_id in memberships:
        return memberships[project_id]
    try:
        result = supabase.table("user_projects")\
            .select("*")\
            .eq("project_id", project_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        membership = result.data[0] if result.data else None
    except Exception as e:
        logger.error(f"Error getting project membership: {e}")
        membership = None
    memberships[project_id] = membership
    return membership


def check_project_access(
    project_id: str,
    user_data: dict,
    supabase: Client,
    level: str = "member",
    cache: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Resolve the caller's access to a project.
    Levels: member (user_projects row), editor (member with an epc account),
    owner (is_owner), admin (owner or an admin-capable membership role).
    Super admins pass every level.
    """
    account_type = get_account_type(user_data)
    access = {
        "project_id": project_id,
        "account_type": account_type,
        "role": None,
        "is_owner": False,
        "can_edit": can_edit(account_type),
        "is_super_admin": False
    }

    if is_super_admin(user_data["id"], supabase, cache):
        access.update({"is_super_admin": True, "can_edit": True, "is_owner": True})
        return access

    membership = get_project_membership(project_id, user_data["id"], supabase, cache)
    if not membership:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be a member of this project"
        )
    access["role"] = membership.get("role")
    access["is_owner"] = bool(membership.get("is_owner"))

    if level == "editor" and not access["can_edit"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account type has read-only access to this project"
        )
    if level == "owner" and not access["is_owner"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the project owner can perform this action"
        )
    if level == "admin" and not (access["is_owner"] or access["role"] in PROJECT_ADMIN_ROLES):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be a project owner or admin to perform this action"
        )
    return access


def require_project_access(level: str = "member"):
    """Factory function to create a project access dependency for routes with a {project_id} path param"""
    if level not in ACCESS_LEVELS:
        raise ValueError(f"Unknown access level: {level}")

    def check_access(
        project_id: str,
        request: Request,
        user_data: dict = Depends(get_current_user_id),
        supabase: Client = Depends(get_supabase)
    ) -> dict:
        cache = _get_request_cache(request)
        access = check_project_access(project_id, user_data, supabase, level, cache)
        return {**user_data, "project_access": access}
    return check_access


def get_access_cache(request: Request) -> Dict[str, Any]:
    """Dependency that returns request-scoped access cache."""
    return _get_request_cache(request)
