from fastapi import APIRouter, Depends, HTTPException
from app.modules.admin.schemas import (
    CreateUserRequest, CreateUserResponse, CreateProjectRequest, AssignUserRequest,
    RemoveUserRequest, UserIdRequest, ProjectIdRequest, ListUsersResponse
)
from app.modules.analytics.schemas import ProjectDataResponse
from app.modules.admin.service import AdminService
from app.core.dependencies import (
    get_current_user_id, get_service_client_or_500, require_super_admin, is_super_admin, get_access_cache
)
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/admin", tags=["admin"])


def get_admin_service(supabase: Client = Depends(get_service_client_or_500)) -> AdminService:
    return AdminService(supabase)


def _require_project_id(project_id: Optional[str]) -> str:
    if not project_id:
        raise HTTPException(status_code=400, detail="Project ID is required")
    return project_id


@router.get("/check-super-admin")
async def check_super_admin(
    current_user: Dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_service_client_or_500),
    cache: Dict = Depends(get_access_cache)
):
    """Report whether the caller is a super admin (any authenticated user may ask)"""
    return {
        "is_super_admin": is_super_admin(current_user["id"], supabase, cache),
        "user_id": current_user["id"]
    }


@router.post("/create-user", response_model=CreateUserResponse)
async def create_user(
    request: CreateUserRequest,
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Create a confirmed user with a temporary password"""
    return service.create_user(request)


@router.post("/create-project")
async def create_project(
    request: CreateProjectRequest,
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.create_project(request)


@router.post("/assign-user-to-project")
async def assign_user_to_project(
    request: AssignUserRequest,
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Add a user to a project, or update the role of an existing assignment"""
    return service.assign_user_to_project(request)


@router.post("/remove-user-from-project")
async def remove_user_from_project(
    request: RemoveUserRequest,
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.remove_user_from_project(request)


@router.get("/list-users", response_model=ListUsersResponse)
async def list_users(
    page: int = 1,
    per_page: int = 50,
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    """List auth users with their project memberships and super admin flag"""
    return service.list_users(page=page, per_page=per_page)


@router.get("/list-projects")
async def list_projects(
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.list_projects()


@router.post("/grant-super-admin")
async def grant_super_admin(
    request: UserIdRequest,
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.grant_super_admin(request.user_id, current_user["id"])


@router.post("/revoke-super-admin")
async def revoke_super_admin(
    request: UserIdRequest,
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.revoke_super_admin(request.user_id, current_user["id"])


@router.post("/delete-user")
async def delete_user(
    request: UserIdRequest,
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Delete a user's memberships, super admin row and auth account"""
    return service.delete_user(request.user_id, current_user["id"])


@router.post("/delete-project")
async def delete_project(
    request: ProjectIdRequest,
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Delete a project and all of its child rows"""
    return service.delete_project(request.project_id)


@router.get("/get-piles")
async def get_piles(
    project_id: Optional[str] = None,
    page: int = 0,
    page_size: int = 1000,
    count_only: bool = False,
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Page through a project's piles (page is zero-based)"""
    return service.get_piles(_require_project_id(project_id), page, page_size, count_only)


@router.get("/get-project-data", response_model=ProjectDataResponse)
async def get_project_data(
    project_id: Optional[str] = None,
    current_user: Dict = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Project row plus statistics, top blocks and weekly/monthly timelines"""
    return service.get_project_data(_require_project_id(project_id))
