from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.projects.schemas import (
    ProjectSetupRequest, ProjectSettingsUpdate, ProjectResponse, ProjectListResponse,
    ProjectMemberResponse, FieldEntryLinkResponse
)
from app.modules.projects.service import ProjectService
from app.core.dependencies import get_current_user_id, require_project_access, is_super_admin, get_access_cache
from supabase import Client
from typing import Dict, List

router = APIRouter(prefix="/projects", tags=["projects"])


def get_project_service(supabase: Client = Depends(get_supabase)) -> ProjectService:
    return ProjectService(supabase)


@router.post("/setup", response_model=ProjectResponse, status_code=201)
async def setup_project(
    project_data: ProjectSetupRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    """Create a project; the caller becomes its owner"""
    return service.setup_project(project_data, current_user["id"])


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service),
    supabase: Client = Depends(get_supabase),
    cache: Dict = Depends(get_access_cache)
):
    """List the caller's projects (all projects for super admins)"""
    include_all = is_super_admin(current_user["id"], supabase, cache)
    return ProjectListResponse(projects=service.list_projects_for_user(current_user["id"], include_all))


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: ProjectService = Depends(get_project_service)
):
    return ProjectResponse(**service.get_project(project_id))


@router.put("/{project_id}/settings", response_model=ProjectResponse)
async def update_project_settings(
    project_id: str,
    settings_data: ProjectSettingsUpdate,
    user_data: Dict = Depends(require_project_access("owner")),
    service: ProjectService = Depends(get_project_service)
):
    """Update project settings (owner only)"""
    return service.update_settings(project_id, settings_data)


@router.get("/{project_id}/members", response_model=List[ProjectMemberResponse])
async def list_project_members(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: ProjectService = Depends(get_project_service)
):
    return service.list_members(project_id)


@router.get("/{project_id}/field-entry-link", response_model=FieldEntryLinkResponse)
async def get_field_entry_link(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: ProjectService = Depends(get_project_service)
):
    """URL for the public field entry form (rendered as a QR code by the frontend)"""
    return service.get_field_entry_link(project_id)
