import logging
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, List

from app.config.permissions_config import TRACKER_SYSTEMS, DEFAULT_JOB_ROLE
from app.config.settings import settings
from app.modules.heatmap.coordinates import is_supported
from app.modules.projects.schemas import (
    ProjectSetupRequest, ProjectSettingsUpdate, ProjectResponse, UserProjectResponse,
    ProjectMemberResponse, FieldEntryLinkResponse
)

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _validate(self, tracker_system: str = None, coordinate_system: str = None):
        if tracker_system is not None and tracker_system not in TRACKER_SYSTEMS:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid tracker system. Must be one of: {', '.join(TRACKER_SYSTEMS)}"
            )
        if coordinate_system and not is_supported(coordinate_system):
            raise HTTPException(status_code=400, detail=f"Unsupported coordinate system: {coordinate_system}")

    def setup_project(self, data: ProjectSetupRequest, user_id: str) -> ProjectResponse:
        """Create a project and make the creator its owner"""
        self._validate(data.tracker_system, data.coordinate_system)
        role = (data.role or "").strip() or DEFAULT_JOB_ROLE
        try:
            project_data = {
                "project_name": data.project_name.strip(),
                "name": data.project_name.strip(),
                "project_location": data.project_location.strip(),
                "total_project_piles": data.total_project_piles,
                "tracker_system": data.tracker_system,
                "geotech_company": data.geotech_company.strip(),
                "role": role,
                "embedment_tolerance": settings.default_embedment_tolerance
                if data.embedment_tolerance is None else data.embedment_tolerance,
                "location_lat": data.location_lat,
                "location_lng": data.location_lng,
                "coordinate_system": data.coordinate_system
            }
            result = self.supabase.table("projects").insert(project_data).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create project")
            project = result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating project: {e}")
            raise HTTPException(status_code=500, detail="Failed to create project")

        try:
            self.supabase.table("user_projects").insert({
                "user_id": user_id,
                "project_id": project["id"],
                "role": role,
                "is_owner": True
            }).execute()
        except Exception as e:
            logger.error(f"Error associating user {user_id} with project {project['id']}: {e}")
            try:
                self.supabase.table("projects").delete().eq("id", project["id"]).execute()
            except Exception as cleanup_error:
                logger.error(f"Error removing orphaned project {project['id']}: {cleanup_error}")
            raise HTTPException(status_code=500, detail="Failed to complete project setup")

        logger.info(f"Project {project['id']} created by {user_id}")
        return ProjectResponse(**project)

    def get_project(self, project_id: str) -> Dict[str, Any]:
        """Raw project row; 404 when missing"""
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

    def list_projects_for_user(self, user_id: str, include_all: bool = False) -> List[UserProjectResponse]:
        """Projects the user belongs to (every project when include_all, e.g. super admins)"""
        try:
            memberships = self.supabase.table("user_projects")\
                .select("project_id, role, is_owner")\
                .eq("user_id", user_id)\
                .execute().data or []
            by_project = {m["project_id"]: m for m in memberships}

            query = self.supabase.table("projects").select("*")
            if not include_all:
                if not by_project:
                    return []
                query = query.in_("id", list(by_project.keys()))
            projects = query.order("created_at", desc=True).execute().data or []
        except Exception as e:
            logger.error(f"Error listing projects for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

        return [
            UserProjectResponse(
                **project,
                membership_role=by_project.get(project["id"], {}).get("role"),
                is_owner=bool(by_project.get(project["id"], {}).get("is_owner"))
            )
            for project in projects
        ]

    def update_settings(self, project_id: str, data: ProjectSettingsUpdate) -> ProjectResponse:
        update_data = data.model_dump(exclude_unset=True)
        self._validate(update_data.get("tracker_system"), update_data.get("coordinate_system"))
        if not update_data:
            return ProjectResponse(**self.get_project(project_id))
        if update_data.get("project_name"):
            update_data["name"] = update_data["project_name"]
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = self.supabase.table("projects")\
                .update(update_data)\
                .eq("id", project_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating project settings {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update project settings")
        if not result.data:
            raise HTTPException(status_code=404, detail="Project not found")
        return ProjectResponse(**result.data[0])

    def list_members(self, project_id: str) -> List[ProjectMemberResponse]:
        try:
            result = self.supabase.table("user_projects")\
                .select("*")\
                .eq("project_id", project_id)\
                .execute()
            return [ProjectMemberResponse(**member) for member in result.data or []]
        except Exception as e:
            logger.error(f"Error listing members for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    def get_field_entry_link(self, project_id: str) -> FieldEntryLinkResponse:
        """Public URL encoded in the QR code handed to field inspectors"""
        self.get_project(project_id)
        return FieldEntryLinkResponse(
            project_id=project_id,
            url=settings.build_app_url(f"/field-entry?project={project_id}")
        )
