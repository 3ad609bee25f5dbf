import logging
from supabase import Client
from fastapi import HTTPException

from app.modules.field_entry.schemas import FieldEntryProject, FieldEntryResult
from app.modules.pile_lookup.schemas import PileLookupRow
from app.modules.pile_lookup.service import PileLookupService
from app.modules.piles.schemas import FieldEntryCreate

logger = logging.getLogger(__name__)


class FieldEntryService:
    """Unauthenticated pile submission from the QR-code form used on site"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_project(self, project_id: str) -> FieldEntryProject:
        try:
            result = self.supabase.table("projects")\
                .select("id, project_name, project_location")\
                .eq("id", project_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error loading field entry project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")
        if not result.data:
            raise HTTPException(status_code=404, detail="Project not found")
        return FieldEntryProject(**result.data[0])

    def lookup(self, project_id: str, tag: str) -> PileLookupRow:
        self.get_project(project_id)
        return PileLookupService(self.supabase).find_by_tag(project_id, tag)

    def submit(self, project_id: str, entry: FieldEntryCreate) -> FieldEntryResult:
        self.get_project(project_id)
        row = entry.model_dump()
        row.update({"project_id": project_id, "pile_status": "pending", "published": False})
        try:
            result = self.supabase.table("piles").insert(row).execute()
        except Exception as e:
            logger.error(f"Error inserting field entry pile for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to save pile")
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to save pile")

        pile = result.data[0]
        logger.info(f"Field entry pile {entry.pile_id} submitted by {entry.inspector_name} for project {project_id}")
        return FieldEntryResult(
            id=pile["id"],
            pile_id=entry.pile_id,
            pile_number=entry.pile_number,
            inspector_name=entry.inspector_name,
            message=f"Pile created successfully by {entry.inspector_name}!"
        )
