from fastapi import APIRouter, Depends, File, UploadFile
from app.database.supabase_client import get_supabase
from app.modules.pile_lookup.schemas import PileLookupUploadResponse, PileLookupListResponse
from app.modules.pile_lookup.service import PileLookupService
from app.core.dependencies import require_project_access
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/projects/{project_id}/pile-lookup", tags=["pile-lookup"])


def get_pile_lookup_service(supabase: Client = Depends(get_supabase)) -> PileLookupService:
    return PileLookupService(supabase)


@router.post("/upload", response_model=PileLookupUploadResponse)
async def upload_pile_lookup(
    project_id: str,
    file: UploadFile = File(...),
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileLookupService = Depends(get_pile_lookup_service)
):
    """Upload the pile plot (tags, types, design embedments, coordinates)"""
    content = await file.read()
    return service.upload(project_id, content, file.filename)


@router.get("", response_model=PileLookupListResponse)
async def list_pile_lookup(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: PileLookupService = Depends(get_pile_lookup_service)
):
    return service.list_rows(project_id)


@router.delete("")
async def delete_pile_lookup(
    project_id: str,
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileLookupService = Depends(get_pile_lookup_service)
):
    return service.delete_all(project_id)
