from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import StreamingResponse
from app.database.supabase_client import get_supabase
from app.modules.piles.schemas import (
    PileCreate, PileUpdate, PileStatusUpdate, PileNoteUpdate, PileIdsRequest, PublishRequest,
    PileResponse, PileListResponse, ImportResponse
)
from app.modules.piles.service import PileService, DEFAULT_PAGE_SIZE
from app.core.dependencies import require_project_access
from supabase import Client
from typing import Dict, List, Literal, Optional
import io

router = APIRouter(prefix="/projects/{project_id}/piles", tags=["piles"])


def get_pile_service(supabase: Client = Depends(get_supabase)) -> PileService:
    return PileService(supabase)


def _published_only(user_data: Dict) -> bool:
    return not user_data["project_access"]["can_edit"]


@router.get("", response_model=PileListResponse)
async def list_piles(
    project_id: str,
    status: Optional[str] = None,
    block: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    search: Optional[str] = None,
    duplicates_only: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=1000),
    user_data: Dict = Depends(require_project_access("member")),
    service: PileService = Depends(get_pile_service)
):
    """Paginated pile list with computed status and stats for the filtered set"""
    return service.list_piles(
        project_id,
        status=status,
        block=block,
        start_date=start_date,
        end_date=end_date,
        search=search,
        duplicates_only=duplicates_only,
        page=page,
        page_size=page_size,
        published_only=_published_only(user_data)
    )


@router.post("", response_model=PileResponse, status_code=201)
async def create_pile(
    project_id: str,
    pile_data: PileCreate,
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileService = Depends(get_pile_service)
):
    return service.create_pile(project_id, pile_data)


@router.delete("")
async def delete_all_piles(
    project_id: str,
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileService = Depends(get_pile_service)
):
    return service.delete_all(project_id)


@router.get("/notes", response_model=List[PileResponse])
async def list_notes(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: PileService = Depends(get_pile_service)
):
    return service.list_notes(project_id)


@router.get("/export")
async def export_piles(
    project_id: str,
    format: Literal["csv", "xlsx"] = "csv",
    user_data: Dict = Depends(require_project_access("member")),
    service: PileService = Depends(get_pile_service)
):
    content, media_type, filename = service.export(project_id, format, _published_only(user_data))
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/import", response_model=ImportResponse)
async def import_piles(
    project_id: str,
    file: UploadFile = File(...),
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileService = Depends(get_pile_service)
):
    """Upload a CSV or Excel sheet of piles"""
    content = await file.read()
    return service.import_spreadsheet(project_id, content, file.filename)


@router.post("/bulk-delete")
async def bulk_delete_piles(
    project_id: str,
    request: PileIdsRequest,
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileService = Depends(get_pile_service)
):
    return service.bulk_delete(project_id, request.ids)


@router.post("/delete-duplicates")
async def delete_duplicate_piles(
    project_id: str,
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileService = Depends(get_pile_service)
):
    return service.delete_duplicates(project_id)


@router.post("/publish")
async def publish_piles(
    project_id: str,
    request: PublishRequest,
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileService = Depends(get_pile_service)
):
    return service.set_published(project_id, request.ids, request.published)


@router.get("/{pile_id}", response_model=PileResponse)
async def get_pile(
    project_id: str,
    pile_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: PileService = Depends(get_pile_service)
):
    return service.get_pile(project_id, pile_id)


@router.put("/{pile_id}", response_model=PileResponse)
async def update_pile(
    project_id: str,
    pile_id: str,
    pile_data: PileUpdate,
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileService = Depends(get_pile_service)
):
    return service.update_pile(project_id, pile_id, pile_data)


@router.patch("/{pile_id}/status", response_model=PileResponse)
async def update_pile_status(
    project_id: str,
    pile_id: str,
    request: PileStatusUpdate,
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileService = Depends(get_pile_service)
):
    return service.set_status(project_id, pile_id, request.pile_status)


@router.delete("/{pile_id}", status_code=204)
async def delete_pile(
    project_id: str,
    pile_id: str,
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileService = Depends(get_pile_service)
):
    service.delete_pile(project_id, pile_id)


@router.put("/{pile_id}/notes", response_model=PileResponse)
async def set_pile_notes(
    project_id: str,
    pile_id: str,
    request: PileNoteUpdate,
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileService = Depends(get_pile_service)
):
    return service.set_notes(project_id, pile_id, request.notes)


@router.delete("/{pile_id}/notes", response_model=PileResponse)
async def clear_pile_notes(
    project_id: str,
    pile_id: str,
    user_data: Dict = Depends(require_project_access("editor")),
    service: PileService = Depends(get_pile_service)
):
    return service.set_notes(project_id, pile_id, None)
