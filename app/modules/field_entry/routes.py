from fastapi import APIRouter, Depends, Request
from app.config import settings
from app.core.rate_limit import limiter
from app.database.supabase_client import get_supabase
from app.modules.field_entry.schemas import FieldEntryProject, FieldEntryResult
from app.modules.field_entry.service import FieldEntryService
from app.modules.pile_lookup.schemas import PileLookupRow
from app.modules.piles.schemas import FieldEntryCreate
from supabase import Client

router = APIRouter(prefix="/field-entry", tags=["field-entry"])


def get_field_entry_service(supabase: Client = Depends(get_supabase)) -> FieldEntryService:
    return FieldEntryService(supabase)


@router.get("/{project_id}", response_model=FieldEntryProject)
async def get_field_entry_project(
    project_id: str,
    service: FieldEntryService = Depends(get_field_entry_service)
):
    """Project header for the public form"""
    return service.get_project(project_id)


@router.get("/{project_id}/lookup/{tag}", response_model=PileLookupRow)
async def lookup_pile_tag(
    project_id: str,
    tag: str,
    service: FieldEntryService = Depends(get_field_entry_service)
):
    """Design data for a pile tag, used to autofill the form"""
    return service.lookup(project_id, tag)


@router.post("/{project_id}", response_model=FieldEntryResult, status_code=201)
@limiter.limit(settings.field_entry_rate_limit)
async def submit_field_entry(
    request: Request,
    project_id: str,
    entry: FieldEntryCreate,
    service: FieldEntryService = Depends(get_field_entry_service)
):
    return service.submit(project_id, entry)
