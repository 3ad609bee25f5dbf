from fastapi import APIRouter, Depends, File, UploadFile
from app.database.supabase_client import get_supabase
from app.modules.production.schemas import ProductionResponse, PreliminaryUploadResponse
from app.modules.production.service import ProductionService
from app.core.dependencies import require_project_access
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/projects/{project_id}/production", tags=["production"])


def get_production_service(supabase: Client = Depends(get_supabase)) -> ProductionService:
    return ProductionService(supabase)


@router.get("", response_model=ProductionResponse)
async def get_production(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: ProductionService = Depends(get_production_service)
):
    """Machine productivity for installed and preliminary piles"""
    published_only = not user_data["project_access"]["can_edit"]
    return service.get_production(project_id, published_only)


@router.post("/preliminary/upload", response_model=PreliminaryUploadResponse)
async def upload_preliminary_production(
    project_id: str,
    file: UploadFile = File(...),
    user_data: Dict = Depends(require_project_access("editor")),
    service: ProductionService = Depends(get_production_service)
):
    content = await file.read()
    return service.upload_preliminary(project_id, content, file.filename)


@router.delete("/preliminary")
async def delete_preliminary_production(
    project_id: str,
    user_data: Dict = Depends(require_project_access("editor")),
    service: ProductionService = Depends(get_production_service)
):
    return service.delete_preliminary(project_id)
