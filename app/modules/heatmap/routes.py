from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.heatmap.coordinates import list_coordinate_systems
from app.modules.heatmap.schemas import HeatmapResponse, CoordinateSystem
from app.modules.heatmap.service import HeatmapService
from app.core.dependencies import require_project_access
from supabase import Client
from typing import Dict, List

router = APIRouter(prefix="/projects/{project_id}/heatmap", tags=["heatmap"])
coordinate_systems_router = APIRouter(prefix="/coordinate-systems", tags=["heatmap"])


def get_heatmap_service(supabase: Client = Depends(get_supabase)) -> HeatmapService:
    return HeatmapService(supabase)


@router.get("", response_model=HeatmapResponse)
async def get_heatmap(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: HeatmapService = Depends(get_heatmap_service)
):
    """Pile locations converted to lat/lng and colored by status"""
    published_only = not user_data["project_access"]["can_edit"]
    return service.get_heatmap(project_id, published_only)


@coordinate_systems_router.get("", response_model=List[CoordinateSystem])
async def get_coordinate_systems():
    return list_coordinate_systems()
