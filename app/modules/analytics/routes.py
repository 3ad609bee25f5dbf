from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.analytics.schemas import ProjectDataResponse, GroupSummaryResponse
from app.modules.analytics.service import AnalyticsService
from app.core.dependencies import require_project_access
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/projects/{project_id}/analytics", tags=["analytics"])


def get_analytics_service(supabase: Client = Depends(get_supabase)) -> AnalyticsService:
    return AnalyticsService(supabase)


@router.get("/dashboard", response_model=ProjectDataResponse)
async def get_dashboard(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: AnalyticsService = Depends(get_analytics_service)
):
    return service.get_dashboard(project_id, not user_data["project_access"]["can_edit"])


@router.get("/blocks", response_model=GroupSummaryResponse)
async def get_block_summaries(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """Production summary per block"""
    return service.summarize_by(project_id, "block", not user_data["project_access"]["can_edit"])


@router.get("/pile-types", response_model=GroupSummaryResponse)
async def get_pile_type_summaries(
    project_id: str,
    user_data: Dict = Depends(require_project_access("member")),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """Production summary per pile type (zone view)"""
    return service.summarize_by(project_id, "pile_type", not user_data["project_access"]["can_edit"])
