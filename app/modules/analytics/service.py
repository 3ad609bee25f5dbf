import logging
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, List

from app.config.settings import settings
from app.database.supabase_client import fetch_all
from app.modules.analytics.calculations import (
    build_statistics, build_block_distribution, build_timeline, summarize_groups
)
from app.modules.analytics.schemas import (
    ProjectDataResponse, ProjectStatistics, GroupSummary, GroupSummaryResponse
)
from app.modules.piles.status import resolve_tolerance

logger = logging.getLogger(__name__)

GROUP_FIELDS = "block, pile_type, duration, embedment, design_embedment, pile_status"


class AnalyticsService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_project(self, project_id: str) -> Dict[str, Any]:
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

    def _fetch_piles(self, project_id: str, columns: str, published_only: bool = False) -> List[Dict[str, Any]]:
        def build_query():
            query = self.supabase.table("piles").select(columns).eq("project_id", project_id)
            if published_only:
                query = query.eq("published", True)
            return query.order("created_at")
        try:
            return fetch_all(build_query)
        except Exception as e:
            logger.error(f"Error fetching pile data for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Error fetching pile data")

    def get_dashboard(self, project_id: str, published_only: bool = False) -> ProjectDataResponse:
        """Headline counts, top blocks and weekly/monthly install timeline"""
        project = self._get_project(project_id)
        try:
            count_query = self.supabase.table("piles")\
                .select("*", count="exact", head=True)\
                .eq("project_id", project_id)
            if published_only:
                count_query = count_query.eq("published", True)
            count_result = count_query.execute()
        except Exception as e:
            logger.error(f"Error counting piles for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Error fetching pile data")
        piles = self._fetch_piles(
            project_id, "embedment, design_embedment, block, pile_type, start_date, created_at", published_only
        )

        return ProjectDataResponse(
            project=project,
            statistics=ProjectStatistics(**build_statistics(
                piles, count_result.count or 0, project.get("total_project_piles"), project.get("embedment_tolerance")
            )),
            block_data=build_block_distribution(piles),
            timeline=build_timeline(piles)
        )

    def summarize_by(self, project_id: str, field: str, published_only: bool = False) -> GroupSummaryResponse:
        project = self._get_project(project_id)
        tolerance = project.get("embedment_tolerance")
        piles = self._fetch_piles(project_id, GROUP_FIELDS, published_only)
        groups = summarize_groups(piles, field, tolerance, settings.slow_drive_threshold_minutes)
        return GroupSummaryResponse(
            groups=[GroupSummary(**g) for g in groups],
            slow_drive_threshold_minutes=settings.slow_drive_threshold_minutes,
            embedment_tolerance=resolve_tolerance(tolerance)
        )
