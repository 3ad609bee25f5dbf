import logging
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, List, Optional

from app.database.supabase_client import fetch_all
from app.modules.heatmap.coordinates import (
    normalize_code, is_supported, get_coordinate_system_name, convert_to_lat_lng,
    get_center, detect_state_plane_zone
)
from app.modules.heatmap.schemas import HeatmapPoint, HeatmapResponse
from app.modules.piles.status import compute_status, to_number

logger = logging.getLogger(__name__)

HEATMAP_FIELDS = (
    "id, pile_id, pile_number, northing, easting, embedment, design_embedment, "
    "pile_status, block, pile_type, installation_date, start_date, published"
)


class HeatmapService:
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

    def resolve_coordinate_system(self, project: Dict[str, Any]) -> Optional[str]:
        """Configured zone, else one detected from the project location"""
        code = project.get("coordinate_system")
        if code and is_supported(code):
            return normalize_code(code)
        lat = to_number(project.get("location_lat"))
        lng = to_number(project.get("location_lng"))
        if lat is not None and lng is not None:
            return detect_state_plane_zone(lat, lng)
        return None

    def get_heatmap(self, project_id: str, published_only: bool = False) -> HeatmapResponse:
        project = self._get_project(project_id)
        tolerance = project.get("embedment_tolerance")
        code = self.resolve_coordinate_system(project)

        def build_query():
            query = self.supabase.table("piles")\
                .select(HEATMAP_FIELDS)\
                .eq("project_id", project_id)\
                .not_.is_("northing", "null")\
                .not_.is_("easting", "null")
            if published_only:
                query = query.eq("published", True)
            return query.order("created_at")

        try:
            piles = fetch_all(build_query)
        except Exception as e:
            logger.error(f"Error fetching heatmap piles for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Error fetching piles")

        status_counts = {"accepted": 0, "tolerance": 0, "refusal": 0, "pending": 0}
        points: List[HeatmapPoint] = []
        skipped = 0
        for pile in piles:
            northing = to_number(pile.get("northing"))
            easting = to_number(pile.get("easting"))
            location = convert_to_lat_lng(easting, northing, code) if code and northing is not None and easting is not None else None
            if not location:
                skipped += 1
                continue
            status = compute_status(pile, tolerance)
            status_counts[status] += 1
            points.append(HeatmapPoint(
                id=pile["id"],
                pile_tag=pile.get("pile_id") or pile.get("pile_number"),
                lat=location["lat"],
                lng=location["lng"],
                status=status,
                actual_embedment=to_number(pile.get("embedment")),
                design_embedment=to_number(pile.get("design_embedment")),
                block=pile.get("block"),
                pile_type=pile.get("pile_type"),
                installation_date=pile.get("installation_date") or pile.get("start_date")
            ))

        if skipped:
            logger.warning(f"Skipped {skipped} piles without convertible coordinates in project {project_id}")
        return HeatmapResponse(
            points=points,
            status_counts=status_counts,
            center=get_center([{"lat": p.lat, "lng": p.lng} for p in points]),
            coordinate_system=code,
            coordinate_system_name=get_coordinate_system_name(code),
            skipped=skipped
        )
