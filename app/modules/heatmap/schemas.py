from pydantic import BaseModel
from typing import Optional, List, Dict


class HeatmapPoint(BaseModel):
    id: str
    pile_tag: Optional[str] = None
    lat: float
    lng: float
    status: str
    actual_embedment: Optional[float] = None
    design_embedment: Optional[float] = None
    block: Optional[str] = None
    pile_type: Optional[str] = None
    installation_date: Optional[str] = None


class LatLng(BaseModel):
    lat: float
    lng: float


class HeatmapResponse(BaseModel):
    points: List[HeatmapPoint]
    status_counts: Dict[str, int]
    center: Optional[LatLng] = None
    coordinate_system: Optional[str] = None
    coordinate_system_name: Optional[str] = None
    skipped: int = 0


class CoordinateSystem(BaseModel):
    code: str
    name: str
