from pydantic import BaseModel
from typing import Optional, List, Dict, Any


class ProjectStatistics(BaseModel):
    total_piles: int
    accepted: int
    refusals: int
    pending: int
    completion_percent: int


class ProjectDataResponse(BaseModel):
    project: Dict[str, Any]
    statistics: ProjectStatistics
    block_data: List[Dict[str, Any]]
    timeline: Dict[str, List[Dict[str, Any]]]


class GroupSummary(BaseModel):
    name: str
    total_piles: int
    accepted_count: int
    tolerance_count: int
    refusal_count: int
    pending_count: int
    slow_drive_time_count: int
    design_embedment: Optional[float] = None
    average_drive_time: float
    average_embedment: float


class GroupSummaryResponse(BaseModel):
    groups: List[GroupSummary]
    slow_drive_threshold_minutes: float
    embedment_tolerance: float
