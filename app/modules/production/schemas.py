from pydantic import BaseModel
from typing import Optional, List, Dict


class MachineStats(BaseModel):
    machine_id: str
    total_piles: int
    accepted_count: int
    tolerance_count: int
    refusal_count: int
    pending_count: int
    slow_drive_time_count: int
    average_drive_time: float
    average_embedment: float
    total_duration_minutes: float
    piles_per_block: Dict[str, int]
    piles_per_date: Dict[str, int]
    first_date: Optional[str] = None
    last_date: Optional[str] = None


class ProductionResponse(BaseModel):
    machines: List[MachineStats]
    total_piles: int
    preliminary_machines: List[MachineStats]
    preliminary_count: int
    slow_drive_threshold_minutes: float


class PreliminaryUploadResponse(BaseModel):
    success_count: int
    error_count: int
    skipped: int
    mapped_columns: Dict[str, str]
    errors: List[str]
