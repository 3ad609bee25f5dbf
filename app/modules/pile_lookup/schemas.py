from pydantic import BaseModel
from typing import Optional, List, Dict
from datetime import datetime


class PileLookupRow(BaseModel):
    id: Optional[str] = None
    project_id: str
    pile_tag: str
    block: Optional[str] = None
    pile_type: Optional[str] = None
    design_embedment: Optional[float] = None
    northing: Optional[float] = None
    easting: Optional[float] = None
    pile_size: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PileLookupUploadResponse(BaseModel):
    inserted: int
    skipped: int
    mapped_columns: Dict[str, str]
    errors: List[str]


class PileLookupListResponse(BaseModel):
    rows: List[PileLookupRow]
    total: int
