from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Any, Literal
from datetime import datetime

PILE_TEXT_FIELDS = (
    "pile_id", "pile_number", "pile_location", "block", "pile_type", "pile_size",
    "pile_color", "zone", "installation_date", "start_date", "start_time",
    "stop_time", "duration", "inspector_name", "notes"
)
PILE_NUMERIC_FIELDS = (
    "start_z", "end_z", "embedment", "design_embedment", "gain_per_30_seconds",
    "northing", "easting"
)

PileStatus = Literal["pending", "accepted", "tolerance", "refusal"]


class PileFields(BaseModel):
    """Form fields shared by manual entry, field entry and edits. Blank strings become None."""
    pile_id: Optional[str] = None
    pile_number: Optional[str] = None
    pile_location: Optional[str] = None
    block: Optional[str] = None
    pile_type: Optional[str] = None
    pile_size: Optional[str] = None
    pile_color: Optional[str] = None
    zone: Optional[str] = None
    installation_date: Optional[str] = None
    start_date: Optional[str] = None
    start_time: Optional[str] = None
    stop_time: Optional[str] = None
    duration: Optional[str] = None
    start_z: Optional[float] = None
    end_z: Optional[float] = None
    embedment: Optional[float] = None
    design_embedment: Optional[float] = None
    gain_per_30_seconds: Optional[float] = None
    machine: Optional[int] = None
    inspector_name: Optional[str] = None
    notes: Optional[str] = None
    northing: Optional[float] = None
    easting: Optional[float] = None

    @field_validator(*PILE_TEXT_FIELDS, mode="before")
    @classmethod
    def blank_text_to_none(cls, value: Any):
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator(*PILE_NUMERIC_FIELDS, mode="before")
    @classmethod
    def blank_number_to_none(cls, value: Any):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("machine", mode="before")
    @classmethod
    def parse_machine(cls, value: Any):
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError):
            raise ValueError("machine must be a whole number")

    @model_validator(mode="after")
    def derive_embedment(self):
        if not self.embedment and self.start_z is not None and self.end_z is not None:
            self.embedment = round(self.start_z - self.end_z, 4)
        return self


class PileCreate(PileFields):
    pile_id: str
    pile_number: str
    pile_status: PileStatus = "pending"
    published: bool = False


class FieldEntryCreate(PileFields):
    pile_id: str
    pile_number: str
    inspector_name: str


class PileUpdate(PileFields):
    pile_status: Optional[PileStatus] = None
    published: Optional[bool] = None


class PileStatusUpdate(BaseModel):
    pile_status: PileStatus


class PileNoteUpdate(BaseModel):
    notes: str = Field(min_length=1)

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, value: Any):
        return value.strip() if isinstance(value, str) else value


class PileIdsRequest(BaseModel):
    ids: List[str] = Field(min_length=1)


class PublishRequest(BaseModel):
    ids: Optional[List[str]] = None
    published: bool = True


class PileResponse(BaseModel):
    id: str
    project_id: str
    pile_id: Optional[str] = None
    pile_number: Optional[str] = None
    pile_location: Optional[str] = None
    block: Optional[str] = None
    pile_type: Optional[str] = None
    pile_size: Optional[str] = None
    pile_color: Optional[str] = None
    pile_status: Optional[str] = None
    zone: Optional[str] = None
    installation_date: Optional[str] = None
    start_date: Optional[str] = None
    start_time: Optional[str] = None
    stop_time: Optional[str] = None
    duration: Optional[str] = None
    start_z: Optional[float] = None
    end_z: Optional[float] = None
    embedment: Optional[float] = None
    design_embedment: Optional[float] = None
    gain_per_30_seconds: Optional[float] = None
    machine: Optional[int] = None
    inspector_name: Optional[str] = None
    notes: Optional[str] = None
    published: Optional[bool] = False
    northing: Optional[float] = None
    easting: Optional[float] = None
    status: Optional[str] = None  # derived, see piles/status.py
    is_duplicate: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PileStats(BaseModel):
    total: int = 0
    accepted: int = 0
    tolerance: int = 0
    refusal: int = 0
    pending: int = 0
    duplicates: int = 0


class PileListResponse(BaseModel):
    piles: List[PileResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    stats: PileStats


class ImportRowError(BaseModel):
    row: int
    errors: List[str]


class ImportResponse(BaseModel):
    imported: int
    skipped_duplicates: int
    total_rows: int
    mapped_columns: dict
    errors: List[ImportRowError]
    error_summary: dict
    error_count: int
