from pydantic import BaseModel
from typing import Optional


class FieldEntryProject(BaseModel):
    id: str
    project_name: str
    project_location: Optional[str] = None


class FieldEntryResult(BaseModel):
    id: str
    pile_id: str
    pile_number: str
    inspector_name: str
    message: str
