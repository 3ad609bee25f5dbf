from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class ProjectSetupRequest(BaseModel):
    project_name: str = Field(min_length=1)
    project_location: str = Field(min_length=1)
    total_project_piles: int = Field(ge=0)
    tracker_system: str
    geotech_company: str = Field(min_length=1)
    role: Optional[str] = None
    embedment_tolerance: Optional[float] = Field(default=None, ge=0)
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    coordinate_system: Optional[str] = None


class ProjectSettingsUpdate(BaseModel):
    project_name: Optional[str] = None
    project_location: Optional[str] = None
    total_project_piles: Optional[int] = Field(default=None, ge=0)
    tracker_system: Optional[str] = None
    geotech_company: Optional[str] = None
    role: Optional[str] = None
    embedment_tolerance: Optional[float] = Field(default=None, ge=0)
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    coordinate_system: Optional[str] = None


class ProjectResponse(BaseModel):
    id: str
    project_name: str
    project_location: Optional[str] = None
    total_project_piles: Optional[int] = 0
    tracker_system: Optional[str] = None
    geotech_company: Optional[str] = None
    role: Optional[str] = None
    embedment_tolerance: Optional[float] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    coordinate_system: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserProjectResponse(ProjectResponse):
    membership_role: Optional[str] = None
    is_owner: bool = False


class ProjectMemberResponse(BaseModel):
    id: str
    user_id: str
    project_id: str
    role: Optional[str] = None
    is_owner: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FieldEntryLinkResponse(BaseModel):
    project_id: str
    url: str


class ProjectListResponse(BaseModel):
    projects: List[UserProjectResponse]
