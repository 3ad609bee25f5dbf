from pydantic import BaseModel
from typing import Optional, List, Dict, Any, Union


class CreateUserRequest(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    account_type: Optional[str] = "epc"


class CreatedUser(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class CreateUserResponse(BaseModel):
    success: bool = True
    user: CreatedUser
    temporary_password: str


class CreateProjectRequest(BaseModel):
    project_name: Optional[str] = None
    project_location: Optional[str] = None
    total_project_piles: Optional[Union[int, str]] = None
    tracker_system: Optional[str] = None
    geotech_company: Optional[str] = None
    role: Optional[str] = None
    embedment_tolerance: Optional[Union[float, str]] = None


class AssignUserRequest(BaseModel):
    user_id: Optional[str] = None
    project_id: Optional[str] = None
    role: Optional[str] = None
    is_owner: bool = False


class RemoveUserRequest(BaseModel):
    user_id: Optional[str] = None
    project_id: Optional[str] = None


class UserIdRequest(BaseModel):
    user_id: Optional[str] = None


class ProjectIdRequest(BaseModel):
    project_id: Optional[str] = None


class UserProjectSummary(BaseModel):
    project_id: str
    project_name: str
    role: Optional[str] = None
    is_owner: bool = False


class AdminUser(BaseModel):
    id: str
    email: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    account_type: str = "epc"
    created_at: Optional[Any] = None
    email_confirmed: bool = False
    is_super_admin: bool = False
    projects: List[UserProjectSummary] = []


class ListUsersResponse(BaseModel):
    users: List[AdminUser]
    total: int

