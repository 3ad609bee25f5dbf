from pydantic import BaseModel, EmailStr
from typing import Optional, List, Literal


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    account_type: Literal["epc", "owner"] = "epc"


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class MeResponse(BaseModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    account_type: str
    can_edit: bool
    is_super_admin: bool
    has_completed_project_setup: bool
    capabilities: List[str]
