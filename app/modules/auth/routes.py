from fastapi import APIRouter, Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    ForgotPasswordRequest, MeResponse
)
from app.modules.auth.service import AuthService
from app.core.dependencies import (
    get_current_user_id, get_auth_service, get_account_type, is_super_admin, get_access_cache
)
from app.config.permissions_config import can_edit, get_capabilities
from app.database.supabase_client import get_supabase
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])

# Security scheme for JWT Bearer token
security = HTTPBearer()


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.post("/forgot-password", status_code=200)
async def forgot_password(
    request: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service)
):
    service.send_password_reset(request.email)
    return {"message": "If an account exists for this email, a reset link has been sent"}


@router.get("/me", response_model=MeResponse)
async def get_me(
    current_user: Dict = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
    supabase: Client = Depends(get_supabase),
    cache: Dict = Depends(get_access_cache)
):
    """Get current authenticated user with account type and capabilities (for frontend UI)."""
    metadata = current_user.get("user_metadata") or {}
    account_type = get_account_type(current_user)
    super_admin = is_super_admin(current_user["id"], supabase, cache)
    return MeResponse(
        id=current_user["id"],
        email=current_user.get("email"),
        first_name=metadata.get("first_name"),
        last_name=metadata.get("last_name"),
        account_type=account_type,
        can_edit=can_edit(account_type) or super_admin,
        is_super_admin=super_admin,
        has_completed_project_setup=service.has_completed_project_setup(current_user["id"]),
        capabilities=get_capabilities(account_type, is_super_admin=super_admin)
    )
