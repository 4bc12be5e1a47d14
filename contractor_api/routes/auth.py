"""
Admin authentication routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from contractor_api.credentials import CredentialManager
from contractor_api.dependencies import get_credential_manager, get_session_issuer
from contractor_api.guards import require_admin
from contractor_api.records import ADMIN_USERS, AdminUserRecord
from contractor_api.schemas import (
    AdminLoginRequest,
    AdminLoginResponse,
    AdminMeResponse,
    AdminOut,
    AdminRegistered,
    AdminRegisterRequest,
    ChangePasswordRequest,
    MessageResponse,
)
from contractor_api.sessions import SessionIssuer

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=AdminLoginResponse)
def login(
    payload: AdminLoginRequest,
    credentials: CredentialManager = Depends(get_credential_manager),
    sessions: SessionIssuer = Depends(get_session_issuer),
):
    admin = credentials.authenticate_admin(payload.username, payload.password)
    token = sessions.issue(
        subject=admin.id, kind="admin", role=admin.role, name=admin.username
    )
    return AdminLoginResponse(
        message="Login successful", token=token, user=AdminOut.model_validate(admin)
    )


@router.post("/register", response_model=AdminRegistered, status_code=201)
def register(
    payload: AdminRegisterRequest,
    credentials: CredentialManager = Depends(get_credential_manager),
):
    """Only allowed while no admin account exists."""
    admin = credentials.register_first_admin(
        payload.username, payload.email, payload.password
    )
    return AdminRegistered(message="Admin user created successfully", user_id=admin.id)


@router.get("/me", response_model=AdminMeResponse)
def me(admin: AdminUserRecord = Depends(require_admin)):
    return AdminMeResponse(user=AdminOut.model_validate(admin))


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    admin: AdminUserRecord = Depends(require_admin),
    credentials: CredentialManager = Depends(get_credential_manager),
):
    credentials.change_password(
        ADMIN_USERS, admin, payload.current_password, payload.new_password
    )
    return MessageResponse(message="Password changed successfully")
