"""
End-user account routes: self-service registration, login and profile.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from contractor_api.credentials import CredentialManager
from contractor_api.dependencies import get_credential_manager, get_session_issuer
from contractor_api.guards import require_user
from contractor_api.records import USERS, UserRecord
from contractor_api.schemas import (
    ChangePasswordRequest,
    MessageResponse,
    UserAuthResponse,
    UserLoginRequest,
    UserMeResponse,
    UserOut,
    UserRegisterRequest,
)
from contractor_api.sessions import SessionIssuer

router = APIRouter(prefix="/user-auth", tags=["user-auth"])


def _token_for(sessions: SessionIssuer, user: UserRecord) -> str:
    return sessions.issue(subject=user.id, kind="user", role=user.role, name=user.email)


@router.post("/register", response_model=UserAuthResponse, status_code=201)
def register(
    payload: UserRegisterRequest,
    credentials: CredentialManager = Depends(get_credential_manager),
    sessions: SessionIssuer = Depends(get_session_issuer),
):
    user = credentials.register_user(
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        address=payload.address,
    )
    return UserAuthResponse(
        message="User registered successfully",
        token=_token_for(sessions, user),
        user=UserOut.model_validate(user),
    )


@router.post("/login", response_model=UserAuthResponse)
def login(
    payload: UserLoginRequest,
    credentials: CredentialManager = Depends(get_credential_manager),
    sessions: SessionIssuer = Depends(get_session_issuer),
):
    user = credentials.authenticate_user(payload.email, payload.password)
    return UserAuthResponse(
        message="Login successful",
        token=_token_for(sessions, user),
        user=UserOut.model_validate(user),
    )


@router.get("/me", response_model=UserMeResponse)
def me(user: UserRecord = Depends(require_user)):
    return UserMeResponse(user=UserOut.model_validate(user))


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    user: UserRecord = Depends(require_user),
    credentials: CredentialManager = Depends(get_credential_manager),
):
    credentials.change_password(
        USERS, user, payload.current_password, payload.new_password
    )
    return MessageResponse(message="Password changed successfully")
