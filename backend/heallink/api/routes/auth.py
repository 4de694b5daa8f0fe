"""
Authentication routes.

Endpoints:
    POST /register  — Create an account and its role profile, start a session
    POST /login     — Verify credentials, start a session
    POST /logout    — End the current session (idempotent)
    GET  /user      — The authenticated account
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import AliasChoices, Field
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.api.middleware.auth import (
    end_session,
    get_app_settings,
    get_current_user,
    get_session_store,
    request_token,
    security,
    start_session,
)
from heallink.api.middleware.sessions import SessionStore
from heallink.api.schemas import AccountResponse, ApiModel, MessageResponse
from heallink.config import Settings
from heallink.db.database import get_db
from heallink.exceptions import InvalidCredentials
from heallink.models.user import User
from heallink.services import account_service

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class ProfileFields(ApiModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    # Doctor / pharmacy
    specialization: Optional[str] = None
    hospital: Optional[str] = None
    license_number: Optional[str] = None
    # Patient
    date_of_birth: Optional[date] = None
    blood_group: Optional[str] = None
    emergency_contact: Optional[str] = None
    insurance_info: Optional[str] = None


class RegisterRequest(ApiModel):
    username: str = ""
    password: str = ""
    role: str = ""
    health_id: Optional[str] = None
    email: Optional[str] = None
    profile_data: Optional[ProfileFields] = Field(
        default=None,
        validation_alias=AliasChoices("profileData", "profileFields", "profile_data"),
    )


class LoginRequest(ApiModel):
    username: str
    password: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/register", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
):
    """Register a doctor, patient or pharmacy and log the new account in."""
    profile_data = payload.profile_data.model_dump(exclude_none=True) if payload.profile_data else {}
    user = await account_service.register_account(
        db,
        username=payload.username.strip(),
        password=payload.password,
        role=payload.role,
        health_id=payload.health_id,
        email=payload.email,
        profile_data=profile_data,
    )
    await db.commit()

    start_session(response, user, sessions, settings)
    return user


@router.post("/login", response_model=AccountResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
):
    try:
        user = await account_service.authenticate(db, payload.username, payload.password)
    except InvalidCredentials:
        logger.info("Failed login attempt")
        raise

    start_session(response, user, sessions, settings)
    return user


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
):
    end_session(request_token(request, credentials, settings), response, sessions, settings)
    logger.info("Session ended")
    return MessageResponse(message="Logged out")


@router.get("/user", response_model=AccountResponse)
async def current_user(current_user: User = Depends(get_current_user)):
    return current_user
