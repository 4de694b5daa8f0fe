"""
Account registration and credential checks.

Registration writes the account and its role profile in the caller's
transaction; nothing is committed here, so a failure on either row
leaves neither behind.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.api.middleware.auth import dummy_verify, hash_password, verify_password
from heallink.exceptions import DuplicateUsername, InvalidCredentials, InvalidRole, ValidationError
from heallink.models.user import User, UserRole
from heallink.services.profile_service import build_profile

logger = logging.getLogger(__name__)


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def register_account(
    db: AsyncSession,
    *,
    username: str,
    password: str,
    role: str,
    health_id: str | None = None,
    email: str | None = None,
    profile_data: dict[str, Any] | None = None,
) -> User:
    if not username or not password or not role:
        raise ValidationError("Username, password, and role are required")

    try:
        user_role = UserRole(role)
    except ValueError:
        raise InvalidRole()

    if await get_user_by_username(db, username) is not None:
        raise DuplicateUsername()

    if health_id:
        existing = await db.execute(select(User.id).where(User.health_id == health_id))
        if existing.scalar_one_or_none() is not None:
            raise ValidationError("Health ID already registered")

    user = User(
        username=username,
        hashed_password=hash_password(password),
        role=user_role,
        health_id=health_id or None,
        email=email,
    )
    db.add(user)
    try:
        await db.flush()
        db.add(build_profile(user, profile_data or {}))
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same username.
        raise DuplicateUsername()

    logger.info("Registered %s account %s", user_role.value, user.id)
    return user


async def authenticate(db: AsyncSession, username: str, password: str) -> User:
    user = await get_user_by_username(db, username)
    if user is None:
        dummy_verify()
        raise InvalidCredentials()
    if not verify_password(password, user.hashed_password):
        raise InvalidCredentials()
    return user
