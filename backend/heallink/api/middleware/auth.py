from typing import Optional

from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.api.middleware.sessions import SessionStore
from heallink.config import Settings
from heallink.db.database import get_db
from heallink.exceptions import Forbidden, Unauthenticated
from heallink.models.user import User, UserRole

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify() -> None:
    """Spend the same time as a real verify when the account does not exist."""
    pwd_context.dummy_verify()


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def encode_session_token(sid: str, settings: Settings) -> str:
    return jwt.encode({"sid": sid}, settings.SESSION_SECRET, algorithm=settings.SESSION_ALGORITHM)


def decode_session_token(token: str, settings: Settings) -> Optional[str]:
    try:
        payload = jwt.decode(token, settings.SESSION_SECRET, algorithms=[settings.SESSION_ALGORITHM])
    except JWTError:
        return None
    return payload.get("sid")


def start_session(response: Response, user: User, sessions: SessionStore, settings: Settings) -> str:
    sid = sessions.create(user.id)
    token = encode_session_token(sid, settings)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_TTL_MINUTES * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    return token


def request_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials], settings: Settings) -> Optional[str]:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token is None and credentials is not None:
        token = credentials.credentials
    return token


def end_session(token: Optional[str], response: Response, sessions: SessionStore, settings: Settings) -> None:
    """Drop the session behind ``token``; a missing or stale token is not an error."""
    if token:
        sid = decode_session_token(token, settings)
        if sid:
            sessions.destroy(sid)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
) -> User:
    token = request_token(request, credentials, settings)
    if not token:
        raise Unauthenticated()
    sid = decode_session_token(token, settings)
    account_id = sessions.get(sid) if sid else None
    if account_id is None:
        raise Unauthenticated()
    user = await db.get(User, account_id)
    if user is None:
        sessions.destroy(sid)
        raise Unauthenticated()
    return user


def ensure_role(user: User, role: UserRole) -> None:
    if user.role != role:
        raise Forbidden(f"{role.value} access required")


def require_role(role: UserRole):
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        ensure_role(current_user, role)
        return current_user
    return role_checker
