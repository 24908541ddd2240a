# helpdesk/routers/auth.py
import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Header, Response
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.auth import (
    InvalidTokenError,
    TokenService,
    dummy_verify,
    get_password_hash,
    verify_password,
)
from helpdesk.config import Settings
from helpdesk.dependencies import get_db, get_settings, get_token_service, rate_limit
from helpdesk.errors import Conflict, Unauthorized
from helpdesk.models import User
from helpdesk.schemas.auth import AuthResponse, UserLogin, UserOut, UserRegister

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"], dependencies=[Depends(rate_limit)])


def user_to_out(user: User) -> UserOut:
    return UserOut(id=user.id, username=user.username, email=user.email, role=user.role)


def set_token_cookie(response: Response, token: str, settings: Settings):
    # HttpOnly cookie is only handed out in production
    if not settings.is_production:
        return
    response.set_cookie(
        "token",
        token,
        httponly=True,
        secure=True,
        samesite="strict",
        max_age=settings.access_token_expire_minutes * 60,
    )


# -----------------------------
# Register
# -----------------------------
@router.post("/register", status_code=201, response_model=AuthResponse)
async def register(
    payload: UserRegister,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
):
    # argon2 is CPU bound; keep it off the event loop
    hashed = await run_in_threadpool(get_password_hash, payload.password)
    user = User(
        username=payload.username,
        email=payload.email,
        password=hashed,
        role="user",
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Username or email already exists")

    logger.info("Registered user %s", user.username)
    token = tokens.issue(user.id, user.username, user.role)
    set_token_cookie(response, token, settings)
    return AuthResponse(token=token, user=user_to_out(user))


# -----------------------------
# Login
# -----------------------------
@router.post("/login", response_model=AuthResponse)
async def login(
    payload: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
):
    user = await db.scalar(
        select(User).where(or_(User.username == payload.username, User.email == payload.username.lower()))
    )

    # Same answer for unknown account and bad password
    if user is None:
        await run_in_threadpool(dummy_verify)
        logger.info("Failed login for %s", payload.username)
        raise Unauthorized("Invalid credentials")
    if not await run_in_threadpool(verify_password, payload.password, user.password):
        logger.info("Failed login for %s", payload.username)
        raise Unauthorized("Invalid credentials")

    token = tokens.issue(user.id, user.username, user.role)
    set_token_cookie(response, token, settings)
    logger.info("User %s logged in", user.username)
    return AuthResponse(token=token, user=user_to_out(user))


# -----------------------------
# Verify
# -----------------------------
@router.get("/verify")
async def verify(
    authorization: Optional[str] = Header(default=None),
    cookie_token: Optional[str] = Cookie(default=None, alias="token"),
    tokens: TokenService = Depends(get_token_service),
):
    raw = authorization or cookie_token
    token = raw.split(" ", 1)[1].strip() if raw and raw.startswith("Bearer ") else raw
    if not token:
        raise Unauthorized("No token provided")

    try:
        claims = tokens.verify(token)
    except InvalidTokenError:
        raise Unauthorized("Invalid or expired token")
    return {"valid": True, "user": claims.model_dump()}
