# helpdesk/dependencies.py
import logging
from typing import Optional

from fastapi import Cookie, Depends, Request
from fastapi.security import OAuth2PasswordBearer

from helpdesk.auth import InvalidTokenError, TokenClaims, TokenService
from helpdesk.config import Settings
from helpdesk.errors import Forbidden, RateLimited, Unauthorized

logger = logging.getLogger(__name__)

# auto_error=False so a missing header reaches our own 401 message
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


async def get_db(request: Request):
    async with request.app.state.database.session() as session:
        yield session


def rate_limit(request: Request):
    origin = request.client.host if request.client else "unknown"
    if not request.app.state.rate_limiter.hit(origin):
        logger.warning("Rate limit exceeded for %s on %s", origin, request.url.path)
        raise RateLimited()


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    cookie_token: Optional[str] = Cookie(default=None, alias="token"),
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
) -> TokenClaims:
    # The cookie carrier is only issued in production
    if not token and settings.is_production:
        token = cookie_token
    if not token:
        raise Unauthorized("Access token required")

    try:
        user = tokens.verify(token)
    except InvalidTokenError:
        raise Forbidden("Invalid token")

    request.state.user = user
    return user


async def require_admin(current_user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
    if current_user.role != "admin":
        raise Forbidden("Forbidden")
    return current_user
