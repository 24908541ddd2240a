# helpdesk/auth.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

# Use argon2 for password hashing
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


class InvalidTokenError(Exception):
    pass


class TokenClaims(BaseModel):
    id: int
    username: str
    role: str
    iat: Optional[int] = None
    exp: Optional[int] = None


# Hash password
def get_password_hash(password: str):
    return pwd_context.hash(password)


# Verify password
def verify_password(plain_password: str, hashed_password: str):
    return pwd_context.verify(plain_password, hashed_password)


# Burn the same hashing time as a real check when the account does not exist
def dummy_verify():
    pwd_context.dummy_verify()


class TokenService:
    """Issues and verifies the signed bearer tokens used by every protected route.

    Tokens are stateless: the claims (user id, username, role) travel inside the
    signed JWT and are rebuilt on each request. ``now`` may be passed to both
    operations so expiry can be checked against a fixed clock.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 24 * 60):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_delta = timedelta(minutes=expire_minutes)

    def issue(self, user_id: int, username: str, role: str, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        to_encode = {
            "id": user_id,
            "username": username,
            "role": role,
            "iat": issued_at,
            "exp": issued_at + self.expires_delta,
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str, now: datetime | None = None) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidTokenError(str(exc)) from exc

        expires_at = payload.get("exp")
        if not isinstance(expires_at, (int, float)):
            raise InvalidTokenError("Token has no expiry")
        current = now or datetime.now(timezone.utc)
        if current.timestamp() >= expires_at:
            raise InvalidTokenError("Token has expired")

        try:
            return TokenClaims(**payload)
        except ValidationError as exc:
            raise InvalidTokenError("Token is missing identity claims") from exc
