# helpdesk/config.py
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Only ever used when JWT_SECRET is missing; never rely on it outside local dev.
INSECURE_DEV_SECRET = "your-super-secret-jwt-key-change-this-in-production"


class Settings(BaseModel):
    port: int = 5000
    frontend_url: str = "http://localhost:4028"
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 24 * 60
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///./helpdesk.db"

    # Auth endpoint throttling
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max: int = 20
    rate_limit_max_entries: int = 10_000

    admin_password: str = "admin123"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            port=int(os.getenv("PORT", 5000)),
            frontend_url=os.getenv("FRONTEND_URL", "http://localhost:4028"),
            jwt_secret=os.getenv("JWT_SECRET") or None,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 24 * 60)),
            environment=os.getenv("APP_ENV", "development"),
            database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./helpdesk.db"),
            rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", 15 * 60)),
            rate_limit_max=int(os.getenv("RATE_LIMIT_MAX", 20)),
            rate_limit_max_entries=int(os.getenv("RATE_LIMIT_MAX_ENTRIES", 10_000)),
            admin_password=os.getenv("ADMIN_PASSWORD", "admin123"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
