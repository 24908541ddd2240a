# helpdesk/main.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from helpdesk.auth import TokenService
from helpdesk.config import INSECURE_DEV_SECRET, Settings
from helpdesk.db import Database
from helpdesk.errors import register_exception_handlers
from helpdesk.rate_limit import RateLimiter
from helpdesk.routers import auth, tickets, users

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # -------------------------
    # Startup / shutdown
    # -------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        secret = settings.jwt_secret
        if not secret:
            logger.warning("JWT_SECRET is not set; falling back to an insecure development secret")
            secret = INSECURE_DEV_SECRET

        database = Database(settings.database_url)
        await database.init(settings.admin_password)

        app.state.database = database
        app.state.token_service = TokenService(
            secret,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.access_token_expire_minutes,
        )
        app.state.rate_limiter = RateLimiter(
            window_seconds=settings.rate_limit_window_seconds,
            max_requests=settings.rate_limit_max,
            max_entries=settings.rate_limit_max_entries,
        )
        logger.info("Helpdesk API ready (%s)", settings.environment)
        try:
            yield
        finally:
            await database.dispose()
            logger.info("Helpdesk API stopped")

    # -------------------------
    # Initialize FastAPI App
    # -------------------------
    app = FastAPI(title="Helpdesk API", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # -------------------------
    # Root / Health
    # -------------------------
    @app.get("/")
    def read_root():
        return {"message": "Helpdesk API Server is Running!", "health": "/api/health"}

    @app.get("/api/health")
    def health():
        return {
            "status": "OK",
            "message": "Server is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # -------------------------
    # Include Routers
    # -------------------------
    app.include_router(auth.router)
    app.include_router(tickets.router)
    app.include_router(users.router)

    return app


def run():
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
