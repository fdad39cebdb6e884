"""
Name: FastAPI Application Entry Point

Responsibilities:
  - Build the FastAPI application (metadata, middleware, routers, handlers)
  - Initialize the DB pool when DATABASE_URL is configured
  - Run the dev admin seed at startup
  - Expose the health check

Collaborators:
  - FastAPI / CORSMiddleware
  - RequestContextMiddleware: request id and logging context
  - auth_routes.router: session lifecycle + user administration

Notes:
  - Middleware order (bottom = first to execute): CORS -> RequestContext -> routes
  - Without DATABASE_URL the in-memory Credential Store is used (no pool)
  - /healthz follows the Kubernetes health check convention
"""

import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ..application.dev_seed_admin import ensure_dev_admin
from ..container import get_user_repository
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.middleware import REQUEST_ID_HEADER, RequestContextMiddleware
from ..domain.repositories import UserRepository
from ..identity.passwords import hash_password
from ..infrastructure.db.pool import close_pool, init_pool
from .auth_routes import router as auth_router
from .exception_handlers import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle. Validates settings and initializes pool."""
    settings = get_settings()

    if settings.is_production():
        settings.validate_security_requirements()

    if settings.uses_database():
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )

    try:
        try:
            ensure_dev_admin(
                settings,
                user_repo=get_user_repository(),
                password_hasher=hash_password,
                env=os.environ,
            )
        except Exception as e:
            logger.error(f"Startup failed: {e}")
            raise

        logger.info(
            "Catalog API starting up",
            extra={
                "app_env": settings.app_env,
                "store": "postgres" if settings.uses_database() else "in-memory",
                "access_ttl_minutes": settings.jwt_access_ttl_minutes,
                "refresh_ttl_days": settings.jwt_refresh_ttl_days,
            },
        )

        yield

    finally:
        close_pool()
        logger.info("Catalog API shutting down")


def _get_allowed_origins() -> list[str]:
    """CORS origins from settings, with fallback for import-time errors."""
    try:
        return get_settings().get_allowed_origins_list()
    except ValueError:
        return ["http://localhost:3000"]


def _get_cors_allow_credentials() -> bool:
    try:
        return get_settings().cors_allow_credentials
    except ValueError:
        return False


def create_app() -> FastAPI:
    app = FastAPI(
        title="Catalog API",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "auth",
                "description": "Sessions (JWT in httpOnly cookies) and user administration",
            },
        ],
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_get_allowed_origins(),
        allow_credentials=_get_cors_allow_credentials(),
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", REQUEST_ID_HEADER],
    )

    app.include_router(auth_router)
    register_exception_handlers(app)

    @app.get("/healthz")
    def healthz(
        request: Request, users: UserRepository = Depends(get_user_repository)
    ):
        """
        Health check del Credential Store.

        Returns:
            ok: True si el store responde
            db: "connected" o "disconnected"
            request_id: id de correlación del request
        """
        db_status = "disconnected"
        try:
            if users.ping():
                db_status = "connected"
        except Exception as e:
            logger.warning("Health check: DB unavailable", extra={"error": str(e)})

        return {
            "ok": db_status == "connected",
            "db": db_status,
            "request_id": getattr(request.state, "request_id", None),
        }

    return app


app = create_app()
