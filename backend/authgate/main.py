"""AuthGate Backend - FastAPI Application Factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authgate.api import api_router
from authgate.core import async_session_maker, settings, setup_logging
from authgate.core.logging import get_logger
from authgate.middleware import RequestAuthorizerMiddleware
from authgate.middleware.request_authorizer import DOCS_PATHS, PUBLIC_PATHS

# Import all models to ensure they're registered with Base for Alembic
from authgate.models import IssuedToken, Principal  # noqa: F401
from authgate.services.expiry_sweeper import ExpirySweeper
from authgate.services.principals import PrincipalService

logger = get_logger("main")


async def _ensure_admin(session_factory: async_sessionmaker[AsyncSession]) -> None:
    if not (settings.admin_email and settings.admin_password):
        return
    async with session_factory() as db:
        await PrincipalService(db).ensure_admin(settings.admin_email, settings.admin_password)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    setup_logging(
        level=settings.log_level,
        format_type="structured" if not settings.debug else "dev",
    )
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    for warning in settings.check_security_configuration():
        logger.warning(f"Security configuration: {warning}")

    session_factory = app.state.session_factory
    await _ensure_admin(session_factory)

    sweeper: ExpirySweeper = app.state.expiry_sweeper
    await sweeper.start()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await sweeper.stop()


def create_app(session_factory: async_sessionmaker[AsyncSession] | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    session_factory = session_factory or async_session_maker

    app = FastAPI(
        title=settings.app_name,
        description="Token-based authentication service",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.session_factory = session_factory
    app.state.expiry_sweeper = ExpirySweeper(session_factory=session_factory)

    # Every non-public route requires a valid, unrevoked access token.
    # The docs routes only exist in debug mode and are public there.
    public_paths = PUBLIC_PATHS + DOCS_PATHS if settings.debug else PUBLIC_PATHS
    app.add_middleware(
        RequestAuthorizerMiddleware,
        session_factory=session_factory,
        public_paths=public_paths,
    )

    # CORS middleware - MUST be outermost (added last in Starlette LIFO order)
    # so that CORS headers are present on ALL responses, including 401s.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
        expose_headers=["Authorization"],
    )

    app.include_router(api_router)

    return app


# Application instance
app = create_app()
