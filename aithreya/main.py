"""
Main FastAPI application entry point.
"""
from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from aithreya.api.auth import router as auth_router
from aithreya.api.content import router as content_router
from aithreya.api.progress import router as progress_router
from aithreya.core.config import Settings, get_settings
from aithreya.core.database import create_db_engine, create_session_factory, init_db
from aithreya.core.errors import register_exception_handlers
from aithreya.core.middleware import LoggingMiddleware, configure_logging
from aithreya.core.security import PasswordHasher, TokenService
from aithreya.models.orm import utcnow

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")
    init_db(app.state.engine)
    yield
    logger.info(f"Shutting down {settings.APP_NAME}")
    app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; every collaborator hangs off ``app.state``."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        docs_url=settings.DOCS_URL if not settings.is_production() else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    engine = create_db_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.tokens = TokenService(settings)
    app.state.hasher = PasswordHasher(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(auth_router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["auth"])
    app.include_router(content_router, prefix=f"{settings.API_V1_PREFIX}/content", tags=["content"])
    app.include_router(progress_router, prefix=f"{settings.API_V1_PREFIX}/progress", tags=["progress"])

    @app.get("/health", tags=["Health"])
    def health_check():
        """Basic health check endpoint."""
        return {
            "success": True,
            "message": f"{settings.APP_NAME} is running",
            "timestamp": utcnow().isoformat(),
            "environment": settings.ENVIRONMENT,
        }

    @app.get("/", tags=["Root"])
    def root():
        return {
            "success": True,
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "documentation": settings.DOCS_URL if not settings.is_production() else None,
            "apiPrefix": settings.API_V1_PREFIX,
        }

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "aithreya.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=False,
    )
