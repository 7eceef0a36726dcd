"""
app/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Builds the AppContext (restores the persisted session) on startup
- Registers API routes (session, onboarding, phone)
- No business logic should be written here
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional
import time

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.context import AppContext
from app.db.mongo import check_database_health
from app.api import onboarding, phone, session

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

ContextFactory = Callable[[], Awaitable[AppContext]]


def create_app(context_factory: Optional[ContextFactory] = None) -> FastAPI:
    """
    Builds the FastAPI app.

    Args:
        context_factory: Coroutine returning the AppContext; defaults to
            AppContext.create() from settings
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Handles startup and shutdown events.
        """
        logger.info("🚀 Starting Capitalized client core...")

        try:
            logger.info("Validating configuration...")
            validate_settings()
            logger.info("✅ Configuration validated")

            factory = context_factory or AppContext.create
            app.state.context = await factory()

            facade = app.state.context.facade
            logger.info(
                f"✅ Session restored (logged_in={facade.is_logged_in})"
            )
            logger.info(f"Environment: {settings.ENVIRONMENT}")
            logger.info(f"Session backend: {settings.SESSION_BACKEND}")

        except Exception as e:
            logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
            raise

        yield  # Application runs here

        logger.info("🛑 Shutting down...")
        try:
            await app.state.context.close()
            logger.info("👋 Shut down cleanly")
        except Exception as e:
            logger.error(f"Error during shutdown: {str(e)}", exc_info=True)

    app = FastAPI(
        title="Capitalized Client Core",
        description="Session, onboarding and phone validation for the Capitalized investment platform",
        version="1.0.0",
        lifespan=lifespan,
        debug=settings.DEBUG,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time header to all responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)

        if process_time > 5.0:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={"process_time": process_time}
            )

        return response

    add_exception_handlers(app)

    app.include_router(session.router, prefix=settings.API_PREFIX, tags=["Session"])
    app.include_router(onboarding.router, prefix=settings.API_PREFIX, tags=["Onboarding"])
    app.include_router(phone.router, prefix=settings.API_PREFIX, tags=["Phone"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check; includes the database when the mongo backend is used.
        """
        health_status = {
            "status": "healthy",
            "timestamp": time.time(),
            "environment": settings.ENVIRONMENT,
            "version": "1.0.0",
            "checks": {"session_backend": settings.SESSION_BACKEND}
        }

        if settings.SESSION_BACKEND == "mongo":
            db_healthy = await check_database_health()
            health_status["checks"]["database"] = "healthy" if db_healthy else "unhealthy"
            if not db_healthy:
                health_status["status"] = "degraded"

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="127.0.0.1",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
