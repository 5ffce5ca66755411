"""
Main FastAPI application entry point.
"""
import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from servicebay.config import Settings, get_settings
from servicebay.core.broadcast import Broadcaster, WebSocketBroadcaster
from servicebay.core.scheduler import SweepScheduler
from servicebay.database import init_db, make_engine, make_session_factory
from servicebay.exceptions import ServiceBayError, ValidationError
from servicebay.routers import auth, realtime, services, vehicles

logger = logging.getLogger("servicebay.main")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for the application.
    Creates tables and runs the auto-cancel scheduler in the background.
    """
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)

    # Startup
    logger.info("Starting %s %s", settings.app_name, settings.app_version)
    await init_db(app.state.engine)
    logger.info("Database initialized")

    scheduler_task = None
    scheduler = None
    if settings.auto_cancel_enabled:
        scheduler = SweepScheduler(
            app.state.session_factory,
            app.state.broadcaster,
            interval_seconds=settings.auto_cancel_interval_minutes * 60,
            auto_cancel_after=timedelta(hours=settings.auto_cancel_after_hours),
        )
        scheduler_task = asyncio.create_task(scheduler.run())
    app.state.scheduler = scheduler
    app.state.scheduler_task = scheduler_task

    yield

    # Shutdown
    if scheduler is not None:
        scheduler.stop()
        scheduler_task.cancel()
        with suppress(asyncio.CancelledError):
            await scheduler_task
    drain = getattr(app.state.broadcaster, "drain", None)
    if drain is not None:
        await drain()
    if app.state.owns_engine:
        await app.state.engine.dispose()
    logger.info("Shutting down %s", settings.app_name)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[AsyncEngine] = None,
    broadcaster: Optional[Broadcaster] = None,
) -> FastAPI:
    """Build the application. Collaborators not given are created from ``settings``."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
    ## ServiceBay API

    Service job tracking for a vehicle workshop.

    * **Accounts**: register and log in
    * **Vehicles**: customers register their vehicles
    * **Services**: book jobs, operators move them through
      pending, in-progress, ready-for-pickup and picked-up
    * **Live updates**: every change is pushed over `/ws`
    """,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.owns_engine = engine is None
    app.state.engine = engine or make_engine(settings.database_url)
    app.state.session_factory = make_session_factory(app.state.engine)
    app.state.broadcaster = broadcaster or WebSocketBroadcaster()

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceBayError)
    async def handle_service_error(request: Request, exc: ServiceBayError):
        content = {"detail": exc.message}
        if isinstance(exc, ValidationError) and exc.errors:
            content["errors"] = [{"field": name, "message": msg} for name, msg in exc.errors.items()]
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Server error"})

    # Include routers
    app.include_router(auth.router, prefix=settings.api_prefix)
    app.include_router(vehicles.router, prefix=settings.api_prefix)
    app.include_router(services.router, prefix=settings.api_prefix)
    app.include_router(realtime.router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": f"Welcome to {settings.app_name} API",
            "version": settings.app_version,
            "docs": "/docs",
            "redoc": "/redoc",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.app_version,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "servicebay.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug,
    )
