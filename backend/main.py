"""Channel Insight - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from config import get_settings
from database import async_session, engine
from models import Base
from routers import analytics_router, competitors_router, sync_router
from services.channel_sync import SyncOrchestrator
from services.cluster_naming import ClusterNamer
from services.data_provider import build_provider
from services.insights import default_registry
from services.progress_store import ProgressStore
from services.scheduler import create_scheduler, stop_scheduler
from middleware.rate_limit import limiter, rate_limit_exceeded_handler

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - create tables, wire the pipeline, run the scheduler."""
    # Startup: create database tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Check Redis connectivity
    progress_store = ProgressStore(settings.redis_url)
    if await progress_store.health_check():
        print("✓ Redis connection established")
    else:
        print("⚠ Redis not available - sync progress is only visible in this process")

    if settings.api_key == "change-this-in-production" and not settings.debug:
        print("⚠ SECURITY WARNING: Using default API key in production!")
        print("  Set API_KEY environment variable to a secure random value.")

    provider = build_provider(settings)
    namer = ClusterNamer(settings.chatbot_api_url) if settings.cluster_naming_enabled else None
    orchestrator = SyncOrchestrator(
        provider=provider,
        session_factory=async_session,
        plugins=default_registry(namer),
        settings=settings,
        on_progress=progress_store.record,
    )
    print(f"✓ Data provider: {settings.data_provider}")

    app.state.progress_store = progress_store
    app.state.orchestrator = orchestrator

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = create_scheduler(orchestrator, settings.sync_interval_hours)
        scheduler.start()
        print(f"✓ Sync scheduled every {settings.sync_interval_hours}h")

    yield

    # Shutdown: stop scheduler, close provider and Redis connections
    if scheduler is not None:
        stop_scheduler(scheduler)
    if hasattr(provider, "aclose"):
        await provider.aclose()
    await progress_store.close()


app = FastAPI(
    title="Channel Insight API",
    description="Channel analytics sync, insights and forecasting",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(analytics_router, prefix="/api")
app.include_router(competitors_router, prefix="/api")
app.include_router(sync_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "channel-insight"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Channel Insight API",
        "version": "0.1.0",
        "docs": "/docs",
    }
