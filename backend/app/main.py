"""Crypto Radar FastAPI Application.

Polls public market data on a fixed cadence, scores the tracked pairs and
serves the latest snapshot to the dashboard.
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .models import async_session_maker, engine, create_session_maker, init_db
from .routers import cryptos, health, market
from .services.config import config_service, ConfigService, ConfigValidationException, RadarSettings
from .services.market_data_gateway import MarketDataGateway
from .services.query import MarketQueryService
from .services.refresh import RefreshPipeline
from .services.scheduler import UpdateScheduler
from .services.scoring import ScoringEngine
from .services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


def configure_logging(settings: RadarSettings) -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=settings.log_format,
    )


def resolve_database_url(config: ConfigService) -> Optional[str]:
    """DATABASE_URL from the environment wins over database.url in config.yaml."""
    return os.getenv("DATABASE_URL") or config.get("database.url")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup: Validate configuration
    try:
        config_service.load_and_validate()
        print("Configuration validated successfully")
    except ConfigValidationException as e:
        print(f"FATAL: {e}")
        print("Server cannot start with invalid configuration.")
        sys.exit(1)

    settings = config_service.get_settings()
    configure_logging(settings)

    # Initialize database
    db_engine, session_maker = engine, async_session_maker
    db_url = resolve_database_url(config_service)
    if db_url:
        db_engine, session_maker = create_session_maker(db_url)
    await init_db(db_engine)
    print("Database initialized")

    store = SnapshotStore(session_maker)
    seeded = await store.seed_assets(settings.seed_symbols, settings.quote_currency)
    if seeded:
        print(f"Seeded {seeded} asset(s)")

    pipeline = RefreshPipeline(
        gateway=MarketDataGateway(settings),
        engine=ScoringEngine(quote_currency=settings.quote_currency),
        store=store,
    )
    scheduler = UpdateScheduler(pipeline.run_cycle, settings.refresh_interval_seconds)

    app.state.settings = settings
    app.state.store = store
    app.state.query_service = MarketQueryService(store, settings.ranked_limit)
    app.state.scheduler = scheduler

    await scheduler.start()
    print("Update scheduler started")

    yield

    print("Initiating graceful shutdown...")

    await scheduler.stop()
    print("Update scheduler stopped")

    if db_engine is not engine:
        await db_engine.dispose()
    await engine.dispose()

    print("Graceful shutdown complete")


app = FastAPI(
    title="Crypto Radar API",
    description="Crypto opportunity scoring API",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(cryptos.router, prefix="/api", tags=["Cryptos"])
app.include_router(market.router, prefix="/api", tags=["Market"])


@app.get("/")
async def root():
    """Root endpoint redirect to docs."""
    return {"message": "Crypto Radar API", "docs": "/docs"}
