"""
FastAPI Application — Drive & PLC Simulation Control API

Exposes the simulation session and the simulated drives over HTTP.

CORS: Configured via environment variables.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from drivesim import __version__
from drivesim.config import settings
from .simulation_routes import router as simulation_router, shutdown_session
from .vfd_routes import router as vfd_router, shutdown_drives


# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"🚀 Starting {settings.PROJECT_NAME}")
    logger.info(f"📍 Running in {settings.ENVIRONMENT} mode")
    logger.info(
        f"⏱️ Tick intervals: session={settings.SIMULATION_UPDATE_INTERVAL_MS} ms, "
        f"vfd={settings.VFD_TICK_INTERVAL_MS} ms"
    )
    yield
    # Shutdown: stop every tick thread
    shutdown_session()
    shutdown_drives()
    logger.info(f"👋 Shutting down {settings.PROJECT_NAME}")


# Application metadata
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Simulated PLC session and variable frequency drive control API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# CORS Configuration: loaded from settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


# Include API routes
app.include_router(simulation_router)
app.include_router(vfd_router)


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint — points to docs."""
    return {
        "message": settings.PROJECT_NAME,
        "docs": "/docs",
        "ping": "/ping",
    }


@app.get("/ping", tags=["Health"])
async def ping():
    """Lightweight heartbeat — no simulation access."""
    return {"status": "ok"}
