"""DashSync FastAPI application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dashsync import config
from dashsync.observability import initialize as initialize_observability, shutdown as shutdown_observability
from dashsync.provider import DashboardProvider
from dashsync.routers.dashboard import dashboard_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("dashsync")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("DashSync starting up")
    initialize_observability(app)

    provider = getattr(app.state, "dashboard_provider", None) or DashboardProvider.from_config()
    app.state.dashboard_provider = provider
    await provider.start()

    yield

    logger.info("DashSync shutting down")
    await provider.stop()
    shutdown_observability(app)


app = FastAPI(
    title="DashSync API",
    description="Dashboard usage metrics synchronized from the upstream file and analytics services",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(dashboard_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    provider = getattr(app.state, "dashboard_provider", None)
    if provider is None or not provider.is_running:
        return {"status": "ok", "provider": "stopped", "periodicSync": "stopped"}
    return {
        "status": "ok",
        "provider": "running",
        "periodicSync": "running" if provider.scheduler.periodic_running else "stopped",
    }
