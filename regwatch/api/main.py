import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from ..database.connection import create_session_factory, init_db
from ..monitors.regulatory_monitor import RegulatoryMonitor, build_monitor
from ..utils.config_loader import MonitorSettings
from .auth import verify_cron_secret
from .review import router as review_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[MonitorSettings] = None,
               session_factory: Optional[sessionmaker] = None,
               monitor: Optional[RegulatoryMonitor] = None) -> FastAPI:
    """
    Create the API application with explicitly provided dependencies.

    Args:
        settings: Runtime settings (defaults to the environment)
        session_factory: Store session factory (defaults to an initialized DATABASE_URL)
        monitor: Run coordinator (defaults to one built from settings)

    Returns:
        Configured FastAPI application
    """
    settings = settings or MonitorSettings.from_env()
    if session_factory is None:
        session_factory = create_session_factory(init_db(settings.database_url))
    if monitor is None:
        monitor = build_monitor(settings, session_factory)

    app = FastAPI(
        title="Regulatory Change Monitor",
        description="Monitors regulatory sources and summarizes detected changes for review",
        version="1.0.0"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.monitor = monitor

    app.include_router(review_router)

    @app.get("/health")
    async def health_check():
        """Liveness check."""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.api_route("/api/cron/monitor", methods=["GET", "POST"], dependencies=[Depends(verify_cron_secret)])
    async def run_monitor(request: Request):
        """Run the monitoring pipeline once; called by the external scheduler."""
        report = await request.app.state.monitor.run()
        return JSONResponse(content=report.to_dict(), status_code=200 if report.success else 500)

    return app
