"""
Cloudburst Monitoring API
FastAPI application wiring the store, services and REST routers together
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cloudburst.api.dependencies import ServiceContainer, set_container
from cloudburst.api.routes import (
    admin,
    alerts,
    contacts,
    dashboard,
    health,
    history,
    logs,
    nodes,
    notifications,
    predictions,
    settings,
)
from cloudburst.config.app_config import AppConfigLoader
from cloudburst.core.error_handling import CloudburstError
from cloudburst.core.logging_config import setup_logging

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"
_TRUE_VALUES = ("1", "true", "yes")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in _TRUE_VALUES


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service container on startup, stop the simulator and SMS pool on shutdown."""
    config = AppConfigLoader.load()
    setup_logging(
        log_level=config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        console_output=config.logging.console,
    )

    valid, problems = AppConfigLoader.validate(config)
    for problem in problems:
        logger.warning(f"Configuration problem: {problem}")
    if not valid:
        logger.warning("Starting with an incomplete configuration")

    container = ServiceContainer(config)
    set_container(container)
    logger.info(
        f"Cloudburst monitor up: store={config.store.backend}, "
        f"sms={container.sms_client.status().status}"
    )

    if _env_flag("CLOUDBURST_SIMULATOR"):
        await container.simulator.start(config.simulator_interval_seconds)
        logger.info(f"Data simulator running every {config.simulator_interval_seconds}s")

    try:
        yield
    finally:
        logger.info("Cloudburst monitor shutting down")
        try:
            await container.shutdown()
        except Exception as e:
            logger.error(f"Error during shutdown: {e}", exc_info=True)
        finally:
            set_container(None)


app = FastAPI(
    title="Cloudburst Monitoring API",
    description="""
    Backend for a cloudburst / flash-flood early-warning sensor network.

    - Node registry with derived online / warning / offline status
    - Manual alerts with SMS and in-app notification to associated contacts
    - Sensor history with time windows and CSV export
    - Paginated activity log, alert thresholds and system settings
    - Cloudburst probability forecast
    """,
    version=API_VERSION,
    lifespan=None if _env_flag("DISABLE_LIFESPAN") else lifespan,
)

# The dashboard is served from a separate origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CLOUDBURST_CORS_ORIGINS", "*").split(","),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CloudburstError)
async def cloudburst_error_handler(request: Request, exc: CloudburstError):
    """Service errors answer with their own status and ``to_dict()`` body"""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}",
        extra={"error_code": exc.error_code.name, "details": exc.details},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={
            "method": request.method,
            "url": str(request.url),
            "client": request.client.host if request.client else "unknown",
        },
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "message": str(exc), "path": request.url.path},
    )


for module in (nodes, history, alerts, contacts, notifications, logs,
               settings, predictions, dashboard, admin, health):
    app.include_router(module.router)


@app.get("/", tags=["root"])
async def root():
    return {
        "name": "Cloudburst Monitoring API",
        "version": API_VERSION,
        "documentation": "/docs",
        "health_check": "/api/v1/health",
        "endpoints": {
            name: f"/api/v1/{name}"
            for name in ("nodes", "alerts", "contacts", "logs", "settings", "dashboard", "predictions")
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cloudburst.main:app",
        host=os.getenv("CLOUDBURST_HOST", "0.0.0.0"),
        port=int(os.getenv("CLOUDBURST_PORT", "8000")),
        reload=_env_flag("CLOUDBURST_RELOAD"),
    )
