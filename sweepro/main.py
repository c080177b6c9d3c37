import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import all models to ensure they're registered with SQLAlchemy Base
from . import models, models_notification  # noqa: F401
from .config import (
    ALLOWED_ORIGINS,
    CONNECTION_INACTIVITY_THRESHOLD_SECONDS,
    HEALTH_SWEEP_INTERVAL_SECONDS,
    NOTIFICATION_SCHEDULER_ENABLED,
)
from .database import Base, SessionLocal, engine
from .domain.notifications.channel import ChannelHandshake
from .domain.notifications.delivery import NotificationRouter
from .domain.notifications.health import HealthMonitor
from .domain.notifications.registry import ConnectionRegistry
from .domain.notifications.router import router as notifications_router
from .domain.notifications.router import ws_router as notifications_ws_router
from .shared.timeutils import isoformat_utc

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("arq").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    registry = ConnectionRegistry()
    notification_router = NotificationRouter(registry, SessionLocal)
    app.state.connection_registry = registry
    app.state.notification_router = notification_router
    app.state.channel_handshake = ChannelHandshake(registry, SessionLocal)

    monitor = HealthMonitor(
        registry,
        interval_seconds=HEALTH_SWEEP_INTERVAL_SECONDS,
        inactivity_threshold_seconds=CONNECTION_INACTIVITY_THRESHOLD_SECONDS,
    )
    app.state.health_monitor = monitor
    monitor.start()

    scheduler = None
    scheduler_task = None
    if NOTIFICATION_SCHEDULER_ENABLED:
        from .worker import create_scheduler, run_scheduler

        try:
            scheduler = create_scheduler(notification_router)
            scheduler_task = asyncio.create_task(run_scheduler(scheduler))
            logger.info("Notification scheduler started")
        except Exception as e:
            logger.warning(
                f"Notification scheduler unavailable - producers will not run: {e}"
            )
    else:
        logger.info("Notification scheduler disabled")

    yield
    logger.info("Application shutting down...")

    await monitor.stop()
    if scheduler_task is not None:
        from .worker import stop_scheduler

        scheduler_task.cancel()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            pass
        await stop_scheduler(scheduler)
    await registry.close_all()


app = FastAPI(title="SweepPro Notifications API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={
                    "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                },
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notifications_router)
app.include_router(notifications_ws_router)


@app.get("/")
def root():
    return {"message": "SweepPro Notifications API is running"}


@app.get("/health")
def health():
    return {"status": "ok", "timestamp": isoformat_utc()}
