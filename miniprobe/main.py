"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from miniprobe.config import get_settings
from miniprobe.api.routes import sessions
from miniprobe.database import create_tables
from miniprobe.tasks import start_scheduler, stop_scheduler
from miniprobe.version import VERSION


settings = get_settings()


def configure_logging(level: str = settings.LOG_LEVEL):
    """Configure root logging for the server, worker and CLI."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logging.getLogger().setLevel(level)

    # Silence SQLAlchemy query logging (too verbose)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.pool').setLevel(logging.WARNING)

    # Silence passlib bcrypt version warning (known compatibility issue with bcrypt 4.x)
    logging.getLogger('passlib.handlers.bcrypt').setLevel(logging.ERROR)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info(
        "miniprobe v%s starting (%s, liveness window %ds, scrape interval %ds)",
        VERSION, settings.ENVIRONMENT, settings.LIVENESS_WINDOW_SECONDS, settings.SCRAPE_INTERVAL_SECONDS
    )

    await create_tables()

    try:
        await start_scheduler()
    except Exception as e:
        # The store serves sessions without the reaper
        logger.error("Retention reaper not scheduled: %s", e)

    yield

    logger.info("miniprobe shutting down...")
    try:
        await stop_scheduler()
    except Exception as e:
        logger.error("Scheduler shutdown failed: %s", e)


# Create FastAPI application
app = FastAPI(
    title="miniprobe",
    description="Session and sample store for miniprobe host monitoring",
    version=VERSION,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.include_router(sessions.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
