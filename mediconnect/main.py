# main.py
import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Credential lookups read os.environ directly, so .env must be loaded first
load_dotenv()

from mediconnect.config import get_settings  # noqa: E402
from mediconnect.routes import router  # noqa: E402

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger("main")
logger.info("Application starting...")


# ---------------------------------------------------------------------------
# App lifespan (startup/shutdown)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown tasks."""
    settings = get_settings()
    if settings.reminder_scheduler_enabled:
        logger.info("Startup: starting reminder scheduler...")
        try:
            from mediconnect.features.reminders import start_reminder_scheduler
            await start_reminder_scheduler()
            logger.info("Reminder scheduler started successfully")
        except Exception as e:
            logger.error("Failed to start reminder scheduler: %s", e)
    else:
        logger.info("Reminder scheduler disabled by REMINDER_SCHEDULER_ENABLED")

    yield  # app runs during this block

    if settings.reminder_scheduler_enabled:
        logger.info("Shutdown: stopping reminder scheduler...")
        try:
            from mediconnect.features.reminders import stop_reminder_scheduler
            await stop_reminder_scheduler()
            logger.info("Reminder scheduler stopped")
        except Exception as e:
            logger.error("Error stopping reminder scheduler: %s", e)
    logger.info("Cleanup complete.")


# ---------------------------------------------------------------------------
# FastAPI Application
# ---------------------------------------------------------------------------
# CORS headers are set by the consult route itself (OPTIONS answers 204)
app = FastAPI(
    title="MediConnect",
    version="1.0.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Base Routes
# ---------------------------------------------------------------------------

@app.get("/", tags=["Health"])
async def root():
    """Basic health check to verify the service is running."""
    return {"status": "ok", "message": "MediConnect is running."}


# Include your main feature routes
app.include_router(router)
