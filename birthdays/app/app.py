# This file loads env variables and must thus be imported before anything else.
from . import env_loader  # noqa: F401
from .env_loader import get_cors_origins, get_current_environment

import os
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from .dependencies import get_sync_services
from .routers import birthdays_router, sync_router

"""FastAPI application setup for the birthdays API.

Exposes birthday CRUD and Google Calendar sync routes, and runs the
background sync scheduler for the lifetime of the app.
"""

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    services = get_sync_services()
    services.scheduler.schedule_maintenance(
        services.sweeper.run_once, services.roll_forward.run_once
    )
    services.scheduler.start()
    try:
        yield
    finally:
        services.scheduler.stop()


app = FastAPI(lifespan=lifespan)
app.include_router(birthdays_router)
app.include_router(sync_router)
app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Configure basic logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s - %(filename)s:%(lineno)d",
    datefmt="%Y-%m-%d %H:%M:%S",
)
# Configure the logging for the API itself if the user specifies it.
if "LOG_LEVEL" in os.environ:
    match os.environ["LOG_LEVEL"].upper():
        case "DEBUG":
            log_level = logging.DEBUG
        case "INFO":
            log_level = logging.INFO
        case "WARNING":
            log_level = logging.WARNING
        case "ERROR":
            log_level = logging.ERROR
        case "CRITICAL":
            log_level = logging.CRITICAL
        case _:
            raise ValueError(f"Invalid log level: {os.environ['LOG_LEVEL']}")
    logging.getLogger("birthdays").setLevel(log_level)
# APScheduler logs every job run at INFO; the sync engine logs its own outcomes.
logging.getLogger("apscheduler.executors").setLevel(logging.WARNING)


@app.get("/health")
@app.options("/health")
def health_check(response: Response) -> dict[str, str]:
    """Health check endpoint that returns 200 status with CORS from anywhere."""
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "*"
    return {"status": "healthy"}


@app.get("/environment")
def get_environment() -> dict[str, str]:
    """Get the current environment configuration."""
    return {"environment": get_current_environment()}
