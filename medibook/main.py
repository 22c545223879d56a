"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from medibook.routers import get_api_router
from medibook.services.auth import ensure_admin_profile
from medibook.services.db import get_session, init_db
from medibook.utils.config import get_settings
from medibook.utils.logging_setup import configure_logging

LOGGER = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    with get_session() as session:
        ensure_admin_profile(session)
    LOGGER.info("%s %s started", settings.app_name, settings.app_version)
    yield


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
app.include_router(get_api_router())


@app.get("/health")
def health_check() -> dict[str, str]:
    """Return service health status."""

    return {"status": "ok"}


@app.get("/version")
def version() -> dict[str, str]:
    """Return application version metadata."""

    return {"version": settings.app_version}
