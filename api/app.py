"""
api/app.py — FastAPI application factory
==========================================
Builds the app around one `SessionManager`, stored on `app.state` so the
route dependencies can reach it.  The manager is closed on shutdown, which
stops the scan tick and releases the webcam.

Allowed CORS origins come from `config.API_CORS_ORIGINS` (everything by
default, for local frontends and demos).
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from api.session import SessionManager
from config import API_CORS_ORIGINS, API_TITLE, API_VERSION
from utils.logger import get_logger

logger = get_logger("api.app")


def create_app(manager: SessionManager | None = None) -> FastAPI:
    """
    Return a configured FastAPI instance.

    Pass a pre-built `manager` (e.g. one with an in-memory frame source) to
    serve without camera hardware; otherwise the camera is opened lazily on
    the first preview/scan request.
    """
    manager = manager if manager is not None else SessionManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down — closing scan session.")
        app.state.manager.close()

    app = FastAPI(
        title=API_TITLE,
        version=API_VERSION,
        description=(
            "Contactless heart rate, respiration rate and SpO2 estimation "
            "from a face video (rPPG). WELLNESS TOOL ONLY, not a medical device."
        ),
        lifespan=lifespan,
    )
    app.state.manager = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(API_CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
