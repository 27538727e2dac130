"""
Family Reminders Push API - FastAPI Application

Usage:
    uvicorn famnotify.api.main:app --host 127.0.0.1 --port 8080 --reload
"""

import logging
from contextlib import asynccontextmanager

# Load .env file before anything else
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from famnotify import get_connection
from famnotify.api.routes import router as push_router
from famnotify.logging_config import setup_logging
from famnotify.push.vapid import get_vapid_public_key, load_push_config


setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting push API...")

    # Create tables up front so the first request doesn't pay for it
    get_connection().close()

    if not get_vapid_public_key():
        logger.warning("VAPID keys not configured; clients cannot subscribe")

    yield

    logger.info("Push API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Family Reminders Push API",
        description="Web Push subscription management and dispatch",
        version="1.0.0",
        lifespan=lifespan,
    )

    cors_origins = load_push_config()["push"].get("cors_origins") or ["http://localhost:5173"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(push_router, prefix="/api/push", tags=["push"])

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
