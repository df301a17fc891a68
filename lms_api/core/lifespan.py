import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown."""
    logger.info("LMS Identity API starting...")

    # Identity verifier is chosen exactly once here; a bad config aborts startup
    from lms_api.core.identity import build_verifier, shutdown_firebase
    app.state.identity_verifier = build_verifier()
    logger.info(f"Identity verifier: {type(app.state.identity_verifier).__name__}")

    # Database
    from lms_api.database.session import async_engine, dispose_engines
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("PostgreSQL connection OK")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")

    logger.info("API ready")
    yield

    logger.info("LMS Identity API shutting down...")
    app.state.identity_verifier = None
    shutdown_firebase()
    await dispose_engines()
