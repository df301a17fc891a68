"""
LMS Identity API - FastAPI Application

Firebase-backed authentication for the learning platform: token
verification, user sync with PostgreSQL and role-based access.

Usage:
    uvicorn lms_api.api.main:app --reload --host 0.0.0.0 --port 8000

Docs:
    http://localhost:8000/docs (Swagger UI)
"""

from dotenv import load_dotenv

load_dotenv()  # load .env from current working directory (project root)

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from lms_api.core import config
from lms_api.core.exceptions import register_exception_handlers
from lms_api.core.lifespan import lifespan
from lms_api.core.logging import setup_logger
from lms_api.core.middleware import request_logger

setup_logger(getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)

APP_NAME = "LMS Identity API"
APP_VERSION = "1.0.0"

app = FastAPI(
    title=APP_NAME,
    description="Firebase authentication, user sync and role-based access for the LMS.",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS – frontend origins configurable via CORS_ORIGINS (comma-separated)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.middleware("http")(request_logger)

register_exception_handlers(app)


# Health endpoints
@app.get("/", tags=["Health"])
async def root():
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    health = {"status": "healthy", "components": {"api": "ok"}}
    try:
        from lms_api.database.session import async_engine
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health["components"]["database"] = "ok"
    except Exception as e:
        health["status"] = "degraded"
        health["components"]["database"] = f"error: {str(e)}"
    return health


# Register routers
from lms_api.api.routers import admin, auth

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])

logger.info("Routers registered: auth, admin")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("lms_api.api.main:app", host="0.0.0.0", port=8000, reload=True)
