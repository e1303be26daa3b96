"""
FastAPI application entry point for the wordbook sync backend.
"""
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session
from vocab_api.config import settings
from vocab_api.database import get_db
from vocab_api.errors import register_exception_handlers
from vocab_api.api import (
    wordbooks,
    progress,
    visibility,
    profile
)

import logging

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "Vocab Wordbook Sync Backend"
SERVICE_VERSION = "1.0.0"

app = FastAPI(
    title=SERVICE_NAME,
    description="Wordbooks, learning progress and word visibility sync for the vocabulary app",
    version=SERVICE_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

register_exception_handlers(app)

# Prefixes live on each router
for module in (wordbooks, progress, visibility, profile):
    app.include_router(module.router)


def _database_host() -> str:
    url = settings.DATABASE_URL
    return url.rsplit('@', 1)[1] if '@' in url else url.split(':', 1)[0]


@app.on_event("startup")
async def log_startup():
    logger.info(f"🚀 {SERVICE_NAME} v{SERVICE_VERSION} on port {settings.PORT}")
    logger.info(f"   CORS origins: {settings.CORS_ALLOWED_ORIGINS}")
    logger.info(f"   Database: {_database_host()}")


@app.on_event("shutdown")
async def log_shutdown():
    logger.info(f"👋 {SERVICE_NAME} stopped")


@app.get("/", tags=["Root"])
async def root():
    return {"service": SERVICE_NAME, "version": SERVICE_VERSION}


@app.get("/api/health", tags=["Health"])
def health_check(db: Session = Depends(get_db)):
    """Liveness plus a round trip to the database."""
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"❌ Health check database ping failed: {e}")
        return {"status": "degraded", "database": "unreachable"}
    return {"status": "healthy", "database": "ok"}
