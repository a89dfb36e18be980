"""EAD platform — FastAPI Application Entry Point."""

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ead.config import settings
from ead.database import engine, Base, SessionLocal
from ead.errors import EADError
from ead.middleware.errors import service_error_handler
from ead.routers import (
    auth,
    courses,
    enrollments,
    progress,
    comments,
    ratings,
    chats,
    notifications,
    search,
    stats,
)
from ead.services.identity_service import ensure_default_admin

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ── CORS origins from env (supports dev localhost + production domain) ──────
_cors_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app = FastAPI(
    title="EAD",
    description="E-learning platform: enrollment, progress and engagement.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Refused service operations map to status codes in one place
app.add_exception_handler(EADError, service_error_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(enrollments.router)
app.include_router(progress.router)
app.include_router(comments.router)
app.include_router(ratings.router)
app.include_router(chats.router)
app.include_router(notifications.router)
app.include_router(search.router)
app.include_router(stats.router)


@app.on_event("startup")
async def on_startup():
    """Create tables and the upload directory, then seed the default admin."""
    Base.metadata.create_all(bind=engine)
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)

    db = SessionLocal()
    try:
        admin = ensure_default_admin(db)
    finally:
        db.close()
    if admin:
        logger.warning("default admin %s created; change its password", admin.email)


@app.get("/")
def root():
    return {
        "name": "EAD API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "ok"}
