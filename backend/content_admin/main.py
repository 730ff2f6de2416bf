from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
import logging
import os

from content_admin.config import settings
from content_admin.services.cache import cache_service
from content_admin.database import init_db, close_db
from content_admin.routes import categories, subcategories, glossary, media, realtime

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    logger.info("Starting Content Admin...")
    logger.info(f"Storage backend: {settings.storage_backend}")

    # Initialize database
    try:
        await init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    # Connect to Redis cache
    await cache_service.connect()
    # Snapshots cached by a previous run may predate migrations or manual edits
    await cache_service.delete_pattern("content:*")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await cache_service.disconnect()
    await close_db()


app = FastAPI(
    title="Content Admin",
    description="Bilingual (English/Arabic) content administration with ordered lists",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(categories.router)
app.include_router(subcategories.router)
app.include_router(glossary.router)
app.include_router(media.diagrams_router)
app.include_router(media.templates_router)
app.include_router(realtime.router)

# Uploaded files are served by the API itself when stored locally
if settings.storage_backend == "local":
    os.makedirs(settings.local_media_root, exist_ok=True)
    app.mount(settings.local_media_url, StaticFiles(directory=settings.local_media_root), name="media")


@app.get("/")
async def root():
    return {
        "name": "Content Admin",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/api/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "cache": cache_service.redis_client is not None
    }
