"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import features, search
from settings import settings

logger = logging.getLogger(__name__)

# Create app
app = FastAPI(
    title="Service Map API",
    description="Service area layers and address autocomplete for the city service map",
    version="0.1.0",
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Include routers
app.include_router(features.router, prefix="/api/features", tags=["features"])
app.include_router(search.router, prefix="/api/search", tags=["search"])


@app.on_event("startup")
def startup_event():
    """Warm the feature cache so the first page load does not pay for parsing."""
    collection = features.feature_store.load()
    logger.info(
        "Feature cache warmed: %d services (primary=%s, sample=%s)",
        len(collection.services),
        settings.FEATURES_JSON_PATH,
        settings.FEATURES_SAMPLE_PATH,
    )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Service Map API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
