"""Roadmap Engine FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import get_settings
from .routers import catalog, roadmap, stages

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("roadmap-core")

logger.info("Starting Roadmap Engine API")

# Create FastAPI app
app = FastAPI(
    title="Roadmap Engine API",
    description="Project roadmap stage progression",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog.router, prefix="/api/v1")
app.include_router(roadmap.router, prefix="/api/v1/projects")
app.include_router(stages.router, prefix="/api/v1/stages")


@app.get("/")
def root():
    """Root endpoint with server info."""
    return {
        "name": "Roadmap Engine API",
        "version": "1.0.0",
        "docs": "/docs",
        "description": "Project roadmap stage progression",
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
