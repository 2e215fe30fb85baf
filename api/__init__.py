"""REST API module for beat licensing.

This module provides HTTP endpoints for:
- Beat availability and license tiers
- Buyer license lookups, contract generation and downloads
- Seller beat sales
- Recording confirmed purchases (internal, service token only)
- System health monitoring
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from repository import has_repository, init_repository, close_repository
from workers import runner

logger = logging.getLogger(__name__)

# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    logger.info("Initializing API...")
    if not has_repository():
        await init_repository()

    yield

    # Shutdown
    logger.info("Shutting down API...")
    if runner.pending:
        logger.info(f"Waiting for {runner.pending} follow-up jobs...")
    await runner.drain()
    await close_repository()

# Create FastAPI app
app = FastAPI(
    title="Beatlease API",
    description="REST API for beat licensing and exclusive sales",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and include all routers
from .licenses import router as licenses_router
from .internal import router as internal_router
from .system import router as system_router

app.include_router(licenses_router)
app.include_router(internal_router)
app.include_router(system_router)
