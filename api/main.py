"""
Lead Conversion Relay API - Main Application.

FastAPI application receiving lead change notifications and relaying
conversion events to the Meta Conversions API.
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Lead Conversion Relay API",
    description="Relays lead status changes to the Meta Conversions API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# The dashboard polls the activity feed from the browser.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "lead-conversion-relay"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Lead Conversion Relay API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "webhook": "/api/webhook/meta"
    }


# Import and include routers
from api.routers import activity, webhook

app.include_router(webhook.router, prefix="/api", tags=["Webhook"])
app.include_router(activity.router, prefix="/api", tags=["Activity"])
