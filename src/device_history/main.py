"""
FastAPI application entry point for the device interaction history service.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import init_db
from .api import devices
from .cli._helpers import configure_logging

LOGGER = logging.getLogger(__name__)


# Create FastAPI app
app = FastAPI(
    title="Device Interaction History API",
    description="Audit which users and domains used each registered device",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(devices.router, prefix="/api/v1/devices")


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Device Interaction History API", "version": "0.1.0"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.on_event("startup")
async def startup_event():
    """Run on application startup."""
    configure_logging(settings.LOG_LEVEL)
    init_db()
    LOGGER.info("Device Interaction History API starting...")
    LOGGER.info("CORS enabled for: %s", settings.cors_origins_list)
    LOGGER.info("Device limit: %d", settings.DEVICE_LIMIT)


@app.on_event("shutdown")
async def shutdown_event():
    """Run on application shutdown."""
    LOGGER.info("Device Interaction History API shutting down...")
