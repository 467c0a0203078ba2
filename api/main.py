"""
FastAPI Backend for the Odometer Scan Service
Handles photo uploads, recognition progress and reading confirmation
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from src.config import LOG_LEVEL

# Configure logging to show INFO level messages
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(levelname)s:     %(name)s - %(message)s'
)

logger = logging.getLogger(__name__)

from api.routes import scans
from api.services.sessions import get_engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: check the OCR engine on startup."""
    try:
        if not get_engine().is_available():
            logger.warning("OCR engine not available; scans will fail until it is installed")
    except Exception as e:
        logger.warning(f"OCR engine check failed: {e}")

    yield  # App runs here

    logger.info("Shutting down Odometer Scan API")


app = FastAPI(
    title="Odometer Scan API",
    description="Odometer photo recognition with reading confirmation",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(scans.router, prefix="/api/scans", tags=["scans"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "odometer-scan"}


if __name__ == "__main__":
    import uvicorn
    from src.config import API_HOST, API_PORT
    uvicorn.run("api.main:app", host=API_HOST, port=API_PORT, reload=True)
