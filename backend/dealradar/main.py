"""DealRadar Backend -- FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dealradar import __version__
from dealradar.api.v1.router import api_v1_router
from dealradar.config import settings
from dealradar.core.exceptions import DealRadarException
from dealradar.marketplace import build_aggregator, build_scheduler
from dealradar.schemas import ErrorDetail, ErrorResponse

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    # Startup
    logger.info("Starting DealRadar API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    aggregator = build_aggregator(settings)
    app.state.aggregator = aggregator
    app.state.scheduler = None

    if not aggregator.is_ebay_configured():
        logger.info("eBay credentials not set, eBay source disabled")

    # Start maintenance jobs (only in non-test environments)
    if settings.ENVIRONMENT != "test":
        scheduler = build_scheduler(aggregator, settings)
        scheduler.start()
        app.state.scheduler = scheduler
        logger.info("Maintenance scheduler started")
    else:
        logger.info("Scheduler disabled (test environment)")

    yield

    # Shutdown
    logger.info("Shutting down DealRadar API server...")

    if app.state.scheduler:
        logger.info("Stopping maintenance scheduler...")
        app.state.scheduler.stop()

    aggregator.clear_cache()


app = FastAPI(
    title="DealRadar API",
    description="Live deal aggregation across marketplaces",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DealRadarException)
async def dealradar_exception_handler(request: Request, exc: DealRadarException):
    logger.error(f"Unhandled application error on {request.url.path}: {exc.message}")
    body = ErrorResponse(error=ErrorDetail(code=type(exc).__name__, message=exc.message))
    return JSONResponse(status_code=500, content=body.model_dump())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error on {request.url.path}: {exc}", exc_info=True)
    body = ErrorResponse(error=ErrorDetail(code="internal_error", message="Internal server error"))
    return JSONResponse(status_code=500, content=body.model_dump())


# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "DealRadar API",
        "version": __version__,
        "description": "Live deal aggregation across marketplaces",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
