"""
HDHomeRun Live TV Gateway - FastAPI Backend

Exposes an over-the-air HDHomeRun tuner as a Stremio add-on catalog.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from hdhr_gateway.config import get_settings
from hdhr_gateway.rate_limit import limiter
from hdhr_gateway.routers import addon, assets
from hdhr_gateway.services.lineup_client import LineupClient, get_lineup_client

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.verbose else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info(f"Starting gateway for HDHomeRun at {settings.hdhomerun_ip}...")
    logger.info(f"Addon active at {settings.public_base_url.rstrip('/')}/manifest.json")
    logger.info(f"Health check at {settings.public_base_url.rstrip('/')}/health")
    if not settings.mediaflow_pass:
        logger.warning("MEDIAFLOW_PASS is empty; proxied streams will be sent without a password")

    yield

    logger.info("Shutting down gateway...")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Stremio add-on for an HDHomeRun OTA tuner",
    lifespan=lifespan
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(addon.router)
app.include_router(assets.router)

# Bundled placeholder artwork
static_path = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=static_path), name="static")


@app.get("/health")
async def health_check(lineup: LineupClient = Depends(get_lineup_client)):
    """Health check endpoint: OK only if the tuner answers discover.json."""
    if await lineup.is_reachable():
        return PlainTextResponse("OK")
    return PlainTextResponse("HDHomerun Unreachable", status_code=503)


# Error handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


def run():
    """Console entry point."""
    import uvicorn
    uvicorn.run(
        "hdhr_gateway.main:app",
        host=settings.host,
        port=settings.port,
        reload=False
    )


if __name__ == "__main__":
    run()
