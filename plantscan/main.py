# PlantScan - plant identification & health API
import logging
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from plantscan.config import PLANT_ID_API_KEY, PLANTNET_API_KEY, IDENTIFY_PROVIDER, HEALTH_PROVIDER
from plantscan.dependencies import catalog, history_sink, limiter
from plantscan.errors import PlantScanError, QuotaExceededError, UnexpectedError
from plantscan.routers import diagnosis, health, history, identify
from plantscan.services.history import drain_pending_writes

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================#
# Lifespan Events
# ============================================================================#

@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    # Startup
    catalog.load()
    logger.info("=" * 60)
    logger.info("Starting PlantScan API")
    logger.info(f"Identify provider: {IDENTIFY_PROVIDER} | Health provider: {HEALTH_PROVIDER}")
    logger.info(f"Plant.id: {'✓' if PLANT_ID_API_KEY else '✗'}")
    logger.info(f"Pl@ntNet: {'✓' if PLANTNET_API_KEY else '✗'}")
    logger.info(f"Supabase history: {'✓' if history_sink.available else '✗'}")
    logger.info(f"GCI catalog: {'✓' if catalog.loaded else '✗'} ({len(catalog)} pages)")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("Shutting down gracefully...")
    await drain_pending_writes()


# Initialize FastAPI app
app = FastAPI(
    title="PlantScan",
    description="Plant species identification and health diagnosis",
    version="1.0.0",
    lifespan=lifespan
)

# Initialize Rate Limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================#
# Error responses
# ============================================================================#

@app.exception_handler(PlantScanError)
async def plantscan_error_handler(request: Request, exc: PlantScanError):
    content = {"success": False, "error": exc.message}
    quota = getattr(request.state, "quota", None)
    if isinstance(exc, QuotaExceededError):
        content.update({"remaining": 0, "limit": exc.limit})
    elif quota is not None:
        content.update({"remaining": quota.remaining, "limit": quota.limit})
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": UnexpectedError.message},
    )


# ============================================================================#
# Routers
# ============================================================================#

app.include_router(health.router)
app.include_router(identify.router)
app.include_router(diagnosis.router)
app.include_router(history.router)


if __name__ == "__main__":
    uvicorn.run("plantscan.main:app", host="0.0.0.0", port=8000, reload=False)
