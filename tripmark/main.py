"""Main FastAPI application."""
import logging

from fastapi import FastAPI

from tripmark.config import settings
from tripmark.database import init_models
from tripmark.routers import cron, places, search

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Tripmark API",
    description="Travel content pins, place cache and hybrid search",
    version="1.0.0",
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

# Include routers
app.include_router(places.router, prefix="/api/v1")
app.include_router(search.router, prefix="/api/v1")
app.include_router(cron.router, prefix="/api/v1")


@app.on_event("startup")
async def create_tables():
    await init_models()
    logger.info(f"Tripmark API started ({settings.environment})")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tripmark.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
