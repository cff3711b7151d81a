"""
FastAPI main application.
"""
import asyncio
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.archive import ArchiveSearchService, create_archive_service
from core.config import API_V1_PREFIX, CORS_ORIGINS, LOG_LEVEL
from core.config_validator import config_validator
from core.errors import ConfigurationError, LoadExhaustedError
from api.routes import search, status, transcripts

logger = logging.getLogger(__name__)


async def _load_in_background(service: ArchiveSearchService) -> None:
    try:
        await service.load()
    except LoadExhaustedError as e:
        # Degraded mode: /status reports "failed" and search answers 503
        logger.error("Search unavailable: %s", e)


def create_app(service: Optional[ArchiveSearchService] = None) -> FastAPI:
    """Build the application; tests pass their own service."""
    app = FastAPI(
        title="Strip Archive Search API",
        description="Full-text search over comic strip transcripts",
        version="1.0.0",
    )
    app.state.archive_service = service

    @app.on_event("startup")
    async def startup():
        """Validate configuration, then start loading the archive."""
        logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

        try:
            validation_result = config_validator.validate_or_raise()
        except ConfigurationError as e:
            logger.critical("Application startup aborted due to configuration errors: %s", e)
            raise SystemExit(1)
        for warning in validation_result["warnings"]:
            logger.warning("Configuration: %s", warning)

        if app.state.archive_service is None:
            app.state.archive_service = create_archive_service()
        app.state.load_task = asyncio.create_task(_load_in_background(app.state.archive_service))

    @app.on_event("shutdown")
    async def shutdown():
        if app.state.archive_service is not None:
            await app.state.archive_service.aclose()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(search.router, prefix=f"{API_V1_PREFIX}/search", tags=["search"])
    app.include_router(transcripts.router, prefix=f"{API_V1_PREFIX}/transcripts", tags=["transcripts"])
    app.include_router(status.router, prefix=API_V1_PREFIX, tags=["status"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Strip Archive Search API", "version": "1.0.0"}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
