# certtrust/main.py - Operator API for the local certificate trust store
# Application factory wiring the TrustService into the routers

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .routers import certificates_router, connections_router, health_router
from .services import TrustService

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# ============================================================================
# APPLICATION FACTORY
# ============================================================================

def create_app(trust_service: Optional[TrustService] = None) -> FastAPI:
    """Build the API around an owned TrustService (a default one if not given)"""
    service = trust_service or TrustService()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize the trust store before serving requests"""
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Trust store: {service.store.path}")
        try:
            await run_in_threadpool(service.initialize)
        except Exception as e:
            logger.error(f"Trust store bootstrap failed: {e}")
            raise

        yield

        logger.info(f"Shutting down {settings.APP_NAME}")

    app = FastAPI(
        title=settings.APP_NAME,
        description="Operator API for locally trusted server certificates",
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan
    )
    app.state.trust_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(certificates_router)
    app.include_router(connections_router)

    @app.get("/", tags=["root"])
    def read_root():
        """Root endpoint"""
        return {
            "message": settings.APP_NAME,
            "status": service.state.value,
            "version": settings.APP_VERSION,
            "endpoints": {
                "health": "/health",
                "certificates": "/certificates",
                "check": "/certificates/check",
                "probe": "/connections/probe",
                "docs": "/docs"
            }
        }

    return app


app = create_app()

# ============================================================================
# DEVELOPMENT SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "certtrust.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
