"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from trajectory import __version__
from trajectory.api.routes import router
from trajectory.api.metrics_routes import router as metrics_router
from trajectory.api.middleware import setup_cors, setup_error_handlers, setup_rate_limiting
from trajectory.config import LOG_LEVEL, validate_config
from trajectory.db.connection import db
from trajectory.services.container import init_container

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO)
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application"""
    # Startup
    logger.info("Starting API server...")
    validate_config()
    await db.init_pool()
    logger.info("Database pool initialized")
    init_container(db)

    yield

    # Shutdown
    logger.info("Shutting down API server...")
    await db.close_pool()
    logger.info("Database pool closed")


def create_api_application() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Trajectory API",
        description="Wellness gamification, insights and coaching",
        version=__version__,
        lifespan=lifespan
    )

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)
    setup_error_handlers(app)

    # Include routes
    app.include_router(router)
    app.include_router(metrics_router)

    logger.info("FastAPI application created")

    return app


app = create_api_application()
