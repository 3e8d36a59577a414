import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router, ingestion_router
from app.core.config import settings
from app.core.logging_config import configure_logging
from app.services import ServiceContainer

configure_logging()

logger = logging.getLogger(__name__)
logger.info("Main module loaded")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting application lifespan")
    container = ServiceContainer(settings)
    await container.connect()
    app.state.container = container

    worker_task = None
    if settings.RUN_PARSER_WORKER:
        worker_task = asyncio.create_task(container.parser_worker.start())
        logger.info("Parser worker task created")
    else:
        logger.info("Parser worker disabled; run it with `python -m app.worker`")

    try:
        yield

    finally:
        # Shutdown
        if worker_task:
            container.parser_worker.stop()
            worker_task.cancel()
            try:
                await worker_task
            except asyncio.CancelledError:
                pass
            logger.info("Parser worker stopped")

        await container.close()
        app.state.container = None


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="WhatsApp ingestion and listing API for a used generator marketplace",
    version=settings.SERVICE_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


# Include API routers
app.include_router(ingestion_router)
app.include_router(api_router, prefix=settings.API_V1_STR)

# Export app for use in other modules
__all__ = ["app"]


@app.get("/")
async def root():
    return {"message": "Generator marketplace API is running"}


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint that verifies system components"""
    health_status = {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat(), "components": {}}
    container = getattr(request.app.state, "container", None)
    if container is None:
        health_status["status"] = "unhealthy"
        health_status["components"]["services"] = "not_initialized"
        return health_status

    # Check MongoDB connection
    try:
        await container.mongodb.ping()
        health_status["components"]["mongodb"] = "healthy"
    except Exception as e:
        health_status["components"]["mongodb"] = f"unhealthy: {str(e)}"
        health_status["status"] = "unhealthy"

    # Check Redis connection
    try:
        await container.redis.client.ping()
        health_status["components"]["redis"] = "healthy"
    except Exception as e:
        health_status["components"]["redis"] = f"unhealthy: {str(e)}"
        health_status["status"] = "unhealthy"

    worker = container.parser_worker
    health_status["components"]["parser_worker"] = {
        "running": bool(worker and worker.is_running),
        "processed": worker.processed_count if worker else 0,
        "failed": worker.failed_count if worker else 0,
    }

    return health_status
