"""
Main FastAPI application entry point.
Configures and initializes the Upload Orchestrator API.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from uploader.core.config import settings
from uploader.core.dependencies import get_storage_client, get_upload_service
from uploader.core.exception_handler import register_exception_handlers
from uploader.core.logger import configure_logging, get_logger
from uploader.api.routes import health_routes, upload_routes

configure_logging(settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup (%s).", settings.environment)
    yield
    # Only tear down what was actually created during the app's lifetime
    if get_upload_service.cache_info().currsize:
        await get_upload_service().shutdown()
    if get_storage_client.cache_info().currsize:
        await get_storage_client().close()
    logger.info("Application shutdown.")


# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Tracks multi-file uploads through compression and transfer to storage",
    lifespan=lifespan
)

# Register exception handlers
register_exception_handlers(app)

# Register routes
app.include_router(health_routes.router)
app.include_router(upload_routes.router)

# Middleware to log request paths
@app.middleware("http")
async def log_request(request: Request, call_next):
    logger.info("Request %s %s", request.method, request.url.path)
    response = await call_next(request)
    return response


# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
