"""
Global exception handler for the Upload Orchestrator API.
Provides centralized error handling for all API exceptions.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from .exceptions import (
    UploadNotFoundException,
    ValidationException,
    UploaderException
)
from .logger import get_logger

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    
    @app.exception_handler(UploadNotFoundException)
    async def handle_not_found(request: Request, exc: UploadNotFoundException):
        return JSONResponse(
            status_code=404,
            content={"error": "Not Found", "message": exc.message}
        )
    
    @app.exception_handler(ValidationException)
    async def handle_validation_error(request: Request, exc: ValidationException):
        return JSONResponse(
            status_code=400,
            content={"error": "Validation Error", "message": exc.message}
        )
    
    @app.exception_handler(UploaderException)
    async def handle_uploader_error(request: Request, exc: UploaderException):
        logger.error("Unhandled upload error on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=500,
            content={"error": "Upload Error", "message": exc.message}
        )
    
    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception):
        logger.exception("Unexpected error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "message": "An unexpected error occurred"}
        )
