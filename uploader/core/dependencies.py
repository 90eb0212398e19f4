"""
Dependency injection container for FastAPI.
Provides singleton-like behavior for services and repositories.
"""
from functools import lru_cache
from uploader.core import config
from uploader.repositories.http_storage_client import HttpStorageClient
from uploader.repositories.s3_storage_client import S3StorageClient
from uploader.repositories.storage_client import StorageClient
from uploader.repositories.upload_registry import UploadRegistry
from uploader.services.image_service import ImageCompressor
from uploader.services.upload_service import UploadService


@lru_cache()
def get_upload_registry() -> UploadRegistry:
    """Get UploadRegistry singleton instance."""
    return UploadRegistry()


@lru_cache()
def get_storage_client() -> StorageClient:
    """Get the StorageClient singleton for the configured backend."""
    backend = config.settings.storage_backend.lower()
    if backend == "s3":
        return S3StorageClient()
    if backend == "http":
        return HttpStorageClient()
    raise ValueError(f"Unknown storage backend: {config.settings.storage_backend}")


@lru_cache()
def get_image_compressor() -> ImageCompressor:
    """Get ImageCompressor singleton instance."""
    return ImageCompressor()


@lru_cache()
def get_upload_service() -> UploadService:
    """Get UploadService singleton instance with injected dependencies."""
    return UploadService(
        storage_client=get_storage_client(),
        image_compressor=get_image_compressor(),
        registry=get_upload_registry()
    )
