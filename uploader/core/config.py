"""
Core configuration for the Upload Orchestrator API.
Manages environment variables and storage backend settings.
"""
import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""
    
    # API Configuration
    api_title: str = os.getenv("API_TITLE", "Upload Orchestrator API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    
    # Storage Configuration
    storage_backend: str = os.getenv("STORAGE_BACKEND", "http")
    storage_base_url: str = os.getenv("STORAGE_BASE_URL", "http://localhost:3333")
    storage_timeout_seconds: float = float(os.getenv("STORAGE_TIMEOUT_SECONDS", "30"))
    
    # AWS Configuration (s3 storage backend)
    aws_region: str = os.getenv("AWS_REGION", "us-east-1")
    s3_bucket_name: str = os.getenv("S3_BUCKET_NAME", "")
    s3_public_base_url: str = os.getenv("S3_PUBLIC_BASE_URL", "")
    
    # File Upload Limits
    max_file_size_mb: int = int(os.getenv("MAX_FILE_SIZE_MB", "10"))
    
    # Environment
    environment: str = os.getenv("ENVIRONMENT", "dev")
    
    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
