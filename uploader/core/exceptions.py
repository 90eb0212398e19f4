"""
Custom exceptions for the Upload Orchestrator API.
Provides specific error types for different failure scenarios.
"""


class UploaderException(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationException(UploaderException):
    """Raised when a submitted file is rejected."""
    pass


class UploadNotFoundException(UploaderException):
    """Raised when an upload id is not in the registry."""
    pass


class DuplicateUploadException(UploaderException):
    """Raised when inserting an upload id that already exists."""
    pass


class CompressionException(UploaderException):
    """Raised when image compression fails."""
    pass


class TransportException(UploaderException):
    """Raised when sending a file to storage fails."""
    pass


class UploadCanceledException(UploaderException):
    """Raised when an attempt observes its cancellation token."""
    def __init__(self, message: str = "Upload canceled"):
        super().__init__(message)
