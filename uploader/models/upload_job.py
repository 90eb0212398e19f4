"""
Upload Job domain model.
Represents one submitted file and the state of its current upload attempt.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uploader.core.cancellation import CancellationToken
from uploader.models.file_payload import FilePayload


class UploadJobStatus(str, Enum):
    """Lifecycle states of an upload attempt."""
    PROGRESS = "progress"
    SUCCESS = "success"
    ERROR = "error"
    CANCELED = "canceled"


@dataclass(frozen=True)
class UploadJob:
    """
    Immutable snapshot of an upload job.
    
    The registry replaces the whole object on every update, so a reader
    holding a job never observes a half-applied change.
    """
    
    id: str
    name: str
    file: FilePayload = field(repr=False)
    original_size_in_bytes: int
    status: UploadJobStatus = UploadJobStatus.PROGRESS
    uploaded_size_in_bytes: int = 0
    compressed_size_bytes: Optional[int] = None
    remote_url: Optional[str] = None
    error_message: Optional[str] = None
    attempts: int = 0
    cancel_token: Optional[CancellationToken] = field(default=None, repr=False, compare=False)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    
    @property
    def is_pending(self) -> bool:
        return self.status == UploadJobStatus.PROGRESS
    
    @property
    def effective_total_bytes(self) -> int:
        """Compressed size once known, otherwise the original size."""
        if self.compressed_size_bytes is not None:
            return self.compressed_size_bytes
        return self.original_size_in_bytes
    
    @classmethod
    def from_file(cls, upload_id: str, file: FilePayload) -> "UploadJob":
        return cls(
            id=upload_id,
            name=file.name,
            file=file,
            original_size_in_bytes=file.size
        )
