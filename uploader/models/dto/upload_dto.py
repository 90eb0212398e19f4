"""
Data Transfer Objects for Upload API.
Defines response schemas for upload endpoints.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from uploader.models.upload_job import UploadJob, UploadJobStatus
from uploader.models.upload_progress import AggregateProgress, UploadSnapshot


class UploadResponse(BaseModel):
    """Response schema for a single upload."""
    upload_id: str
    name: str
    status: UploadJobStatus
    original_size_in_bytes: int
    compressed_size_bytes: Optional[int] = None
    uploaded_size_in_bytes: int = 0
    remote_url: Optional[str] = None
    error_message: Optional[str] = None
    attempts: int = 0
    created_at: datetime
    
    @classmethod
    def from_job(cls, job: UploadJob) -> "UploadResponse":
        return cls(
            upload_id=job.id,
            name=job.name,
            status=job.status,
            original_size_in_bytes=job.original_size_in_bytes,
            compressed_size_bytes=job.compressed_size_bytes,
            uploaded_size_in_bytes=job.uploaded_size_in_bytes,
            remote_url=job.remote_url,
            error_message=job.error_message,
            attempts=job.attempts,
            created_at=job.created_at
        )


class UploadProgressResponse(BaseModel):
    """Response schema for aggregate upload progress."""
    any_pending: bool
    global_percentage: int = Field(..., ge=0, le=100)
    
    @classmethod
    def from_progress(cls, progress: AggregateProgress) -> "UploadProgressResponse":
        return cls(any_pending=progress.any_pending, global_percentage=progress.global_percentage)


class UploadListResponse(BaseModel):
    """Response schema for listing uploads with aggregate progress."""
    uploads: List[UploadResponse]
    count: int
    any_pending: bool
    global_percentage: int = Field(..., ge=0, le=100)
    
    @classmethod
    def from_snapshot(cls, snapshot: UploadSnapshot) -> "UploadListResponse":
        return cls(
            uploads=[UploadResponse.from_job(job) for job in snapshot.uploads],
            count=len(snapshot.uploads),
            any_pending=snapshot.progress.any_pending,
            global_percentage=snapshot.progress.global_percentage
        )


class UploadAcceptedResponse(BaseModel):
    """Response schema for accepted file submissions."""
    upload_ids: List[str] = Field(..., description="Ids of the created uploads in submission order")
    message: str


class UploadActionResponse(BaseModel):
    """Response schema for retry and cancel requests."""
    upload_id: str
    message: str
