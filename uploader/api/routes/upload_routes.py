"""
Upload API routes.
Handles HTTP endpoints for submitting, inspecting, retrying and canceling uploads.
"""
import asyncio
from typing import AsyncIterator, List
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import StreamingResponse
from uploader.core import config
from uploader.core.dependencies import get_upload_service
from uploader.core.exceptions import UploadNotFoundException, ValidationException
from uploader.models.dto.upload_dto import (
    UploadAcceptedResponse,
    UploadActionResponse,
    UploadListResponse,
    UploadProgressResponse,
    UploadResponse
)
from uploader.models.file_payload import FilePayload
from uploader.services.upload_service import UploadService

router = APIRouter(prefix="/v1/api", tags=["Uploads"])

KEEPALIVE_SECONDS = 30.0


@router.post("/uploads", response_model=UploadAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_uploads(
    files: List[UploadFile] = File(..., description="One or more files to upload"),
    upload_service: UploadService = Depends(get_upload_service)
):
    """
    Submit files for upload.

    Every file is compressed and sent to storage in the background.
    Poll the uploads endpoints or subscribe to the event stream for progress.
    """
    max_size_bytes = config.settings.max_file_size_mb * 1024 * 1024
    payloads = []

    for file in files:
        content = await file.read()
        file_size = len(content)

        if file_size == 0:
            raise ValidationException(f"File '{file.filename}' is empty")

        if file_size > max_size_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File '{file.filename}' ({file_size / (1024 * 1024):.2f}MB) exceeds maximum allowed size of {config.settings.max_file_size_mb}MB"
            )

        payloads.append(FilePayload(
            name=file.filename or "upload",
            content=content,
            content_type=file.content_type or "application/octet-stream"
        ))

    upload_ids = upload_service.add_uploads(payloads)
    return UploadAcceptedResponse(
        upload_ids=upload_ids,
        message=f"{len(upload_ids)} file(s) accepted. Upload in progress."
    )


@router.get("/uploads", response_model=UploadListResponse)
async def list_uploads(upload_service: UploadService = Depends(get_upload_service)):
    """
    List every upload of the session with the aggregate progress.
    """
    return UploadListResponse.from_snapshot(upload_service.snapshot())


@router.get("/uploads/progress", response_model=UploadProgressResponse)
async def get_upload_progress(upload_service: UploadService = Depends(get_upload_service)):
    """
    Get the global completion percentage and whether any upload is pending.
    """
    return UploadProgressResponse.from_progress(upload_service.get_progress())


@router.get("/uploads/events")
async def stream_upload_events(upload_service: UploadService = Depends(get_upload_service)):
    """
    Server-Sent Events stream with one snapshot per upload state change.
    """
    return StreamingResponse(
        _event_stream(upload_service),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"}
    )


@router.get("/uploads/{upload_id}", response_model=UploadResponse)
async def get_upload(upload_id: str, upload_service: UploadService = Depends(get_upload_service)):
    """
    Get the state of a single upload.
    """
    job = upload_service.get_upload(upload_id)
    if job is None:
        raise UploadNotFoundException(f"Upload ID '{upload_id}' not found")
    return UploadResponse.from_job(job)


@router.post("/uploads/{upload_id}/retry", response_model=UploadActionResponse, status_code=status.HTTP_202_ACCEPTED)
async def retry_upload(upload_id: str, upload_service: UploadService = Depends(get_upload_service)):
    """
    Start a new attempt for an upload. Unknown ids are ignored.
    """
    upload_service.retry_upload(upload_id)
    return UploadActionResponse(upload_id=upload_id, message="Retry requested")


@router.post("/uploads/{upload_id}/cancel", response_model=UploadActionResponse, status_code=status.HTTP_202_ACCEPTED)
async def cancel_upload(upload_id: str, upload_service: UploadService = Depends(get_upload_service)):
    """
    Request cancellation of an upload. The status changes once the attempt stops.
    """
    upload_service.cancel_upload(upload_id)
    return UploadActionResponse(upload_id=upload_id, message="Cancellation requested")


async def _event_stream(upload_service: UploadService) -> AsyncIterator[str]:
    snapshots = upload_service.subscribe()
    next_snapshot = asyncio.ensure_future(snapshots.__anext__())
    try:
        while True:
            done, _ = await asyncio.wait({next_snapshot}, timeout=KEEPALIVE_SECONDS)
            if not done:
                yield ": keepalive\n\n"
                continue

            snapshot = next_snapshot.result()
            yield _format_event("progress", UploadListResponse.from_snapshot(snapshot).model_dump_json())
            next_snapshot = asyncio.ensure_future(snapshots.__anext__())
    finally:
        next_snapshot.cancel()
        await asyncio.gather(next_snapshot, return_exceptions=True)
        await snapshots.aclose()


def _format_event(event_type: str, data: str) -> str:
    return f"event: {event_type}\ndata: {data}\n\n"
