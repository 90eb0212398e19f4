"""
Upload Registry for in-memory job storage.
Single source of truth for upload state during a session.
"""
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Tuple
from uploader.core.exceptions import DuplicateUploadException
from uploader.core.logger import get_logger
from uploader.models.upload_job import UploadJob

logger = get_logger(__name__)

UploadListener = Callable[[UploadJob], None]


class UploadRegistry:
    """Repository for upload jobs keyed by upload id."""

    def __init__(self):
        self._jobs: Dict[str, UploadJob] = {}
        self._listeners: List[UploadListener] = []

    def insert(self, job: UploadJob) -> None:
        """
        Add a new upload job.

        Args:
            job: UploadJob domain model

        Raises:
            DuplicateUploadException: If the id is already registered
        """
        if job.id in self._jobs:
            raise DuplicateUploadException(f"Upload '{job.id}' already exists")

        self._jobs[job.id] = job
        self._notify(job)

    def get(self, upload_id: str) -> Optional[UploadJob]:
        """Return the current snapshot of a job, or None if unknown."""
        return self._jobs.get(upload_id)

    def update(self, upload_id: str, updates: dict) -> Optional[UploadJob]:
        """
        Replace a job with a copy carrying the given field changes.

        Args:
            upload_id: Upload identifier
            updates: Dictionary of fields to update

        Returns:
            The new job snapshot, or None if the id is unknown
        """
        job = self._jobs.get(upload_id)
        if job is None:
            return None

        updated = replace(job, **updates)
        self._jobs[upload_id] = updated
        self._notify(updated)
        return updated

    def values(self) -> Tuple[UploadJob, ...]:
        """Snapshot of all jobs in insertion order."""
        return tuple(self._jobs.values())

    def subscribe(self, listener: UploadListener) -> Callable[[], None]:
        """
        Register a listener called after every insert and update.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, job: UploadJob) -> None:
        for listener in list(self._listeners):
            try:
                listener(job)
            except Exception:
                logger.exception("Upload listener failed for upload %s", job.id)

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, upload_id: object) -> bool:
        return upload_id in self._jobs
