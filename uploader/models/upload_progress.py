"""
Aggregate progress models.
Derived, read-only views over the upload registry.
"""
from dataclasses import dataclass
from typing import Tuple
from uploader.models.upload_job import UploadJob


@dataclass(frozen=True)
class AggregateProgress:
    """Global completion across all uploads."""
    any_pending: bool
    global_percentage: int


@dataclass(frozen=True)
class UploadSnapshot:
    """All jobs plus the aggregate computed from the same registry state."""
    uploads: Tuple[UploadJob, ...]
    progress: AggregateProgress
