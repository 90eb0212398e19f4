"""
Aggregate progress calculation.
Side-effect free functions over a registry snapshot.
"""
import math
from typing import Iterable
from uploader.models.upload_job import UploadJob
from uploader.models.upload_progress import AggregateProgress


def calculate_aggregate_progress(jobs: Iterable[UploadJob]) -> AggregateProgress:
    """
    Compute the global completion percentage across all uploads.
    
    Uploaded bytes only count once compression has produced the final
    total for a job, so the percentage never runs ahead of a shrinking total.
    Settled jobs still contribute their last known totals.
    
    Args:
        jobs: Snapshot of every job in the registry
        
    Returns:
        AggregateProgress with any_pending flag and percentage (0-100)
    """
    jobs = list(jobs)
    any_pending = any(job.is_pending for job in jobs)
    
    if not any_pending:
        return AggregateProgress(any_pending=False, global_percentage=100)
    
    total = 0
    uploaded = 0
    for job in jobs:
        if job.compressed_size_bytes is not None:
            uploaded += job.uploaded_size_in_bytes
        total += job.effective_total_bytes
    
    if total == 0:
        return AggregateProgress(any_pending=True, global_percentage=0)
    
    percentage = _round_half_up(uploaded * 100 / total)
    return AggregateProgress(any_pending=True, global_percentage=min(percentage, 100))


def _round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (round() rounds half to even)."""
    return int(math.floor(value + 0.5))
