"""
Upload Service for upload orchestration.
Drives each upload job through compression and transport and keeps the registry current.
"""
import asyncio
import uuid
from typing import AsyncGenerator, Iterable, List, Optional, Set
from uploader.core.cancellation import CancellationToken
from uploader.core.exceptions import UploadCanceledException
from uploader.core.logger import get_logger
from uploader.models.file_payload import FilePayload
from uploader.models.upload_job import UploadJob, UploadJobStatus
from uploader.models.upload_progress import AggregateProgress, UploadSnapshot
from uploader.repositories.storage_client import StorageClient
from uploader.repositories.upload_registry import UploadRegistry
from uploader.services.image_service import ImageCompressor
from uploader.services.progress_service import calculate_aggregate_progress

logger = get_logger(__name__)

COMPRESSION_MAX_WIDTH = 1000
COMPRESSION_MAX_HEIGHT = 1000
COMPRESSION_QUALITY = 0.8
SUBSCRIBER_QUEUE_SIZE = 256


class UploadService:
    """Service owning the upload registry and every running upload attempt."""

    def __init__(
        self,
        storage_client: StorageClient,
        image_compressor: ImageCompressor = None,
        registry: UploadRegistry = None
    ):
        self.storage_client = storage_client
        self.image_compressor = image_compressor or ImageCompressor()
        self.registry = registry if registry is not None else UploadRegistry()
        self._tasks: Set[asyncio.Task] = set()

    def add_uploads(self, files: Iterable[FilePayload]) -> List[str]:
        """
        Register files and start uploading each of them.

        Must be called from a running event loop. Returns immediately;
        outcomes are only observable through the registry.

        Args:
            files: Files submitted together

        Returns:
            New upload ids in submission order
        """
        upload_ids = []
        for file in files:
            upload_id = str(uuid.uuid4())
            self.registry.insert(UploadJob.from_file(upload_id, file))
            logger.info("Registered upload %s (%s, %d bytes)", upload_id, file.name, file.size)

            self._start_attempt(upload_id)
            upload_ids.append(upload_id)

        return upload_ids

    def retry_upload(self, upload_id: str) -> None:
        """
        Start a new attempt for an upload. Unknown ids are ignored.

        An attempt still in flight is canceled first; its later writes are dropped.
        """
        job = self.registry.get(upload_id)
        if job is None:
            return

        if job.is_pending and job.cancel_token is not None:
            job.cancel_token.cancel()

        logger.info("Retrying upload %s", upload_id)
        self._start_attempt(upload_id)

    def cancel_upload(self, upload_id: str) -> None:
        """
        Request cancellation of the upload's in-flight attempt.

        The attempt itself records the canceled status once it observes the
        request. Unknown ids and settled uploads are ignored.
        """
        job = self.registry.get(upload_id)
        if job is None or job.cancel_token is None or not job.is_pending:
            return

        logger.info("Cancellation requested for upload %s", upload_id)
        job.cancel_token.cancel()

    def get_upload(self, upload_id: str) -> Optional[UploadJob]:
        return self.registry.get(upload_id)

    def list_uploads(self) -> List[UploadJob]:
        return list(self.registry.values())

    def get_progress(self) -> AggregateProgress:
        return calculate_aggregate_progress(self.registry.values())

    def snapshot(self) -> UploadSnapshot:
        uploads = self.registry.values()
        return UploadSnapshot(uploads=uploads, progress=calculate_aggregate_progress(uploads))

    async def subscribe(self) -> AsyncGenerator[UploadSnapshot, None]:
        """
        Yield the current snapshot, then one snapshot per registry mutation.

        Each snapshot is taken at mutation time, so intermediate states are
        delivered even when the consumer falls behind. At most
        SUBSCRIBER_QUEUE_SIZE snapshots are buffered; when a consumer lags
        further the oldest are dropped and the latest state is kept.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)

        def enqueue(job: UploadJob) -> None:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(self.snapshot())

        unsubscribe = self.registry.subscribe(enqueue)
        try:
            yield self.snapshot()
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    async def wait_until_idle(self) -> None:
        """Wait for every running attempt, including ones started while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel all in-flight attempts and wait for them to settle."""
        for task in list(self._tasks):
            task.cancel()
        await self.wait_until_idle()

    def _start_attempt(self, upload_id: str) -> None:
        job = self.registry.get(upload_id)
        if job is None:
            return

        cancel_token = CancellationToken()
        self.registry.update(upload_id, {
            'cancel_token': cancel_token,
            'status': UploadJobStatus.PROGRESS,
            'uploaded_size_in_bytes': 0,
            'compressed_size_bytes': None,
            'remote_url': None,
            'error_message': None,
            'attempts': job.attempts + 1
        })

        task = asyncio.get_running_loop().create_task(self._run_attempt(upload_id, cancel_token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_attempt(self, upload_id: str, cancel_token: CancellationToken) -> None:
        job = self.registry.get(upload_id)
        if job is None:
            return

        try:
            compressed = await self.image_compressor.compress(
                job.file,
                max_width=COMPRESSION_MAX_WIDTH,
                max_height=COMPRESSION_MAX_HEIGHT,
                quality=COMPRESSION_QUALITY,
                cancel_token=cancel_token
            )
            cancel_token.raise_if_cancelled()
            self._update_attempt(upload_id, cancel_token, {'compressed_size_bytes': compressed.size})

            def on_progress(size_in_bytes: int) -> None:
                self._record_progress(upload_id, cancel_token, size_in_bytes)

            result = await self.storage_client.send(compressed, on_progress, cancel_token)

            self._update_attempt(upload_id, cancel_token, {
                'status': UploadJobStatus.SUCCESS,
                'remote_url': result.url,
                'uploaded_size_in_bytes': compressed.size
            })
            logger.info("Upload %s succeeded: %s", upload_id, result.url)

        except UploadCanceledException:
            self._update_attempt(upload_id, cancel_token, {'status': UploadJobStatus.CANCELED})
            logger.info("Upload %s canceled", upload_id)

        except asyncio.CancelledError:
            self._update_attempt(upload_id, cancel_token, {'status': UploadJobStatus.CANCELED})
            raise

        except Exception as e:
            self._update_attempt(upload_id, cancel_token, {
                'status': UploadJobStatus.ERROR,
                'error_message': str(e) or e.__class__.__name__
            })
            logger.warning("Upload %s failed: %s", upload_id, e, exc_info=True)

    def _record_progress(self, upload_id: str, cancel_token: CancellationToken, size_in_bytes: int) -> None:
        job = self.registry.get(upload_id)
        if job is None or job.cancel_token is not cancel_token or not job.is_pending:
            return
        if size_in_bytes <= job.uploaded_size_in_bytes:
            return
        self.registry.update(upload_id, {'uploaded_size_in_bytes': size_in_bytes})

    def _update_attempt(self, upload_id: str, cancel_token: CancellationToken, updates: dict) -> None:
        """Apply updates only while this attempt is still the job's current one."""
        job = self.registry.get(upload_id)
        if job is None or job.cancel_token is not cancel_token:
            logger.debug("Dropping update from superseded attempt of upload %s", upload_id)
            return
        self.registry.update(upload_id, updates)
