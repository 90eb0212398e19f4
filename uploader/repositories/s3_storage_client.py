"""
S3 Storage Client for file storage operations.
Uploads files to Amazon S3 as an alternative to the HTTP storage endpoint.
"""
import asyncio
import io
import uuid
from datetime import datetime, timezone
import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError
from uploader.core import config
from uploader.core.cancellation import CancellationToken
from uploader.core.exceptions import TransportException, UploadCanceledException
from uploader.models.file_payload import FilePayload
from uploader.repositories.storage_client import ProgressCallback, StorageClient, UploadResult


class S3StorageClient(StorageClient):
    """Storage client backed by an S3 bucket."""

    def __init__(self):
        self.s3_client = boto3.client('s3', region_name=config.settings.aws_region)
        self.bucket_name = config.settings.s3_bucket_name
        self.region = config.settings.aws_region
        self.public_base_url = config.settings.s3_public_base_url

    async def send(
        self,
        payload: FilePayload,
        on_progress: ProgressCallback,
        cancel_token: CancellationToken
    ) -> UploadResult:
        """
        Upload a file to S3.

        The blocking transfer runs in a worker thread; byte counts are
        handed back to the event loop so the caller's callback runs there.

        Args:
            payload: File to upload
            on_progress: Called with the number of bytes sent so far
            cancel_token: Aborts the transfer at the next chunk when triggered

        Returns:
            UploadResult with the public URL of the object

        Raises:
            UploadCanceledException: If the token was triggered
            TransportException: If the upload fails
        """
        cancel_token.raise_if_cancelled()
        loop = asyncio.get_running_loop()
        s3_key = self._generate_s3_key(payload.name)
        sent = 0

        def callback(bytes_amount: int) -> None:
            nonlocal sent
            if cancel_token.is_cancelled:
                raise UploadCanceledException()
            sent += bytes_amount
            loop.call_soon_threadsafe(on_progress, sent)

        try:
            await asyncio.to_thread(
                self.s3_client.upload_fileobj,
                io.BytesIO(payload.content),
                self.bucket_name,
                s3_key,
                ExtraArgs={'ContentType': payload.content_type},
                Callback=callback
            )
        except UploadCanceledException:
            raise
        except (ClientError, BotoCoreError, S3UploadFailedError) as e:
            raise TransportException(f"Failed to upload file to S3: {str(e)}") from e
        except Exception as e:
            # s3transfer may re-raise callback errors wrapped
            if cancel_token.is_cancelled:
                raise UploadCanceledException() from e
            raise TransportException(f"Unexpected error during S3 upload: {str(e)}") from e

        return UploadResult(url=self._object_url(s3_key))

    def _generate_s3_key(self, filename: str) -> str:
        """
        Generate unique S3 key for file.

        Format: uploads/YYYY/MM/DD/{uuid}_{filename}
        """
        now = datetime.now(timezone.utc)
        unique_id = uuid.uuid4().hex[:8]
        return f"uploads/{now.year}/{now.month:02d}/{now.day:02d}/{unique_id}_{filename}"

    def _object_url(self, s3_key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{s3_key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{s3_key}"
