"""
HTTP Storage Client for multipart uploads.
Sends files to the storage service's POST /uploads endpoint.
"""
from typing import AsyncIterator, Optional
import httpx
from uploader.core import config
from uploader.core.cancellation import CancellationToken
from uploader.core.exceptions import TransportException, UploadCanceledException
from uploader.core.logger import get_logger
from uploader.models.file_payload import FilePayload
from uploader.repositories.storage_client import ProgressCallback, StorageClient, UploadResult

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


class ProgressByteStream(httpx.AsyncByteStream):
    """Request body wrapper that reports file progress and honours cancellation per chunk."""

    def __init__(
        self,
        stream: httpx.AsyncByteStream,
        payload_size: int,
        file_offset: int,
        on_progress: ProgressCallback,
        cancel_token: CancellationToken
    ):
        self._stream = stream
        self._payload_size = payload_size
        self._file_offset = file_offset
        self._on_progress = on_progress
        self._cancel_token = cancel_token

    async def __aiter__(self) -> AsyncIterator[bytes]:
        sent = 0
        reported = 0
        async for chunk in self._stream:
            for start in range(0, len(chunk), CHUNK_SIZE):
                self._cancel_token.raise_if_cancelled()
                piece = chunk[start:start + CHUNK_SIZE]
                yield piece
                sent += len(piece)
                # Multipart framing is not part of the file size
                file_sent = min(max(sent - self._file_offset, 0), self._payload_size)
                if file_sent > reported:
                    reported = file_sent
                    self._on_progress(file_sent)


class HttpStorageClient(StorageClient):
    """Storage client for the HTTP upload endpoint."""

    UPLOAD_PATH = "/uploads"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url or config.settings.storage_base_url
        self.timeout = timeout or config.settings.storage_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport
            )
        return self._client

    async def send(
        self,
        payload: FilePayload,
        on_progress: ProgressCallback,
        cancel_token: CancellationToken
    ) -> UploadResult:
        """
        Upload a file as multipart form data under the field name 'file'.

        Args:
            payload: File to send
            on_progress: Called with the number of file bytes sent so far
            cancel_token: Aborts the request when triggered

        Returns:
            UploadResult with the URL from the response body

        Raises:
            UploadCanceledException: If the token was triggered
            TransportException: If the request fails or the response has no URL
        """
        cancel_token.raise_if_cancelled()
        client = self._get_client()

        request = client.build_request(
            "POST",
            self.UPLOAD_PATH,
            files={"file": (payload.name, payload.content, payload.content_type)}
        )
        request.stream = ProgressByteStream(
            request.stream,
            payload.size,
            self._file_offset(request, payload.size),
            on_progress,
            cancel_token
        )

        try:
            response = await cancel_token.guard(client.send(request))
            response.raise_for_status()
            body = response.json()
        except UploadCanceledException:
            raise
        except httpx.HTTPStatusError as e:
            raise TransportException(
                f"Storage rejected upload with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            if cancel_token.is_cancelled:
                raise UploadCanceledException() from e
            raise TransportException(f"Failed to send file to storage: {str(e)}") from e
        except ValueError as e:
            raise TransportException(f"Storage returned an invalid response: {str(e)}") from e

        url = body.get("url") if isinstance(body, dict) else None
        if not url:
            raise TransportException("Storage response did not contain a url")

        logger.debug("Stored %s at %s", payload.name, url)
        return UploadResult(url=url)

    @staticmethod
    def _file_offset(request: httpx.Request, payload_size: int) -> int:
        """Position of the first file byte in a single-field multipart body."""
        content_length = request.headers.get("Content-Length")
        if content_length is None:
            return 0
        boundary = request.headers["Content-Type"].split("boundary=", 1)[1]
        trailer_size = len(f"\r\n--{boundary}--\r\n")
        return int(content_length) - payload_size - trailer_size

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
