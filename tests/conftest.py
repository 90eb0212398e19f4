"""
Shared test fixtures and utilities.
"""
import asyncio
import io
from typing import List, Optional
import pytest
from PIL import Image
from uploader.core.exceptions import TransportException
from uploader.models.file_payload import FilePayload
from uploader.repositories.storage_client import StorageClient, UploadResult


class FakeStorageClient(StorageClient):
    """
    In-memory storage client.

    Reports half of the payload, then all of it. When a gate is set the
    transfer parks after the first report until the gate opens or the
    attempt is canceled.
    """

    def __init__(self, fail_with: Optional[Exception] = None, gated: bool = False):
        self.fail_with = fail_with
        self.gate: Optional[asyncio.Event] = asyncio.Event() if gated else None
        self.sent: List[FilePayload] = []
        self.progress_reports: List[int] = []
        self.started = 0
        self.parked = 0

    async def send(self, payload, on_progress, cancel_token):
        self.started += 1
        cancel_token.raise_if_cancelled()

        half = payload.size // 2
        self.progress_reports.append(half)
        on_progress(half)
        await asyncio.sleep(0)

        if self.gate is not None:
            await cancel_token.guard(self._park())

        if self.fail_with is not None:
            raise self.fail_with

        self.progress_reports.append(payload.size)
        on_progress(payload.size)
        self.sent.append(payload)
        return UploadResult(url=f"http://storage.test/uploads/{len(self.sent)}-{payload.name}")

    async def _park(self):
        self.parked += 1
        await self.gate.wait()


def _make_file(name: str = "notes.txt", size: int = 100, content_type: str = "text/plain") -> FilePayload:
    return FilePayload(name=name, content=b"x" * size, content_type=content_type)


def _make_image_bytes(width: int = 2000, height: int = 1500, fmt: str = "PNG", mode: str = "RGB") -> bytes:
    image = Image.new(mode, (width, height), color=(200, 30, 30) if mode == "RGB" else 0)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_file():
    """Factory for plain text payloads of a given size."""
    return _make_file


@pytest.fixture
def make_image_bytes():
    """Factory for encoded images of a given size, format and mode."""
    return _make_image_bytes


@pytest.fixture
def make_storage():
    """Factory for fake storage clients with custom behaviour."""
    return FakeStorageClient


@pytest.fixture
def fake_storage():
    return FakeStorageClient()


@pytest.fixture
def gated_storage():
    return FakeStorageClient(gated=True)


@pytest.fixture
def failing_storage():
    return FakeStorageClient(fail_with=TransportException("Storage unavailable"))


@pytest.fixture
def png_bytes():
    return _make_image_bytes()
