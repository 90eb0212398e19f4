"""
Abstract base class for storage clients.
Defines the contract for sending one file to remote storage.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable
from uploader.core.cancellation import CancellationToken
from uploader.models.file_payload import FilePayload

ProgressCallback = Callable[[int], None]


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful transfer."""
    url: str


class StorageClient(ABC):
    """Abstract transport interface used by the upload pipeline."""
    
    @abstractmethod
    async def send(
        self,
        payload: FilePayload,
        on_progress: ProgressCallback,
        cancel_token: CancellationToken
    ) -> UploadResult:
        """
        Send a file to storage.
        
        Args:
            payload: File to send
            on_progress: Called with the number of bytes sent so far
            cancel_token: Aborts the transfer when triggered
            
        Returns:
            UploadResult with the canonical URL of the stored file
            
        Raises:
            UploadCanceledException: If the token was triggered
            TransportException: If the transfer fails for any other reason
        """
        pass
    
    async def close(self) -> None:
        """Release network resources."""
        pass
