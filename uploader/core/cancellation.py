"""
Cooperative cancellation for upload attempts.
Each attempt owns one token; the pipeline steps check it between units of work.
"""
import asyncio
from typing import Awaitable, TypeVar
from uploader.core.exceptions import UploadCanceledException

T = TypeVar("T")


class CancellationToken:
    """Per-attempt cancellation signal backed by an asyncio.Event."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Calling it more than once has no further effect."""
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise UploadCanceledException()

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await the given work unless the token is triggered first.

        Args:
            awaitable: Coroutine or future performing one pipeline step

        Returns:
            The result of the work when it finishes before cancellation

        Raises:
            UploadCanceledException: If the token fires while the work is pending
        """
        if self.is_cancelled:
            _discard(awaitable)
            raise UploadCanceledException()

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        # Finished work wins over a cancellation that arrived in the same tick
        if work in done:
            return work.result()

        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        raise UploadCanceledException()

    def __repr__(self):
        return f"CancellationToken(cancelled={self.is_cancelled})"


def _discard(awaitable: Awaitable) -> None:
    """Release work that will never be awaited."""
    if asyncio.iscoroutine(awaitable):
        awaitable.close()
    elif asyncio.isfuture(awaitable):
        awaitable.cancel()
