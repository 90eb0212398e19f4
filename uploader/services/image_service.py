"""
Image Service for upload compression.
Downscales and re-encodes images before they are sent to storage.
"""
import asyncio
import io
import os
from typing import Optional
from PIL import Image, UnidentifiedImageError
from uploader.core.cancellation import CancellationToken
from uploader.core.exceptions import CompressionException
from uploader.models.file_payload import FilePayload


class ImageCompressor:
    """Service for image compression operations."""

    COMPRESSIBLE_TYPES = {'image/jpeg', 'image/png', 'image/webp'}
    OUTPUT_FORMAT = 'WEBP'
    OUTPUT_CONTENT_TYPE = 'image/webp'
    OUTPUT_EXTENSION = '.webp'

    def is_compressible(self, file: FilePayload) -> bool:
        return file.content_type in self.COMPRESSIBLE_TYPES

    async def compress(
        self,
        file: FilePayload,
        max_width: int,
        max_height: int,
        quality: float,
        cancel_token: Optional[CancellationToken] = None
    ) -> FilePayload:
        """
        Compress an image to fit within the given bounds.

        Files of other types are returned unchanged. The input is never modified.

        Args:
            file: File to compress
            max_width: Maximum output width in pixels
            max_height: Maximum output height in pixels
            quality: Encoder quality factor between 0 and 1
            cancel_token: Optional token checked before and during encoding

        Returns:
            FilePayload with the compressed image, or the original file

        Raises:
            CompressionException: If the image cannot be decoded or encoded
            UploadCanceledException: If the token was triggered
        """
        if not self.is_compressible(file):
            return file

        if cancel_token is None:
            return await asyncio.to_thread(self._compress_sync, file, max_width, max_height, quality)

        cancel_token.raise_if_cancelled()
        return await cancel_token.guard(
            asyncio.to_thread(self._compress_sync, file, max_width, max_height, quality)
        )

    def _compress_sync(self, file: FilePayload, max_width: int, max_height: int, quality: float) -> FilePayload:
        try:
            with Image.open(io.BytesIO(file.content)) as image:
                image.thumbnail((max_width, max_height))

                if image.mode == 'P':
                    image = image.convert('RGBA')
                elif image.mode not in ('RGB', 'RGBA'):
                    image = image.convert('RGB')

                buffer = io.BytesIO()
                image.save(buffer, format=self.OUTPUT_FORMAT, quality=int(round(quality * 100)))
        except UnidentifiedImageError as e:
            raise CompressionException(f"File '{file.name}' is not a readable image") from e
        except (OSError, ValueError) as e:
            raise CompressionException(f"Failed to compress '{file.name}': {str(e)}") from e

        return FilePayload(
            name=self._output_name(file.name),
            content=buffer.getvalue(),
            content_type=self.OUTPUT_CONTENT_TYPE
        )

    def _output_name(self, filename: str) -> str:
        stem, _ = os.path.splitext(filename)
        return f"{stem or filename}{self.OUTPUT_EXTENSION}"
