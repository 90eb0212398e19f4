"""
File payload domain model.
Binary content of a submitted or compressed file.
"""
from dataclasses import dataclass, field


@dataclass(frozen=True)
class FilePayload:
    """Immutable file handle passed through the upload pipeline."""
    
    name: str
    content: bytes = field(repr=False)
    content_type: str = "application/octet-stream"
    
    @property
    def size(self) -> int:
        return len(self.content)
