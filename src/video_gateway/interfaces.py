"""Interfaces (Protocols) for dependency injection and testing."""

from dataclasses import dataclass, field
from typing import Any, Protocol

from .extractor.process import ExtractorStream


@dataclass
class VideoFormat:
    """One encoding offered by the hosting site."""

    format_id: str
    ext: str
    resolution: str
    filesize: int | None = None


@dataclass
class VideoInfoResult:
    """Video metadata from one extractor invocation."""

    title: str
    duration: float
    thumbnail: str
    uploader: str
    view_count: int
    formats: list[VideoFormat] = field(default_factory=list)


class Extractor(Protocol):
    """Protocol for the external extraction tool."""

    async def fetch_info(self, url: str) -> dict[str, Any]:
        """Get the raw metadata document without downloading."""
        ...

    async def fetch_title(self, url: str) -> str:
        """Get the plain-text title."""
        ...

    async def list_formats(self, url: str) -> str:
        """Get the human-readable format listing."""
        ...

    async def open_stream(self, url: str, quality: str | None = None) -> ExtractorStream:
        """Start relaying media bytes."""
        ...
