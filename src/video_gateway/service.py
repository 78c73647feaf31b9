"""Video Gateway Service - request handling independent of HTTP."""

import logging
import re
from dataclasses import dataclass
from typing import Any

from .extractor.errors import GatewayError, InvalidURLError
from .extractor.process import ExtractorStream
from .extractor.urls import extract_video_id, is_valid_video_url
from .interfaces import Extractor, VideoFormat, VideoInfoResult

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 100
DEFAULT_FILENAME = "video"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_filename(title: str | None) -> str:
    """Reduce a title to a header-safe filename stem.

    Idempotent: anything outside [A-Za-z0-9_-] becomes "_", then the
    result is cut to MAX_FILENAME_LENGTH characters.
    """
    name = _UNSAFE_FILENAME_CHARS.sub("_", title or "")[:MAX_FILENAME_LENGTH]
    return name or DEFAULT_FILENAME


def _resolution_label(fmt: dict[str, Any]) -> str:
    if fmt.get("resolution"):
        return str(fmt["resolution"])
    if fmt.get("height"):
        return f"{fmt['height']}p"
    return "audio only"


def map_formats(formats: list[dict[str, Any]] | None) -> list[VideoFormat]:
    """Keep downloadable formats in the order yt-dlp reports them."""
    result = []
    for fmt in formats or []:
        if not isinstance(fmt, dict):
            continue
        format_id, ext = fmt.get("format_id"), fmt.get("ext")
        if not format_id or not ext or ext == "mhtml":  # storyboards
            continue
        size = fmt.get("filesize") or fmt.get("filesize_approx")
        result.append(
            VideoFormat(
                format_id=str(format_id),
                ext=str(ext),
                resolution=_resolution_label(fmt),
                filesize=int(size) if size else None,
            )
        )
    return result


def map_video_info(data: dict[str, Any]) -> VideoInfoResult:
    """Map a yt-dlp JSON document to the response model."""
    return VideoInfoResult(
        title=data.get("title") or "",
        duration=data.get("duration") or 0,
        thumbnail=data.get("thumbnail") or "",
        uploader=data.get("uploader") or data.get("channel") or "",
        view_count=int(data.get("view_count") or 0),
        formats=map_formats(data.get("formats")),
    )


@dataclass
class PreparedDownload:
    """A stream that has produced its first bytes, plus its filename."""

    filename: str
    stream: ExtractorStream


class VideoGatewayService:
    """Service layer for metadata, format listing and downloads."""

    def __init__(self, extractor: Extractor):
        self.extractor = extractor

    @staticmethod
    def validate_url(url: object) -> str:
        if not is_valid_video_url(url):
            raise InvalidURLError(url)
        return url

    async def get_video_info(self, url: object) -> VideoInfoResult:
        """Fetch and map metadata for a video."""
        url = self.validate_url(url)
        logger.info("Fetching metadata for video %s", extract_video_id(url))
        return map_video_info(await self.extractor.fetch_info(url))

    async def list_formats(self, url: object) -> str:
        """Fetch the raw format listing for a video."""
        url = self.validate_url(url)
        return await self.extractor.list_formats(url)

    async def resolve_filename(self, url: str) -> str:
        """Build a filename from the title, falling back to a fixed name."""
        try:
            title = await self.extractor.fetch_title(url)
        except GatewayError as e:
            logger.warning("Title lookup failed, using default filename: %s", e)
            title = ""
        return f"{sanitize_filename(title)}.mp4"

    async def prepare_download(self, url: object, quality: str | None = None) -> PreparedDownload:
        """Resolve the filename and start the media stream.

        Any extractor failure before the first byte is raised here, while an
        error response is still possible.
        """
        url = self.validate_url(url)
        filename = await self.resolve_filename(url)
        stream = await self.extractor.open_stream(url, quality)
        return PreparedDownload(filename=filename, stream=stream)
