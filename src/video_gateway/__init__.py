"""Video Gateway - YouTube metadata and streaming downloads via yt-dlp."""

__version__ = "0.1.0"

from .interfaces import Extractor, VideoFormat, VideoInfoResult
from .service import VideoGatewayService, PreparedDownload, sanitize_filename

__all__ = [
    "Extractor",
    "VideoFormat",
    "VideoInfoResult",
    "VideoGatewayService",
    "PreparedDownload",
    "sanitize_filename",
]
