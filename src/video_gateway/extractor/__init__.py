"""Extractor module for validating URLs and running yt-dlp."""

from .arguments import (
    QUALITY_FORMATS,
    ClientProfile,
    ExtractionOptions,
    build_extraction_args,
    format_selector,
)
from .downloader import YtDlpExtractor
from .errors import ExtractorErrorKind, classify_error
from .urls import extract_video_id, is_valid_video_url

__all__ = [
    "QUALITY_FORMATS",
    "ClientProfile",
    "ExtractionOptions",
    "build_extraction_args",
    "format_selector",
    "YtDlpExtractor",
    "ExtractorErrorKind",
    "classify_error",
    "extract_video_id",
    "is_valid_video_url",
]
