"""Extractor failures and diagnostic classification."""

import re
from dataclasses import dataclass
from enum import Enum

MAX_DETAILS_LENGTH = 2000


class ExtractorErrorKind(str, Enum):
    AUTH_REQUIRED = "auth_required"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ErrorSignature:
    kind: ExtractorErrorKind
    keywords: tuple[str, ...]


# Wording tracks yt-dlp releases; checked in order, case-insensitively.
ERROR_SIGNATURES = (
    ErrorSignature(
        ExtractorErrorKind.AUTH_REQUIRED,
        (
            "sign in to confirm you're not a bot",
            "sign in to confirm your age",
            "this video is only available to registered users",
            "use --cookies-from-browser or --cookies",
            "login required",
        ),
    ),
    ErrorSignature(
        ExtractorErrorKind.RATE_LIMITED,
        (
            "http error 429",
            "too many requests",
            "rate-limited",
        ),
    ),
    ErrorSignature(
        ExtractorErrorKind.NOT_FOUND,
        (
            "video unavailable",
            "private video",
            "this video has been removed",
            "http error 404",
            "does not exist",
        ),
    ),
)


def classify_error(stderr: str) -> ExtractorErrorKind:
    """Map extractor diagnostic output to an error kind."""
    if not stderr:
        return ExtractorErrorKind.UNKNOWN

    clean = " ".join(stderr.splitlines()).lower()
    for signature in ERROR_SIGNATURES:
        if any(keyword in clean for keyword in signature.keywords):
            return signature.kind
    return ExtractorErrorKind.UNKNOWN


def summarize_error(stderr: str) -> str:
    """Pull the first ERROR line out of diagnostic output, bounded in length."""
    match = re.search(r"ERROR:\s*(.*?)(?:\n|$)", stderr or "")
    text = match.group(1).strip() if match else (stderr or "").strip()
    if not text:
        return "Unknown extractor error"
    if len(text) > MAX_DETAILS_LENGTH:
        text = text[: MAX_DETAILS_LENGTH - 3] + "..."
    return text


class GatewayError(Exception):
    """Base class for errors surfaced to HTTP clients."""

    pass


class InvalidURLError(GatewayError):
    """Raised when a URL fails validation."""

    def __init__(self, url: object):
        self.url = url
        super().__init__("Invalid YouTube URL provided")


class ExtractorError(GatewayError):
    """Raised when the extractor exits with a non-zero status."""

    def __init__(
        self,
        details: str,
        returncode: int | None = None,
        kind: ExtractorErrorKind | None = None,
    ):
        self.details = details
        self.returncode = returncode
        self.kind = kind if kind is not None else classify_error(details)
        super().__init__(f"Extractor failed ({self.kind.value}): {summarize_error(details)}")

    @classmethod
    def from_stderr(cls, stderr: str, returncode: int | None) -> "ExtractorError":
        """Build the most specific error for the given diagnostic output."""
        kind = classify_error(stderr)
        if kind is ExtractorErrorKind.AUTH_REQUIRED:
            return AuthRequiredError(stderr, returncode)
        return cls(stderr, returncode, kind)


class AuthRequiredError(ExtractorError):
    """Raised when the upstream site demands authentication."""

    def __init__(self, details: str, returncode: int | None = None):
        super().__init__(details, returncode, ExtractorErrorKind.AUTH_REQUIRED)


class ExtractorTimeoutError(GatewayError):
    """Raised when the extractor does not finish within its time budget."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Extractor did not finish within {timeout:g}s")


class ExtractorOutputError(GatewayError):
    """Raised when extractor output cannot be parsed."""

    pass


class ExtractorLaunchError(GatewayError):
    """Raised when the extractor executable cannot be started."""

    pass
