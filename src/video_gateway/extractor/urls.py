"""YouTube URL validation.

The validator is the only gate between user input and the extractor's
argument list, so it is purely syntactic and deliberately narrow.
"""

import re

MAX_URL_LENGTH = 2048

_PREFIX = r"(?:https?://)?(?:www\.|m\.)?"
_ID = r"([A-Za-z0-9_-]+)"
_PARAM = r"[A-Za-z0-9_.~%+=-]*"
_TAIL = rf"(?:[?&#]{_PARAM}(?:&{_PARAM})*)?"

_URL_PATTERNS = (
    # watch-query form: youtube.com/watch?v=ID, v may follow other params
    re.compile(rf"{_PREFIX}youtube\.com/watch\?(?:{_PARAM}&)*v={_ID}{_TAIL}"),
    # short-link form
    re.compile(rf"(?:https?://)?youtu\.be/{_ID}{_TAIL}"),
    # embed form
    re.compile(rf"{_PREFIX}youtube(?:-nocookie)?\.com/embed/{_ID}{_TAIL}"),
    # shorts form
    re.compile(rf"{_PREFIX}youtube\.com/shorts/{_ID}{_TAIL}"),
)


def _match(value: object) -> re.Match | None:
    if not isinstance(value, str) or len(value) > MAX_URL_LENGTH:
        return None
    for pattern in _URL_PATTERNS:
        match = pattern.fullmatch(value)
        if match:
            return match
    return None


def is_valid_video_url(value: object) -> bool:
    """Check that a value looks like a supported video URL.

    No network access is attempted; anything that is not a string is rejected.
    """
    return _match(value) is not None


def extract_video_id(url: str) -> str | None:
    """Extract YouTube video ID from URL."""
    match = _match(url)
    return match.group(1) if match else None
