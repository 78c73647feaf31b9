"""Argument construction for yt-dlp invocations."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class Quality(str, Enum):
    BEST = "best"
    UHD_4K = "4k"
    P1080 = "1080p"
    P720 = "720p"
    P480 = "480p"
    P360 = "360p"
    AUDIO = "audio"


def _capped(height: int) -> str:
    return f"bestvideo[height<={height}]+bestaudio/best[height<={height}]"


QUALITY_FORMATS: dict[str, str] = {
    Quality.BEST.value: "bestvideo+bestaudio/best",
    Quality.UHD_4K.value: _capped(2160),
    Quality.P1080.value: _capped(1080),
    Quality.P720.value: _capped(720),
    Quality.P480.value: _capped(480),
    Quality.P360.value: _capped(360),
    Quality.AUDIO.value: "bestaudio/best",
}


def format_selector(quality: str | None) -> str:
    """Get the yt-dlp format expression for a quality name.

    Unknown names fall back to the "best" expression.
    """
    return QUALITY_FORMATS.get(quality or "", QUALITY_FORMATS[Quality.BEST.value])


@dataclass(frozen=True)
class ClientProfile:
    """Identity presented to the upstream site."""

    name: str
    player_client: str
    user_agent: str
    headers: tuple[tuple[str, str], ...] = ()


# Android client sidesteps most "confirm you're not a bot" checks
DEFAULT_PROFILE = ClientProfile(
    name="android",
    player_client="android",
    user_agent=(
        "Mozilla/5.0 (Linux; Android 10; K) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/114.0.0.0 Mobile Safari/537.36"
    ),
)

FALLBACK_PROFILE = ClientProfile(
    name="web",
    player_client="ios,web",
    user_agent=(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    headers=(
        ("Referer", "https://www.youtube.com/"),
        ("Accept-Language", "en-US,en;q=0.9"),
    ),
)


class Mode(str, Enum):
    INFO = "info"
    TITLE = "title"
    FORMATS = "formats"
    STREAM = "stream"


@dataclass
class ExtractionOptions:
    mode: Mode = Mode.INFO
    format: str | None = None
    profile: ClientProfile = field(default=DEFAULT_PROFILE)
    cookies_path: Path | None = None
    temp_dir: Path | None = None
    geo_bypass: bool = True
    check_certificates: bool = False


def build_extraction_args(url: str, options: ExtractionOptions) -> list[str]:
    """Build yt-dlp arguments (without the executable) for one invocation."""
    if options.mode is Mode.INFO:
        args = ["--dump-json", "--no-download"]
    elif options.mode is Mode.TITLE:
        args = ["--print", "title"]
    elif options.mode is Mode.FORMATS:
        args = ["--list-formats"]
    else:
        args = ["-f", options.format or format_selector(None), "-o", "-", "--no-part"]
        if options.temp_dir is not None:
            args += ["--paths", f"temp:{options.temp_dir}"]

    args.append("--no-playlist")
    if not options.check_certificates:
        args.append("--no-check-certificates")
    if options.geo_bypass:
        args.append("--geo-bypass")

    profile = options.profile
    args += [
        "--extractor-args", f"youtube:player_client={profile.player_client}",
        "--user-agent", profile.user_agent,
    ]
    for name, value in profile.headers:
        args += ["--add-header", f"{name}:{value}"]

    if options.cookies_path is not None:
        args += ["--cookies", str(options.cookies_path)]

    # "--" keeps the URL from ever being read as an option
    args += ["--", url]
    return args
