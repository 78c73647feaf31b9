"""YouTube extraction using yt-dlp."""

import json
import logging
from pathlib import Path
from typing import Any, Sequence

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from ..config import Settings, settings as default_settings
from ..storage.scratch import new_request_dir
from .arguments import (
    DEFAULT_PROFILE,
    FALLBACK_PROFILE,
    ClientProfile,
    ExtractionOptions,
    Mode,
    build_extraction_args,
    format_selector,
)
from .errors import AuthRequiredError, ExtractorError, ExtractorOutputError
from .process import ExtractorStream, run_extractor

logger = logging.getLogger(__name__)


class YtDlpExtractor:
    """Runs yt-dlp for metadata, titles, format listings and media streams."""

    def __init__(
        self,
        settings: Settings | None = None,
        profiles: Sequence[ClientProfile] = (DEFAULT_PROFILE, FALLBACK_PROFILE),
    ):
        self.settings = settings or default_settings
        self.command = self.settings.extractor_argv
        self.profiles = tuple(profiles)

    def _options(self, mode: Mode, profile: ClientProfile = DEFAULT_PROFILE, **kwargs) -> ExtractionOptions:
        return ExtractionOptions(
            mode=mode,
            profile=profile,
            cookies_path=self.settings.cookies_path,
            **kwargs,
        )

    async def _run(self, url: str, options: ExtractionOptions, timeout: float) -> str:
        args = build_extraction_args(url, options)
        result = await run_extractor(self.command, args, timeout)
        if result.returncode != 0:
            error = ExtractorError.from_stderr(result.stderr, result.returncode)
            logger.error(
                "yt-dlp %s failed (%s, profile=%s): %s",
                options.mode.value,
                error.kind.value,
                options.profile.name,
                result.stderr.strip()[-500:],
            )
            raise error
        return result.stdout.decode("utf-8", errors="replace")

    async def _fetch_json(self, url: str, profile: ClientProfile) -> dict[str, Any]:
        output = await self._run(
            url, self._options(Mode.INFO, profile), self.settings.metadata_timeout
        )
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise ExtractorOutputError(f"Invalid JSON from yt-dlp: {e}") from e
        if not isinstance(data, dict):
            raise ExtractorOutputError("Expected a JSON object from yt-dlp")
        return data

    async def fetch_info(self, url: str) -> dict[str, Any]:
        """Get the raw video metadata document without downloading.

        An anti-automation block is retried once per remaining profile.
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(len(self.profiles)),
            retry=retry_if_exception_type(AuthRequiredError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                profile = self.profiles[attempt.retry_state.attempt_number - 1]
                data = await self._fetch_json(url, profile)
        return data

    async def fetch_title(self, url: str) -> str:
        """Get the plain-text video title."""
        output = await self._run(url, self._options(Mode.TITLE), self.settings.title_timeout)
        return output.strip().splitlines()[0] if output.strip() else ""

    async def list_formats(self, url: str) -> str:
        """Get yt-dlp's human-readable format table."""
        return await self._run(
            url, self._options(Mode.FORMATS), self.settings.formats_timeout
        )

    async def open_stream(self, url: str, quality: str | None = None) -> ExtractorStream:
        """Start streaming media to stdout and wait for the first bytes."""
        scratch_dir: Path = new_request_dir(self.settings.temp_directory)
        options = self._options(
            Mode.STREAM,
            format=format_selector(quality),
            temp_dir=scratch_dir,
        )
        stream = await ExtractorStream.open(
            self.command, build_extraction_args(url, options), scratch_dir
        )
        await stream.start(self.settings.stream_start_timeout)
        return stream
