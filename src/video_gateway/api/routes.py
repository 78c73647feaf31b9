"""FastAPI routes for the video gateway API."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from video_gateway.api.access import (
    AllowListCORSMiddleware,
    RateLimitMiddleware,
    SlidingWindowRateLimiter,
)
from video_gateway.api.schemas import (
    ErrorResponse,
    FormatsResponse,
    HealthResponse,
    VideoInfoResponse,
    VideoURLRequest,
)

from ..config import Settings, settings as default_settings
from ..extractor.downloader import YtDlpExtractor
from ..extractor.errors import (
    AuthRequiredError,
    ExtractorError,
    ExtractorLaunchError,
    ExtractorOutputError,
    ExtractorTimeoutError,
    InvalidURLError,
    summarize_error,
)
from ..interfaces import Extractor
from ..service import VideoGatewayService
from ..storage.scratch import ensure_scratch_dir, run_janitor

logger = logging.getLogger(__name__)

INDEX_HTML = Path(__file__).resolve().parent.parent / "web" / "index.html"

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


def _error(status_code: int, error: str, details: str | None = None, kind: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details, kind=kind)
    return JSONResponse(body.model_dump(exclude_none=True), status_code=status_code)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidURLError)
    async def invalid_url(request: Request, exc: InvalidURLError):
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        return _error(400, "Invalid request body", str(exc.errors()))

    @app.exception_handler(ExtractorError)
    async def extractor_failed(request: Request, exc: ExtractorError):
        if isinstance(exc, AuthRequiredError):
            message = "Authentication required"
        elif request.url.path == "/api/download":
            # Stream never started, so the failure is ours to report
            return _error(500, "Failed to download video", summarize_error(exc.details), exc.kind.value)
        else:
            message = "Failed to fetch video information"
        return _error(400, message, summarize_error(exc.details), exc.kind.value)

    @app.exception_handler(ExtractorOutputError)
    async def bad_output(request: Request, exc: ExtractorOutputError):
        return _error(500, "Failed to parse video information", str(exc))

    @app.exception_handler(ExtractorLaunchError)
    async def launch_failed(request: Request, exc: ExtractorLaunchError):
        logger.error("Extractor unavailable: %s", exc)
        return _error(500, "Video processor unavailable", str(exc))

    @app.exception_handler(ExtractorTimeoutError)
    async def timed_out(request: Request, exc: ExtractorTimeoutError):
        logger.error("Extractor timed out: %s", exc)
        return _error(504, "Video processor timed out", str(exc))


def get_service(request: Request) -> VideoGatewayService:
    return request.app.state.service


def create_app(
    settings: Settings | None = None,
    extractor: Extractor | None = None,
) -> FastAPI:
    """Build the API with its middleware, error handlers and janitor."""
    settings = settings or default_settings
    extractor = extractor or YtDlpExtractor(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        directory = ensure_scratch_dir(settings.temp_directory)
        janitor = asyncio.create_task(
            run_janitor(
                directory,
                settings.temp_retention_seconds,
                settings.cleanup_interval_seconds,
            )
        )
        logger.info("Video gateway ready, scratch directory %s", directory)
        try:
            yield
        finally:
            janitor.cancel()
            try:
                await janitor
            except asyncio.CancelledError:
                pass

    app = FastAPI(
        title="Video Gateway API",
        description="Fetch YouTube metadata and stream downloads via yt-dlp",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = VideoGatewayService(extractor)

    # Last added runs first: CORS wraps the limiter so 429s carry CORS headers
    app.add_middleware(
        RateLimitMiddleware,
        limiter=SlidingWindowRateLimiter(
            settings.rate_limit_requests, settings.rate_limit_window_seconds
        ),
    )
    app.add_middleware(
        AllowListCORSMiddleware,
        allowlist=settings.origin_allowlist,
        enforce=settings.cors_enforce,
    )
    _register_error_handlers(app)

    @app.get("/", include_in_schema=False)
    async def root():
        """Serve the download page."""
        return FileResponse(INDEX_HTML, media_type="text/html")

    @app.get("/api/")
    async def api_root():
        """API root endpoint."""
        return {
            "message": "YouTube Downloader API",
            "endpoints": ["/api/video-info", "/api/download", "/api/formats", "/api/health"],
        }

    @app.post("/api/video-info", response_model=VideoInfoResponse, responses=ERROR_RESPONSES)
    async def video_info(
        body: VideoURLRequest,
        service: VideoGatewayService = Depends(get_service),
    ):
        """Get title, duration, thumbnail, uploader, views and formats."""
        info = await service.get_video_info(body.url)
        return asdict(info)

    @app.get("/api/download", responses=ERROR_RESPONSES)
    async def download(
        url: str | None = Query(None),
        quality: str = Query("best"),
        service: VideoGatewayService = Depends(get_service),
    ):
        """Stream the video as an attachment while yt-dlp produces it."""
        logger.info("Download request for %r at %s", url, quality)
        prepared = await service.prepare_download(url, quality)
        stream = prepared.stream
        return StreamingResponse(
            stream.iter_bytes(),
            media_type="video/mp4",
            headers={
                "Content-Disposition": f'attachment; filename="{prepared.filename}"',
                "Cache-Control": "no-store",
            },
            background=BackgroundTask(stream.aclose),
        )

    @app.post("/api/formats", response_model=FormatsResponse, responses=ERROR_RESPONSES)
    async def formats(
        body: VideoURLRequest,
        service: VideoGatewayService = Depends(get_service),
    ):
        """Get yt-dlp's raw format listing."""
        return FormatsResponse(formats=await service.list_formats(body.url))

    @app.get("/api/health", response_model=HealthResponse)
    async def health():
        """Liveness probe."""
        return HealthResponse(
            status="OK",
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        )

    return app


app = create_app()
