"""CLI interface for video gateway."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from .config import settings
from .extractor.downloader import YtDlpExtractor
from .extractor.errors import AuthRequiredError, GatewayError
from .log import configure_logging
from .service import VideoGatewayService
from .storage.scratch import sweep_scratch_dir

app = typer.Typer(help="YouTube Video Gateway - metadata and streaming downloads via yt-dlp")
console = Console()


def _service() -> VideoGatewayService:
    return VideoGatewayService(YtDlpExtractor(settings))


def _format_size(size: int | None) -> str:
    if not size:
        return "-"
    return f"{size / (1024 * 1024):.1f} MB"


@app.command()
def info(
    url: str = typer.Argument(..., help="YouTube video URL"),
):
    """Show metadata and available formats for a video."""
    configure_logging("WARNING")
    try:
        result = asyncio.run(_service().get_video_info(url))
    except AuthRequiredError:
        console.print("[red]YouTube requires authentication for this video.[/red]")
        console.print("Export cookies and set COOKIES_PATH to the cookies.txt file.")
        raise typer.Exit(1)
    except GatewayError as e:
        console.print(f"[red]Error getting video info: {e}[/red]")
        raise typer.Exit(1)

    duration = int(result.duration)
    console.print(f"\n[bold]{result.title}[/bold]")
    console.print(f"Uploader: {result.uploader}")
    console.print(f"Duration: {duration // 60}:{duration % 60:02d}")
    console.print(f"Views: {result.view_count:,}")

    table = Table(title="Formats")
    table.add_column("ID", style="cyan")
    table.add_column("Ext", style="magenta")
    table.add_column("Resolution", style="green")
    table.add_column("Size", style="yellow")
    for fmt in result.formats:
        table.add_row(fmt.format_id, fmt.ext, fmt.resolution, _format_size(fmt.filesize))
    console.print(table)


@app.command()
def formats(
    url: str = typer.Argument(..., help="YouTube video URL"),
):
    """Print yt-dlp's raw format listing."""
    configure_logging("WARNING")
    try:
        listing = asyncio.run(_service().list_formats(url))
    except GatewayError as e:
        console.print(f"[red]Error listing formats: {e}[/red]")
        raise typer.Exit(1)
    console.print(listing, markup=False, highlight=False)


@app.command()
def sweep():
    """Remove expired files from the scratch directory once."""
    configure_logging(settings.log_level)
    removed = sweep_scratch_dir(settings.temp_directory, settings.temp_retention_seconds)
    console.print(f"Removed {len(removed)} expired entries from {settings.temp_directory}")


@app.command()
def config():
    """Show current configuration."""
    console.print(f"\n[bold]Current Configuration[/bold]")
    console.print(f"Listen: {settings.host}:{settings.port}")
    console.print(f"Extractor: {' '.join(settings.extractor_argv)}")
    console.print(f"Cookies: {settings.cookies_path or 'Not set'}")
    console.print(f"Scratch Directory: {settings.temp_directory}")
    console.print(f"Retention: {settings.temp_retention_seconds}s, sweep every {settings.cleanup_interval_seconds}s")

    console.print(f"\n[bold]Access Control[/bold]")
    console.print(f"CORS: {'enforced' if settings.cors_enforce else 'log only'}")
    for origin in settings.origin_allowlist:
        console.print(f"  {origin}")
    console.print(
        f"Rate limit: {settings.rate_limit_requests} requests per "
        f"{settings.rate_limit_window_seconds}s"
    )


@app.command()
def serve(
    host: str = typer.Option(None, "--host", "-h", help="Host to bind"),
    port: int = typer.Option(None, "--port", "-p", help="Port to bind"),
):
    """Start the API server."""
    import uvicorn

    configure_logging(settings.log_level)
    host = host or settings.host
    port = port or settings.port
    console.print(f"Starting server at http://{host}:{port}")
    uvicorn.run(
        "video_gateway.api.routes:create_app",
        factory=True,
        host=host,
        port=port,
        log_config=None,
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
    )


if __name__ == "__main__":
    app()
