"""Scratch directory management for transient extractor files."""

import asyncio
import logging
import shutil
import time
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


def ensure_scratch_dir(directory: Path) -> Path:
    """Create and return the scratch directory."""
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def new_request_dir(directory: Path) -> Path:
    """Create a private scratch subdirectory for one download."""
    path = ensure_scratch_dir(directory) / uuid.uuid4().hex
    path.mkdir()
    return path


def _remove(entry: Path) -> None:
    if entry.is_dir() and not entry.is_symlink():
        shutil.rmtree(entry)
    else:
        entry.unlink()


def sweep_scratch_dir(
    directory: Path,
    retention_seconds: float,
    now: float | None = None,
) -> list[Path]:
    """Delete entries last modified more than retention_seconds ago.

    Failures on individual entries are logged and the sweep carries on.
    """
    if now is None:
        now = time.time()

    try:
        entries = list(directory.iterdir())
    except FileNotFoundError:
        return []
    except OSError as e:
        logger.warning("Could not list scratch directory %s: %s", directory, e)
        return []

    removed = []
    for entry in entries:
        try:
            if now - entry.lstat().st_mtime <= retention_seconds:
                continue
            _remove(entry)
        except FileNotFoundError:
            # Already removed by the request that owned it
            logger.debug("Scratch entry vanished during sweep: %s", entry)
            continue
        except OSError as e:
            logger.warning("Could not remove scratch entry %s: %s", entry, e)
            continue
        removed.append(entry)

    if removed:
        logger.info("Removed %d expired scratch entries from %s", len(removed), directory)
    return removed


async def run_janitor(
    directory: Path,
    retention_seconds: float,
    interval_seconds: float,
) -> None:
    """Sweep the scratch directory now and then every interval, until cancelled."""
    ensure_scratch_dir(directory)
    while True:
        try:
            await asyncio.to_thread(sweep_scratch_dir, directory, retention_seconds)
        except Exception:
            logger.exception("Scratch sweep failed")
        await asyncio.sleep(interval_seconds)
