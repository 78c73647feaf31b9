"""Running yt-dlp as an asyncio subprocess."""

import asyncio
import logging
import os
import shutil
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Sequence

from .errors import (
    ExtractorError,
    ExtractorLaunchError,
    ExtractorTimeoutError,
    summarize_error,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
STDERR_TAIL_BYTES = 16 * 1024
STDERR_DRAIN_TIMEOUT = 2.0

# Own process group so ffmpeg children die with yt-dlp
_NEW_SESSION = os.name == "posix"


@dataclass
class ProcessResult:
    """Completed extractor invocation."""

    returncode: int
    stdout: bytes
    stderr: str


async def spawn(argv: Sequence[str]) -> asyncio.subprocess.Process:
    """Start the extractor with all three standard streams redirected."""
    try:
        return await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=_NEW_SESSION,
        )
    except OSError as e:
        raise ExtractorLaunchError(f"Failed to start {argv[0]}: {e}") from e


def kill(process: asyncio.subprocess.Process) -> bool:
    """Kill a running extractor and its children. Returns False if already gone."""
    if process.returncode is not None:
        return False
    try:
        if _NEW_SESSION:
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        return False
    return True


async def run_extractor(
    command: Sequence[str],
    args: Sequence[str],
    timeout: float | None = None,
) -> ProcessResult:
    """Run the extractor to completion and collect its output.

    The process is killed if the timeout elapses or the caller is cancelled.
    """
    process = await spawn([*command, *args])
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError:
        kill(process)
        await process.wait()
        raise ExtractorTimeoutError(timeout) from None
    except BaseException:
        kill(process)
        raise

    return ProcessResult(
        returncode=process.returncode,
        stdout=stdout,
        stderr=stderr.decode("utf-8", errors="replace"),
    )


class ExtractorStream:
    """Media bytes relayed from an extractor writing to stdout.

    stderr is drained concurrently so a chatty extractor never blocks on a
    full pipe. Closing kills the process and removes its scratch directory.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        scratch_dir: Path | None = None,
    ):
        self.process = process
        self.scratch_dir = scratch_dir
        self.bytes_sent = 0
        self._stderr = bytearray()
        self._stderr_task = asyncio.create_task(self._drain_stderr())
        self._pending: bytes = b""
        self._closed = False

    @classmethod
    async def open(
        cls,
        command: Sequence[str],
        args: Sequence[str],
        scratch_dir: Path | None = None,
    ) -> "ExtractorStream":
        try:
            process = await spawn([*command, *args])
        except ExtractorLaunchError:
            _remove_dir(scratch_dir)
            raise
        return cls(process, scratch_dir)

    @property
    def stderr(self) -> str:
        return self._stderr.decode("utf-8", errors="replace")

    async def _drain_stderr(self) -> None:
        while True:
            chunk = await self.process.stderr.read(CHUNK_SIZE)
            if not chunk:
                break
            self._stderr += chunk
            if len(self._stderr) > STDERR_TAIL_BYTES:
                del self._stderr[:-STDERR_TAIL_BYTES]

    async def start(self, timeout: float | None = None) -> None:
        """Wait for the first media chunk.

        Raises if the extractor fails before producing any output, so the
        caller can still answer with an error status.
        """
        try:
            chunk = await asyncio.wait_for(self.process.stdout.read(CHUNK_SIZE), timeout)
        except asyncio.TimeoutError:
            self.close()
            raise ExtractorTimeoutError(timeout) from None
        except BaseException:
            self.close()
            raise

        if not chunk:
            returncode = await self.process.wait()
            await self._stderr_task
            if returncode != 0:
                self.close()
                raise ExtractorError.from_stderr(self.stderr, returncode)
        self._pending = chunk

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        try:
            if self._pending:
                chunk, self._pending = self._pending, b""
                self.bytes_sent += len(chunk)
                yield chunk
            while True:
                chunk = await self.process.stdout.read(CHUNK_SIZE)
                if not chunk:
                    break
                self.bytes_sent += len(chunk)
                yield chunk

            returncode = await self.process.wait()
            if returncode != 0:
                # The final ERROR line may still be in the pipe
                try:
                    await asyncio.wait_for(self._stderr_task, STDERR_DRAIN_TIMEOUT)
                except asyncio.TimeoutError:
                    pass
                # Headers are already out; all we can do is end the body
                logger.error(
                    "Extractor exited with %s after %d bytes: %s",
                    returncode,
                    self.bytes_sent,
                    summarize_error(self.stderr),
                )
        finally:
            self.close()

    def close(self) -> None:
        """SIGKILL the extractor process group at once. Safe to call repeatedly.

        Synchronous so it still runs inside an already-cancelled task.
        """
        if self._closed:
            return
        self._closed = True
        if kill(self.process):
            logger.info(
                "Terminated extractor pid %s after %d bytes",
                self.process.pid,
                self.bytes_sent,
            )
        self._stderr_task.cancel()
        _remove_dir(self.scratch_dir)

    async def aclose(self) -> None:
        self.close()
        await self.process.wait()


def _remove_dir(path: Path | None) -> None:
    if path is None:
        return
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove scratch directory %s: %s", path, e)
