"""Helpers for running ffmpeg as a blocking task on a worker thread."""

import asyncio
import logging
import subprocess
from pathlib import Path

from beatcut.exceptions import FFmpegError

logger = logging.getLogger(__name__)

# ffmpeg prints its whole banner and stream map to stderr; keep the end.
STDERR_TAIL_CHARS = 2000


def stderr_tail(stderr: str | None) -> str:
    if not stderr:
        return ""
    return stderr[-STDERR_TAIL_CHARS:].strip()


async def run_ffmpeg(
    cmd: list[str],
    *,
    description: str,
    error_cls: type[FFmpegError] = FFmpegError,
) -> None:
    """Run an ffmpeg command without blocking the event loop.

    Args:
        cmd: Full command line, executable first
        description: Human-readable step name used in logs and errors
        error_cls: FFmpegError subclass raised on failure

    Raises:
        error_cls: If the process cannot be started or exits non-zero
    """
    logger.debug(f"[FFMPEG] {description}: {' '.join(cmd)}")
    try:
        # Use asyncio.to_thread to avoid blocking the event loop
        result = await asyncio.to_thread(subprocess.run, cmd, capture_output=True, text=True)
    except OSError as e:
        raise error_cls(f"{description} failed: {e}") from e

    if result.returncode != 0:
        tail = stderr_tail(result.stderr)
        logger.error(f"[FFMPEG] {description} failed (exit {result.returncode}): {tail}")
        raise error_cls(f"{description} failed", stderr=tail)

    logger.debug(f"[FFMPEG] {description} completed")


def escape_concat_path(path: str | Path) -> str:
    """Quote a path for an ffmpeg concat demuxer list entry."""
    escaped = str(path).replace("'", "'\\''")
    return f"file '{escaped}'"


def write_concat_list(list_path: Path, paths: list[Path]) -> Path:
    """Write an ffmpeg concat demuxer list, one entry per path, in order."""
    content = "\n".join(escape_concat_path(Path(p).resolve()) for p in paths)
    list_path.write_text(content + "\n", encoding="utf-8")
    return list_path
