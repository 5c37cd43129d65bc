"""Media file information utilities using FFprobe."""

import asyncio
import json
import subprocess
from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path

from beatcut.config import get_settings
from beatcut.exceptions import ProbeError


def _get_settings():
    """Get settings lazily to avoid import issues in tests."""
    return get_settings()


@dataclass
class MediaInfo:
    """Media file information."""

    duration_seconds: float | None = None
    width: int | None = None
    height: int | None = None
    frame_rate: Fraction | None = None
    video_codec: str | None = None
    audio_codec: str | None = None
    sample_rate: int | None = None
    channels: int | None = None
    has_video: bool = False
    has_audio: bool = False

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "duration_seconds": self.duration_seconds,
            "width": self.width,
            "height": self.height,
            "frame_rate": str(self.frame_rate) if self.frame_rate is not None else None,
            "video_codec": self.video_codec,
            "audio_codec": self.audio_codec,
            "sample_rate": self.sample_rate,
            "channels": self.channels,
            "has_video": self.has_video,
            "has_audio": self.has_audio,
        }


def parse_frame_rate(value: str | None) -> Fraction | None:
    """Parse an ffprobe rate such as ``24000/1001`` or ``25`` into a Fraction.

    Returns None for missing, malformed, or zero-denominator rates
    (ffprobe reports ``0/0`` for streams without a fixed rate).
    """
    if not value:
        return None
    num, sep, den = value.strip().partition("/")
    try:
        numerator = int(num)
        denominator = int(den) if sep else 1
    except ValueError:
        return None
    if denominator <= 0:
        return None
    return Fraction(numerator, denominator)


def _run_ffprobe(file_path: str, *args) -> dict:
    """Run ffprobe and return parsed JSON."""
    settings = _get_settings()
    cmd = [
        settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        *args,
        file_path,
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise ProbeError(f"ffprobe could not be started: {e}") from e
    if result.returncode != 0:
        raise ProbeError(f"ffprobe failed for {Path(file_path).name}: {result.stderr.strip()}")

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise ProbeError(f"Failed to parse ffprobe output: {e}")


def get_media_duration(file_path: str) -> float:
    """
    Get media file container duration in seconds.

    Raises:
        ProbeError: If ffprobe fails or duration not found
    """
    data = _run_ffprobe(file_path, "-show_format")
    format_info = data.get("format", {})

    if "duration" not in format_info:
        raise ProbeError(f"Duration not found in: {file_path}")

    return float(format_info["duration"])


def get_media_info(file_path: str) -> MediaInfo:
    """
    Get complete media file information.

    Only the first video and first audio stream are considered.

    Args:
        file_path: Path to media file

    Returns:
        MediaInfo for the file

    Raises:
        ProbeError: If ffprobe fails
    """
    data = _run_ffprobe(file_path, "-show_format", "-show_streams")
    info = MediaInfo()

    format_info = data.get("format", {})
    if "duration" in format_info:
        try:
            info.duration_seconds = float(format_info["duration"])
        except (TypeError, ValueError):
            info.duration_seconds = None

    for stream in data.get("streams", []):
        codec_type = stream.get("codec_type")

        if codec_type == "video" and not info.has_video:
            info.has_video = True
            info.width = stream.get("width")
            info.height = stream.get("height")
            info.video_codec = stream.get("codec_name")
            info.frame_rate = parse_frame_rate(stream.get("r_frame_rate"))

        elif codec_type == "audio" and not info.has_audio:
            info.has_audio = True
            info.audio_codec = stream.get("codec_name")
            try:
                info.sample_rate = int(stream.get("sample_rate", 0)) or None
            except (TypeError, ValueError):
                info.sample_rate = None
            info.channels = stream.get("channels")

    return info


async def probe_media(file_path: str) -> MediaInfo:
    """Async wrapper around get_media_info that runs ffprobe on a worker thread."""
    return await asyncio.to_thread(get_media_info, file_path)


async def probe_duration(file_path: str) -> float:
    """Async wrapper around get_media_duration."""
    return await asyncio.to_thread(get_media_duration, file_path)
