"""Fixed-length clip splitting.

Provides:
- Cutting a video into back-to-back clips of one length
- Zipping a batch of clips for download
"""

import asyncio
import logging
import math
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from beatcut.config import Settings, get_settings
from beatcut.exceptions import RenderError
from beatcut.models import TargetFormat
from beatcut.render.segment_renderer import conformant_encode_args
from beatcut.services.progress import NullChannel, StatusChannel, create_status_message
from beatcut.utils.ffmpeg import run_ffmpeg
from beatcut.utils.media_info import probe_duration

logger = logging.getLogger(__name__)


@dataclass
class SplitSource:
    """One uploaded video queued for splitting."""

    path: str
    original_name: str
    duration_seconds: float = 0.0

    def clip_count(self, clip_duration: float) -> int:
        return math.floor(self.duration_seconds / clip_duration)


@dataclass
class ClipOutput:
    """A clip written by the splitter."""

    filename: str
    original_name: str
    path: Path

    def to_dict(self, session_id: str) -> dict[str, Any]:
        """Serialize with its download URL."""
        return {
            "filename": self.filename,
            "originalName": self.original_name,
            "downloadUrl": f"/download-clip/{session_id}/{self.filename}",
        }


def create_split_progress_message(
    total_clips: int,
    processed_clips: int,
    current_video: str,
    current_video_index: int,
    total_videos: int,
) -> dict[str, Any]:
    """Create a splitter progress message."""
    return {
        "type": "progress",
        "totalClips": total_clips,
        "processedClips": processed_clips,
        "currentVideo": current_video,
        "currentVideoIndex": current_video_index,
        "totalVideos": total_videos,
    }


class VideoTrimmer:
    """Service for cutting videos into equal-length clips."""

    def __init__(self, target: TargetFormat, settings: Optional[Settings] = None):
        self.target = target
        self.settings = settings or get_settings()
        self.ffmpeg_path = self.settings.ffmpeg_path

    def build_split_command(
        self,
        input_path: str,
        output_path: str,
        start: float,
        duration: float,
    ) -> list[str]:
        """Build the command for one ``[start, start + duration)`` clip."""
        return [
            self.ffmpeg_path,
            "-y",
            "-ss", f"{start:.6f}",
            "-i", input_path,
            "-t", f"{duration:.6f}",
            *conformant_encode_args(
                self.target, self.settings, self.settings.standardize_audio_bitrate
            ),
            output_path,
        ]

    async def split_all(
        self,
        sources: list[SplitSource],
        clip_duration: float,
        output_dir: Path,
        channel: Optional[StatusChannel] = None,
    ) -> list[ClipOutput]:
        """
        Cut every source into ``floor(duration / clip_duration)`` clips.

        Sources are probed first so the total clip count is known before
        any clip is written. Leftover time shorter than one clip is dropped.

        Args:
            sources: Videos to split, in order
            clip_duration: Length of each clip in seconds
            output_dir: Directory that receives ``clip_<video>_<n>.mp4`` files
            channel: Where progress messages go

        Returns:
            The clips written, in order
        """
        channel = channel or NullChannel()
        output_dir.mkdir(parents=True, exist_ok=True)

        for source in sources:
            source.duration_seconds = await probe_duration(source.path)
        total_clips = sum(s.clip_count(clip_duration) for s in sources)
        total_videos = len(sources)

        await channel.send(create_split_progress_message(total_clips, 0, "", 0, total_videos))

        clips: list[ClipOutput] = []
        for i, source in enumerate(sources):
            count = source.clip_count(clip_duration)
            await channel.send(
                create_status_message(
                    f"Processing video {i + 1}/{total_videos}: {source.original_name}"
                )
            )
            for j in range(count):
                filename = f"clip_{i}_{j}.mp4"
                output_path = output_dir / filename
                await channel.send(
                    create_status_message(
                        f"Generating clip {j + 1}/{count} from {source.original_name}"
                    )
                )
                cmd = self.build_split_command(
                    source.path, str(output_path), j * clip_duration, clip_duration
                )
                await run_ffmpeg(
                    cmd,
                    description=f"Generating clip {j + 1} for {source.original_name}",
                    error_cls=RenderError,
                )
                clips.append(ClipOutput(filename, source.original_name, output_path))
                await channel.send(
                    create_split_progress_message(
                        total_clips, len(clips), source.original_name, i + 1, total_videos
                    )
                )

        logger.info(f"[SPLIT] Generated {len(clips)} clips from {total_videos} videos")
        return clips


def _write_zip(zip_path: Path, clips: list[ClipOutput]) -> Path:
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for clip in clips:
            archive.write(clip.path, arcname=clip.filename)
    return zip_path


async def build_zip(zip_path: Path, clips: list[ClipOutput]) -> Path:
    """Write a deflate archive of ``clips`` on a worker thread."""
    try:
        return await asyncio.to_thread(_write_zip, zip_path, clips)
    except OSError:
        zip_path.unlink(missing_ok=True)
        raise
