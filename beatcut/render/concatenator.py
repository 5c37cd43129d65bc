"""Lossless joining of conformant segments."""

import logging
from pathlib import Path
from typing import Optional

from beatcut.config import Settings, get_settings
from beatcut.exceptions import ConcatError
from beatcut.utils.ffmpeg import run_ffmpeg, write_concat_list

logger = logging.getLogger(__name__)


class Concatenator:
    """Joins segments with the concat demuxer and a stream copy.

    All inputs must share codec, resolution, frame rate and sample rate;
    the segment renderer guarantees that. Order of the list is the order
    of the output timeline.
    """

    def __init__(self, work_dir: Path, settings: Optional[Settings] = None):
        self.work_dir = Path(work_dir)
        self.settings = settings or get_settings()
        self.ffmpeg_path = self.settings.ffmpeg_path

    def build_concat_command(self, list_path: str, output_path: str) -> list[str]:
        """Build the stream-copy concat command without executing it."""
        return [
            self.ffmpeg_path,
            "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", list_path,
            "-c", "copy",
            "-fflags", "+genpts",
            output_path,
        ]

    async def concatenate(self, segment_paths: list[str], output_path: str) -> str:
        """Join ``segment_paths`` in the given order into ``output_path``.

        Raises:
            ConcatError: If there is nothing to join or ffmpeg fails
        """
        if not segment_paths:
            raise ConcatError("No segments to concatenate")

        list_path = write_concat_list(
            self.work_dir / "filelist.txt", [Path(p) for p in segment_paths]
        )
        cmd = self.build_concat_command(str(list_path), output_path)
        await run_ffmpeg(cmd, description="Merging video clips", error_cls=ConcatError)

        logger.info(f"[CONCAT] Joined {len(segment_paths)} segments into {output_path}")
        return output_path
