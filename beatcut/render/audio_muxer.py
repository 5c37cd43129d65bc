"""Attaches the soundtrack to the merged video."""

import logging
from typing import Optional

from beatcut.config import Settings, get_settings
from beatcut.exceptions import MuxError
from beatcut.utils.ffmpeg import run_ffmpeg

logger = logging.getLogger(__name__)


class AudioMuxer:
    """Replaces the merged video's audio with the external track.

    Video is copied untouched, audio is re-encoded to the delivery codec,
    and the result stops at whichever input ends first.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.ffmpeg_path = self.settings.ffmpeg_path

    def build_mux_command(self, video_path: str, audio_path: str, output_path: str) -> list[str]:
        """Build the mux command without executing it."""
        return [
            self.ffmpeg_path,
            "-y",
            "-i", video_path,
            "-i", audio_path,
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-c:v", "copy",
            "-c:a", self.settings.audio_encoder,
            "-b:a", self.settings.final_audio_bitrate,
            "-shortest",
            "-movflags", "+faststart",
            output_path,
        ]

    async def mux(self, video_path: str, audio_path: str, output_path: str) -> str:
        """Write ``output_path`` with the video of one file and the audio of another.

        Raises:
            MuxError: If ffmpeg fails
        """
        cmd = self.build_mux_command(video_path, audio_path, output_path)
        await run_ffmpeg(cmd, description="Adding original audio track", error_cls=MuxError)
        logger.info(f"[MUX] Wrote {output_path}")
        return output_path
