"""
Segment rendering for beat-synchronized cuts.

Every segment leaves this module encoded to the same target format, which
is what lets the concatenator join them with a stream copy.

A clip at least as long as its interval is trimmed from the start. A
shorter clip is extended once by playing it forward and then backward
("boomerang") before trimming; a clip less than half the interval long
still comes out short, and the segment is flagged as an underrun.
"""

import logging
from pathlib import Path
from typing import Optional

from beatcut.config import Settings, get_settings
from beatcut.exceptions import BeatcutError, RenderError
from beatcut.models import MediaAsset, RenderedSegment, TargetFormat
from beatcut.utils.ffmpeg import run_ffmpeg, write_concat_list
from beatcut.utils.media_info import probe_duration

logger = logging.getLogger(__name__)


def conformant_encode_args(
    target: TargetFormat,
    settings: Settings,
    audio_bitrate: Optional[str] = None,
) -> list[str]:
    """Output options that encode to the target format."""
    args = [
        "-c:v", settings.video_encoder,
        "-crf", str(settings.video_crf),
        "-pix_fmt", "yuv420p",
        "-r", str(target.frame_rate),
        "-s", target.size,
        "-c:a", settings.audio_encoder,
        "-ar", str(settings.audio_sample_rate),
        "-ac", str(settings.audio_channels),
    ]
    if audio_bitrate:
        args.extend(["-b:a", audio_bitrate])
    return args


def silent_audio_input(settings: Settings, duration: float) -> list[str]:
    """lavfi input producing silence, for clips without an audio stream."""
    layout = "stereo" if settings.audio_channels == 2 else "mono"
    return [
        "-f", "lavfi",
        "-t", f"{duration:.6f}",
        "-i", f"anullsrc=channel_layout={layout}:sample_rate={settings.audio_sample_rate}",
    ]


def _remove_quietly(*paths: Path) -> None:
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"[RENDER] Could not remove {path}: {e}")


class SegmentRenderer:
    """Renders one (clip, duration) pair into an exact-length conformant segment."""

    def __init__(
        self,
        work_dir: Path,
        target: TargetFormat,
        settings: Optional[Settings] = None,
    ):
        self.work_dir = Path(work_dir)
        self.target = target
        self.settings = settings or get_settings()
        self.ffmpeg_path = self.settings.ffmpeg_path

    # ------------------------------------------------------------------
    # Command builders (no execution, used directly by tests)
    # ------------------------------------------------------------------

    def _encode_args(self) -> list[str]:
        return conformant_encode_args(self.target, self.settings)

    def build_trim_command(
        self,
        input_path: str,
        output_path: str,
        duration: float,
        has_audio: bool = True,
    ) -> list[str]:
        """Trim ``[0, duration)`` from the input, re-encoding to the target."""
        cmd = [self.ffmpeg_path, "-y", "-fflags", "+genpts", "-i", input_path]
        if has_audio:
            cmd.extend(["-map", "0:v:0", "-map", "0:a:0"])
        else:
            cmd.extend(silent_audio_input(self.settings, duration))
            cmd.extend(["-map", "0:v:0", "-map", "1:a:0"])
        cmd.extend(["-t", f"{duration:.6f}"])
        cmd.extend(self._encode_args())
        cmd.extend(["-avoid_negative_ts", "make_zero", output_path])
        return cmd

    def build_forward_command(
        self,
        input_path: str,
        output_path: str,
        source_duration: float,
        has_audio: bool = True,
    ) -> list[str]:
        """Re-encode the whole input to the target format."""
        cmd = [self.ffmpeg_path, "-y", "-fflags", "+genpts", "-i", input_path]
        if has_audio:
            cmd.extend(["-map", "0:v:0", "-map", "0:a:0"])
        else:
            cmd.extend(silent_audio_input(self.settings, source_duration))
            cmd.extend(["-map", "0:v:0", "-map", "1:a:0"])
        cmd.extend(self._encode_args())
        cmd.extend(["-avoid_negative_ts", "make_zero", output_path])
        return cmd

    def build_reverse_command(self, input_path: str, output_path: str) -> list[str]:
        """Play the input backwards, both picture and sound."""
        return [
            self.ffmpeg_path, "-y",
            "-fflags", "+genpts",
            "-i", input_path,
            "-vf", "reverse",
            "-af", "areverse",
            *self._encode_args(),
            "-avoid_negative_ts", "make_zero",
            output_path,
        ]

    def build_join_command(self, list_path: str, output_path: str) -> list[str]:
        """Join the forward and reversed renders listed in a concat file."""
        return [
            self.ffmpeg_path, "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", list_path,
            *self._encode_args(),
            "-avoid_negative_ts", "make_zero",
            "-fflags", "+genpts",
            output_path,
        ]

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def render(
        self,
        asset: MediaAsset,
        target_duration: float,
        index: int,
    ) -> RenderedSegment:
        """Render ``asset`` into ``trimmed_<index>.mp4`` lasting ``target_duration``.

        Raises:
            RenderError: If any ffmpeg step fails
        """
        output_path = self.work_dir / f"trimmed_{index}.mp4"

        if asset.duration_seconds >= target_duration:
            await self._render_trim(asset, target_duration, index, output_path)
            extended = False
        else:
            await self._render_boomerang(asset, target_duration, index, output_path)
            extended = True

        rendered_duration = await self._measure(output_path)
        available = asset.duration_seconds * (2 if extended else 1)
        underrun = (
            available < target_duration
            or rendered_duration < target_duration - self.target.frame_duration
        )
        if underrun:
            logger.warning(
                f"[RENDER] Segment {index} from {asset.original_name} is "
                f"{rendered_duration:.3f}s, short of the requested {target_duration:.3f}s"
            )

        return RenderedSegment(
            index=index,
            path=str(output_path),
            requested_duration=target_duration,
            rendered_duration=rendered_duration,
            extended=extended,
            underrun=underrun,
        )

    async def _render_trim(
        self,
        asset: MediaAsset,
        target_duration: float,
        index: int,
        output_path: Path,
    ) -> None:
        cmd = self.build_trim_command(
            asset.storage_path, str(output_path), target_duration, asset.has_audio
        )
        try:
            await run_ffmpeg(cmd, description=f"Trimming {asset.original_name}", error_cls=RenderError)
        except RenderError:
            _remove_quietly(output_path)
            raise
        logger.info(f"[RENDER] Trimmed segment {index} from {asset.original_name}")

    async def _render_boomerang(
        self,
        asset: MediaAsset,
        target_duration: float,
        index: int,
        output_path: Path,
    ) -> None:
        forward_path = self.work_dir / f"forward_{index}.mp4"
        reverse_path = self.work_dir / f"reverse_{index}.mp4"
        concat_path = self.work_dir / f"concat_{index}.mp4"
        list_path = self.work_dir / f"concat_list_{index}.txt"
        name = asset.original_name

        logger.info(
            f"[RENDER] Extending {name} ({asset.duration_seconds:.3f}s) "
            f"to {target_duration:.3f}s with a reversed copy"
        )
        try:
            await run_ffmpeg(
                self.build_forward_command(
                    asset.storage_path, str(forward_path), asset.duration_seconds, asset.has_audio
                ),
                description=f"Forward clip for {name}",
                error_cls=RenderError,
            )
            await run_ffmpeg(
                self.build_reverse_command(str(forward_path), str(reverse_path)),
                description=f"Reverse clip for {name}",
                error_cls=RenderError,
            )
            write_concat_list(list_path, [forward_path, reverse_path])
            await run_ffmpeg(
                self.build_join_command(str(list_path), str(concat_path)),
                description=f"Joining forward and reverse clips for {name}",
                error_cls=RenderError,
            )
            # The joined clip already has audio, so no silent input here.
            await run_ffmpeg(
                self.build_trim_command(str(concat_path), str(output_path), target_duration),
                description=f"Final trim for {name}",
                error_cls=RenderError,
            )
        except RenderError:
            _remove_quietly(output_path)
            raise
        finally:
            _remove_quietly(forward_path, reverse_path, concat_path, list_path)

    async def _measure(self, output_path: Path) -> float:
        try:
            return await probe_duration(str(output_path))
        except BeatcutError as e:
            raise RenderError(f"Rendered segment could not be read back: {e.message}") from e
