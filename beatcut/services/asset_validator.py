"""Validation and standardization of uploaded source clips.

Each clip is probed and compared with the target format. Clips that do
not match are transcoded to a standardized copy so every later step can
assume one format. A clip that cannot be read is marked invalid with a
reason; the rest of the batch carries on.
"""

import dataclasses
import logging
from pathlib import Path
from typing import Optional
from uuid import uuid4

from beatcut.config import Settings, get_settings
from beatcut.exceptions import BeatcutError, ProbeError, RenderError
from beatcut.models import MediaAsset, TargetFormat
from beatcut.render.segment_renderer import conformant_encode_args
from beatcut.services.progress import Phase, ProgressReporter, Stage
from beatcut.utils.ffmpeg import run_ffmpeg
from beatcut.utils.media_info import MediaInfo, probe_duration, probe_media

logger = logging.getLogger(__name__)


def needs_reencode(info: MediaInfo, target: TargetFormat) -> bool:
    """True when any video property, or the audio codec if present, is off target."""
    return (
        info.width != target.width
        or info.height != target.height
        or info.frame_rate != target.frame_rate_fraction
        or info.video_codec != target.video_codec
        or (info.has_audio and info.audio_codec != target.audio_codec)
    )


class AssetValidator:
    """Probes clips and standardizes the ones that need it."""

    def __init__(
        self,
        temp_dir: Path,
        target: TargetFormat,
        settings: Optional[Settings] = None,
    ):
        self.temp_dir = Path(temp_dir)
        self.target = target
        self.settings = settings or get_settings()
        self.ffmpeg_path = self.settings.ffmpeg_path

    def build_standardize_command(self, input_path: str, output_path: str) -> list[str]:
        """Build the transcode-to-target command without executing it."""
        return [
            self.ffmpeg_path,
            "-y",
            "-i", input_path,
            *conformant_encode_args(
                self.target, self.settings, self.settings.standardize_audio_bitrate
            ),
            output_path,
        ]

    async def inspect(self, asset: MediaAsset) -> tuple[MediaInfo, bool]:
        """Probe one clip; returns its info and whether it must be re-encoded.

        Raises:
            ProbeError: If the file is missing, unreadable or has no video
        """
        if not Path(asset.storage_path).is_file():
            raise ProbeError(f"File not found: {asset.original_name}")

        info = await probe_media(asset.storage_path)
        if not info.has_video:
            raise ProbeError("No video stream found")
        if info.duration_seconds is None:
            raise ProbeError(f"Duration not found in: {asset.original_name}")
        return info, needs_reencode(info, self.target)

    async def standardize(self, asset: MediaAsset) -> tuple[str, float]:
        """Transcode a clip to the target format; returns (new path, new duration)."""
        output_path = self.temp_dir / f"standardized_{uuid4()}.mp4"
        cmd = self.build_standardize_command(asset.storage_path, str(output_path))
        try:
            await run_ffmpeg(
                cmd,
                description=f"Standardizing {asset.original_name}",
                error_cls=RenderError,
            )
            duration = await probe_duration(str(output_path))
        except BeatcutError:
            output_path.unlink(missing_ok=True)
            raise
        logger.info(f"[VALIDATE] Standardized {asset.original_name} -> {output_path.name}")
        return str(output_path), duration

    async def validate(
        self,
        assets: list[MediaAsset],
        reporter: ProgressReporter,
    ) -> list[MediaAsset]:
        """Validate every clip, reporting progress after each one.

        Returns:
            New MediaAsset records in input order; invalid ones carry a reason
        """
        total = len(assets)
        await reporter.status(
            f"Validating and standardizing video files to {self.target.size}..."
        )
        await reporter.start_phase(Phase.VALIDATION, total, Stage.VALIDATION)

        results: list[MediaAsset] = []
        for i, asset in enumerate(assets):
            await reporter.status(f"Checking file {i + 1}/{total}: {asset.original_name}")
            try:
                info, reencode = await self.inspect(asset)
                path, duration = asset.storage_path, info.duration_seconds
                if reencode:
                    await reporter.status(
                        f"Standardizing file {i + 1}/{total}: {asset.original_name}"
                    )
                    path, duration = await self.standardize(asset)
                results.append(
                    dataclasses.replace(
                        asset,
                        storage_path=path,
                        duration_seconds=duration,
                        is_valid=True,
                        validation_error=None,
                        has_audio=info.has_audio,
                    )
                )
            except BeatcutError as e:
                logger.warning(f"[VALIDATE] {asset.original_name} is invalid: {e.message}")
                results.append(
                    dataclasses.replace(
                        asset,
                        duration_seconds=0.0,
                        is_valid=False,
                        validation_error=e.message,
                    )
                )

            await reporter.advance()

        valid_count = sum(1 for a in results if a.is_valid)
        await reporter.status(f"Validation complete: {valid_count}/{total} files are valid")
        return results
