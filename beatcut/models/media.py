"""In-memory records that flow through a beat-sync session."""

from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Optional

from beatcut.config import Settings, get_settings

RESOLUTION_720P = "720p"
RESOLUTION_1080P = "1080p"


@dataclass
class MediaAsset:
    """An uploaded source clip and what the prober learned about it."""

    id: str
    original_name: str
    storage_path: str
    duration_seconds: float = 0.0
    is_valid: bool = False
    validation_error: Optional[str] = None
    has_audio: bool = True


@dataclass(frozen=True)
class TargetFormat:
    """Encoding target every segment is normalized to."""

    width: int
    height: int
    frame_rate: int = 24
    video_codec: str = "h264"
    audio_codec: str = "aac"

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def frame_rate_fraction(self) -> Fraction:
        return Fraction(self.frame_rate)

    @property
    def frame_duration(self) -> float:
        return 1.0 / self.frame_rate

    @classmethod
    def for_resolution(cls, resolution: str | None, settings: Optional[Settings] = None) -> "TargetFormat":
        """Build the target for a resolution preset.

        ``720p`` maps to 1280x720; anything else falls back to 1920x1088
        (1080 rounded up to a multiple of 16 for the encoder).
        """
        settings = settings or get_settings()
        if resolution == RESOLUTION_720P:
            width, height = 1280, 720
        else:
            width, height = 1920, 1088
        return cls(
            width=width,
            height=height,
            frame_rate=settings.target_frame_rate,
            video_codec=settings.target_video_codec,
            audio_codec=settings.target_audio_codec,
        )


@dataclass(frozen=True)
class Assignment:
    """One interval bound to the clip that will fill it."""

    interval_index: int
    asset_id: str
    interval_duration: float
    asset_duration: float

    @property
    def surplus(self) -> float:
        return self.asset_duration - self.interval_duration

    @property
    def needs_extension(self) -> bool:
        return self.asset_duration < self.interval_duration

    def to_dict(self) -> dict[str, Any]:
        return {
            "interval_index": self.interval_index,
            "asset_id": self.asset_id,
            "interval_duration": self.interval_duration,
            "asset_duration": self.asset_duration,
        }


@dataclass
class RenderedSegment:
    """A conformant segment produced for one interval."""

    index: int
    path: str
    requested_duration: float
    rendered_duration: float
    extended: bool = False
    underrun: bool = False
