from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from beatcut.models import RESOLUTION_1080P, MediaAsset


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Uploads


class UploadAudioResponse(CamelModel):
    success: bool = True
    filename: str
    path: str


class UploadedFile(CamelModel):
    filename: str
    original_name: str
    path: str
    size: int


class UploadVideosResponse(CamelModel):
    success: bool = True
    files: list[UploadedFile]
    count: int


# Validation


class VideoFileRef(CamelModel):
    filename: str
    original_name: str = ""


class ValidateVideosRequest(CamelModel):
    video_files: list[VideoFileRef]
    resolution: str = RESOLUTION_1080P


class ValidationResult(CamelModel):
    filename: str
    original_name: str = ""
    valid: bool
    error: str | None = None
    duration: float = 0.0
    path: str
    has_audio: bool = True

    @classmethod
    def from_asset(cls, asset: MediaAsset) -> "ValidationResult":
        return cls(
            filename=asset.id,
            original_name=asset.original_name,
            valid=asset.is_valid,
            error=asset.validation_error,
            duration=asset.duration_seconds,
            path=asset.storage_path,
            has_audio=asset.has_audio,
        )

    def to_asset(self) -> MediaAsset:
        return MediaAsset(
            id=self.filename,
            original_name=self.original_name or self.filename,
            storage_path=self.path,
            duration_seconds=self.duration,
            is_valid=self.valid,
            validation_error=self.error,
            has_audio=self.has_audio,
        )


class ValidateVideosResponse(CamelModel):
    success: bool = True
    results: list[ValidationResult]
    valid_count: int
    total_count: int


# Processing


class AudioFileRef(CamelModel):
    filename: str


class ProcessVideosRequest(CamelModel):
    audio_file: AudioFileRef
    video_files: list[ValidationResult]
    beats: list[float] = Field(min_length=2)
    randomized: bool = False
    resolution: str = RESOLUTION_1080P


class AssignmentResponse(CamelModel):
    interval_index: int
    asset_id: str
    interval_duration: float
    asset_duration: float


class ProcessVideosResponse(CamelModel):
    success: bool = True
    output_file: str
    download_url: str
    session_id: str
    assignments: list[AssignmentResponse]
    underruns: list[int] = Field(default_factory=list)


# Fixed-length splitting


class ClipInfo(CamelModel):
    filename: str
    original_name: str
    download_url: str


class TrimVideosResponse(CamelModel):
    success: bool = True
    clips: list[ClipInfo]
    zip_url: str
    session_id: str
