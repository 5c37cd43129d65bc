from beatcut.schemas.media import (
    AssignmentResponse,
    ProcessVideosRequest,
    ProcessVideosResponse,
    TrimVideosResponse,
    UploadAudioResponse,
    UploadVideosResponse,
    ValidateVideosRequest,
    ValidateVideosResponse,
    ValidationResult,
)

__all__ = [
    "AssignmentResponse",
    "ProcessVideosRequest",
    "ProcessVideosResponse",
    "TrimVideosResponse",
    "UploadAudioResponse",
    "UploadVideosResponse",
    "ValidateVideosRequest",
    "ValidateVideosResponse",
    "ValidationResult",
]
