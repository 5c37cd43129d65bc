"""Custom exceptions for the beatcut backend.

Every error that can end a request carries a machine-readable code and the
HTTP status it maps to, so the API layer can turn it into a single failure
response without knowing where it came from.
"""

from typing import Any


class BeatcutError(Exception):
    """Base exception for all beatcut application errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an error response body."""
        return {"code": self.code, "detail": self.message}


# =============================================================================
# Validation Errors (400)
# =============================================================================


class InvalidRequestError(BeatcutError):
    """Request data is missing or malformed."""

    code = "INVALID_REQUEST"
    status_code = 400
    message = "Invalid request"


class InvalidBeatTrackError(InvalidRequestError):
    """Beat timestamps are not a usable track."""

    code = "INVALID_BEAT_TRACK"
    message = "Beat track must contain at least 2 strictly increasing timestamps"


class PathOutsideStorageError(InvalidRequestError):
    """A client-supplied path points outside the managed directories."""

    code = "PATH_OUTSIDE_STORAGE"
    message = "Path is outside of managed storage"

    def __init__(self, path: str | None = None):
        message = f"Path is outside of managed storage: {path}" if path else self.message
        super().__init__(message)


class ProbeError(BeatcutError):
    """A media file could not be inspected.

    Raised per asset; validation records it on the asset instead of failing
    the batch.
    """

    code = "PROBE_FAILED"
    status_code = 400
    message = "Failed to probe media file"


# =============================================================================
# Not Found Errors (404)
# =============================================================================


class ResourceNotFoundError(BeatcutError):
    """Base class for resource not found errors."""

    status_code = 404


class AssetNotFoundError(ResourceNotFoundError):
    """Uploaded file not found."""

    code = "ASSET_NOT_FOUND"
    message = "File not found"

    def __init__(self, name: str | None = None):
        message = f"File not found: {name}" if name else self.message
        super().__init__(message)


class SessionOutputNotFoundError(ResourceNotFoundError):
    """A session's output file is gone or never existed."""

    code = "OUTPUT_NOT_FOUND"
    message = "Output not found"

    def __init__(self, session_id: str | None = None):
        message = f"Output not found for session: {session_id}" if session_id else self.message
        super().__init__(message)


# =============================================================================
# Pipeline Errors (422/500)
# =============================================================================


class AssignmentError(BeatcutError):
    """No unused clip is left for a required interval."""

    code = "NO_SUITABLE_CLIP"
    status_code = 422
    message = "No suitable clip available for beat duration"

    def __init__(self, message: str | None = None, *, interval_index: int | None = None):
        self.interval_index = interval_index
        super().__init__(message)


class FFmpegError(BeatcutError):
    """An external ffmpeg process failed."""

    code = "FFMPEG_FAILED"
    status_code = 500
    message = "FFmpeg failed"

    def __init__(self, message: str | None = None, *, stderr: str | None = None):
        self.stderr = stderr
        super().__init__(message)


class RenderError(FFmpegError):
    """A segment could not be rendered."""

    code = "RENDER_FAILED"
    message = "Segment rendering failed"


class ConcatError(FFmpegError):
    """Segments could not be joined."""

    code = "CONCAT_FAILED"
    message = "Concatenation failed"


class MuxError(FFmpegError):
    """The audio track could not be attached."""

    code = "MUX_FAILED"
    message = "Adding audio track failed"
