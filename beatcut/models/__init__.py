from beatcut.models.media import (
    RESOLUTION_720P,
    RESOLUTION_1080P,
    Assignment,
    MediaAsset,
    RenderedSegment,
    TargetFormat,
)

__all__ = [
    "RESOLUTION_720P",
    "RESOLUTION_1080P",
    "Assignment",
    "MediaAsset",
    "RenderedSegment",
    "TargetFormat",
]
