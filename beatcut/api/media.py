"""Upload, validation, processing and download endpoints."""

import logging
import math
import shutil
from pathlib import Path
from typing import Annotated
from uuid import uuid4

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from beatcut.api.websocket import ClientRegistry, get_client_registry
from beatcut.exceptions import (
    AssetNotFoundError,
    BeatcutError,
    PathOutsideStorageError,
    SessionOutputNotFoundError,
)
from beatcut.models import MediaAsset, TargetFormat
from beatcut.render.pipeline import BeatSyncPipeline, final_output_path
from beatcut.schemas.media import (
    AssignmentResponse,
    ClipInfo,
    ProcessVideosRequest,
    ProcessVideosResponse,
    TrimVideosResponse,
    UploadAudioResponse,
    UploadedFile,
    UploadVideosResponse,
    ValidateVideosRequest,
    ValidateVideosResponse,
    ValidationResult,
)
from beatcut.services.asset_validator import AssetValidator
from beatcut.services.progress import ProgressReporter, create_status_message
from beatcut.services.storage_service import LocalStorageService, get_storage_service
from beatcut.services.video_trimmer import SplitSource, VideoTrimmer, build_zip

router = APIRouter()
logger = logging.getLogger(__name__)

Storage = Annotated[LocalStorageService, Depends(get_storage_service)]
Registry = Annotated[ClientRegistry, Depends(get_client_registry)]
ClientId = Annotated[str | None, Header(alias="x-client-id")]


def _safe_name(value: str) -> str:
    """Reject ids and file names that would leave their directory."""
    if not value or Path(value).name != value:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return value


# =============================================================================
# Uploads
# =============================================================================


@router.post("/upload-audio", response_model=UploadAudioResponse)
async def upload_audio(storage: Storage, audio: UploadFile | None = File(None)) -> UploadAudioResponse:
    """Store the soundtrack that will be muxed onto the final video."""
    if audio is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No audio file uploaded")
    try:
        stored = await storage.save_upload(audio, "audio")
    except BeatcutError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    return UploadAudioResponse(filename=stored.filename, path=stored.path)


@router.post("/upload-videos", response_model=UploadVideosResponse)
async def upload_videos(
    storage: Storage,
    videos: list[UploadFile] | None = File(None),
) -> UploadVideosResponse:
    """Store a batch of source clips."""
    if not videos:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No video files uploaded")
    files: list[UploadedFile] = []
    try:
        for video in videos:
            stored = await storage.save_upload(video, "videos")
            files.append(
                UploadedFile(
                    filename=stored.filename,
                    original_name=stored.original_name,
                    path=stored.path,
                    size=stored.size,
                )
            )
    except BeatcutError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    return UploadVideosResponse(files=files, count=len(files))


# =============================================================================
# Validation
# =============================================================================


@router.post("/validate-videos", response_model=ValidateVideosResponse)
async def validate_videos(
    request: ValidateVideosRequest,
    storage: Storage,
    registry: Registry,
    x_client_id: ClientId = None,
) -> ValidateVideosResponse:
    """Probe uploaded clips and standardize any that are off target.

    Unreadable clips come back with ``valid: false`` and a reason; they do
    not fail the request.
    """
    target = TargetFormat.for_resolution(request.resolution, storage.settings)
    storage.ensure_directories()

    assets = [
        MediaAsset(
            id=ref.filename,
            original_name=ref.original_name or ref.filename,
            # Only the bare name is honoured; a missing file fails its own probe.
            storage_path=str(storage.uploads_dir / Path(ref.filename).name),
        )
        for ref in request.video_files
    ]

    reporter = ProgressReporter(registry.channel(x_client_id), storage.settings)
    validator = AssetValidator(storage.temp_dir, target, storage.settings)
    validated = await validator.validate(assets, reporter)

    results = [ValidationResult.from_asset(asset) for asset in validated]
    return ValidateVideosResponse(
        results=results,
        valid_count=sum(1 for r in results if r.valid),
        total_count=len(results),
    )


# =============================================================================
# Beat-synchronized processing
# =============================================================================


def _resolve_pool(request: ProcessVideosRequest, storage: LocalStorageService) -> list[MediaAsset]:
    pool: list[MediaAsset] = []
    for result in request.video_files:
        asset = result.to_asset()
        if asset.is_valid:
            path = storage.resolve_managed_path(asset.storage_path)
            if not path.is_file():
                raise AssetNotFoundError(asset.original_name)
            asset.storage_path = str(path)
        pool.append(asset)
    return pool


@router.post("/process-videos", response_model=ProcessVideosResponse)
async def process_videos(
    request: ProcessVideosRequest,
    storage: Storage,
    registry: Registry,
    x_client_id: ClientId = None,
) -> ProcessVideosResponse:
    """Cut the validated clips to the beat track and add the soundtrack."""
    channel = registry.channel(x_client_id)

    try:
        audio_path = storage.upload_path(request.audio_file.filename)
        pool = _resolve_pool(request, storage)
    except BeatcutError as e:
        await channel.send(create_status_message(f"Error: {e.message}"))
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    pipeline = BeatSyncPipeline(
        temp_dir=storage.temp_dir,
        output_dir=storage.output_dir,
        target=TargetFormat.for_resolution(request.resolution, storage.settings),
        channel=channel,
        settings=storage.settings,
    )
    try:
        result = await pipeline.run(
            beats=request.beats,
            pool=pool,
            audio_path=str(audio_path),
            randomize=request.randomized,
        )
    except BeatcutError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=f"Failed to process videos: {e.message}",
        ) from e

    return ProcessVideosResponse(
        output_file=result.output_file,
        download_url=f"/download/{result.session_id}",
        session_id=result.session_id,
        assignments=[AssignmentResponse(**a.to_dict()) for a in result.assignments],
        underruns=[s.index for s in result.underruns],
    )


# =============================================================================
# Fixed-length splitting
# =============================================================================


@router.post("/trim-videos", response_model=TrimVideosResponse)
async def trim_videos(
    storage: Storage,
    registry: Registry,
    duration: float = Form(...),
    resolution: str = Form("1080p"),
    videos: list[UploadFile] | None = File(None),
    x_client_id: ClientId = None,
) -> TrimVideosResponse:
    """Cut every uploaded video into equal clips and zip them."""
    if not videos:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No video files uploaded")
    if not math.isfinite(duration) or duration <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid clip duration")

    channel = registry.channel(x_client_id)
    target = TargetFormat.for_resolution(resolution, storage.settings)
    session_id = str(uuid4())
    clips_dir = storage.output_dir / f"clips_{session_id}"
    zip_path = storage.output_dir / f"clips_{session_id}.zip"
    storage.ensure_directories()

    try:
        await channel.send(create_status_message(f"Uploading and validating videos ({target.size})..."))
        sources = []
        for video in videos:
            stored = await storage.save_upload(video, "videos")
            sources.append(SplitSource(path=stored.path, original_name=stored.original_name))

        trimmer = VideoTrimmer(target, storage.settings)
        clips = await trimmer.split_all(sources, duration, clips_dir, channel)

        await channel.send(create_status_message("Creating ZIP archive..."))
        await build_zip(zip_path, clips)
        await channel.send(create_status_message("Clips generated successfully!"))
    except (BeatcutError, OSError) as e:
        message = e.message if isinstance(e, BeatcutError) else str(e)
        logger.error(f"Trimming error: {message}")
        shutil.rmtree(clips_dir, ignore_errors=True)
        zip_path.unlink(missing_ok=True)
        await channel.send(create_status_message(f"Error: {message}"))
        status_code = e.status_code if isinstance(e, BeatcutError) else 500
        raise HTTPException(status_code=status_code, detail=f"Failed to trim videos: {message}") from e

    return TrimVideosResponse(
        clips=[ClipInfo(**clip.to_dict(session_id)) for clip in clips],
        zip_url=f"/download-zip/{session_id}",
        session_id=session_id,
    )


# =============================================================================
# Downloads
# =============================================================================


def _file_or_404(storage: LocalStorageService, name: str) -> Path:
    try:
        return storage.output_file(name)
    except (AssetNotFoundError, PathOutsideStorageError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found") from e


@router.get("/download/{session_id}")
async def download_final(session_id: str, storage: Storage) -> FileResponse:
    """Download a session's finished video."""
    path = final_output_path(storage.output_dir, _safe_name(session_id))
    if not path.is_file():
        raise SessionOutputNotFoundError(session_id)
    return FileResponse(path, media_type="video/mp4", filename=f"final-video-{session_id}.mp4")


@router.get("/download-clip/{session_id}/{filename}")
async def download_clip(session_id: str, filename: str, storage: Storage) -> FileResponse:
    """Download one clip produced by /trim-videos."""
    path = storage.output_dir / f"clips_{_safe_name(session_id)}" / _safe_name(filename)
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Clip not found")
    return FileResponse(path, media_type="video/mp4", filename=filename)


@router.get("/download-zip/{session_id}")
async def download_zip(session_id: str, storage: Storage) -> FileResponse:
    """Download the archive produced by /trim-videos."""
    name = f"clips_{_safe_name(session_id)}.zip"
    path = _file_or_404(storage, name)
    return FileResponse(path, media_type="application/zip", filename=name)
