import logging
import os
import random
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from beatcut.config import Settings, get_settings
from beatcut.exceptions import AssetNotFoundError, InvalidRequestError, PathOutsideStorageError

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 1024 * 1024


@dataclass
class StoredFile:
    """An upload written to local storage."""

    filename: str
    original_name: str
    path: str
    size: int

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "originalName": self.original_name,
            "path": self.path,
            "size": self.size,
        }


class LocalStorageService:
    """Local file storage for uploads, scratch space and finished outputs."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.uploads_dir = self.settings.uploads_dir
        self.temp_dir = self.settings.temp_dir
        self.output_dir = self.settings.output_dir

    def ensure_directories(self) -> None:
        for directory in (self.uploads_dir, self.temp_dir, self.output_dir):
            directory.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_filename(fieldname: str, original_name: str) -> str:
        """Unique on-disk name that keeps the original extension."""
        ext = Path(original_name).suffix
        unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        return f"{fieldname}-{unique_suffix}{ext}"

    async def save_upload(self, upload: UploadFile, fieldname: str) -> StoredFile:
        """Stream an upload into the uploads directory.

        Raises:
            InvalidRequestError: If the file exceeds max_upload_size_mb
        """
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        original_name = upload.filename or "upload"
        filename = self.generate_filename(fieldname, original_name)
        path = self.uploads_dir / filename
        limit = self.settings.max_upload_size_mb * 1024 * 1024

        size = 0
        try:
            with open(path, "wb") as f:
                while chunk := await upload.read(UPLOAD_CHUNK_SIZE):
                    size += len(chunk)
                    if size > limit:
                        raise InvalidRequestError(
                            f"File too large: {original_name} "
                            f"(limit {self.settings.max_upload_size_mb}MB)",
                            status_code=413,
                        )
                    f.write(chunk)
        except InvalidRequestError:
            path.unlink(missing_ok=True)
            raise

        logger.info(f"[STORAGE] Saved {original_name} as {filename} ({size} bytes)")
        return StoredFile(filename=filename, original_name=original_name, path=str(path), size=size)

    def upload_path(self, filename: str) -> Path:
        """Path of an uploaded file by its stored name.

        Raises:
            PathOutsideStorageError: If the name tries to leave the directory
            AssetNotFoundError: If no such upload exists
        """
        if not filename or Path(filename).name != filename:
            raise PathOutsideStorageError(filename)
        path = self.uploads_dir / filename
        if not path.is_file():
            raise AssetNotFoundError(filename)
        return path

    def resolve_managed_path(self, path: str) -> Path:
        """Accept a client-supplied path only if it is inside uploads or temp.

        Raises:
            PathOutsideStorageError: If the path is anywhere else
        """
        resolved = Path(path).resolve()
        for root in (self.uploads_dir, self.temp_dir):
            if resolved.is_relative_to(root.resolve()):
                return resolved
        raise PathOutsideStorageError(path)

    def output_file(self, name: str) -> Path:
        """Existing file in the output directory.

        Raises:
            AssetNotFoundError: If it does not exist
        """
        if Path(name).name != name:
            raise PathOutsideStorageError(name)
        path = self.output_dir / name
        if not path.is_file():
            raise AssetNotFoundError(name)
        return path

    def cleanup_expired(self, max_age_seconds: int | None = None, now: float | None = None) -> int:
        """Delete top-level entries older than ``max_age_seconds``.

        Covers uploads, scratch and outputs. Returns the number removed.
        """
        max_age = max_age_seconds if max_age_seconds is not None else self.settings.file_max_age_seconds
        now = now if now is not None else time.time()
        removed = 0

        for directory in (self.uploads_dir, self.output_dir, self.temp_dir):
            if not directory.exists():
                continue
            for entry in directory.iterdir():
                try:
                    if now - entry.stat().st_mtime <= max_age:
                        continue
                    if entry.is_dir():
                        shutil.rmtree(entry)
                    else:
                        os.unlink(entry)
                    removed += 1
                except OSError as e:
                    logger.warning(f"[CLEANUP] Could not remove {entry}: {e}")

        logger.info(f"[CLEANUP] Removed {removed} expired entries")
        return removed


def get_storage_service() -> LocalStorageService:
    return LocalStorageService()
