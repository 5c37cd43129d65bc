"""
Pytest fixtures for beatcut tests.

Most tests patch ffmpeg out. Tests that run the real binaries are marked
with @pytest.mark.requires_ffmpeg and build their own inputs from lavfi
sources, so no media files are checked in.

Run `pytest -m "not requires_ffmpeg"` to skip them explicitly.
"""

import shutil
import subprocess
import tempfile
from pathlib import Path

import pytest

from beatcut.config import Settings


def pytest_configure(config):
    """Register custom markers for CI/CD test filtering."""
    config.addinivalue_line(
        "markers",
        "requires_ffmpeg: mark test as requiring ffmpeg and ffprobe on PATH"
    )


def _ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None


def pytest_collection_modifyitems(config, items):
    if _ffmpeg_available():
        return
    skip = pytest.mark.skip(reason="ffmpeg/ffprobe not installed")
    for item in items:
        if "requires_ffmpeg" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="beatcut_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_output_dir) -> Settings:
    """Settings whose data directory lives in the test's temp dir."""
    return Settings(data_dir=str(temp_output_dir / "data"))


@pytest.fixture
def make_clip(temp_output_dir):
    """Factory writing a synthetic test-pattern clip with ffmpeg.

    Usage: make_clip("a.mp4", 2.0, size="320x240", rate=30, with_audio=True)
    """

    def _make(
        name: str,
        duration: float,
        size: str = "320x240",
        rate: int = 30,
        with_audio: bool = True,
    ) -> Path:
        output_path = temp_output_dir / name
        cmd = [
            "ffmpeg", "-y",
            "-f", "lavfi", "-i", f"testsrc=duration={duration}:size={size}:rate={rate}",
        ]
        if with_audio:
            cmd += ["-f", "lavfi", "-i", f"sine=frequency=440:duration={duration}"]
        cmd += ["-c:v", "libx264", "-pix_fmt", "yuv420p"]
        if with_audio:
            cmd += ["-c:a", "aac", "-shortest"]
        cmd.append(str(output_path))
        subprocess.run(cmd, capture_output=True, check=True)
        return output_path

    return _make


@pytest.fixture
def make_audio(temp_output_dir):
    """Factory writing a sine-wave soundtrack."""

    def _make(name: str, duration: float) -> Path:
        output_path = temp_output_dir / name
        subprocess.run(
            [
                "ffmpeg", "-y",
                "-f", "lavfi", "-i", f"sine=frequency=220:duration={duration}",
                "-c:a", "aac",
                str(output_path),
            ],
            capture_output=True,
            check=True,
        )
        return output_path

    return _make
