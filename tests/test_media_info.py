"""
Tests for media info extraction.

Test cases:
1. Frame rate parsing
2. Stream selection from ffprobe JSON
3. Probe failures
4. Deciding whether a clip must be re-encoded
"""

import json
from fractions import Fraction
from unittest.mock import MagicMock, patch

import pytest

from beatcut.exceptions import ProbeError
from beatcut.models import TargetFormat
from beatcut.services.asset_validator import needs_reencode
from beatcut.utils.media_info import MediaInfo, get_media_duration, get_media_info, parse_frame_rate


def _ffprobe_result(payload: dict, returncode: int = 0, stderr: str = "") -> MagicMock:
    return MagicMock(returncode=returncode, stdout=json.dumps(payload), stderr=stderr)


FFPROBE_OUTPUT = {
    "format": {"duration": "3.503000"},
    "streams": [
        {
            "codec_type": "video",
            "codec_name": "h264",
            "width": 1920,
            "height": 1088,
            "r_frame_rate": "24/1",
        },
        {
            "codec_type": "audio",
            "codec_name": "aac",
            "sample_rate": "48000",
            "channels": 2,
        },
        {
            "codec_type": "video",
            "codec_name": "mjpeg",
            "width": 320,
            "height": 240,
            "r_frame_rate": "90000/1",
        },
    ],
}


class TestParseFrameRate:
    """Tests for ffprobe rate strings."""

    def test_integer_ratio(self):
        assert parse_frame_rate("24/1") == Fraction(24)

    def test_ntsc_ratio_is_exact(self):
        rate = parse_frame_rate("24000/1001")
        assert rate == Fraction(24000, 1001)
        assert rate != Fraction(24)

    def test_bare_number(self):
        assert parse_frame_rate("25") == Fraction(25)

    @pytest.mark.parametrize("value", [None, "", "0/0", "abc", "30/x", "1/-2"])
    def test_unusable_values(self, value):
        assert parse_frame_rate(value) is None


class TestGetMediaInfo:
    """Tests for parsing ffprobe output."""

    def test_first_streams_are_used(self):
        with patch("beatcut.utils.media_info.subprocess.run", return_value=_ffprobe_result(FFPROBE_OUTPUT)):
            info = get_media_info("/tmp/clip.mp4")

        assert info.duration_seconds == pytest.approx(3.503)
        assert info.width == 1920
        assert info.height == 1088
        assert info.frame_rate == Fraction(24)
        assert info.video_codec == "h264"
        assert info.audio_codec == "aac"
        assert info.sample_rate == 48000
        assert info.channels == 2
        assert info.has_video is True
        assert info.has_audio is True

    def test_video_only_file(self):
        payload = {"format": {"duration": "1.0"}, "streams": [FFPROBE_OUTPUT["streams"][0]]}
        with patch("beatcut.utils.media_info.subprocess.run", return_value=_ffprobe_result(payload)):
            info = get_media_info("/tmp/silent.mp4")

        assert info.has_video is True
        assert info.has_audio is False
        assert info.audio_codec is None

    def test_ffprobe_failure_raises(self):
        result = _ffprobe_result({}, returncode=1, stderr="Invalid data found when processing input")
        with patch("beatcut.utils.media_info.subprocess.run", return_value=result):
            with pytest.raises(ProbeError, match="Invalid data"):
                get_media_info("/tmp/broken.mp4")

    def test_missing_binary_raises(self):
        with patch("beatcut.utils.media_info.subprocess.run", side_effect=FileNotFoundError("ffprobe")):
            with pytest.raises(ProbeError):
                get_media_info("/tmp/clip.mp4")

    def test_duration_missing_raises(self):
        with patch("beatcut.utils.media_info.subprocess.run", return_value=_ffprobe_result({"format": {}})):
            with pytest.raises(ProbeError, match="Duration not found"):
                get_media_duration("/tmp/clip.mp4")

    def test_unparseable_sample_rate_is_dropped(self):
        payload = {
            "format": {"duration": "2.0"},
            "streams": [
                FFPROBE_OUTPUT["streams"][0],
                {"codec_type": "audio", "codec_name": "aac", "sample_rate": "N/A", "channels": 2},
            ],
        }
        with patch("beatcut.utils.media_info.subprocess.run", return_value=_ffprobe_result(payload)):
            info = get_media_info("/tmp/odd_audio.mp4")

        assert info.has_audio is True
        assert info.sample_rate is None
        assert info.duration_seconds == 2.0

    def test_to_dict_serializes_rate(self):
        info = MediaInfo(frame_rate=Fraction(30000, 1001))
        assert info.to_dict()["frame_rate"] == "30000/1001"


class TestNeedsReencode:
    """Tests for the target format comparison."""

    @pytest.fixture
    def target(self) -> TargetFormat:
        return TargetFormat(width=1920, height=1088)

    @pytest.fixture
    def conformant(self) -> MediaInfo:
        return MediaInfo(
            duration_seconds=3.0,
            width=1920,
            height=1088,
            frame_rate=Fraction(24),
            video_codec="h264",
            audio_codec="aac",
            has_video=True,
            has_audio=True,
        )

    def test_conformant_clip_is_kept(self, conformant, target):
        assert needs_reencode(conformant, target) is False

    def test_ntsc_rate_needs_reencode(self, conformant, target):
        conformant.frame_rate = Fraction(24000, 1001)
        assert needs_reencode(conformant, target) is True

    def test_wrong_size_needs_reencode(self, conformant, target):
        conformant.height = 1080
        assert needs_reencode(conformant, target) is True

    def test_wrong_audio_codec_needs_reencode(self, conformant, target):
        conformant.audio_codec = "mp3"
        assert needs_reencode(conformant, target) is True

    def test_missing_audio_is_not_a_mismatch(self, conformant, target):
        conformant.has_audio = False
        conformant.audio_codec = None
        assert needs_reencode(conformant, target) is False

    def test_unknown_rate_needs_reencode(self, conformant, target):
        conformant.frame_rate = None
        assert needs_reencode(conformant, target) is True
