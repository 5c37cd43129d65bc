"""Tests for fixed-length clip splitting."""

import zipfile
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from beatcut.models import TargetFormat
from beatcut.services.video_trimmer import ClipOutput, SplitSource, VideoTrimmer, build_zip

TARGET = TargetFormat(width=1280, height=720)


class TestVideoTrimmer:
    """Tests for VideoTrimmer."""

    def test_clip_count_drops_remainder(self):
        source = SplitSource(path="a.mp4", original_name="a.mp4", duration_seconds=10.9)
        assert source.clip_count(2.5) == 4

    def test_split_command_seeks_before_input(self, settings):
        cmd = VideoTrimmer(TARGET, settings).build_split_command("a.mp4", "out.mp4", 5.0, 2.5)

        assert cmd.index("-ss") < cmd.index("-i")
        assert cmd[cmd.index("-ss") + 1] == "5.000000"
        assert cmd[cmd.index("-t") + 1] == "2.500000"
        assert cmd[cmd.index("-b:a") + 1] == "140k"

    @pytest.mark.asyncio
    async def test_split_all(self, settings, temp_output_dir):
        sources = [
            SplitSource(path="a.mp4", original_name="first.mp4"),
            SplitSource(path="b.mp4", original_name="second.mp4"),
        ]
        channel = AsyncMock()

        with patch("beatcut.services.video_trimmer.probe_duration", new_callable=AsyncMock,
                   side_effect=[6.2, 2.0]), \
             patch("beatcut.services.video_trimmer.run_ffmpeg", new_callable=AsyncMock) as run:
            clips = await VideoTrimmer(TARGET, settings).split_all(
                sources, 2.0, temp_output_dir / "clips", channel
            )

        assert [c.filename for c in clips] == ["clip_0_0.mp4", "clip_0_1.mp4", "clip_0_2.mp4", "clip_1_0.mp4"]
        starts = [call.args[0][call.args[0].index("-ss") + 1] for call in run.call_args_list]
        assert starts == ["0.000000", "2.000000", "4.000000", "0.000000"]

        progress = [c.args[0] for c in channel.send.call_args_list if c.args[0]["type"] == "progress"]
        assert progress[0]["totalClips"] == 4
        assert progress[0]["processedClips"] == 0
        assert progress[-1]["processedClips"] == 4
        assert progress[-1]["currentVideoIndex"] == 2

    def test_clip_download_url(self):
        clip = ClipOutput("clip_0_1.mp4", "first.mp4", Path("/x/clip_0_1.mp4"))
        assert clip.to_dict("sess")["downloadUrl"] == "/download-clip/sess/clip_0_1.mp4"

    @pytest.mark.asyncio
    async def test_build_zip(self, temp_output_dir):
        clips = []
        for name in ("clip_0_0.mp4", "clip_0_1.mp4"):
            path = temp_output_dir / name
            path.write_bytes(b"frame" * 100)
            clips.append(ClipOutput(name, "first.mp4", path))

        zip_path = await build_zip(temp_output_dir / "clips.zip", clips)

        with zipfile.ZipFile(zip_path) as archive:
            assert archive.namelist() == ["clip_0_0.mp4", "clip_0_1.mp4"]
            assert archive.getinfo("clip_0_0.mp4").compress_type == zipfile.ZIP_DEFLATED
