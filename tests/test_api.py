"""Tests for the HTTP surface, with the heavy lifting patched out."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from beatcut.exceptions import AssignmentError
from beatcut.main import app
from beatcut.models import Assignment
from beatcut.render.pipeline import PipelineResult
from beatcut.services.storage_service import LocalStorageService, get_storage_service


@pytest.fixture
def storage(settings) -> LocalStorageService:
    service = LocalStorageService(settings)
    service.ensure_directories()
    return service


@pytest.fixture
def client(storage):
    app.dependency_overrides[get_storage_service] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


def _process_payload(audio: str, video_path: str, beats=None) -> dict:
    return {
        "audioFile": {"filename": audio},
        "videoFiles": [
            {
                "filename": "videos-1.mp4",
                "originalName": "one.mp4",
                "valid": True,
                "duration": 4.0,
                "path": video_path,
                "hasAudio": True,
            }
        ],
        "beats": beats if beats is not None else [0.0, 1.0],
        "randomized": False,
        "resolution": "720p",
    }


class TestHealth:
    """Tests for service metadata endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_version(self, client):
        response = client.get("/api/version")

        assert response.status_code == 200
        assert "version" in response.json()


class TestUploads:
    """Tests for the upload endpoints."""

    def test_upload_audio(self, client, storage):
        response = client.post("/upload-audio", files={"audio": ("song.mp3", b"ID3audio", "audio/mpeg")})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert (storage.uploads_dir / body["filename"]).read_bytes() == b"ID3audio"

    def test_upload_audio_without_file(self, client):
        response = client.post("/upload-audio")

        assert response.status_code == 400
        assert response.json()["detail"] == "No audio file uploaded"

    def test_upload_videos(self, client):
        response = client.post(
            "/upload-videos",
            files=[
                ("videos", ("a.mp4", b"aaaa", "video/mp4")),
                ("videos", ("b.mov", b"bb", "video/quicktime")),
            ],
        )

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [f["originalName"] for f in body["files"]] == ["a.mp4", "b.mov"]
        assert body["files"][1]["filename"].endswith(".mov")


class TestValidateVideos:
    """Tests for /validate-videos."""

    def test_missing_file_is_reported_not_raised(self, client):
        response = client.post(
            "/validate-videos",
            json={"videoFiles": [{"filename": "videos-404.mp4", "originalName": "gone.mp4"}]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["validCount"] == 0
        assert body["totalCount"] == 1
        assert body["results"][0]["valid"] is False
        assert "File not found" in body["results"][0]["error"]


class TestProcessVideos:
    """Tests for /process-videos."""

    def test_missing_audio(self, client, storage):
        response = client.post("/process-videos", json=_process_payload("audio-404.mp3", "x"))

        assert response.status_code == 404

    def test_too_few_beats(self, client, storage):
        response = client.post("/process-videos", json=_process_payload("a.mp3", "x", beats=[1.0]))

        assert response.status_code == 422

    def test_path_outside_storage(self, client, storage):
        (storage.uploads_dir / "audio-1.mp3").write_bytes(b"a")

        response = client.post("/process-videos", json=_process_payload("audio-1.mp3", "/etc/passwd"))

        assert response.status_code == 400

    def test_success(self, client, storage):
        (storage.uploads_dir / "audio-1.mp3").write_bytes(b"a")
        video = storage.uploads_dir / "videos-1.mp4"
        video.write_bytes(b"v")
        result = PipelineResult(
            session_id="sess-1",
            output_path=str(storage.output_dir / "final_sess-1.mp4"),
            intervals=[1.0, 2.0],
            assignments=[Assignment(0, "videos-1.mp4", 1.0, 4.0)],
        )

        with patch("beatcut.api.media.BeatSyncPipeline") as pipeline_cls:
            pipeline_cls.return_value.run = AsyncMock(return_value=result)
            response = client.post(
                "/process-videos",
                json=_process_payload("audio-1.mp3", str(video)),
                headers={"X-Client-Id": "client-1"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["outputFile"] == "final_sess-1.mp4"
        assert body["downloadUrl"] == "/download/sess-1"
        assert body["assignments"][0]["assetId"] == "videos-1.mp4"
        kwargs = pipeline_cls.return_value.run.call_args.kwargs
        assert kwargs["beats"] == [0.0, 1.0]
        assert kwargs["pool"][0].storage_path == str(video.resolve())
        assert pipeline_cls.call_args.kwargs["target"].size == "1280x720"

    def test_pipeline_failure(self, client, storage):
        (storage.uploads_dir / "audio-1.mp3").write_bytes(b"a")
        video = storage.uploads_dir / "videos-1.mp4"
        video.write_bytes(b"v")

        with patch("beatcut.api.media.BeatSyncPipeline") as pipeline_cls:
            pipeline_cls.return_value.run = AsyncMock(side_effect=AssignmentError(interval_index=1))
            response = client.post("/process-videos", json=_process_payload("audio-1.mp3", str(video)))

        assert response.status_code == 422
        assert response.json()["detail"] == (
            "Failed to process videos: No suitable clip available for beat duration"
        )

    def test_non_finite_beats_rejected(self, client, storage):
        (storage.uploads_dir / "audio-1.mp3").write_bytes(b"a")
        video = storage.uploads_dir / "videos-1.mp4"
        video.write_bytes(b"v")
        payload = _process_payload("audio-1.mp3", str(video), beats=[0.0, float("nan")])

        response = client.post(
            "/process-videos",
            content=json.dumps(payload),
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert "finite" in response.json()["detail"]
        assert list(storage.temp_dir.iterdir()) == []

    def test_missing_standardized_copy(self, client, storage):
        (storage.uploads_dir / "audio-1.mp3").write_bytes(b"a")
        swept = storage.temp_dir / "standardized_gone.mp4"

        response = client.post("/process-videos", json=_process_payload("audio-1.mp3", str(swept)))

        assert response.status_code == 404
        assert response.json()["detail"] == "File not found: one.mp4"


class TestTrimVideos:
    """Tests for /trim-videos."""

    @pytest.mark.parametrize("duration", ["0", "-2", "nan", "inf"])
    def test_invalid_duration(self, client, duration):
        response = client.post(
            "/trim-videos",
            data={"duration": duration},
            files=[("videos", ("a.mp4", b"aaaa", "video/mp4"))],
        )

        assert response.status_code == 400

    def test_no_videos(self, client):
        response = client.post("/trim-videos", data={"duration": "2"})

        assert response.status_code == 400


class TestDownloads:
    """Tests for the download endpoints."""

    def test_final_video(self, client, storage):
        (storage.output_dir / "final_sess-1.mp4").write_bytes(b"movie")

        response = client.get("/download/sess-1")

        assert response.status_code == 200
        assert response.content == b"movie"
        assert "final-video-sess-1.mp4" in response.headers["content-disposition"]

    def test_final_video_missing(self, client):
        response = client.get("/download/nope")

        assert response.status_code == 404
        assert response.json()["detail"] == "Output not found for session: nope"

    def test_clip(self, client, storage):
        clips_dir = storage.output_dir / "clips_sess-2"
        clips_dir.mkdir()
        (clips_dir / "clip_0_0.mp4").write_bytes(b"clip")

        assert client.get("/download-clip/sess-2/clip_0_0.mp4").content == b"clip"
        assert client.get("/download-clip/sess-2/clip_9_9.mp4").status_code == 404

    def test_zip(self, client, storage):
        (storage.output_dir / "clips_sess-3.zip").write_bytes(b"PK")

        response = client.get("/download-zip/sess-3")

        assert response.status_code == 200
        assert client.get("/download-zip/missing").status_code == 404
