"""Integration tests for the HTTP and WebSocket API.

The app runs with its real job store (SQLite in a temp dir) and a pipeline
whose acquisition and assembly stages are in-memory doubles.
"""

import asyncio
import threading
import time

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_video_pipeline
from api.job_store import JobStore
from api.routers.videos import _run_video_job
from api.server import app
from models.video import VideoArtifact
from services.video_pipeline import VideoPipeline


def _wait_for(
    client: TestClient, job_id: str, statuses=("completed", "failed"), timeout=5.0
) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        job = client.get(f"/api/videos/jobs/{job_id}").json()
        if job["status"] in statuses or time.monotonic() > deadline:
            return job
        time.sleep(0.05)


@pytest.fixture
def make_client(monkeypatch, temp_dir):
    """Build a TestClient around a pipeline made from the given assembler."""
    monkeypatch.setenv("JOB_DB_PATH", str(temp_dir / "jobs.db"))
    monkeypatch.setenv("VIDEO_OUTPUT_DIR", str(temp_dir / "videos"))
    monkeypatch.setenv("AI_GATEWAY_API_KEY", "test-key")
    monkeypatch.setattr("api.job_store._job_store", None)
    monkeypatch.setattr("api.dependencies._image_gen_service", None)

    clients = []

    def factory(acquisition, assembler):
        pipeline = VideoPipeline(acquisition, assembler)
        app.dependency_overrides[get_video_pipeline] = lambda: pipeline
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client, fake_acquisition, fake_assembler):
    return make_client(fake_acquisition, fake_assembler)


@pytest.mark.integration
class TestCoreRoutes:
    """Tests for root and health."""

    def test_root(self, client):
        assert client.get("/").json()["message"] == "SceneReel API"

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "healthy"
        assert body["image_service_configured"] is True
        assert isinstance(body["ffmpeg_available"], bool)


@pytest.mark.integration
class TestVideoJobs:
    """Tests for the job lifecycle over HTTP."""

    def test_create_poll_and_download(self, client, sample_script, sample_visual_scenes):
        response = client.post(
            "/api/videos", json={"script": sample_script, "visual_scenes": sample_visual_scenes}
        )

        assert response.status_code == 202
        created = response.json()
        assert created["total_scenes"] == 3
        assert created["status"] == "pending"

        job = _wait_for(client, created["job_id"])
        assert job["status"] == "completed"
        assert job["progress"] == 100
        assert job["total_scenes"] == 3
        assert job["error_message"] is None

        download = client.get(f"/api/videos/jobs/{created['job_id']}/download")
        assert download.status_code == 200
        assert download.headers["content-type"] == "video/mp4"
        assert download.content.startswith(b"\x00\x00\x00\x18ftyp")

    def test_create_from_package(self, client, sample_package):
        response = client.post("/api/videos", json={"content": sample_package})

        assert response.status_code == 202
        assert response.json()["total_scenes"] == 3

    def test_script_without_scenes_is_rejected(self, client):
        response = client.post("/api/videos", json={"script": "[00:00]\n[00:05]"})

        assert response.status_code == 400
        assert client.get("/api/videos/jobs").json() == []

    def test_missing_script_and_content(self, client):
        assert client.post("/api/videos", json={"visual_scenes": "x"}).status_code == 422

    def test_failed_job_reports_error(
        self, make_client, fake_acquisition, failing_assembler, sample_script
    ):
        client = make_client(fake_acquisition, failing_assembler)
        job_id = client.post("/api/videos", json={"script": sample_script}).json()["job_id"]

        job = _wait_for(client, job_id)

        assert job["status"] == "failed"
        assert "encoder exploded" in job["error_message"]
        assert client.get(f"/api/videos/jobs/{job_id}/download").status_code == 400

    def test_unknown_job(self, client):
        assert client.get("/api/videos/jobs/nope").status_code == 404
        assert client.get("/api/videos/jobs/nope/download").status_code == 404
        assert client.delete("/api/videos/jobs/nope").status_code == 404

    def test_list_filter_and_delete(self, client, sample_script):
        job_id = client.post("/api/videos", json={"script": sample_script}).json()["job_id"]
        _wait_for(client, job_id)

        assert [j["id"] for j in client.get("/api/videos/jobs?status=completed").json()] == [job_id]
        assert client.get("/api/videos/jobs?status=bogus").status_code == 400

        assert client.delete(f"/api/videos/jobs/{job_id}").status_code == 200
        assert client.get(f"/api/videos/jobs/{job_id}").status_code == 404


@pytest.mark.integration
class TestVideoWebSocket:
    """Tests for /ws/videos/{job_id}."""

    def test_unknown_job(self, client):
        with client.websocket_connect("/ws/videos/nope") as websocket:
            assert websocket.receive_json() == {"type": "error", "message": "Job not found"}

    def test_finished_job_sends_state_and_result(self, client, sample_script):
        job_id = client.post("/api/videos", json={"script": sample_script}).json()["job_id"]
        _wait_for(client, job_id)

        with client.websocket_connect(f"/ws/videos/{job_id}") as websocket:
            status = websocket.receive_json()
            final = websocket.receive_json()
            websocket.send_text("ping")
            assert websocket.receive_text() == "pong"

        assert status["type"] == "status"
        assert status["job"]["id"] == job_id
        assert final["type"] == "complete"
        assert final["job"]["progress"] == 100


class FakeContentService:
    def __init__(self, content: str = "", error: Exception | None = None):
        self.content = content
        self.error = error

    def is_configured(self):
        return True

    async def generate_content(self, request):
        if self.error is not None:
            raise self.error
        return self.content

    async def close(self):
        pass


@pytest.mark.integration
class TestContentRoute:
    """Tests for POST /api/content."""

    def test_returns_sections(self, client, sample_package):
        from api.dependencies import get_content_service

        app.dependency_overrides[get_content_service] = lambda: FakeContentService(sample_package)

        body = client.post("/api/content", json={"topic": "City life"}).json()

        assert body["content"] == sample_package
        assert body["script"].startswith("[00:00]")
        assert "Lo-fi city beats" in body["music"]
        assert "CITY 24H" in body["thumbnail"]

    def test_quota_maps_to_402(self, client):
        from api.dependencies import get_content_service
        from services.content_service import ContentGenerationError
        from services.errors import ErrorKind

        error = ContentGenerationError(
            "Payment required. Please add credits to your workspace.",
            kind=ErrorKind.QUOTA_EXHAUSTED,
            status_code=402,
        )
        app.dependency_overrides[get_content_service] = lambda: FakeContentService(error=error)

        response = client.post("/api/content", json={"topic": "City life"})

        assert response.status_code == 402
        assert "Payment required" in response.json()["detail"]


class GatedAssembler:
    """Holds the job in processing until the test releases it."""

    def __init__(self):
        self.release = threading.Event()

    async def assemble(self, images, scene_duration_seconds=5, reporter=None, scene_count=None):
        while not self.release.is_set():
            await asyncio.sleep(0.01)
        return VideoArtifact(b"gated video", len(images), len(images) * scene_duration_seconds)

    async def close(self):
        pass


class DeletingAssembler:
    """Deletes its own job row before handing back the video."""

    def __init__(self, store: JobStore, job_id: str):
        self.store = store
        self.job_id = job_id

    async def assemble(self, images, scene_duration_seconds=5, reporter=None, scene_count=None):
        await self.store.delete_job(self.job_id)
        return VideoArtifact(b"orphan video", len(images), len(images) * scene_duration_seconds)

    async def close(self):
        pass


@pytest.mark.integration
class TestVideoFileLifecycle:
    """Rendered files never outlive their job records."""

    def test_running_job_cannot_be_deleted(self, make_client, fake_acquisition, sample_script):
        assembler = GatedAssembler()
        client = make_client(fake_acquisition, assembler)
        job_id = client.post("/api/videos", json={"script": sample_script}).json()["job_id"]

        try:
            assert _wait_for(client, job_id, statuses=("processing",))["status"] == "processing"
            response = client.delete(f"/api/videos/jobs/{job_id}")
            assert response.status_code == 409
        finally:
            assembler.release.set()

        job = _wait_for(client, job_id)
        assert job["status"] == "completed"
        assert client.get(f"/api/videos/jobs/{job_id}/download").content == b"gated video"

        assert client.delete(f"/api/videos/jobs/{job_id}").status_code == 200
        assert client.get(f"/api/videos/jobs/{job_id}/download").status_code == 404

    @pytest.mark.asyncio
    async def test_video_discarded_when_job_removed_mid_run(
        self, temp_dir, fake_acquisition, sample_script
    ):
        store = JobStore(str(temp_dir / "jobs.db"))
        await store.connect()
        output = temp_dir / "job-1.mp4"
        await store.create_job("job-1", output_path=str(output))
        pipeline = VideoPipeline(fake_acquisition, DeletingAssembler(store, "job-1"))

        try:
            await _run_video_job("job-1", pipeline, store, sample_script, "")
            assert await store.get_job("job-1") is None
        finally:
            await store.close()

        assert not output.exists()


@pytest.mark.integration
class TestResponseDetails:
    """Extra fields in the API responses."""

    def test_created_job_lists_parsed_scenes(self, client, sample_script, sample_visual_scenes):
        body = client.post(
            "/api/videos", json={"script": sample_script, "visual_scenes": sample_visual_scenes}
        ).json()

        assert [scene["timestamp"] for scene in body["scenes"]] == ["00:00", "00:05", "00:10"]
        assert body["scenes"][0]["visual_description"] == "A city skyline at dawn"
        assert all(scene["duration_seconds"] == 5 for scene in body["scenes"])

    def test_health_reports_image_model(self, client):
        body = client.get("/api/health").json()
        assert body["image_model"]
