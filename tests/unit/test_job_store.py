"""Unit tests for the SQLite job store."""

from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from api.job_store import JobStore
from models.job import InvalidJobTransition, JobStatus


@pytest_asyncio.fixture
async def store(temp_dir):
    job_store = JobStore(str(temp_dir / "db" / "jobs.db"))
    await job_store.connect()
    yield job_store
    await job_store.close()


@pytest.mark.unit
class TestJobStore:
    """Tests for JobStore."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        created = await store.create_job("job-1", output_path="out/job-1.mp4")
        fetched = await store.get_job("job-1")

        assert created.status == JobStatus.PENDING
        assert fetched is not None
        assert fetched.progress == 0
        assert fetched.output_path == "out/job-1.mp4"

    @pytest.mark.asyncio
    async def test_get_missing_job(self, store):
        assert await store.get_job("nope") is None
        assert await store.update_job("nope", progress=10) is None

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, store):
        await store.create_job("job-1")
        await store.update_job("job-1", status="processing", total_scenes=3)
        await store.update_job("job-1", progress=25, current_step="Generating image 1/3")

        job = await store.get_job("job-1")
        assert job.status == JobStatus.PROCESSING
        assert job.total_scenes == 3
        assert job.progress == 25
        assert job.current_step == "Generating image 1/3"

    @pytest.mark.asyncio
    async def test_progress_never_decreases(self, store):
        await store.create_job("job-1")
        await store.update_job("job-1", status="processing", progress=40)
        await store.update_job("job-1", progress=30, current_step="late")

        job = await store.get_job("job-1")
        assert job.progress == 40
        assert job.current_step == "late"

    @pytest.mark.asyncio
    async def test_finished_job_rejects_writes(self, store):
        await store.create_job("job-1")
        await store.update_job("job-1", status="processing")
        await store.update_job("job-1", status="completed", progress=100)

        with pytest.raises(InvalidJobTransition):
            await store.update_job("job-1", progress=50)

    @pytest.mark.asyncio
    async def test_backward_transition_rejected(self, store):
        await store.create_job("job-1")
        await store.update_job("job-1", status="processing")
        with pytest.raises(InvalidJobTransition):
            await store.update_job("job-1", status="pending")

    @pytest.mark.asyncio
    async def test_failure_records_message(self, store):
        await store.create_job("job-1")
        await store.update_job("job-1", status="failed", error_message="boom")

        job = await store.get_job("job-1")
        assert job.status == JobStatus.FAILED
        assert job.error_message == "boom"

    @pytest.mark.asyncio
    async def test_error_message_requires_failure(self, store):
        await store.create_job("job-1")
        with pytest.raises(InvalidJobTransition):
            await store.update_job("job-1", error_message="boom")

    @pytest.mark.asyncio
    async def test_unknown_field(self, store):
        await store.create_job("job-1")
        with pytest.raises(ValueError):
            await store.update_job("job-1", created_at="yesterday")

    @pytest.mark.asyncio
    async def test_list_count_and_delete(self, store):
        await store.create_job("job-1")
        await store.create_job("job-2")
        await store.update_job("job-2", status="failed", error_message="x")

        assert len(await store.list_jobs()) == 2
        assert [job.id for job in await store.list_jobs(status="failed")] == ["job-2"]
        assert await store.get_job_count() == 2
        assert await store.get_job_count(status="pending") == 1

        assert await store.delete_job("job-1") is True
        assert await store.delete_job("job-1") is False
        assert await store.get_job_count() == 1

    @pytest.mark.asyncio
    async def test_cleanup_only_removes_old_finished_jobs(self, store):
        await store.create_job("old-done")
        await store.create_job("old-running")
        await store.create_job("new-done")
        await store.update_job("old-done", status="failed", error_message="x")
        await store.update_job("new-done", status="failed", error_message="x")
        await store.update_job("old-running", status="processing")

        old = (datetime.now() - timedelta(days=30)).isoformat()
        await store.db.execute(
            "UPDATE video_generation_jobs SET created_at = ? WHERE id IN (?, ?)",
            (old, "old-done", "old-running"),
        )
        await store.db.commit()

        assert await store.cleanup_old_jobs(days=7) == 1
        assert await store.get_job("old-done") is None
        assert await store.get_job("old-running") is not None
        assert await store.get_job("new-done") is not None

    @pytest.mark.asyncio
    async def test_requires_connection(self, temp_dir):
        with pytest.raises(RuntimeError, match="not connected"):
            await JobStore(str(temp_dir / "jobs.db")).get_job("job-1")


@pytest.mark.unit
class TestCleanupFiles:
    """Video files go away with their expired jobs."""

    @pytest.mark.asyncio
    async def test_cleanup_unlinks_expired_videos(self, store, temp_dir):
        expired_video = temp_dir / "expired.mp4"
        running_video = temp_dir / "running.mp4"
        expired_video.write_bytes(b"old video")
        running_video.write_bytes(b"partial")

        await store.create_job("expired", output_path=str(expired_video))
        await store.create_job("running", output_path=str(running_video))
        await store.update_job("expired", status="failed", error_message="x")
        await store.update_job("running", status="processing")

        old = (datetime.now() - timedelta(days=30)).isoformat()
        await store.db.execute("UPDATE video_generation_jobs SET created_at = ?", (old,))
        await store.db.commit()

        assert await store.cleanup_old_jobs(days=7) == 1
        assert not expired_video.exists()
        assert running_video.exists()

    @pytest.mark.asyncio
    async def test_cleanup_tolerates_missing_video(self, store, temp_dir):
        await store.create_job("gone", output_path=str(temp_dir / "never-written.mp4"))
        await store.update_job("gone", status="failed", error_message="x")
        old = (datetime.now() - timedelta(days=30)).isoformat()
        await store.db.execute("UPDATE video_generation_jobs SET created_at = ?", (old,))
        await store.db.commit()

        assert await store.cleanup_old_jobs(days=7) == 1
