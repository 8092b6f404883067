"""Unit tests for the job record and its state machine."""

import pytest

from models.job import InvalidJobTransition, JobStatus, VideoJob


@pytest.mark.unit
class TestTransitions:
    """Tests for VideoJob.transition."""

    def test_happy_path(self):
        job = VideoJob(id="job-1")
        job.transition(JobStatus.PROCESSING)
        job.transition(JobStatus.COMPLETED)

        assert job.status == JobStatus.COMPLETED
        assert job.progress == 100
        assert job.error_message is None

    def test_pending_can_fail_directly(self):
        job = VideoJob(id="job-1")
        job.transition(JobStatus.FAILED, error_message="No scenes found")

        assert job.status == JobStatus.FAILED
        assert job.error_message == "No scenes found"

    def test_failure_without_message_gets_default(self):
        job = VideoJob(id="job-1", status=JobStatus.PROCESSING)
        job.transition(JobStatus.FAILED)
        assert job.error_message == "Unknown error"

    @pytest.mark.parametrize(
        "start,target",
        [
            (JobStatus.PENDING, JobStatus.COMPLETED),
            (JobStatus.PROCESSING, JobStatus.PENDING),
            (JobStatus.COMPLETED, JobStatus.FAILED),
            (JobStatus.FAILED, JobStatus.PROCESSING),
        ],
    )
    def test_rejected_transitions(self, start, target):
        job = VideoJob(id="job-1", status=start)
        with pytest.raises(InvalidJobTransition):
            job.transition(target)

    def test_error_message_only_on_failure(self):
        job = VideoJob(id="job-1")
        with pytest.raises(InvalidJobTransition):
            job.transition(JobStatus.PROCESSING, error_message="oops")


@pytest.mark.unit
class TestAdvance:
    """Tests for VideoJob.advance."""

    def test_progress_never_decreases(self):
        job = VideoJob(id="job-1", status=JobStatus.PROCESSING)
        job.advance(40, "Generating image 2/3")
        job.advance(25, "Late update")

        assert job.progress == 40
        assert job.current_step == "Late update"

    def test_progress_is_clamped(self):
        job = VideoJob(id="job-1", status=JobStatus.PROCESSING)
        job.advance(150, "Overflow")
        assert job.progress == 100

    def test_completed_scenes_never_decrease(self):
        job = VideoJob(id="job-1", status=JobStatus.PROCESSING)
        job.advance(30, "a", completed_scenes=2)
        job.advance(31, "b", completed_scenes=1)
        assert job.completed_scenes == 2

    def test_unchanged_update_reports_false(self):
        job = VideoJob(id="job-1", status=JobStatus.PROCESSING)
        assert job.advance(10, "Found 3 scenes") is True
        assert job.advance(10, "Found 3 scenes") is False

    def test_terminal_job_rejects_progress(self):
        job = VideoJob(id="job-1", status=JobStatus.COMPLETED, progress=100)
        with pytest.raises(InvalidJobTransition):
            job.advance(100, "again")


@pytest.mark.unit
def test_dict_round_trip():
    job = VideoJob(id="job-1", status=JobStatus.PROCESSING, progress=42, total_scenes=3)
    job.output_path = "output/videos/job-1.mp4"

    restored = VideoJob.from_dict(job.to_dict())

    assert restored.status == JobStatus.PROCESSING
    assert restored.progress == 42
    assert restored.total_scenes == 3
    assert restored.output_path == "output/videos/job-1.mp4"
    assert restored.created_at == job.created_at
