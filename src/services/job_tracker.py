"""Single-writer handle on a video generation job.

The pipeline owns one JobHandle per run. Every change to the job record goes
through it: the in-memory VideoJob enforces the status state machine, and
each change is mirrored to the durable store and pushed to live subscribers.
Mirroring is best-effort; a broken store or socket never stops the pipeline.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from models.job import JobStatus, VideoJob

logger = logging.getLogger(__name__)

JobNotifier = Callable[[VideoJob], Optional[Awaitable[None]]]


class JobRecordStore(Protocol):
    """What the tracker needs from a durable job store."""

    async def update_job(self, job_id: str, **fields: Any) -> Optional[VideoJob]: ...


class JobHandle:
    """Owns the mutable state of one job for the duration of a run."""

    def __init__(
        self,
        job: VideoJob,
        store: Optional[JobRecordStore] = None,
        notifier: Optional[JobNotifier] = None,
    ):
        self.job = job
        self.store = store
        self.notifier = notifier

    @property
    def job_id(self) -> str:
        return self.job.id

    async def start(self, total_scenes: int, step: str = "Starting video generation") -> None:
        """pending -> processing."""
        self.job.transition(JobStatus.PROCESSING)
        self.job.total_scenes = total_scenes
        self.job.advance(self.job.progress, step)
        await self._mirror(
            status=self.job.status.value,
            total_scenes=total_scenes,
            current_step=step,
            progress=self.job.progress,
        )

    async def record_progress(
        self,
        percent: int,
        step: str,
        completed_scenes: Optional[int] = None,
    ) -> None:
        """Store a progress update; ignored once the job has finished."""
        if self.job.status.is_terminal:
            logger.debug(f"Ignoring progress for finished job {self.job_id}")
            return
        if not self.job.advance(percent, step, completed_scenes):
            return
        fields: dict[str, Any] = {
            "progress": self.job.progress,
            "current_step": self.job.current_step,
        }
        if completed_scenes is not None:
            fields["completed_scenes"] = self.job.completed_scenes
        await self._mirror(**fields)

    async def complete(self, step: str = "Video generated successfully!") -> None:
        """processing -> completed (progress pinned to 100)."""
        self.job.current_step = step
        self.job.transition(JobStatus.COMPLETED)
        if self.job.total_scenes is not None:
            self.job.completed_scenes = self.job.total_scenes
        await self._mirror(
            status=self.job.status.value,
            progress=100,
            current_step=step,
            completed_scenes=self.job.completed_scenes,
        )

    async def fail(self, error_message: str) -> None:
        """Any non-terminal state -> failed. A second failure is a no-op."""
        if self.job.status.is_terminal:
            logger.warning(
                f"Job {self.job_id} already {self.job.status.value}; not marking failed"
            )
            return
        self.job.transition(JobStatus.FAILED, error_message=error_message)
        await self._mirror(
            status=self.job.status.value,
            error_message=self.job.error_message,
        )

    async def _mirror(self, **fields: Any) -> None:
        if self.store is not None:
            try:
                await self.store.update_job(self.job_id, **fields)
            except Exception as e:
                logger.warning(f"Failed to persist job {self.job_id} update: {e}")
        if self.notifier is not None:
            try:
                result = self.notifier(self.job)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"Failed to notify subscribers of job {self.job_id}: {e}")
