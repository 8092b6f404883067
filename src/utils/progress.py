"""Progress tracking and status reporting for video generation runs."""

import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Union

from services.job_tracker import JobHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressBand:
    """A slice of the 0-100 range owned by one pipeline stage."""

    start: int
    end: int

    def scale(self, completed: int, total: int) -> int:
        """Map ``completed/total`` into this band."""
        if total <= 0:
            return self.end
        fraction = min(1.0, max(0.0, completed / total))
        return self.start + round((self.end - self.start) * fraction)


# Fixed allocation of the progress range across pipeline stages
SETUP_BAND = ProgressBand(0, 10)
ACQUISITION_BAND = ProgressBand(10, 55)
ENGINE_LOAD_BAND = ProgressBand(55, 65)
FRAME_WRITE_BAND = ProgressBand(65, 80)
ENCODE_BAND = ProgressBand(80, 100)


@dataclass
class ProgressUpdate:
    """One observable progress event."""

    step: str
    percent: int
    completed_scenes: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


ProgressListener = Callable[[ProgressUpdate], Union[None, Awaitable[None]]]


class ProgressReporter:
    """Tracks the percent and step label of one pipeline run.

    ``report()`` never raises and never lowers the percent. Each update is
    published to in-process listeners (the synchronous caller) and mirrored
    to the job record through its JobHandle (for remote observers).

    Example usage:
        reporter = ProgressReporter(job_handle)
        reporter.add_listener(lambda u: print(u.percent, u.step))
        await reporter.report("Parsing script and scenes...", 5)
    """

    def __init__(
        self,
        job: Optional[JobHandle] = None,
        listeners: Optional[list[ProgressListener]] = None,
    ):
        self.job = job
        self.listeners: list[ProgressListener] = list(listeners or [])
        self.percent = 0
        self.step = ""
        self.history: list[ProgressUpdate] = []

    def add_listener(self, listener: ProgressListener) -> None:
        self.listeners.append(listener)

    async def report(
        self,
        step: str,
        percent: int,
        completed_scenes: Optional[int] = None,
    ) -> None:
        """Publish progress. Failures in any destination are logged and ignored."""
        try:
            percent = max(0, min(100, int(percent)))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric progress value {percent!r}")
            return

        if percent < self.percent:
            logger.debug(f"Progress {percent}% below current {self.percent}%, holding")
        self.percent = max(self.percent, percent)
        self.step = step
        update = ProgressUpdate(
            step=step, percent=self.percent, completed_scenes=completed_scenes
        )
        self.history.append(update)
        logger.info(f"[{self.percent:3d}%] {step}")

        for listener in list(self.listeners):
            try:
                result = listener(update)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"Progress listener failed: {e}")

        if self.job is not None:
            try:
                await self.job.record_progress(self.percent, step, completed_scenes)
            except Exception as e:
                logger.warning(f"Failed to mirror progress to job record: {e}")


def format_eta(seconds: float) -> str:
    """Format seconds as a short human-readable duration."""
    if seconds < 60:
        return f"{int(seconds)}s"
    if seconds < 3600:
        minutes, secs = divmod(int(seconds), 60)
        return f"{minutes}m {secs}s"
    hours, remainder = divmod(int(seconds), 3600)
    return f"{hours}h {remainder // 60}m"
