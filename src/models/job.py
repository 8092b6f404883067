"""Video generation job record and its status state machine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class JobStatus(str, Enum):
    """Status of a video generation job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# Allowed forward transitions; anything else is rejected
JOB_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


class InvalidJobTransition(Exception):
    """Raised when a job is moved backwards or written after it finished."""

    pass


@dataclass
class VideoJob:
    """Durable, externally observable record of one pipeline run."""

    id: str
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    current_step: str = "Job queued"
    total_scenes: Optional[int] = None
    completed_scenes: int = 0
    error_message: Optional[str] = None
    output_path: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def transition(self, new_status: JobStatus, error_message: Optional[str] = None) -> None:
        """Move the job forward through its state machine.

        Args:
            new_status: Target status
            error_message: Required when failing, rejected otherwise

        Raises:
            InvalidJobTransition: If the transition is not allowed
        """
        if new_status not in JOB_TRANSITIONS[self.status]:
            raise InvalidJobTransition(
                f"Job {self.id} cannot move from {self.status.value} to {new_status.value}"
            )
        if new_status == JobStatus.FAILED:
            self.error_message = error_message or "Unknown error"
        elif error_message:
            raise InvalidJobTransition("error_message is only set when a job fails")
        if new_status == JobStatus.COMPLETED:
            self.progress = 100
        self.status = new_status
        self.updated_at = datetime.now()

    def advance(
        self,
        percent: int,
        step: str,
        completed_scenes: Optional[int] = None,
    ) -> bool:
        """Record progress. Returns False if the update was ignored.

        Progress never decreases; a lower percent still updates the step label.
        """
        if self.status.is_terminal:
            raise InvalidJobTransition(f"Job {self.id} is already {self.status.value}")
        percent = max(0, min(100, int(percent)))
        changed = percent > self.progress or step != self.current_step
        self.progress = max(self.progress, percent)
        self.current_step = step
        if completed_scenes is not None:
            self.completed_scenes = max(self.completed_scenes, completed_scenes)
        if changed:
            self.updated_at = datetime.now()
        return changed

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses and storage."""
        return {
            "id": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "current_step": self.current_step,
            "total_scenes": self.total_scenes,
            "completed_scenes": self.completed_scenes,
            "error_message": self.error_message,
            "output_path": self.output_path,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VideoJob":
        """Rebuild a job from its stored dictionary form."""
        return cls(
            id=data["id"],
            status=JobStatus(data.get("status", JobStatus.PENDING.value)),
            progress=int(data.get("progress") or 0),
            current_step=data.get("current_step") or "",
            total_scenes=data.get("total_scenes"),
            completed_scenes=int(data.get("completed_scenes") or 0),
            error_message=data.get("error_message"),
            output_path=data.get("output_path"),
            created_at=datetime.fromisoformat(data["created_at"])
            if data.get("created_at")
            else datetime.now(),
            updated_at=datetime.fromisoformat(data["updated_at"])
            if data.get("updated_at")
            else datetime.now(),
        )
