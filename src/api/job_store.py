"""SQLite-based persistent job storage for the SceneReel API.

Holds the durable ``video_generation_jobs`` records that remote observers
poll. Writes are partial-field updates checked against the job state
machine: status only moves forward, progress never decreases and a finished
job accepts no further writes.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from models.job import InvalidJobTransition, JobStatus, VideoJob
from utils.config import load_config

logger = logging.getLogger(__name__)

# Default database path
DEFAULT_DB_PATH = ".scenereel/jobs.db"

# Columns a caller may change after creation
UPDATABLE_FIELDS = {
    "status",
    "progress",
    "current_step",
    "total_scenes",
    "completed_scenes",
    "error_message",
    "output_path",
}


class JobStore:
    """Async SQLite job storage.

    WebSocket subscribers are kept in memory by the router; only the job
    records themselves live here.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize job store with database path.

        Args:
            db_path: Path to SQLite database file. Parent directory
                     will be created if it doesn't exist.
        """
        self.db_path = Path(db_path)
        self.db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database and create the schema if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db = await aiosqlite.connect(str(self.db_path))
        self.db.row_factory = aiosqlite.Row

        # WAL lets pollers read while the pipeline writes
        await self.db.execute("PRAGMA journal_mode=WAL")

        await self.db.execute("""
            CREATE TABLE IF NOT EXISTS video_generation_jobs (
                id TEXT PRIMARY KEY,
                status TEXT NOT NULL DEFAULT 'pending'
                    CHECK (status IN ('pending', 'processing', 'completed', 'failed')),
                progress INTEGER NOT NULL DEFAULT 0
                    CHECK (progress >= 0 AND progress <= 100),
                current_step TEXT,
                total_scenes INTEGER,
                completed_scenes INTEGER NOT NULL DEFAULT 0,
                error_message TEXT,
                output_path TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        await self.db.execute("""
            CREATE INDEX IF NOT EXISTS idx_video_jobs_created_at
            ON video_generation_jobs (created_at DESC)
        """)

        await self.db.commit()
        logger.info(f"Job store connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self.db:
            await self.db.close()
            self.db = None
            logger.info("Job store connection closed")

    def _require_db(self) -> aiosqlite.Connection:
        if self.db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self.db

    async def create_job(self, job_id: str, output_path: Optional[str] = None) -> VideoJob:
        """Insert a new pending job.

        Raises:
            RuntimeError: If database is not connected
        """
        db = self._require_db()
        job = VideoJob(id=job_id, output_path=output_path)
        row = job.to_dict()

        await db.execute(
            """
            INSERT INTO video_generation_jobs
                (id, status, progress, current_step, total_scenes, completed_scenes,
                 error_message, output_path, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                row["id"],
                row["status"],
                row["progress"],
                row["current_step"],
                row["total_scenes"],
                row["completed_scenes"],
                row["error_message"],
                row["output_path"],
                row["created_at"],
                row["updated_at"],
            ),
        )
        await db.commit()

        logger.info(f"Created video job {job_id}")
        return job

    async def get_job(self, job_id: str) -> VideoJob | None:
        """Get a job by ID, or None if not found."""
        db = self._require_db()
        async with db.execute(
            "SELECT * FROM video_generation_jobs WHERE id = ?", (job_id,)
        ) as cursor:
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_job(row)

    async def update_job(self, job_id: str, **fields: Any) -> VideoJob | None:
        """Apply a partial update to a job.

        Args:
            job_id: Job identifier
            **fields: Any of UPDATABLE_FIELDS

        Returns:
            Updated job, or None if not found

        Raises:
            ValueError: On an unknown field
            InvalidJobTransition: On a backward status change or a write to a
                finished job
        """
        db = self._require_db()
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown job fields: {sorted(unknown)}")

        job = await self.get_job(job_id)
        if job is None:
            return None
        if job.status.is_terminal:
            raise InvalidJobTransition(f"Job {job_id} is already {job.status.value}")

        progress = fields.get("progress")
        current_step = fields.get("current_step")
        completed_scenes = fields.get("completed_scenes")
        if progress is not None or current_step is not None or completed_scenes is not None:
            job.advance(
                progress if progress is not None else job.progress,
                current_step if current_step is not None else job.current_step,
                completed_scenes,
            )
        if "total_scenes" in fields:
            job.total_scenes = fields["total_scenes"]
        if "output_path" in fields:
            job.output_path = fields["output_path"]

        status = fields.get("status")
        if status is not None and JobStatus(status) != job.status:
            job.transition(JobStatus(status), error_message=fields.get("error_message"))
        elif fields.get("error_message"):
            raise InvalidJobTransition("error_message is only set when a job fails")
        job.updated_at = datetime.now()

        await db.execute(
            """
            UPDATE video_generation_jobs
            SET status = ?, progress = ?, current_step = ?, total_scenes = ?,
                completed_scenes = ?, error_message = ?, output_path = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                job.status.value,
                job.progress,
                job.current_step,
                job.total_scenes,
                job.completed_scenes,
                job.error_message,
                job.output_path,
                job.updated_at.isoformat(),
                job_id,
            ),
        )
        await db.commit()

        logger.debug(f"Updated job {job_id}: status={job.status.value} progress={job.progress}")
        return job

    async def list_jobs(
        self,
        status: str | None = None,
        limit: int = 100,
    ) -> list[VideoJob]:
        """List jobs, newest first, optionally filtered by status."""
        db = self._require_db()

        query = "SELECT * FROM video_generation_jobs WHERE 1=1"
        params: list[Any] = []

        if status:
            query += " AND status = ?"
            params.append(status)

        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        async with db.execute(query, params) as cursor:
            rows = await cursor.fetchall()
            return [self._row_to_job(row) for row in rows]

    async def delete_job(self, job_id: str) -> bool:
        """Delete a job. Returns True if it existed."""
        db = self._require_db()
        async with db.execute(
            "DELETE FROM video_generation_jobs WHERE id = ? RETURNING id", (job_id,)
        ) as cursor:
            row = await cursor.fetchone()
            await db.commit()

            if row is not None:
                logger.info(f"Deleted job {job_id}")
                return True
            return False

    async def cleanup_old_jobs(self, days: int = 7) -> int:
        """Delete finished jobs older than ``days``, and their video files.

        Pending and processing jobs are preserved regardless of age.

        Returns:
            Number of deleted jobs
        """
        db = self._require_db()
        cutoff = (datetime.now() - timedelta(days=days)).isoformat()

        async with db.execute(
            "SELECT id, output_path FROM video_generation_jobs "
            "WHERE created_at < ? AND status IN ('completed', 'failed')",
            (cutoff,),
        ) as cursor:
            expired = await cursor.fetchall()
        count = len(expired)

        for row in expired:
            if row["output_path"]:
                try:
                    Path(row["output_path"]).unlink(missing_ok=True)
                except OSError as e:
                    logger.warning(f"Failed to delete video file for job {row['id']}: {e}")

        if count > 0:
            await db.execute(
                "DELETE FROM video_generation_jobs "
                "WHERE created_at < ? AND status IN ('completed', 'failed')",
                (cutoff,),
            )
            await db.commit()
            logger.info(f"Cleaned up {count} old jobs (older than {days} days)")

        return count

    async def get_job_count(self, status: str | None = None) -> int:
        """Count jobs, optionally filtered by status."""
        db = self._require_db()

        query = "SELECT COUNT(*) FROM video_generation_jobs WHERE 1=1"
        params: list[Any] = []
        if status:
            query += " AND status = ?"
            params.append(status)

        async with db.execute(query, params) as cursor:
            row = await cursor.fetchone()
            return row[0] if row else 0

    def _row_to_job(self, row: aiosqlite.Row) -> VideoJob:
        return VideoJob.from_dict(dict(row))


# Module-level singleton
_job_store: JobStore | None = None


async def get_job_store() -> JobStore:
    """Get or create the global JobStore singleton.

    Example:
        job_store = await get_job_store()
        job = await job_store.create_job("123")
    """
    global _job_store
    if _job_store is None:
        _job_store = JobStore(load_config().get("job_db_path") or DEFAULT_DB_PATH)
        await _job_store.connect()
    return _job_store


async def close_job_store() -> None:
    """Close the global JobStore connection (application shutdown)."""
    global _job_store
    if _job_store is not None:
        await _job_store.close()
        _job_store = None
