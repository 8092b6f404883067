"""WebSocket subscriber registry for live job updates."""

import logging

from fastapi import WebSocket

from models.job import JobStatus, VideoJob

logger = logging.getLogger(__name__)


def job_message(job: VideoJob) -> dict:
    """Message pushed to subscribers whenever a job record changes."""
    message_type = "progress"
    if job.status == JobStatus.COMPLETED:
        message_type = "complete"
    elif job.status == JobStatus.FAILED:
        message_type = "error"
    return {"type": message_type, "job": job.to_dict()}


class WebSocketManager:
    """Holds open WebSocket connections grouped by job id."""

    def __init__(self):
        self.connections: dict[str, list[WebSocket]] = {}

    async def connect(self, key: str, websocket: WebSocket) -> None:
        """Accept a WebSocket connection and add it to the group for ``key``."""
        await websocket.accept()
        self.connections.setdefault(key, []).append(websocket)

    async def broadcast(self, key: str, message: dict) -> None:
        """Send ``message`` to every subscriber of ``key``.

        Sockets that fail to receive are dropped from the group.
        """
        disconnected = []
        for ws in list(self.connections.get(key, [])):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.debug(f"Dropping WebSocket for {key}: {e}")
                disconnected.append(ws)

        for ws in disconnected:
            self.disconnect(key, ws)

    async def notify_job(self, job: VideoJob) -> None:
        """Push the current state of ``job`` to its subscribers."""
        await self.broadcast(job.id, job_message(job))

    def disconnect(self, key: str, websocket: WebSocket) -> None:
        """Remove one WebSocket from the group for ``key``."""
        sockets = self.connections.get(key)
        if sockets and websocket in sockets:
            sockets.remove(websocket)
            if not sockets:
                self.connections.pop(key, None)

    def cleanup(self, key: str) -> None:
        """Forget every connection for ``key``."""
        self.connections.pop(key, None)

    def subscriber_count(self, key: str) -> int:
        return len(self.connections.get(key, []))
