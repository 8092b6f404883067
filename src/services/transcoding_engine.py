"""FFmpeg transcoding engine with a private scratch workspace.

The engine is a load-once resource: ``load()`` locates and probes the ffmpeg
binary and creates a temporary working directory. Files are written into
that directory by name, commands run with it as the working directory, and
outputs are read back as bytes. ``close()`` removes the directory.
"""

import asyncio
import logging
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from services.errors import SceneReelError

logger = logging.getLogger(__name__)

DEFAULT_FFMPEG_BINARY = "ffmpeg"
PROBE_TIMEOUT_SECONDS = 30
ENCODE_TIMEOUT_SECONDS = 600


class VideoAssemblyError(SceneReelError):
    """Raised when the transcoding engine cannot load or a command fails."""

    pass


class TranscodingEngine:
    """Runs ffmpeg commands against files in a scratch directory.

    Example usage:
        async with TranscodingEngine() as engine:
            engine.write_file("image0.png", png_bytes)
            await engine.exec(["-i", "image0.png", "out.mp4"], "encode")
            data = engine.read_file("out.mp4")
    """

    def __init__(self, binary: str = DEFAULT_FFMPEG_BINARY):
        self.binary = binary or DEFAULT_FFMPEG_BINARY
        self.executable: Optional[str] = None
        self.workdir: Optional[Path] = None

    @property
    def loaded(self) -> bool:
        return self.workdir is not None

    async def load(self) -> None:
        """Locate ffmpeg, check it runs, and create the workspace.

        Raises:
            VideoAssemblyError: If ffmpeg is missing or fails its probe
        """
        if self.loaded:
            return

        executable = shutil.which(self.binary)
        if not executable:
            raise VideoAssemblyError(
                f"FFmpeg not found ('{self.binary}'). Install ffmpeg or set FFMPEG_BINARY."
            )

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                [executable, "-version"],
                capture_output=True,
                text=True,
                timeout=PROBE_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise VideoAssemblyError(f"Failed to start ffmpeg: {e}")

        if result.returncode != 0:
            raise VideoAssemblyError(f"FFmpeg probe failed: {result.stderr[:500]}")

        version_line = (result.stdout or "").splitlines()[0] if result.stdout else executable
        logger.info(f"Loaded transcoding engine: {version_line}")

        self.executable = executable
        self.workdir = Path(tempfile.mkdtemp(prefix="scenereel_"))

    def _require_loaded(self) -> Path:
        if self.workdir is None:
            raise VideoAssemblyError("Transcoding engine is not loaded")
        return self.workdir

    def _resolve(self, name: str) -> Path:
        workdir = self._require_loaded()
        path = (workdir / name).resolve()
        if path.parent != workdir.resolve():
            raise VideoAssemblyError(f"Invalid workspace file name: {name}")
        return path

    def write_file(self, name: str, data: bytes) -> None:
        """Store bytes in the workspace under ``name``."""
        self._resolve(name).write_bytes(data)

    def read_file(self, name: str) -> bytes:
        """Read a workspace file back.

        Raises:
            VideoAssemblyError: If the file was not produced
        """
        path = self._resolve(name)
        if not path.exists():
            raise VideoAssemblyError(f"Expected output {name} was not created")
        return path.read_bytes()

    async def exec(self, args: list[str], description: str = "") -> None:
        """Run ffmpeg with ``args`` inside the workspace.

        Args:
            args: Arguments after the binary name
            description: Short label for logs and errors

        Raises:
            VideoAssemblyError: If the command exits non-zero or times out
        """
        workdir = self._require_loaded()
        cmd = [self.executable or self.binary, "-y", *args]
        logger.debug(f"Running FFmpeg ({description}): {' '.join(cmd)}")

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=ENCODE_TIMEOUT_SECONDS,
                cwd=str(workdir),
            )
        except subprocess.TimeoutExpired:
            raise VideoAssemblyError(f"FFmpeg timed out ({description})")
        except OSError as e:
            raise VideoAssemblyError(f"Failed to run ffmpeg ({description}): {e}")

        if result.returncode != 0:
            # ffmpeg prints the actual error at the end of stderr
            stderr = result.stderr or ""
            logger.error(f"FFmpeg error ({description}): {stderr[-1000:]}")
            raise VideoAssemblyError(f"FFmpeg failed ({description}): {stderr[-500:]}")

    async def close(self) -> None:
        """Remove the workspace. Safe to call more than once."""
        if self.workdir is not None:
            shutil.rmtree(self.workdir, ignore_errors=True)
            self.workdir = None

    async def __aenter__(self) -> "TranscodingEngine":
        await self.load()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
