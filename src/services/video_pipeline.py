"""Video Pipeline - script in, slideshow video out.

Stages run strictly in order: parse scenes, acquire one image per scene,
assemble the video. The pipeline is the only writer of its job record and
guarantees every started run ends either completed or failed.
"""

import logging
from dataclasses import replace
from typing import Awaitable, Callable, Optional

from models.scene import DEFAULT_SCENE_DURATION, Scene
from models.video import VideoArtifact
from services.image_acquisition_service import ImageAcquisitionService
from services.job_tracker import JobHandle
from services.scene_parser import extract_sections, parse_scenes
from services.video_assembler import VideoAssembler
from utils.progress import SETUP_BAND, ProgressListener, ProgressReporter

logger = logging.getLogger(__name__)


class VideoPipeline:
    """Parser -> image acquisition -> assembly, with progress on the side.

    Example usage:
        pipeline = VideoPipeline(acquisition, assembler)
        artifact = await pipeline.run(script, visual_scenes, job=handle)
    """

    def __init__(
        self,
        acquisition: ImageAcquisitionService,
        assembler: VideoAssembler,
        scene_duration_seconds: int = DEFAULT_SCENE_DURATION,
    ):
        self.acquisition = acquisition
        self.assembler = assembler
        self.scene_duration_seconds = scene_duration_seconds

    def prepare_scenes(self, script: str, visual_scenes: str) -> list[Scene]:
        """Parse scenes and apply the configured scene duration.

        Raises:
            ScriptParseError: If the script yields no scenes
        """
        scenes = parse_scenes(script, visual_scenes)
        if self.scene_duration_seconds != DEFAULT_SCENE_DURATION:
            scenes = [replace(s, duration_seconds=self.scene_duration_seconds) for s in scenes]
        return scenes

    async def run(
        self,
        script: str,
        visual_scenes: str,
        job: Optional[JobHandle] = None,
        listeners: Optional[list[ProgressListener]] = None,
        on_artifact: Optional[Callable[[VideoArtifact], Awaitable[None]]] = None,
    ) -> VideoArtifact:
        """Run the whole pipeline.

        Args:
            script: Timestamped narration text
            visual_scenes: Raw visual scenes block
            job: Handle on the job record to drive through its states
            listeners: In-process progress callbacks
            on_artifact: Called with the video before the job is completed

        Returns:
            The encoded video

        Raises:
            Exception: Whatever stopped the run, after the job is marked failed
        """
        reporter = ProgressReporter(job, listeners)
        try:
            await reporter.report("Parsing script and scenes...", SETUP_BAND.start)
            scenes = self.prepare_scenes(script, visual_scenes)
            logger.info(f"Parsed {len(scenes)} scene(s)")

            if job is not None:
                await job.start(len(scenes), f"Found {len(scenes)} scenes")
            await reporter.report(
                f"Generating images for {len(scenes)} scenes...", SETUP_BAND.end
            )

            images = await self.acquisition.acquire(scenes, reporter)
            artifact = await self.assembler.assemble(
                images, self.scene_duration_seconds, reporter, scene_count=len(scenes)
            )

            if on_artifact is not None:
                await on_artifact(artifact)
            await reporter.report("Video generated successfully!", 100)
            if job is not None:
                await job.complete("Video generated successfully!")
            return artifact

        except Exception as e:
            logger.error(f"Video generation failed: {e}")
            if job is not None:
                await job.fail(str(e) or type(e).__name__)
            raise

    async def run_package(
        self,
        content: str,
        job: Optional[JobHandle] = None,
        listeners: Optional[list[ProgressListener]] = None,
        on_artifact: Optional[Callable[[VideoArtifact], Awaitable[None]]] = None,
    ) -> VideoArtifact:
        """Run the pipeline on a full production package (all four sections)."""
        sections = extract_sections(content)
        return await self.run(
            sections.script, sections.visual_scenes, job, listeners, on_artifact
        )

    async def close(self) -> None:
        await self.acquisition.image_service.close()
        await self.assembler.close()
