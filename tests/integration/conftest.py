"""Pipeline doubles shared by the integration tests."""

import pytest

from models.image_generation import AcquiredImage, ImageSource
from models.video import VideoArtifact
from services.transcoding_engine import VideoAssemblyError
from utils.progress import ACQUISITION_BAND, ENCODE_BAND

FAKE_VIDEO = b"\x00\x00\x00\x18ftypmp42integration"


class FakeAcquisition:
    """Returns one hosted image per scene and reports acquisition progress."""

    def __init__(self):
        self.calls = 0

    async def acquire(self, scenes, reporter=None):
        self.calls += 1
        images = []
        for index, scene in enumerate(scenes):
            images.append(
                AcquiredImage(index, f"https://images.example.com/{index}.png", ImageSource.REMOTE)
            )
            if reporter is not None:
                await reporter.report(
                    f"Generated image {index + 1}/{len(scenes)}",
                    ACQUISITION_BAND.scale(index + 1, len(scenes)),
                    completed_scenes=index + 1,
                )
        return images


class FakeAssembler:
    """Produces a fixed byte string, or fails when asked to."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.data = FAKE_VIDEO
        self.scene_count = None

    async def assemble(self, images, scene_duration_seconds=5, reporter=None, scene_count=None):
        self.scene_count = scene_count
        if reporter is not None:
            await reporter.report("Encoding video...", ENCODE_BAND.start)
        if self.fail:
            raise VideoAssemblyError("FFmpeg failed (slideshow encode): encoder exploded")
        return VideoArtifact(
            data=FAKE_VIDEO,
            scene_count=len(images),
            duration_seconds=len(images) * scene_duration_seconds,
        )

    async def close(self):
        pass


@pytest.fixture
def fake_acquisition() -> FakeAcquisition:
    return FakeAcquisition()


@pytest.fixture
def fake_assembler() -> FakeAssembler:
    return FakeAssembler()


@pytest.fixture
def failing_assembler() -> FakeAssembler:
    return FakeAssembler(fail=True)
