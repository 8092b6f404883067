"""Shared pytest fixtures for scenereel tests."""

import io
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_png(width: int = 64, height: int = 36, color=(200, 40, 40)) -> bytes:
    """Small solid-color PNG."""
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def sample_script() -> str:
    """Three timestamped narration segments."""
    return """
[00:00] Welcome to our tour of the city.
We start early, before the crowds arrive.

[00:05] By mid-morning the streets are full.

[00:10] At night the skyline lights up.
"""


@pytest.fixture
def sample_visual_scenes() -> str:
    """Visual scenes block with headers, ranges and one noise line."""
    return """
#### Scene 1
**[00:00 - 00:05]**
*   **Visuals:** A city skyline at dawn
*   **Visuals:** short
*   Camera slowly pans left.

#### Scene 2
**[00:05 - 00:10]**
*   **B-roll:** Busy street traffic

#### Scene 3
00:10-00:15
- Visuals: Neon signs reflected in wet pavement at night
"""


@pytest.fixture
def sample_package(sample_script: str, sample_visual_scenes: str) -> str:
    """A full production package with all four section markers."""
    return (
        "Here is your video production package.\n\n"
        f"## SCRIPT\n{sample_script}\n"
        f"## VISUAL SCENES\n{sample_visual_scenes}\n"
        "## MUSIC RECOMMENDATIONS\n1. Lo-fi city beats, 85 BPM, intro\n\n"
        "## THUMBNAIL CONCEPT\nSkyline at dusk with bold yellow text 'CITY 24H'.\n"
    )


@pytest.fixture
def sample_scenes():
    """Three parsed scenes."""
    from models.scene import Scene

    return [
        Scene(timestamp="00:00", text="Welcome.", visual_description="A city skyline at dawn"),
        Scene(timestamp="00:05", text="Streets.", visual_description="Busy street traffic"),
        Scene(
            timestamp="00:10",
            text="Night.",
            visual_description="Neon signs reflected in wet pavement at night",
        ),
    ]
