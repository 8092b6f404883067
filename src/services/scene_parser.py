"""Scene extraction from generated video scripts.

Turns the SCRIPT and VISUAL SCENES sections of a production package into an
ordered list of Scene records. Everything here is pure: no I/O, no logging
side effects beyond debug output.
"""

import logging
import re

from models.scene import (
    DEFAULT_SCENE_DURATION,
    DEFAULT_VISUAL_DESCRIPTION,
    Scene,
    VideoContent,
)
from services.errors import SceneReelError

logger = logging.getLogger(__name__)

# Section headers the content prompt asks the model to emit verbatim
SCRIPT_MARKER = "## SCRIPT"
VISUAL_SCENES_MARKER = "## VISUAL SCENES"
MUSIC_MARKER = "## MUSIC RECOMMENDATIONS"
THUMBNAIL_MARKER = "## THUMBNAIL CONCEPT"

# A labelled line ("**Visuals:** ...", bullet marker removed) must be longer
# than this to count; "**Visuals:** short" is noise
MIN_LABELLED_LINE_LENGTH = 20

BULLET_PREFIX = re.compile(r"^[*\-•]\s*")

TIMESTAMP_TOKEN = re.compile(r"\[(\d{2}:\d{2})\]")

# "[00:00 - 00:15]", "**00:00-00:15**", "(0:30 – 1:00)"
TIMESTAMP_RANGE_LINE = re.compile(
    r"^[\s*_#(\[]*\d{1,2}:\d{2}\s*(?:[-–—]|to)\s*\d{1,2}:\d{2}[\s*_)\]:]*$",
    re.IGNORECASE,
)

# "#### Scene 1", "**Scene 2: The Hook**"
HEADER_LINE = re.compile(r"^\s*(?:#{1,6}\s|\*\*[^*]+\*\*:?\s*$)")

# "*   **Visuals:** A city skyline" / "- B-roll: traffic" / "• **B-Roll**: ..."
VISUAL_LABEL_LINE = re.compile(
    r"^\s*(?:[*\-•]\s*)?(?:\*\*|__)?\s*(?:visuals?|b-roll)\s*(?:\*\*|__)?\s*:\s*(?:\*\*|__)?\s*(.*)$",
    re.IGNORECASE,
)


class ScriptParseError(SceneReelError):
    """Raised when a script yields no usable scenes."""

    pass


def extract_section(text: str, start_marker: str, end_marker: str | None) -> str:
    """Return the trimmed text between two markers (exact substring search)."""
    start_index = text.find(start_marker)
    if start_index == -1:
        return ""
    content_start = start_index + len(start_marker)
    end_index = text.find(end_marker, content_start) if end_marker else -1
    if end_index == -1:
        end_index = len(text)
    return text[content_start:end_index].strip()


def extract_sections(content: str) -> VideoContent:
    """Split a generated production package into its four sections."""
    return VideoContent(
        script=extract_section(content, SCRIPT_MARKER, VISUAL_SCENES_MARKER),
        visual_scenes=extract_section(content, VISUAL_SCENES_MARKER, MUSIC_MARKER),
        music=extract_section(content, MUSIC_MARKER, THUMBNAIL_MARKER),
        thumbnail=extract_section(content, THUMBNAIL_MARKER, None),
    )


def extract_visual_candidates(visual_scenes_block: str) -> list[str]:
    """Pull labelled visual descriptions out of the VISUAL SCENES section.

    Only lines carrying a "Visuals:" or "B-roll:" label count; timestamp
    ranges and headers are skipped.
    """
    candidates: list[str] = []
    for raw_line in visual_scenes_block.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if TIMESTAMP_RANGE_LINE.match(line) or HEADER_LINE.match(line):
            continue
        match = VISUAL_LABEL_LINE.match(line)
        if not match:
            continue
        labelled = BULLET_PREFIX.sub("", line).strip()
        description = match.group(1).strip().strip("*_").strip()
        if len(labelled) <= MIN_LABELLED_LINE_LENGTH or not description:
            logger.debug(f"Dropping short visual description: {labelled!r}")
            continue
        candidates.append(description)
    return candidates


def split_narration(script: str) -> list[tuple[str, str]]:
    """Group script lines into (timestamp, narration) segments.

    A ``[MM:SS]`` token starts a new segment; untagged lines continue the
    current one. Text before the first token is stamped 00:00.
    """
    segments: list[tuple[str, str]] = []
    current_timestamp = "00:00"
    buffer = ""

    for raw_line in script.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        match = TIMESTAMP_TOKEN.search(line)
        if match:
            if buffer.strip():
                segments.append((current_timestamp, buffer.strip()))
            current_timestamp = match.group(1)
            buffer = TIMESTAMP_TOKEN.sub("", line).strip()
        else:
            buffer = f"{buffer} {line}" if buffer else line

    if buffer.strip():
        segments.append((current_timestamp, buffer.strip()))

    return segments


def parse_scenes(script: str, visual_scenes_block: str) -> list[Scene]:
    """Build the ordered scene list for a script.

    Args:
        script: The SCRIPT section, with ``[MM:SS]`` timestamp tokens
        visual_scenes_block: The VISUAL SCENES section

    Returns:
        Scenes in script order; scene index == list index

    Raises:
        ScriptParseError: If no narration could be found
    """
    candidates = extract_visual_candidates(visual_scenes_block)
    segments = split_narration(script)

    scenes = [
        Scene(
            timestamp=timestamp,
            text=text,
            visual_description=candidates[index]
            if index < len(candidates)
            else DEFAULT_VISUAL_DESCRIPTION,
            duration_seconds=DEFAULT_SCENE_DURATION,
        )
        for index, (timestamp, text) in enumerate(segments)
    ]

    if not scenes:
        raise ScriptParseError("No scenes found in the script")

    if len(candidates) < len(scenes):
        logger.info(
            f"Only {len(candidates)} visual descriptions for {len(scenes)} scenes; "
            f"using the default description for the rest"
        )
    return scenes
