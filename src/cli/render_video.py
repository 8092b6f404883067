#!/usr/bin/env python3
"""CLI for rendering a scripted slideshow video.

Usage:
    # Render a production package (## SCRIPT / ## VISUAL SCENES ...)
    python -m cli.render_video package.md -o video.mp4

    # Render from separate script and visual scene files
    python -m cli.render_video --script script.txt --visuals visuals.txt -o video.mp4

    # Generate the package from a topic first
    python -m cli.render_video --topic "How volcanoes form" -o video.mp4

    # No network: placeholder cards only
    python -m cli.render_video package.md --offline
"""

import argparse
import asyncio
import sys
import time
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from models.scene import ContentRequest
from services.content_service import ContentGenerationService
from services.errors import SceneReelError
from services.image_acquisition_service import ImageAcquisitionService
from services.image_generation_service import ImageGenerationService
from services.scene_parser import extract_sections, parse_scenes
from services.transcoding_engine import TranscodingEngine
from services.video_assembler import VideoAssembler
from services.video_pipeline import VideoPipeline
from utils.config import load_config, setup_logging, validate_config
from utils.progress import ProgressUpdate, format_eta

console = Console()


def load_sources(args: argparse.Namespace) -> tuple[str, str]:
    """Read (script, visual_scenes) from the files named on the command line."""
    if args.package:
        sections = extract_sections(Path(args.package).read_text(encoding="utf-8"))
        return sections.script, sections.visual_scenes
    script = Path(args.script).read_text(encoding="utf-8")
    visuals = Path(args.visuals).read_text(encoding="utf-8") if args.visuals else ""
    return script, visuals


async def generate_package(config: dict, args: argparse.Namespace) -> tuple[str, str]:
    """Ask the text model for a production package and keep a copy beside the video."""
    service = ContentGenerationService(
        api_key=config.get("ai_gateway_api_key") or "",
        api_base=config["image_api_base"],
        model=config["content_model"],
    )
    try:
        with console.status(f"Writing a script about '{args.topic}'..."):
            content = await service.generate_content(
                ContentRequest(topic=args.topic, video_length=args.length, style=args.style)
            )
    finally:
        await service.close()

    package_path = Path(args.output).with_suffix(".md")
    package_path.write_text(content, encoding="utf-8")
    console.print(f"[dim]Production package saved to {package_path}[/dim]")

    sections = extract_sections(content)
    return sections.script, sections.visual_scenes


def show_scenes(script: str, visual_scenes: str) -> None:
    """Print the parsed scene list."""
    table = Table(title="Scenes")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Time", style="magenta")
    table.add_column("Narration")
    table.add_column("Visual", style="green")

    for index, scene in enumerate(parse_scenes(script, visual_scenes)):
        table.add_row(str(index + 1), scene.timestamp, scene.text[:60], scene.visual_description[:60])

    console.print(table)


def build_pipeline(config: dict, offline: bool) -> VideoPipeline:
    image_service = ImageGenerationService(
        api_key=config.get("ai_gateway_api_key") or "",
        api_base=config["image_api_base"],
        model=config["image_model"],
    )
    acquisition = ImageAcquisitionService(
        image_service=image_service,
        max_attempts=config["image_max_attempts"],
        rate_limit_backoff_seconds=config["rate_limit_backoff_seconds"],
        transient_backoff_seconds=config["transient_backoff_seconds"],
        scene_delay_seconds=config["scene_request_delay_seconds"],
        offline=offline,
    )
    ffmpeg_binary = config["ffmpeg_binary"]
    assembler = VideoAssembler(engine_factory=lambda: TranscodingEngine(ffmpeg_binary))
    return VideoPipeline(acquisition, assembler, config["scene_duration_seconds"])


async def render(config: dict, args: argparse.Namespace) -> int:
    """Run the pipeline with a progress bar. Returns the process exit code."""
    if args.topic:
        script, visual_scenes = await generate_package(config, args)
    else:
        script, visual_scenes = load_sources(args)

    if args.list_scenes:
        show_scenes(script, visual_scenes)
        return 0

    pipeline = build_pipeline(config, args.offline)
    output_path = Path(args.output)
    start_time = time.time()

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Starting...", total=100)

            def on_progress(update: ProgressUpdate) -> None:
                progress.update(task, completed=update.percent, description=update.step)

            artifact = await pipeline.run(script, visual_scenes, listeners=[on_progress])
    finally:
        await pipeline.close()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(artifact.data)

    console.print(
        f"[green]✓ Rendered {artifact.scene_count} scenes "
        f"({artifact.duration_seconds}s of video, {artifact.size_bytes / 1024:.0f} KB) "
        f"to {output_path}[/green]"
    )
    console.print(f"[dim]Duration: {format_eta(time.time() - start_time)}[/dim]")
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Render a timestamped script into a slideshow video",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m cli.render_video package.md -o video.mp4
    python -m cli.render_video --script script.txt --visuals visuals.txt
    python -m cli.render_video --topic "How volcanoes form" --style Documentary
    python -m cli.render_video package.md --list-scenes
        """,
    )

    parser.add_argument(
        "package",
        nargs="?",
        help="Production package markdown with ## SCRIPT and ## VISUAL SCENES sections",
    )
    parser.add_argument("--script", type=str, help="Script file with [MM:SS] timestamps")
    parser.add_argument("--visuals", type=str, help="Visual scenes file (Visuals:/B-roll: lines)")
    parser.add_argument("--topic", type=str, help="Generate the production package from a topic")
    parser.add_argument(
        "--style",
        type=str,
        default="Educational",
        help="Video style when generating from a topic (default: Educational)",
    )
    parser.add_argument(
        "--length",
        type=str,
        default="5-10 minutes",
        help="Video length when generating from a topic (default: 5-10 minutes)",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default="output/video.mp4",
        help="Output MP4 path (default: output/video.mp4)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use placeholder images instead of the image service",
    )
    parser.add_argument(
        "--list-scenes",
        action="store_true",
        help="Only print the parsed scenes",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    sources = [bool(args.package), bool(args.script), bool(args.topic)]
    if sum(sources) != 1:
        parser.error("Give exactly one of: a package file, --script, or --topic")

    config = load_config()
    setup_logging("DEBUG" if args.verbose else config["log_level"])

    errors = validate_config(config)
    needs_gateway = args.topic or not (args.offline or args.list_scenes)
    if not needs_gateway:
        errors = [e for e in errors if not e.startswith("AI_GATEWAY_API_KEY")]
    if args.list_scenes:
        errors = [e for e in errors if not e.startswith("FFmpeg")]
    if errors:
        console.print("[red]Configuration errors:[/red]")
        for error in errors:
            console.print(f"  - {error}")
        console.print("[dim]Set values in your .env file, or pass --offline to skip the image service[/dim]")
        sys.exit(1)

    try:
        sys.exit(asyncio.run(render(config, args)))
    except (SceneReelError, OSError) as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
