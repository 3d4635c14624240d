"""
Command Line Interface for Travel Recap.

Reads an image manifest (the JSON the upload collaborator produces), lets the
user tag it, and builds and plays the resulting story in the terminal.

Manifest format: a JSON list of images, or an object with an ``images`` list::

    [
      {"id": "img-1", "previewRef": "blob:1", "captureTimestamp": 1736899200000,
       "suggestedLocation": {"lat": 48.85, "lng": 2.35, "city": "Paris", "country": "France"}},
      {"id": "img-2", "previewRef": "blob:2",
       "resolvedLocation": {"kind": "country", "country": "Japan"}}
    ]
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from travelrecap import __version__
from travelrecap.config import AppConfig, ConfigError, load_config
from travelrecap.core.autoplay import run_until_terminal
from travelrecap.core.models import (
    Destination,
    LocationKind,
    SocialPlatform,
    TaggedImage,
    UserProfile,
)
from travelrecap.core.playback import PlaybackEngine
from travelrecap.core.recap import build_story, create_engine
from travelrecap.core.story import (
    DestinationSlide,
    IntroSlide,
    QuarterIntroSlide,
    Slide,
    SummarySlide,
    SummaryStatsSlide,
    slide_list_adapter,
)
from travelrecap.core.tagging import TaggingSession, ValidationError as LocationValidationError
from travelrecap.utils.logging import LogContext, configure_logging

logger = logging.getLogger(__name__)

console = Console()

_image_list_adapter = TypeAdapter(list[TaggedImage])


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def print_header(text: str) -> None:
    """Print a styled header."""
    console.print()
    console.print(Panel(text, style="bold blue", expand=False))
    console.print()


def print_success(text: str) -> None:
    """Print green success message."""
    console.print(f"[bold green]✓[/bold green] {text}")


def print_warning(text: str) -> None:
    """Print yellow warning message."""
    console.print(f"[bold yellow]⚠[/bold yellow] {text}")


def print_error(text: str) -> None:
    """Print red error message."""
    console.print(f"[bold red]✗[/bold red] {text}")


def load_manifest(path: Path) -> list[TaggedImage]:
    """Read a JSON image manifest.

    Raises:
        click.ClickException: If the file is not valid JSON or not a valid
            image list.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Cannot read manifest {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("images", [])
    try:
        return _image_list_adapter.validate_python(data)
    except ValidationError as e:
        raise click.ClickException(f"Invalid manifest {path}: {e.error_count()} error(s)\n{e}") from e


def make_profile(username: str, platform: str) -> UserProfile:
    """Build the story byline from CLI options.

    Raises:
        click.BadParameter: If the username is blank once stripped of "@".
    """
    try:
        return UserProfile(username=username, platform=SocialPlatform(platform))
    except ValidationError as e:
        raise click.BadParameter(
            f"{username!r} is not a usable name or handle", param_hint="'--user'"
        ) from e


def save_manifest(images: list[TaggedImage], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_image_list_adapter.dump_json(images, indent=2, by_alias=True, exclude_none=True))


def describe_slide(slide: Slide) -> str:
    """One-line text rendering of a slide."""
    if isinstance(slide, IntroSlide):
        quarters = ", ".join(q.value for q in slide.active_quarters) or "none"
        return f"{slide.destination_count} destinations (quarters: {quarters})"
    if isinstance(slide, QuarterIntroSlide):
        places = ", ".join(d.display_name for d in slide.destinations)
        noun = "place" if slide.count == 1 else "places"
        return f"{slide.quarter.value} {slide.quarter_name}: {slide.count} {noun} ({places})"
    if isinstance(slide, DestinationSlide):
        d = slide.destination
        return f"#{d.visit_order} {d.display_name} [{slide.quarter.value}] {d.image_count} photo(s)"
    if isinstance(slide, SummaryStatsSlide):
        counts = " ".join(f"{q.value}={n}" for q, n in slide.quarter_counts.items())
        return (
            f"{slide.destination_count} destinations, {slide.country_count} countries, "
            f"{slide.photo_count} photos ({counts})"
        )
    if isinstance(slide, SummarySlide):
        if not slide.destination_count:
            return "No destinations tagged yet"
        stamps = ", ".join(d.display_name for d in slide.preview)
        more = f" +{slide.overflow_count} more" if slide.overflow_count else ""
        return f"Stamps: {stamps}{more}"
    return slide.type


def print_destination_table(destinations: list[Destination]) -> None:
    table = Table(title="Itinerary")
    table.add_column("#", justify="right")
    table.add_column("Destination", style="cyan")
    table.add_column("Kind")
    table.add_column("Photos", justify="right")
    table.add_column("First visit (epoch ms)", justify="right")

    for d in destinations:
        first = str(d.earliest_timestamp) if d.earliest_timestamp is not None else "undated"
        table.add_row(str(d.visit_order), d.display_name, d.kind.value, str(d.image_count), first)

    console.print(table)


def print_slide_table(slides: list[Slide], engine: PlaybackEngine) -> None:
    table = Table(title="Story")
    table.add_column("Slide", justify="right")
    table.add_column("Type", style="magenta")
    table.add_column("Duration", justify="right")
    table.add_column("Content")

    for i, slide in enumerate(slides):
        duration = engine.duration_for(slide)
        table.add_row(
            str(i + 1),
            slide.type,
            f"{duration / 1000:.1f}s" if duration is not None else "∞",
            describe_slide(slide),
        )

    console.print(table)


def scaled_config(config: AppConfig, speed: float) -> AppConfig:
    """Config with every playback duration divided by ``speed``."""
    if speed == 1:
        return config
    playback = config.playback
    scaled = playback.model_copy(
        update={
            name: max(1, int(getattr(playback, name) / speed))
            for name in (
                "intro_ms",
                "quarter_intro_ms",
                "destination_base_ms",
                "destination_per_image_ms",
                "destination_max_ms",
                "summary_ms",
                "settle_ms",
            )
        }
    )
    return config.model_copy(update={"playback": scaled})


# =============================================================================
# MAIN CLI GROUP
# =============================================================================


@click.group()
@click.version_option(__version__, prog_name="Travel Recap")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Custom config file")
@click.pass_context
def travelrecap(ctx, verbose, debug, config_path):
    """
    Travel Recap - turn a year of tagged travel photos into a story.
    """
    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        print_error(str(e))
        sys.exit(1)

    if debug or verbose:
        config = config.model_copy(update={"debug": config.debug or debug, "verbose": config.verbose or verbose})
    configure_logging(config)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["debug"] = config.debug


# =============================================================================
# TAG COMMAND
# =============================================================================


@travelrecap.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(dir_okay=False), required=True, help="Tagged manifest")
def tag(manifest, output):
    """
    Tag each image in MANIFEST with a place, one at a time.

    Example:
        travelrecap tag uploads.json -o tagged.json
    """
    images = load_manifest(Path(manifest))
    session = TaggingSession(images)
    print_header(f"📍 Tagging {session.total} images ({session.geo_tagged_count} with GPS hints)")

    while not session.is_complete:
        image = session.current_image
        console.print(f"[bold]Image {session.position + 1} of {session.total}[/bold]: {image.preview_ref}")

        suggestion = image.suggested_location
        if image.can_confirm_suggestion and Confirm.ask(
            f"  We detected this might be from [yellow]{suggestion.label}[/yellow]. Confirm?",
            default=True,
        ):
            session.confirm_suggestion()
            continue

        kind = Prompt.ask("  Where was this taken?", choices=["city", "country", "skip"], default="city")
        if kind == "skip":
            session.skip()
            continue

        suggested_city = suggestion.city if suggestion else None
        suggested_country = suggestion.country if suggestion else None
        name = Prompt.ask("  City name", default=suggested_city or "") if kind == LocationKind.CITY.value else None
        country = Prompt.ask("  Country", default=suggested_country or "")
        try:
            session.submit_manual(kind, name, country)
        except LocationValidationError as e:
            print_warning(str(e))

    tagged = session.result()
    save_manifest(tagged, Path(output))
    print_success(f"{session.tagged_count} of {session.total} images tagged, saved to {output}")


# =============================================================================
# STORY COMMAND
# =============================================================================


@travelrecap.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.option("--user", "-u", "username", required=True, help="Name or handle shown on the story")
@click.option(
    "--platform",
    type=click.Choice([p.value for p in SocialPlatform]),
    default=SocialPlatform.NONE.value,
    help="Social platform of the handle",
)
@click.option("--year", type=int, help="Story year (defaults to config)")
@click.option("--json", "output_json", is_flag=True, help="Output the slide deck as JSON")
@click.pass_context
def story(ctx, manifest, username, platform, year, output_json):
    """
    Build the itinerary and slide deck for MANIFEST.

    Example:
        travelrecap story tagged.json --user wanderer --platform instagram
    """
    config: AppConfig = ctx.obj["config"]
    images = load_manifest(Path(manifest))
    profile = make_profile(username, platform)

    with LogContext("Building story", level=logging.DEBUG):
        recap, slides = build_story(images, profile, year=year, config=config)

    if output_json:
        click.echo(slide_list_adapter.dump_json(slides, indent=2).decode("utf-8"))
        return

    print_header(f"✈️  {recap.year} Travel Recap · {profile.display_name}")
    if not recap.destinations:
        print_warning("No tagged images, the story only has its intro and summary")
    else:
        print_destination_table(list(recap.destinations))
    print_slide_table(slides, create_engine(slides, config=config))


# =============================================================================
# PLAY COMMAND
# =============================================================================


@travelrecap.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.option("--user", "-u", "username", required=True, help="Name or handle shown on the story")
@click.option(
    "--platform",
    type=click.Choice([p.value for p in SocialPlatform]),
    default=SocialPlatform.NONE.value,
)
@click.option("--year", type=int, help="Story year (defaults to config)")
@click.option("--speed", type=click.FloatRange(min=0.01), default=1.0, help="Playback speed multiplier")
@click.pass_context
def play(ctx, manifest, username, platform, year, speed):
    """
    Auto-play the story for MANIFEST in the terminal.

    Example:
        travelrecap play tagged.json --user wanderer --speed 10
    """
    config = scaled_config(ctx.obj["config"], speed)
    images = load_manifest(Path(manifest))
    profile = make_profile(username, platform)
    recap, slides = build_story(images, profile, year=year, config=config)

    engine = create_engine(slides, config=config)

    def show(_previous: int, current: int) -> None:
        slide = engine.slides[current]
        console.print(f"[dim]{current + 1}/{engine.slide_count}[/dim] [magenta]{slide.type}[/magenta] {describe_slide(slide)}")

    engine.add_listener(show)
    print_header(f"▶ {recap.year} Travel Recap · {profile.display_name}")
    show(0, 0)

    try:
        asyncio.run(run_until_terminal(engine))
    except KeyboardInterrupt:
        print_warning("Playback interrupted")
        sys.exit(130)

    export = engine.export_context(profile, recap.year)
    print_success(f"Story finished. Export snapshot as {export.filename}")


def main():
    """Entry point for the console script."""
    travelrecap()


if __name__ == "__main__":
    main()
