"""
Command line interface for the narrative engine.

Classify premises, print dynamism profiles and chapter requirements, and
replay beat logs through the dynamism tracker without running the web API.
"""

import json
import logging
import sys
from typing import Optional

import click
from dotenv import load_dotenv  # type: ignore[import-untyped]
from pydantic import ValidationError as PydanticValidationError

from .config import DEFAULT_TOTAL_CHAPTERS, SUPPORTED_FORMATS, get_settings
from .dynamism import (
    DynamismTracker,
    build_book_outline_prompt,
    build_chapter_outline_prompt,
    classify_premise,
    generate_dynamism_profile,
    get_chapter_requirements,
    summarize_dynamism_profile,
    summarize_story_dna,
)
from .api.schemas import ChapterBeats

logger = logging.getLogger(__name__)


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2))


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose: bool) -> None:
    """Narrative constraint engine tools."""
    load_dotenv()
    level = "DEBUG" if verbose else get_settings()["log_level"]
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@cli.command()
@click.argument('premise')
@click.option('--genre', type=str, help='Genre override')
@click.option('--format', 'output_format', type=click.Choice(['text', 'json']),
              default='text', help='Output format (default: text)')
def classify(premise: str, genre: Optional[str], output_format: str) -> None:
    """
    Classify PREMISE into Story DNA.
    """
    if not premise.strip():
        click.echo("Error: premise must not be blank.", err=True)
        sys.exit(1)

    dna = classify_premise(premise, genre)
    if output_format == 'json':
        _echo_json(dna.to_dict())
    else:
        click.echo(summarize_story_dna(dna))


@cli.command()
@click.argument('premise')
@click.option('--genre', type=str, help='Genre override')
@click.option('--book-format', type=click.Choice(SUPPORTED_FORMATS), help='Output format of the book')
@click.option('--chapters', default=DEFAULT_TOTAL_CHAPTERS, type=click.IntRange(min=1),
              help=f'Planned chapter count (default: {DEFAULT_TOTAL_CHAPTERS})')
@click.option('--prompt', is_flag=True, help='Also print the book outline prompt')
@click.option('--json', 'as_json', is_flag=True, help='Print the profile as JSON')
def profile(premise: str, genre: Optional[str], book_format: Optional[str], chapters: int,
            prompt: bool, as_json: bool) -> None:
    """
    Print the dynamism profile for PREMISE.
    """
    dna = classify_premise(premise, genre)
    dynamism = generate_dynamism_profile(dna, book_format, chapters)

    if as_json:
        _echo_json({"dna": dna.to_dict(), "profile": dynamism.to_dict()})
        return

    click.echo(summarize_story_dna(dna))
    click.echo("")
    click.echo(summarize_dynamism_profile(dynamism))
    if prompt:
        click.echo("")
        click.echo(build_book_outline_prompt(dynamism, dna))


@cli.command()
@click.argument('premise')
@click.option('--chapter', 'chapter_number', required=True, type=click.IntRange(min=1),
              help='Chapter number (1-based)')
@click.option('--chapters', default=DEFAULT_TOTAL_CHAPTERS, type=click.IntRange(min=1),
              help=f'Planned chapter count (default: {DEFAULT_TOTAL_CHAPTERS})')
@click.option('--genre', type=str, help='Genre override')
@click.option('--previous', type=str, help='Summary of the previous chapter')
def chapter(premise: str, chapter_number: int, chapters: int, genre: Optional[str],
            previous: Optional[str]) -> None:
    """
    Print the requirements and outline prompt for one chapter of PREMISE.
    """
    dna = classify_premise(premise, genre)
    dynamism = generate_dynamism_profile(dna, None, chapters)
    requirements = get_chapter_requirements(dynamism, chapter_number)

    click.echo(f"Chapter {requirements.chapter_number} of {requirements.total_chapters}")
    if requirements.interruption:
        click.echo(f"Interruption: {requirements.interruption}")
    click.echo("")
    click.echo(build_chapter_outline_prompt(dynamism, chapter_number, previous_chapter_summary=previous))


@cli.command()
@click.argument('beats_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--premise', type=str, help='Premise (overrides the file)')
@click.option('--genre', type=str, help='Genre override')
@click.option('--chapters', type=click.IntRange(min=1), help='Planned chapter count')
@click.option('--feedback/--no-feedback', default=True, help='Print per-beat feedback')
def replay(beats_file: str, premise: Optional[str], genre: Optional[str], chapters: Optional[int],
           feedback: bool) -> None:
    """
    Replay a JSON beat log through the dynamism tracker.

    BEATS_FILE holds {"premise": ..., "chapters": [{"chapter_number": 1,
    "beats": [{"location": ..., "characters": [...]}]}]} or just the
    chapters list.
    """
    try:
        with open(beats_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        click.echo(f"Error reading {beats_file}: {e}", err=True)
        sys.exit(1)

    if isinstance(data, list):
        data = {"chapters": data}
    premise = premise or data.get("premise")
    if not premise:
        click.echo("Error: no premise given (use --premise or a \"premise\" key).", err=True)
        sys.exit(1)

    try:
        chapter_logs = [ChapterBeats.model_validate(c) for c in data.get("chapters", [])]
    except PydanticValidationError as e:
        click.echo(f"Error: invalid beat log: {e}", err=True)
        sys.exit(1)

    dna = classify_premise(premise, genre or data.get("genre"))
    dynamism = generate_dynamism_profile(dna, data.get("format"), chapters or data.get("total_chapters"))
    tracker = DynamismTracker(dynamism)

    for log in chapter_logs:
        tracker.start_chapter(log.chapter_number)
        for index, beat in enumerate(log.beats, start=1):
            number = beat.beat_number or index
            tracker.track_beat(number, beat.location, beat.characters, beat.has_external_contact)
            text = tracker.get_beat_feedback()
            if feedback and text:
                click.echo(f"[Chapter {log.chapter_number}, beat {number}]")
                click.echo(text)

    report = tracker.generate_report()
    click.echo("=== DYNAMISM REPORT ===")
    click.echo(f"Chapters: {report.chapters_tracked}  Beats: {report.total_beats}")
    click.echo(f"Locations: {report.total_locations}  Characters: {report.total_characters}")
    click.echo(f"Location variety: {report.location_variety_score}/100")
    click.echo(f"Character variety: {report.character_variety_score}/100")
    click.echo(f"Overall: {report.overall_dynamism_score}/100")
    if report.violations:
        click.echo("\nViolations:")
        for violation in report.violations:
            click.echo(f"  - Chapter {violation.chapter}: {violation.message}")
    if report.recommendations:
        click.echo("\nRecommendations:")
        for recommendation in report.recommendations:
            click.echo(f"  - {recommendation}")


if __name__ == '__main__':
    cli()
