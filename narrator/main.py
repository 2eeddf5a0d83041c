#!/usr/bin/env python3
"""
Page Narrator - Main CLI

Reads PDF pages aloud with the system speech engine while reporting
where the pointer and highlight sit for every spoken word.

Features:
- Word segmentation of PDF text spans
- Word-accurate progress tracking from speech engine offsets
- Auto page-turn and auto-continue across pages
- Voice, rate and pitch selection
"""

from pathlib import Path
from typing import Optional

import click

from narrator import __version__
from narrator.errors import EngineUnavailable
from narrator.pdf_source import PdfTextSource
from narrator.readalong.controller import NarrationOptions
from narrator.readalong.offset_index import build_offset_table
from narrator.readalong.page_reader import PageReader
from narrator.readalong.speech_engine import Pyttsx3SpeechEngine, select_voice
from narrator.readalong.word_segmenter import segment_words
from narrator.utils import logger
from narrator.utils.config import config


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    Page Narrator

    Read PDF pages aloud and follow the spoken word on the page.
    """
    pass


@cli.command()
@click.argument("input_file", type=click.Path(exists=True))
@click.option("-p", "--page", default=1, show_default=True, help="Page to segment (1-based)")
def words(input_file: str, page: int):
    """
    List the words of a page with their narration offsets.

    Helps verify segmentation before reading a page aloud.
    """
    input_path = Path(input_file)

    with PdfTextSource(input_path) as source:
        if not 1 <= page <= source.page_count:
            raise click.BadParameter(f"must be between 1 and {source.page_count}", param_hint="--page")

        page_words = segment_words(source.runs(page))

        logger.header(f"{input_path.name} - page {page} of {source.page_count}")

        if not page_words:
            logger.warning("No words found on this page")
            return

        table = build_offset_table(page_words)
        output = logger.create_table(f"{len(page_words)} words", "#", "Word", "Offset", "Run range")
        for word, offset in zip(page_words, table):
            output.add_row(
                str(word.index),
                word.text,
                str(offset),
                f"{word.start_offset}-{word.end_offset}",
            )
        logger.console.print(output)


@cli.command()
def voices():
    """
    List available system voices.
    """
    logger.header("Available Voices")

    try:
        engine = Pyttsx3SpeechEngine()
    except EngineUnavailable as e:
        logger.error(f"Speech engine unavailable: {e}")
        raise SystemExit(1)

    try:
        available = engine.voices()
        default = select_voice(available, config.voice)
        for voice in available:
            marker = "*" if default and voice.id == default.id else " "
            logger.console.print(f"  {marker} {voice.name:<30} {voice.language:<8} {voice.id}")
    finally:
        engine.close()

    logger.console.print("\n* Current default")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True))
@click.option("-p", "--page", default=1, show_default=True, help="Page to start reading (1-based)")
@click.option(
    "-r", "--rate",
    type=click.FloatRange(*config.rate_range),
    default=None,
    help=f"Speech rate multiplier (default: {config.rate})",
)
@click.option(
    "--pitch",
    type=click.FloatRange(*config.pitch_range),
    default=None,
    help=f"Speech pitch multiplier (default: {config.pitch})",
)
@click.option("-v", "--voice", default=None, help="Voice id or part of its name")
@click.option(
    "--auto-page-turn/--no-auto-page-turn",
    default=None,
    help="Turn to the next page when a page finishes",
)
@click.option(
    "--auto-continue/--no-auto-continue",
    default=None,
    help="Keep reading on the next page (needs auto page-turn)",
)
@click.option("--verbose", is_flag=True, help="Show debug output")
def read(
    input_file: str,
    page: int,
    rate: Optional[float],
    pitch: Optional[float],
    voice: Optional[str],
    auto_page_turn: Optional[bool],
    auto_continue: Optional[bool],
    verbose: bool,
):
    """
    Read a PDF aloud, following the spoken word.

    Prints the pointer target and highlight rectangle for every word
    the speech engine reaches.
    """
    logger.set_verbose(verbose)
    input_path = Path(input_file)

    defaults = NarrationOptions.from_config()
    options = NarrationOptions(
        rate=defaults.rate if rate is None else rate,
        pitch=defaults.pitch if pitch is None else pitch,
        voice_id=voice or defaults.voice_id,
        auto_page_turn=defaults.auto_page_turn if auto_page_turn is None else auto_page_turn,
        auto_continue=defaults.auto_continue if auto_continue is None else auto_continue,
    )
    if options.auto_continue and not options.auto_page_turn:
        logger.warning("Auto-continue has no effect without auto page-turn")

    try:
        engine = Pyttsx3SpeechEngine()
    except EngineUnavailable as e:
        logger.error(f"Speech engine unavailable: {e}")
        engine = None

    logger.header(f"Reading: {input_path.name}")

    try:
        with PdfTextSource(input_path) as source:
            reader = PageReader(source, engine, options=options)
            started = reader.read(page)
    finally:
        if engine is not None:
            engine.close()

    if not started:
        raise SystemExit(1)


@cli.command()
def info():
    """
    Show configuration.
    """
    logger.header("Page Narrator")

    logger.console.print("[bold]Config:[/bold]")
    logger.console.print(f"  Project root:   {config.project_root}")

    logger.console.print("\n[bold]Narration:[/bold]")
    logger.console.print(f"  Voice:          {config.voice or 'first available'}")
    logger.console.print(f"  Rate:           {config.rate}")
    logger.console.print(f"  Pitch:          {config.pitch}")
    logger.console.print(f"  Auto page-turn: {config.auto_page_turn}")
    logger.console.print(f"  Auto continue:  {config.auto_continue}")

    logger.console.print("\n[bold]Overlay:[/bold]")
    logger.console.print(f"  Padding:        {config.overlay_padding}")
    logger.console.print(f"  Min size:       {config.overlay_min_width}x{config.overlay_min_height}")
    logger.console.print(f"  Max size:       {config.overlay_max_size}")
    logger.console.print(f"  Zoom:           {config.zoom}")

    logger.console.print("\n[bold]Dependencies:[/bold]")
    try:
        import pyttsx3  # noqa: F401
        logger.console.print(f"  {'pyttsx3':<12} [green]OK[/green]")
    except ImportError:
        logger.console.print(f"  {'pyttsx3':<12} [red]NOT FOUND[/red]")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
