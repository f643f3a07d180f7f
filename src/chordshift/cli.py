import logging
import re
import sys
from pathlib import Path
from urllib.parse import urlparse

import click

from .exceptions import FetchError, MalformedInputError, SectionStructureError
from .models import Document
from .parser import ParseOptions, ParseResult
from .renderer import render
from .sources import is_url, read_document
from .tokenizer import DEFAULT_MAX_NESTING_DEPTH
from .transpose import SpellingPolicy, transpose_document, transpose_to_key


def _slugify(text: str) -> str:
    """Convert a string to a lowercase hyphenated slug suitable for filenames."""
    text = text.lower()
    text = re.sub(r"[^\w\s-]", "", text)   # drop punctuation
    text = re.sub(r"[\s_]+", "-", text)     # spaces/underscores → hyphens
    text = re.sub(r"-{2,}", "-", text)      # collapse multiple hyphens
    return text.strip("-")


def _source_stem(source: str) -> str:
    path = urlparse(source).path if is_url(source) else source
    return Path(path).stem or "song"


def _default_filename(document: Document, source: str, key: str | None = None) -> str:
    parts = [_slugify(p) for p in (document.artist, document.title) if p]
    parts = [p for p in parts if p] or [_slugify(_source_stem(source)) or "song"]
    if key:
        parts.append(_slugify(key.replace("#", "sharp")))
    return "-".join(parts) + ".cho"


def _load(source: str, strict: bool, max_depth: int) -> ParseResult:
    """Load and parse *source*, exiting with a message on failure."""
    options = ParseOptions(strict=strict, max_nesting_depth=max_depth)
    try:
        return read_document(source, options)
    except FetchError as exc:
        msg = f"Error: Could not fetch {exc.url}"
        if exc.status_code:
            msg += f" (HTTP {exc.status_code})"
        click.echo(msg, err=True)
    except OSError as exc:
        click.echo(f"Error: Could not read {source}: {exc.strerror or exc}", err=True)
    except (MalformedInputError, SectionStructureError) as exc:
        click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


def _emit(text: str, output_path: str | None, stdout: bool, default_name: str) -> None:
    if stdout:
        click.echo(text, nl=False)
        return

    dest = Path(output_path) if output_path else Path(default_name)
    dest.write_text(text, encoding="utf-8")
    click.echo(f"Written to {dest}")


def _warn(result: ParseResult) -> None:
    for diagnostic in result.diagnostics:
        if diagnostic.is_warning:
            click.echo(f"Warning: {diagnostic}", err=True)


_strict_option = click.option(
    "--strict", is_flag=True, default=False,
    help="Fail on unbalanced or unclosed sections instead of repairing them.",
)
_max_depth_option = click.option(
    "--max-depth", "max_depth", default=DEFAULT_MAX_NESTING_DEPTH, show_default=True,
    type=click.IntRange(min=1), help="Deepest bracket nesting accepted before giving up.",
)
_output_option = click.option(
    "-o", "--output", "output_path", default=None, metavar="PATH",
    help="Output file path (default: <artist>-<title>.cho)",
)
_stdout_option = click.option(
    "--stdout", is_flag=True, default=False, help="Print to stdout instead of writing a file."
)


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log debug output to stderr.")
def main(verbose: bool) -> None:
    """Parse, check and transpose ChordPro songs.

    \b
    SOURCE may be a file path or an http(s):// URL.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.argument("source")
@_strict_option
@_max_depth_option
def check(source: str, strict: bool, max_depth: int) -> None:
    """Report structural problems and unparsed chords in SOURCE."""
    result = _load(source, strict, max_depth)
    for diagnostic in result.diagnostics:
        click.echo(str(diagnostic))

    document = result.document
    chords = list(document.chords())
    click.echo(
        f"{len(document.sections)} sections, {len(chords)} chords, "
        f"{sum(d.is_warning for d in result.diagnostics)} warnings"
    )


@main.command("format")
@click.argument("source")
@_output_option
@_stdout_option
@_strict_option
@_max_depth_option
def format_(source: str, output_path: str | None, stdout: bool, strict: bool, max_depth: int) -> None:
    """Re-render SOURCE as normalized ChordPro."""
    result = _load(source, strict, max_depth)
    _warn(result)
    _emit(render(result.document), output_path, stdout, _default_filename(result.document, source))


@main.command()
@click.argument("source")
@click.option("-s", "--semitones", type=int, default=None, help="Semitones to shift (negative = down).")
@click.option("--to", "to_key", default=None, metavar="KEY", help="Transpose so the song is in KEY.")
@click.option("--sharps", "spelling", flag_value="sharps", help="Spell black keys with sharps.")
@click.option("--flats", "spelling", flag_value="flats", help="Spell black keys with flats.")
@_output_option
@_stdout_option
@_strict_option
@_max_depth_option
def transpose(
    source: str,
    semitones: int | None,
    to_key: str | None,
    spelling: str | None,
    output_path: str | None,
    stdout: bool,
    strict: bool,
    max_depth: int,
) -> None:
    """Transpose the chords (and key) of SOURCE.

    \b
    Without --sharps/--flats, spelling follows the song's key:
      sharp keys (G D A E B) get sharps, flat keys (F Bb Eb Ab Db) get flats.
    """
    if (semitones is None) == (to_key is None):
        raise click.UsageError("Give exactly one of --semitones or --to.")

    policy = SpellingPolicy(spelling) if spelling else SpellingPolicy.AUTO
    result = _load(source, strict, max_depth)
    _warn(result)

    if to_key is not None:
        try:
            document, summary = transpose_to_key(result.document, to_key, policy)
        except ValueError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)
    else:
        document, summary = transpose_document(result.document, semitones, policy)

    click.echo(
        f"Transposed {summary.transposed} chords ({summary.opaque_skipped} left as written)",
        err=True,
    )
    _emit(render(document), output_path, stdout, _default_filename(document, source, document.key))
