"""ChordPro tokenizer.

Scans raw ChordPro text into a flat stream of tokens:

  Directive    {name}  or  {name: argument}
  ChordMarker  [chord text]
  LyricText    any other run of characters on a line
  Comment      a physical line whose first character is ``#``
  LineBreak    end of every physical line

Brackets nest: ``{comment: play [G] twice}`` is one directive whose argument
contains ``[G]``.  Nesting is tracked with a bounded stack of expected closers;
going deeper than ``max_nesting_depth`` raises
:class:`~chordshift.exceptions.MalformedInputError` instead of scanning on.

A backslash escapes any of ``\\ { } [ ] #`` into the literal character.  An
opening bracket with no matching closer on the same line is kept as literal
lyric text.

The tokenizer assigns no meaning to directives; that is the parser's job.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass

from .exceptions import MalformedInputError

DEFAULT_MAX_NESTING_DEPTH = 8

ESCAPABLE = frozenset("\\{}[]#")

_CLOSERS = {"{": "}", "[": "]"}

DIRECTIVE_NAME_RE = re.compile(r"[A-Za-z_][\w-]*")


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Directive:
    name: str
    argument: str | None
    line: int


@dataclass(frozen=True)
class ChordMarker:
    text: str
    line: int


@dataclass(frozen=True)
class LyricText:
    text: str
    line: int


@dataclass(frozen=True)
class Comment:
    text: str
    line: int


@dataclass(frozen=True)
class LineBreak:
    line: int


Token = Directive | ChordMarker | LyricText | Comment | LineBreak


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


def decode(text: str | bytes) -> str:
    """Return *text* as ``str``, decoding bytes as strict UTF-8.

    A leading byte-order mark is dropped.
    """
    if isinstance(text, str):
        return text.removeprefix("\ufeff")
    try:
        return text.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedInputError(f"not valid UTF-8 ({exc.reason} at byte {exc.start})") from exc


def tokenize(text: str | bytes, max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH) -> Iterator[Token]:
    """Yield the tokens of *text* lazily, line by line.

    Args:
        text:              ChordPro source, ``str`` or UTF-8 ``bytes``.
        max_nesting_depth: Deepest allowed ``{``/``[`` nesting.

    Raises:
        MalformedInputError: on invalid UTF-8 or when nesting goes deeper
            than *max_nesting_depth*.
    """
    source = decode(text)
    for lineno, line in enumerate(source.splitlines(), start=1):
        if line.startswith("#"):
            yield Comment(line[1:], lineno)
        else:
            yield from _tokenize_line(line, lineno, max_nesting_depth)
        yield LineBreak(lineno)


def _tokenize_line(line: str, lineno: int, max_depth: int) -> Iterator[Token]:
    buffer: list[str] = []
    pos = 0
    n = len(line)

    while pos < n:
        ch = line[pos]

        if ch == "\\" and pos + 1 < n and line[pos + 1] in ESCAPABLE:
            buffer.append(line[pos + 1])
            pos += 2
            continue

        if ch in _CLOSERS:
            group = _scan_group(line, pos, lineno, max_depth)
            if group is None:
                # Unterminated on this line: keep the bracket as text
                buffer.append(ch)
                pos += 1
                continue

            inner, pos = group
            token = _group_token(ch, inner, lineno)
            if isinstance(token, LyricText):
                buffer.append(token.text)
                continue
            if buffer:
                yield LyricText("".join(buffer), lineno)
                buffer = []
            yield token
            continue

        buffer.append(ch)
        pos += 1

    if buffer:
        yield LyricText("".join(buffer), lineno)


def _scan_group(line: str, start: int, lineno: int, max_depth: int) -> tuple[str, int] | None:
    """Scan a bracketed group opening at *start*.

    Returns ``(inner_text, end_position)`` where *inner_text* has escapes
    resolved, or None if the group is not closed before the end of the line.
    """
    expected = [_CLOSERS[line[start]]]
    if len(expected) > max_depth:
        raise MalformedInputError(f"bracket nesting deeper than {max_depth}", line=lineno)
    inner: list[str] = []
    pos = start + 1
    n = len(line)

    while pos < n:
        ch = line[pos]
        if ch == "\\" and pos + 1 < n and line[pos + 1] in ESCAPABLE:
            inner.append(line[pos + 1])
            pos += 2
            continue
        if ch in _CLOSERS:
            expected.append(_CLOSERS[ch])
            if len(expected) > max_depth:
                raise MalformedInputError(f"bracket nesting deeper than {max_depth}", line=lineno)
        elif ch == expected[-1]:
            expected.pop()
            if not expected:
                return "".join(inner), pos + 1
        inner.append(ch)
        pos += 1

    return None


def _group_token(opener: str, inner: str, lineno: int) -> Token:
    if opener == "[":
        return ChordMarker(inner, lineno)

    name, sep, argument = inner.partition(":")
    name = name.strip()
    if not DIRECTIVE_NAME_RE.fullmatch(name):
        return LyricText("{" + inner + "}", lineno)
    return Directive(name, argument.strip() if sep else None, lineno)
