"""ChordPro parser.

Consumes the token stream from :func:`~chordshift.tokenizer.tokenize` and builds
an immutable :class:`~chordshift.models.Document`.

Directive handling
------------------

+-------------------------------------+---------------------------------------+
| Directive (case-insensitive)        | Effect                                |
+=====================================+=======================================+
| ``start_of_X[: label]``, ``soX``    | open a section of kind X              |
| (X in verse/chorus/bridge/tab/grid) | (short forms: sov soc sob sot sog)    |
+-------------------------------------+---------------------------------------+
| ``end_of_X``, ``eoX``               | close the open section                |
+-------------------------------------+---------------------------------------+
| ``comment``, ``c``, ``ci``,         | comment line in the current section   |
| ``comment_italic``                  |                                       |
+-------------------------------------+---------------------------------------+
| ``title``/``t``, ``subtitle``/``st``| metadata (last one wins)              |
| ``artist``/``a``, anything else     |                                       |
+-------------------------------------+---------------------------------------+

Unknown directives are kept in the metadata: ``{name: value}`` as the string
``value`` and ``{name}`` as ``True``.

Sections
--------
Open sections live on an explicit :class:`SectionStack`.  Content outside any
section goes to an implicit BODY section created on the first content line.
A mismatched ``end_of_X`` still closes the innermost section and records an
UNBALANCED_SECTION diagnostic; sections still open at end of input are closed
with UNCLOSED_SECTION.  :func:`parse_strict` raises on the first of these.

Usage::

    from chordshift.parser import parse
    result = parse(Path("song.cho").read_text())
    for diagnostic in result.diagnostics:
        print(diagnostic)
    song = result.document
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import NamedTuple

from .chords import parse_chord
from .diagnostics import Diagnostic, DiagnosticKind
from .exceptions import SectionStructureError
from .models import (
    ChordSegment,
    Document,
    Line,
    LineKind,
    LyricSegment,
    OpaqueChord,
    Section,
    SectionKind,
    Segment,
)
from .tokenizer import (
    DEFAULT_MAX_NESTING_DEPTH,
    ChordMarker,
    Comment,
    Directive,
    LineBreak,
    LyricText,
    Token,
    tokenize,
)

logger = logging.getLogger(__name__)

_ENVIRONMENTS = {
    "verse": SectionKind.VERSE,
    "chorus": SectionKind.CHORUS,
    "bridge": SectionKind.BRIDGE,
    "tab": SectionKind.TAB,
    "grid": SectionKind.GRID,
}

_SHORT_ENVIRONMENTS = {name[0]: kind for name, kind in _ENVIRONMENTS.items()}

_ALIASES = {
    "t": "title",
    "st": "subtitle",
    "a": "artist",
    "c": "comment",
    "ci": "comment",
    "comment_italic": "comment",
}


@dataclass(frozen=True)
class ParseOptions:
    strict: bool = False
    max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH


class ParseResult(NamedTuple):
    document: Document
    diagnostics: list[Diagnostic]


# ---------------------------------------------------------------------------
# Section stack
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Frame:
    """An open section: its kind and its index in the document's section list."""

    kind: SectionKind
    index: int


@dataclass(frozen=True)
class SectionStack:
    frames: tuple[Frame, ...] = ()

    @property
    def top(self) -> Frame | None:
        return self.frames[-1] if self.frames else None

    def push(self, frame: Frame) -> "SectionStack":
        return SectionStack(self.frames + (frame,))

    def pop(self) -> tuple["SectionStack", Frame]:
        if not self.frames:
            raise IndexError("pop from an empty section stack")
        return SectionStack(self.frames[:-1]), self.frames[-1]

    def __len__(self) -> int:
        return len(self.frames)


def close_section(
    stack: SectionStack, kind: SectionKind, line: int, written: str | None = None
) -> tuple[SectionStack, Frame | None, Diagnostic | None]:
    """Apply an ``end_of_<kind>`` directive to *stack*.

    Returns the new stack, the frame that was closed (None if nothing was
    open) and a diagnostic when the directive does not match the innermost
    open section.  A mismatch still closes the innermost section.  The
    diagnostic text is the closing directive as written.
    """
    text = written or f"end_of_{kind.value}"
    if stack.top is None:
        diagnostic = Diagnostic(
            DiagnosticKind.UNBALANCED_SECTION, line, text=text, expected=None, found=kind.value
        )
        return stack, None, diagnostic

    new_stack, frame = stack.pop()
    if frame.kind is kind:
        return new_stack, frame, None
    diagnostic = Diagnostic(
        DiagnosticKind.UNBALANCED_SECTION, line, text=text, expected=frame.kind.value, found=kind.value
    )
    return new_stack, frame, diagnostic


def _environment(name: str) -> tuple[str, SectionKind] | None:
    """Map ``start_of_verse`` / ``sov`` style names to ``("start", VERSE)``."""
    for prefix, action in (("start_of_", "start"), ("end_of_", "end")):
        if name.startswith(prefix) and name[len(prefix) :] in _ENVIRONMENTS:
            return action, _ENVIRONMENTS[name[len(prefix) :]]
    if len(name) == 3 and name[:2] in ("so", "eo") and name[2] in _SHORT_ENVIRONMENTS:
        return ("start" if name[:2] == "so" else "end"), _SHORT_ENVIRONMENTS[name[2]]
    return None


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _SectionBuilder:
    def __init__(self, kind: SectionKind, label: str | None = None):
        self.kind = kind
        self.label = label
        self.lines: list[Line] = []

    def build(self) -> Section:
        lines = self.lines
        if self.kind is SectionKind.BODY:
            while lines and lines[-1].is_blank:
                lines = lines[:-1]
        return Section(self.kind, self.label, tuple(lines))


class ChordProParser:
    """Build a :class:`Document` from ChordPro tokens.

    One instance parses one input; use :func:`parse` or :func:`parse_strict`.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self.metadata: dict[str, str | bool] = {}
        self.sections: list[_SectionBuilder] = []
        self.stack = SectionStack()
        self.diagnostics: list[Diagnostic] = []
        self._body: int | None = None  # index of the BODY section taking top-level content
        self._segments: list[Segment] = []
        self._text_length = 0
        self._line_has_directive = False
        self._last_line = 0

    def run(self, tokens: Iterable[Token]) -> ParseResult:
        for token in tokens:
            self._last_line = token.line
            if isinstance(token, LyricText):
                self._on_lyric(token)
            elif isinstance(token, ChordMarker):
                self._on_chord(token)
            elif isinstance(token, Directive):
                self._on_directive(token)
            elif isinstance(token, Comment):
                self._line_has_directive = True
            elif isinstance(token, LineBreak):
                self._on_line_break(token)
            else:
                raise TypeError(f"unexpected token: {token!r}")
        self._finish()
        document = Document(
            metadata=self.metadata,
            sections=tuple(builder.build() for builder in self.sections),
        )
        return ParseResult(document, self.diagnostics)

    # --- Token handlers ---

    def _on_lyric(self, token: LyricText) -> None:
        if self._segments and isinstance(self._segments[-1], LyricSegment):
            self._segments[-1] = LyricSegment(self._segments[-1].text + token.text)
        else:
            self._segments.append(LyricSegment(token.text))
        self._text_length += len(token.text)

    def _on_chord(self, token: ChordMarker) -> None:
        chord = parse_chord(token.text)
        if isinstance(chord, OpaqueChord):
            self._report(Diagnostic(DiagnosticKind.OPAQUE_CHORD, token.line, text=token.text))
        self._segments.append(ChordSegment(chord, self._text_length))

    def _on_directive(self, token: Directive) -> None:
        self._line_has_directive = True
        name = token.name.lower()
        environment = _environment(name)

        if environment is not None:
            self._flush_line()
            action, kind = environment
            if action == "start":
                self._open(kind, token.argument or None)
            else:
                self._close(kind, token.line, token.name)
            return

        name = _ALIASES.get(name, name)
        if name == "comment":
            self._flush_line()
            if token.argument:
                line = Line((LyricSegment(token.argument),), kind=LineKind.COMMENT)
                self._current_section().lines.append(line)
            return

        self.metadata[name] = token.argument if token.argument is not None else True

    def _on_line_break(self, token: LineBreak) -> None:
        if self._segments:
            self._flush_line()
        elif not self._line_has_directive:
            self._blank_line()
        self._line_has_directive = False

    # --- Section bookkeeping ---

    def _open(self, kind: SectionKind, label: str | None) -> None:
        self._body = None
        self.sections.append(_SectionBuilder(kind, label))
        self.stack = self.stack.push(Frame(kind, len(self.sections) - 1))

    def _close(self, kind: SectionKind, line: int, written: str) -> None:
        self.stack, frame, diagnostic = close_section(self.stack, kind, line, written)
        if diagnostic is not None:
            logger.debug("Line %d: end_of_%s closes %s", line, kind.value, diagnostic.expected)
            self._report(diagnostic)

    def _current_section(self) -> _SectionBuilder:
        top = self.stack.top
        if top is not None:
            return self.sections[top.index]
        if self._body is None:
            self.sections.append(_SectionBuilder(SectionKind.BODY))
            self._body = len(self.sections) - 1
        return self.sections[self._body]

    def _flush_line(self) -> None:
        if not self._segments:
            return
        segments = self._segments
        self._segments = []
        self._text_length = 0
        if all(isinstance(s, LyricSegment) and not s.text.strip() for s in segments):
            # Whitespace around directives is not a line of its own
            if not self._line_has_directive:
                self._blank_line()
            return
        self._current_section().lines.append(Line(tuple(segments)))

    def _blank_line(self) -> None:
        if self.stack.top is None:
            # Blank lines never start a BODY section
            if self._body is None or not self.sections[self._body].lines:
                return
        self._current_section().lines.append(Line())

    def _finish(self) -> None:
        self._flush_line()
        while self.stack.top is not None:
            self.stack, frame = self.stack.pop()
            logger.debug("Auto-closing unclosed %s section", frame.kind.value)
            self._report(
                Diagnostic(
                    DiagnosticKind.UNCLOSED_SECTION,
                    self._last_line,
                    text=self.sections[frame.index].label or "",
                    expected=frame.kind.value,
                )
            )

    def _report(self, diagnostic: Diagnostic) -> None:
        if self.strict and diagnostic.is_warning:
            raise SectionStructureError(diagnostic)
        self.diagnostics.append(diagnostic)


def parse(text: str | bytes, options: ParseOptions | None = None) -> ParseResult:
    """Parse ChordPro *text* into a document and its diagnostics.

    Lenient by default: structural problems become diagnostics and parsing
    carries on.  With ``options.strict`` this behaves like :func:`parse_strict`.

    Raises:
        MalformedInputError: invalid UTF-8 or nesting deeper than
            ``options.max_nesting_depth``.
        SectionStructureError: strict mode only.
    """
    options = options or ParseOptions()
    parser = ChordProParser(strict=options.strict)
    return parser.run(tokenize(text, options.max_nesting_depth))


def parse_strict(text: str | bytes, options: ParseOptions | None = None) -> Document:
    """Parse *text*, raising :class:`SectionStructureError` on the first warning."""
    options = options or ParseOptions()
    strict = ParseOptions(strict=True, max_nesting_depth=options.max_nesting_depth)
    return parse(text, strict).document
