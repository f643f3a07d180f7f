import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType

from .notes import Pitch


class Quality(Enum):
    """Closed set of chord qualities understood by the chord grammar."""

    MAJOR = "major"
    MINOR = "minor"
    DIMINISHED = "dim"
    AUGMENTED = "aug"
    SUS2 = "sus2"
    SUS4 = "sus4"
    DOMINANT_7 = "7"
    MAJOR_7 = "maj7"
    MINOR_7 = "m7"
    MINOR_MAJOR_7 = "mmaj7"
    HALF_DIMINISHED = "m7b5"
    DIMINISHED_7 = "dim7"
    AUGMENTED_7 = "aug7"
    SIXTH = "6"
    MINOR_6 = "m6"
    SIX_NINE = "6/9"
    NINTH = "9"
    MINOR_9 = "m9"
    MAJOR_9 = "maj9"
    ADD_9 = "add9"
    MINOR_ADD_9 = "madd9"
    ELEVENTH = "11"
    MINOR_11 = "m11"
    THIRTEENTH = "13"
    SEVEN_SUS4 = "7sus4"
    SEVEN_SUS2 = "7sus2"
    POWER = "5"


@dataclass(frozen=True)
class Chord:
    """A chord whose root (and optional bass) was understood.

    ``quality_text`` is the quality exactly as written (``"min7"`` and ``"m7"``
    are both :attr:`Quality.MINOR_7`) and ``suffix`` is any trailing text the
    grammar did not recognise, e.g. ``"(b9)"``.  Both are carried through
    transposition untouched so rendering stays lossless.
    """

    root: Pitch
    quality: Quality = Quality.MAJOR
    quality_text: str = ""
    suffix: str = ""
    bass: Pitch | None = None

    @property
    def text(self) -> str:
        result = f"{self.root.name}{self.quality_text}{self.suffix}"
        if self.bass is not None:
            result = f"{result}/{self.bass.name}"
        return result

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class OpaqueChord:
    """A chord marker the grammar could not parse, kept verbatim."""

    raw: str

    @property
    def text(self) -> str:
        return self.raw

    def __str__(self) -> str:
        return self.raw


ChordLike = Chord | OpaqueChord


@dataclass(frozen=True)
class LyricSegment:
    text: str


@dataclass(frozen=True)
class ChordSegment:
    """A chord anchored at a character offset into the line's lyric text."""

    chord: ChordLike
    anchor: int


Segment = LyricSegment | ChordSegment


class LineKind(Enum):
    LYRICS = "lyrics"
    COMMENT = "comment"  # from {comment: ...}


@dataclass(frozen=True)
class Line:
    """An ordered run of lyric and chord segments."""

    segments: tuple[Segment, ...] = ()
    kind: LineKind = LineKind.LYRICS

    def __post_init__(self):
        object.__setattr__(self, "segments", tuple(self.segments))
        length = len(self.text)
        last_anchor = 0
        for anchor, _ in self.chords:
            if anchor < last_anchor:
                raise ValueError(f"chord anchors must not decrease: {anchor} < {last_anchor}")
            if anchor > length:
                raise ValueError(f"chord anchor {anchor} is past the end of the lyric ({length})")
            last_anchor = anchor

    @property
    def text(self) -> str:
        """The line's lyric text with all chords removed."""
        return "".join(s.text for s in self.segments if isinstance(s, LyricSegment))

    @property
    def chords(self) -> list[tuple[int, ChordLike]]:
        return [(s.anchor, s.chord) for s in self.segments if isinstance(s, ChordSegment)]

    @property
    def is_blank(self) -> bool:
        return not self.segments


class SectionKind(Enum):
    VERSE = "verse"
    CHORUS = "chorus"
    BRIDGE = "bridge"
    TAB = "tab"
    GRID = "grid"
    BODY = "body"  # content outside any environment directive


@dataclass(frozen=True)
class Section:
    kind: SectionKind
    label: str | None = None
    lines: tuple[Line, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))


# Metadata keys with typed accessors on Document, in rendering order.
KNOWN_METADATA = (
    "title",
    "subtitle",
    "artist",
    "composer",
    "key",
    "capo",
    "tempo",
    "time",
    "duration",
)

_DURATION_RE = re.compile(r"^(?:(\d+):)?(\d+)$")


@dataclass(frozen=True)
class Document:
    """Parsed ChordPro song.

    ``metadata`` maps a directive name to its argument string, or to ``True``
    for directives that were given without an argument.  The mapping is
    read-only; use :meth:`with_metadata` to derive a changed copy.
    """

    metadata: Mapping[str, str | bool] = field(default_factory=dict)
    sections: tuple[Section, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "sections", tuple(self.sections))

    # --- Typed metadata accessors ---

    def _text(self, name: str) -> str | None:
        value = self.metadata.get(name)
        return value if isinstance(value, str) else None

    def _int(self, name: str) -> int | None:
        value = self._text(name)
        if value is None:
            return None
        try:
            return int(value.strip())
        except ValueError:
            return None

    @property
    def title(self) -> str | None:
        return self._text("title")

    @property
    def subtitle(self) -> str | None:
        return self._text("subtitle")

    @property
    def artist(self) -> str | None:
        return self._text("artist")

    @property
    def composer(self) -> str | None:
        return self._text("composer")

    @property
    def key(self) -> str | None:
        return self._text("key")

    @property
    def time(self) -> str | None:
        return self._text("time")

    @property
    def duration(self) -> str | None:
        return self._text("duration")

    @property
    def capo(self) -> int | None:
        return self._int("capo")

    @property
    def tempo(self) -> int | None:
        return self._int("tempo")

    @property
    def duration_seconds(self) -> int | None:
        """``duration`` as seconds; accepts ``"m:ss"`` or a plain number."""
        value = self.duration
        if value is None:
            return None
        m = _DURATION_RE.match(value.strip())
        if not m:
            return None
        minutes, seconds = m.groups()
        return int(minutes or 0) * 60 + int(seconds)

    # --- Derived views ---

    def chords(self) -> Iterator[ChordLike]:
        """Yield every chord in document order."""
        for section in self.sections:
            for line in section.lines:
                for _, chord in line.chords:
                    yield chord

    def with_metadata(self, **changes: str | bool | None) -> "Document":
        """Return a copy with *changes* applied.  ``None`` removes a key."""
        metadata = dict(self.metadata)
        for name, value in changes.items():
            if value is None:
                metadata.pop(name, None)
            else:
                metadata[name] = value
        return replace(self, metadata=metadata)

    def strip_chords(self) -> str:
        """Return the plain lyrics (comment lines included), one per line."""
        lines = []
        for section in self.sections:
            for line in section.lines:
                text = line.text.strip()
                if text:
                    lines.append(text)
        return "\n".join(lines)

    def first_line(self) -> str:
        """Return the first non-empty lyric line, e.g. for a search index."""
        for section in self.sections:
            for line in section.lines:
                if line.kind is LineKind.COMMENT:
                    continue
                text = line.text.strip()
                if text:
                    return text
        return ""


@dataclass(frozen=True)
class TransposeSummary:
    transposed: int = 0
    opaque_skipped: int = 0
