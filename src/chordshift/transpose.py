"""Chord transposition.

Shifts chord roots and bass notes by a number of semitones.  Every function
here is a value-to-value transform: documents and chords are never modified.

Spelling
--------
After a shift, white-key roots are always written natural.  Black keys need a
choice between sharp and flat; :class:`SpellingPolicy` makes it:

  SHARPS / FLATS  caller override, applied to every chord
  AUTO            derived from the (transposed) ``key`` metadata, see below

Key convention (circle of fifths; a minor key uses its relative major):

  sharps  G D A E B          Em Bm F#m C#m G#m
  flats   F Bb Eb Ab Db      Dm Gm Cm Fm Bbm
  either  C, F#/Gb           Am, D#m/Ebm

Keys in the last row follow their own written accidental, and a natural key
(C, Am) prefers sharps.  B and Db are fixed (sharps and flats respectively):
their enharmonic twins Cb (7 flats) and C# (7 sharps) are the rarer spellings.

When a document has no usable key, AUTO keeps each chord's own accidental
(natural roots fall back to sharps).
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import NamedTuple

from .chords import parse_chord
from .models import (
    Chord,
    ChordLike,
    ChordSegment,
    Document,
    Line,
    OpaqueChord,
    Quality,
    Section,
    TransposeSummary,
)
from .notes import Accidental

logger = logging.getLogger(__name__)

# Keys offered for quick transposition
COMMON_KEYS: tuple[str, ...] = (
    "C", "C#", "Db", "D", "D#", "Eb", "E", "F", "F#", "Gb", "G", "G#", "Ab", "A", "A#", "Bb", "B",
    "Cm", "C#m", "Dm", "D#m", "Ebm", "Em", "Fm", "F#m", "Gm", "G#m", "Am", "A#m", "Bbm", "Bm",
)  # fmt: skip

_MINOR_QUALITIES = frozenset(
    {
        Quality.MINOR,
        Quality.MINOR_7,
        Quality.MINOR_6,
        Quality.MINOR_9,
        Quality.MINOR_11,
        Quality.MINOR_ADD_9,
        Quality.MINOR_MAJOR_7,
    }
)

# Preferred accidental for each major-key pitch class; None means "ask the key".
_KEY_SPELLING: dict[int, Accidental | None] = {
    0: None,  # C
    1: Accidental.FLAT,  # Db
    2: Accidental.SHARP,  # D
    3: Accidental.FLAT,  # Eb
    4: Accidental.SHARP,  # E
    5: Accidental.FLAT,  # F
    6: None,  # F# / Gb
    7: Accidental.SHARP,  # G
    8: Accidental.FLAT,  # Ab
    9: Accidental.SHARP,  # A
    10: Accidental.FLAT,  # Bb
    11: Accidental.SHARP,  # B
}


class SpellingPolicy(Enum):
    AUTO = "auto"
    SHARPS = "sharps"
    FLATS = "flats"


class Transposition(NamedTuple):
    document: Document
    summary: TransposeSummary


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


def _parse_key(text: str | None) -> Chord | None:
    if not text:
        return None
    chord = parse_chord(text)
    return chord if isinstance(chord, Chord) else None


def _major_pc(key: Chord) -> int:
    if key.quality in _MINOR_QUALITIES:
        return (key.root.pc + 3) % 12
    return key.root.pc


def _spelling_for(major_pc: int, written: Accidental) -> Accidental:
    preferred = _KEY_SPELLING[major_pc]
    if preferred is not None:
        return preferred
    return Accidental.FLAT if written is Accidental.FLAT else Accidental.SHARP


def key_spelling(key: str) -> Accidental | None:
    """Return the accidental chords in *key* are spelled with.

    Returns None when *key* is not a recognisable key.

    Example::

        key_spelling("Eb")  -> Accidental.FLAT
        key_spelling("Em")  -> Accidental.SHARP
        key_spelling("Gb")  -> Accidental.FLAT
        key_spelling("F#")  -> Accidental.SHARP
    """
    chord = _parse_key(key)
    if chord is None:
        return None
    return _spelling_for(_major_pc(chord), chord.root.accidental)


def semitones_between(from_key: str, to_key: str) -> int | None:
    """Return the upward distance (0-11) from *from_key* to *to_key*.

    Only the roots are compared, so ``Am`` -> ``C`` is 3.  Returns None if
    either key is not recognisable.
    """
    source = _parse_key(from_key)
    target = _parse_key(to_key)
    if source is None or target is None:
        return None
    return (target.root.pc - source.root.pc) % 12


# ---------------------------------------------------------------------------
# Chords
# ---------------------------------------------------------------------------


def _resolve(policy: SpellingPolicy, chord: Chord) -> Accidental:
    if policy is SpellingPolicy.SHARPS:
        return Accidental.SHARP
    if policy is SpellingPolicy.FLATS:
        return Accidental.FLAT
    if chord.root.accidental is Accidental.FLAT:
        return Accidental.FLAT
    return Accidental.SHARP


def _shift(chord: Chord, semitones: int, prefer: Accidental) -> Chord:
    bass = chord.bass.transposed(semitones, prefer) if chord.bass is not None else None
    return replace(chord, root=chord.root.transposed(semitones, prefer), bass=bass)


def transpose_chord(
    chord: ChordLike, semitones: int, spelling: SpellingPolicy = SpellingPolicy.AUTO
) -> ChordLike:
    """Return *chord* moved by *semitones*.

    Opaque chords, and any shift that is a whole number of octaves, return
    the chord unchanged.  Quality, its written form and any suffix are never
    altered.  With AUTO the chord keeps its own sharp/flat preference.
    """
    if isinstance(chord, OpaqueChord) or semitones % 12 == 0:
        return chord
    return _shift(chord, semitones, _resolve(spelling, chord))


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class _LineTransposer:
    def __init__(self, semitones: int, spelling: SpellingPolicy, prefer: Accidental | None):
        self.semitones = semitones
        self.spelling = spelling
        self.prefer = prefer
        self.transposed = 0
        self.opaque_skipped = 0

    def chord(self, chord: ChordLike) -> ChordLike:
        if isinstance(chord, OpaqueChord):
            self.opaque_skipped += 1
            return chord
        self.transposed += 1
        if self.prefer is None:
            return transpose_chord(chord, self.semitones, self.spelling)
        if self.semitones % 12 == 0:
            return chord
        return _shift(chord, self.semitones, self.prefer)

    def line(self, line: Line) -> Line:
        segments = tuple(
            ChordSegment(self.chord(s.chord), s.anchor) if isinstance(s, ChordSegment) else s
            for s in line.segments
        )
        return replace(line, segments=segments)

    def section(self, section: Section) -> Section:
        return replace(section, lines=tuple(self.line(line) for line in section.lines))


def transpose_document(
    document: Document, semitones: int, spelling: SpellingPolicy = SpellingPolicy.AUTO
) -> Transposition:
    """Transpose every chord in *document*, and its ``key``, by *semitones*.

    Returns the new document together with a :class:`TransposeSummary`
    counting transposed chords and opaque chords passed through untouched.
    """
    key = _parse_key(document.key)
    prefer: Accidental | None = None
    if spelling is SpellingPolicy.SHARPS:
        prefer = Accidental.SHARP
    elif spelling is SpellingPolicy.FLATS:
        prefer = Accidental.FLAT
    elif key is not None:
        prefer = _spelling_for((_major_pc(key) + semitones) % 12, key.root.accidental)

    logger.debug("Transposing by %d semitones (spelling=%s, prefer=%s)", semitones, spelling.value, prefer)

    transposer = _LineTransposer(semitones, spelling, prefer)
    sections = tuple(transposer.section(section) for section in document.sections)

    metadata = dict(document.metadata)
    if key is not None and semitones % 12 != 0:
        metadata["key"] = _shift(key, semitones, prefer).text

    summary = TransposeSummary(transposed=transposer.transposed, opaque_skipped=transposer.opaque_skipped)
    logger.debug("Transposed %d chords, skipped %d opaque", summary.transposed, summary.opaque_skipped)
    return Transposition(Document(metadata=metadata, sections=sections), summary)


def transpose_to_key(
    document: Document, target_key: str, spelling: SpellingPolicy = SpellingPolicy.AUTO
) -> Transposition:
    """Transpose *document* so its ``key`` becomes *target_key*.

    The interval is taken upwards from the current key (0-11 semitones).

    Raises:
        ValueError: if the document has no recognisable key, or
            *target_key* is not a key.
    """
    if _parse_key(document.key) is None:
        raise ValueError(f"document has no recognisable key: {document.key!r}")
    semitones = semitones_between(document.key, target_key)
    if semitones is None:
        raise ValueError(f"not a key: {target_key!r}")
    if spelling is SpellingPolicy.AUTO:
        written = _parse_key(target_key).root.accidental
        if written is Accidental.SHARP:
            spelling = SpellingPolicy.SHARPS
        elif written is Accidental.FLAT:
            spelling = SpellingPolicy.FLATS
    return transpose_document(document, semitones, spelling)
