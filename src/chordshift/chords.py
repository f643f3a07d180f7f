"""Chord grammar for the text inside ``[...]`` chord markers.

Grammar::

    chord   := root quality suffix ["/" bass]
    root    := [A-G] ("#" | "b")?
    quality := longest entry of QUALITY_TOKENS that prefixes the remainder
    suffix  := whatever the quality did not consume, kept verbatim
    bass    := root-shaped token after the *last* "/"

Disambiguation
--------------
``QUALITY_TOKENS`` is priority-ordered.  The longest token that matches wins
(so ``m7`` beats ``m`` followed by ``7``, and ``madd9`` beats ``m`` followed by
``add9``).  Between tokens of equal length the one declared first wins.  The
empty token (major) matches everything, so a chord with a recognised root
always parses: ``C(b9)`` is C major with suffix ``(b9)``.

``6/9`` is a quality, not a bass: the bass must be exactly root-shaped, and
``9`` is not.

Anything without a recognisable root (``N.C.``, ``Xadd9``, ``%``) becomes an
:class:`~chordshift.models.OpaqueChord` holding the original text.
"""

from .models import Chord, ChordLike, OpaqueChord, Quality
from .notes import NOTE_RE, Pitch

# (token, quality) in priority order.  Declaration order breaks ties between
# tokens of the same length; keep aliases next to their canonical spelling.
QUALITY_TOKENS: tuple[tuple[str, Quality], ...] = (
    ("", Quality.MAJOR),
    ("maj", Quality.MAJOR),
    ("M", Quality.MAJOR),
    ("m", Quality.MINOR),
    ("min", Quality.MINOR),
    ("-", Quality.MINOR),
    ("dim", Quality.DIMINISHED),
    ("°", Quality.DIMINISHED),
    ("o", Quality.DIMINISHED),
    ("aug", Quality.AUGMENTED),
    ("+", Quality.AUGMENTED),
    ("sus2", Quality.SUS2),
    ("sus4", Quality.SUS4),
    ("sus", Quality.SUS4),
    ("7", Quality.DOMINANT_7),
    ("maj7", Quality.MAJOR_7),
    ("M7", Quality.MAJOR_7),
    ("Δ7", Quality.MAJOR_7),
    ("Δ", Quality.MAJOR_7),
    ("m7", Quality.MINOR_7),
    ("min7", Quality.MINOR_7),
    ("-7", Quality.MINOR_7),
    ("mmaj7", Quality.MINOR_MAJOR_7),
    ("mM7", Quality.MINOR_MAJOR_7),
    ("m7b5", Quality.HALF_DIMINISHED),
    ("m7-5", Quality.HALF_DIMINISHED),
    ("ø", Quality.HALF_DIMINISHED),
    ("ø7", Quality.HALF_DIMINISHED),
    ("dim7", Quality.DIMINISHED_7),
    ("°7", Quality.DIMINISHED_7),
    ("o7", Quality.DIMINISHED_7),
    ("aug7", Quality.AUGMENTED_7),
    ("+7", Quality.AUGMENTED_7),
    ("6", Quality.SIXTH),
    ("m6", Quality.MINOR_6),
    ("6/9", Quality.SIX_NINE),
    ("69", Quality.SIX_NINE),
    ("9", Quality.NINTH),
    ("m9", Quality.MINOR_9),
    ("maj9", Quality.MAJOR_9),
    ("add9", Quality.ADD_9),
    ("add2", Quality.ADD_9),
    ("madd9", Quality.MINOR_ADD_9),
    ("11", Quality.ELEVENTH),
    ("m11", Quality.MINOR_11),
    ("13", Quality.THIRTEENTH),
    ("7sus4", Quality.SEVEN_SUS4),
    ("7sus", Quality.SEVEN_SUS4),
    ("7sus2", Quality.SEVEN_SUS2),
    ("5", Quality.POWER),
)


def match_quality(body: str) -> tuple[str, Quality]:
    """Return the ``(token, quality)`` entry that best prefixes *body*.

    Longest match wins; equal lengths resolve to the earliest declaration.
    """
    best = QUALITY_TOKENS[0]
    for token, quality in QUALITY_TOKENS:
        if body.startswith(token) and len(token) > len(best[0]):
            best = (token, quality)
    return best


def _split_bass(rest: str) -> tuple[str, Pitch | None]:
    idx = rest.rfind("/")
    if idx == -1:
        return rest, None
    bass = Pitch.parse(rest[idx + 1 :])
    if bass is None:
        return rest, None
    return rest[:idx], bass


def parse_chord(text: str) -> ChordLike:
    """Parse chord-marker text into a :class:`Chord`, or an :class:`OpaqueChord`.

    Never raises.

    Examples::

        parse_chord("Am7")      -> Chord(A, MINOR_7)
        parse_chord("F#m7/C#")  -> Chord(F#, MINOR_7, bass=C#)
        parse_chord("C7(b9)")   -> Chord(C, DOMINANT_7, suffix="(b9)")
        parse_chord("N.C.")     -> OpaqueChord("N.C.")
    """
    stripped = text.strip()
    m = NOTE_RE.match(stripped)
    if not m:
        return OpaqueChord(text)

    root = Pitch.parse(m.group())
    body, bass = _split_bass(stripped[m.end() :])
    token, quality = match_quality(body)
    return Chord(
        root=root,
        quality=quality,
        quality_text=token,
        suffix=body[len(token) :],
        bass=bass,
    )


def is_chord(text: str) -> bool:
    """Return True if *text* parses as a structured chord."""
    return isinstance(parse_chord(text), Chord)
