import pytest

from chordshift.chords import parse_chord
from chordshift.models import (
    Chord,
    ChordSegment,
    Document,
    Line,
    LineKind,
    LyricSegment,
    OpaqueChord,
    Quality,
    Section,
    SectionKind,
)
from chordshift.notes import Accidental, Pitch

G = parse_chord("G")
C = parse_chord("C")


def _line(*parts) -> Line:
    """Build a line from strings (lyrics) and chords anchored at the current text length."""
    segments = []
    length = 0
    for part in parts:
        if isinstance(part, str):
            segments.append(LyricSegment(part))
            length += len(part)
        else:
            segments.append(ChordSegment(part, length))
    return Line(segments)


# ---------------------------------------------------------------------------
# Chord
# ---------------------------------------------------------------------------


def test_chord_text():
    chord = Chord(Pitch(6, Accidental.SHARP), Quality.MINOR_7, "m7", bass=Pitch(1, Accidental.SHARP))
    assert chord.text == "F#m7/C#"
    assert str(chord) == "F#m7/C#"


def test_chord_defaults_to_major():
    chord = Chord(Pitch(0))
    assert chord.quality is Quality.MAJOR
    assert chord.text == "C"


def test_opaque_chord_text():
    assert OpaqueChord("N.C.").text == "N.C."


# ---------------------------------------------------------------------------
# Line
# ---------------------------------------------------------------------------


def test_line_text_and_chords():
    line = _line(G, "Amazing ", C, "grace")
    assert line.text == "Amazing grace"
    assert line.chords == [(0, G), (8, C)]


def test_line_segments_become_tuple():
    line = Line([LyricSegment("x")])
    assert line.segments == (LyricSegment("x"),)


def test_chord_at_end_of_line():
    line = _line("la la ", G)
    assert line.chords == [(6, G)]


def test_anchor_past_end_rejected():
    with pytest.raises(ValueError):
        Line((LyricSegment("ab"), ChordSegment(G, 3)))


def test_decreasing_anchors_rejected():
    with pytest.raises(ValueError):
        Line((ChordSegment(G, 1), LyricSegment("ab"), ChordSegment(C, 0)))


def test_blank_line():
    assert Line().is_blank
    assert not _line("x").is_blank
    assert Line().kind is LineKind.LYRICS


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


def _doc(**metadata) -> Document:
    sections = (
        Section(SectionKind.VERSE, "Verse 1", (Line((LyricSegment("Slowly"),), LineKind.COMMENT), _line(G, "Amazing ", C, "grace"))),
        Section(SectionKind.CHORUS, None, (Line(), _line("I once was ", G, "lost"))),
    )
    return Document(metadata, sections)


def test_metadata_is_read_only():
    doc = _doc(title="Amazing Grace")
    with pytest.raises(TypeError):
        doc.metadata["title"] = "Other"


def test_metadata_accessors():
    doc = _doc(
        title="Amazing Grace",
        subtitle="Hymn",
        artist="John Newton",
        composer="Trad.",
        key="G",
        time="3/4",
    )
    assert doc.title == "Amazing Grace"
    assert doc.subtitle == "Hymn"
    assert doc.artist == "John Newton"
    assert doc.composer == "Trad."
    assert doc.key == "G"
    assert doc.time == "3/4"


def test_missing_metadata_is_none():
    doc = _doc()
    assert doc.title is None
    assert doc.capo is None
    assert doc.duration_seconds is None


def test_flag_directive_has_no_text_value():
    assert _doc(title=True).title is None


def test_capo_and_tempo_parse_as_int():
    doc = _doc(capo="2", tempo=" 120 ")
    assert doc.capo == 2
    assert doc.tempo == 120


def test_capo_not_a_number_is_none():
    assert _doc(capo="two").capo is None


@pytest.mark.parametrize("value,seconds", [("3:45", 225), ("200", 200), ("0:07", 7), ("abc", None), ("1:2:3", None)])
def test_duration_seconds(value, seconds):
    assert _doc(duration=value).duration_seconds == seconds


def test_chords_in_document_order():
    assert list(_doc().chords()) == [G, C, G]


def test_with_metadata_returns_copy():
    doc = _doc(key="G", capo="2")
    changed = doc.with_metadata(key="A", capo=None)
    assert changed.key == "A"
    assert "capo" not in changed.metadata
    assert doc.key == "G"
    assert changed.sections == doc.sections


def test_strip_chords():
    assert _doc().strip_chords() == "Slowly\nAmazing grace\nI once was lost"


def test_first_line_skips_comments():
    assert _doc().first_line() == "Amazing grace"


def test_first_line_of_empty_document():
    assert Document().first_line() == ""


def test_documents_compare_by_value():
    assert _doc(title="x") == _doc(title="x")
    assert _doc(title="x") != _doc(title="y")
