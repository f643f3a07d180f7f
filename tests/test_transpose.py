import pytest

from chordshift.chords import parse_chord
from chordshift.models import OpaqueChord
from chordshift.notes import Accidental
from chordshift.parser import parse
from chordshift.renderer import render
from chordshift.transpose import (
    COMMON_KEYS,
    SpellingPolicy,
    key_spelling,
    semitones_between,
    transpose_chord,
    transpose_document,
    transpose_to_key,
)

AMAZING = "{title: Amazing Grace}\n{key: G}\n{start_of_verse}\n[G]Amazing [G7]grace\n{end_of_verse}\n"


def _chord_names(document) -> list[str]:
    return [chord.text for chord in document.chords()]


def _song(key: str | None, chords: str):
    header = f"{{key: {key}}}\n" if key else ""
    return parse(header + "".join(f"[{c}]x " for c in chords.split()) + "\n").document


def _t(text: str, semitones: int, spelling: SpellingPolicy = SpellingPolicy.AUTO) -> str:
    return transpose_chord(parse_chord(text), semitones, spelling).text


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def test_amazing_grace_up_a_tone():
    doc = parse(AMAZING).document
    new_doc, summary = transpose_document(doc, 2)
    assert new_doc.key == "A"
    assert _chord_names(new_doc) == ["A", "A7"]
    assert new_doc.title == "Amazing Grace"
    assert summary.transposed == 2
    assert summary.opaque_skipped == 0


def test_structure_unchanged():
    doc = parse(AMAZING).document
    new_doc, _ = transpose_document(doc, 2)
    assert [s.kind for s in new_doc.sections] == [s.kind for s in doc.sections]
    old_line, new_line = doc.sections[0].lines[0], new_doc.sections[0].lines[0]
    assert new_line.text == old_line.text
    assert [a for a, _ in new_line.chords] == [a for a, _ in old_line.chords]


def test_original_document_untouched():
    doc = parse(AMAZING).document
    transpose_document(doc, 5)
    assert doc.key == "G"
    assert _chord_names(doc) == ["G", "G7"]


def test_whole_octaves_leave_document_equal():
    doc = parse(AMAZING).document
    assert transpose_document(doc, 12).document == doc
    assert transpose_document(doc, 0).document == doc


def test_opaque_chords_counted_and_kept():
    doc = parse("{key: C}\n[C]la [Xadd9]la [N.C.]\n").document
    new_doc, summary = transpose_document(doc, 3)
    assert _chord_names(new_doc) == ["Eb", "Xadd9", "N.C."]
    assert summary.transposed == 1
    assert summary.opaque_skipped == 2


def test_opaque_chord_renders_unchanged_after_transposition():
    doc = parse("[Xadd9]la\n").document
    for semitones in (1, 6, -4):
        assert render(transpose_document(doc, semitones).document) == "[Xadd9]la\n"


# ---------------------------------------------------------------------------
# Key-driven spelling
# ---------------------------------------------------------------------------


def test_sharp_key_to_flat_key():
    new_doc, _ = transpose_document(_song("C", "C F G"), 1)
    assert new_doc.key == "Db"
    assert _chord_names(new_doc) == ["Db", "Gb", "Ab"]


def test_flat_key_stays_flat():
    new_doc, _ = transpose_document(_song("Eb", "Eb Ab Bb7"), 2)
    assert new_doc.key == "F"
    assert _chord_names(new_doc) == ["F", "Bb", "C7"]


def test_g_up_to_a_spells_sharps():
    new_doc, _ = transpose_document(_song("G", "G C D F#m"), 2)
    assert _chord_names(new_doc) == ["A", "D", "E", "G#m"]


def test_minor_key_uses_relative_major():
    new_doc, _ = transpose_document(_song("Em", "Em B7 C"), 1)
    assert new_doc.key == "Fm"
    assert _chord_names(new_doc) == ["Fm", "C7", "Db"]


def test_ambiguous_key_follows_written_accidental():
    new_doc, _ = transpose_document(_song("Gb", "Gb Cb Db"), 0)
    assert new_doc.key == "Gb"
    new_doc, _ = transpose_document(_song("F", "F Bb C"), 1)
    assert new_doc.key == "F#"
    assert _chord_names(new_doc) == ["F#", "B", "C#"]


def test_policy_overrides_key():
    new_doc, _ = transpose_document(_song("G", "G D"), 1, SpellingPolicy.SHARPS)
    assert new_doc.key == "G#"
    assert _chord_names(new_doc) == ["G#", "D#"]
    new_doc, _ = transpose_document(_song("G", "G D"), 1, SpellingPolicy.FLATS)
    assert _chord_names(new_doc) == ["Ab", "Eb"]


def test_no_key_keeps_each_chords_accidental():
    new_doc, _ = transpose_document(_song(None, "Bb C F#"), 1)
    assert _chord_names(new_doc) == ["B", "C#", "G"]
    assert new_doc.key is None


@pytest.mark.parametrize(
    "key,accidental",
    [
        ("G", Accidental.SHARP),
        ("B", Accidental.SHARP),
        ("Eb", Accidental.FLAT),
        ("Db", Accidental.FLAT),
        ("Em", Accidental.SHARP),
        ("Dm", Accidental.FLAT),
        ("C", Accidental.SHARP),
        ("Am", Accidental.SHARP),
        ("F#", Accidental.SHARP),
        ("Gb", Accidental.FLAT),
    ],
)
def test_key_spelling(key, accidental):
    assert key_spelling(key) is accidental


def test_key_spelling_unknown():
    assert key_spelling("H") is None
    assert key_spelling("") is None


def test_common_keys_are_all_recognised():
    for key in COMMON_KEYS:
        assert key_spelling(key) is not None, key


# ---------------------------------------------------------------------------
# Single chords
# ---------------------------------------------------------------------------


def test_chord_keeps_its_own_accidental():
    assert _t("Ab", 2) == "Bb"
    assert _t("Bb", 2) == "C"
    assert _t("C", 1) == "C#"
    assert _t("C", 1, SpellingPolicy.FLATS) == "Db"


def test_bass_note_moves_with_root():
    assert _t("D/F#", 2) == "E/G#"
    assert _t("Bb/D", 2) == "C/E"


def test_quality_text_and_suffix_preserved():
    assert _t("Cmin7", 2) == "Dmin7"
    assert _t("C7(b9)", -1) == "B7(b9)"
    assert _t("Asus4", 5) == "Dsus4"


def test_opaque_chord_invariant():
    chord = OpaqueChord("Xadd9")
    for semitones in range(-12, 13):
        assert transpose_chord(chord, semitones) == chord


def test_zero_and_octave_are_identity():
    for text in ("C", "F#m7", "Bb7/D", "Gb"):
        chord = parse_chord(text)
        assert transpose_chord(chord, 0) == chord
        assert transpose_chord(chord, 12) == chord
        assert transpose_chord(chord, -24) == chord


@pytest.mark.parametrize("text", ["C", "F#m7", "Bb7/D", "Ebmaj7", "G#dim"])
@pytest.mark.parametrize("a,b", [(1, 2), (5, 7), (-3, 4), (11, 13)])
def test_composition_by_pitch_class(text, a, b):
    chord = parse_chord(text)
    twice = transpose_chord(transpose_chord(chord, a), b)
    once = transpose_chord(chord, (a + b) % 12)
    assert twice.root.pc == once.root.pc
    assert twice.quality is once.quality
    assert (twice.bass and twice.bass.pc) == (once.bass and once.bass.pc)


@pytest.mark.parametrize("text", ["C", "F#m7", "A#7/D", "G#dim"])
@pytest.mark.parametrize("a,b", [(1, 2), (5, 7), (-3, 4), (1, 11)])
def test_composition_exact_when_spelled_by_policy(text, a, b):
    chord = parse_chord(text)
    sharps = SpellingPolicy.SHARPS
    twice = transpose_chord(transpose_chord(chord, a, sharps), b, sharps)
    assert twice == transpose_chord(chord, (a + b) % 12, sharps)


# ---------------------------------------------------------------------------
# Transposing to a key
# ---------------------------------------------------------------------------


def test_semitones_between():
    assert semitones_between("G", "A") == 2
    assert semitones_between("A", "G") == 10
    assert semitones_between("Am", "C") == 3
    assert semitones_between("G", "H") is None


def test_transpose_to_key():
    doc = parse(AMAZING).document
    new_doc, _ = transpose_to_key(doc, "Bb")
    assert new_doc.key == "Bb"
    assert _chord_names(new_doc) == ["Bb", "Bb7"]


def test_transpose_to_sharp_key_uses_sharps():
    new_doc, _ = transpose_to_key(_song("C", "C F"), "C#")
    assert new_doc.key == "C#"
    assert _chord_names(new_doc) == ["C#", "F#"]


def test_transpose_to_key_without_key_raises():
    with pytest.raises(ValueError):
        transpose_to_key(_song(None, "C"), "D")


def test_transpose_to_unknown_key_raises():
    with pytest.raises(ValueError):
        transpose_to_key(parse(AMAZING).document, "nope")
