"""ChordPro renderer.

Serializes a :class:`~chordshift.models.Document` back to ChordPro text.

Section kind → ChordPro directive mapping
-----------------------------------------

+-----------------------+---------------------------------------------+
| Section kind          | Directive pair                              |
+=======================+=============================================+
| ``VERSE``             | ``{start_of_verse[: label]}`` /             |
|                       | ``{end_of_verse}``                          |
+-----------------------+---------------------------------------------+
| ``CHORUS``            | ``{start_of_chorus[: label]}`` /            |
|                       | ``{end_of_chorus}``                         |
+-----------------------+---------------------------------------------+
| ``BRIDGE``, ``TAB``,  | ``{start_of_<kind>[: label]}`` /            |
| ``GRID``              | ``{end_of_<kind>}``                         |
+-----------------------+---------------------------------------------+
| ``BODY``              | no wrapper directive                        |
+-----------------------+---------------------------------------------+

The output re-parses to a structurally equal document.  Source whitespace
between sections and ``#`` comment lines are not reproduced.

Usage::

    from chordshift.renderer import ChordProRenderer
    text = ChordProRenderer().render(document)
    Path("output.cho").write_text(text)
"""

from .models import KNOWN_METADATA, Document, Line, LineKind, Section, SectionKind

_SPECIAL = str.maketrans({c: "\\" + c for c in "\\{}[]"})


class ChordProRenderer:
    """Render a :class:`~chordshift.models.Document` to ChordPro text."""

    def render(self, document: Document) -> str:
        """Return ChordPro text for *document*.

        The returned string ends with a single newline and uses Unix line
        endings (``\\n``) throughout.
        """
        parts: list[str] = []

        # --- Metadata block ---
        for name in _metadata_order(document):
            parts.append(_directive(name, document.metadata[name]))

        # --- Section blocks ---
        for section in document.sections:
            if parts:
                parts.append("")  # blank line before every section
            parts.extend(_render_section(section))

        if not parts:
            return ""
        return "\n".join(parts) + "\n"


def render(document: Document) -> str:
    """Shorthand for ``ChordProRenderer().render(document)``."""
    return ChordProRenderer().render(document)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def escape(text: str) -> str:
    """Backslash-escape the characters the tokenizer treats as syntax."""
    return text.translate(_SPECIAL)


def _metadata_order(document: Document) -> list[str]:
    known = [name for name in KNOWN_METADATA if name in document.metadata]
    rest = [name for name in document.metadata if name not in KNOWN_METADATA]
    return known + rest


def _directive(name: str, value: str | bool | None) -> str:
    if value is True or value is None:
        return f"{{{name}}}"
    return f"{{{name}: {escape(str(value))}}}"


def _render_section(section: Section) -> list[str]:
    """Return a list of lines for one section (no trailing blank line)."""
    lines = [render_line(line) for line in section.lines]

    if section.kind is SectionKind.BODY:
        return lines

    kind = section.kind.value
    start_line = _directive(f"start_of_{kind}", section.label)
    return [start_line, *lines, f"{{end_of_{kind}}}"]


def render_line(line: Line) -> str:
    """Render one line with ``[chord]`` markers inserted at their anchors.

    Example::

        text    = "Amazing grace"
        chords  = [(0, G), (8, G7)]
        result  = "[G]Amazing [G7]grace"
    """
    if line.kind is LineKind.COMMENT:
        return _directive("comment", line.text)

    text = line.text
    parts: list[str] = []
    pos = 0
    for anchor, chord in line.chords:
        parts.append(escape(text[pos:anchor]))
        parts.append(f"[{escape(chord.text)}]")
        pos = anchor
    parts.append(escape(text[pos:]))

    result = "".join(parts)
    if result.startswith("#"):
        result = "\\" + result
    return result
