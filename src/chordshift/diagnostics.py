"""Non-fatal issues collected while parsing.

Diagnostics are returned next to the parsed document rather than raised.
Strict parsing turns the first WARNING into a
:class:`~chordshift.exceptions.SectionStructureError`; INFO diagnostics (a chord
that degraded to opaque text) never fail a parse.
"""

from dataclasses import dataclass
from enum import Enum


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"


class DiagnosticKind(Enum):
    UNBALANCED_SECTION = "unbalanced_section"  # end_of_X does not match the open section
    UNCLOSED_SECTION = "unclosed_section"  # section still open at end of input
    OPAQUE_CHORD = "opaque_chord"  # chord marker kept as raw text

    @property
    def severity(self) -> Severity:
        if self is DiagnosticKind.OPAQUE_CHORD:
            return Severity.INFO
        return Severity.WARNING


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    line: int
    text: str = ""
    expected: str | None = None  # section kind that was open
    found: str | None = None  # section kind named by the closing directive

    @property
    def severity(self) -> Severity:
        return self.kind.severity

    @property
    def is_warning(self) -> bool:
        return self.severity is Severity.WARNING

    def __str__(self) -> str:
        if self.kind is DiagnosticKind.UNBALANCED_SECTION:
            if self.expected is None:
                detail = f"end_of_{self.found} with no open section"
            else:
                detail = f"expected end_of_{self.expected}, found end_of_{self.found}"
        elif self.kind is DiagnosticKind.UNCLOSED_SECTION:
            detail = f"start_of_{self.expected} is never closed"
        else:
            detail = f"chord not understood: [{self.text}]"
        return f"line {self.line}: {self.severity.value}: {detail}"
