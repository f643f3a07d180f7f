from .diagnostics import Diagnostic


class ChordShiftError(Exception):
    """Base exception for chordshift."""


class MalformedInputError(ChordShiftError):
    """Raised when input cannot be tokenized at all (bad UTF-8, runaway nesting)."""

    def __init__(self, reason: str, line: int | None = None):
        self.reason = reason
        self.line = line
        where = f" at line {line}" if line is not None else ""
        super().__init__(f"Malformed input{where}: {reason}")


class SectionStructureError(ChordShiftError):
    """Raised by strict parsing on the first structural diagnostic."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(str(diagnostic))


class FetchError(ChordShiftError):
    """Raised when a ChordPro source cannot be loaded."""

    def __init__(self, url: str, status_code: int):
        self.url = url
        self.status_code = status_code
        super().__init__(f"HTTP {status_code} fetching {url}")
