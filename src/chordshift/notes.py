"""Pitch classes and their enharmonic spellings.

A :class:`Pitch` is a pitch class (0-11, C=0) plus the accidental used to
display it.  Spelling is derived from the pitch class and the accidental alone:

  NATURAL  the natural letter at ``pc``             (only valid for white keys)
  SHARP    the letter one semitone below plus ``#``  (pc 1 -> C#, pc 5 -> E#)
  FLAT     the letter one semitone above plus ``b``  (pc 1 -> Db, pc 11 -> Cb)

so every written root (including ``E#``, ``B#``, ``Cb``, ``Fb``) maps to exactly
one ``(pc, accidental)`` pair and back.
"""

import re
from dataclasses import dataclass
from enum import Enum

# Natural letter -> pitch class
LETTER_TO_PC: dict[str, int] = {
    "C": 0,
    "D": 2,
    "E": 4,
    "F": 5,
    "G": 7,
    "A": 9,
    "B": 11,
}

PC_TO_LETTER: dict[int, str] = {pc: letter for letter, pc in LETTER_TO_PC.items()}

# Root-shaped token: one letter A-G with an optional single accidental.
NOTE_RE = re.compile(r"([A-G])([#b]?)")


class Accidental(Enum):
    NATURAL = ""
    SHARP = "#"
    FLAT = "b"


def is_natural(pc: int) -> bool:
    """Return True if *pc* is a white key (has a natural spelling)."""
    return pc % 12 in PC_TO_LETTER


@dataclass(frozen=True)
class Pitch:
    """A pitch class with a display accidental."""

    pc: int
    accidental: Accidental = Accidental.NATURAL

    def __post_init__(self):
        if not 0 <= self.pc <= 11:
            raise ValueError(f"pitch class out of range: {self.pc}")
        if self.accidental is Accidental.NATURAL and not is_natural(self.pc):
            raise ValueError(f"pitch class {self.pc} has no natural spelling")
        if self.accidental is Accidental.SHARP and not is_natural(self.pc - 1):
            raise ValueError(f"pitch class {self.pc} has no single-sharp spelling")
        if self.accidental is Accidental.FLAT and not is_natural(self.pc + 1):
            raise ValueError(f"pitch class {self.pc} has no single-flat spelling")

    @property
    def name(self) -> str:
        """Written note name, e.g. ``"C"``, ``"F#"``, ``"Bb"``, ``"E#"``."""
        if self.accidental is Accidental.SHARP:
            return PC_TO_LETTER[(self.pc - 1) % 12] + "#"
        if self.accidental is Accidental.FLAT:
            return PC_TO_LETTER[(self.pc + 1) % 12] + "b"
        return PC_TO_LETTER[self.pc]

    @classmethod
    def parse(cls, text: str) -> "Pitch | None":
        """Parse an exact note name.  Returns None if *text* is not one."""
        m = NOTE_RE.fullmatch(text)
        if not m:
            return None
        letter, accidental = m.groups()
        pc = LETTER_TO_PC[letter]
        if accidental == "#":
            return cls((pc + 1) % 12, Accidental.SHARP)
        if accidental == "b":
            return cls((pc - 1) % 12, Accidental.FLAT)
        return cls(pc)

    def transposed(self, semitones: int, prefer: Accidental) -> "Pitch":
        """Return this pitch moved by *semitones*, spelled with *prefer*.

        White-key results are always spelled natural; *prefer* only decides
        between the sharp and flat names of a black key.
        """
        pc = (self.pc + semitones) % 12
        return Pitch(pc, spell(pc, prefer))

    def __str__(self) -> str:
        return self.name


def spell(pc: int, prefer: Accidental) -> Accidental:
    """Pick the accidental used to write *pc* given a sharp/flat preference."""
    if is_natural(pc):
        return Accidental.NATURAL
    if prefer is Accidental.FLAT:
        return Accidental.FLAT
    return Accidental.SHARP
