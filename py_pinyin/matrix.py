from collections.abc import Iterable
from dataclasses import dataclass

import regex as re

# user-typed syllable boundaries: apostrophes (ASCII or full-width) and whitespace
SYLLABLE_SEPARATOR_REGEX = r"[\p{Z}\s'’]+"
MAX_PHRASE_LEN = 8


@dataclass(frozen=True)
class Span:
    end: int
    keys: tuple[str, ...]


class PhoneticMatrix:
    """Valid phonetic spans over the input, indexed by start position.

    Positions run from 0 to `size`; the lattice built over the matrix has
    `nstep = size + 1` steps.
    """

    def __init__(self, spans_from_pos: list[list[Span]]):
        self.spans_from_pos = spans_from_pos
        for pos, spans in enumerate(spans_from_pos):
            for span in spans:
                if not pos < span.end <= len(spans_from_pos):
                    raise ValueError(f"Span {span} starting at {pos} is outside the matrix of size {len(spans_from_pos)}")

    @property
    def size(self) -> int:
        return len(self.spans_from_pos)

    @property
    def nstep(self) -> int:
        return self.size + 1

    def spans(self, pos: int) -> list[Span]:
        if pos >= self.size:
            return []
        return self.spans_from_pos[pos]

    @classmethod
    def from_syllables(cls, syllables: Iterable[str], max_phrase_len: int = MAX_PHRASE_LEN) -> "PhoneticMatrix":
        if isinstance(syllables, str):
            raise ValueError("Syllables must be an iterable of strings, not a single string.")
        syllables = tuple(syllables)
        spans_from_pos = [
            [Span(end, syllables[start:end]) for end in range(start + 1, min(len(syllables), start + max_phrase_len) + 1)]
            for start in range(len(syllables))
        ]
        return cls(spans_from_pos)


def split_syllables(text: str, regex_pattern: str = SYLLABLE_SEPARATOR_REGEX) -> list[str]:
    """
    Splits already-delimited phonetic input such as "ni'hao shi'jie" into syllables.
    """
    return [syllable.lower() for syllable in re.split(regex_pattern, text) if syllable]
