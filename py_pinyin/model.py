import heapq
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from py_pinyin.stores import NULL_TOKEN


@dataclass(frozen=True)
class Candidate:
    """A partial parse ending at some lattice step.

    (prev_token, token) is the bigram context for further expansion, and
    (origin_pos, origin_index) points at the candidate it was expanded from.
    Seeds have no origin.
    """

    prev_token: int
    token: int
    length: int = 0
    score: float = 0.0
    origin_pos: int | None = None
    origin_index: int | None = None
    keys: tuple[str, ...] = ()


@dataclass(frozen=True)
class Match:
    token: int
    start: int
    end: int
    keys: tuple[str, ...]


@dataclass(frozen=True)
class MatchResult:
    prefix: int
    matches: tuple[Match, ...]
    score: float

    def __len__(self) -> int:
        return len(self.matches)

    def __iter__(self) -> Iterator[Match]:
        return iter(self.matches)

    @property
    def tokens(self) -> list[int]:
        return [match.token for match in self.matches]

    @property
    def spans(self) -> list[tuple[int, int]]:
        return [(match.start, match.end) for match in self.matches]


class Lattice:
    def __init__(self, nstep: int):
        if nstep < 1:
            raise ValueError(f"A lattice needs at least one step, got {nstep}.")
        self.nstep = nstep
        self.steps_content: list[list[Candidate]] = [[] for _ in range(nstep)]
        self.steps_index: list[dict[int, int]] = [{} for _ in range(nstep)]

    def candidates(self, pos: int) -> list[Candidate]:
        return self.steps_content[pos]

    def seed(self, prefixes: Iterable[int]):
        for token in prefixes:
            self.insert(0, Candidate(NULL_TOKEN, token))

    def insert(self, pos: int, candidate: Candidate) -> bool:
        """Adds `candidate` at `pos`, keeping one candidate per last token.

        On a collision the longer candidate wins, then the higher score; on an
        exact tie the candidate already present stays. Replacement is in place
        so indices used as backpointers never shift.

        Returns:
            True if the candidate was stored
        """
        content, index = self.steps_content[pos], self.steps_index[pos]
        existing_index = index.get(candidate.token)
        if existing_index is None:
            index[candidate.token] = len(content)
            content.append(candidate)
            return True

        existing = content[existing_index]
        if existing.length > candidate.length:
            return False
        if existing.length == candidate.length and existing.score >= candidate.score:
            return False
        content[existing_index] = candidate
        return True

    def top_candidates(self, pos: int, nbeam: int) -> list[int]:
        """Indices of the `nbeam` best candidates at `pos`, by score then lowest token id."""
        content = self.steps_content[pos]
        return heapq.nlargest(nbeam, range(len(content)), key=lambda i: (content[i].score, -content[i].token))

    def final_candidates(self) -> list[int]:
        # shortest first, then best score; deliberately not the merge order
        content = self.steps_content[-1]
        return sorted(range(len(content)), key=lambda i: (content[i].length, -content[i].score))

    def final_candidate(self) -> int | None:
        ranked = self.final_candidates()
        return ranked[0] if ranked else None

    def backtrace(self, pos: int, index: int) -> MatchResult:
        candidate = self.steps_content[pos][index]
        score = candidate.score
        matches = []
        while candidate.origin_pos is not None:
            assert candidate.origin_pos < pos, f"Backpointer from step {pos} to step {candidate.origin_pos}"
            matches.append(Match(candidate.token, candidate.origin_pos, pos, candidate.keys))
            pos = candidate.origin_pos
            candidate = self.steps_content[pos][candidate.origin_index]
        assert pos == 0, f"Backtrace ended on a seedless candidate at step {pos}"
        return MatchResult(prefix=candidate.token, matches=tuple(reversed(matches)), score=score)
