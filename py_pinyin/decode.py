import math
import sys
import time
from collections.abc import Iterable

from py_pinyin.matrix import PhoneticMatrix, Span
from py_pinyin.model import Candidate, Lattice, MatchResult
from py_pinyin.stores import SENTENCE_START, PhraseItem, SingleGram, Snapshot, Statistics
from py_pinyin.utils import create_logger, log_examples

DEFAULT_NBEAM = 32
DEFAULT_BIGRAM_LAMBDA = 0.5
EPSILON = sys.float_info.epsilon


class DecodeTimeoutError(TimeoutError):
    pass


def unigram_score(cur_score: float, elem_prob: float, pronunciation_prob: float, unigram_lambda: float) -> float | None:
    """New score for a unigram expansion, or None when the product is not positive.

    The factors are multiplied first and a single logarithm is taken, which
    fixes the floating point result.
    """
    product = elem_prob * pronunciation_prob * unigram_lambda
    if product <= 0.0:
        return None
    return cur_score + math.log(product)


def bigram_score(cur_score: float, combined: float, pronunciation_prob: float) -> float | None:
    """New score for a bigram expansion; `combined` is the interpolated bigram/unigram probability."""
    product = combined * pronunciation_prob
    if product <= 0.0:
        return None
    return cur_score + math.log(product)


class PhoneticDecoder:
    """Beam-limited lattice search for the most plausible phrase sequence.

    Args:
        statistics: phrase index, bigram and pronunciation statistics
        nbeam: maximum number of candidates expanded from a single step
        bigram_lambda: interpolation weight of the bigram estimate, in [0, 1]
        verbose: log per-step details
    """

    def __init__(
        self,
        statistics: Statistics,
        nbeam: int = DEFAULT_NBEAM,
        bigram_lambda: float = DEFAULT_BIGRAM_LAMBDA,
        verbose: bool = False,
    ):
        if not 0.0 <= bigram_lambda <= 1.0:
            raise ValueError(f"bigram_lambda must be within [0, 1], got {bigram_lambda}.")
        if nbeam < 1:
            raise ValueError(f"nbeam must be at least 1, got {nbeam}.")
        self.statistics = statistics
        self.nbeam = nbeam
        self.bigram_lambda = bigram_lambda
        self.unigram_lambda = 1.0 - bigram_lambda
        self.logger = create_logger("decode", verbose)

    def decode(
        self,
        matrix: PhoneticMatrix,
        prefixes: Iterable[int] = (SENTENCE_START,),
        timeout: float | None = None,
    ) -> MatchResult | None:
        """Returns the best phrase sequence covering the whole matrix, or None if there is none."""
        lattice = self.build_lattice(matrix, prefixes, timeout)
        index = lattice.final_candidate()
        if index is None:
            self.logger.info(f"🚫 No phrase sequence covers all {matrix.size} positions")
            return None
        result = lattice.backtrace(lattice.nstep - 1, index)
        self.logger.info(f"🔍 Decoded {matrix.size} positions into {len(result)} phrases, score {result.score:.4f}")
        return result

    def decode_nbest(
        self,
        matrix: PhoneticMatrix,
        n: int,
        prefixes: Iterable[int] = (SENTENCE_START,),
        timeout: float | None = None,
    ) -> list[MatchResult]:
        """Up to `n` complete phrase sequences in final selection order; the first one is what `decode` returns."""
        if n < 1:
            raise ValueError(f"n must be at least 1, got {n}.")
        lattice = self.build_lattice(matrix, prefixes, timeout)
        results = [lattice.backtrace(lattice.nstep - 1, index) for index in lattice.final_candidates()[:n]]
        self.logger.info(f"🔍 Found {len(results)} of {n} requested phrase sequences")
        return results

    def build_lattice(self, matrix: PhoneticMatrix, prefixes: Iterable[int], timeout: float | None = None) -> Lattice:
        prefixes = tuple(prefixes)
        if not prefixes:
            raise ValueError("At least one prefix token is needed to seed the lattice.")
        deadline = None if timeout is None else time.monotonic() + timeout
        snapshot = self.statistics.snapshot()

        lattice = Lattice(matrix.nstep)
        lattice.seed(prefixes)
        merged_grams: dict[int, SingleGram | None] = {}

        for pos in range(lattice.nstep - 1):
            self._check_deadline(deadline, timeout, pos)
            content = lattice.candidates(pos)
            spans = matrix.spans(pos)
            if not content or not spans:
                self.logger.debug(f"   ├─ Step {pos}: {len(content)} candidates, {len(spans)} spans, nothing to expand")
                continue

            span_items = []
            for span in spans:
                items = [
                    (item, snapshot.pronunciation.probability(matrix, pos, span.end, span.keys, item))
                    for item in snapshot.phrase_index.search(span.keys)
                ]
                # pronunciations indistinguishable from zero can only produce -inf scores
                items = [(item, prob) for item, prob in items if abs(prob) >= EPSILON]
                if items:
                    span_items.append((span, items))

            selected = lattice.top_candidates(pos, self.nbeam)
            self.logger.debug(
                f"   ├─ Step {pos}: expanding {len(selected)} of {len(content)} candidates into {len(span_items)} spans"
            )
            for index in selected:
                self._check_deadline(deadline, timeout, pos)
                candidate = content[index]
                if candidate.token not in merged_grams:
                    merged_grams[candidate.token] = snapshot.bigram.load(candidate.token)
                for span, items in span_items:
                    self._expand_bigram(lattice, snapshot, merged_grams[candidate.token], pos, index, candidate, span, items)
                    self._expand_unigram(lattice, snapshot, pos, index, candidate, span, items)

        final = lattice.candidates(lattice.nstep - 1)
        self.logger.debug(f"   └─ Final step holds {len(final)} candidates")
        if final:
            log_examples(self.logger, [(str(c.token), c.score) for c in final], "score")
        return lattice

    def _expand_bigram(
        self,
        lattice: Lattice,
        snapshot: Snapshot,
        gram: SingleGram | None,
        pos: int,
        index: int,
        candidate: Candidate,
        span: Span,
        items: list[tuple[PhraseItem, float]],
    ):
        if gram is None or gram.total_freq <= 0:
            return
        total_freq = snapshot.phrase_index.total_frequency()
        if total_freq <= 0:
            return
        for item, pronunciation_prob in items:
            freq = gram.get_freq(item.token)
            if freq is None:
                continue
            bigram_prob = freq / gram.total_freq
            unigram_prob = snapshot.phrase_index.unigram_frequency(item.token) / total_freq
            combined = self.bigram_lambda * bigram_prob + self.unigram_lambda * unigram_prob
            score = bigram_score(candidate.score, combined, pronunciation_prob)
            if score is None:
                continue
            lattice.insert(span.end, self._next_candidate(candidate, item, score, pos, index, span))

    def _expand_unigram(
        self,
        lattice: Lattice,
        snapshot: Snapshot,
        pos: int,
        index: int,
        candidate: Candidate,
        span: Span,
        items: list[tuple[PhraseItem, float]],
    ):
        total_freq = snapshot.phrase_index.total_frequency()
        if total_freq <= 0:
            return
        for item, pronunciation_prob in items:
            elem_prob = snapshot.phrase_index.unigram_frequency(item.token) / total_freq
            score = unigram_score(candidate.score, elem_prob, pronunciation_prob, self.unigram_lambda)
            if score is None:
                continue
            lattice.insert(span.end, self._next_candidate(candidate, item, score, pos, index, span))

    @staticmethod
    def _next_candidate(candidate: Candidate, item: PhraseItem, score: float, pos: int, index: int, span: Span) -> Candidate:
        return Candidate(
            prev_token=candidate.token,
            token=item.token,
            length=candidate.length + item.length,
            score=score,
            origin_pos=pos,
            origin_index=index,
            keys=span.keys,
        )

    @staticmethod
    def _check_deadline(deadline: float | None, timeout: float | None, pos: int):
        if deadline is not None and time.monotonic() >= deadline:
            raise DecodeTimeoutError(f"Decoding exceeded the {timeout}s deadline at step {pos}")
