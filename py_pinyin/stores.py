import bisect
import copy
import threading
from collections import Counter
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field

from py_pinyin.matrix import PhoneticMatrix

NULL_TOKEN = 0
SENTENCE_START = 1
RESERVED_TOKENS = (NULL_TOKEN, SENTENCE_START)


@dataclass
class SingleGram:
    """Frequencies of every token seen after one context token."""

    total_freq: int = 0
    items: dict[int, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.items)

    def get_freq(self, token: int) -> int | None:
        return self.items.get(token)

    def insert_freq(self, token: int, freq: int) -> bool:
        if token in self.items:
            return False
        self.items[token] = freq
        return True

    def set_freq(self, token: int, freq: int) -> bool:
        if token not in self.items:
            return False
        self.items[token] = freq
        return True

    def remove_freq(self, token: int) -> int | None:
        return self.items.pop(token, None)

    def retrieve_all(self) -> list[tuple[int, int, float]]:
        """(token, freq, freq / total_freq) sorted by token; normalized to 0.0 when the total is zero."""
        total = self.total_freq
        return [(token, freq, freq / total if total > 0 else 0.0) for token, freq in sorted(self.items.items())]

    def copy(self) -> "SingleGram":
        return SingleGram(self.total_freq, dict(self.items))


def merge_single_gram(system: SingleGram | None, user: SingleGram | None) -> SingleGram | None:
    """Sums system and user counts for the same context, token by token."""
    if system is None and user is None:
        return None
    if system is None:
        return user.copy()
    if user is None:
        return system.copy()
    merged = SingleGram(system.total_freq + user.total_freq, dict(system.items))
    for token, freq in user.items.items():
        merged.items[token] = merged.items.get(token, 0) + freq
    return merged


@dataclass(frozen=True)
class PhraseItem:
    token: int
    text: str

    @property
    def length(self) -> int:
        return len(self.text)


class PhraseIndex:
    """Phrases keyed by their phonetic keys, with unigram frequencies.

    Phrases are added while building; once wrapped in `Statistics` the index is
    only changed through `with_unigram_frequencies`, which returns a new index.
    """

    def __init__(self):
        self.items: dict[int, PhraseItem] = {}
        self.tokens_by_keys: dict[tuple[str, ...], list[int]] = {}
        self.freqs: dict[int, int] = {}
        self._total_freq = 0

    def __len__(self) -> int:
        return len(self.items)

    def add_phrase(self, token: int, text: str, keys: Iterable[str], freq: int = 0):
        if token in RESERVED_TOKENS:
            raise ValueError(f"Token {token} is reserved.")
        existing = self.items.get(token)
        if existing is not None and existing.text != text:
            raise ValueError(f"Token {token} is already registered as {existing.text!r}, not {text!r}.")
        self.items[token] = PhraseItem(token, text)
        bucket = self.tokens_by_keys.setdefault(tuple(keys), [])
        if token not in bucket:
            bisect.insort(bucket, token)
        self.freqs[token] = self.freqs.get(token, 0) + freq
        self._total_freq += freq

    def search(self, keys: Iterable[str]) -> list[PhraseItem]:
        return [self.items[token] for token in self.tokens_by_keys.get(tuple(keys), [])]

    def get_item(self, token: int) -> PhraseItem | None:
        return self.items.get(token)

    def unigram_frequency(self, token: int) -> int:
        return self.freqs.get(token, 0)

    def total_frequency(self) -> int:
        return self._total_freq

    def with_unigram_frequencies(self, deltas: Mapping[int, int]) -> "PhraseIndex":
        new_index = copy.copy(self)
        new_index.freqs = dict(self.freqs)
        for token, delta in deltas.items():
            if token not in self.items:
                raise KeyError(f"Token {token} is not in the phrase index.")
            new_index.freqs[token] += delta
            new_index._total_freq += delta
        return new_index

    def to_text(self, tokens: Iterable[int]) -> str:
        return "".join(self.items[token].text for token in tokens)


class Bigram:
    """System and user bigram records keyed by context token.

    The store takes ownership of the dictionaries passed in. `persist`, when
    given, is called with (token, record) for every user record changed by a
    commit, before the commit becomes visible.
    """

    def __init__(
        self,
        system: dict[int, SingleGram] | None = None,
        user: dict[int, SingleGram] | None = None,
        persist: Callable[[int, SingleGram], None] | None = None,
    ):
        self.system = system if system is not None else {}
        self.user = user if user is not None else {}
        self.persist = persist

    def load(self, token: int) -> SingleGram | None:
        return merge_single_gram(self.system.get(token), self.user.get(token))

    def load_user(self, token: int) -> SingleGram | None:
        gram = self.user.get(token)
        return gram.copy() if gram is not None else None

    def user_tokens(self) -> list[int]:
        return sorted(self.user)

    def with_user_grams(self, grams: Mapping[int, SingleGram]) -> "Bigram":
        user = dict(self.user)
        user.update((token, gram.copy()) for token, gram in grams.items())
        return Bigram(self.system, user, self.persist)


class PronunciationModel:
    """Counts of how often each phrase is spelled with each key sequence."""

    def __init__(self, counts: dict[int, dict[tuple[str, ...], int]] | None = None):
        self.counts = counts if counts is not None else {}

    def add_pronunciation(self, token: int, keys: Iterable[str], count: int):
        token_counts = self.counts.setdefault(token, {})
        keys = tuple(keys)
        token_counts[keys] = token_counts.get(keys, 0) + count

    def probability(self, matrix: PhoneticMatrix, start: int, end: int, keys: tuple[str, ...], item: PhraseItem) -> float:
        # exact key matching only, so the span position does not change the estimate
        token_counts = self.counts.get(item.token)
        if not token_counts:
            return 0.0
        total = sum(token_counts.values())
        if total <= 0:
            return 0.0
        return token_counts.get(tuple(keys), 0) / total

    def with_increases(self, deltas: Mapping[tuple[int, tuple[str, ...]], int]) -> "PronunciationModel":
        counts = dict(self.counts)
        for (token, keys), delta in deltas.items():
            token_counts = dict(counts.get(token, {}))
            token_counts[keys] = token_counts.get(keys, 0) + delta
            counts[token] = token_counts
        return PronunciationModel(counts)


@dataclass(frozen=True)
class Snapshot:
    phrase_index: PhraseIndex
    bigram: Bigram
    pronunciation: PronunciationModel


class Transaction:
    """Stages the statistics changes of one training unit on top of a snapshot."""

    def __init__(self, snapshot: Snapshot):
        self.snapshot = snapshot
        self.user_grams: dict[int, SingleGram] = {}
        self.unigram_deltas = Counter()
        self.pronunciation_deltas = Counter()

    def load_user_gram(self, token: int) -> SingleGram:
        """Returns a private copy of the user record for `token`, creating an empty one if needed."""
        if token in self.user_grams:
            return self.user_grams[token].copy()
        gram = self.snapshot.bigram.load_user(token)
        return gram if gram is not None else SingleGram()

    def store_user_gram(self, token: int, gram: SingleGram):
        self.user_grams[token] = gram.copy()

    def add_unigram_frequency(self, token: int, delta: int):
        self.unigram_deltas[token] += delta

    def increase_pronunciation(self, token: int, keys: tuple[str, ...], delta: int):
        self.pronunciation_deltas[(token, tuple(keys))] += delta

    def commit(self) -> Snapshot:
        if not (self.user_grams or self.unigram_deltas or self.pronunciation_deltas):
            return self.snapshot
        snapshot = Snapshot(
            phrase_index=self.snapshot.phrase_index.with_unigram_frequencies(self.unigram_deltas),
            bigram=self.snapshot.bigram.with_user_grams(self.user_grams),
            pronunciation=self.snapshot.pronunciation.with_increases(self.pronunciation_deltas),
        )
        if snapshot.bigram.persist is not None:
            for token, gram in sorted(self.user_grams.items()):
                snapshot.bigram.persist(token, gram)
        return snapshot


class Statistics:
    """Owner of the current statistics snapshot.

    Readers take `snapshot()` once and keep using it; a commit publishes a whole
    new snapshot with a single assignment, so readers see either all of a
    transaction or none of it.
    """

    def __init__(self, phrase_index: PhraseIndex, bigram: Bigram | None = None, pronunciation: PronunciationModel | None = None):
        self._snapshot = Snapshot(phrase_index, bigram or Bigram(), pronunciation or PronunciationModel())
        self._write_lock = threading.Lock()

    @property
    def phrase_index(self) -> PhraseIndex:
        return self._snapshot.phrase_index

    @property
    def bigram(self) -> Bigram:
        return self._snapshot.bigram

    @property
    def pronunciation(self) -> PronunciationModel:
        return self._snapshot.pronunciation

    def snapshot(self) -> Snapshot:
        return self._snapshot

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        with self._write_lock:
            txn = Transaction(self._snapshot)
            yield txn
            self._snapshot = txn.commit()


def build_statistics(
    phrases: Iterable[tuple[int, str, Iterable[str], int]],
    bigrams: Mapping[int, Mapping[int, int]] | None = None,
    user_bigrams: Mapping[int, Mapping[int, int]] | None = None,
    persist: Callable[[int, SingleGram], None] | None = None,
) -> Statistics:
    """Builds in-memory statistics.

    Args:
        phrases: (token, text, keys, freq) tuples; the pronunciation count of `keys` is `freq`
        bigrams: system bigram counts as {context token: {next token: count}}
        user_bigrams: user bigram counts, same layout
        persist: callback storing changed user records on commit

    Returns:
        Statistics wrapping the phrase index, bigram store and pronunciation model
    """
    phrase_index = PhraseIndex()
    pronunciation = PronunciationModel()
    for token, text, keys, freq in phrases:
        phrase_index.add_phrase(token, text, keys, freq)
        pronunciation.add_pronunciation(token, keys, freq)

    def to_grams(counts):
        return {
            token: SingleGram(sum(next_counts.values()), dict(next_counts))
            for token, next_counts in (counts or {}).items()
        }

    bigram = Bigram(to_grams(bigrams), to_grams(user_bigrams), persist=persist)
    return Statistics(phrase_index, bigram, pronunciation)
