import pytest

from py_pinyin.model import Candidate, Lattice, Match, MatchResult
from py_pinyin.stores import NULL_TOKEN, SENTENCE_START


@pytest.fixture
def seeded_lattice():
    lattice = Lattice(3)
    lattice.seed([SENTENCE_START])
    return lattice


def child(token, length, score, origin_pos=0, origin_index=0, prev_token=SENTENCE_START):
    return Candidate(prev_token, token, length, score, origin_pos, origin_index, ("x",))


# --- Merge policy ---
class TestInsert:
    def test_seed(self, seeded_lattice):
        assert seeded_lattice.candidates(0) == [Candidate(NULL_TOKEN, SENTENCE_START)]
        assert seeded_lattice.steps_index[0] == {SENTENCE_START: 0}

    def test_identical_copy_is_idempotent(self, seeded_lattice):
        original = child(20, 2, -1.0)
        assert seeded_lattice.insert(1, original)
        assert not seeded_lattice.insert(1, child(20, 2, -1.0))
        assert seeded_lattice.candidates(1) == [original]

    @pytest.mark.parametrize("first_score,second_score", [(-1.0, -9.0), (-9.0, -1.0)])
    def test_longer_wins_regardless_of_score(self, seeded_lattice, first_score, second_score):
        seeded_lattice.insert(1, child(20, 3, first_score))
        seeded_lattice.insert(1, child(20, 5, second_score))
        assert [c.length for c in seeded_lattice.candidates(1)] == [5]
        seeded_lattice.insert(1, child(20, 3, 0.0))
        assert [c.length for c in seeded_lattice.candidates(1)] == [5]

    def test_equal_length_keeps_higher_score(self, seeded_lattice):
        seeded_lattice.insert(1, child(20, 4, -2.0))
        seeded_lattice.insert(1, child(20, 4, -1.5))
        assert [c.score for c in seeded_lattice.candidates(1)] == [-1.5]
        seeded_lattice.insert(1, child(20, 4, -2.0))
        assert [c.score for c in seeded_lattice.candidates(1)] == [-1.5]

    def test_exact_tie_keeps_first_seen(self, seeded_lattice):
        first = Candidate(30, 20, 4, -2.0, 0, 0)
        seeded_lattice.insert(1, first)
        seeded_lattice.insert(1, Candidate(31, 20, 4, -2.0, 0, 0))
        assert seeded_lattice.candidates(1) == [first]

    def test_replacement_keeps_index(self, seeded_lattice):
        seeded_lattice.insert(1, child(20, 1, -1.0))
        seeded_lattice.insert(1, child(21, 1, -1.0))
        seeded_lattice.insert(1, child(20, 2, -3.0))
        assert [c.token for c in seeded_lattice.candidates(1)] == [20, 21]
        assert seeded_lattice.steps_index[1] == {20: 0, 21: 1}
        assert seeded_lattice.candidates(1)[0].length == 2


# --- Beam extraction ---
def test_top_candidates_order_and_ties(seeded_lattice):
    for token, score in [(25, -1.0), (21, -3.0), (24, -0.5), (22, -1.0)]:
        seeded_lattice.insert(1, child(token, 1, score))
    content = seeded_lattice.candidates(1)
    assert [content[i].token for i in seeded_lattice.top_candidates(1, 10)] == [24, 22, 25, 21]
    assert [content[i].token for i in seeded_lattice.top_candidates(1, 2)] == [24, 22]
    assert seeded_lattice.top_candidates(2, 5) == []


# --- Final selection and backtrace ---
class TestFinalSelection:
    def test_shorter_wins_over_better_score(self):
        lattice = Lattice(2)
        lattice.seed([SENTENCE_START])
        lattice.insert(1, child(20, 3, -5.0))
        lattice.insert(1, child(21, 2, -1.0))
        assert lattice.candidates(1)[lattice.final_candidate()].token == 21

    def test_shorter_wins_even_with_worse_score(self):
        lattice = Lattice(2)
        lattice.seed([SENTENCE_START])
        lattice.insert(1, child(20, 2, -5.0))
        lattice.insert(1, child(21, 3, -1.0))
        assert lattice.candidates(1)[lattice.final_candidate()].token == 20

    def test_length_tie_uses_score_then_order(self):
        lattice = Lattice(2)
        lattice.seed([SENTENCE_START])
        for token, score in [(20, -2.0), (21, -1.0), (22, -1.0)]:
            lattice.insert(1, child(token, 2, score))
        content = lattice.candidates(1)
        assert [content[i].token for i in lattice.final_candidates()] == [21, 22, 20]

    def test_empty_final_step(self, seeded_lattice):
        assert seeded_lattice.final_candidate() is None
        assert seeded_lattice.final_candidates() == []

    def test_backtrace(self, seeded_lattice):
        seeded_lattice.insert(1, Candidate(SENTENCE_START, 20, 1, -1.0, 0, 0, ("a",)))
        seeded_lattice.insert(2, Candidate(20, 21, 2, -2.5, 1, 0, ("b",)))
        seeded_lattice.insert(2, Candidate(SENTENCE_START, 22, 2, -3.0, 0, 0, ("a", "b")))
        result = seeded_lattice.backtrace(2, seeded_lattice.final_candidate())
        assert result == MatchResult(
            prefix=SENTENCE_START,
            matches=(Match(20, 0, 1, ("a",)), Match(21, 1, 2, ("b",))),
            score=-2.5,
        )
        assert result.tokens == [20, 21]
        assert result.spans == [(0, 1), (1, 2)]
        assert len(result) == 2

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            Lattice(0)
