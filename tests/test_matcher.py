"""Tests for the similarity primitives."""

import itertools

import pytest

from tasmee.core.matcher import (
    ScoreWeights,
    combined_score,
    edit_distance,
    exact_match_ratio,
    fuzzy_match_ratio,
    length_similarity,
    sequential_similarity,
    word_similarity,
)
from tasmee.data.corpus import load_sample_corpus

WORDS = ["", "a", "ab", "abc", "الله", "الرحمن", "الرحيم", "xyz"]


class TestWordSimilarity:
    def test_edit_distance(self) -> None:
        assert edit_distance("kitten", "sitting") == 3
        assert edit_distance("", "abc") == 3

    def test_identical(self) -> None:
        for word in WORDS[1:]:
            assert word_similarity(word, word) == 1.0

    def test_scaled_by_longer_word(self) -> None:
        assert word_similarity("abcd", "abcf") == pytest.approx(0.75)
        assert word_similarity("ab", "abcd") == pytest.approx(0.5)

    def test_empty_never_matches(self) -> None:
        assert word_similarity("", "") == 0.0
        assert word_similarity("a", "") == 0.0

    def test_bounded(self) -> None:
        for a, b in itertools.product(WORDS, repeat=2):
            assert 0.0 <= word_similarity(a, b) <= 1.0

    def test_case_insensitive(self) -> None:
        assert word_similarity("ABC", "abc") == 1.0


class TestRatios:
    def test_exact_is_one_to_one(self) -> None:
        assert exact_match_ratio(["a", "a"], ["a", "b"]) == pytest.approx(0.5)

    def test_exact_divides_by_longer(self) -> None:
        assert exact_match_ratio(["a", "b"], ["a", "b", "c", "d"]) == pytest.approx(0.5)

    def test_exact_empty(self) -> None:
        assert exact_match_ratio([], ["a"]) == 0.0

    def test_fuzzy_threshold_is_strict(self) -> None:
        assert fuzzy_match_ratio(["abcx"], ["abcd"]) == 0.0
        assert fuzzy_match_ratio(["abcx"], ["abcd"], threshold=0.7) == 1.0

    def test_fuzzy_prefers_most_similar(self) -> None:
        # "abcde" takes "abcdf" (0.8), leaving "abxyz" unmatched
        assert fuzzy_match_ratio(["abcde"], ["abxyz", "abcdf"]) == pytest.approx(0.5)

    def test_sequential_rewards_order(self) -> None:
        assert sequential_similarity(["a", "b", "c"], ["a", "b", "c"]) == 1.0
        assert sequential_similarity(["c", "b", "a"], ["a", "b", "c"]) == pytest.approx(1 / 3)

    def test_sequential_with_gap(self) -> None:
        assert sequential_similarity(["a", "c"], ["a", "b", "c"]) == pytest.approx(2 / 3)

    def test_length_similarity(self) -> None:
        assert length_similarity(["a", "b"], ["a", "b", "c", "d"]) == pytest.approx(0.5)
        assert length_similarity([], []) == 0.0


class TestCombinedScore:
    def test_identical_lists_score_one(self) -> None:
        words = ["بسم", "الله", "الرحمن", "الرحيم"]
        assert combined_score(words, words) == pytest.approx(1.0)

    def test_one_substitution(self) -> None:
        score = combined_score(["a", "x", "c", "d"], ["a", "b", "c", "d"])
        assert score == pytest.approx(0.775)

    def test_empty(self) -> None:
        assert combined_score([], ["a"]) == 0.0
        assert combined_score(["a"], []) == 0.0

    def test_custom_weights(self) -> None:
        weights = ScoreWeights(exact=1.0, fuzzy=0.0, sequential=0.0, length=0.0)
        assert combined_score(["a", "x"], ["a", "b"], weights) == pytest.approx(0.5)

    def test_weights_are_rescaled(self) -> None:
        weights = ScoreWeights(exact=2.0, fuzzy=0.0, sequential=0.0, length=0.0)
        assert combined_score(["a", "x"], ["a", "b"], weights) == pytest.approx(0.5)

    def test_zero_weights(self) -> None:
        weights = ScoreWeights(exact=0.0, fuzzy=0.0, sequential=0.0, length=0.0)
        assert combined_score(["a"], ["a"], weights) == 0.0

    def test_every_sample_verse_matches_itself(self) -> None:
        for verse in load_sample_corpus().iter_verses():
            words = list(verse.normalized_words)
            assert combined_score(words, words) == pytest.approx(1.0)
