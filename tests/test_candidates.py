"""Tests for candidate verse search."""

import pytest

from conftest import make_corpus
from tasmee.config import TasmeeSettings
from tasmee.core.candidates import CandidateMatcher
from tasmee.data.corpus import Corpus


class TestFindBestMatch:
    def test_exact_recitation(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus).find_best_match(["a", "b", "c", "d"], 1, 1, 0)
        assert result.is_match
        assert result.confidence == pytest.approx(1.0)
        assert result.match_length == 4
        assert result.start_word_index == 0
        assert (result.chapter, result.verse) == (1, 1)

    def test_one_wrong_word_still_matches(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus).find_best_match(["a", "x", "c", "d"], 1, 1, 0)
        assert result.is_match
        assert result.confidence == pytest.approx(0.775)
        assert result.expected_words == ["a", "b", "c", "d"]

    def test_window_is_transcript_length(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus).find_best_match(["a", "b", "c"], 1, 1, 0)
        assert result.is_match
        assert result.match_length == 3
        assert result.expected_words == ["a", "b", "c", "d"]

    def test_starts_at_cursor(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus).find_best_match(["c", "d"], 1, 1, 2)
        assert result.is_match
        assert result.start_word_index == 2
        assert result.expected_words == ["c", "d"]

    def test_window_capped_by_remaining_words(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus).find_best_match(["c", "d", "e", "f"], 1, 1, 2)
        assert (result.chapter, result.verse) == (1, 1)
        assert result.match_length == 2
        assert result.confidence == pytest.approx(1.0)

    def test_unrelated_transcript(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus).find_best_match(["qqq", "www", "eee"], 1, 1, 0)
        assert not result.is_match
        assert result.confidence <= 0.6

    def test_neighbor_verse(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus).find_best_match(["i", "j", "k", "l"], 1, 1, 0)
        assert result.is_match
        assert (result.chapter, result.verse) == (1, 3)
        assert result.start_word_index == 0

    def test_outside_search_window(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus).find_best_match(["m", "n", "o", "p"], 1, 1, 0)
        assert not result.is_match

    def test_wider_search_window(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus, search_window=3).find_best_match(["m", "n", "o", "p"], 1, 1, 0)
        assert result.is_match
        assert (result.chapter, result.verse) == (1, 4)

    def test_tie_goes_to_expected_verse(self) -> None:
        repeated = make_corpus({1: ("Repeated", ["A B", "A B", "A B"])})
        result = CandidateMatcher(repeated).find_best_match(["a", "b"], 1, 2, 0)
        assert (result.chapter, result.verse) == (1, 2)

    def test_empty_transcript(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus).find_best_match([], 1, 1, 0)
        assert not result.is_match
        assert not result.has_candidate

    def test_from_settings(self, corpus: Corpus) -> None:
        settings = TasmeeSettings(match_threshold=0.8, search_window=1)
        matcher = CandidateMatcher.from_settings(corpus, settings)
        assert matcher.search_window == 1
        assert not matcher.find_best_match(["a", "x", "c", "d"], 1, 1, 0).is_match


class TestFindSimilarVerse:
    def test_finds_other_chapter(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus).find_similar_verse(["u", "v", "w", "x"], exclude=(1, 1))
        assert result.is_match
        assert (result.chapter, result.verse) == (2, 1)

    def test_excludes_expected_verse(self) -> None:
        single = make_corpus({1: ("Only", ["A B C D"])})
        result = CandidateMatcher(single).find_similar_verse(["a", "b", "c", "d"], exclude=(1, 1))
        assert not result.is_match

    def test_nothing_similar(self, corpus: Corpus) -> None:
        result = CandidateMatcher(corpus).find_similar_verse(["qqq", "www"])
        assert not result.is_match
