"""Tests for Arabic text normalization."""

import pytest

from tasmee.core.arabic import (
    SpecialPhrase,
    detect_special_phrase,
    normalize_arabic,
    special_phrase_span,
    tokenize,
)

SAMPLES = [
    "بِسْمِ ٱللَّهِ ٱلرَّحْمَـٰنِ ٱلرَّحِيمِ",
    "الْحَمْدُ لِلَّهِ رَبِّ الْعَالَمِينَ",
    "إِيَّاكَ نَعْبُدُ وَإِيَّاكَ نَسْتَعِينُ",
    "صِرَاطَ الَّذِينَ أَنْعَمْتَ عَلَيْهِمْ",
    "قُلْ هُوَ اللَّهُ أَحَدٌ",
    "  Mixed   TEXT, with punctuation!  ",
    "",
]


class TestNormalizeArabic:
    def test_removes_diacritics(self) -> None:
        assert normalize_arabic("بِسْمِ ٱللَّهِ ٱلرَّحْمَـٰنِ ٱلرَّحِيمِ") == "بسم الله الرحمن الرحيم"

    @pytest.mark.parametrize("text", SAMPLES)
    def test_idempotent(self, text: str) -> None:
        once = normalize_arabic(text)
        assert normalize_arabic(once) == once

    def test_diacritic_insensitive(self) -> None:
        assert normalize_arabic("الْحَمْدُ لِلَّهِ") == normalize_arabic("الحمد لله")

    def test_alef_variants(self) -> None:
        assert normalize_arabic("أ إ آ ٱ") == "ا ا ا ا"

    def test_taa_marbuta_and_alef_maksura(self) -> None:
        assert normalize_arabic("الصلاة") == "الصلاه"
        assert normalize_arabic("هدى") == "هدي"

    def test_hamza_carriers(self) -> None:
        assert normalize_arabic("مؤمن") == "مومن"
        assert normalize_arabic("سئل") == "سيل"

    def test_persian_letters(self) -> None:
        assert normalize_arabic("کتاب") == "كتاب"
        assert normalize_arabic("فی") == "في"

    def test_tatweel_removed(self) -> None:
        assert normalize_arabic("الرحمـــن") == "الرحمن"

    def test_collapses_whitespace(self) -> None:
        assert normalize_arabic("  بسم \n\t الله  ") == "بسم الله"

    def test_latin_lowercased_and_punctuation_dropped(self) -> None:
        assert normalize_arabic("Hello, World!") == "hello world"

    def test_empty_and_none(self) -> None:
        assert normalize_arabic("") == ""
        assert normalize_arabic(None) == ""

    def test_tokenize(self) -> None:
        assert tokenize("قُلْ هُوَ اللَّهُ أَحَدٌ") == ["قل", "هو", "الله", "احد"]
        assert tokenize("") == []


class TestSpecialPhrases:
    def test_detects_istiadha(self) -> None:
        text = "أَعُوذُ بِاللَّهِ مِنَ الشَّيْطَانِ الرَّجِيمِ"
        assert detect_special_phrase(text) == SpecialPhrase.ISTIADHA

    def test_detects_basmala(self) -> None:
        assert detect_special_phrase("بسم الله الرحمن الرحيم") == SpecialPhrase.BASMALA

    def test_plain_verse(self) -> None:
        assert detect_special_phrase("الحمد لله رب العالمين") is None

    def test_span_of_istiadha_before_verse(self) -> None:
        words = tokenize("أعوذ بالله من الشيطان الرجيم الحمد لله")
        assert special_phrase_span(words, SpecialPhrase.ISTIADHA) == (0, 5)

    def test_span_of_basmala(self) -> None:
        words = ["بسم", "الله", "الرحمن", "الرحيم", "قل", "هو"]
        assert special_phrase_span(words, SpecialPhrase.BASMALA) == (0, 4)

    def test_span_absent(self) -> None:
        assert special_phrase_span(["قل", "هو"], SpecialPhrase.BASMALA) is None
