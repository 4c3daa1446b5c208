"""
Arabic text normalization.

Canonicalizes reference text and transcripts into a diacritic-free form so
that surface variation (vowel marks, Quranic annotation marks, alternative
letter shapes) does not block matching.
"""

import re
import unicodedata
from enum import Enum
from typing import Optional, Sequence

# Harakat, Quranic annotation marks, superscript alef and tatweel
_DIACRITICS = re.compile(r"[\u0610-\u061A\u064B-\u065F\u0670\u06D6-\u06ED\u08D3-\u08FF\u0640]")

# Letters that are read the same and written differently
_LETTER_VARIANTS = str.maketrans(
    {
        "ٱ": "ا",  # alef wasla
        "آ": "ا",  # alef madda
        "أ": "ا",  # alef hamza above
        "إ": "ا",  # alef hamza below
        "ٲ": "ا",
        "ٳ": "ا",
        "ى": "ي",  # alef maksura
        "ی": "ي",  # farsi yeh
        "ئ": "ي",  # yeh hamza
        "ؤ": "و",  # waw hamza
        "ة": "ه",  # taa marbuta
        "ۀ": "ه",
        "ە": "ه",
        "ھ": "ه",
        "ک": "ك",  # keheh
        "ڪ": "ك",
        "ء": None,  # bare hamza
    }
)

_NON_LETTERS = re.compile(r"[^\u0621-\u063A\u0641-\u064Aa-zA-Z\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_arabic(text: Optional[str]) -> str:
    """
    Normalize Arabic text for comparison.

    Steps:
    1. Decompose so that hamza/madda marks separate from their base letter
    2. Remove diacritics, annotation marks and tatweel
    3. Fold letter variants to a single base form
    4. Drop everything that is not a letter or whitespace
    5. Collapse whitespace
    6. Lowercase (for transliterated input)

    The function is idempotent.

    Args:
        text: Arabic (or transliterated) text

    Returns:
        Normalized text

    Examples:
        >>> normalize_arabic("بِسْمِ ٱللَّهِ ٱلرَّحْمَـٰنِ")
        'بسم الله الرحمن'
    """
    if not text:
        return ""

    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _DIACRITICS.sub("", text)
    text = text.translate(_LETTER_VARIANTS)
    text = _NON_LETTERS.sub("", text)
    text = _WHITESPACE.sub(" ", text).strip()
    return text.lower()


def tokenize(text: Optional[str]) -> list[str]:
    """Normalize text and split it into words."""
    return normalize_arabic(text).split()


class SpecialPhrase(str, Enum):
    """Formulas recited around verses that are not part of them."""

    ISTIADHA = "istiadha"
    BASMALA = "basmala"


ISTIADHA_PATTERN = re.compile(r"[او]?عوذ\s*بالله\s*من\s*الشيطان\s*الرجيم")
BASMALA_PATTERN = re.compile(r"(?:ب\s*س?م?\s*)?الله\s*الرحمن\s*الرحيم")


def detect_special_phrase(text: str) -> Optional[SpecialPhrase]:
    """
    Detect isti'adha or basmala in a transcript.

    Args:
        text: Raw or normalized transcript

    Returns:
        The detected phrase, or None
    """
    normalized = normalize_arabic(text)
    if ISTIADHA_PATTERN.search(normalized):
        return SpecialPhrase.ISTIADHA
    if BASMALA_PATTERN.search(normalized):
        return SpecialPhrase.BASMALA
    return None


_PHRASE_PATTERNS = {
    SpecialPhrase.ISTIADHA: ISTIADHA_PATTERN,
    SpecialPhrase.BASMALA: BASMALA_PATTERN,
}


def special_phrase_span(words: Sequence[str], phrase: SpecialPhrase) -> Optional[tuple[int, int]]:
    """
    Word range covered by a special phrase in normalized words.

    Args:
        words: Normalized words
        phrase: Phrase to look for

    Returns:
        (start, end) word indices, end exclusive, or None if absent

    Examples:
        >>> special_phrase_span(["اعوذ", "بالله", "من", "الشيطان", "الرجيم", "الحمد"], SpecialPhrase.ISTIADHA)
        (0, 5)
    """
    text = " ".join(words)
    m = _PHRASE_PATTERNS[phrase].search(text)
    if m is None:
        return None
    return text[:m.start()].count(" "), text[:m.end() - 1].count(" ") + 1
