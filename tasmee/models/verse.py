"""
Verse and chapter data models.
"""

from typing import Optional

from pydantic import BaseModel, Field, computed_field, model_validator


class Verse(BaseModel):
    """
    A single verse of the reference text.

    Verses are immutable once loaded and owned by the Corpus.

    Attributes:
        chapter_number: Chapter the verse belongs to (1-based)
        verse_number: Position of the verse within its chapter (1-based)
        original_text: Text as found in the source, diacritics included
        normalized_text: Diacritic-free comparable form of the text
        words: Whitespace tokens of the original text
        normalized_words: Tokens of the normalized text (used for matching)
        translation: Optional translation carried by the source
    """

    model_config = {"frozen": True}

    chapter_number: int = Field(..., ge=1)
    verse_number: int = Field(..., ge=1)
    original_text: str
    normalized_text: str
    words: tuple[str, ...] = ()
    normalized_words: tuple[str, ...] = ()
    translation: str = ""

    @computed_field
    @property
    def word_count(self) -> int:
        """Number of comparable (normalized) words."""
        return len(self.normalized_words)

    @property
    def reference(self) -> str:
        """Chapter:verse reference string."""
        return f"{self.chapter_number}:{self.verse_number}"

    def __str__(self) -> str:
        return f"Verse({self.reference}, {self.word_count} words)"


class Chapter(BaseModel):
    """
    A chapter of the reference text with its verses in ascending order.

    ``total_verse_count`` comes from chapter metadata and may exceed the
    number of loaded verses when the corpus is partial.
    """

    model_config = {"frozen": True}

    number: int = Field(..., ge=1)
    name: str = ""
    arabic_name: str = ""
    translation: str = ""
    total_verse_count: int = Field(default=0, ge=0)
    verses: tuple[Verse, ...] = ()

    @model_validator(mode="after")
    def _check_verses(self) -> "Chapter":
        numbers = [v.verse_number for v in self.verses]
        if numbers != sorted(numbers):
            raise ValueError(f"verses of chapter {self.number} are not in ascending order")
        if len(set(numbers)) != len(numbers):
            raise ValueError(f"chapter {self.number} has duplicate verse numbers")
        if any(v.chapter_number != self.number for v in self.verses):
            raise ValueError(f"chapter {self.number} contains verses of another chapter")
        if self.total_verse_count < len(self.verses):
            raise ValueError(
                f"chapter {self.number} declares {self.total_verse_count} verses "
                f"but {len(self.verses)} were loaded"
            )
        return self

    @property
    def is_partial(self) -> bool:
        """Whether fewer verses are loaded than the chapter declares."""
        return len(self.verses) < self.total_verse_count

    @property
    def display_name(self) -> str:
        return self.name or self.arabic_name or f"Chapter {self.number}"

    def get_verse(self, verse_number: int) -> Optional[Verse]:
        for verse in self.verses:
            if verse.verse_number == verse_number:
                return verse
        return None

    def __str__(self) -> str:
        return f"Chapter({self.number} {self.display_name}, {len(self.verses)}/{self.total_verse_count} verses)"
