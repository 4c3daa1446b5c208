"""
Reference text loader and index.

Loads the reference text from one of several candidate sources, normalizes
it into Chapter/Verse models and indexes every verse by (chapter, verse).

Accepted source shapes:
- Flat per-verse records, as a JSON list or CSV file:
  ``[{"surah": 1, "ayah": 1, "text": "..."}]`` or ``id,sura_id,index,text``
- Nested chapter objects:
  ``[{"id": 1, "name": "...", "total_verses": 7, "verses": [{"id": 1, "text": "..."}]}]``
- The canonical dump of Chapter models (optionally under a ``"chapters"`` key)
"""

import csv
import json
import threading
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from tasmee._logging import get_logger, log_corpus_loaded, log_warning
from tasmee.core.arabic import normalize_arabic
from tasmee.core.matcher import combined_score
from tasmee.exceptions import (
    CorpusLoadError,
    CorpusNotLoadedError,
    DataFormatError,
)
from tasmee.models import Chapter, Verse

logger = get_logger(__name__)

Source = Union[str, Path, list, dict]

_CHAPTER_KEYS = ("surah", "chapter", "sura_id", "surah_number", "chapter_number")
_VERSE_KEYS = ("ayah", "verse", "index", "ayah_number", "verse_number")
_TEXT_KEYS = ("text", "arabic_text", "original_text")


def _get_data_path() -> Path:
    """Get path to the bundled data directory."""
    return Path(__file__).parent


def sample_corpus_path() -> Path:
    """Path of the bundled sample text (Al-Fatiha and Al-Ikhlas)."""
    return _get_data_path() / "sample_quran.json"


def build_verse(
    chapter_number: int,
    verse_number: int,
    text: str,
    translation: str = "",
) -> Verse:
    """
    Create a Verse from raw text, computing its normalized forms.

    Args:
        chapter_number: Chapter number (1-based)
        verse_number: Verse number within the chapter (1-based)
        text: Original verse text
        translation: Optional translation

    Returns:
        Verse with words and normalized words filled in
    """
    normalized = normalize_arabic(text)
    return Verse(
        chapter_number=chapter_number,
        verse_number=verse_number,
        original_text=text,
        normalized_text=normalized,
        words=tuple(text.split()),
        normalized_words=tuple(normalized.split()),
        translation=translation or "",
    )


class Corpus:
    """
    The full reference text, indexed for O(1) verse lookup.

    A Corpus is read-only after construction and safe to share between
    concurrent readers.
    """

    def __init__(self, chapters: Iterable[Chapter], source: str = "") -> None:
        ordered = sorted(chapters, key=lambda c: c.number)
        self._source = source
        self._chapters: dict[int, Chapter] = {}
        self._index: dict[tuple[int, int], Verse] = {}
        self._positions: dict[tuple[int, int], int] = {}
        verses: list[Verse] = []

        for chapter in ordered:
            if chapter.number in self._chapters:
                raise DataFormatError(f"Duplicate chapter {chapter.number}", source=source)
            self._chapters[chapter.number] = chapter
            for verse in chapter.verses:
                key = (verse.chapter_number, verse.verse_number)
                self._index[key] = verse
                self._positions[key] = len(verses)
                verses.append(verse)

        self._verses: tuple[Verse, ...] = tuple(verses)

    @property
    def source(self) -> str:
        return self._source

    @property
    def chapter_count(self) -> int:
        return len(self._chapters)

    @property
    def verse_count(self) -> int:
        return len(self._verses)

    def get_verse(self, chapter: int, verse: int) -> Optional[Verse]:
        """Get a verse by chapter and verse number, or None."""
        return self._index.get((chapter, verse))

    def get_chapter(self, chapter: int) -> Optional[Chapter]:
        """Get a chapter by number, or None."""
        return self._chapters.get(chapter)

    def all_chapters(self) -> list[Chapter]:
        """All chapters in ascending order."""
        return list(self._chapters.values())

    def iter_verses(self) -> Iterator[Verse]:
        """All verses in reading order."""
        return iter(self._verses)

    def chapter_name(self, chapter: int) -> str:
        found = self._chapters.get(chapter)
        return found.display_name if found else f"Chapter {chapter}"

    def next_verse(self, chapter: int, verse: int) -> Optional[Verse]:
        """
        The verse read after (chapter, verse), crossing chapter boundaries.

        Returns:
            The next loaded verse, or None at the end of the text
        """
        position = self._positions.get((chapter, verse))
        if position is None or position + 1 >= len(self._verses):
            return None
        return self._verses[position + 1]

    def verses_in_range(self, chapter: int, from_verse: int, to_verse: int) -> list[Verse]:
        found = self._chapters.get(chapter)
        if found is None:
            return []
        return [v for v in found.verses if from_verse <= v.verse_number <= to_verse]

    def search_verses(self, query: str, max_results: int = 10) -> list[Verse]:
        """
        Find verses containing the normalized query, best match first.

        Args:
            query: Text to look for (any form, it is normalized here)
            max_results: Maximum number of verses returned

        Returns:
            Matching verses ordered by combined similarity to the query
        """
        normalized_query = normalize_arabic(query)
        if not normalized_query:
            return []

        query_words = normalized_query.split()
        scored = [
            (combined_score(query_words, list(verse.normalized_words)), verse)
            for verse in self._verses
            if normalized_query in verse.normalized_text
        ]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [verse for _, verse in scored[:max_results]]

    def __contains__(self, key: tuple[int, int]) -> bool:
        return key in self._index

    def __len__(self) -> int:
        return len(self._verses)

    def __repr__(self) -> str:
        return f"Corpus(chapters={self.chapter_count}, verses={self.verse_count}, source={self._source!r})"


# ---------------------------------------------------------------------------
# Source readers
# ---------------------------------------------------------------------------


def _describe(source: Source) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    return f"<{type(source).__name__}>"


def _read_source(source: Source) -> Any:
    """Read a path into Python data; pass parsed data through."""
    if not isinstance(source, (str, Path)):
        return source

    path = Path(source)
    if not path.exists():
        raise DataFormatError("Source file not found", source=str(path))

    try:
        if path.suffix.lower() == ".csv":
            with open(path, "r", encoding="utf-8", newline="") as f:
                return list(csv.DictReader(f))
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, csv.Error) as e:
        raise DataFormatError(f"Cannot read source: {e}", source=str(path))


def _first_key(record: dict, keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        if key in record:
            return key
    return None


def _metadata_lookup(metadata: Optional[list[dict]]) -> dict[int, dict]:
    lookup: dict[int, dict] = {}
    for record in metadata or []:
        number = record.get("number", record.get("id"))
        if number is None:
            continue
        lookup[int(number)] = record
    return lookup


def _chapter_from_metadata(
    number: int,
    verses: list[Verse],
    meta: Optional[dict],
    name: str = "",
    arabic_name: str = "",
    translation: str = "",
    total: Optional[int] = None,
) -> Chapter:
    meta = meta or {}
    loaded_max = max((v.verse_number for v in verses), default=0)
    declared = total if total is not None else meta.get("total_verses", meta.get("total_verse_count"))
    total_verses = max(int(declared) if declared is not None else 0, loaded_max, len(verses))
    return Chapter(
        number=number,
        name=name or meta.get("name") or meta.get("transliteration") or f"Chapter {number}",
        arabic_name=arabic_name or meta.get("arabic_name", ""),
        translation=translation or meta.get("translation", ""),
        total_verse_count=total_verses,
        verses=tuple(sorted(verses, key=lambda v: v.verse_number)),
    )


def _parse_flat(records: list[dict], meta: dict[int, dict]) -> list[Chapter]:
    """Flat per-verse records: one record per verse."""
    grouped: dict[int, dict[int, Verse]] = {}
    for record in records:
        chapter_key = _first_key(record, _CHAPTER_KEYS)
        verse_key = _first_key(record, _VERSE_KEYS)
        text_key = _first_key(record, _TEXT_KEYS)
        if chapter_key is None or verse_key is None or text_key is None:
            raise DataFormatError(f"Flat record missing fields: {sorted(record)}")
        chapter = int(record[chapter_key])
        verse = int(record[verse_key])
        grouped.setdefault(chapter, {})[verse] = build_verse(
            chapter,
            verse,
            str(record[text_key]),
            str(record.get("translation") or ""),
        )

    return [
        _chapter_from_metadata(number, list(verses.values()), meta.get(number))
        for number, verses in grouped.items()
    ]


def _parse_nested(records: list[dict], meta: dict[int, dict]) -> list[Chapter]:
    """Nested chapter objects with an ``id`` and a ``verses`` list."""
    chapters = []
    for record in records:
        number = int(record["id"])
        verses = [
            build_verse(number, int(v["id"]), str(v["text"]), str(v.get("translation") or ""))
            for v in record.get("verses") or []
        ]
        chapters.append(
            _chapter_from_metadata(
                number,
                verses,
                meta.get(number),
                name=record.get("transliteration") or "",
                arabic_name=record.get("name") or "",
                translation=record.get("translation") or "",
                total=record.get("total_verses"),
            )
        )
    return chapters


def _parse_canonical(records: list[dict]) -> list[Chapter]:
    """Dumped Chapter models."""
    return [Chapter.model_validate(record) for record in records]


def parse_chapters(data: Any, metadata: Optional[list[dict]] = None) -> list[Chapter]:
    """
    Detect the shape of parsed source data and convert it to chapters.

    Args:
        data: Parsed JSON/CSV content
        metadata: Optional chapter metadata records (number, name, total_verses, ...)

    Returns:
        List of Chapter models

    Raises:
        DataFormatError: If the shape is not recognized or a record is malformed
    """
    if isinstance(data, dict):
        if "chapters" in data:
            return parse_chapters(data["chapters"], metadata)
        if "surahs" in data:
            return parse_chapters(data["surahs"], metadata)
        raise DataFormatError(f"Unrecognized object with keys {sorted(data)[:5]}")

    if not isinstance(data, list) or not data:
        raise DataFormatError("Expected a non-empty list of records")

    first = data[0]
    if not isinstance(first, dict):
        raise DataFormatError(f"Expected records to be objects, got {type(first).__name__}")

    meta = _metadata_lookup(metadata)
    try:
        if "verses" in first and "id" in first:
            return _parse_nested(data, meta)
        if "verses" in first and "number" in first:
            return _parse_canonical(data)
        if _first_key(first, _TEXT_KEYS) and _first_key(first, _CHAPTER_KEYS) and _first_key(first, _VERSE_KEYS):
            return _parse_flat(data, meta)
    except (KeyError, TypeError, ValueError) as e:
        # pydantic's ValidationError is a ValueError
        raise DataFormatError(f"Malformed record: {e}")

    raise DataFormatError(f"Unrecognized record shape with keys {sorted(first)[:5]}")


def load_corpus(
    sources: Union[Source, Iterable[Source]],
    metadata: Optional[Union[str, Path, list[dict]]] = None,
) -> Corpus:
    """
    Load the reference text from the first usable candidate source.

    Sources are tried in order. A source that cannot be read or whose shape
    is not recognized is logged and skipped.

    Args:
        sources: A path, parsed data, or a list of candidates
        metadata: Chapter metadata table (path or records) for sources
            that lack chapter names or verse totals

    Returns:
        Loaded Corpus

    Raises:
        CorpusLoadError: If no candidate source could be loaded
    """
    if isinstance(sources, (str, Path, dict)):
        candidates: list[Source] = [sources]
    else:
        candidates = list(sources)
        # A bare list of records is one source, not a list of candidates
        if candidates and isinstance(candidates[0], dict):
            candidates = [candidates]

    meta_records: Optional[list[dict]] = None
    if metadata is not None:
        try:
            meta_records = _read_source(metadata)
        except DataFormatError as e:
            log_warning("Ignoring chapter metadata", error=e)

    tried = []
    for source in candidates:
        name = _describe(source)
        tried.append(name)
        try:
            chapters = parse_chapters(_read_source(source), meta_records)
            corpus = Corpus(chapters, source=name)
        except DataFormatError as e:
            log_warning("Skipping corpus source", source=name, error=e.message)
            continue
        except ValidationError as e:
            log_warning("Skipping corpus source", source=name, error=e.error_count())
            continue

        if corpus.verse_count == 0:
            log_warning("Skipping empty corpus source", source=name)
            continue

        log_corpus_loaded(name, corpus.chapter_count, corpus.verse_count)
        return corpus

    raise CorpusLoadError(sources=tried)


def load_sample_corpus() -> Corpus:
    """Load the bundled sample text."""
    return load_corpus(sample_corpus_path())


class CorpusRepository:
    """
    Holds the current Corpus and swaps it atomically on reload.

    A reload builds a complete new Corpus before publishing it with a single
    reference assignment, so readers see either the old or the new index.

    Example:
        repo = CorpusRepository(["data/quran_complete.json", "data/quran.json"])
        repo.load()
        verse = repo.corpus.get_verse(1, 1)
    """

    def __init__(
        self,
        sources: Optional[list[Source]] = None,
        metadata: Optional[Union[str, Path, list[dict]]] = None,
    ) -> None:
        self._sources = list(sources) if sources else []
        self._metadata = metadata
        self._corpus: Optional[Corpus] = None
        self._reload_lock = threading.Lock()

    @classmethod
    def from_corpus(cls, corpus: Corpus) -> "CorpusRepository":
        repo = cls()
        repo._corpus = corpus
        return repo

    @property
    def is_loaded(self) -> bool:
        return self._corpus is not None

    @property
    def corpus(self) -> Corpus:
        """
        The published corpus.

        Raises:
            CorpusNotLoadedError: If nothing has been loaded yet
        """
        corpus = self._corpus
        if corpus is None:
            raise CorpusNotLoadedError()
        return corpus

    def load(
        self,
        sources: Optional[list[Source]] = None,
        metadata: Optional[Union[str, Path, list[dict]]] = None,
    ) -> Corpus:
        """
        Load (or replace) the corpus.

        Without configured sources, the bundled sample text is used.

        Raises:
            CorpusLoadError: If every source fails; the previous corpus stays published
        """
        with self._reload_lock:
            if sources is not None:
                self._sources = list(sources)
            if metadata is not None:
                self._metadata = metadata

            candidates = self._sources
            if not candidates:
                log_warning("No corpus sources configured, using bundled sample")
                candidates = [sample_corpus_path()]

            corpus = load_corpus(candidates, self._metadata)
            self._corpus = corpus
            logger.debug(f"Published corpus {corpus.source} ({corpus.verse_count} verses)")
            return corpus

    def reload(self) -> Corpus:
        """Rebuild the corpus from the configured sources."""
        return self.load()
