"""Shared fixtures: a small Latin-letter corpus and a scripted transcriber."""

import asyncio

import pytest

from tasmee.config import reset_settings
from tasmee.data.corpus import Corpus, CorpusRepository, build_verse
from tasmee.exceptions import TranscriptionError
from tasmee.models import Chapter, TranscribedSegment
from tasmee.transcription.base import BaseTranscriber

CHAPTERS = {
    1: (
        "First",
        [
            "A B C D",
            "E F G H",
            "I J K L",
            "M N O P",
            "Q R S T",
        ],
    ),
    2: (
        "Second",
        [
            "U V W X",
            "Y Z YY ZZ",
        ],
    ),
}


def make_corpus(chapters: dict = CHAPTERS) -> Corpus:
    built = []
    for number, (name, texts) in chapters.items():
        verses = tuple(build_verse(number, i, text) for i, text in enumerate(texts, 1))
        built.append(Chapter(number=number, name=name, total_verse_count=len(verses), verses=verses))
    return Corpus(built, source="test")


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    for name in ("TASMEE_HF_INFERENCE_ENDPOINT", "TASMEE_HF_API_TOKEN", "TASMEE_CORPUS_PATHS"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def corpus() -> Corpus:
    return make_corpus()


@pytest.fixture
def repository(corpus: Corpus) -> CorpusRepository:
    return CorpusRepository.from_corpus(corpus)


class ScriptedTranscriber(BaseTranscriber):
    """
    Returns the audio bytes decoded as text, as one 3-second segment.

    ``b"fail"`` raises TranscriptionError. Tracks how many calls are in
    flight at once.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self._loaded = False

    def transcribe(self, audio_bytes, audio_format="wav", language="ar"):
        if audio_bytes == b"fail":
            raise TranscriptionError("engine unavailable")
        text = audio_bytes.decode("utf-8")
        return [TranscribedSegment(text=text, start=0.0, end=3.0)] if text.strip() else []

    async def transcribe_async(self, audio_bytes, audio_format="wav", language="ar"):
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return self.transcribe(audio_bytes, audio_format, language)
        finally:
            self.in_flight -= 1

    def load(self) -> None:
        self._loaded = True

    def unload(self) -> None:
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded


@pytest.fixture
def transcriber() -> ScriptedTranscriber:
    return ScriptedTranscriber()
