"""
Recognition orchestrator.

RecitationService routes audio chunks through transcription, candidate
matching, error classification and progress tracking for many concurrent
sessions.

Concurrency:
- Transcriber calls are bounded by a semaphore (default 3 in flight).
- Each session has its own lock; all mutation of a session, and every store
  write of it after start, happens under it.
- The corpus is read through a repository whose reload swaps it atomically.
"""

import asyncio
import time
from collections import Counter
from functools import partial
from typing import Optional, Union

from tasmee._logging import (
    get_logger,
    log_chunk_processed,
    log_error,
    log_session_started,
    log_session_stopped,
)
from tasmee.config import TasmeeSettings, get_settings
from tasmee.core.aligner import align_words_with_verse, alignment_errors, detect_errors
from tasmee.core.arabic import SpecialPhrase, normalize_arabic, special_phrase_span
from tasmee.core.candidates import CandidateMatcher
from tasmee.core.tracker import ProgressTracker, compute_accuracy
from tasmee.data.corpus import Corpus, CorpusRepository
from tasmee.data.reference import (
    InMemoryReferenceDataset,
    ReferenceDataset,
    validate_recitation,
)
from tasmee.exceptions import (
    SessionClosedError,
    SessionNotFoundError,
)
from tasmee.models import (
    ErrorType,
    Feedback,
    MatchedVerse,
    MatchResult,
    Progress,
    RecitationChunk,
    RecitationError,
    RecitationMode,
    RecitationSession,
    RecognizedWord,
    SessionState,
    SessionStatistics,
    SessionSummary,
    ValidationResult,
    VerseDifficulty,
    WordAlignment,
)
from tasmee.storage import InMemorySessionStore, JsonFileSessionStore, SessionStore
from tasmee.transcription.base import BaseTranscriber, segments_to_text, segments_to_words

logger = get_logger(__name__)

MOST_DIFFICULT_VERSES = 5


class RecitationService:
    """
    Tracks recitation sessions from audio chunks.

    Example:
        repo = CorpusRepository(["data/quran.json"])
        repo.load()
        service = RecitationService(repo, HFInferenceTranscriber())

        session = await service.start_session("user-1", 1, 1)
        feedback = await service.process_chunk(session.id, audio_bytes)
        summary = await service.stop_session(session.id)
    """

    def __init__(
        self,
        corpus_repository: CorpusRepository,
        transcriber: BaseTranscriber,
        session_store: Optional[SessionStore] = None,
        reference_dataset: Optional[ReferenceDataset] = None,
        settings: Optional[TasmeeSettings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._corpus_repository = corpus_repository
        self._transcriber = transcriber
        self._store = session_store or InMemorySessionStore()
        self._references = reference_dataset
        self._semaphore = asyncio.Semaphore(self._settings.max_concurrent_transcriptions)
        self._sessions: dict[str, RecitationSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(
        cls,
        transcriber: BaseTranscriber,
        settings: Optional[TasmeeSettings] = None,
    ) -> "RecitationService":
        """
        Build a service from settings: corpus paths, session directory and
        optional reference dataset.
        """
        settings = settings or get_settings()
        repository = CorpusRepository(
            sources=list(settings.corpus_paths),
            metadata=settings.chapter_metadata_path,
        )
        repository.load()

        references = None
        if settings.reference_dataset_path is not None:
            references = InMemoryReferenceDataset.from_json(settings.reference_dataset_path)

        return cls(
            repository,
            transcriber,
            session_store=JsonFileSessionStore(settings.session_store_dir),
            reference_dataset=references,
            settings=settings,
        )

    @property
    def settings(self) -> TasmeeSettings:
        return self._settings

    @property
    def corpus(self) -> Corpus:
        return self._corpus_repository.corpus

    def active_session_ids(self) -> list[str]:
        return sorted(self._sessions)

    async def _run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args))

    async def _persist(self, snapshot: RecitationSession) -> None:
        try:
            await self._run_blocking(self._store.save_session, snapshot)
        except Exception as e:
            log_error("Failed to persist session", exc_info=True, session_id=snapshot.id, error=e)

    async def _closed_or_missing(self, session_id: str) -> Exception:
        stored = await self._run_blocking(self._store.load_session, session_id)
        if stored is not None and stored.state == SessionState.STOPPED:
            return SessionClosedError(session_id)
        return SessionNotFoundError(session_id)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start_session(
        self,
        user_id: str,
        start_chapter: int = 1,
        start_verse: int = 1,
        mode: Union[RecitationMode, str] = RecitationMode.GUIDED,
        error_threshold: Optional[float] = None,
    ) -> RecitationSession:
        """
        Start a session with the cursor on (start_chapter, start_verse).

        Raises:
            CorpusNotLoadedError: If no corpus is available yet
            VerseNotFoundError: If the starting verse is not in the corpus
        """
        threshold = self._settings.substitution_threshold if error_threshold is None else error_threshold
        tracker = ProgressTracker(self._corpus_repository.corpus)
        session = tracker.start(user_id, start_chapter, start_verse, RecitationMode(mode), threshold)

        self._sessions[session.id] = session
        self._locks[session.id] = asyncio.Lock()
        snapshot = session.model_copy(deep=True)

        await self._persist(snapshot)
        log_session_started(session.id, user_id, start_chapter, start_verse)
        return snapshot

    async def stop_session(self, session_id: str) -> SessionSummary:
        """
        Stop a session, compute its final accuracy and persist it.

        Raises:
            SessionNotFoundError: If the session does not exist
            SessionClosedError: If the session was already stopped
        """
        session = self._sessions.get(session_id)
        lock = self._locks.get(session_id)
        if session is None or lock is None:
            raise await self._closed_or_missing(session_id)

        async with lock:
            ProgressTracker(self._corpus_repository.corpus).stop(session)
            snapshot = session.model_copy(deep=True)
            await self._persist(snapshot)
            self._sessions.pop(session_id, None)
            self._locks.pop(session_id, None)

        log_session_stopped(session_id, snapshot.average_accuracy, snapshot.total_chunks_processed)
        return SessionSummary(
            session_id=session_id,
            final_accuracy=snapshot.average_accuracy,
            total_chunks_processed=snapshot.total_chunks_processed,
            total_errors=snapshot.error_count,
            ended_at=snapshot.ended_at,
        )

    async def get_session(self, session_id: str) -> RecitationSession:
        """
        A snapshot of an active or persisted session.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = self._sessions.get(session_id)
        if session is not None:
            return session.model_copy(deep=True)

        stored = await self._run_blocking(self._store.load_session, session_id)
        if stored is None:
            raise SessionNotFoundError(session_id)
        return stored

    async def get_session_statistics(self, session_id: str) -> SessionStatistics:
        """
        Aggregate statistics for a session.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = await self.get_session(session_id)

        per_verse: dict[tuple[int, int], Counter] = {}
        for error in session.session_errors:
            per_verse.setdefault((error.chapter, error.verse), Counter())[error.type.value] += 1

        ranked = sorted(per_verse.items(), key=lambda item: (-sum(item[1].values()), item[0]))
        difficult = [
            VerseDifficulty(
                chapter=chapter,
                verse=verse,
                error_count=sum(types.values()),
                error_types=dict(types),
            )
            for (chapter, verse), types in ranked[:MOST_DIFFICULT_VERSES]
        ]

        seconds = session.total_recitation_seconds
        wpm = session.total_words_recited / (seconds / 60) if seconds > 0 else 0.0

        if session.is_active:
            accuracy = compute_accuracy(session.total_chunks_processed, session.error_count)
        else:
            accuracy = session.average_accuracy

        return SessionStatistics(
            session_id=session.id,
            total_duration_seconds=seconds,
            chunk_count=session.total_chunks_processed,
            total_errors=session.error_count,
            average_accuracy=accuracy,
            error_breakdown=dict(session.error_type_counts),
            current_progress=session.current_progress,
            most_difficult_verses=difficult,
            words_per_minute=wpm,
            is_active=session.is_active,
        )

    # ------------------------------------------------------------------
    # Chunk processing
    # ------------------------------------------------------------------

    async def process_chunk(
        self,
        session_id: str,
        audio_bytes: bytes,
        audio_format: str = "wav",
        duration_seconds: Optional[float] = None,
        detailed: bool = False,
    ) -> Feedback:
        """
        Transcribe and analyze one audio chunk of a session.

        A transcription failure is logged and reported with
        ``is_success=False``; the session is left untouched.

        Args:
            session_id: Active session id
            audio_bytes: Encoded audio
            audio_format: Container format of the audio
            duration_seconds: Audio length (default from settings)
            detailed: Use the word-by-word aligner instead of the quick
                position-wise comparison

        Returns:
            Feedback for the chunk

        Raises:
            SessionNotFoundError: If the session does not exist
            SessionClosedError: If the session is (or becomes) stopped
        """
        started = time.perf_counter()
        session = self._sessions.get(session_id)
        lock = self._locks.get(session_id)
        if session is None or lock is None:
            raise await self._closed_or_missing(session_id)

        progress = session.current_progress
        chunk = RecitationChunk(
            session_id=session_id,
            audio_bytes=audio_bytes,
            audio_format=audio_format,
            duration_seconds=self._settings.default_chunk_duration if duration_seconds is None else duration_seconds,
            expected_chapter=progress.chapter,
            expected_verse=progress.verse,
            expected_word_index=progress.word_index,
        )

        if progress.recitation_complete:
            return Feedback(chunk_id=chunk.id, session_id=session_id, updated_progress=progress)

        try:
            async with self._semaphore:
                segments = await self._transcriber.transcribe_async(
                    chunk.audio_bytes, chunk.audio_format, self._settings.language
                )
        except Exception as e:
            log_error("Transcription failed", exc_info=True, session_id=session_id, chunk_id=chunk.id, error=e)
            return Feedback(
                chunk_id=chunk.id,
                session_id=session_id,
                updated_progress=progress,
                processing_time_ms=(time.perf_counter() - started) * 1000,
            )

        async with lock:
            if session.state != SessionState.ACTIVE:
                raise SessionClosedError(session_id, "Session stopped while the chunk was in flight")

            feedback = self._analyze(session, chunk, segments, detailed)
            feedback.processing_time_ms = (time.perf_counter() - started) * 1000

            # Store writes for a session happen under its lock, so the stop snapshot is the last one
            if session.total_chunks_processed and session.total_chunks_processed % self._settings.persist_every_chunks == 0:
                await self._persist(session.model_copy(deep=True))

        log_chunk_processed(
            session_id,
            chunk.id,
            feedback.matched_verse is not None,
            feedback.confidence,
            len(feedback.errors),
            feedback.processing_time_ms,
        )
        return feedback

    def _transcript_words(self, segments) -> tuple[str, list[str], list[RecognizedWord]]:
        """Normalized words of a transcript with the timing of each."""
        words = []
        timings = []
        for recognized in segments_to_words(segments):
            normalized = normalize_arabic(recognized.text)
            if normalized:
                words.append(normalized)
                timings.append(recognized)
        return segments_to_text(segments), words, timings

    def _strip_special_phrases(
        self,
        progress: Progress,
        words: list[str],
        timings: list[RecognizedWord],
    ) -> tuple[list[str], list[RecognizedWord]]:
        """
        Drop isti'adha, and basmala at the start of a chapter other than 1,
        where it is recited before the first verse without being part of it.
        """
        phrases = [SpecialPhrase.ISTIADHA]
        if progress.chapter != 1 and progress.verse == 1 and progress.word_index == 0:
            phrases.append(SpecialPhrase.BASMALA)

        for phrase in phrases:
            span = special_phrase_span(words, phrase)
            if span is not None:
                start, end = span
                logger.debug(f"Skipping {phrase.value} (words {start}-{end})")
                words = words[:start] + words[end:]
                timings = timings[:start] + timings[end:]
        return words, timings

    def _analyze(
        self,
        session: RecitationSession,
        chunk: RecitationChunk,
        segments,
        detailed: bool,
    ) -> Feedback:
        corpus = self._corpus_repository.corpus
        tracker = ProgressTracker(corpus)
        matcher = CandidateMatcher.from_settings(corpus, self._settings)

        text, all_words, timings = self._transcript_words(segments)
        feedback = Feedback(
            chunk_id=chunk.id,
            session_id=session.id,
            is_success=True,
            transcribed_text=text,
            normalized_text=" ".join(all_words),
            updated_progress=session.current_progress,
        )
        if not all_words:
            return feedback

        tracker.record_chunk(session, chunk.duration_seconds, len(all_words))
        words, timings = self._strip_special_phrases(session.current_progress, all_words, timings)
        if not words:
            return feedback

        progress = session.current_progress
        match = matcher.find_best_match(words, progress.chapter, progress.verse, progress.word_index)
        if not match.is_match:
            errors = self._sequence_errors(matcher, progress, words)
            tracker.record_errors(session, errors)
            feedback.errors = errors
            feedback.confidence = match.confidence
            return feedback

        errors: list[RecitationError] = []
        alignments: list[WordAlignment] = []
        matched: list[MatchedVerse] = []
        first_words: Optional[list[str]] = None

        # Words past the end of a finished verse carry on into the next one
        while True:
            before = session.current_progress
            updated = tracker.advance(session, match)
            carry_over = (
                bool(match.expected_words)
                and len(words) > len(match.expected_words)
                and not updated.recitation_complete
                and updated.word_index == 0
                and updated.position != before.position
            )
            used = len(match.expected_words) if carry_over else len(words)
            if first_words is None:
                first_words = words[:used]

            segment_errors, segment_alignments = self._classify(
                session, match, words[:used], timings[:used], detailed
            )
            tracker.record_errors(session, segment_errors)
            errors.extend(segment_errors)
            alignments.extend(segment_alignments)
            matched.append(self._matched_verse(corpus, match, timings[:used]))

            words, timings = words[used:], timings[used:]
            if not words:
                break

            next_match = matcher.find_best_match(words, updated.chapter, updated.verse, updated.word_index)
            if not next_match.is_match:
                # Leftover words that match nothing are extra words of the finished verse
                extra = detect_errors(
                    words,
                    [],
                    match.chapter,
                    match.verse,
                    start_word_index=match.start_word_index + used,
                    word_timings=timings,
                )
                tracker.record_errors(session, extra)
                errors.extend(extra)
                break
            match = next_match

        first = matched[0]
        feedback.updated_progress = session.current_progress
        feedback.errors = errors
        feedback.matched_verse = first
        feedback.matched_verses = matched
        if detailed:
            feedback.word_alignments = alignments

        validation = self._validate(
            first_words,
            first.chapter,
            first.verse,
            first.start_word_index,
        )
        feedback.validation = validation
        if validation is not None:
            feedback.confidence = (first.confidence + validation.accuracy) / 2
        else:
            feedback.confidence = first.confidence
        return feedback

    def _classify(
        self,
        session: RecitationSession,
        match: MatchResult,
        words: list[str],
        timings: list[RecognizedWord],
        detailed: bool,
    ) -> tuple[list[RecitationError], list[WordAlignment]]:
        """Errors of one matched verse segment, quick or word by word."""
        if detailed:
            alignments = align_words_with_verse(
                words,
                match.expected_words,
                accept_threshold=self._settings.alignment_accept_threshold,
                correct_threshold=self._settings.alignment_correct_threshold,
            )
            return alignment_errors(alignments, match.chapter, match.verse, match.start_word_index, timings), alignments

        errors = detect_errors(
            words,
            match.expected_words,
            match.chapter,
            match.verse,
            start_word_index=match.start_word_index,
            word_timings=timings,
            threshold=session.error_threshold,
        )
        return errors, []

    def _matched_verse(self, corpus: Corpus, match: MatchResult, timings: list[RecognizedWord]) -> MatchedVerse:
        verse = corpus.get_verse(match.chapter, match.verse)
        return MatchedVerse(
            chapter=match.chapter,
            verse=match.verse,
            text=verse.original_text if verse else " ".join(match.expected_words),
            confidence=match.confidence,
            start_word_index=match.start_word_index,
            match_length=match.match_length,
            words=timings,
        )

    def _sequence_errors(
        self,
        matcher: CandidateMatcher,
        progress: Progress,
        words: list[str],
    ) -> list[RecitationError]:
        """A wrong-passage error when the transcript matches another verse."""
        similar = matcher.find_similar_verse(
            words,
            exclude=(progress.chapter, progress.verse),
            threshold=self._settings.match_threshold,
        )
        if not similar.is_match:
            return []

        expected = matcher.corpus.get_verse(progress.chapter, progress.verse)
        expected_text = " ".join(expected.normalized_words[progress.word_index:]) if expected else ""
        return [
            RecitationError(
                type=ErrorType.SEQUENCE,
                chapter=progress.chapter,
                verse=progress.verse,
                word_index=progress.word_index,
                heard_word=" ".join(words),
                expected_word=expected_text,
                confidence=similar.confidence,
                suggestion=f"Did you mean chapter {similar.chapter}, verse {similar.verse}?",
            )
        ]

    def _validate(
        self,
        words: list[str],
        chapter: int,
        verse: int,
        start_word_index: int,
    ) -> Optional[ValidationResult]:
        if self._references is None:
            return None
        try:
            return validate_recitation(
                self._references,
                words,
                chapter,
                verse,
                start_word_index=start_word_index,
                threshold=self._settings.reference_accuracy_threshold,
            )
        except Exception as e:
            log_error("Reference validation failed", exc_info=True, chapter=chapter, verse=verse, error=e)
            return None
