"""Tests for the recognition orchestrator."""

import asyncio
import time

import pytest

from conftest import ScriptedTranscriber, make_corpus
from tasmee.config import TasmeeSettings
from tasmee.data.corpus import CorpusRepository, load_sample_corpus
from tasmee.data.reference import InMemoryReferenceDataset
from tasmee.exceptions import (
    CorpusNotLoadedError,
    SessionClosedError,
    SessionNotFoundError,
    VerseNotFoundError,
)
from tasmee.models import ErrorType, RecitationMode, SessionState, VerseReference
from tasmee.service import RecitationService
from tasmee.storage import InMemorySessionStore

ISTIADHA = "أعوذ بالله من الشيطان الرجيم"


def make_service(transcriber=None, store=None, references=None, **settings) -> RecitationService:
    return RecitationService(
        CorpusRepository.from_corpus(make_corpus()),
        transcriber or ScriptedTranscriber(),
        session_store=store,
        reference_dataset=references,
        settings=TasmeeSettings(**settings),
    )


def sample_service() -> RecitationService:
    return RecitationService(
        CorpusRepository.from_corpus(load_sample_corpus()),
        ScriptedTranscriber(),
        settings=TasmeeSettings(),
    )


def recite(service: RecitationService, *chunks: str, start=(1, 1), detailed: bool = False):
    """Start a session, process chunks in order and return (session, feedbacks)."""

    async def scenario():
        session = await service.start_session("user-1", *start)
        feedbacks = []
        for text in chunks:
            feedbacks.append(await service.process_chunk(session.id, text.encode(), detailed=detailed))
        return await service.get_session(session.id), feedbacks

    return asyncio.run(scenario())


class GatedTranscriber(ScriptedTranscriber):
    """Blocks every call until the gate is opened."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = None
        self.gate = None

    async def transcribe_async(self, audio_bytes, audio_format="wav", language="ar"):
        self.entered.set()
        await self.gate.wait()
        return self.transcribe(audio_bytes, audio_format, language)


class TestSessionLifecycle:
    def test_start(self) -> None:
        service = make_service()
        session = asyncio.run(service.start_session("user-1", 1, 2, RecitationMode.MEMORIZATION))
        assert session.state == SessionState.ACTIVE
        assert session.current_progress.position == (1, 2, 0)
        assert session.mode == RecitationMode.MEMORIZATION
        assert session.error_threshold == 0.7
        assert service.active_session_ids() == [session.id]

    def test_start_persists(self) -> None:
        store = InMemorySessionStore()
        service = make_service(store=store)
        session = asyncio.run(service.start_session("user-1"))
        assert store.load_session(session.id).current_progress.position == (1, 1, 0)

    def test_unknown_start_verse(self) -> None:
        with pytest.raises(VerseNotFoundError):
            asyncio.run(make_service().start_session("user-1", 3, 1))

    def test_corpus_not_loaded(self) -> None:
        service = RecitationService(CorpusRepository(), ScriptedTranscriber(), settings=TasmeeSettings())
        with pytest.raises(CorpusNotLoadedError):
            asyncio.run(service.start_session("user-1"))

    def test_stop(self) -> None:
        service = make_service()

        async def scenario():
            session = await service.start_session("user-1")
            for text in ("A B C D", "E F G H", "I J K L", "M N O Q"):
                await service.process_chunk(session.id, text.encode())
            return session.id, await service.stop_session(session.id)

        session_id, summary = asyncio.run(scenario())
        assert summary.session_id == session_id
        assert summary.total_chunks_processed == 4
        assert summary.total_errors == 1
        assert summary.final_accuracy == pytest.approx(0.75)
        assert summary.ended_at is not None
        assert service.active_session_ids() == []

    def test_stopped_session_stays_readable(self) -> None:
        service = make_service()

        async def scenario():
            session = await service.start_session("user-1")
            await service.stop_session(session.id)
            return await service.get_session(session.id)

        stored = asyncio.run(scenario())
        assert stored.state == SessionState.STOPPED

    def test_unknown_session(self) -> None:
        service = make_service()
        with pytest.raises(SessionNotFoundError):
            asyncio.run(service.process_chunk("missing", b"A B C D"))
        with pytest.raises(SessionNotFoundError):
            asyncio.run(service.stop_session("missing"))
        with pytest.raises(SessionNotFoundError):
            asyncio.run(service.get_session("missing"))

    def test_closed_session(self) -> None:
        service = make_service()

        async def scenario():
            session = await service.start_session("user-1")
            await service.stop_session(session.id)
            with pytest.raises(SessionClosedError):
                await service.stop_session(session.id)
            with pytest.raises(SessionClosedError):
                await service.process_chunk(session.id, b"A B C D")

        asyncio.run(scenario())


class SlowStore(InMemorySessionStore):
    """Takes a while to write sessions that have processed chunks."""

    def save_session(self, session) -> None:
        if session.state == SessionState.ACTIVE and session.total_chunks_processed:
            time.sleep(0.2)
        super().save_session(session)


class TestProcessChunk:
    def test_correct_verse_advances(self) -> None:
        session, (feedback,) = recite(make_service(), "A B C D")
        assert feedback.is_success
        assert feedback.errors == []
        assert feedback.confidence == pytest.approx(1.0)
        assert feedback.normalized_text == "a b c d"
        assert (feedback.matched_verse.chapter, feedback.matched_verse.verse) == (1, 1)
        assert feedback.matched_verse.text == "A B C D"
        assert feedback.updated_progress.position == (1, 2, 0)
        assert session.current_progress.position == (1, 2, 0)
        assert session.total_chunks_processed == 1
        assert session.total_words_recited == 4

    def test_substitution(self) -> None:
        session, (feedback,) = recite(make_service(), "A X C D")
        assert feedback.confidence == pytest.approx(0.775)
        (error,) = feedback.errors
        assert error.type == ErrorType.SUBSTITUTION
        assert (error.chapter, error.verse, error.word_index) == (1, 1, 1)
        assert (error.heard_word, error.expected_word) == ("x", "b")
        assert session.error_type_counts == {"substitution": 1}
        assert session.current_progress.position == (1, 2, 0)

    def test_partial_verse_reports_omission(self) -> None:
        session, (feedback,) = recite(make_service(), "A B C")
        assert [e.type for e in feedback.errors] == [ErrorType.OMISSION]
        assert session.current_progress.position == (1, 1, 3)

    def test_continues_mid_verse(self) -> None:
        session, feedbacks = recite(make_service(), "A B", "C D")
        assert feedbacks[1].matched_verse.start_word_index == 2
        assert feedbacks[1].errors == []
        assert session.current_progress.position == (1, 2, 0)

    def test_unrelated_transcript(self) -> None:
        session, (feedback,) = recite(make_service(), "foo bar baz qux")
        assert feedback.is_success
        assert feedback.matched_verse is None
        assert feedback.errors == []
        assert session.current_progress.position == (1, 1, 0)

    def test_wrong_passage_is_a_sequence_error(self) -> None:
        session, (feedback,) = recite(make_service(), "U V W X")
        assert feedback.matched_verse is None
        (error,) = feedback.errors
        assert error.type == ErrorType.SEQUENCE
        assert (error.chapter, error.verse, error.word_index) == (1, 1, 0)
        assert error.suggestion == "Did you mean chapter 2, verse 1?"
        assert session.current_progress.position == (1, 1, 0)

    def test_neighbor_verse(self) -> None:
        session, (feedback,) = recite(make_service(), "E F G H")
        assert (feedback.matched_verse.chapter, feedback.matched_verse.verse) == (1, 2)
        assert session.current_progress.position == (1, 3, 0)

    def test_transcription_failure(self) -> None:
        session, (feedback,) = recite(make_service(), "fail")
        assert not feedback.is_success
        assert feedback.updated_progress.position == (1, 1, 0)
        assert session.total_chunks_processed == 0
        assert session.error_count == 0

    def test_silence(self) -> None:
        session, (feedback,) = recite(make_service(), "  ")
        assert feedback.is_success
        assert feedback.matched_verse is None
        assert session.total_chunks_processed == 0

    def test_istiadha_is_skipped(self) -> None:
        session, (alone, before_verse) = recite(make_service(), ISTIADHA, f"{ISTIADHA} A B C D")
        assert alone.is_success
        assert alone.matched_verse is None
        assert alone.errors == []
        assert before_verse.errors == []
        assert before_verse.matched_verse.verse == 1
        assert session.current_progress.position == (1, 2, 0)

    def test_basmala_before_a_chapter_opening(self) -> None:
        session, (feedback,) = recite(sample_service(), "بسم الله الرحمن الرحيم قل هو الله احد", start=(112, 1))
        assert feedback.errors == []
        assert (feedback.matched_verse.chapter, feedback.matched_verse.verse) == (112, 1)
        assert session.current_progress.position == (112, 2, 0)

    def test_basmala_is_the_first_verse_of_chapter_one(self) -> None:
        session, (feedback,) = recite(sample_service(), "بسم الله الرحمن الرحيم")
        assert feedback.errors == []
        assert (feedback.matched_verse.chapter, feedback.matched_verse.verse) == (1, 1)
        assert session.current_progress.position == (1, 2, 0)

    def test_words_past_the_verse_end_carry_over(self) -> None:
        session, (first, second) = recite(make_service(), "A B C D E F", "G H")
        assert [(v.chapter, v.verse) for v in first.matched_verses] == [(1, 1), (1, 2)]
        assert (first.matched_verse.chapter, first.matched_verse.verse) == (1, 1)
        (error,) = first.errors
        assert error.type == ErrorType.OMISSION
        assert (error.chapter, error.verse, error.word_index) == (1, 2, 2)
        assert first.updated_progress.position == (1, 2, 2)

        assert second.errors == []
        assert session.current_progress.position == (1, 3, 0)
        assert session.error_type_counts == {"omission": 1}

    def test_whole_verses_in_one_chunk(self) -> None:
        session, (feedback,) = recite(make_service(), "A B C D E F G H I J K L", detailed=True)
        assert [v.verse for v in feedback.matched_verses] == [1, 2, 3]
        assert feedback.errors == []
        assert len(feedback.word_alignments) == 12
        assert session.current_progress.position == (1, 4, 0)

    def test_unmatched_words_past_the_verse_end_are_insertions(self) -> None:
        session, (feedback,) = recite(make_service(), "A B C D foo bar")
        (error,) = feedback.errors
        assert error.type == ErrorType.INSERTION
        assert (error.chapter, error.verse, error.word_index) == (1, 1, 4)
        assert error.heard_word == "foo bar"
        assert [v.verse for v in feedback.matched_verses] == [1]
        assert session.current_progress.position == (1, 2, 0)

    def test_detailed_alignment(self) -> None:
        session, (feedback,) = recite(make_service(), "A X C D", detailed=True)
        assert [a.status.value for a in feedback.word_alignments] == [
            "correct",
            "insertion",
            "omission",
            "correct",
            "correct",
        ]
        assert sorted(e.type for e in feedback.errors) == [ErrorType.INSERTION, ErrorType.OMISSION]

    def test_quick_mode_has_no_alignments(self) -> None:
        _, (feedback,) = recite(make_service(), "A B C D")
        assert feedback.word_alignments is None

    def test_end_of_text(self) -> None:
        transcriber = ScriptedTranscriber()
        session, feedbacks = recite(make_service(transcriber), "Y Z YY ZZ", "Y Z YY ZZ", start=(2, 2))
        assert session.current_progress.recitation_complete
        assert feedbacks[1].is_success is False
        assert transcriber.calls == 1

    def test_reference_confidence_blend(self) -> None:
        references = InMemoryReferenceDataset(
            [VerseReference(reciter_id="husary", chapter=1, verse=1, normalized_text="a x c d")]
        )
        _, (feedback,) = recite(make_service(references=references), "A X C D")
        assert feedback.validation.best_matching_reciter == "husary"
        assert feedback.validation.accuracy == pytest.approx(1.0)
        assert feedback.confidence == pytest.approx((0.775 + 1.0) / 2)


class TestPersistence:
    def test_snapshot_every_n_chunks(self) -> None:
        store = InMemorySessionStore()
        service = make_service(store=store, persist_every_chunks=5)

        async def scenario():
            session = await service.start_session("user-1")
            counts = []
            for text in ("A B", "C D", "E F", "G H", "I J", "K L"):
                await service.process_chunk(session.id, text.encode())
                counts.append(store.load_session(session.id).total_chunks_processed)
            return counts

        assert asyncio.run(scenario()) == [0, 0, 0, 0, 5, 5]

    def test_stop_snapshot_is_the_last_write(self) -> None:
        store = SlowStore()
        service = make_service(store=store, persist_every_chunks=1)

        async def scenario():
            session = await service.start_session("user-1")
            task = asyncio.create_task(service.process_chunk(session.id, b"A B C D"))
            await asyncio.sleep(0.05)
            summary = await service.stop_session(session.id)
            await task
            with pytest.raises(SessionClosedError):
                await service.process_chunk(session.id, b"E F G H")
            return session.id, summary, await service.get_session_statistics(session.id)

        session_id, summary, stats = asyncio.run(scenario())
        stored = store.load_session(session_id)
        assert stored.state == SessionState.STOPPED
        assert stored.ended_at == summary.ended_at
        assert stored.total_chunks_processed == 1
        assert not stats.is_active


class TestStatistics:
    def test_statistics(self) -> None:
        service = make_service()

        async def scenario():
            session = await service.start_session("user-1")
            # 1:1 once, 1:2 once, then 1:1 again from the search window
            for text in ("A X C D", "E F G Q", "A X C D"):
                await service.process_chunk(session.id, text.encode())
            return await service.get_session_statistics(session.id)

        stats = asyncio.run(scenario())
        assert stats.chunk_count == 3
        assert stats.total_errors == 3
        assert stats.error_breakdown == {"substitution": 3}
        assert stats.total_duration_seconds == pytest.approx(9.0)
        assert stats.words_per_minute == pytest.approx(80.0)
        assert stats.average_accuracy == 0.0
        assert stats.is_active
        assert [(v.chapter, v.verse, v.error_count) for v in stats.most_difficult_verses] == [
            (1, 1, 2),
            (1, 2, 1),
        ]
        assert stats.current_progress.position == (1, 3, 0)

    def test_empty_session(self) -> None:
        service = make_service()

        async def scenario():
            session = await service.start_session("user-1")
            return await service.get_session_statistics(session.id)

        stats = asyncio.run(scenario())
        assert stats.words_per_minute == 0.0
        assert stats.most_difficult_verses == []


class TestConcurrency:
    def test_sessions_are_independent(self) -> None:
        service = make_service(ScriptedTranscriber(delay=0.01))
        texts = ["A B C D", "A B", "A X C D", "E F G H", "U V W X", "A B C"]

        async def scenario():
            sessions = [await service.start_session(f"user-{i}") for i in range(len(texts))]
            await asyncio.gather(
                *(service.process_chunk(s.id, t.encode()) for s, t in zip(sessions, texts))
            )
            return [await service.get_session(s.id) for s in sessions]

        results = asyncio.run(scenario())
        assert [s.current_progress.position for s in results] == [
            (1, 2, 0),
            (1, 1, 2),
            (1, 2, 0),
            (1, 3, 0),
            (1, 1, 0),
            (1, 1, 3),
        ]
        assert [s.error_count for s in results] == [0, 1, 1, 0, 1, 1]

    def test_transcriptions_are_bounded(self) -> None:
        transcriber = ScriptedTranscriber(delay=0.02)
        service = make_service(transcriber, max_concurrent_transcriptions=3)

        async def scenario():
            sessions = [await service.start_session(f"user-{i}") for i in range(8)]
            await asyncio.gather(*(service.process_chunk(s.id, b"A B C D") for s in sessions))

        asyncio.run(scenario())
        assert transcriber.calls == 8
        assert 1 <= transcriber.max_in_flight <= 3

    def test_stop_during_transcription(self) -> None:
        transcriber = GatedTranscriber()
        service = make_service(transcriber)

        async def scenario():
            transcriber.entered = asyncio.Event()
            transcriber.gate = asyncio.Event()
            session = await service.start_session("user-1")
            task = asyncio.create_task(service.process_chunk(session.id, b"A B C D"))
            await transcriber.entered.wait()

            summary = await service.stop_session(session.id)
            transcriber.gate.set()
            with pytest.raises(SessionClosedError):
                await task
            return summary, await service.get_session(session.id)

        summary, stored = asyncio.run(scenario())
        assert summary.total_chunks_processed == 0
        assert stored.state == SessionState.STOPPED
        assert stored.current_progress.position == (1, 1, 0)
