"""
Session progress tracking.

The tracker owns the rules for moving a session's cursor through the
reference text and for accumulating its errors. It does not lock: callers
serialize access per session.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from tasmee.exceptions import SessionClosedError, VerseNotFoundError
from tasmee.models import (
    MatchResult,
    Progress,
    RecitationError,
    RecitationMode,
    RecitationSession,
    SessionState,
    Verse,
)

if TYPE_CHECKING:
    from tasmee.data.corpus import Corpus

NEXT_EXPECTED_WORDS = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_accuracy(chunks: int, errors: int) -> float:
    """Share of processed chunks not offset by an error; 0 without chunks."""
    if chunks <= 0:
        return 0.0
    return max(0.0, (chunks - errors) / chunks)


class ProgressTracker:
    """
    State machine for recitation sessions: NOT_STARTED -> ACTIVE -> STOPPED.

    Example:
        tracker = ProgressTracker(corpus)
        session = tracker.start("user-1", chapter=1, verse=1)
        tracker.advance(session, match, verse_word_count=4)
        tracker.stop(session)
    """

    def __init__(self, corpus: "Corpus") -> None:
        self.corpus = corpus

    def _next_expected_text(self, verse: Optional[Verse], word_index: int) -> str:
        if verse is None:
            return ""
        return " ".join(verse.words[word_index:word_index + NEXT_EXPECTED_WORDS])

    def _check_active(self, session: RecitationSession) -> None:
        if session.state != SessionState.ACTIVE:
            raise SessionClosedError(session.id)

    def start(
        self,
        user_id: str,
        chapter: int,
        verse: int,
        mode: RecitationMode = RecitationMode.GUIDED,
        error_threshold: float = 0.7,
        session_id: Optional[str] = None,
    ) -> RecitationSession:
        """
        Create an active session with the cursor on (chapter, verse), word 0.

        Raises:
            VerseNotFoundError: If the starting verse is not in the corpus
        """
        start_verse = self.corpus.get_verse(chapter, verse)
        if start_verse is None:
            raise VerseNotFoundError(chapter, verse)

        fields = {}
        if session_id is not None:
            fields["id"] = session_id

        return RecitationSession(
            user_id=user_id,
            starting_chapter=chapter,
            starting_verse=verse,
            mode=RecitationMode(mode),
            error_threshold=error_threshold,
            state=SessionState.ACTIVE,
            current_progress=Progress(
                chapter=chapter,
                verse=verse,
                word_index=0,
                total_words_in_verse=start_verse.word_count,
                next_expected_text=self._next_expected_text(start_verse, 0),
            ),
            started_at=_utcnow(),
            **fields,
        )

    def advance(
        self,
        session: RecitationSession,
        match: MatchResult,
        verse_word_count: Optional[int] = None,
    ) -> Progress:
        """
        Move the cursor past the words of a confirmed match.

        The match may be on the expected verse or on a neighbor. A match on
        a verse before the cursor leaves the cursor where it is, so progress
        never goes backwards. When the new word index reaches the verse
        length the verse is complete and the cursor moves to word 0 of the
        next loaded verse, crossing into the next chapter when needed. Past
        the last loaded verse the recitation is complete and the cursor
        stays at the end of that verse.

        Args:
            session: Active session to update
            match: Confirmed match result
            verse_word_count: Word count of the matched verse (looked up when omitted)

        Returns:
            The updated progress

        Raises:
            SessionClosedError: If the session is not active
        """
        self._check_active(session)
        current = session.current_progress

        chapter = match.chapter if match.chapter is not None else current.chapter
        verse = match.verse if match.verse is not None else current.verse

        if (chapter, verse) < (current.chapter, current.verse) or current.recitation_complete:
            return current

        if (chapter, verse) == (current.chapter, current.verse):
            start_index = max(current.word_index, match.start_word_index)
        else:
            start_index = match.start_word_index

        matched_verse = self.corpus.get_verse(chapter, verse)
        if verse_word_count is None:
            verse_word_count = matched_verse.word_count if matched_verse else 0

        new_index = start_index + match.match_length
        percent = min(100.0, new_index / verse_word_count * 100) if verse_word_count else 100.0

        if new_index < verse_word_count:
            progress = Progress(
                chapter=chapter,
                verse=verse,
                word_index=new_index,
                total_words_in_verse=verse_word_count,
                percent_complete=percent,
                next_expected_text=self._next_expected_text(matched_verse, new_index),
            )
        else:
            progress = self._rollover(chapter, verse, verse_word_count)

        session.current_progress = progress
        return progress

    def _rollover(self, chapter: int, verse: int, verse_word_count: int) -> Progress:
        following = self.corpus.next_verse(chapter, verse)
        if following is None:
            last = self.corpus.get_verse(chapter, verse)
            return Progress(
                chapter=chapter,
                verse=verse,
                word_index=last.word_count if last else verse_word_count,
                total_words_in_verse=verse_word_count,
                percent_complete=100.0,
                verse_complete=True,
                chapter_complete=True,
                recitation_complete=True,
            )

        return Progress(
            chapter=following.chapter_number,
            verse=following.verse_number,
            word_index=0,
            total_words_in_verse=following.word_count,
            percent_complete=0.0,
            verse_complete=True,
            chapter_complete=following.chapter_number != chapter,
            next_expected_text=self._next_expected_text(following, 0),
        )

    def record_errors(self, session: RecitationSession, errors: list[RecitationError]) -> None:
        """
        Append errors to the session and update per-type counts.

        Raises:
            SessionClosedError: If the session is not active
        """
        self._check_active(session)
        for error in errors:
            session.session_errors.append(error)
            key = error.type.value
            session.error_type_counts[key] = session.error_type_counts.get(key, 0) + 1

    def record_chunk(self, session: RecitationSession, duration_seconds: float, word_count: int) -> None:
        """Count a processed chunk with its audio duration and transcript length."""
        self._check_active(session)
        session.total_chunks_processed += 1
        session.total_recitation_seconds += max(0.0, duration_seconds)
        session.total_words_recited += max(0, word_count)

    def stop(self, session: RecitationSession, now: Optional[datetime] = None) -> RecitationSession:
        """
        Finalize a session.

        accuracy = max(0, (chunks - errors) / chunks), or 0 without chunks.

        Raises:
            SessionClosedError: If the session is already stopped
        """
        self._check_active(session)
        session.average_accuracy = compute_accuracy(session.total_chunks_processed, session.error_count)
        session.ended_at = now or _utcnow()
        session.state = SessionState.STOPPED
        return session
