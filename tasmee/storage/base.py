"""
Session persistence.

The recognition service keeps active sessions in memory and snapshots them
to a SessionStore periodically and on stop.
"""

import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from tasmee._logging import get_logger
from tasmee.exceptions import DataFormatError
from tasmee.models import RecitationSession

logger = get_logger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class SessionStore(ABC):
    """Interface for session persistence."""

    @abstractmethod
    def save_session(self, session: RecitationSession) -> None:
        """Insert or replace a session snapshot."""
        ...

    @abstractmethod
    def load_session(self, session_id: str) -> Optional[RecitationSession]:
        """Load a session snapshot, or None if it was never saved."""
        ...

    @abstractmethod
    def delete_session(self, session_id: str) -> bool:
        """Delete a snapshot. Returns whether it existed."""
        ...

    @abstractmethod
    def list_session_ids(self) -> list[str]:
        """Ids of all saved sessions, sorted."""
        ...


class InMemorySessionStore(SessionStore):
    """
    Session store backed by a dict.

    Stores deep copies so later mutation of a live session does not leak
    into its snapshot.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, RecitationSession] = {}
        self._lock = threading.Lock()

    def save_session(self, session: RecitationSession) -> None:
        snapshot = session.model_copy(deep=True)
        with self._lock:
            self._sessions[session.id] = snapshot

    def load_session(self, session_id: str) -> Optional[RecitationSession]:
        with self._lock:
            snapshot = self._sessions.get(session_id)
        return snapshot.model_copy(deep=True) if snapshot is not None else None

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def list_session_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._sessions)


class JsonFileSessionStore(SessionStore):
    """
    One JSON document per session in a directory.

    Writes go to a temporary file that replaces the target, so a crash
    never leaves a half-written snapshot.

    Example:
        store = JsonFileSessionStore("data/sessions")
        store.save_session(session)
    """

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Path:
        if not _SAFE_ID.match(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.directory / f"{session_id}.json"

    def save_session(self, session: RecitationSession) -> None:
        path = self._path(session.id)
        data = session.model_dump_json(indent=2)

        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{session.id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_name, path)
            logger.debug(f"Saved session {session.id} to {path}")
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def load_session(self, session_id: str) -> Optional[RecitationSession]:
        path = self._path(session_id)
        if not path.exists():
            return None

        try:
            return RecitationSession.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as e:
            raise DataFormatError(f"Corrupt session snapshot: {e.error_count()} errors", source=str(path))

    def delete_session(self, session_id: str) -> bool:
        path = self._path(session_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_session_ids(self) -> list[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))
