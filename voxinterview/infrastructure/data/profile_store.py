"""
Session record storage.

Records are kept as a list keyed by session id. Every read returns a fresh
copy and every upsert replaces the whole record for its id, leaving all
other records untouched.
"""
import os
import json
import logging
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any

from ...interview.models import InterviewSession

logger = logging.getLogger("profile_store")


class SessionNotFoundError(KeyError):
    """Raised when a session id is not in the store."""

    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session '{self.session_id}' not found"


class ProfileStore(ABC):
    """Persistence for interview session records."""

    @abstractmethod
    def get(self, session_id: str) -> InterviewSession:
        """Return the record for ``session_id``. Raises SessionNotFoundError."""

    @abstractmethod
    def upsert(self, session: InterviewSession) -> None:
        """Insert or fully replace the record with ``session.id``."""

    @abstractmethod
    def list_sessions(self) -> List[InterviewSession]:
        """All records, most recent first."""


class InMemoryProfileStore(ProfileStore):
    """Process-local store, used for dry runs and tests."""

    def __init__(self, sessions: Optional[List[InterviewSession]] = None):
        self._records: Dict[str, Dict[str, Any]] = {}
        self.upsert_count = 0
        for session in sessions or []:
            self._records[session.id] = session.to_dict()

    def get(self, session_id: str) -> InterviewSession:
        data = self._records.get(session_id)
        if data is None:
            raise SessionNotFoundError(session_id)
        return InterviewSession.from_dict(data)

    def upsert(self, session: InterviewSession) -> None:
        self._records[session.id] = session.to_dict()
        self.upsert_count += 1

    def list_sessions(self) -> List[InterviewSession]:
        sessions = [InterviewSession.from_dict(d) for d in self._records.values()]
        return sorted(sessions, key=lambda s: s.date, reverse=True)


class JsonProfileStore(ProfileStore):
    """
    All records in one JSON file.

    Writes go to a temporary file in the same directory which then replaces
    the store file, so a crash mid-write never leaves a truncated store.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)

    def _load(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise RuntimeError(f"Session store {self.path} is corrupted: {e}") from e
        if not isinstance(data, list):
            raise RuntimeError(f"Session store {self.path} must contain a JSON list")
        return data

    def _save(self, records: List[Dict[str, Any]]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".sessions-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self, session_id: str) -> InterviewSession:
        with self._lock:
            records = self._load()
        for data in records:
            if data.get("id") == session_id:
                return InterviewSession.from_dict(data)
        raise SessionNotFoundError(session_id)

    def upsert(self, session: InterviewSession) -> None:
        with self._lock:
            records = self._load()
            updated = session.to_dict()
            for i, data in enumerate(records):
                if data.get("id") == session.id:
                    records[i] = updated
                    break
            else:
                records.append(updated)
            self._save(records)
        logger.info(f"Saved session {session.id} ({len(records)} records)")

    def list_sessions(self) -> List[InterviewSession]:
        with self._lock:
            records = self._load()
        sessions = [InterviewSession.from_dict(d) for d in records]
        return sorted(sessions, key=lambda s: s.date, reverse=True)
