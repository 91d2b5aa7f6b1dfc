"""Bounded in-memory store for public (not persisted) flashcard sessions."""

import threading
import time
import uuid
from collections import OrderedDict
from datetime import datetime, timezone

from studybuddy.errors import NotFoundError

NOT_FOUND_MESSAGE = 'Ephemeral flashcard session not found.'


class EphemeralSessionStore:
    """Capacity-bounded, TTL-expiring session cache.

    Insertion order doubles as age order: when the store is full the oldest
    session is evicted first. Expired sessions are dropped lazily on access.
    """

    def __init__(self, capacity=5000, ttl_seconds=7 * 24 * 60 * 60, clock=time.monotonic):
        self.capacity = max(1, int(capacity))
        self.ttl_seconds = max(1, int(ttl_seconds))
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions = OrderedDict()

    def __len__(self):
        with self._lock:
            self._purge_expired()
            return len(self._sessions)

    def _purge_expired(self):
        now = self._clock()
        expired = [sid for sid, (stored_at, _) in self._sessions.items() if now - stored_at >= self.ttl_seconds]
        for sid in expired:
            del self._sessions[sid]

    def create(self, session_name, flashcards, transcript):
        session_id = str(uuid.uuid4())
        session = {
            'sessionName': session_name,
            'flashcards': list(flashcards),
            'transcript': transcript,
            'createdDate': datetime.now(timezone.utc),
        }
        with self._lock:
            self._purge_expired()
            while len(self._sessions) >= self.capacity:
                self._sessions.popitem(last=False)
            self._sessions[session_id] = (self._clock(), session)
        return session_id, dict(session)

    def get(self, session_id):
        with self._lock:
            self._purge_expired()
            entry = self._sessions.get(str(session_id or ''))
        if entry is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return dict(entry[1])

    def delete(self, session_id):
        with self._lock:
            self._purge_expired()
            entry = self._sessions.pop(str(session_id or ''), None)
        if entry is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return True

    def clear(self):
        with self._lock:
            self._sessions.clear()
