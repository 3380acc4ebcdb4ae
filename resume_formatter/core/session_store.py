from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from resume_formatter.core.config import settings
from resume_formatter.schemas.resume import ResumeFormat, ResumeRecord
from resume_formatter.services.review import ReviewSession

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StoredSession:
    session_id: str
    format: ResumeFormat
    filename: str
    review: ReviewSession
    created_at: datetime
    last_access: datetime
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class SessionStore:
    """In-memory review sessions keyed by an unguessable id, expired after an idle TTL."""

    def __init__(self, ttl_minutes: int):
        self._ttl = timedelta(minutes=max(1, int(ttl_minutes)))
        self._sessions: dict[str, StoredSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _expired(self, session: StoredSession, now: datetime) -> bool:
        return session.last_access + self._ttl <= now

    def create(self, record: ResumeRecord, fmt: ResumeFormat, filename: str = "") -> StoredSession:
        now = _utc_now()
        session = StoredSession(
            session_id=secrets.token_urlsafe(12),
            format=ResumeFormat(fmt),
            filename=filename,
            review=ReviewSession(record),
            created_at=now,
            last_access=now,
        )
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info("session_created id=%s format=%s", session.session_id, session.format.value)
        return session

    def get(self, session_id: str) -> Optional[StoredSession]:
        now = _utc_now()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if self._expired(session, now):
                del self._sessions[session_id]
                logger.info("session_expired id=%s", session_id)
                return None
            session.last_access = now
            return session

    def delete(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info("session_deleted id=%s", session_id)
        return removed is not None

    def purge_expired(self) -> int:
        now = _utc_now()
        with self._lock:
            expired = [sid for sid, session in self._sessions.items() if self._expired(session, now)]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


session_store = SessionStore(ttl_minutes=settings.session_ttl_minutes)


def get_session_store() -> SessionStore:
    return session_store
