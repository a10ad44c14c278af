"""In-process session registry with an explicit lifecycle."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger

from research_engine.config import settings
from research_engine.models.research import Depth, Session
from research_engine.services.memory import MemoryModule


class SessionNotFoundError(KeyError):
    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


class SessionStore:
    """Owns sessions between API or CLI calls.

    Passed explicitly to whoever needs lookup; there is no module-level
    registry.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._archived: dict[str, Session] = {}

    def create(
        self,
        topic: str,
        depth: Depth | str = Depth.MODERATE,
        *,
        max_content_per_page: int | None = None,
    ) -> Session:
        self.cleanup_expired()
        session = Session(
            topic=topic.strip(),
            depth=Depth(depth),
            memory=MemoryModule(),
            max_content_per_page=max_content_per_page or settings.max_content_per_page,
        )
        self._sessions[session.id] = session
        logger.info(f"Created session {session.id} ({session.depth.value}): {session.topic!r}")
        return session

    def get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def archived_sessions(self) -> list[Session]:
        return list(self._archived.values())

    def discard(self, session_id: str, *, archive: bool = False) -> Session:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        if archive:
            self._archived[session_id] = session
        logger.info(f"{'Archived' if archive else 'Discarded'} session {session_id}")
        return session

    def cleanup_expired(self, ttl_hours: int | None = None) -> list[str]:
        """Drop sessions older than the TTL and return their ids.

        Sessions with a research run in progress are kept.
        """
        hours = settings.session_ttl_hours if ttl_hours is None else ttl_hours
        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
        expired = [
            sid
            for sid, session in self._sessions.items()
            if session.created_at < cutoff and not session.is_running
        ]
        for sid in expired:
            del self._sessions[sid]
        expired_archived = [
            sid for sid, session in self._archived.items() if session.created_at < cutoff
        ]
        for sid in expired_archived:
            del self._archived[sid]
        if expired or expired_archived:
            logger.info(f"Expired {len(expired) + len(expired_archived)} session(s)")
        return expired + expired_archived

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions


def status(session: Session) -> dict[str, Any]:
    """Summary of where a session stands."""
    latest = session.memory.latest_result
    return {
        "id": session.id,
        "topic": session.topic,
        "depth": session.depth,
        "status": session.status.value,
        "iteration": session.iteration,
        "max_iterations": session.max_iterations,
        "sources": len(session.sources),
        "content_chars": session.total_content_length(),
        "queries": len(session.queries_executed),
        "aspects_planned": len(session.memory.plan),
        "aspects_covered": len(session.memory.aspects_covered),
        "coverage_score": latest.coverage_score if latest else None,
        "created_at": session.created_at.isoformat(),
    }
