"""In-memory session repository."""

from termgate.domain import Session, SessionId


class InMemorySessionRepository:
    """Active sessions kept in process memory."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def add(self, session: Session) -> None:
        self._sessions[str(session.id)] = session

    def get(self, session_id: SessionId) -> Session | None:
        return self._sessions.get(str(session_id))

    def remove(self, session_id: SessionId) -> Session | None:
        return self._sessions.pop(str(session_id), None)

    def count(self) -> int:
        return len(self._sessions)

    def all_sessions(self) -> list[Session]:
        return list(self._sessions.values())
