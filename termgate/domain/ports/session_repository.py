"""Session repository port."""

from typing import Protocol

from ..entities import Session
from ..values import SessionId


class SessionRepository(Protocol):
    """Storage for active sessions."""

    def add(self, session: Session) -> None:
        ...

    def get(self, session_id: SessionId) -> Session | None:
        ...

    def remove(self, session_id: SessionId) -> Session | None:
        ...

    def count(self) -> int:
        ...

    def all_sessions(self) -> list[Session]:
        ...
