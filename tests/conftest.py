"""Shared test fixtures and configuration."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from termgate.application.services import AuditService, AuditSettings, GatewayFacade
from termgate.domain import (
    AuditEvent,
    AuditEventType,
    AuditWriteFailure,
    CommandPolicy,
    CommandResult,
    ConnectionConfig,
    ConnectionType,
    ExecutorTimeout,
    Session,
    SessionId,
    TransportFailure,
    UserId,
)
from termgate.infrastructure.repositories import InMemoryAuditLog, InMemorySessionRepository

# ============= Domain Fixtures =============

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def session_id():
    """Sample session ID."""
    return SessionId("test-session-123")


@pytest.fixture
def user_id():
    """Sample user ID."""
    return UserId("test-user")


@pytest.fixture
def local_config():
    """Local connection in an absolute working directory."""
    return ConnectionConfig.local(working_directory="/tmp")


@pytest.fixture
def ssh_config():
    """SSH connection with key authentication."""
    return ConnectionConfig.from_dict(
        {
            "type": "ssh",
            "host": "server.example.com",
            "username": "deploy",
            "auth_method": "key",
            "credential_reference": "vault:deploy-key",
        }
    )


@pytest.fixture
def sample_session(session_id, user_id, local_config):
    """Session that has not connected yet."""
    return Session(
        id=session_id,
        config=local_config,
        started_at=T0,
        user_id=user_id,
        terminal_identifier="term-1",
    )


def make_event(
    event_type: AuditEventType = AuditEventType.COMMAND,
    timestamp: datetime = T0,
    session_id: str = "test-session-123",
    **fields,
) -> AuditEvent:
    """Build an audit event with sensible defaults."""
    if event_type is AuditEventType.COMMAND:
        fields.setdefault("command", "ls")
        fields.setdefault("exit_code", 0)
    if event_type is AuditEventType.BLOCKED:
        fields.setdefault("command", "rm -rf /; echo")
        fields.setdefault("metadata", {"rule": "command", "reason": "blocked_characters"})
    fields.setdefault("connection_type", ConnectionType.LOCAL)
    return AuditEvent(
        session_id=SessionId(session_id),
        event_type=event_type,
        timestamp=timestamp,
        **fields,
    )


@pytest.fixture
def event_factory():
    """Factory for audit events, see ``make_event``."""
    return make_event


@pytest.fixture
def t0():
    """Fixed reference time used by the fake clock and event factory."""
    return T0


# ============= Mock Fixtures =============


class FakeClock:
    """Fake wall clock returning timezone-aware datetimes."""

    def __init__(self, start: datetime = T0):
        self._now = start

    def __call__(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)

    def set(self, when: datetime) -> None:
        self._now = when


@pytest.fixture
def fake_clock():
    """Fake clock starting at T0."""
    return FakeClock()


class FakeExecutor:
    """Fake executor recording every call.

    ``result`` is returned by ``execute`` unless ``error`` is set, in
    which case it is raised. ``delay`` makes ``execute`` sleep first.
    """

    def __init__(self):
        self.result = CommandResult(exit_code=0, output="ok\n", duration_seconds=0.01)
        self.error: Exception | None = None
        self.connect_error: Exception | None = None
        self.disconnect_error: Exception | None = None
        self.delay: float = 0.0
        self.connected: list[ConnectionConfig] = []
        self.executed: list[str] = []
        self.disconnected: list[object] = []
        self.started = asyncio.Event()

    async def connect(self, config: ConnectionConfig) -> object:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected.append(config)
        return {"handle": len(self.connected)}

    async def execute(self, handle: object, command: str, timeout: float) -> CommandResult:
        self.executed.append(command)
        self.started.set()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result

    async def disconnect(self, handle: object) -> None:
        self.disconnected.append(handle)
        if self.disconnect_error is not None:
            raise self.disconnect_error

    # Test helpers
    def fail_with_timeout(self) -> None:
        self.error = ExecutorTimeout(10.0, "sleep 100")

    def fail_with_transport(self) -> None:
        self.error = TransportFailure("connection reset")


@pytest.fixture
def fake_executor():
    """Fake executor returning exit code 0."""
    return FakeExecutor()


class FailingAuditLog(InMemoryAuditLog):
    """Audit log whose writes fail while ``failing`` is set.

    ``appended`` keeps successful writes in arrival order.
    """

    def __init__(self):
        super().__init__()
        self.failing = True
        self.appended: list[AuditEvent] = []

    def append(self, event: AuditEvent) -> None:
        if self.failing:
            raise AuditWriteFailure("disk full")
        super().append(event)
        self.appended.append(event)


@pytest.fixture
def failing_audit_log():
    return FailingAuditLog()


# ============= Service Fixtures =============


@pytest.fixture
def audit_log():
    """Empty in-memory audit log."""
    return InMemoryAuditLog()


@pytest.fixture
def audit_service(audit_log):
    """Audit service with default settings."""
    return AuditService(audit_log, AuditSettings())


@pytest.fixture
def session_repository():
    return InMemorySessionRepository()


@pytest.fixture
def gateway(fake_executor, audit_service, session_repository, fake_clock):
    """Gateway with an unrestricted policy and the fake executor."""
    return GatewayFacade(
        executor=fake_executor,
        audit=audit_service,
        session_repository=session_repository,
        policy=CommandPolicy.unrestricted(),
        clock=fake_clock,
    )


@pytest.fixture
def restricted_gateway(fake_executor, audit_service, session_repository, fake_clock):
    """Gateway allowing only ls, pwd and git."""
    return GatewayFacade(
        executor=fake_executor,
        audit=audit_service,
        session_repository=session_repository,
        policy=CommandPolicy.from_list(["ls", "pwd", "git *"]),
        clock=fake_clock,
    )
