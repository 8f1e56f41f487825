"""Tests for GatewayFacade."""

import asyncio

import pytest

from termgate.application.services import (
    AuditService,
    AuditSettings,
    CommandStatus,
    GatewayFacade,
)
from termgate.domain import (
    AuditEventType,
    AuditQuery,
    AuthMethod,
    ClientInfo,
    CommandResult,
    ConnectionConfig,
    ConnectionType,
    ExecutorTimeout,
    HostRule,
    PolicyViolation,
    RateLimitConfig,
    RateLimitExceeded,
    RuleKind,
    SessionNotFoundError,
    SessionState,
    TransportFailure,
    UserId,
    ValidationError,
)


def history(audit_service: AuditService) -> list:
    """All events in append order."""
    return audit_service.query(AuditQuery(newest_first=False))


def event_types(audit_service: AuditService) -> list[AuditEventType]:
    return [e.event_type for e in history(audit_service)]


async def connect(gateway: GatewayFacade, config: ConnectionConfig):
    outcome = await gateway.connect(
        config,
        user_id=UserId("alice"),
        terminal_identifier="term-1",
        client=ClientInfo(ip_address="203.0.113.5", user_agent="pytest"),
    )
    assert outcome.ok, outcome.message
    return outcome.session


class TestConnect:
    """Tests for opening sessions."""

    async def test_connect_success(self, gateway, audit_service, local_config, fake_executor):
        """Test that a valid connection starts a CONNECTED session."""
        session = await connect(gateway, local_config)

        assert session.state is SessionState.CONNECTED
        assert session.handle == {"handle": 1}
        assert gateway.session_count() == 1
        assert gateway.get_session(session.id) is session
        assert fake_executor.connected == [local_config]
        assert event_types(audit_service) == [AuditEventType.CONNECTED]

    async def test_connected_event_fields(self, gateway, audit_service, local_config, t0):
        """Test that connection details and client info are recorded."""
        session = await connect(gateway, local_config)

        event = history(audit_service)[0]
        assert event.session_id == session.id
        assert event.connection_type is ConnectionType.LOCAL
        assert event.user_id == UserId("alice")
        assert event.terminal_identifier == "term-1"
        assert event.ip_address == "203.0.113.5"
        assert event.user_agent == "pytest"
        assert event.timestamp == t0

    async def test_invalid_working_directory(
        self, gateway, audit_service, fake_executor
    ):
        """Test that a relative directory is rejected before connecting."""
        outcome = await gateway.connect(ConnectionConfig.local("relative/dir"))

        assert outcome.ok is False
        assert isinstance(outcome.error, ValidationError)
        assert outcome.error.rule is RuleKind.PATH
        assert fake_executor.connected == []
        assert gateway.session_count() == 0

        event = history(audit_service)[0]
        assert event.event_type is AuditEventType.ERROR
        assert event.rule == "path"
        assert event.reason == "not_absolute"

    async def test_traversal_in_working_directory(self, gateway):
        """Test that traversal in the directory is rejected."""
        outcome = await gateway.connect(ConnectionConfig.local("/srv/../etc"))

        assert outcome.error.reason == "traversal"

    async def test_invalid_ssh_host(self, gateway, audit_service, fake_executor):
        """Test that SSH hosts are validated before connecting."""
        config = ConnectionConfig(
            connection_type=ConnectionType.SSH,
            host="bad_host!",
            username="deploy",
            auth_method=AuthMethod.PASSWORD,
            credential_reference="vault:pw",
        )

        outcome = await gateway.connect(config)

        assert outcome.ok is False
        assert outcome.error.rule is RuleKind.HOST
        assert outcome.message == HostRule().message
        assert fake_executor.connected == []
        assert history(audit_service)[0].connection_type is ConnectionType.SSH

    async def test_ssh_localhost_refused_when_configured(
        self, fake_executor, audit_service, session_repository
    ):
        """Test that the host rule configuration is honoured."""
        gateway = GatewayFacade(
            executor=fake_executor,
            audit=audit_service,
            session_repository=session_repository,
            host_rule=HostRule(allow_localhost=False),
        )
        config = ConnectionConfig(
            connection_type=ConnectionType.SSH,
            host="localhost",
            username="deploy",
            auth_method=AuthMethod.KEY,
            credential_reference="vault:key",
        )

        outcome = await gateway.connect(config)

        assert outcome.error.reason == "localhost_not_allowed"

    async def test_ssh_connects_through_executor(self, gateway, ssh_config, audit_service):
        """Test that a valid SSH connection is handed to the executor."""
        session = await connect(gateway, ssh_config)

        event = history(audit_service)[0]
        assert session.connection_type is ConnectionType.SSH
        assert event.host == "server.example.com"
        assert event.port == 22
        assert event.username == "deploy"

    async def test_executor_connect_failure(
        self, gateway, audit_service, local_config, fake_executor
    ):
        """Test that a failed connect keeps no session."""
        fake_executor.connect_error = TransportFailure("spawn failed")

        outcome = await gateway.connect(local_config)

        assert outcome.ok is False
        assert isinstance(outcome.error, TransportFailure)
        assert gateway.session_count() == 0
        event = history(audit_service)[0]
        assert event.event_type is AuditEventType.ERROR
        assert event.reason == "connect_failed"

    async def test_unexpected_connect_error(
        self, gateway, audit_service, local_config, fake_executor
    ):
        """Test that a foreign exception on connect is audited as a failed connect."""
        fake_executor.connect_error = OSError("no such file")

        outcome = await gateway.connect(local_config)

        assert outcome.ok is False
        assert isinstance(outcome.error, TransportFailure)
        assert isinstance(outcome.error.__cause__, OSError)
        assert gateway.session_count() == 0
        assert history(audit_service)[0].reason == "connect_failed"

    async def test_connect_from_invalid_settings(self, gateway, audit_service, fake_executor):
        """Test that settings that cannot form a connection are audited."""
        data = {"connection_type": "ssh", "host": "server.example.com"}

        outcome = await gateway.connect_from(
            data,
            user_id=UserId("alice"),
            terminal_identifier="term-1",
            client=ClientInfo(ip_address="203.0.113.5", user_agent="curl/8"),
        )

        assert outcome.ok is False
        assert "Invalid connection settings" in outcome.message
        assert fake_executor.connected == []
        assert gateway.session_count() == 0
        event = history(audit_service)[0]
        assert event.event_type is AuditEventType.ERROR
        assert event.reason == "invalid_config"
        assert event.connection_type is ConnectionType.SSH
        assert event.host == "server.example.com"
        assert event.user_id == UserId("alice")
        assert event.terminal_identifier == "term-1"
        assert event.ip_address == "203.0.113.5"

    async def test_connect_from_unknown_type(self, gateway, audit_service):
        """Test that an unknown connection type is audited as a local attempt."""
        outcome = await gateway.connect_from({"type": "telnet", "host": 42})

        assert outcome.ok is False
        event = history(audit_service)[0]
        assert event.reason == "invalid_config"
        assert event.connection_type is ConnectionType.LOCAL
        assert event.host is None

    async def test_connect_from_valid_settings(self, gateway, audit_service, fake_executor):
        """Test that valid settings open a session."""
        outcome = await gateway.connect_from({"type": "local", "working_directory": "/tmp"})

        assert outcome.ok is True
        assert fake_executor.connected[0].working_directory == "/tmp"
        assert event_types(audit_service) == [AuditEventType.CONNECTED]

    async def test_disabled_gateway(
        self, fake_executor, audit_service, session_repository, local_config
    ):
        """Test that a disabled terminal refuses connections."""
        gateway = GatewayFacade(
            executor=fake_executor,
            audit=audit_service,
            session_repository=session_repository,
            enabled=False,
        )

        outcome = await gateway.connect(local_config)

        assert outcome.ok is False
        assert fake_executor.connected == []
        assert history(audit_service)[0].reason == "disabled"


class TestExecute:
    """Tests for running commands."""

    async def test_full_session_scenario(
        self, gateway, audit_service, local_config, fake_clock
    ):
        """Test connect, three commands and disconnect end to end."""
        session = await connect(gateway, local_config)

        for command in ["ls -la", "pwd", "git status"]:
            fake_clock.advance(1)
            outcome = await gateway.execute(session.id, command)
            assert outcome.status is CommandStatus.EXECUTED

        fake_clock.advance(1)
        closed = await gateway.disconnect(session.id)

        assert event_types(audit_service) == [
            AuditEventType.CONNECTED,
            AuditEventType.COMMAND,
            AuditEventType.COMMAND,
            AuditEventType.COMMAND,
            AuditEventType.DISCONNECTED,
        ]
        assert closed is session
        assert session.commands_run == 3
        assert session.errors_count == 0
        assert session.state is SessionState.DISCONNECTED
        assert session.ended_at is not None
        assert session.ended_at >= session.started_at

    async def test_command_event_fields(self, gateway, audit_service, local_config, fake_executor):
        """Test that the command event carries the result."""
        fake_executor.result = CommandResult(exit_code=0, output="file\n", duration_seconds=0.5)
        session = await connect(gateway, local_config)

        outcome = await gateway.execute(session.id, "ls")

        event = history(audit_service)[-1]
        assert outcome.result == fake_executor.result
        assert event.event_type is AuditEventType.COMMAND
        assert event.command == "ls"
        assert event.exit_code == 0
        assert event.output == "file\n"
        assert event.execution_time_seconds == 0.5

    async def test_non_zero_exit_is_executed(
        self, gateway, audit_service, local_config, fake_executor
    ):
        """Test that a failing command is still a normal result."""
        fake_executor.result = CommandResult(exit_code=1, output="error\n")
        session = await connect(gateway, local_config)

        outcome = await gateway.execute(session.id, "false")

        assert outcome.status is CommandStatus.EXECUTED
        assert session.commands_run == 1
        assert session.errors_count == 0
        assert len(audit_service.query(AuditQuery(failed_commands_only=True))) == 1

    async def test_validator_blocks_command(
        self, gateway, audit_service, local_config, fake_executor
    ):
        """Test that injection attempts are blocked and counted as errors."""
        session = await connect(gateway, local_config)

        outcome = await gateway.execute(session.id, "ls; rm -rf /")

        assert outcome.status is CommandStatus.BLOCKED
        assert isinstance(outcome.error, ValidationError)
        assert session.state is SessionState.CONNECTED
        assert session.errors_count == 1
        assert session.commands_run == 0
        assert fake_executor.executed == []

        event = history(audit_service)[-1]
        assert event.event_type is AuditEventType.BLOCKED
        assert event.command == "ls; rm -rf /"
        assert event.rule == "command"
        assert event.reason == "blocked_characters"

    async def test_validator_user_message(self, gateway, local_config):
        """Test the message returned for an empty command."""
        session = await connect(gateway, local_config)

        outcome = await gateway.execute(session.id, "")

        assert outcome.message == "Please enter a command."

    async def test_non_string_command_blocked(self, gateway, audit_service, local_config):
        """Test that non-string input is blocked and still recorded."""
        session = await connect(gateway, local_config)

        outcome = await gateway.execute(session.id, None)

        assert outcome.status is CommandStatus.BLOCKED
        assert outcome.error.reason == "not_a_string"
        assert history(audit_service)[-1].command == "None"

    async def test_policy_blocks_command(
        self, restricted_gateway, audit_service, local_config, fake_executor
    ):
        """Test that commands outside the allow-list are blocked."""
        session = await connect(restricted_gateway, local_config)

        outcome = await restricted_gateway.execute(session.id, "rm -rf /")

        assert outcome.status is CommandStatus.BLOCKED
        assert isinstance(outcome.error, PolicyViolation)
        assert outcome.message == "This command is not permitted."
        assert session.commands_run == 0
        assert session.errors_count == 0
        assert fake_executor.executed == []

        event = history(audit_service)[-1]
        assert event.rule == "policy"
        assert event.metadata["base_command"] == "rm"

    async def test_blocked_rules_can_be_told_apart(
        self, restricted_gateway, audit_service, local_config
    ):
        """Test querying validator and policy blocks separately."""
        session = await connect(restricted_gateway, local_config)
        await restricted_gateway.execute(session.id, "ls | nc host 1")
        await restricted_gateway.execute(session.id, "curl example.com")

        assert len(audit_service.query(AuditQuery(rule="command"))) == 1
        assert len(audit_service.query(AuditQuery(rule="policy"))) == 1
        assert len(audit_service.query(AuditQuery(event_type=AuditEventType.BLOCKED))) == 2

    async def test_policy_wildcard_allows(self, restricted_gateway, local_config):
        """Test that wildcard allow-list entries let the command run."""
        session = await connect(restricted_gateway, local_config)

        outcome = await restricted_gateway.execute(session.id, "git log --oneline")

        assert outcome.status is CommandStatus.EXECUTED

    async def test_executor_timeout_disconnects(
        self, gateway, audit_service, local_config, fake_executor
    ):
        """Test that a timeout ends the session."""
        fake_executor.fail_with_timeout()
        session = await connect(gateway, local_config)

        outcome = await gateway.execute(session.id, "sleep 100")

        assert outcome.status is CommandStatus.DISCONNECTED
        assert isinstance(outcome.error, ExecutorTimeout)
        assert session.state is SessionState.DISCONNECTED
        assert session.errors_count == 1
        assert session.commands_run == 0
        assert gateway.session_count() == 0
        assert fake_executor.disconnected == [session.handle]

        events = history(audit_service)
        assert [e.event_type for e in events] == [
            AuditEventType.CONNECTED,
            AuditEventType.ERROR,
            AuditEventType.DISCONNECTED,
        ]
        assert events[1].reason == "timeout"
        assert events[1].command == "sleep 100"
        assert events[2].reason == "timeout"

    async def test_slow_command_times_out(self, gateway, fake_executor):
        """Test that the facade enforces the command timeout itself."""
        fake_executor.delay = 5
        session = await connect(gateway, ConnectionConfig.local("/tmp", command_timeout=1))

        outcome = await gateway.execute(session.id, "sleep 5")

        assert outcome.status is CommandStatus.DISCONNECTED
        assert isinstance(outcome.error, ExecutorTimeout)
        assert outcome.error.timeout == 1

    async def test_transport_failure_disconnects(
        self, gateway, audit_service, local_config, fake_executor
    ):
        """Test that a transport failure ends the session."""
        fake_executor.fail_with_transport()
        session = await connect(gateway, local_config)

        outcome = await gateway.execute(session.id, "ls")

        assert outcome.status is CommandStatus.DISCONNECTED
        assert session.state is SessionState.DISCONNECTED
        assert history(audit_service)[1].reason == "transport_failure"
        with pytest.raises(SessionNotFoundError):
            await gateway.execute(session.id, "ls")

    async def test_unexpected_executor_error_disconnects(
        self, gateway, audit_service, local_config, fake_executor
    ):
        """Test that a foreign exception from the executor ends the session cleanly."""
        fake_executor.error = RuntimeError("broken pipe")
        session = await connect(gateway, local_config)

        outcome = await gateway.execute(session.id, "ls")

        assert outcome.status is CommandStatus.DISCONNECTED
        assert isinstance(outcome.error, TransportFailure)
        assert "broken pipe" in str(outcome.error)
        assert session.state is SessionState.DISCONNECTED
        assert event_types(audit_service) == [
            AuditEventType.CONNECTED,
            AuditEventType.ERROR,
            AuditEventType.DISCONNECTED,
        ]
        assert history(audit_service)[1].reason == "transport_failure"
        assert fake_executor.disconnected == [session.handle]
        assert gateway.session_count() == 0

    async def test_disconnect_failure_is_best_effort(
        self, gateway, audit_service, local_config, fake_executor
    ):
        """Test that a failing handle release does not hide the outcome."""
        fake_executor.fail_with_transport()
        fake_executor.disconnect_error = TransportFailure("already gone")
        session = await connect(gateway, local_config)

        outcome = await gateway.execute(session.id, "ls")

        assert outcome.status is CommandStatus.DISCONNECTED
        assert event_types(audit_service)[-1] is AuditEventType.DISCONNECTED

    async def test_cancellation_returns_to_connected(
        self, gateway, audit_service, local_config, fake_executor
    ):
        """Test that a cancelled command is recorded and the session survives."""
        fake_executor.delay = 10
        session = await connect(gateway, local_config)

        task = asyncio.create_task(gateway.execute(session.id, "sleep 10"))
        await fake_executor.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.state is SessionState.CONNECTED
        assert session.errors_count == 1
        assert session.commands_run == 0
        event = history(audit_service)[-1]
        assert event.event_type is AuditEventType.ERROR
        assert event.reason == "cancelled"

        fake_executor.delay = 0
        outcome = await gateway.execute(session.id, "ls")
        assert outcome.status is CommandStatus.EXECUTED

    async def test_unknown_session(self, gateway, session_id):
        """Test that unknown sessions are reported."""
        with pytest.raises(SessionNotFoundError):
            await gateway.execute(session_id, "ls")

    async def test_same_session_commands_serialized(self, gateway, local_config, fake_executor):
        """Test that concurrent commands on one session run one at a time."""
        fake_executor.delay = 0.05
        session = await connect(gateway, local_config)

        outcomes = await asyncio.gather(
            gateway.execute(session.id, "ls"),
            gateway.execute(session.id, "pwd"),
        )

        assert [o.status for o in outcomes] == [CommandStatus.EXECUTED] * 2
        assert session.commands_run == 2

    async def test_sessions_run_independently(self, gateway, local_config, fake_executor):
        """Test that different sessions execute concurrently."""
        fake_executor.delay = 0.2
        first = await connect(gateway, local_config)
        second = await connect(gateway, local_config)

        loop = asyncio.get_running_loop()
        start = loop.time()
        await asyncio.gather(
            gateway.execute(first.id, "ls"),
            gateway.execute(second.id, "ls"),
        )

        assert loop.time() - start < 0.4
        assert first.commands_run == second.commands_run == 1


class TestDisconnect:
    """Tests for closing sessions."""

    async def test_disconnect_records_counters(
        self, gateway, audit_service, local_config, fake_executor
    ):
        """Test the final event and released handle."""
        session = await connect(gateway, local_config)
        await gateway.execute(session.id, "ls")
        await gateway.execute(session.id, "ls; id")

        await gateway.disconnect(session.id)

        event = history(audit_service)[-1]
        assert event.event_type is AuditEventType.DISCONNECTED
        assert event.reason == "user"
        assert event.metadata["commands_run"] == "1"
        assert event.metadata["errors_count"] == "1"
        assert fake_executor.disconnected == [session.handle]
        assert gateway.session_count() == 0

    async def test_disconnect_twice(self, gateway, local_config):
        """Test that a closed session cannot be closed again."""
        session = await connect(gateway, local_config)
        await gateway.disconnect(session.id)

        with pytest.raises(SessionNotFoundError):
            await gateway.disconnect(session.id)

    async def test_shutdown_closes_all(self, gateway, audit_service, local_config):
        """Test that shutdown disconnects every session."""
        first = await connect(gateway, local_config)
        second = await connect(gateway, local_config)

        await gateway.shutdown()

        assert gateway.session_count() == 0
        assert first.state is second.state is SessionState.DISCONNECTED
        disconnected = audit_service.query(AuditQuery(event_type=AuditEventType.DISCONNECTED))
        assert {e.reason for e in disconnected} == {"shutdown"}


class TestOutputAndAuditFailures:
    """Tests for output recording and degraded auditing."""

    async def test_output_not_recorded_by_default(self, gateway, audit_service, local_config):
        """Test that output logging is opt-in."""
        session = await connect(gateway, local_config)

        assert gateway.record_output(session.id, "streamed text") is False
        assert AuditEventType.OUTPUT not in event_types(audit_service)

    async def test_output_recorded_when_enabled(
        self, fake_executor, audit_log, session_repository, local_config
    ):
        """Test that OUTPUT events are written when enabled."""
        audit = AuditService(audit_log, AuditSettings(log_output=True))
        gateway = GatewayFacade(
            executor=fake_executor, audit=audit, session_repository=session_repository
        )
        session = await connect(gateway, local_config)

        assert gateway.record_output(session.id, "streamed text") is True
        assert history(audit)[-1].output == "streamed text"

    async def test_audit_failure_does_not_abort_actions(
        self, fake_executor, failing_audit_log, session_repository, local_config
    ):
        """Test that a broken audit store degrades instead of failing."""
        audit = AuditService(failing_audit_log)
        gateway = GatewayFacade(
            executor=fake_executor, audit=audit, session_repository=session_repository
        )

        session = await connect(gateway, local_config)
        outcome = await gateway.execute(session.id, "ls")
        await gateway.disconnect(session.id)

        assert outcome.status is CommandStatus.EXECUTED
        assert audit.pending_count == 3

        failing_audit_log.failing = False
        assert audit.retry_pending() == 3
        assert len(failing_audit_log) == 3


class TestRateLimit:
    """Tests for per-session command throttling."""

    @pytest.fixture
    def limited_gateway(self, fake_executor, audit_service, session_repository, fake_clock):
        """Gateway allowing two commands at once, then one per second."""
        return GatewayFacade(
            executor=fake_executor,
            audit=audit_service,
            session_repository=session_repository,
            rate_limit=RateLimitConfig(rate=1.0, burst=2),
            clock=fake_clock,
        )

    async def test_burst_then_blocked(
        self, limited_gateway, audit_service, local_config, fake_executor
    ):
        """Test that commands beyond the burst are blocked and audited."""
        session = await connect(limited_gateway, local_config)

        await limited_gateway.execute(session.id, "ls")
        await limited_gateway.execute(session.id, "pwd")
        outcome = await limited_gateway.execute(session.id, "whoami")

        assert outcome.status is CommandStatus.BLOCKED
        assert isinstance(outcome.error, RateLimitExceeded)
        assert outcome.message == "Please wait a moment before sending another command."
        assert fake_executor.executed == ["ls", "pwd"]
        assert session.state is SessionState.CONNECTED
        event = history(audit_service)[-1]
        assert event.event_type is AuditEventType.BLOCKED
        assert event.command == "whoami"
        assert event.rule == "rate_limit"
        assert event.reason == "too_many_commands"
        assert event.metadata["retry_after"] == "1.000"

    async def test_refills_over_time(self, limited_gateway, local_config, fake_clock):
        """Test that waiting allows commands again."""
        session = await connect(limited_gateway, local_config)
        for command in ("ls", "pwd", "whoami"):
            await limited_gateway.execute(session.id, command)

        fake_clock.advance(1.0)
        outcome = await limited_gateway.execute(session.id, "date")

        assert outcome.status is CommandStatus.EXECUTED

    async def test_invalid_commands_use_tokens(self, limited_gateway, local_config):
        """Test that every submission counts, even ones the validators block."""
        session = await connect(limited_gateway, local_config)

        await limited_gateway.execute(session.id, "ls; id")
        await limited_gateway.execute(session.id, "ls; id")
        outcome = await limited_gateway.execute(session.id, "ls")

        assert isinstance(outcome.error, RateLimitExceeded)

    async def test_sessions_have_own_buckets(self, limited_gateway, local_config):
        """Test that one busy session does not throttle another."""
        busy = await connect(limited_gateway, local_config)
        idle = await connect(limited_gateway, local_config)
        for command in ("ls", "pwd", "whoami"):
            await limited_gateway.execute(busy.id, command)

        outcome = await limited_gateway.execute(idle.id, "ls")

        assert outcome.status is CommandStatus.EXECUTED

    async def test_unlimited_by_default(self, gateway, local_config):
        """Test that a gateway without a rate limit never throttles."""
        session = await connect(gateway, local_config)

        statuses = {(await gateway.execute(session.id, "ls")).status for _ in range(20)}

        assert statuses == {CommandStatus.EXECUTED}
