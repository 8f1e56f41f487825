"""Gateway facade - runs one user action end to end.

Action flow: validators, command policy, session transition, executor,
audit append. Validation and policy failures are returned as outcomes;
executor failures end the session.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from termgate.domain import (
    AuditEvent,
    AuditEventType,
    ClientInfo,
    CommandPolicy,
    CommandResult,
    CommandRule,
    ConnectionConfig,
    ConnectionType,
    ExecutorError,
    ExecutorPort,
    ExecutorTimeout,
    GatewayError,
    HostRule,
    PathRule,
    PolicyResult,
    RateLimitConfig,
    RateLimitExceeded,
    RuleKind,
    Session,
    SessionId,
    SessionNotFoundError,
    SessionRepository,
    SessionState,
    SessionStateError,
    TokenBucketRateLimiter,
    TransportFailure,
    UserId,
    ValidationError,
    ValidationResult,
)
from termgate.domain.entities.audit_event import REASON_KEY, RULE_KEY

from .audit_service import AuditService

logger = logging.getLogger(__name__)

POLICY_RULE = "policy"
RATE_LIMIT_RULE = "rate_limit"

# Reasons recorded in event metadata
REASON_DISABLED = "disabled"
REASON_CONNECT_FAILED = "connect_failed"
REASON_INVALID_CONFIG = "invalid_config"
REASON_NOT_ALLOWED = "not_allowed"
REASON_TIMEOUT = "timeout"
REASON_TRANSPORT_FAILURE = "transport_failure"
REASON_CANCELLED = "cancelled"
REASON_USER = "user"
REASON_SHUTDOWN = "shutdown"
REASON_TOO_MANY_COMMANDS = "too_many_commands"


class CommandStatus(StrEnum):
    EXECUTED = "executed"
    BLOCKED = "blocked"
    REJECTED = "rejected"
    DISCONNECTED = "disconnected"


def _connection_type_of(data: Mapping[str, Any]) -> ConnectionType:
    try:
        return ConnectionType(data.get("connection_type") or data.get("type", "local"))
    except ValueError:
        return ConnectionType.LOCAL


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _user_message(error: GatewayError | None) -> str | None:
    if error is None:
        return None
    return getattr(error, "user_message", str(error))


@dataclass(frozen=True, slots=True)
class ConnectOutcome:
    """Result of a connect attempt. ``session`` is None on failure."""

    session: Session | None
    error: GatewayError | None = None

    @property
    def ok(self) -> bool:
        return self.session is not None

    @property
    def message(self) -> str | None:
        return _user_message(self.error)


@dataclass(frozen=True, slots=True)
class CommandOutcome:
    """Result of one submitted command.

    BLOCKED: a validator or the policy refused it, session unchanged.
    REJECTED: the session could not accept a command.
    DISCONNECTED: the executor failed and the session was closed.
    """

    status: CommandStatus
    session_id: SessionId
    result: CommandResult | None = None
    error: GatewayError | None = None

    @property
    def message(self) -> str | None:
        return _user_message(self.error)


class GatewayFacade:
    """Single entry point for the presentation layer.

    Actions on one session are serialized; different sessions run
    independently.
    """

    def __init__(
        self,
        executor: ExecutorPort,
        audit: AuditService,
        session_repository: SessionRepository,
        policy: CommandPolicy | None = None,
        command_rule: CommandRule | None = None,
        host_rule: HostRule | None = None,
        path_rule: PathRule | None = None,
        rate_limit: RateLimitConfig | None = None,
        enabled: bool = True,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._executor = executor
        self._audit = audit
        self._repository = session_repository
        self._policy = policy or CommandPolicy.unrestricted()
        self._command_rule = command_rule or CommandRule()
        self._host_rule = host_rule or HostRule()
        self._path_rule = path_rule or PathRule()
        self._enabled = enabled
        self._clock = clock or (lambda: datetime.now(UTC))
        self._rate_limit = rate_limit
        self._locks: dict[SessionId, asyncio.Lock] = {}
        self._limiters: dict[SessionId, TokenBucketRateLimiter] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def policy(self) -> CommandPolicy:
        return self._policy

    @property
    def audit(self) -> AuditService:
        return self._audit

    # -- Connect -----------------------------------------------------------

    async def connect(
        self,
        config: ConnectionConfig,
        user_id: UserId | None = None,
        terminal_identifier: str | None = None,
        client: ClientInfo | None = None,
    ) -> ConnectOutcome:
        """Validate the connection, open it and start a session.

        Failures append an ERROR event and keep no session.
        """
        session = Session(
            id=SessionId.generate(),
            config=config,
            started_at=self._clock(),
            user_id=user_id,
            terminal_identifier=terminal_identifier,
            client=client or ClientInfo(),
        )

        if not self._enabled:
            error = GatewayError("Terminal is disabled")
            self._record(
                session,
                AuditEventType.ERROR,
                output=str(error),
                metadata={REASON_KEY: REASON_DISABLED},
            )
            logger.warning("Connect refused, terminal disabled session_id=%s", session.id)
            return ConnectOutcome(None, error)

        validation_error = self._validate_connection(config)
        if validation_error is not None:
            self._record(
                session,
                AuditEventType.ERROR,
                output=validation_error.message,
                metadata={RULE_KEY: str(validation_error.rule), REASON_KEY: validation_error.reason},
            )
            logger.warning(
                "Connect rejected session_id=%s rule=%s reason=%s",
                session.id,
                validation_error.rule,
                validation_error.reason,
            )
            return ConnectOutcome(None, validation_error)

        try:
            handle = await self._executor.connect(config)
        except ExecutorError as e:
            return self._connect_failed(session, e)
        except Exception as e:
            logger.exception("Unexpected executor error on connect session_id=%s", session.id)
            failure = TransportFailure(f"{type(e).__name__}: {e}")
            failure.__cause__ = e
            return self._connect_failed(session, failure)

        session.mark_connected(handle)
        self._repository.add(session)
        self._locks[session.id] = asyncio.Lock()
        if self._rate_limit is not None:
            self._limiters[session.id] = TokenBucketRateLimiter(self._rate_limit, self._clock)
        self._record(session, AuditEventType.CONNECTED)

        logger.info(
            "Session connected session_id=%s type=%s user=%s terminal=%s",
            session.id,
            config.connection_type,
            user_id,
            terminal_identifier,
        )
        return ConnectOutcome(session)

    async def connect_from(
        self,
        data: Mapping[str, Any],
        user_id: UserId | None = None,
        terminal_identifier: str | None = None,
        client: ClientInfo | None = None,
    ) -> ConnectOutcome:
        """Build the connection from raw settings, then ``connect``.

        Settings that do not form a valid connection are audited as an
        ERROR event with reason ``invalid_config``.
        """
        try:
            config = ConnectionConfig.from_dict(data)
        except (ValueError, TypeError) as e:
            error = GatewayError(f"Invalid connection settings: {e}")
            client = client or ClientInfo()
            self._audit.record(
                AuditEvent(
                    session_id=SessionId.generate(),
                    event_type=AuditEventType.ERROR,
                    connection_type=_connection_type_of(data),
                    timestamp=self._clock(),
                    user_id=user_id,
                    terminal_identifier=terminal_identifier,
                    host=_str_or_none(data.get("host")),
                    username=_str_or_none(data.get("username")),
                    output=str(error),
                    ip_address=client.ip_address,
                    user_agent=client.user_agent,
                    metadata={REASON_KEY: REASON_INVALID_CONFIG},
                )
            )
            logger.warning("Connect rejected, invalid connection settings error=%s", e)
            return ConnectOutcome(None, error)

        return await self.connect(config, user_id, terminal_identifier, client)

    def _connect_failed(self, session: Session, error: ExecutorError) -> ConnectOutcome:
        self._record(
            session,
            AuditEventType.ERROR,
            output=str(error),
            metadata={REASON_KEY: REASON_CONNECT_FAILED},
        )
        logger.error("Connect failed session_id=%s error=%s", session.id, error)
        return ConnectOutcome(None, error)

    def _validate_connection(self, config: ConnectionConfig) -> ValidationError | None:
        if config.connection_type.requires_credentials or config.host is not None:
            result = self._host_rule.check(config.host)
            if not result:
                return ValidationError.from_result(result, self._host_rule.message)

        if config.working_directory is not None:
            result = self._path_rule.check(config.working_directory)
            if not result:
                return ValidationError.from_result(result, self._path_rule.message)

        return None

    # -- Command -----------------------------------------------------------

    async def execute(self, session_id: SessionId, command: Any) -> CommandOutcome:
        """Validate, authorize and run one command on a session.

        Raises:
            SessionNotFoundError: If no active session has this ID.
        """
        session = self._require_session(session_id)
        async with self._locks[session.id]:
            if session.state is not SessionState.CONNECTED:
                error = SessionStateError(f"Session {session.id} is {session.state}")
                return CommandOutcome(CommandStatus.REJECTED, session.id, error=error)

            limiter = self._limiters.get(session.id)
            if limiter is not None and not limiter.try_acquire():
                return self._block_rate_limited(session, command, limiter.retry_after())

            validation = self._command_rule.check(command)
            if not validation:
                return self._block_invalid(session, command, validation)

            decision = self._policy.check(command)
            if not decision.allowed:
                return self._block_by_policy(session, decision)

            return await self._run(session, command)

    def _block_rate_limited(
        self, session: Session, command: Any, retry_after: float
    ) -> CommandOutcome:
        self._record(
            session,
            AuditEventType.BLOCKED,
            command=command if isinstance(command, str) else repr(command),
            metadata={
                RULE_KEY: RATE_LIMIT_RULE,
                REASON_KEY: REASON_TOO_MANY_COMMANDS,
                "retry_after": f"{retry_after:.3f}",
            },
        )
        logger.warning(
            "Command blocked session_id=%s rule=%s retry_after=%.3f",
            session.id,
            RATE_LIMIT_RULE,
            retry_after,
        )
        return CommandOutcome(
            CommandStatus.BLOCKED, session.id, error=RateLimitExceeded(retry_after)
        )

    def _block_invalid(
        self, session: Session, command: Any, validation: ValidationResult
    ) -> CommandOutcome:
        error = ValidationError.from_result(validation, self._command_rule.message)
        session.record_error()
        self._record(
            session,
            AuditEventType.BLOCKED,
            command=command if isinstance(command, str) else repr(command),
            metadata={RULE_KEY: str(RuleKind.COMMAND), REASON_KEY: error.reason},
        )
        logger.warning(
            "Command blocked session_id=%s rule=%s reason=%s",
            session.id,
            RuleKind.COMMAND,
            error.reason,
        )
        return CommandOutcome(CommandStatus.BLOCKED, session.id, error=error)

    def _block_by_policy(self, session: Session, decision: PolicyResult) -> CommandOutcome:
        self._record(
            session,
            AuditEventType.BLOCKED,
            command=decision.command,
            metadata={
                RULE_KEY: POLICY_RULE,
                REASON_KEY: REASON_NOT_ALLOWED,
                "base_command": decision.base_command,
            },
        )
        logger.warning(
            "Command blocked session_id=%s rule=%s base_command=%s",
            session.id,
            POLICY_RULE,
            decision.base_command,
        )
        return CommandOutcome(CommandStatus.BLOCKED, session.id, error=decision.to_violation())

    async def _run(self, session: Session, command: str) -> CommandOutcome:
        timeout = session.config.command_timeout
        session.begin_command()
        try:
            result = await asyncio.wait_for(
                self._executor.execute(session.handle, command, timeout), timeout
            )
        except TimeoutError:
            return await self._fail(session, command, ExecutorTimeout(timeout, command))
        except ExecutorError as e:
            return await self._fail(session, command, e)
        except asyncio.CancelledError:
            session.abort_command()
            session.record_error()
            self._record(
                session,
                AuditEventType.ERROR,
                command=command,
                metadata={REASON_KEY: REASON_CANCELLED},
            )
            logger.warning("Command cancelled session_id=%s", session.id)
            raise
        except Exception as e:
            # Executors from other libraries raise their own errors
            logger.exception("Unexpected executor error session_id=%s", session.id)
            failure = TransportFailure(f"{type(e).__name__}: {e}")
            failure.__cause__ = e
            return await self._fail(session, command, failure)

        session.complete_command()
        self._record(
            session,
            AuditEventType.COMMAND,
            command=command,
            exit_code=result.exit_code,
            output=result.output,
            execution_time_seconds=result.duration_seconds,
        )
        logger.info(
            "Command executed session_id=%s exit_code=%d duration=%s",
            session.id,
            result.exit_code,
            result.formatted_duration,
        )
        return CommandOutcome(CommandStatus.EXECUTED, session.id, result=result)

    async def _fail(self, session: Session, command: str, error: ExecutorError) -> CommandOutcome:
        reason = REASON_TIMEOUT if isinstance(error, ExecutorTimeout) else REASON_TRANSPORT_FAILURE
        session.record_error()
        self._record(
            session,
            AuditEventType.ERROR,
            command=command,
            output=str(error),
            metadata={REASON_KEY: reason},
        )
        logger.error("Executor failed session_id=%s reason=%s error=%s", session.id, reason, error)
        await self._close(session, reason)
        return CommandOutcome(CommandStatus.DISCONNECTED, session.id, error=error)

    # -- Output ------------------------------------------------------------

    def record_output(self, session_id: SessionId, output: str) -> bool:
        """Append an OUTPUT event for a live session.

        Returns:
            True if the event was written (output logging may be off).
        """
        session = self._require_session(session_id)
        return self._record(session, AuditEventType.OUTPUT, output=output)

    # -- Disconnect --------------------------------------------------------

    async def disconnect(self, session_id: SessionId) -> Session:
        """Close a session and return it with its final counters.

        Raises:
            SessionNotFoundError: If no active session has this ID.
        """
        session = self._require_session(session_id)
        async with self._locks[session.id]:
            if session.state is SessionState.DISCONNECTED:
                raise SessionStateError(f"Session {session.id} is already disconnected")
            await self._close(session, REASON_USER)
        return session

    async def shutdown(self) -> None:
        """Disconnect every active session."""
        for session in self._repository.all_sessions():
            lock = self._locks.get(session.id)
            if lock is None:
                continue
            async with lock:
                if session.is_active:
                    await self._close(session, REASON_SHUTDOWN)

    async def _close(self, session: Session, reason: str) -> None:
        session.finalize(self._clock())
        self._repository.remove(session.id)
        self._locks.pop(session.id, None)
        self._limiters.pop(session.id, None)

        self._record(
            session,
            AuditEventType.DISCONNECTED,
            metadata={
                REASON_KEY: reason,
                "commands_run": str(session.commands_run),
                "errors_count": str(session.errors_count),
            },
        )
        self._audit.forget(session.id)

        try:
            await self._executor.disconnect(session.handle)
        except Exception as e:
            logger.warning("Executor disconnect failed session_id=%s error=%s", session.id, e)
        logger.info(
            "Session disconnected session_id=%s reason=%s commands=%d errors=%d",
            session.id,
            reason,
            session.commands_run,
            session.errors_count,
        )

    # -- Queries -----------------------------------------------------------

    def get_session(self, session_id: SessionId) -> Session | None:
        return self._repository.get(session_id)

    def session_count(self) -> int:
        return self._repository.count()

    def _require_session(self, session_id: SessionId) -> Session:
        session = self._repository.get(session_id)
        if session is None or session.id not in self._locks:
            raise SessionNotFoundError(f"No active session {session_id}")
        return session

    def _record(self, session: Session, event_type: AuditEventType, **fields: Any) -> bool:
        config = session.config
        event = AuditEvent(
            session_id=session.id,
            event_type=event_type,
            connection_type=config.connection_type,
            timestamp=self._clock(),
            user_id=session.user_id,
            terminal_identifier=session.terminal_identifier,
            host=config.host,
            port=config.effective_port,
            username=config.username,
            ip_address=session.client.ip_address,
            user_agent=session.client.user_agent,
            **fields,
        )
        return self._audit.record(event)
