"""Domain errors."""

import math

from .values.validation_result import (
    EMPTY,
    NEWLINE,
    NULL_BYTE,
    TOO_LONG,
    RuleKind,
    ValidationResult,
)

_USER_MESSAGES = {
    EMPTY: "Please enter a command.",
    TOO_LONG: "The command is too long.",
    NULL_BYTE: "The command contains invalid input.",
    NEWLINE: "The command contains invalid input.",
}


class GatewayError(Exception):
    """Base class for all termgate errors."""


class ValidationError(GatewayError):
    """Input failed one of the validation rules."""

    def __init__(self, rule: RuleKind, reason: str, message: str | None = None) -> None:
        self.rule = rule
        self.reason = reason
        self.message = message or f"Invalid {rule}: {reason}"
        super().__init__(self.message)

    @classmethod
    def from_result(cls, result: ValidationResult, message: str | None = None) -> "ValidationError":
        if result.valid or result.reason is None:
            raise ValueError("Cannot build an error from a passed validation")
        return cls(result.rule, result.reason, message)

    @property
    def user_message(self) -> str:
        """Message safe to show to the user."""
        if self.rule is RuleKind.COMMAND:
            return _USER_MESSAGES.get(self.reason, self.message)
        return self.message


class PolicyViolation(GatewayError):
    """Command is not on the allow-list."""

    def __init__(self, attempted_command: str, base_command: str) -> None:
        self.attempted_command = attempted_command
        self.base_command = base_command
        super().__init__(f"Command '{base_command}' is not allowed.")

    @property
    def user_message(self) -> str:
        # Never reveal the allow-list
        return "This command is not permitted."


class RateLimitExceeded(GatewayError):
    """Commands were submitted faster than the session's rate limit."""

    def __init__(self, retry_after: float) -> None:
        self.retry_after = retry_after
        super().__init__(f"Too many commands, retry after {retry_after:.1f} seconds")

    @property
    def user_message(self) -> str:
        seconds = math.ceil(self.retry_after)
        if seconds <= 1:
            return "Please wait a moment before sending another command."
        return f"Please wait {seconds} seconds before sending another command."


class ExecutorError(GatewayError):
    """The executor could not complete a command. Ends the session."""


class ExecutorTimeout(ExecutorError):
    """Command did not finish within the session's command timeout."""

    def __init__(self, timeout: float, command: str = "") -> None:
        self.timeout = timeout
        self.command = command
        super().__init__(f"Command timed out after {timeout:g} seconds")


class TransportFailure(ExecutorError):
    """Process spawn or network transport failed."""


class AuditWriteFailure(GatewayError):
    """An audit event could not be persisted. Degraded, never fatal."""


class SessionStateError(GatewayError, ValueError):
    """Action is not legal in the session's current state."""


class SessionNotFoundError(GatewayError, LookupError):
    """No active session with the given ID."""
