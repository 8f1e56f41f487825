"""Configuration loading and validation using Pydantic."""

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from termgate.application.services import AuditSettings
from termgate.domain import (
    AuthMethod,
    CommandPolicy,
    CommandRule,
    ConnectionConfig,
    ConnectionType,
    HostRule,
    PathRule,
    RateLimitConfig,
)
from termgate.domain.values.rate_limit_config import DEFAULT_BURST, DEFAULT_RATE
from termgate.infrastructure.config import YAMLConfigLoader
from termgate.infrastructure.config.yaml_loader import DEFAULT_CONFIG_PATH

CONFIG_PATH_ENV = "TERMGATE_CONFIG_PATH"


class ConnectionSettings(BaseModel):
    """Connection parameters for new sessions."""

    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)
    username: str | None = None
    auth_method: AuthMethod = AuthMethod.NONE
    credential_reference: str | None = Field(default=None, repr=False)
    working_directory: str | None = None
    command_timeout: float = Field(default=10.0, ge=1)
    login_shell: bool = False


class CommandRuleSettings(BaseModel):
    """Command injection checks."""

    allow_pipes: bool = False
    allow_redirection: bool = False
    max_length: int = Field(default=1000, ge=1)
    message: str = CommandRule().message

    def to_rule(self) -> CommandRule:
        return CommandRule(
            allow_pipes=self.allow_pipes,
            allow_redirection=self.allow_redirection,
            max_length=self.max_length,
            message=self.message,
        )


class HostRuleSettings(BaseModel):
    """Host name checks for remote connections."""

    allow_ipv6: bool = True
    allow_localhost: bool = True
    message: str = HostRule().message

    def to_rule(self) -> HostRule:
        return HostRule(
            allow_ipv6=self.allow_ipv6,
            allow_localhost=self.allow_localhost,
            message=self.message,
        )


class PathRuleSettings(BaseModel):
    """Working directory checks."""

    allow_relative: bool = False
    block_traversal: bool = True
    message: str = PathRule().message

    def to_rule(self) -> PathRule:
        return PathRule(
            allow_relative=self.allow_relative,
            block_traversal=self.block_traversal,
            message=self.message,
        )


class RateLimitSettings(BaseModel):
    """Per-session command throttling."""

    enabled: bool = True
    rate: float = Field(default=DEFAULT_RATE, gt=0)
    burst: int = Field(default=DEFAULT_BURST, ge=1)

    def to_config(self) -> RateLimitConfig | None:
        if not self.enabled:
            return None
        return RateLimitConfig(rate=self.rate, burst=self.burst)


class AuditConfig(BaseModel):
    """Audit logging configuration.

    ``path`` is the JSON-lines audit file; without it events are kept in
    memory only.
    """

    enabled: bool = True
    path: Path | None = None
    fsync: bool = True
    log_connections: bool = True
    log_disconnections: bool = True
    log_commands: bool = True
    log_output: bool = False
    log_errors: bool = True
    max_output_length: int = Field(default=10_000, ge=1)
    truncate_output: bool = True
    terminals: list[str] = Field(default_factory=list)

    def to_settings(self) -> AuditSettings:
        return AuditSettings(
            enabled=self.enabled,
            log_connections=self.log_connections,
            log_disconnections=self.log_disconnections,
            log_commands=self.log_commands,
            log_output=self.log_output,
            log_errors=self.log_errors,
            max_output_length=self.max_output_length,
            truncate_output=self.truncate_output,
            terminals=tuple(self.terminals),
        )


class GatewaySettings(BaseModel):
    """Application configuration."""

    enabled: bool = True
    allowed_commands: list[str] = Field(default_factory=list)
    allow_all: bool = False
    connection_type: ConnectionType = ConnectionType.LOCAL
    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    command_rule: CommandRuleSettings = Field(default_factory=CommandRuleSettings)
    host_rule: HostRuleSettings = Field(default_factory=HostRuleSettings)
    path_rule: PathRuleSettings = Field(default_factory=PathRuleSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    @field_validator("allowed_commands", mode="before")
    @classmethod
    def split_allowed_commands(cls, v: object) -> object:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    def to_policy(self) -> CommandPolicy:
        return CommandPolicy.from_list(self.allowed_commands, allow_all=self.allow_all)

    def connection_data(self, working_directory: str | None = None) -> dict[str, Any]:
        """Raw connection settings for a new session, unvalidated."""
        data = self.connection.model_dump()
        data["connection_type"] = self.connection_type
        if working_directory is not None:
            data["working_directory"] = working_directory
        return data

    def to_connection_config(self, working_directory: str | None = None) -> ConnectionConfig:
        """Build the connection for a new session.

        Raises:
            ValueError: If the connection section is inconsistent.
        """
        return ConnectionConfig.from_dict(self.connection_data(working_directory))


def load_config(config_path: Path | str | None = None) -> GatewaySettings:
    """Load configuration from YAML file.

    The path defaults to ``$TERMGATE_CONFIG_PATH``, then ``termgate.yaml``.
    A missing file yields the defaults.
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)
    data = YAMLConfigLoader(config_path).load()
    return GatewaySettings.model_validate(data)
