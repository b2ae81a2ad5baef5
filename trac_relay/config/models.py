"""Configuration models for trac-relay.

This module provides the Pydantic models describing the YAML configuration
file: the Mattermost connection, the Trac instances and the per-channel
settings.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..integrations.models import AuthType


class TracConfig(BaseModel):
    """A configured Trac server, queried for ticket information."""

    model_config = ConfigDict(extra="forbid")

    url: str = Field(
        default="", description="URL of the Trac instance, eg. http://trac:8080"
    )
    username: str = Field(default="", description="Username of the bot on Trac")
    password: str = Field(default="", description="Password of the bot on Trac")
    insecure: bool = Field(
        default=False, description="Accept HTTPS from unknown authorities"
    )
    auth_type: AuthType = Field(
        default=AuthType.BASIC,
        description="Login mechanism: basic (HTTP Basic Auth) or form (login form)",
    )

    @field_validator("auth_type", mode="before")
    @classmethod
    def _parse_auth_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return AuthType.parse(value)
        return value


class ChannelConfig(BaseModel):
    """Configuration of one Mattermost channel the bot listens to."""

    model_config = ConfigDict(extra="forbid")

    trac_instances: list[str] = Field(
        default_factory=list,
        description="Trac instances that may be queried from this channel",
    )
    default_trac_instance: str | None = Field(
        default=None,
        description="Trac instance queried for ticket numbers without Trac ID",
    )

    @field_validator("trac_instances", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def authorizes(self, instance: str) -> bool:
        """Check if an instance may be queried from this channel (ignoring case)."""
        needle = instance.lower()
        return any(name.lower() == needle for name in self.trac_instances)


class RelayConfig(BaseModel):
    """Main configuration of the relay."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(
        default="", description="URL of the Mattermost server, eg. http://chat:8065"
    )
    username: str = Field(default="", description="Username of the bot")
    password: str = Field(default="", description="Password of the bot")
    team: str = Field(default="", description="Team of the bot")
    ticket_template: str = Field(
        default="",
        description="Template for ticket replies, with {field} placeholders",
    )
    tracs: dict[str, TracConfig] = Field(
        default_factory=dict, description="Configured Trac servers"
    )
    channels: dict[str, ChannelConfig] = Field(
        default_factory=dict, description="Per-channel configuration"
    )

    @field_validator("tracs", "channels", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    def find_trac(self, name: str) -> str | None:
        """Return the declared spelling of a Trac name, ignoring case."""
        needle = name.lower()
        for declared in self.tracs:
            if declared.lower() == needle:
                return declared
        return None
