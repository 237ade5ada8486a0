"""
Configuration for the CouchDB SDK.

The client itself is configured with a ClientConfig: the endpoint URL and
optional basic-auth credentials. Nothing else is read implicitly.

Environment loading is separate and opt-in through CouchSettings, which uses
pydantic-settings:
    COUCHDB_ENDPOINT  - base URL (default http://127.0.0.1:5984)
    COUCHDB_USERNAME  - basic-auth user
    COUCHDB_PASSWORD  - basic-auth password
    COUCHDB_TIMEOUT   - request timeout in seconds

Invariants:
    - ClientConfig is immutable for the lifetime of a client
    - username and password are set together or not at all
    - Passwords are never included in repr or logs
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import urlsplit

from pydantic import Field
from pydantic_settings import BaseSettings

from .errors import ValidationError

DEFAULT_ENDPOINT = "http://127.0.0.1:5984"


@dataclass(frozen=True)
class ClientConfig:
    """Connection configuration.

    Attributes:
        endpoint: Base URL of the server (scheme, host, port, optional prefix)
        username: Basic-auth user name
        password: Basic-auth password
        timeout: Per-request timeout in seconds
    """

    endpoint: str = DEFAULT_ENDPOINT
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        parts = urlsplit(self.endpoint)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValidationError(
                f"endpoint must be an http(s) URL, got {self.endpoint!r}",
                field_name="endpoint",
            )
        if (self.username is None) != (self.password is None):
            raise ValidationError(
                "username and password must be given together",
                field_name="username",
            )
        if self.timeout <= 0:
            raise ValidationError(
                f"timeout must be positive, got {self.timeout}",
                field_name="timeout",
            )
        # Paths are always joined with a leading slash.
        object.__setattr__(self, "endpoint", self.endpoint.rstrip("/"))

    @property
    def has_credentials(self) -> bool:
        return self.username is not None

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Load configuration from COUCHDB_* environment variables."""
        return CouchSettings().to_config()


class CouchSettings(BaseSettings):
    """Connection settings loaded from the environment."""

    endpoint: str = Field(default=DEFAULT_ENDPOINT, description="Server base URL")
    username: str | None = Field(default=None, description="Basic-auth user")
    password: str | None = Field(default=None, description="Basic-auth password")
    timeout: float = Field(default=30.0, description="Request timeout seconds")

    model_config = {"env_prefix": "COUCHDB_"}

    def to_config(self) -> ClientConfig:
        """Build the immutable client configuration."""
        return ClientConfig(
            endpoint=self.endpoint,
            username=self.username,
            password=self.password,
            timeout=self.timeout,
        )
