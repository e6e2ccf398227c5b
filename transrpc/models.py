"""Configuration models for transrpc."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from transrpc.rpc.protocol import Credentials, Endpoint


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Scheme(str, Enum):
    """URL schemes the daemon can be reached with."""

    HTTP = "http"
    HTTPS = "https"


class ServerConfig(BaseModel):
    """Daemon connection configuration."""

    scheme: Scheme = Field(default=Scheme.HTTP, description="URL scheme")
    host: str = Field(default="127.0.0.1", min_length=1, description="Daemon host")
    port: int = Field(default=9091, ge=1, le=65535, description="Daemon RPC port")
    username: str = Field(default="", description="RPC username")
    password: str = Field(default="", description="RPC password")

    def to_endpoint(self) -> Endpoint:
        """Build the immutable endpoint for this server."""
        return Endpoint(scheme=self.scheme.value, host=self.host, port=self.port)

    def to_credentials(self) -> Credentials:
        """Build the credentials paired with this server."""
        return Credentials(username=self.username, password=self.password)


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(
        default=False,
        description="Use structured JSON logging on the console",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )


class Config(BaseModel):
    """Top-level configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
