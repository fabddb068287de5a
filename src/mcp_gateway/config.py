"""
Configuration for the MCP gateway.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .registry import TransportConfig
from .tools.embeddings import EmbeddingConfig


def default_config_dir() -> Path:
    """Directory holding the config file, catalog database and logs."""
    return Path.home() / ".mcp-gateway"


class BackendConfig(BaseModel):
    """Configuration for a backend tool server."""

    id: str = Field(description="Backend identifier")
    transport: TransportConfig = Field(description="Connection descriptor")
    enabled: bool = Field(default=True, description="Whether this backend is registered at startup")


class SearchConfig(BaseModel):
    """Search ranking settings."""

    default_limit: int = Field(default=5, ge=1, le=1000, description="Results returned when no limit is given")
    min_similarity: float | None = Field(
        default=None,
        ge=-1.0,
        le=1.0,
        description="Optional similarity cutoff; unset means rank only"
    )


class ExecutionConfig(BaseModel):
    """Execution forwarding settings."""

    timeout: float = Field(default=30.0, gt=0, description="Seconds to wait for a backend tool call")
    mark_unreachable_on_failure: bool = Field(
        default=True,
        description="Mark a backend unreachable after a transport failure"
    )


class HealthConfig(BaseModel):
    """Backend health probing settings."""

    interval: int = Field(default=60, ge=1, description="Seconds between probe rounds")
    timeout: float = Field(default=5.0, gt=0, description="Seconds to wait for one probe")


class ServerConfig(BaseModel):
    """HTTP API server configuration."""

    host: str = Field(default="127.0.0.1", description="Host to bind the HTTP API to")
    port: int = Field(default=3001, description="Port to bind the HTTP API to")


class GatewayConfig(BaseSettings):
    """Gateway configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MCP_GATEWAY_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database_path: str = Field(
        default_factory=lambda: str(default_config_dir() / "catalog.duckdb"),
        description="DuckDB file for the tool catalog (':memory:' for ephemeral)"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    backends: list[BackendConfig] = Field(
        default_factory=list,
        description="Backend tool servers"
    )

    def get_backend(self, backend_id: str) -> BackendConfig | None:
        """Find a backend entry by id."""
        for backend in self.backends:
            if backend.id == backend_id:
                return backend
        return None

    def set_backend(self, backend: BackendConfig) -> None:
        """Add or replace a backend entry."""
        self.backends = [b for b in self.backends if b.id != backend.id]
        self.backends.append(backend)

    def drop_backend(self, backend_id: str) -> bool:
        """Remove a backend entry; returns False if it was absent."""
        before = len(self.backends)
        self.backends = [b for b in self.backends if b.id != backend_id]
        return len(self.backends) != before


def config_file(config_dir: Path | None = None) -> Path:
    """Path of the JSON config file."""
    return (config_dir or default_config_dir()) / "config.json"


def load_config(path: Path | None = None) -> GatewayConfig:
    """
    Load gateway configuration from the JSON file, falling back to defaults.

    Environment variables with the ``MCP_GATEWAY_`` prefix fill in any
    field the file does not set.

    Args:
        path: Config file path (default: ~/.mcp-gateway/config.json)

    Returns:
        GatewayConfig instance
    """
    path = path or config_file()
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    return GatewayConfig(**data)


def save_config(config: GatewayConfig, path: Path | None = None) -> Path:
    """
    Save gateway configuration as JSON.

    Args:
        config: Configuration to save
        path: Config file path (default: ~/.mcp-gateway/config.json)

    Returns:
        The path written
    """
    path = path or config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.model_dump(mode="json"), f, indent=2)
    return path
