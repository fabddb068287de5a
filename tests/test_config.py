"""Tests for gateway configuration and error bodies."""

import json

import pytest
from pydantic import ValidationError

from mcp_gateway.config import BackendConfig, GatewayConfig, config_file, load_config, save_config
from mcp_gateway.errors import BackendUnavailableError, InvalidArgumentError, ToolNotFoundError
from mcp_gateway.registry import TransportConfig


def test_config_defaults():
    """Test default configuration values."""
    config = GatewayConfig()
    assert config.log_level == "INFO"
    assert config.search.default_limit == 5
    assert config.search.min_similarity is None
    assert config.execution.timeout == 30.0
    assert config.server.port == 3001
    assert config.embedding.dimension == 384
    assert config.backends == []


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("MCP_GATEWAY_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("MCP_GATEWAY_SEARCH__DEFAULT_LIMIT", "10")

    config = GatewayConfig()
    assert config.log_level == "DEBUG"
    assert config.search.default_limit == 10


def test_invalid_limit_rejected():
    with pytest.raises(ValidationError):
        GatewayConfig(search={"default_limit": 0})


def test_load_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "absent.json")
    assert isinstance(config, GatewayConfig)
    assert config.backends == []


def test_save_and_load(tmp_path):
    path = tmp_path / "sub" / "config.json"
    config = GatewayConfig(database_path=":memory:")
    config.set_backend(BackendConfig(id="filesystem", transport=TransportConfig(command="npx", args=["fs"])))

    assert save_config(config, path) == path
    assert json.loads(path.read_text())["backends"][0]["id"] == "filesystem"

    loaded = load_config(path)
    assert loaded.database_path == ":memory:"
    assert loaded.get_backend("filesystem").transport.args == ["fs"]


def test_backend_entries():
    config = GatewayConfig()
    config.set_backend(BackendConfig(id="a", transport=TransportConfig(command="one")))
    config.set_backend(BackendConfig(id="a", transport=TransportConfig(command="two")))

    assert len(config.backends) == 1
    assert config.get_backend("a").transport.command == "two"
    assert config.drop_backend("a") is True
    assert config.drop_backend("a") is False


def test_config_file_location(tmp_path):
    assert config_file(tmp_path) == tmp_path / "config.json"


class TestErrorBodies:
    """Test structured error bodies."""

    def test_tool_not_found(self):
        error = ToolNotFoundError("x")
        assert error.status_code == 404
        assert error.to_dict() == {"error": "not found", "type": "ToolNotFoundError", "tool": "x"}

    def test_invalid_argument_is_validation(self):
        error = InvalidArgumentError("Limit must be greater than 0", limit=0)
        assert error.status_code == 400
        assert error.to_dict()["limit"] == 0

    def test_none_detail_omitted(self):
        body = BackendUnavailableError("down", backend_id="github", cause=None).to_dict()
        assert body == {"error": "down", "type": "BackendUnavailableError", "backendId": "github"}
