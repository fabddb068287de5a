"""mcp-gateway - progressive disclosure gateway in front of many MCP servers."""

__version__ = "0.1.0"

from .config import GatewayConfig, load_config, save_config
from .errors import GatewayError
from .gateway import Gateway
from .registry import Backend, BackendRegistry, BackendStatus, TransportConfig

__all__ = [
    "Backend",
    "BackendRegistry",
    "BackendStatus",
    "Gateway",
    "GatewayConfig",
    "GatewayError",
    "TransportConfig",
    "load_config",
    "save_config",
]
