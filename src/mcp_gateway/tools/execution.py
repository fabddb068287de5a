"""Tool execution forwarding to backend servers."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from typing import Any, Optional

from loguru import logger
from mcp.shared.exceptions import McpError
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..errors import BackendUnavailableError, ForwardingError, ToolNotFoundError
from ..registry import BackendRegistry, BackendStatus, TransportConfig
from .catalog import CatalogStore
from .transport import BackendTransport, create_transport


class BackendResult(BaseModel):
    """Result of a forwarded tool call."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = Field(description="False when the backend reported a tool error")
    tool: str = Field(description="Tool name")
    backend_id: str = Field(description="Backend that served the call")
    result: dict[str, Any] = Field(
        default_factory=dict,
        description="Backend response, relayed verbatim"
    )
    execution_time_ms: Optional[int] = Field(default=None, description="Round-trip time")


class ExecutionForwarder:
    """Routes tool calls to the backend that owns the tool.

    Arguments are not validated against the tool's input schema; the backend
    does that. Failures are never retried here.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        registry: BackendRegistry,
        *,
        timeout: float = 30.0,
        transport_factory: Callable[[TransportConfig], BackendTransport] = create_transport,
        mark_unreachable: bool = True,
    ) -> None:
        """
        Initialize the forwarder.

        Args:
            catalog: Catalog used to resolve tool -> backend
            registry: Backend registry used to resolve backend -> transport
            timeout: Seconds to wait for a backend response
            transport_factory: Builds a transport from a connection descriptor
            mark_unreachable: Mark a backend unreachable after a transport failure
        """
        self.catalog = catalog
        self.registry = registry
        self.timeout = timeout
        self.transport_factory = transport_factory
        self.mark_unreachable = mark_unreachable

    async def execute(self, tool_name: str, args: Mapping[str, Any]) -> BackendResult:
        """
        Forward a tool call to its backend.

        Args:
            tool_name: Tool name in the catalog
            args: Tool arguments

        Returns:
            BackendResult with the backend's response

        Raises:
            ToolNotFoundError: If the tool is not in the catalog
            BackendUnavailableError: If the backend is unregistered or unreachable
            ForwardingError: If the transport fails or times out
        """
        record = await asyncio.to_thread(self.catalog.get, tool_name)
        if record is None:
            raise ToolNotFoundError(tool_name)

        backend_id = record.backend_id
        backend = self.registry.get(backend_id)
        if backend is None:
            raise BackendUnavailableError(
                f"Backend '{backend_id}' is not registered",
                backend_id=backend_id,
                tool=tool_name,
            )
        if not backend.is_available:
            raise BackendUnavailableError(
                f"Backend '{backend_id}' is unreachable",
                backend_id=backend_id,
                tool=tool_name,
                cause=backend.last_error,
            )

        transport = self.transport_factory(backend.transport)
        start_time = time.monotonic()
        logger.info("Forwarding {} to backend '{}'", tool_name, backend_id)

        try:
            response = await asyncio.wait_for(
                transport.call_tool(tool_name, dict(args)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            self._mark_failed(backend_id, f"timed out after {self.timeout}s")
            raise ForwardingError(
                f"Backend '{backend_id}' did not respond within {self.timeout}s",
                backend_id=backend_id,
                tool=tool_name,
            ) from e
        except McpError as e:
            # The backend answered with a protocol error, so it is reachable
            logger.warning("Backend '{}' rejected {}: {}", backend_id, tool_name, e)
            raise ForwardingError(
                f"Backend '{backend_id}' rejected the call: {e}",
                backend_id=backend_id,
                tool=tool_name,
            ) from e
        except Exception as e:
            self._mark_failed(backend_id, str(e))
            raise ForwardingError(
                f"Failed to reach backend '{backend_id}': {e}",
                backend_id=backend_id,
                tool=tool_name,
            ) from e

        elapsed_ms = int((time.monotonic() - start_time) * 1000)

        try:
            payload = response.model_dump(mode="json", by_alias=True, exclude_none=True)
            success = not bool(response.isError)
        except AttributeError as e:
            raise ForwardingError(
                f"Backend '{backend_id}' returned a malformed response",
                backend_id=backend_id,
                tool=tool_name,
            ) from e

        if success:
            logger.info("Executed {} on '{}' in {}ms", tool_name, backend_id, elapsed_ms)
        else:
            logger.warning("Backend '{}' reported an error for {}", backend_id, tool_name)

        return BackendResult(
            success=success,
            tool=tool_name,
            backend_id=backend_id,
            result=payload,
            execution_time_ms=elapsed_ms,
        )

    def _mark_failed(self, backend_id: str, error: str) -> None:
        logger.error("Forwarding to backend '{}' failed: {}", backend_id, error)
        if self.mark_unreachable:
            self.registry.update_status(backend_id, BackendStatus.UNREACHABLE, error)
