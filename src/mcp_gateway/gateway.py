"""Central gateway wiring the catalog, embeddings, search and backends together."""

import asyncio
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from loguru import logger
from mcp.shared.exceptions import McpError
from pydantic import ValidationError as PydanticValidationError

from .config import GatewayConfig
from .errors import BackendNotFoundError, ForwardingError, GatewayError, ValidationError
from .health import HealthMonitor
from .registry import Backend, BackendRegistry, BackendStatus, TransportConfig
from .tools.catalog import CatalogStore
from .tools.disclosure import DisclosureHandler
from .tools.embeddings import EmbeddingProvider
from .tools.execution import ExecutionForwarder
from .tools.ingest import CatalogIngestor, IngestReport, ToolListing
from .tools.search import SearchIndex
from .tools.transport import BackendTransport, create_transport


class Gateway:
    """Builds every gateway component from one configuration.

    Example:
        ```python
        gateway = Gateway(load_config())
        await gateway.sync_all()
        hits = await gateway.handler.search("read a file", limit=3)
        ```
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        provider: EmbeddingProvider | None = None,
        transport_factory: Callable[[TransportConfig], BackendTransport] = create_transport,
    ):
        """
        Initialize the gateway.

        Args:
            config: Gateway configuration
            provider: Embedding provider (built from config if not given)
            transport_factory: Builds backend transports from descriptors
        """
        self.config = config or GatewayConfig()
        self.transport_factory = transport_factory

        self.catalog = CatalogStore(self.config.database_path)
        self.registry = BackendRegistry()
        self.provider = provider or EmbeddingProvider(self.config.embedding)
        self.index = SearchIndex(self.catalog)
        self.forwarder = ExecutionForwarder(
            self.catalog,
            self.registry,
            timeout=self.config.execution.timeout,
            transport_factory=transport_factory,
            mark_unreachable=self.config.execution.mark_unreachable_on_failure,
        )
        self.handler = DisclosureHandler(
            self.catalog,
            self.index,
            self.provider,
            self.forwarder,
            default_limit=self.config.search.default_limit,
            min_similarity=self.config.search.min_similarity,
        )
        self.ingestor = CatalogIngestor(self.catalog, self.provider)
        self.health = HealthMonitor(
            self.registry,
            check_interval=self.config.health.interval,
            timeout=self.config.health.timeout,
            transport_factory=transport_factory,
        )

        for backend in self.config.backends:
            if backend.enabled:
                self.registry.register(backend.id, backend.transport)

        logger.debug(
            "Gateway ready: {} backends, {} tools",
            len(self.registry.list_all()),
            self.catalog.count(),
        )

    def register_backend(self, backend_id: str, transport: TransportConfig) -> Backend:
        """
        Register (or replace) a backend.

        Args:
            backend_id: Backend identifier
            transport: Connection descriptor

        Returns:
            The registered Backend
        """
        backend = self.registry.register(backend_id, transport)
        logger.info("Registered backend '{}' ({})", backend_id, transport.describe())
        return backend

    def deregister_backend(self, backend_id: str) -> int:
        """
        Remove a backend and every tool it owns from the catalog.

        Args:
            backend_id: Backend identifier

        Returns:
            Number of tools removed

        Raises:
            BackendNotFoundError: If neither the registry nor the catalog knows the backend
        """
        known = self.registry.remove(backend_id)
        removed = self.catalog.remove_by_backend(backend_id)
        if not known and removed == 0:
            raise BackendNotFoundError(backend_id)
        self.health.backends.pop(backend_id, None)
        logger.info("Deregistered backend '{}' ({} tools removed)", backend_id, removed)
        return removed

    async def sync_backend(self, backend_id: str) -> IngestReport:
        """
        Fetch a backend's tool listing and ingest it into the catalog.

        Args:
            backend_id: Backend identifier

        Returns:
            IngestReport for the backend

        Raises:
            BackendNotFoundError: If the backend is not registered
            ForwardingError: If the listing cannot be fetched
        """
        backend = self.registry.get(backend_id)
        if backend is None:
            raise BackendNotFoundError(backend_id)

        transport = self.transport_factory(backend.transport)
        timeout = self.config.execution.timeout
        try:
            tools = await asyncio.wait_for(transport.list_tools(), timeout=timeout)
        except asyncio.TimeoutError as e:
            self.registry.update_status(backend_id, BackendStatus.UNREACHABLE, "list_tools timed out")
            raise ForwardingError(
                f"Backend '{backend_id}' did not list its tools within {timeout}s",
                backend_id=backend_id,
            ) from e
        except McpError as e:
            logger.warning("Backend '{}' rejected list_tools: {}", backend_id, e)
            raise ForwardingError(
                f"Backend '{backend_id}' rejected list_tools: {e}",
                backend_id=backend_id,
            ) from e
        except Exception as e:
            self.registry.update_status(backend_id, BackendStatus.UNREACHABLE, str(e))
            raise ForwardingError(
                f"Failed to list tools of backend '{backend_id}': {e}",
                backend_id=backend_id,
            ) from e

        self.registry.update_status(backend_id, BackendStatus.CONNECTED)
        listings = [ToolListing.from_mcp(tool) for tool in tools]
        return await self.ingestor.ingest(backend_id, listings)

    async def sync_all(self) -> dict[str, IngestReport | GatewayError]:
        """
        Sync every registered backend concurrently.

        A failing backend does not stop the others; its error is returned in
        place of a report.

        Returns:
            Mapping of backend id to IngestReport or the error it raised
        """
        backends = self.registry.list_all()
        results = await asyncio.gather(
            *(self.sync_backend(b.id) for b in backends),
            return_exceptions=True,
        )

        outcome: dict[str, IngestReport | GatewayError] = {}
        for backend, result in zip(backends, results):
            if isinstance(result, GatewayError):
                logger.warning("Sync of '{}' failed: {}", backend.id, result)
                outcome[backend.id] = result
            elif isinstance(result, BaseException):
                raise result
            else:
                outcome[backend.id] = result
        return outcome

    async def populate(self, tools: Iterable[Mapping[str, Any]]) -> list[IngestReport]:
        """
        Ingest tool definitions given as plain dictionaries.

        Each entry needs ``name`` and ``backendId`` (or ``server``), and may
        carry ``description``, ``category`` and ``inputSchema``. Existing
        tools of the same backends that are not listed are kept.

        Args:
            tools: Tool definitions

        Returns:
            One IngestReport per backend
        """
        grouped: dict[str, list[ToolListing]] = {}
        for entry in tools:
            backend_id = entry.get("backendId") or entry.get("server")
            if not backend_id or not entry.get("name"):
                raise ValidationError("Each tool needs 'name' and 'backendId'", entry=dict(entry))
            try:
                listing = ToolListing(
                    name=entry["name"],
                    description=entry.get("description", ""),
                    category=entry.get("category"),
                    input_schema=entry.get("inputSchema") or {"type": "object", "properties": {}},
                )
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid tool definition '{entry['name']}': {e}") from e
            grouped.setdefault(backend_id, []).append(listing)

        reports = []
        for backend_id, listings in grouped.items():
            reports.append(await self.ingestor.ingest(backend_id, listings, prune=False))
        return reports

    def get_status(self) -> dict[str, str]:
        """
        Get status of all registered backends.

        Returns:
            Dictionary mapping backend id to status string
        """
        return {b.id: b.status.value for b in self.registry.list_all()}

    def shutdown(self) -> None:
        """Close the catalog and clear the registry."""
        self.catalog.close()
        self.registry.clear()
