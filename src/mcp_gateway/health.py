"""Health monitoring of backend tool servers."""

import asyncio
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import BaseModel

from .registry import BackendRegistry, BackendStatus, TransportConfig
from .tools.transport import BackendTransport, create_transport


class BackendHealth(BaseModel):
    """Probe history of a backend."""

    backend_id: str
    transport: str
    is_connected: bool = False
    last_successful_check: Optional[float] = None
    last_failed_check: Optional[float] = None
    failure_count: int = 0
    consecutive_failures: int = 0
    response_time_ms: Optional[float] = None


class HealthMonitor:
    """Probe backends and record their reachability in the registry."""

    def __init__(
        self,
        registry: BackendRegistry,
        *,
        check_interval: int = 60,
        timeout: float = 5.0,
        transport_factory: Callable[[TransportConfig], BackendTransport] = create_transport,
    ):
        """Initialize health monitor.

        Args:
            registry: Registry whose backend statuses are updated
            check_interval: Interval between probe rounds in seconds
            timeout: Seconds to wait for one probe
            transport_factory: Builds a transport from a connection descriptor
        """
        self.registry = registry
        self.check_interval = check_interval
        self.timeout = timeout
        self.transport_factory = transport_factory
        self.backends: Dict[str, BackendHealth] = {}
        self.is_monitoring = False
        self._monitor_task: Optional[asyncio.Task] = None
        logger.debug("Health monitor initialized with {}s check interval", check_interval)

    async def check_backend(self, backend_id: str) -> bool:
        """Probe one backend and update its registry status.

        Args:
            backend_id: Backend identifier

        Returns:
            True if the backend answered, False otherwise
        """
        backend = self.registry.get(backend_id)
        if backend is None:
            self.backends.pop(backend_id, None)
            return False

        health = self.backends.setdefault(
            backend_id,
            BackendHealth(backend_id=backend_id, transport=backend.transport.kind),
        )
        transport = self.transport_factory(backend.transport)
        start_time = time.time()

        try:
            await asyncio.wait_for(transport.ping(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Backend {} health check timed out", backend_id)
            self._record_failure(health, f"health check timed out after {self.timeout}s")
            return False
        except Exception as e:
            logger.warning("Backend {} health check error: {}", backend_id, e)
            self._record_failure(health, str(e))
            return False

        health.is_connected = True
        health.response_time_ms = (time.time() - start_time) * 1000
        health.last_successful_check = time.time()
        health.consecutive_failures = 0
        self.registry.update_status(backend_id, BackendStatus.CONNECTED)
        logger.debug("Backend {} health check passed ({:.1f}ms)", backend_id, health.response_time_ms)
        return True

    def _record_failure(self, health: BackendHealth, error: str) -> None:
        health.is_connected = False
        health.failure_count += 1
        health.consecutive_failures += 1
        health.last_failed_check = time.time()
        self.registry.update_status(health.backend_id, BackendStatus.UNREACHABLE, error)

    async def check_all(self) -> Dict[str, bool]:
        """Probe every registered backend concurrently."""
        backends = self.registry.list_all()
        results = await asyncio.gather(
            *(self.check_backend(b.id) for b in backends)
        )
        return {b.id: ok for b, ok in zip(backends, results)}

    def get_backend_health(self, backend_id: str) -> Optional[BackendHealth]:
        """Get probe history of a backend."""
        return self.backends.get(backend_id)

    def get_overall_status(self) -> str:
        """Get overall health status.

        Returns:
            'healthy', 'degraded', 'unhealthy' or 'unknown'
        """
        backends = self.registry.list_all()
        if not backends:
            return "unknown"

        healthy_count = sum(1 for b in backends if b.is_available)
        if healthy_count == len(backends):
            return "healthy"
        elif healthy_count > 0:
            return "degraded"
        else:
            return "unhealthy"

    def get_status_summary(self) -> Dict[str, Any]:
        """Get backend health summary.

        Returns:
            Dictionary with health status information
        """
        backends = self.registry.list_all()
        healthy = sum(1 for b in backends if b.is_available)
        total = len(backends)

        return {
            "overall_status": self.get_overall_status(),
            "timestamp": datetime.now().isoformat(),
            "backends": {
                "total": total,
                "healthy": healthy,
                "unhealthy": total - healthy,
            },
            "backend_details": {
                b.id: {
                    "status": b.status.value,
                    "transport": b.transport.kind,
                    "last_error": b.last_error,
                    "response_time_ms": (
                        self.backends[b.id].response_time_ms if b.id in self.backends else None
                    ),
                    "consecutive_failures": (
                        self.backends[b.id].consecutive_failures if b.id in self.backends else 0
                    ),
                }
                for b in backends
            },
        }

    async def start_monitoring(self) -> None:
        """Start continuous health monitoring in a background task."""
        if self.is_monitoring:
            logger.warning("Monitoring already running")
            return

        self.is_monitoring = True
        logger.info("Starting backend health monitoring")

        async def monitor_loop():
            while self.is_monitoring:
                try:
                    await self.check_all()
                except Exception as e:
                    logger.error("Monitoring error: {}", e)
                await asyncio.sleep(self.check_interval)

        self._monitor_task = asyncio.create_task(monitor_loop())

    async def stop_monitoring(self) -> None:
        """Stop continuous health monitoring."""
        self.is_monitoring = False
        if self._monitor_task:
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
            self._monitor_task = None
        logger.info("Health monitoring stopped")
