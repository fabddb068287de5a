"""FastAPI HTTP API exposing the progressive disclosure phases."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import GatewayConfig
from .errors import GatewayError
from .gateway import Gateway
from .tools.catalog import CatalogFilter


class SearchRequest(BaseModel):
    """Body of POST /search."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: Optional[str] = Field(default=None, description="Free-text capability description")
    limit: Optional[int] = Field(default=None, description="Maximum number of results")
    backend_id: Optional[str] = Field(default=None, description="Restrict to one backend")
    category: Optional[str] = Field(default=None, description="Restrict to one category")


class ExecuteRequest(BaseModel):
    """Body of POST /execute."""

    tool: Optional[str] = Field(default=None, description="Tool name")
    args: Optional[dict[str, Any]] = Field(default=None, description="Tool arguments object")


def create_app(
    gateway: Gateway | None = None,
    config: GatewayConfig | None = None,
    *,
    monitor: bool = False,
    sync_on_start: bool = False,
) -> FastAPI:
    """Factory: build the gateway HTTP app.

    Accepts either a ready Gateway (owned by the caller) or a configuration
    from which the app builds and later shuts down its own Gateway.

    Args:
        gateway: Ready gateway; its lifetime stays with the caller
        config: Configuration for an app-owned gateway
        monitor: Probe backend health in the background while serving
        sync_on_start: Ingest every backend's tool listing before serving
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = gateway is None
        gw = gateway or Gateway(config)
        app.state.gateway = gw
        if sync_on_start:
            await gw.sync_all()
        if monitor:
            await gw.health.start_monitoring()
        logger.info("Gateway API started ({} tools)", gw.catalog.count())
        yield
        if monitor:
            await gw.health.stop_monitoring()
        if owned:
            gw.shutdown()

    app = FastAPI(title="MCP Gateway", lifespan=lifespan)

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("{} {} failed: {}", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(
            status_code=400,
            content={"error": message, "type": "ValidationError"},
        )

    def _gateway(request: Request) -> Gateway:
        return request.app.state.gateway

    @app.get("/health")
    async def health(request: Request):
        report = await _gateway(request).handler.health()
        return report.model_dump(by_alias=True)

    @app.get("/tools")
    async def list_tools(
        request: Request,
        backendId: Optional[str] = None,
        category: Optional[str] = None,
    ):
        tools = await _gateway(request).handler.list_tools(
            CatalogFilter(backend_id=backendId, category=category)
        )
        return {"tools": [t.model_dump(by_alias=True) for t in tools]}

    @app.post("/search")
    async def search(request: Request, body: SearchRequest):
        search_filter = None
        if body.backend_id is not None or body.category is not None:
            search_filter = CatalogFilter(backend_id=body.backend_id, category=body.category)
        hits = await _gateway(request).handler.search(body.query or "", body.limit, search_filter)
        return {"tools": [h.model_dump(by_alias=True) for h in hits]}

    @app.get("/tool/{name}")
    async def get_tool(request: Request, name: str):
        view = await _gateway(request).handler.get_schema(name)
        return view.model_dump(by_alias=True)

    @app.post("/execute")
    async def execute(request: Request, body: ExecuteRequest):
        result = await _gateway(request).handler.execute(body.tool or "", body.args)
        return result.model_dump(by_alias=True)

    @app.get("/backends")
    async def backends(request: Request):
        gw = _gateway(request)
        return {
            "backends": [
                {
                    "id": b.id,
                    "transport": b.transport.kind,
                    "status": b.status.value,
                    "lastError": b.last_error,
                }
                for b in gw.registry.list_all()
            ]
        }

    return app
