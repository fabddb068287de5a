"""
CLI interface for mcp-gateway - progressive disclosure MCP tool gateway
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from .config import BackendConfig, GatewayConfig, config_file, load_config, save_config
from .errors import GatewayError
from .gateway import Gateway
from .logging import setup_logging
from .registry import TransportConfig
from .samples import SAMPLE_TOOLS
from .tools.catalog import CatalogFilter
from .tools.ingest import IngestReport

app = typer.Typer(
    name="mcp-gateway",
    help="MCP Gateway - semantic search and progressive disclosure over many MCP servers",
    add_completion=False,
)

backend_app = typer.Typer(name="backend", help="Manage backend MCP servers")
app.add_typer(backend_app)

console = Console()


def _config_path(ctx: typer.Context) -> Path:
    return ctx.obj["config_path"]


def _load(ctx: typer.Context) -> GatewayConfig:
    return load_config(_config_path(ctx))


def _parse_pairs(values: list[str], option: str) -> dict[str, str]:
    pairs = {}
    for value in values:
        key, sep, val = value.partition("=")
        if not sep or not key:
            console.print(f"[red]✗[/red] {option} expects KEY=VALUE, got '{value}'")
            raise typer.Exit(1)
        pairs[key] = val
    return pairs


def _print_reports(reports: list[IngestReport]) -> None:
    table = Table(title="Catalog Sync")
    table.add_column("Backend", style="cyan")
    table.add_column("Added", style="green")
    table.add_column("Updated", style="yellow")
    table.add_column("Unchanged", style="white")
    table.add_column("Removed", style="magenta")
    table.add_column("Failed", style="red")

    for report in reports:
        table.add_row(
            report.backend_id,
            str(len(report.added)),
            str(len(report.updated)),
            str(len(report.unchanged)),
            str(len(report.removed)),
            str(len(report.failed)),
        )
    console.print(table)

    for report in reports:
        for name, error in report.failed.items():
            console.print(f"[yellow]⚠[/yellow] {report.backend_id}/{name}: {error}")


def _filter(backend: Optional[str], category: Optional[str]) -> CatalogFilter | None:
    if backend is None and category is None:
        return None
    return CatalogFilter(backend_id=backend, category=category)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.mcp-gateway/config.json)",
    ),
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        "-l",
        help="Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode"),
) -> None:
    """mcp-gateway - progressive disclosure MCP tool gateway."""
    path = config or config_file()
    setup_logging("DEBUG" if debug else log_level, path.parent / "logs")
    ctx.obj = {"config_path": path}


@app.command()
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind to"),
    port: Optional[int] = typer.Option(None, "--port", help="Port to bind to"),
    sync: bool = typer.Option(True, "--sync/--no-sync", help="Sync backend tool listings on start"),
    monitor: bool = typer.Option(True, "--monitor/--no-monitor", help="Probe backend health while serving"),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    from .server import create_app

    gateway_config = _load(ctx)
    bind_host = host or gateway_config.server.host
    bind_port = port or gateway_config.server.port

    console.print(f"[green]✓[/green] MCP Gateway listening on http://{bind_host}:{bind_port}")
    uvicorn.run(
        create_app(config=gateway_config, monitor=monitor, sync_on_start=sync),
        host=bind_host,
        port=bind_port,
        log_level=gateway_config.log_level.lower(),
    )


@app.command()
def mcp(ctx: typer.Context) -> None:
    """Serve the gateway to an MCP client over stdio."""
    from .mcp_server import run_mcp_server

    run_mcp_server(_load(ctx))


@app.command()
def populate(
    ctx: typer.Context,
    samples: bool = typer.Option(False, "--samples", help="Load the built-in sample tools"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="JSON file with a list of tool definitions"),
) -> None:
    """Add tool definitions to the catalog without contacting backends."""
    if not samples and file is None:
        console.print("[red]✗[/red] Specify --samples or --file")
        raise typer.Exit(1)

    tools: list[dict[str, Any]] = []
    if samples:
        tools.extend(SAMPLE_TOOLS)
    if file is not None:
        try:
            data = json.loads(file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            console.print(f"[red]✗[/red] Cannot read {file}: {e}")
            raise typer.Exit(1)
        if not isinstance(data, list):
            console.print(f"[red]✗[/red] {file} must contain a JSON list of tools")
            raise typer.Exit(1)
        tools.extend(data)

    gateway = Gateway(_load(ctx))
    try:
        reports = asyncio.run(gateway.populate(tools))
    except GatewayError as e:
        console.print(f"[red]✗[/red] Populate failed: {e}")
        raise typer.Exit(1)
    finally:
        gateway.shutdown()

    _print_reports(reports)
    total = sum(r.total for r in reports)
    console.print(f"[green]✓[/green] Populated {total} tools")


@app.command()
def sync(
    ctx: typer.Context,
    backend: Optional[str] = typer.Argument(None, help="Backend to sync (default: all)"),
) -> None:
    """Fetch tool listings from backends and update the catalog."""
    gateway = Gateway(_load(ctx))
    try:
        if backend:
            reports = [asyncio.run(gateway.sync_backend(backend))]
            failures: dict[str, GatewayError] = {}
        else:
            outcome = asyncio.run(gateway.sync_all())
            reports = [r for r in outcome.values() if isinstance(r, IngestReport)]
            failures = {k: v for k, v in outcome.items() if isinstance(v, GatewayError)}
    except GatewayError as e:
        console.print(f"[red]✗[/red] Sync failed: {e}")
        raise typer.Exit(1)
    finally:
        gateway.shutdown()

    if reports:
        _print_reports(reports)
    elif not failures:
        console.print("[yellow]No backends configured[/yellow]")

    for backend_id, error in failures.items():
        console.print(f"[red]✗[/red] {backend_id}: {error}")
    if failures:
        raise typer.Exit(1)


@app.command()
def tools(
    ctx: typer.Context,
    backend: Optional[str] = typer.Option(None, "--backend", "-b", help="Only tools of this backend"),
    category: Optional[str] = typer.Option(None, "--category", help="Only tools of this category"),
    json_mode: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """List catalog tools (names and descriptions only)."""
    gateway = Gateway(_load(ctx))
    try:
        results = asyncio.run(gateway.handler.list_tools(_filter(backend, category)))
    except GatewayError as e:
        console.print(f"[red]✗[/red] Failed to list tools: {e}")
        raise typer.Exit(1)
    finally:
        gateway.shutdown()

    if json_mode:
        console.print_json(json.dumps([t.model_dump(by_alias=True) for t in results]))
        return

    if not results:
        console.print("[yellow]No tools in catalog[/yellow]")
        return

    table = Table(title=f"Tools ({len(results)})")
    table.add_column("Backend", style="cyan")
    table.add_column("Tool", style="green")
    table.add_column("Category", style="yellow")
    table.add_column("Description", style="white")
    for tool in results:
        table.add_row(tool.backend_id, tool.name, tool.category or "-", tool.description)
    console.print(table)


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="What the tool should do"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Max results"),
    backend: Optional[str] = typer.Option(None, "--backend", "-b", help="Only tools of this backend"),
    category: Optional[str] = typer.Option(None, "--category", help="Only tools of this category"),
    json_mode: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Semantic search over the catalog."""
    gateway = Gateway(_load(ctx))
    try:
        hits = asyncio.run(gateway.handler.search(query, limit, _filter(backend, category)))
    except GatewayError as e:
        console.print(f"[red]✗[/red] Search failed: {e}")
        raise typer.Exit(1)
    finally:
        gateway.shutdown()

    if json_mode:
        console.print_json(json.dumps([h.model_dump(by_alias=True) for h in hits]))
        return

    if not hits:
        console.print(f"[yellow]No tools found matching '{query}'[/yellow]")
        return

    table = Table(title=f"Search Results ({len(hits)} found)")
    table.add_column("Backend", style="cyan")
    table.add_column("Tool", style="green")
    table.add_column("Description", style="white")
    table.add_column("Similarity", style="yellow")
    for hit in hits:
        table.add_row(hit.backend_id, hit.name, hit.description, f"{hit.similarity:.3f}")
    console.print(table)


@app.command()
def schema(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Tool name"),
) -> None:
    """Show the full input schema of a tool."""
    gateway = Gateway(_load(ctx))
    try:
        view = asyncio.run(gateway.handler.get_schema(name))
    except GatewayError as e:
        console.print(f"[red]✗[/red] {name}: {e}")
        raise typer.Exit(1)
    finally:
        gateway.shutdown()

    console.print(f"[bold green]{view.name}[/bold green] [dim]({view.backend_id})[/dim]")
    if view.description:
        console.print(view.description)
    console.print(Syntax(json.dumps(view.input_schema, indent=2), "json"))


@app.command()
def call(
    ctx: typer.Context,
    tool: str = typer.Argument(..., help="Tool name"),
    args: str = typer.Option("{}", "--args", "-a", help="Tool arguments as a JSON object"),
) -> None:
    """Execute a tool on its backend."""
    try:
        arguments = json.loads(args)
    except json.JSONDecodeError as e:
        console.print(f"[red]✗[/red] Invalid JSON arguments: {e}")
        raise typer.Exit(1)

    gateway = Gateway(_load(ctx))
    try:
        result = asyncio.run(gateway.handler.execute(tool, arguments))
    except GatewayError as e:
        console.print(f"[red]✗[/red] Tool execution failed: {e}")
        raise typer.Exit(1)
    finally:
        gateway.shutdown()

    console.print_json(json.dumps(result.model_dump(by_alias=True)))
    if not result.success:
        raise typer.Exit(1)


@app.command()
def health(ctx: typer.Context) -> None:
    """Probe every backend and show catalog size."""
    gateway = Gateway(_load(ctx))
    try:
        asyncio.run(gateway.health.check_all())
        summary = gateway.health.get_status_summary()
        tool_count = gateway.catalog.count()
    finally:
        gateway.shutdown()

    table = Table(title="Backend Health")
    table.add_column("Backend", style="cyan")
    table.add_column("Status", style="yellow")
    table.add_column("Transport", style="blue")
    table.add_column("Response (ms)", style="green")
    table.add_column("Error", style="red")
    for backend_id, details in summary["backend_details"].items():
        response = details["response_time_ms"]
        table.add_row(
            backend_id,
            details["status"],
            details["transport"],
            f"{response:.1f}" if response is not None else "-",
            details["last_error"] or "",
        )
    console.print(table)
    console.print(
        f"\n[bold]Overall:[/bold] {summary['overall_status']}  "
        f"[bold]Tools:[/bold] {tool_count}"
    )


@backend_app.command("add")
def backend_add(
    ctx: typer.Context,
    backend_id: str = typer.Argument(..., help="Backend identifier"),
    command: Optional[str] = typer.Option(None, "--command", help="Executable for a stdio backend"),
    arg: list[str] = typer.Option([], "--arg", help="Argument for the stdio command (repeatable)"),
    env: list[str] = typer.Option([], "--env", help="KEY=VALUE for the stdio process (repeatable)"),
    url: Optional[str] = typer.Option(None, "--url", help="Endpoint of an HTTP backend"),
    header: list[str] = typer.Option([], "--header", help="KEY=VALUE HTTP header (repeatable)"),
) -> None:
    """Add or replace a backend in the config file."""
    if bool(command) == bool(url):
        console.print("[red]✗[/red] Specify exactly one of --command or --url")
        raise typer.Exit(1)

    if command:
        transport = TransportConfig(
            kind="stdio",
            command=command,
            args=arg,
            env=_parse_pairs(env, "--env") or None,
        )
    else:
        transport = TransportConfig(kind="http", url=url, headers=_parse_pairs(header, "--header"))

    gateway_config = _load(ctx)
    gateway_config.set_backend(BackendConfig(id=backend_id, transport=transport))
    path = save_config(gateway_config, _config_path(ctx))
    logger.info("Saved backend '{}' to {}", backend_id, path)
    console.print(f"[green]✓[/green] Backend '{backend_id}' saved ({transport.describe()})")
    console.print(f"[dim]Run 'mcp-gateway sync {backend_id}' to index its tools[/dim]")


@backend_app.command("remove")
def backend_remove(
    ctx: typer.Context,
    backend_id: str = typer.Argument(..., help="Backend identifier"),
) -> None:
    """Remove a backend and its tools from config and catalog."""
    gateway_config = _load(ctx)
    in_config = gateway_config.drop_backend(backend_id)

    gateway = Gateway(gateway_config)
    try:
        removed = gateway.deregister_backend(backend_id)
    except GatewayError as e:
        if not in_config:
            console.print(f"[red]✗[/red] {e}")
            raise typer.Exit(1)
        removed = 0
    finally:
        gateway.shutdown()

    if in_config:
        save_config(gateway_config, _config_path(ctx))
    console.print(f"[green]✓[/green] Backend '{backend_id}' removed ({removed} tools)")


@backend_app.command("list")
def backend_list(ctx: typer.Context) -> None:
    """List configured backends."""
    gateway_config = _load(ctx)
    if not gateway_config.backends:
        console.print("[yellow]No backends configured[/yellow]")
        return

    table = Table(title="Backends")
    table.add_column("Backend", style="cyan")
    table.add_column("Transport", style="blue")
    table.add_column("Target", style="white")
    table.add_column("Enabled", style="yellow")
    for backend in gateway_config.backends:
        table.add_row(
            backend.id,
            backend.transport.kind,
            backend.transport.describe(),
            "yes" if backend.enabled else "no",
        )
    console.print(table)


if __name__ == "__main__":
    app()
