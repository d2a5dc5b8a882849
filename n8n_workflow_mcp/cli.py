"""Typer CLI for the n8n workflow MCP server."""

from __future__ import annotations

import json
from typing import Annotated

import anyio
import typer

from n8n_workflow_mcp.config import (
    DEFAULT_TIMEOUT_SECONDS,
    REQUIRED_VARIABLES_HELP,
    ServerConfig,
    load_config,
)
from n8n_workflow_mcp.errors import ConfigurationError, N8nApiError
from n8n_workflow_mcp.n8n_client import build_api_client, fetch_active_workflows
from n8n_workflow_mcp.observability import configure_logging
from n8n_workflow_mcp.server import run_stdio_server
from n8n_workflow_mcp.tools import TOOL_DEFINITIONS

app = typer.Typer(help="Expose n8n workflows as MCP tools over stdio.")


def _load_config_or_exit(timeout_seconds: float) -> ServerConfig:
    """Load configuration, printing operator guidance to stderr on failure."""
    try:
        return load_config(timeout_seconds=timeout_seconds)
    except ConfigurationError as error:
        typer.echo(f"Configuration Error: {error}", err=True)
        typer.echo("\nPlease ensure the following environment variables are set:", err=True)
        for line in REQUIRED_VARIABLES_HELP:
            typer.echo(line, err=True)
        raise typer.Exit(code=1) from error


async def _count_active_workflows(config: ServerConfig) -> int:
    async with build_api_client(config) as client:
        workflows = await fetch_active_workflows(client=client)
    return len(workflows)


@app.command("serve")
def serve_command(
    timeout_seconds: Annotated[
        float, typer.Option(help="Timeout in seconds for every outbound n8n call.")
    ] = DEFAULT_TIMEOUT_SECONDS,
    log_level: Annotated[str, typer.Option(help="Log level for stderr logging.")] = "INFO",
) -> None:
    """Run the MCP server on stdio."""
    configure_logging(log_level)
    config = _load_config_or_exit(timeout_seconds)
    try:
        anyio.run(run_stdio_server, config)
    except KeyboardInterrupt:
        raise typer.Exit(code=0) from None


@app.command("check-config")
def check_config_command(
    ping: Annotated[
        bool,
        typer.Option(
            "--ping/--no-ping",
            help="List active workflows to confirm the API key is accepted.",
        ),
    ] = True,
    timeout_seconds: Annotated[
        float, typer.Option(help="Timeout in seconds for the validation call.")
    ] = DEFAULT_TIMEOUT_SECONDS,
) -> None:
    """Validate configuration and optional n8n API reachability."""
    config = _load_config_or_exit(timeout_seconds)
    typer.echo(f"Configuration loaded for {config.base_url}.")
    if config.webhook_secret is None:
        typer.echo("No webhook secret configured; webhooks will be called without one.")

    if ping:
        try:
            count = anyio.run(_count_active_workflows, config)
        except N8nApiError as error:
            status = error.status_code if error.status_code is not None else "none"
            typer.echo(f"n8n API check failed: status={status} ({error}).")
            raise typer.Exit(code=1) from error
        typer.echo(f"n8n API reachable: {count} active workflow(s).")

    typer.echo("Configuration is valid.")


@app.command("list-tools")
def list_tools_command() -> None:
    """Print the tool descriptors served to MCP hosts."""
    descriptors = [
        tool.model_dump(mode="json", by_alias=True, exclude_none=True) for tool in TOOL_DEFINITIONS
    ]
    typer.echo(json.dumps(descriptors, indent=2))
