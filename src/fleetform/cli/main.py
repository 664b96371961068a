"""Main CLI implementation using Typer."""

from typing import Optional, List, Callable, Any

import typer
from rich.console import Console

from fleetform.cli.commands import (
    show_plan,
    apply_plan,
    renew_resources,
    list_resources,
    show_status,
    validate_config,
    agent_status,
    agent_reload,
)
from fleetform.cli.client import IPCClient, IPCError


# Create Typer app
app = typer.Typer(
    name="fleetform",
    help="Fleetform - declarative container fleet reconciliation",
    add_completion=False,
)

# Console for rich output
console = Console()


def _run_cli_command(handler: Callable[..., Any], socket: Optional[str], **kwargs: Any):
    """Helper to run a CLI command with an IPC client and error handling."""
    try:
        client = IPCClient(socket_path=socket)
        return handler(client, **kwargs)
    except IPCError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


@app.command("plan")
def plan_command(
    socket: Optional[str] = typer.Option(
        None, "--socket", "-s", help="Agent socket path"
    ),
):
    """Show the tasks needed to converge the host."""
    _run_cli_command(show_plan, socket=socket)


@app.command("apply")
def apply_command(
    socket: Optional[str] = typer.Option(
        None, "--socket", "-s", help="Agent socket path"
    ),
):
    """Reconcile the host now."""
    response = _run_cli_command(apply_plan, socket=socket)
    if response and not response.get("reconciled"):
        raise typer.Exit(2)


@app.command("renew")
def renew_command(
    names: Optional[List[str]] = typer.Argument(None, help="Container names to recreate"),
    network: Optional[List[str]] = typer.Option(
        None, "--network", "-n", help="Network name to recreate (repeatable)"
    ),
    apply: bool = typer.Option(False, "--apply", help="Reconcile immediately"),
    socket: Optional[str] = typer.Option(
        None, "--socket", "-s", help="Agent socket path"
    ),
):
    """Force containers or networks to be recreated."""
    if not names and not network:
        console.print("[red]Error:[/red] Specify container names or --network")
        raise typer.Exit(1)
    _run_cli_command(
        renew_resources,
        socket=socket,
        containers=list(names or []),
        networks=list(network or []),
        apply=apply,
    )


@app.command("list")
def list_command(
    resource_type: Optional[str] = typer.Argument(
        None, help="Resource type to list (containers, networks)"
    ),
    socket: Optional[str] = typer.Option(
        None, "--socket", "-s", help="Agent socket path"
    ),
):
    """List resources fleetform owns on the host."""
    _run_cli_command(list_resources, socket=socket, resource_type=resource_type)


@app.command("status")
def status_command(
    container: Optional[str] = typer.Argument(
        None, help="Show status for specific container"
    ),
    socket: Optional[str] = typer.Option(
        None, "--socket", "-s", help="Agent socket path"
    ),
):
    """Show overall system status."""
    _run_cli_command(show_status, socket=socket, container=container)


# Config subcommands
config_app = typer.Typer(help="Configuration commands")
app.add_typer(config_app, name="config")


@config_app.command("validate")
def config_validate_command(
    socket: Optional[str] = typer.Option(
        None, "--socket", "-s", help="Agent socket path"
    ),
):
    """Validate configuration files."""
    _run_cli_command(validate_config, socket=socket)


# Agent subcommands
agent_app = typer.Typer(help="Agent management commands")
app.add_typer(agent_app, name="agent")


@agent_app.command("status")
def agent_status_command(
    socket: Optional[str] = typer.Option(
        None, "--socket", "-s", help="Agent socket path"
    ),
):
    """Show agent status."""
    _run_cli_command(agent_status, socket=socket)


@agent_app.command("reload")
def agent_reload_command(
    socket: Optional[str] = typer.Option(
        None, "--socket", "-s", help="Agent socket path"
    ),
):
    """Reload agent configuration."""
    _run_cli_command(agent_reload, socket=socket)


def main():
    """Main entry point for CLI."""
    app()
