"""Command implementations for CLI."""

from typing import Optional, List, Dict, Any
from datetime import datetime

from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from fleetform.cli.client import IPCClient


console = Console()


def _run_action(
    client: IPCClient,
    description: str,
    command: str,
    args: Dict[str, Any],
    success_msg: Optional[str] = None,
    quiet: bool = False
) -> Dict[str, Any]:
    """Helper to run an IPC action with a progress spinner."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        disable=quiet,
    ) as progress:
        task = progress.add_task(description, total=None)

        response = client.request(command, args)

        progress.update(task, completed=True)

    if success_msg and not quiet:
        console.print(success_msg)

    return response


def _describe_task(task: Dict[str, Any]) -> str:
    if task.get("target"):
        return f"{task['name']} -> {task['target']}"
    return task["name"]


def render_stages(stages: List[List[Dict[str, Any]]]):
    """Print a task set as a table, one row per task."""
    if not stages:
        console.print("[green]✓[/green] Host is in sync, nothing to do")
        return

    table = Table(title="Plan")
    table.add_column("Stage", justify="right", style="cyan")
    table.add_column("Task", style="magenta")
    table.add_column("Resource")

    for index, stage in enumerate(stages, start=1):
        for position, task in enumerate(stage):
            table.add_row(
                str(index) if position == 0 else "",
                task["kind"],
                _describe_task(task),
            )

    console.print(table)
    task_count = sum(len(stage) for stage in stages)
    console.print(f"{task_count} tasks in {len(stages)} stages")


def render_report(report: Dict[str, Any]):
    """Print the outcome of an apply."""
    if report.get("success"):
        console.print(
            f"[green]✓[/green] Applied {report.get('tasks_applied', 0)} tasks "
            f"in {report.get('stages_applied', 0)} stages"
        )
        return

    console.print(
        f"[red]✗[/red] Applied {report.get('stages_applied', 0)}/{report.get('stages_total', 0)} stages, "
        f"{len(report.get('failures', []))} tasks failed"
    )
    for failure in report.get("failures", []):
        console.print(f"  [red]✗[/red] stage {failure['stage'] + 1} {failure['task']}: {failure['error']}")


def show_plan(client: IPCClient):
    """Show the task set the agent would apply."""
    response = _run_action(client, "Planning...", "plan", {})
    render_stages(response.get("stages", []))


def apply_plan(client: IPCClient, quiet: bool = False):
    """Run a reconciliation now."""
    response = _run_action(client, "Reconciling...", "reconcile", {}, quiet=quiet)
    if not quiet:
        render_report(response.get("report", {}))
    return response


def renew_resources(
    client: IPCClient,
    containers: List[str],
    networks: List[str],
    apply: bool = False,
):
    """Queue resources for recreation."""
    response = _run_action(
        client,
        description="Requesting renewal...",
        command="renew",
        args={"containers": containers, "networks": networks, "apply": apply},
    )

    pending = response.get("pending_renewals", {})
    if "report" in response:
        render_report(response["report"])
    else:
        console.print("[green]✓[/green] Renewal queued for next reconciliation")
        console.print(f"  Containers: {', '.join(pending.get('containers', [])) or '-'}")
        console.print(f"  Networks: {', '.join(pending.get('networks', [])) or '-'}")


def list_resources(client: IPCClient, resource_type: Optional[str] = None):
    """List owned resources with formatted output."""
    if not resource_type:
        resource_type = "all"

    response = client.request("list", {"type": resource_type})

    if "containers" in response:
        table = Table(title="Containers")
        table.add_column("Name", style="cyan")
        table.add_column("Declared")
        table.add_column("Fingerprint", style="dim")

        for name, info in response["containers"].items():
            declared = "[green]✓[/green]" if info["declared"] else "[red]✗[/red]"
            table.add_row(name, declared, info["fingerprint"] or "-")

        console.print(table)
        console.print()

    if "networks" in response:
        table = Table(title="Networks")
        table.add_column("Name", style="cyan")
        table.add_column("Used By")

        for name, info in response["networks"].items():
            table.add_row(name, ", ".join(info["used_by"]) or "-")

        console.print(table)


def show_status(client: IPCClient, container: Optional[str] = None):
    """Show system or container status."""
    response = client.request("status", {"container": container} if container else {})

    if container:
        info = response["containers"].get(container)
        if not info:
            console.print(f"[red]Container {container} not found[/red]")
            return

        console.print(f"[bold]Container: {container}[/bold]")
        console.print(f"  Physical Name: {info['physical_name']}")
        console.print(f"  Desired: {'Yes' if info['desired'] else 'No'}")
        console.print(f"  Exists: {'Yes' if info['exists'] else 'No'}")
        console.print(f"  Image: {info['image'] or '-'}")
        console.print(f"  Networks: {', '.join(info['networks']) or '-'}")
        console.print(f"  Fingerprint: {info['fingerprint'] or '-'}")
        console.print(f"  Observed Fingerprint: {info['observed_fingerprint'] or '-'}")
        console.print(f"  In Sync: {'Yes' if info['in_sync'] else 'No'}")
        return

    agent_info = response.get("agent", {})
    containers = response.get("containers", {})

    console.print("[bold]Agent Status[/bold]")
    console.print(f"  Running: {'Yes' if agent_info.get('running') else 'No'}")
    console.print(f"  Prefix: {agent_info.get('prefix')}")

    last_recon = agent_info.get("last_reconciliation")
    if last_recon:
        dt = datetime.fromisoformat(last_recon)
        console.print(f"  Last Reconciliation: {dt.strftime('%Y-%m-%d %H:%M:%S')}")
    else:
        console.print("  Last Reconciliation: Never")

    last_report = agent_info.get("last_report")
    if last_report and not last_report.get("success"):
        console.print(f"  Last Result: [red]{len(last_report.get('failures', []))} failed tasks[/red]")

    pending = agent_info.get("pending_renewals") or {}
    if pending.get("containers") or pending.get("networks"):
        console.print(
            f"  Pending Renewals: {', '.join(pending.get('containers', []) + pending.get('networks', []))}"
        )

    console.print()

    in_sync = sum(1 for c in containers.values() if c.get("in_sync"))
    console.print(f"[bold]Containers[/bold]: {in_sync}/{len(containers)} in sync")

    if containers:
        table = Table()
        table.add_column("Name", style="cyan")
        table.add_column("Desired")
        table.add_column("Exists")
        table.add_column("Image", style="magenta")
        table.add_column("In Sync")

        for name, info in containers.items():
            table.add_row(
                name,
                "yes" if info["desired"] else "no",
                "yes" if info["exists"] else "no",
                info["image"] or "-",
                "[green]●[/green]" if info["in_sync"] else "[red]○[/red]",
            )

        console.print(table)


def validate_config(client: IPCClient):
    """Validate configuration."""
    response = _run_action(client, "Validating configuration...", "validate", {})

    if response.get("valid"):
        console.print("[green]✓[/green] Configuration is valid")
        console.print(f"  Containers: {response.get('containers', 0)} ({response.get('enabled', 0)} enabled)")
        console.print(f"  Networks: {response.get('networks', 0)}")
    else:
        console.print("[red]✗[/red] Configuration is invalid")
        console.print(f"  Error: {response.get('error')}")


def agent_status(client: IPCClient):
    """Show agent status."""
    show_status(client)


def agent_reload(client: IPCClient):
    """Reload agent configuration."""
    response = _run_action(client, "Reloading configuration...", "reload", {})
    console.print(f"[green]✓[/green] Configuration reloaded ({response.get('containers', 0)} containers)")
