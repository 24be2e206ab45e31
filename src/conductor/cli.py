"""CLI entry point for Conductor."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from conductor import __version__
from conductor.config import Settings, load_settings
from conductor.core.errors import ConfigError, ContractNotFoundError, EscalationError
from conductor.core.types import Task, TaskType

if TYPE_CHECKING:
    from conductor.core.types import ExecutionResult
    from conductor.engine.orchestrator import Orchestrator

console = Console()

EXIT_FAILED = 2


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="conductor")
@click.option("--log-level", default=None, help="Diagnostic log level (default from config)")
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """Conductor: deterministic control plane for scoped agent pipelines."""
    try:
        settings = load_settings()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    if log_level:
        settings.log_level = log_level.upper()
    _setup_logging(settings.log_level)
    ctx.obj = settings


@main.command()
@click.pass_obj
def init(settings: Settings) -> None:
    """Initialize conductor: create ~/.conductor/ and the history database."""
    from conductor.storage.database import Database

    db = Database(settings.home)
    db.ensure_tables()
    console.print(f"[green]Conductor initialized at {db.data_dir}[/green]")
    console.print(f"  Database:  {db.db_path}")
    console.print(f"  Config:    {settings.config_path}")
    console.print(f"  Contracts: {settings.contracts_root}")


def _validate_task_id(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    from conductor.core.audit import is_safe_task_id

    if value is not None and not is_safe_task_id(value):
        raise click.BadParameter(
            "must start with a letter or digit and contain only letters, digits, '.', '_' or '-'"
        )
    return value


def _get_orchestrator(settings: Settings) -> Orchestrator:
    from conductor.engine.orchestrator import Orchestrator
    from conductor.storage.database import Database

    return Orchestrator(settings=settings, db=Database(settings.home))


@main.command()
@click.argument("body", nargs=-1, required=True)
@click.option(
    "--type",
    "task_type",
    type=click.Choice([t.value for t in TaskType]),
    default=None,
    help="Operator classification hint",
)
@click.option("--context", "context", multiple=True, help="Context document reference (repeatable)")
@click.option(
    "--task-id",
    default=None,
    callback=_validate_task_id,
    help="Explicit task id (generated if omitted)",
)
@click.pass_obj
def run(
    settings: Settings,
    body: tuple[str, ...],
    task_type: str | None,
    context: tuple[str, ...],
    task_id: str | None,
) -> None:
    """Run a task through the full pipeline."""
    from conductor.core.runtime import generate_task_id

    task = Task(
        task_id=task_id or generate_task_id(),
        body=" ".join(body),
        type=TaskType(task_type) if task_type else None,
        context_registry=context,
    )
    orch = _get_orchestrator(settings)
    console.print(f"[bold cyan]Task:[/bold cyan] {task.task_id}")

    try:
        result = orch.run(task)
    except EscalationError as e:
        console.print(f"\n[yellow]Status: escalated[/yellow]\n{e}")
        console.print(f"Audit: {orch.audit.logs_dir / task.task_id}.jsonl")
        sys.exit(EXIT_FAILED)
    except Exception as e:
        console.print(f"\n[red]Status: escalated[/red]\nInternal error: {e}")
        console.print(f"Audit: {orch.audit.logs_dir / task.task_id}.jsonl")
        sys.exit(EXIT_FAILED)

    _print_result(result)
    console.print(f"Audit: {orch.audit.logs_dir / task.task_id}.jsonl")
    if result.validation.verdict != "pass":
        sys.exit(EXIT_FAILED)


@main.command()
@click.argument("body", nargs=-1, required=True)
def classify(body: tuple[str, ...]) -> None:
    """Show keyword scores and routing for a task body, without running it."""
    from conductor.agents.coordinator import decide, score_task

    text = " ".join(body)
    technical, business = score_task(text)
    result = decide(technical, business)

    console.print(f"[bold]Technical score:[/bold] {technical}")
    console.print(f"[bold]Business score:[/bold]  {business}")
    console.print(f"[bold]Category:[/bold] {result.category}")
    console.print(f"[bold]Routed to:[/bold] {result.routed_to}")
    console.print(f"[bold]Rule:[/bold] {result.rule_applied}")


@main.command()
@click.argument("task_id")
@click.pass_obj
def audit(settings: Settings, task_id: str) -> None:
    """Replay the audit stream for a task."""
    from conductor.core.audit import AuditLog

    log = AuditLog(settings.project_root)
    try:
        events = log.replay(task_id)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="TASK_ID") from e

    if not events:
        console.print(f"[dim]No audit events for {task_id}.[/dim]")
        return

    table = Table(title=f"Audit: {task_id}")
    table.add_column("Timestamp", style="dim")
    table.add_column("Event", style="cyan", no_wrap=True)
    table.add_column("Agent", style="green")
    table.add_column("Data", max_width=60)

    for event in events:
        data = ", ".join(f"{k}={v}" for k, v in event.data.items() if not isinstance(v, dict | list))
        table.add_row(event.timestamp, event.event_type, event.agent_id or "", data)

    console.print(table)


@main.command()
@click.option("--limit", default=20, help="Number of entries to show")
@click.pass_obj
def history(settings: Settings, limit: int) -> None:
    """Show recent pipeline runs."""
    import sqlite3

    from conductor.storage.database import Database

    db = Database(settings.home)
    try:
        rows = db.recent_runs(limit)
    except sqlite3.Error:
        console.print("[dim]No run history yet. Run a task first.[/dim]")
        return

    if not rows:
        console.print("[dim]No run history yet. Run a task first.[/dim]")
        return

    table = Table(title="Run History")
    table.add_column("Task", style="cyan", no_wrap=True)
    table.add_column("Body", max_width=40)
    table.add_column("Route")
    table.add_column("Verdict")
    table.add_column("Status", style="bold")
    table.add_column("Started")

    for row in rows:
        table.add_row(
            str(row["task_id"]),
            str(row["body"])[:40],
            str(row["routed_to"] or "-"),
            str(row["verdict"] or "-"),
            str(row["status"]),
            str(row["started_at"])[:19],
        )

    console.print(table)


@main.command()
def manifests() -> None:
    """List registered agent manifests and their resolved scopes."""
    from conductor.core.manifests import DEFAULT_REGISTRY
    from conductor.core.scope import resolve_scope

    table = Table(title="Agent Manifests")
    table.add_column("Role", style="cyan", no_wrap=True)
    table.add_column("Tools")
    table.add_column("Network")
    table.add_column("Filesystem")
    table.add_column("Time (ms)", justify="right")
    table.add_column("Cost cap", justify="right")

    for manifest in DEFAULT_REGISTRY:
        scope = resolve_scope(manifest)
        network = (
            ", ".join(scope.network_policy)
            if isinstance(scope.network_policy, tuple)
            else scope.network_policy
        )
        table.add_row(
            manifest.role,
            ", ".join(scope.effective_tools) or "(none)",
            network,
            scope.filesystem_policy,
            str(scope.max_execution_time),
            str(scope.max_cost_cap),
        )

    console.print(table)


@main.command()
@click.argument("role")
@click.pass_obj
def prompt(settings: Settings, role: str) -> None:
    """Print the assembled instructions for a role."""
    from conductor.core.runtime import load_system_prompt

    try:
        text = load_system_prompt(role, contracts_root=settings.contracts_root)
    except KeyError as e:
        raise click.BadParameter(f"Unknown role: {role}", param_hint="ROLE") from e
    except ContractNotFoundError as e:
        raise click.ClickException(str(e)) from e
    click.echo(text, nl=False)


def _print_result(result: ExecutionResult) -> None:
    """Print pipeline result summary."""
    status_color = {"completed": "green", "failed": "red"}.get(str(result.status), "dim")

    c = result.classification
    console.print(f"Classification: {c.category} -> {c.routed_to} ({c.rule_applied})")
    spec = result.intent_spec
    console.print(
        f"Spec: {spec.spec_id} ({len(spec.requirements)} requirement(s), "
        f"{len(spec.constraints)} constraint(s))"
    )
    console.print(f"Execution: {result.execution_output.status}")

    summary = result.validation.summary
    console.print(
        f"Verdict: {result.validation.verdict} "
        f"({summary.passed_requirements}/{summary.total_requirements} requirements, "
        f"{summary.violated_constraints} constraint violation(s), "
        f"{summary.scope_violation_count} scope violation(s))"
    )
    console.print(f"\n[{status_color}]Status: {result.status}[/{status_color}]")

