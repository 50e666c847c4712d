"""TaskFlow CLI - Main entry point."""

from __future__ import annotations

import asyncio
import uuid

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import settings
from .database import build_engine, build_session_factory, create_all
from .errors import TaskFlowError
from .logging_setup import configure_logging
from .services import counter_svc, project_svc, task_svc

app = typer.Typer(
    name="taskflow",
    help="TaskFlow backend - API server and maintenance tools",
    no_args_is_help=True,
)
console = Console()


async def _with_session(fn):
    engine = build_engine(settings)
    try:
        async with build_session_factory(engine, settings)() as db:
            return await fn(db)
    finally:
        await engine.dispose()


def _run(coro):
    try:
        return asyncio.run(coro)
    except TaskFlowError as exc:
        console.print(f"[red]{exc.code.value}:[/red] {exc.message}")
        raise typer.Exit(1) from exc


# ============================================================================
# Server / database
# ============================================================================


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the API server."""
    import uvicorn

    configure_logging(settings.log_level)
    uvicorn.run("taskflow.app:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db():
    """Create all tables directly (development only; use Alembic elsewhere)."""
    configure_logging(settings.log_level)

    async def _init():
        engine = build_engine(settings)
        try:
            await create_all(engine)
        finally:
            await engine.dispose()

    _run(_init())
    console.print(f"[green]Tables created[/green] at {settings.database_url}")


# ============================================================================
# Maintenance
# ============================================================================


@app.command()
def reconcile(user_id: str = typer.Argument(..., help="User id to reconcile")):
    """Recompute project task counters from the task table."""
    configure_logging(settings.log_level)

    async def _reconcile(db):
        corrections = await counter_svc.reconcile_user_counters(db, user_id)
        projects = await project_svc.get_projects(db, user_id)
        return corrections, projects

    corrections, projects = _run(_with_session(_reconcile))

    table = Table(title=f"Project counters for {user_id}")
    table.add_column("Project", style="cyan")
    table.add_column("Mode")
    table.add_column("Tasks", justify="right")
    table.add_column("Completed", justify="right")
    table.add_column("Corrected", justify="right")
    for project in projects:
        drift = corrections.get(project.id)
        table.add_row(
            project.name,
            project.mode,
            str(project.task_count),
            str(project.completed_task_count),
            f"[yellow]{drift.total:+d}/{drift.completed:+d}[/yellow]" if drift else "-",
        )
    console.print(table)


@app.command("check-project")
def check_project(
    user_id: str = typer.Argument(..., help="Owning user id"),
    project_id: str = typer.Argument(..., help="Project id"),
):
    """Show whether a project can be deleted and what it still contains."""
    configure_logging(settings.log_level)
    pid = uuid.UUID(project_id)

    async def _check(db):
        return await project_svc.check_project_deletion(db, user_id, pid)

    check = _run(_with_session(_check))
    colour = "green" if check.can_delete else "red"
    console.print(
        Panel(
            f"Can delete: [{colour}]{check.can_delete}[/{colour}]\n"
            f"Tasks: {check.total_task_count}\n"
            f"Incomplete: {check.incomplete_task_count}",
            title=f"Project {project_id}",
        )
    )


@app.command()
def stats(user_id: str = typer.Argument(..., help="User id")):
    """Print task statistics for a user."""
    configure_logging(settings.log_level)

    async def _stats(db):
        return await task_svc.get_task_statistics(db, user_id)

    data = _run(_with_session(_stats))

    table = Table(title=f"Task statistics for {user_id}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    for key in ("total", "completed", "active", "overdue", "due_today"):
        table.add_row(key.replace("_", " ").title(), str(data[key]))
    table.add_row("Completion rate", f"{data['completion_rate']}%")
    for status, count in data["by_status"].items():
        table.add_row(f"Status: {status}", str(count))
    for priority, count in data["by_priority"].items():
        table.add_row(f"Priority: {priority}", str(count))
    console.print(table)


if __name__ == "__main__":
    app()
