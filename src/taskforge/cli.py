"""CLI interface for the Taskforge workspace service."""

import asyncio
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from .auth import get_user_by_email
from .config import AppConfig
from .errors import TaskforgeError
from .export import export_filename, parse_format, render
from .generation_logger import get_generation_summary, list_generation_logs
from .models import ProjectStatus
from .store import Database, init_db as create_schema
from .workspace import get_project_details, list_projects

console = Console()


def _load_config(config_file: Optional[str]) -> AppConfig:
    try:
        return AppConfig.load(config_file)
    except FileNotFoundError as e:
        raise click.ClickException(str(e))


@click.group()
@click.version_option(package_name="taskforge")
def main():
    """Taskforge - break feature ideas into stories, tasks and risks."""
    pass


@main.command()
@click.option('--config', 'config_file', type=click.Path(exists=True), help='JSON config file')
@click.option('--host', default='127.0.0.1', help='Host to bind to')
@click.option('--port', default=8000, help='Port to listen on')
@click.option('--reload', is_flag=True, help='Restart on code changes')
def serve(config_file: Optional[str], host: str, port: int, reload: bool):
    """Start the API server.

    \b
    Serves:
    - REST API at http://host:port/api/
    - API docs at http://host:port/docs

    Example:
        taskforge serve --port 8000
    """
    from .api import run_server

    config = _load_config(config_file)
    if not config.openrouter_api_key:
        console.print("[yellow]OPENROUTER_KEY is not set; generation requests will fail.[/yellow]")

    console.print("[bold]Starting Taskforge API[/bold]")
    console.print(f"Database: {config.database_url}")
    console.print(f"API: http://{host}:{port}/api/")
    console.print(f"Docs: http://{host}:{port}/docs")
    console.print("\nPress Ctrl+C to stop\n")

    try:
        run_server(config, host=host, port=port, reload=reload)
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")


@main.command('init-db')
@click.option('--config', 'config_file', type=click.Path(exists=True), help='JSON config file')
def init_db(config_file: Optional[str]):
    """Create the database schema."""
    config = _load_config(config_file)

    async def _run():
        db = await create_schema(config.database_url)
        await db.dispose()

    asyncio.run(_run())
    console.print(f"[green]OK[/green] Schema ready at {config.database_url}")


@main.command()
@click.option('--email', required=True, help='Owner of the projects')
@click.option('--config', 'config_file', type=click.Path(exists=True), help='JSON config file')
def projects(email: str, config_file: Optional[str]):
    """List a user's projects."""
    config = _load_config(config_file)

    async def _run():
        db = Database(config.database_url)
        try:
            async with db.session() as session:
                user = await get_user_by_email(session, email)
                return await list_projects(session, user.id)
        finally:
            await db.dispose()

    try:
        rows = asyncio.run(_run())
    except TaskforgeError as e:
        raise click.ClickException(e.message)

    table = Table(title=f"Projects: {email}")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Tasks", justify="right")
    table.add_column("Groups", justify="right")
    table.add_column("Created")

    status_colors = {
        ProjectStatus.DRAFT.value: "white",
        ProjectStatus.GENERATED.value: "green",
        ProjectStatus.COMPLETED.value: "blue",
    }

    for p in rows:
        color = status_colors.get(p["status"], "white")
        table.add_row(
            p["id"],
            p["title"],
            f"[{color}]{p['status']}[/{color}]",
            str(p["taskCount"]),
            str(p["task_groups"]),
            (p["created_at"] or "")[:19],
        )

    console.print(table)


@main.command()
@click.argument('project_id')
@click.option('--email', required=True, help='Owner of the project')
@click.option('--format', 'output_format', type=click.Choice(['markdown', 'text']),
              default='markdown', help='Document format')
@click.option('--output', type=click.Path(), help='Output file (default: <title>.<ext>)')
@click.option('--config', 'config_file', type=click.Path(exists=True), help='JSON config file')
def export(project_id: str, email: str, output_format: str, output: Optional[str], config_file: Optional[str]):
    """Export a project as Markdown or plain text."""
    config = _load_config(config_file)
    fmt = parse_format(output_format)

    async def _run():
        db = Database(config.database_url)
        try:
            async with db.session() as session:
                user = await get_user_by_email(session, email)
                return await get_project_details(session, user.id, project_id)
        finally:
            await db.dispose()

    try:
        details = asyncio.run(_run())
    except TaskforgeError as e:
        raise click.ClickException(e.message)

    output_path = Path(output) if output else Path(export_filename(details.project.title, fmt))
    output_path.write_text(render(details, fmt), encoding="utf-8")
    console.print(f"[green]OK[/green] Exported {details.stats.total_tasks} tasks to {output_path}")


@main.command()
@click.option('--config', 'config_file', type=click.Path(exists=True), help='JSON config file')
@click.option('--limit', default=20, help='Maximum runs to show')
def logs(config_file: Optional[str], limit: int):
    """List recent generation runs."""
    config = _load_config(config_file)
    log_dir = config.generation_log_dir
    if log_dir is None:
        console.print("[yellow]No log directory configured (set TASKFORGE_LOG_DIR).[/yellow]")
        return

    files = list_generation_logs(log_dir, limit=limit)
    if not files:
        console.print("[yellow]No generation runs logged yet.[/yellow]")
        return

    table = Table(title="Generation Runs")
    table.add_column("Run", style="cyan")
    table.add_column("Started")
    table.add_column("Outcome")
    table.add_column("Tasks", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Errors")

    for path in files:
        summary = get_generation_summary(path)
        if summary is None:
            continue
        outcome = summary["outcome"] or "running"
        color = "green" if outcome == "success" else "red" if outcome == "failure" else "yellow"
        duration = summary["duration_seconds"]
        table.add_row(
            summary["run_id"] or path.stem,
            (summary["started_at"] or "")[:19],
            f"[{color}]{outcome}[/{color}]",
            str(summary["accepted"]),
            str(summary["quarantined"]),
            f"{duration:.1f}s" if duration is not None else "-",
            "; ".join(e["message"] or "" for e in summary["errors"]),
        )

    console.print(table)


if __name__ == "__main__":
    main()
