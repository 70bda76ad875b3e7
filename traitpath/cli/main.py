"""
TraitPath CLI - operator commands for the weighting engine.

Usage:
    traitpath init-db                         # Create tables
    traitpath seed-catalog data/sample_catalog.json
    traitpath check-catalog                   # Validate the loaded catalog
    traitpath calculate USER CONVERSATION     # Run a calculation locally
    traitpath show-path USER                  # Print the stored learning path
    traitpath recover USER CONVERSATION       # Re-trigger through the API
    traitpath serve                           # Run the API server
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import httpx
import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from config import get_settings
from traitpath.adaptive.orchestrator import CalculationOrchestrator, build_catalog_snapshot
from traitpath.api_client import TraitPathClient
from traitpath.core.errors import InputMissingError, PersistenceError, TraitPathError
from traitpath.core.log_config import configure_logging
from traitpath.db.database import build_engine, build_session_factory, init_db, session_scope
from traitpath.db.repositories import (
    SqlCalculationStore,
    SqlCatalogRepository,
    SqlConversationRepository,
)
from traitpath.db.seed import load_catalog_file

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="traitpath",
    help="Trait-to-skill weighting and learning path engine",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def _session_factory():
    engine = build_engine(get_settings().database_url)
    init_db(engine)
    return build_session_factory(engine)


def _fail(message: str, code: int = 1) -> typer.Exit:
    console.print(f"[red]{message}[/]")
    return typer.Exit(code)


def _print_path(nodes: list[dict[str, Any]], title: str = "Learning Path") -> None:
    if not nodes:
        console.print("[yellow]Learning path is empty.[/]")
        return

    table = Table(title=title)
    table.add_column("#", style="dim", width=3)
    table.add_column("Skill", style="cyan", justify="right")
    table.add_column("Requires", style="white")
    table.add_column("Priority", style="magenta")
    table.add_column("Minutes", style="green", justify="right")
    table.add_column("Activities", style="white")

    for i, node in enumerate(nodes, 1):
        table.add_row(
            str(i),
            str(node["skill_id"]),
            ", ".join(str(s) for s in node["required_skills"]) or "-",
            node["priority_level"],
            str(node["estimated_duration_minutes"]),
            "\n".join(node["learning_activities"]),
        )
    console.print(table)


# =============================================================================
# Database Commands
# =============================================================================


@app.command("init-db")
def init_database() -> None:
    """Create all tables."""
    init_db(build_engine(get_settings().database_url))
    console.print("[green]✓ Database initialized[/]")


@app.command("seed-catalog")
def seed_catalog(
    catalog_file: Annotated[Path, typer.Argument(help="Catalog JSON file")],
) -> None:
    """Load skills, trait patterns and demo conversations from JSON."""
    if not catalog_file.exists():
        raise _fail(f"File not found: {catalog_file}")

    try:
        with session_scope(_session_factory()) as session:
            summary = load_catalog_file(session, catalog_file)
    except TraitPathError as e:
        raise _fail(f"Seeding failed: {e.message}")

    table = Table(title="Seed Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Skills", str(summary.skills))
    table.add_row("Trait patterns", str(summary.patterns))
    table.add_row("Skill mappings", str(summary.mappings))
    table.add_row("Stage rules", str(summary.stages))
    table.add_row("Conversations", str(summary.conversations))
    console.print(table)


@app.command("check-catalog")
def check_catalog() -> None:
    """Load the catalog and confirm it can drive a calculation."""
    try:
        with session_scope(_session_factory()) as session:
            catalog = build_catalog_snapshot(SqlCatalogRepository(session))
    except TraitPathError as e:
        raise _fail(f"Catalog invalid: {e.message}")

    active = sum(1 for s in catalog.skills.values() if s.is_active)
    console.print(
        f"[green]✓ Catalog OK:[/] {len(catalog.patterns)} patterns, "
        f"{catalog.mapping_count} mappings, {active}/{len(catalog.skills)} skills active"
    )


# =============================================================================
# Calculation Commands
# =============================================================================


@app.command()
def calculate(
    user_id: Annotated[str, typer.Argument(help="User identifier")],
    conversation_id: Annotated[str, typer.Argument(help="Triggering conversation")],
    traits_file: Annotated[
        Path | None, typer.Option("--traits-file", "-t", help="JSON trait record overriding stored traits")
    ] = None,
) -> None:
    """Run a calculation directly against the database."""
    traits = None
    if traits_file is not None:
        if not traits_file.exists():
            raise _fail(f"File not found: {traits_file}")
        traits = json.loads(traits_file.read_text(encoding="utf-8"))

    settings = get_settings()
    try:
        with session_scope(_session_factory()) as session:
            result = CalculationOrchestrator(
                catalog=SqlCatalogRepository(session),
                store=SqlCalculationStore(session),
                conversations=SqlConversationRepository(session),
                settings=settings,
            ).run(user_id, conversation_id, traits)
    except InputMissingError as e:
        console.print(f"[yellow]Pending: {e.message}[/]")
        raise typer.Exit(2)
    except TraitPathError as e:
        raise _fail(f"{type(e).__name__} in {e.phase or 'setup'}: {e.message}")

    response = result.to_response()
    console.print(
        f"[green]✓ {response['mode']}[/] ({response['traitSource']} traits): "
        f"{len(response['weights'])} weights, focus {response['learningFocus']}"
    )
    _print_path(response["learningPath"])


@app.command("show-path")
def show_path(
    user_id: Annotated[str, typer.Argument(help="User identifier")],
) -> None:
    """Print the stored learning path for a user."""
    try:
        with session_scope(_session_factory()) as session:
            document = SqlCalculationStore(session).get_learning_path(user_id)
    except PersistenceError as e:
        raise _fail(f"Could not read learning path: {e.message}")

    if document is None:
        raise _fail(f"No learning path for user {user_id}")

    console.print(f"[dim]mode={document['mode']} updated={document['updated_at']}[/]")
    _print_path(document["learning_path"], title=f"Learning Path: {user_id}")


@app.command()
def recover(
    user_id: Annotated[str, typer.Argument(help="User identifier")],
    conversation_id: Annotated[str, typer.Argument(help="Conversation to re-run")],
    api_url: Annotated[
        str | None, typer.Option("--api-url", help="API base URL (defaults to API_BASE_URL)")
    ] = None,
    traits_file: Annotated[
        Path | None, typer.Option("--traits-file", "-t", help="JSON trait record to force")
    ] = None,
) -> None:
    """Re-trigger a calculation through the running API."""
    traits = None
    if traits_file is not None:
        traits = json.loads(traits_file.read_text(encoding="utf-8"))

    url = api_url or get_settings().api_base_url
    console.print(f"[cyan]Re-triggering calculation via {url}...[/]")
    body = asyncio.run(_recover(url, user_id, conversation_id, traits))

    if body.get("pending"):
        console.print(f"[yellow]Pending: {body.get('message')}[/]")
        raise typer.Exit(2)
    if not body.get("success"):
        raise _fail(f"Calculation failed: {body.get('error')}")

    console.print(f"[green]✓ {body['mode']}[/] recalculated for {user_id}")
    _print_path(body.get("learningPath", []))


async def _recover(
    url: str, user_id: str, conversation_id: str, traits: dict[str, Any] | None
) -> dict[str, Any]:
    client = TraitPathClient(url)
    try:
        return await client.trigger_calculation(user_id, conversation_id, traits)
    except httpx.HTTPError as e:
        logger.debug(f"Recovery request failed: {e}")
        raise _fail(f"API request failed: {e}")
    finally:
        await client.close()


@app.command()
def serve(
    host: Annotated[str | None, typer.Option("--host", help="Bind address")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Port")] = None,
) -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "traitpath.api.main:create_app",
        factory=True,
        host=host or settings.api_host,
        port=port or settings.api_port,
    )


# =============================================================================
# Main Callback
# =============================================================================


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """
    [bold]TraitPath[/] - turn conversation traits into a learning path.
    """
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
