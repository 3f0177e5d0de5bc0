"""Typer CLI for Armory-Engine."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="armory", help="Armory-Engine: military asset tracking engine")
console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the Armory-Engine API server."""
    import uvicorn
    from armory_engine.app import create_app

    console.print(f"[bold green]Starting Armory-Engine on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command("init-db")
def init_db():
    """Create all tables in the configured database."""
    from armory_engine.engine import ArmoryEngine

    async def _run():
        engine = ArmoryEngine()
        await engine.start()
        await engine.close()

    asyncio.run(_run())
    console.print("[bold green]Database initialized[/bold green]")


def _parse_entity_type(value: str) -> str:
    from armory_engine.audit.models import EntityType

    try:
        return EntityType(value.upper()).value
    except ValueError:
        choices = ", ".join(e.value for e in EntityType)
        raise typer.BadParameter(f"'{value}' is not one of {choices}")


@app.command("verify-audit")
def verify_audit(
    entity_type: str = typer.Argument(
        ..., help="ASSET, TRANSFER, PURCHASE, BASE or USER", callback=_parse_entity_type,
    ),
    entity_id: str = typer.Argument(..., help="Entity id whose chain to verify"),
):
    """Verify the audit chain of one entity."""
    from armory_engine.audit.schemas import AuditFilter
    from armory_engine.engine import ArmoryEngine

    async def _run():
        engine = ArmoryEngine()
        await engine.db.init()
        try:
            async with engine.db.get_session() as session:
                result = await engine.audit.verify_chain(
                    session, entity_type, entity_id,
                )
                entries = await engine.audit.list_entries(
                    session,
                    AuditFilter(entity_type=entity_type, entity_id=entity_id, limit=500),
                )
                return result, entries
        finally:
            await engine.close()

    result, entries = asyncio.run(_run())

    table = Table(title=f"{entity_type} {entity_id}")
    table.add_column("#", justify="right")
    table.add_column("Action")
    table.add_column("User")
    table.add_column("Timestamp")
    for entry in reversed(entries):
        table.add_row(
            str(entry.sequence), entry.action, entry.user_id, entry.created_at.isoformat(),
        )
    console.print(table)

    if result["valid"]:
        console.print(
            f"[bold green]VALID[/bold green] - {result['entries_checked']} entries checked"
        )
    else:
        console.print(f"[bold red]BROKEN[/bold red] at entry {result['break_at']}")
        raise typer.Exit(1)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check Armory-Engine server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] - v{data['version']}")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
