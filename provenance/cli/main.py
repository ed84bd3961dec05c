# provenance/cli/main.py
"""
CLI for recording and inspecting item custody on a provenance ledger.
"""

import os
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from provenance.chain.ledger import CustodyLedger
from provenance.config import LedgerConfig, configure_logging, get_db_path
from provenance.core.errors import LedgerError
from provenance.core.types import Status
from provenance.events import FanoutSink, JsonlSink, LoggingSink
from provenance.storage import SQLiteStorage
from provenance.verify.verifier import LedgerVerifier

app = typer.Typer(
    name="provenance",
    help="Record and inspect item custody on an append-only provenance ledger",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

DbOption = typer.Option(None, "--db", help="Path to SQLite database (overrides PROVENANCE_DB_PATH env var)")
ActorOption = typer.Option(..., "--as", envvar="PROVENANCE_ACTOR", help="Identity performing the operation")


def open_ledger(db: Optional[Path], administrator: Optional[str] = None, create: bool = False) -> CustodyLedger:
    try:
        config = LedgerConfig.from_env(db)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    db_path = config.db_path

    if not create and not db_path.exists():
        console.print(f"[red]Database file not found: {db_path}[/]")
        console.print("[yellow]To get started:[/]")
        console.print("  • Initialise a ledger: provenance init --admin <identity>")
        console.print("  • Set env var: export PROVENANCE_DB_PATH=/path/to/ledger.db")
        console.print("  • Or use --db: provenance items --db /custom/path.db")
        raise typer.Exit(1)

    sink = LoggingSink()
    if config.events_path:
        sink = FanoutSink(sink, JsonlSink(config.events_path))

    try:
        storage = SQLiteStorage(db_path)
    except Exception as e:
        console.print(f"[red]Failed to open database: {str(e)}[/]")
        console.print("[yellow]The file may be corrupted or not a valid SQLite DB.[/]")
        raise typer.Exit(1)

    try:
        return CustodyLedger(
            storage,
            administrator=administrator,
            sink=sink,
            checkpoint_policy=config.checkpoint_policy,
        )
    except LedgerError:
        storage.close()
        console.print("[red]Ledger has not been initialised[/]")
        console.print(f"  Database: {db_path}")
        console.print("  Run: provenance init --admin <identity>")
        raise typer.Exit(1)


def fail(error: LedgerError):
    console.print(f"[red]✗ {error.code}: {error}[/]")
    raise typer.Exit(1)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (overrides PROVENANCE_LOG_LEVEL env var)",
    ),
):
    """Manage an append-only item custody ledger."""
    configure_logging(log_level or os.environ.get("PROVENANCE_LOG_LEVEL", "WARNING"))


@app.command()
def init(
    admin: str = typer.Option(..., "--admin", help="Administrator identity of the new ledger"),
    db: Optional[Path] = DbOption,
):
    """Create the ledger database and set its administrator."""
    with open_ledger(db, administrator=admin, create=True) as ledger:
        console.print(f"[green]Ledger ready at {get_db_path(db)}[/]")
        console.print(f"  Administrator: {ledger.administrator}")
        if ledger.administrator != admin:
            console.print("[yellow]  (existing ledger — administrator unchanged)[/]")


@app.command()
def register(
    item_id: str = typer.Argument(..., help="Unique item identifier"),
    description: str = typer.Argument("", help="Free-form description"),
    actor: str = ActorOption,
    db: Optional[Path] = DbOption,
):
    """Register a new item; the caller becomes creator and custodian."""
    with open_ledger(db) as ledger:
        try:
            item = ledger.register(item_id, description, actor)
        except LedgerError as e:
            fail(e)
        console.print(f"[green]✓ Registered '{item.id}' ({item.current_status.value}) by {item.creator}[/]")


@app.command()
def checkpoint(
    item_id: str = typer.Argument(..., help="Item identifier"),
    status: str = typer.Argument(..., help=f"New status: {', '.join(s.value for s in Status)}"),
    location: str = typer.Option("", "--location", "-l", help="Where the item is"),
    note: str = typer.Option("", "--note", "-m", help="Free-form note"),
    actor: str = ActorOption,
    db: Optional[Path] = DbOption,
):
    """Append a status checkpoint to an item's history."""
    with open_ledger(db) as ledger:
        try:
            cp = ledger.append_checkpoint(item_id, status, location, note, actor)
        except LedgerError as e:
            fail(e)
        console.print(f"[green]✓ '{item_id}' is now {cp.status.value} (entry #{cp.sequence})[/]")


@app.command()
def transfer(
    item_id: str = typer.Argument(..., help="Item identifier"),
    new_custodian: str = typer.Argument(..., help="Identity taking custody"),
    actor: str = ActorOption,
    db: Optional[Path] = DbOption,
):
    """Hand custody of an item to another identity."""
    with open_ledger(db) as ledger:
        try:
            item = ledger.transfer_ownership(item_id, new_custodian, actor)
        except LedgerError as e:
            fail(e)
        console.print(f"[green]✓ '{item.id}' transferred from {actor} to {item.current_custodian}[/]")


@app.command()
def deactivate(
    item_id: str = typer.Argument(..., help="Item identifier"),
    actor: str = ActorOption,
    db: Optional[Path] = DbOption,
):
    """Deactivate an item; its history stays readable."""
    with open_ledger(db) as ledger:
        try:
            ledger.deactivate(item_id, actor)
        except LedgerError as e:
            fail(e)
        console.print(f"[green]✓ '{item_id}' deactivated[/]")


@app.command()
def authorize(
    participant: str = typer.Argument(..., help="Identity to authorize"),
    actor: str = ActorOption,
    db: Optional[Path] = DbOption,
):
    """Allow an identity to record checkpoints (administrator only)."""
    with open_ledger(db) as ledger:
        try:
            ledger.authorize(participant, actor)
        except LedgerError as e:
            fail(e)
        console.print(f"[green]✓ {participant} authorized[/]")


@app.command()
def revoke(
    participant: str = typer.Argument(..., help="Identity to revoke"),
    actor: str = ActorOption,
    db: Optional[Path] = DbOption,
):
    """Withdraw an identity's authorization (administrator only)."""
    with open_ledger(db) as ledger:
        try:
            ledger.revoke(participant, actor)
        except LedgerError as e:
            fail(e)
        console.print(f"[green]✓ {participant} revoked[/]")


@app.command("transfer-admin")
def transfer_admin(
    new_admin: str = typer.Argument(..., help="Identity of the new administrator"),
    actor: str = ActorOption,
    db: Optional[Path] = DbOption,
):
    """Hand the ledger administration to another identity."""
    with open_ledger(db) as ledger:
        try:
            ledger.transfer_administration(new_admin, actor)
        except LedgerError as e:
            fail(e)
        console.print(f"[green]✓ Administration transferred from {actor} to {new_admin}[/]")


@app.command()
def item(
    item_id: str = typer.Argument(..., help="Item identifier"),
    db: Optional[Path] = DbOption,
):
    """Show the current state of an item."""
    with open_ledger(db) as ledger:
        try:
            it = ledger.get_item(item_id)
        except LedgerError as e:
            fail(e)

    table = Table(title=f"Item {it.id}", show_header=False)
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Description", it.description or "—")
    table.add_row("Creator", it.creator)
    table.add_row("Custodian", it.current_custodian)
    table.add_row("Status", it.current_status.value)
    table.add_row("Active", "yes" if it.active else "[red]no[/]")
    table.add_row("Created", it.created_at)
    console.print(table)


@app.command()
def items(
    db: Optional[Path] = DbOption,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum number of items to list"),
    offset: int = typer.Option(0, "--offset", help="Skip this many items"),
):
    """List registered items."""
    with open_ledger(db) as ledger:
        total = ledger.count_items()
        try:
            listed = ledger.list_items(offset, limit)
        except ValueError as e:
            console.print(f"[red]Invalid paging: {e}[/]")
            raise typer.Exit(1)

    if not listed:
        console.print("[yellow]No items found in ledger.[/]")
        return

    table = Table(title=f"Registered Items ({total})")
    table.add_column("Item ID")
    table.add_column("Status")
    table.add_column("Custodian")
    table.add_column("Active")
    table.add_column("Created")

    for it in listed:
        table.add_row(it.id, it.current_status.value, it.current_custodian, "yes" if it.active else "no", it.created_at)

    console.print(table)


@app.command()
def history(
    item_id: str = typer.Argument(..., help="Item identifier"),
    db: Optional[Path] = DbOption,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Number of entries to show"),
    offset: int = typer.Option(0, "--offset", help="Skip this many entries"),
):
    """Show the checkpoint history of an item, oldest first."""
    with open_ledger(db) as ledger:
        try:
            view = ledger.get_history(item_id)
        except LedgerError as e:
            fail(e)
        try:
            entries = view.page(offset, limit)
        except ValueError as e:
            console.print(f"[red]Invalid paging: {e}[/]")
            raise typer.Exit(1)

        for cp in entries:
            console.print(f"[bold cyan]{cp.sequence:4d} | {cp.timestamp} | {cp.kind.value.upper():10} | {cp.status.value:10} | {cp.actor}[/]")
            details = [f"custodian={cp.custodian}"]
            if cp.location:
                details.append(f"location={cp.location}")
            if cp.note:
                details.append(f"note={cp.note[:120]}{'...' if len(cp.note) > 120 else ''}")
            console.print("  " + "  ".join(details))
            console.print("  " + "─" * 90)
        console.print(f"Showing {len(entries)} of {len(view)} entries")


@app.command()
def holdings(
    holder: str = typer.Argument(..., help="Identity to look up"),
    db: Optional[Path] = DbOption,
):
    """List every item an identity has created or received."""
    with open_ledger(db) as ledger:
        ids = ledger.get_items_of(holder)

    if not ids:
        console.print(f"[yellow]No items recorded for '{holder}'[/]")
        return
    for item_id in ids:
        console.print(item_id)


@app.command()
def participants(
    db: Optional[Path] = DbOption,
):
    """Show the administrator and authorized participants."""
    with open_ledger(db) as ledger:
        console.print(f"Administrator: [bold]{ledger.administrator}[/]")
        members = ledger.participants()
    if not members:
        console.print("[yellow]No authorized participants.[/]")
    for member in members:
        console.print(f"  • {member}")


@app.command()
def verify(
    item_id: Optional[str] = typer.Argument(None, help="Item to verify (default: whole ledger)"),
    db: Optional[Path] = DbOption,
):
    """Verify stored history: hash links, sequence, current state, index."""
    with open_ledger(db) as ledger:
        verifier = LedgerVerifier(ledger.storage)
        if item_id is not None:
            try:
                ledger.get_item(item_id)
            except LedgerError as e:
                fail(e)
            result = verifier.verify_item(item_id)
        else:
            result = verifier.verify_all()

    target = f"item '{item_id}'" if item_id else "ledger"
    if result.is_valid:
        console.print(f"[green]✓ {target.capitalize()} is valid[/]")
        console.print(f"  {result.message} ({result.checked_items} items checked)")
    else:
        console.print(f"[red]✗ Verification failed for {target}[/]")
        for failure in result.failures:
            console.print(f"  • {failure.item_id}[{failure.index}] {failure.category}: {failure.message}")
        raise typer.Exit(1)


@app.command()
def export(
    item_id: str = typer.Argument(..., help="Item to export"),
    db: Optional[Path] = DbOption,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file (default: <item_id>.jsonl)"),
):
    """Export an item's history as JSONL (one checkpoint per line)."""
    with open_ledger(db) as ledger:
        try:
            view = ledger.get_history(item_id)
        except LedgerError as e:
            fail(e)

        out_path = output or Path(f"{item_id}.jsonl")
        count = 0
        with open(out_path, "w", encoding="utf-8") as f:
            for cp in view:
                json.dump(cp.to_dict(), f, separators=(",", ":"))
                f.write("\n")
                count += 1

    console.print(f"[green]Exported {count} checkpoints to {out_path}[/]")
    console.print("Format: JSONL — one hash-linked checkpoint per line")


if __name__ == "__main__":
    app()
