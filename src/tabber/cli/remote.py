"""CLI: tabber show|diff|prune"""

import json
from pathlib import Path
from typing import Any, Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from tabber.codec import decode
from tabber.diff import session_diff
from tabber.errors import RemoteStoreError
from tabber.models.session import Session
from tabber.models.tab import Tab

console = Console()


def _get_store(config_path: Path, url: Optional[str] = None):
    from tabber.cli.main import _get_store
    return _get_store(config_path, url)


def _run(coro):
    from tabber.cli.main import _run
    return _run(coro)


async def _fetch(config_path: Path, url: Optional[str]) -> dict[str, Any]:
    store = _get_store(config_path, url)
    try:
        return await store.get_all()
    except RemoteStoreError as e:
        raise click.ClickException(str(e))
    finally:
        await store.close()


@click.command("show")
@click.option("--url", default=None, help="Remote store base URL")
@click.option("--json-output", "--json", is_flag=True)
@click.pass_obj
def show_cmd(obj: dict, url: Optional[str], json_output: bool):
    """Print the saved session."""

    async def _show():
        session, obsolete = decode(await _fetch(obj["config_path"], url))
        if json_output:
            click.echo(json.dumps(session.model_dump(mode="json", by_alias=True), indent=2))
            return
        table = Table(title=f"Saved session '{session.description}' (gen {session.generation}, {len(session.tabs)} tabs)")
        table.add_column("#", style="bold")
        table.add_column("Window")
        table.add_column("Active")
        table.add_column("Title")
        table.add_column("URL")
        for pos, tab in enumerate(session.tabs):
            table.add_row(str(pos), str(tab.window_id), "*" if tab.active else "", tab.title, tab.url)
        console.print(table)
        if session.update_time is not None:
            console.print(f"[dim]Last update: {session.time_string()}[/dim]")
        if obsolete:
            console.print(f"[yellow]{len(obsolete)} obsolete keys, run `tabber prune`[/yellow]")

    _run(_show())


def _load_snapshot(path: Path) -> list[Tab]:
    try:
        data = json.loads(path.read_text())
        items = data.get("tabs", []) if isinstance(data, dict) else data
        return [Tab.model_validate(item) for item in items]
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        raise click.ClickException(f"Bad snapshot {path}: {e}")


@click.command("diff")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--url", default=None, help="Remote store base URL")
@click.pass_obj
def diff_cmd(obj: dict, snapshot: Path, url: Optional[str]):
    """Compare a JSON tab snapshot with the saved session."""
    local = Session(generation=0)
    local.set_tabs(_load_snapshot(snapshot))
    local.touch()

    async def _diff():
        remote, _ = decode(await _fetch(obj["config_path"], url))
        diff = session_diff(local, remote)
        if diff.major:
            color = "red" if diff.err else "yellow"
            console.print(f"[{color}]{diff.major}[/{color}]")
        elif diff.minor:
            console.print(f"[cyan]{diff.minor}[/cyan]")
        else:
            console.print("[green]Active and saved sessions are in sync[/green]")

    _run(_diff())


@click.command("prune")
@click.option("--url", default=None, help="Remote store base URL")
@click.pass_obj
def prune_cmd(obj: dict, url: Optional[str]):
    """Delete keys the session codec does not recognize."""

    async def _prune():
        store = _get_store(obj["config_path"], url)
        try:
            _, obsolete = decode(await store.get_all())
            if not obsolete:
                console.print("[green]Nothing to prune.[/green]")
                return
            with console.status("Pruning..."):
                await store.remove(obsolete)
            console.print(f"[green]Removed {len(obsolete)} keys: {', '.join(obsolete)}[/green]")
        except RemoteStoreError as e:
            raise click.ClickException(str(e))
        finally:
            await store.close()

    _run(_prune())
