"""CLI: tabber mode [MODE]"""

from typing import Optional

import click
from rich.console import Console

from tabber.config import JsonConfigStore
from tabber.models.status import Mode, Options

console = Console()


def _run(coro):
    from tabber.cli.main import _run
    return _run(coro)


@click.command("mode")
@click.argument("mode", required=False, type=click.Choice([m.value for m in Mode]))
@click.pass_obj
def mode_cmd(obj: dict, mode: Optional[str]):
    """Show or set the operating mode."""
    store = JsonConfigStore(obj["config_path"])

    async def _mode():
        options = Options.model_validate(await store.get("options") or {})
        if mode is None:
            console.print(f"Mode: [bold]{options.mode.value}[/bold]")
            return
        options.mode = Mode(mode)
        await store.set({"options": options.model_dump(mode="json")})
        console.print(f"[green]Mode set to {mode}.[/green]")

    _run(_mode())
