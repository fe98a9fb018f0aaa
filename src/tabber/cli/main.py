"""
Tabber CLI: `tabber` command.

Commands:
  tabber show            Print the saved session
  tabber diff SNAPSHOT   Compare a JSON tab snapshot with the saved session
  tabber prune           Delete obsolete keys from the remote store
  tabber mode [MODE]     Show or set the operating mode
"""

import asyncio
from pathlib import Path
from typing import Optional

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install tabber[cli]")

from tabber.config import CONFIG_FILE, load_config
from tabber.transport.http import DEFAULT_BASE_URL, HttpRemoteStore

console = Console()


def _get_store(config_path: Path, url: Optional[str] = None) -> HttpRemoteStore:
    cfg = load_config(config_path)
    return HttpRemoteStore(
        base_url=url or cfg.get("remote_url", DEFAULT_BASE_URL),
        token=cfg.get("token"),
    )


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=CONFIG_FILE,
    show_default=True,
    help="Config file",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path):
    """Tabber CLI: inspect and manage the saved browser session."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# Register subcommands from separate modules
from tabber.cli.remote import show_cmd, diff_cmd, prune_cmd
from tabber.cli.mode import mode_cmd

main.add_command(show_cmd)
main.add_command(diff_cmd)
main.add_command(prune_cmd)
main.add_command(mode_cmd)


if __name__ == "__main__":
    main()
