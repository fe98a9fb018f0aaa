"""
JSON file config store (default ~/.tabber/config.json).

The file holds the options under "options", plus the CLI's connection
settings ("remote_url", "token").
"""

import json
from pathlib import Path
from typing import Any, Callable, Optional

from tabber.providers import ConfigChangeHandler, ConfigStore

CONFIG_FILE = Path.home() / ".tabber" / "config.json"


def load_config(path: Path = CONFIG_FILE) -> dict:
    try:
        return json.loads(path.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def save_config(cfg: dict, path: Path = CONFIG_FILE) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(cfg, indent=2))


class JsonConfigStore(ConfigStore):
    def __init__(self, path: Path = CONFIG_FILE):
        self._path = Path(path)
        self._handlers: list[ConfigChangeHandler] = []

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str) -> Optional[Any]:
        return load_config(self._path).get(key)

    async def set(self, items: dict[str, Any]) -> None:
        cfg = load_config(self._path)
        cfg.update(items)
        save_config(cfg, self._path)
        for handler in list(self._handlers):
            handler(dict(items))

    def add_listener(self, handler: ConfigChangeHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def remove() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass
        return remove
