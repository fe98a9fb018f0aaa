"""
In-memory tab provider, remote store and config store.

MemoryTabProvider simulates a browser: tabs live in ordered windows, indexes
are renumbered after every change, and every operation notifies listeners
the way a browser's tab events would.
"""

import asyncio
import copy
import logging
from typing import Any, Callable, Optional, Union

from tabber.errors import ProviderError, RemoteStoreError
from tabber.models.tab import Tab
from tabber.providers import (
    ConfigChangeHandler,
    ConfigStore,
    RemoteChangeHandler,
    RemoteStore,
    TabEventHandler,
    TabProvider,
)

logger = logging.getLogger(__name__)


def _add(handlers: list[Any], handler: Any) -> Callable[[], None]:
    handlers.append(handler)

    def remove() -> None:
        try:
            handlers.remove(handler)
        except ValueError:
            pass
    return remove


class MemoryTabProvider(TabProvider):
    def __init__(self, tabs: Optional[list[Union[Tab, dict[str, Any]]]] = None):
        self._windows: dict[int, list[Tab]] = {}
        self._handlers: list[TabEventHandler] = []
        self._next_tab_id = 1
        self._next_window_id = 1
        self.calls: list[tuple[str, Any]] = []
        for item in tabs or []:
            tab = item.model_copy() if isinstance(item, Tab) else Tab.model_validate(item)
            if tab.window_id < 0:
                tab.window_id = self._first_window()
            if tab.id < 0:
                tab.id = self._next_tab_id
            self._next_tab_id = max(self._next_tab_id, tab.id + 1)
            self._next_window_id = max(self._next_window_id, tab.window_id + 1)
            self._windows.setdefault(tab.window_id, []).append(tab)
        for window_id in self._windows:
            self._renumber(window_id)

    # -- inspection -------------------------------------------------------

    @property
    def window_ids(self) -> list[int]:
        return list(self._windows)

    def snapshot(self) -> list[Tab]:
        return [tab.model_copy() for tabs in self._windows.values() for tab in tabs]

    # -- helpers ----------------------------------------------------------

    def _first_window(self) -> int:
        if self._windows:
            return next(iter(self._windows))
        window_id = self._next_window_id
        self._next_window_id += 1
        self._windows[window_id] = []
        return window_id

    def _renumber(self, window_id: int) -> None:
        for i, tab in enumerate(self._windows.get(window_id, [])):
            tab.index = i

    def _find(self, tab_id: int) -> tuple[int, int]:
        for window_id, tabs in self._windows.items():
            for i, tab in enumerate(tabs):
                if tab.id == tab_id:
                    return window_id, i
        raise ProviderError(f"No tab with id {tab_id}")

    def _detach(self, tab_id: int) -> tuple[Tab, int, bool]:
        window_id, i = self._find(tab_id)
        tab = self._windows[window_id].pop(i)
        closing = not self._windows[window_id]
        if closing:
            del self._windows[window_id]
        else:
            self._renumber(window_id)
        return tab, window_id, closing

    def _insert(self, tab: Tab, window_id: int, index: int) -> None:
        tabs = self._windows.setdefault(window_id, [])
        if index < 0 or index > len(tabs):
            index = len(tabs)
        tabs.insert(index, tab)
        tab.window_id = window_id
        self._renumber(window_id)

    def _emit(self, event: str, info: dict[str, Any]) -> None:
        for handler in list(self._handlers):
            handler(event, info)

    # -- TabProvider --------------------------------------------------------

    async def query_all(self) -> list[Tab]:
        await asyncio.sleep(0)
        return self.snapshot()

    async def create(self, seed: dict[str, Any]) -> Tab:
        await asyncio.sleep(0)
        self.calls.append(("create", seed))
        tab = Tab(url=seed["url"], id=self._next_tab_id, title=seed.get("title", seed["url"]))
        self._next_tab_id += 1
        self._insert(tab, self._first_window(), seed.get("index", -1))
        self._emit("created", {"tab_id": tab.id})
        return tab.model_copy()

    async def remove(self, tab_id: int) -> None:
        await asyncio.sleep(0)
        self.calls.append(("remove", tab_id))
        _, _, closing = self._detach(tab_id)
        self._emit("removed", {"tab_id": tab_id, "is_window_closing": closing})

    async def move(self, tab_id: int, index: int, window_id: Optional[int] = None) -> Tab:
        await asyncio.sleep(0)
        self.calls.append(("move", (tab_id, index, window_id)))
        tab, old_window, _ = self._detach(tab_id)
        target = old_window if window_id is None else window_id
        if target != old_window and target not in self._windows:
            raise ProviderError(f"No window with id {target}")
        self._insert(tab, target, index)
        if target != old_window:
            self._emit("detached", {"tab_id": tab_id, "window_id": old_window})
            self._emit("attached", {"tab_id": tab_id, "window_id": target})
        else:
            self._emit("moved", {"tab_id": tab_id})
        return tab.model_copy()

    async def update(self, tab_id: int, active: bool) -> Tab:
        await asyncio.sleep(0)
        self.calls.append(("update", (tab_id, active)))
        window_id, i = self._find(tab_id)
        tab = self._windows[window_id][i]
        if active:
            for other in self._windows[window_id]:
                other.active = False
        tab.active = active
        self._emit("activated" if active else "updated", {"tab_id": tab_id})
        return tab.model_copy()

    async def create_window(self, tab_id: int) -> int:
        await asyncio.sleep(0)
        self.calls.append(("create_window", tab_id))
        tab, old_window, _ = self._detach(tab_id)
        window_id = self._next_window_id
        self._next_window_id += 1
        self._insert(tab, window_id, 0)
        self._emit("detached", {"tab_id": tab_id, "window_id": old_window})
        self._emit("attached", {"tab_id": tab_id, "window_id": window_id})
        return window_id

    def add_listener(self, handler: TabEventHandler) -> Callable[[], None]:
        return _add(self._handlers, handler)


class MemoryRemoteStore(RemoteStore):
    """Dict-backed remote store. Set `fail_writes` to a message to make writes fail."""

    def __init__(self, data: Optional[dict[str, Any]] = None):
        self.data: dict[str, Any] = copy.deepcopy(data or {})
        self.fail_writes: Optional[str] = None
        self.removed: list[str] = []
        self._handlers: list[RemoteChangeHandler] = []

    def _notify(self, changes: dict[str, dict[str, Any]]) -> None:
        if not changes:
            return
        for handler in list(self._handlers):
            handler(copy.deepcopy(changes))

    async def get_all(self) -> dict[str, Any]:
        await asyncio.sleep(0)
        return copy.deepcopy(self.data)

    async def set_all(self, record: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise RemoteStoreError(self.fail_writes)
        changes = {}
        for key, value in record.items():
            if self.data.get(key, object()) != value:
                changes[key] = {"oldValue": self.data.get(key), "newValue": copy.deepcopy(value)}
                self.data[key] = copy.deepcopy(value)
        self._notify(changes)

    async def remove(self, keys: list[str]) -> None:
        await asyncio.sleep(0)
        changes = {}
        for key in keys:
            if key in self.data:
                changes[key] = {"oldValue": self.data.pop(key)}
                self.removed.append(key)
        self._notify(changes)

    def add_listener(self, handler: RemoteChangeHandler) -> Callable[[], None]:
        return _add(self._handlers, handler)


class MemoryConfigStore(ConfigStore):
    def __init__(self, items: Optional[dict[str, Any]] = None):
        self.items: dict[str, Any] = copy.deepcopy(items or {})
        self._handlers: list[ConfigChangeHandler] = []

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self.items.get(key))

    async def set(self, items: dict[str, Any]) -> None:
        self.items.update(copy.deepcopy(items))
        for handler in list(self._handlers):
            handler(copy.deepcopy(items))

    def add_listener(self, handler: ConfigChangeHandler) -> Callable[[], None]:
        return _add(self._handlers, handler)
