"""
Capability interfaces consumed by the controller.

- TabProvider: the live browser tabs.
- RemoteStore: the key-value store holding the saved session.
- ConfigStore: local persistence for the options.

Listener registration returns a remover callable.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from tabber.models.tab import Tab

TabEventHandler = Callable[[str, dict[str, Any]], None]
RemoteChangeHandler = Callable[[dict[str, dict[str, Any]]], None]
ConfigChangeHandler = Callable[[dict[str, Any]], None]


class TabProvider(ABC):
    """Live browser tabs.

    Tab events are delivered as `handler(event, info)`. For "removed" the info
    carries `tab_id` and `is_window_closing`.
    """

    @abstractmethod
    async def query_all(self) -> list[Tab]:
        """All open tabs, ordered by window then index."""

    @abstractmethod
    async def create(self, seed: dict[str, Any]) -> Tab:
        """Open a tab from `{url, index}`; returns it with its id and window id filled in."""

    @abstractmethod
    async def remove(self, tab_id: int) -> None:
        ...

    @abstractmethod
    async def move(self, tab_id: int, index: int, window_id: Optional[int] = None) -> Tab:
        ...

    @abstractmethod
    async def update(self, tab_id: int, active: bool) -> Tab:
        ...

    @abstractmethod
    async def create_window(self, tab_id: int) -> int:
        """Open a new window seeded with an existing tab; returns the new window id."""

    @abstractmethod
    def add_listener(self, handler: TabEventHandler) -> Callable[[], None]:
        ...


class RemoteStore(ABC):
    @abstractmethod
    async def get_all(self) -> dict[str, Any]:
        ...

    @abstractmethod
    async def set_all(self, record: dict[str, Any]) -> None:
        """Write every key of `record`. Raises RemoteStoreError on failure."""

    @abstractmethod
    async def remove(self, keys: list[str]) -> None:
        ...

    @abstractmethod
    def add_listener(self, handler: RemoteChangeHandler) -> Callable[[], None]:
        """Handlers receive `{key: {"newValue": value}}` for externally applied changes."""


class ConfigStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, items: dict[str, Any]) -> None:
        ...

    def add_listener(self, handler: ConfigChangeHandler) -> Callable[[], None]:
        return lambda: None
