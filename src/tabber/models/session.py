"""
Session model: a versioned snapshot of the open tabs.

A session with `generation == -1` is uninitialized. Local sessions are
touched (generation + 1, new timestamp) on every accepted refresh; remote
sessions are replaced on a successful push or patched key by key when the
remote store reports changes.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from tabber.models.tab import Tab, tabs_to_string

logger = logging.getLogger(__name__)

UNINITIALIZED = -1


def _local_now_ms() -> int:
    """Wall-clock milliseconds in the local timezone (UTC ms shifted by the UTC offset)."""
    now = datetime.now(timezone.utc).astimezone()
    offset = now.utcoffset() or timedelta(0)
    return int((now.timestamp() + offset.total_seconds()) * 1000)


class Session(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str = "default"
    generation: int = UNINITIALIZED
    update_time: Optional[int] = Field(None, alias="updateTime")
    numtabs: int = 0
    tabs: list[Tab] = Field(default_factory=list)

    def touch(self) -> None:
        """Record a local change: bump the generation and refresh the timestamp."""
        self.update_time = _local_now_ms()
        self.generation += 1
        logger.debug("Session gen is now %d", self.generation)

    def set_tabs(self, tabs: list[Tab]) -> None:
        self.tabs = list(tabs)
        self.numtabs = len(self.tabs)

    def copy_session(self) -> "Session":
        clone = self.model_copy(deep=True)
        clone.numtabs = len(clone.tabs)
        return clone

    def time_string(self) -> str:
        """Last touch time for display, or "" if never touched."""
        if self.update_time is None:
            return ""
        # update_time already carries the local offset, so render it as naive UTC
        stamp = datetime.fromtimestamp(self.update_time / 1000, tz=timezone.utc)
        return stamp.replace(tzinfo=None).strftime("%Y-%m-%d %H:%M:%S")

    def is_valid(self) -> bool:
        if self.generation < 0:
            logger.debug("Session has bad generation")
            return False
        if not isinstance(self.update_time, int) or isinstance(self.update_time, bool):
            logger.debug("Session has bad updateTime: %r", self.update_time)
            return False
        if not self.tabs:
            logger.debug("Session has NO tabs")
            return False
        for t, tab in enumerate(self.tabs):
            if tab.index < 0:
                logger.debug("Session tab %d has bad index", t)
                return False
            if not isinstance(tab.url, str):
                logger.debug("Session tab %d has bad url", t)
                return False
            if tab.id < 0:
                logger.debug("Session tab %d has bad id", t)
                return False
        return True

    def describe(self) -> str:
        return (
            f"{self.description} ({self.generation})\n"
            f"Last update: {self.time_string()}\n"
            f"{tabs_to_string(self.tabs)}"
        )

    def log(self, label: str = "") -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s Session: %s", label, self.describe())
