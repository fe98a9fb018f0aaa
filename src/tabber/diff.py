"""
Diff engine: find the most severe difference between two tabs, two tab
lists or two sessions.

Severity levels:
- major: content differs (tab count, window count, URL). Shown as a warning
  (or error when data is missing) and provokes an automatic sync.
- minor: cosmetic difference (active tab). Not shown as a warning but still
  provokes an automatic sync.

Only the first difference found is reported, and a minor difference is only
reported when no major one exists. Tab list descriptions are phrased from the
point of view of the SECOND list: `tabset_diff(local, remote)` with one extra
local tab reads "1 fewer tabs", i.e. the saved session has one fewer.
"""

import logging
from typing import Sequence

from pydantic import BaseModel

from tabber.models.session import UNINITIALIZED, Session
from tabber.models.tab import Tab

logger = logging.getLogger(__name__)

SAVED_SESSION_PREFIX = "Saved session has "


class TabDiff(BaseModel):
    major: str = ""
    minor: str = ""
    err: bool = False

    def __bool__(self) -> bool:
        return bool(self.major or self.minor)


def window_count(tabs: Sequence[Tab]) -> int:
    return len({tab.window_id for tab in tabs})


def tab_diff(tab1: Tab, tab2: Tab) -> TabDiff:
    if tab1.url != tab2.url:
        logger.debug("Tab %r and tab %r have different URLs (%s, %s)", tab1.title, tab2.title, tab1.url, tab2.url)
        return TabDiff(major="different URLs")
    if tab1.active != tab2.active:
        logger.debug("Tab %r and tab %r have different active state", tab1.title, tab2.title)
        return TabDiff(minor="a different active tab")
    return TabDiff()


def _count_diff(count1: int, count2: int, noun: str) -> str:
    if count1 > count2:
        return f"{count1 - count2} fewer {noun}"
    return f"{count2 - count1} more {noun}"


def tabset_diff(tabs1: Sequence[Tab], tabs2: Sequence[Tab]) -> TabDiff:
    if len(tabs1) != len(tabs2):
        return TabDiff(major=_count_diff(len(tabs1), len(tabs2), "tabs"))

    wincnt1 = window_count(tabs1)
    wincnt2 = window_count(tabs2)
    if wincnt1 != wincnt2:
        return TabDiff(major=_count_diff(wincnt1, wincnt2, "windows"))

    result = TabDiff()
    for tab1, tab2 in zip(tabs1, tabs2):
        diff = tab_diff(tab1, tab2)
        if diff.major:
            return diff
        if diff.minor and not result.minor:
            result.minor = diff.minor
    return result


def session_diff(local: Session, remote: Session) -> TabDiff:
    """Compare the local and remote sessions.

    Side effects: marks an empty side as uninitialized, breaks a generation
    tie when a difference is found, and reconciles generation and update time
    when the sessions match.
    """
    logger.debug("Checking for session diffs...")
    local.log("Local")
    remote.log("Remote")

    if local.generation < 0 or not local.tabs:
        local.generation = UNINITIALIZED
        result = TabDiff(major="Local browser not initialized yet", err=True)
        logger.debug(result.major)
        return result
    if remote.generation < 0:
        result = TabDiff(major="No saved session found", err=True)
        logger.debug(result.major)
        return result
    if not remote.tabs:
        remote.generation = UNINITIALIZED
        result = TabDiff(major="No saved tabs found")
        logger.debug(result.major)
        return result

    diff = tabset_diff(local.tabs, remote.tabs)
    if diff:
        result = TabDiff()
        if diff.major:
            result.major = SAVED_SESSION_PREFIX + diff.major
        else:
            result.minor = SAVED_SESSION_PREFIX + diff.minor
        if local.generation == remote.generation:
            local.generation += 1
        return result

    if local.generation != remote.generation:
        local.generation = remote.generation
        logger.debug("Rebased local session to gen %d", local.generation)

    if local.update_time != remote.update_time:
        times = [t for t in (local.update_time, remote.update_time) if t is not None]
        local.update_time = remote.update_time = max(times)
        logger.debug("Resolved update time: %s", local.time_string())

    logger.debug("Active and saved sessions are in sync")
    return TabDiff()
