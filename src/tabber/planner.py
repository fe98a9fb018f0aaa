"""
Restore planning: compute the tab operations that make the local tab list
match the remote one.

Planning is synchronous and touches nothing but the in-memory tab lists: each
`plan_*` generator updates the local list the way the browser will look once
its steps are carried out, and yields the steps as plain data. Consume each
generator fully before planning the next phase; the executor in
`tabber.restore` carries the steps out against a tab provider.
"""

import logging
from typing import Iterator, Literal, Optional, Union

from pydantic import BaseModel

from tabber.diff import tab_diff
from tabber.models.tab import Tab
from tabber.windows import match_windows

logger = logging.getLogger(__name__)


class CreateTab(BaseModel):
    kind: Literal["create_tab"] = "create_tab"
    position: int
    url: str
    title: str = ""
    active: bool = False

    def seed(self) -> dict[str, object]:
        return {"url": self.url, "index": self.position}


class RemoveTab(BaseModel):
    kind: Literal["remove_tab"] = "remove_tab"
    tab_id: int


class CreateWindow(BaseModel):
    kind: Literal["create_window"] = "create_window"
    position: int
    tab_id: int
    remote_window_id: int


class MoveToWindow(BaseModel):
    kind: Literal["move_to_window"] = "move_to_window"
    position: int
    tab_id: int
    remote_window_id: int
    window_id: Optional[int] = None
    """Local target window, or None for the window created for `remote_window_id`."""


class MoveTab(BaseModel):
    kind: Literal["move_tab"] = "move_tab"
    tab_id: int
    index: int


class SetActive(BaseModel):
    kind: Literal["set_active"] = "set_active"
    tab_id: int
    active: bool


PlanStep = Union[CreateTab, RemoveTab, CreateWindow, MoveToWindow, MoveTab, SetActive]


def plan_alignment(local: list[Tab], remote: list[Tab]) -> Iterator[CreateTab]:
    """Line local tabs up with remote tabs by position.

    A local tab matching the remote tab (no major difference) is relocated in
    `local` to the remote position; when none matches, a placeholder is
    inserted there and a `CreateTab` step is yielded for it.
    """
    position = 0
    while position < len(remote):
        rtab = remote[position]
        if position < len(local) and not tab_diff(local[position], rtab).major:
            logger.debug("Tabs at index %d seem to match", position)
            position += 1
            continue

        logger.debug("Tabs at index %d DO NOT match", position)
        for tt in range(position + 1, len(local)):
            if not tab_diff(local[tt], rtab).major:
                logger.debug("Moving tab %d to index %d", tt, position)
                local.insert(position, local.pop(tt))
                break
        else:
            logger.debug("No match for remote tab %d", position)
            local.insert(position, Tab(url=rtab.url, index=position, title=rtab.title, active=rtab.active))
            yield CreateTab(position=position, url=rtab.url, title=rtab.title, active=rtab.active)
        position += 1


def plan_deletes(local: list[Tab], remote: list[Tab]) -> Iterator[RemoveTab]:
    excess = len(local) - len(remote)
    if excess <= 0:
        return
    logger.debug("Removing %d excess local tabs", excess)
    for tab in local[len(remote):]:
        yield RemoveTab(tab_id=tab.id)
    del local[len(remote):]


def plan_window_moves(local: list[Tab], remote: list[Tab]) -> Iterator[Union[CreateWindow, MoveToWindow]]:
    """Rehome every local tab into the local window matched with its remote
    window. A remote window with no local match gets a new window, seeded
    with the first tab that belongs in it."""
    match = match_windows(local, remote)
    created: set[int] = set()
    for position, (ltab, rtab) in enumerate(zip(local, remote)):
        rwid = rtab.window_id
        lwid = match.mapping.get(rwid)
        if lwid is None and rwid not in created:
            created.add(rwid)
            yield CreateWindow(position=position, tab_id=ltab.id, remote_window_id=rwid)
        elif lwid is None:
            yield MoveToWindow(position=position, tab_id=ltab.id, remote_window_id=rwid)
        elif ltab.window_id != lwid:
            logger.debug("Moving tab %d from window %d to %d", ltab.id, ltab.window_id, lwid)
            ltab.window_id = lwid
            yield MoveToWindow(position=position, tab_id=ltab.id, remote_window_id=rwid, window_id=lwid)


def plan_index_moves(local: list[Tab], remote: list[Tab]) -> Iterator[MoveTab]:
    for ltab, rtab in zip(local, remote):
        ltab.index = rtab.index
        yield MoveTab(tab_id=ltab.id, index=rtab.index)


def plan_activation(local: list[Tab], remote: list[Tab]) -> Iterator[SetActive]:
    for ltab, rtab in zip(local, remote):
        ltab.active = rtab.active
        yield SetActive(tab_id=ltab.id, active=rtab.active)
