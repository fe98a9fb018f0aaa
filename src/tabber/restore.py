"""
Restore executor: carry out a restore plan against the tab provider.

Five phases run strictly in order, each gated by the phase sequencer:

1. create/align   open tabs missing locally (one at a time, to learn their ids)
2. delete         close local tabs beyond the remote tab count
3. windows        rehome tabs into their matched (or new) windows
4. index          move every tab to its remote index
5. activate       copy the remote active flags
"""

import logging
from typing import Optional

from tabber.models.session import Session
from tabber.models.tab import Tab
from tabber.phase import PhaseSequencer
from tabber.planner import (
    CreateTab,
    CreateWindow,
    MoveToWindow,
    plan_activation,
    plan_alignment,
    plan_deletes,
    plan_index_moves,
    plan_window_moves,
)
from tabber.providers import TabProvider

logger = logging.getLogger(__name__)


class RestoreExecutor:
    def __init__(self, tabs: TabProvider, sequencer: Optional[PhaseSequencer] = None):
        self._tabs = tabs
        self._seq = sequencer or PhaseSequencer("restore phase")

    async def run(self, local: Session, remote: Session) -> None:
        """Make the browser (and `local`) match `remote`."""
        logger.debug("Syncing local browser from gen %d to %d", local.generation, remote.generation)
        await self._create_and_align(local.tabs, remote.tabs)
        await self._delete(local.tabs, remote.tabs)
        await self._assign_windows(local.tabs, remote.tabs)
        await self._move_indexes(local.tabs, remote.tabs)
        await self._activate(local.tabs, remote.tabs)
        local.numtabs = len(local.tabs)
        logger.debug("Finalizing local session...")

    async def _create_and_align(self, local: list[Tab], remote: list[Tab]) -> None:
        logger.debug("Creating/aligning tabs")
        steps = list(plan_alignment(local, remote))
        self._seq.init_handler()
        # the one-shot step callback must belong to this step, so creations go one at a time
        for step in steps:
            self._seq.set_do_step_callback(self._on_tab_created, (local, step))
            await self._seq.do_step(self._tabs.create, step.seed())
        self._seq.finalize()
        await self._seq.wait()

    @staticmethod
    def _on_tab_created(ctx: tuple[list[Tab], CreateTab], created: Optional[Tab]) -> None:
        local, step = ctx
        if created is None:
            logger.warning("Tab for %s was not created", step.url)
            return
        tab = local[step.position]
        tab.index = created.index
        tab.id = created.id
        tab.window_id = created.window_id
        logger.debug("Created tab at position %d: %r", step.position, tab)

    async def _delete(self, local: list[Tab], remote: list[Tab]) -> None:
        self._seq.init_handler()
        for step in list(plan_deletes(local, remote)):
            self._seq.do_step(self._tabs.remove, step.tab_id)
        self._seq.finalize()
        await self._seq.wait()

    async def _assign_windows(self, local: list[Tab], remote: list[Tab]) -> None:
        logger.debug("Mapping remote and local windows")
        steps = list(plan_window_moves(local, remote))
        new_windows: dict[int, int] = {}
        self._seq.init_handler()

        for step in steps:
            if isinstance(step, CreateWindow):
                self._seq.set_do_step_callback(self._on_window_created, (local, step, new_windows))
                await self._seq.do_step(self._tabs.create_window, step.tab_id)

        for step in steps:
            if not isinstance(step, MoveToWindow):
                continue
            window_id = step.window_id if step.window_id is not None else new_windows.get(step.remote_window_id)
            if window_id is None:
                logger.warning("No local window for remote window %d", step.remote_window_id)
                continue
            local[step.position].window_id = window_id
            self._seq.do_step(self._tabs.move, step.tab_id, 0, window_id)

        self._seq.finalize()
        await self._seq.wait()

    @staticmethod
    def _on_window_created(ctx: tuple[list[Tab], CreateWindow, dict[int, int]], window_id: Optional[int]) -> None:
        local, step, new_windows = ctx
        if window_id is None:
            logger.warning("Window for remote window %d was not created", step.remote_window_id)
            return
        logger.debug("New rem->loc map: %d -> %d", step.remote_window_id, window_id)
        new_windows[step.remote_window_id] = window_id
        local[step.position].window_id = window_id

    async def _move_indexes(self, local: list[Tab], remote: list[Tab]) -> None:
        self._seq.init_handler()
        for step in list(plan_index_moves(local, remote)):
            self._seq.do_step(self._tabs.move, step.tab_id, step.index)
        self._seq.finalize()
        await self._seq.wait()

    async def _activate(self, local: list[Tab], remote: list[Tab]) -> None:
        self._seq.init_handler()
        for step in list(plan_activation(local, remote)):
            self._seq.do_step(self._tabs.update, step.tab_id, step.active)
        self._seq.finalize()
        await self._seq.wait()
