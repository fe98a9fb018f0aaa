"""Restore executor against the in-memory tab provider."""

import pytest
from helpers import make_session, make_tab, make_tabs

from tabber.models.session import Session
from tabber.restore import RestoreExecutor
from tabber.transport.memory import MemoryTabProvider


def _by_window(provider: MemoryTabProvider) -> list[list[str]]:
    windows: dict[int, list[str]] = {}
    for tab in provider.snapshot():
        windows.setdefault(tab.window_id, []).append(tab.url)
    return list(windows.values())


async def _restore(provider: MemoryTabProvider, remote: Session) -> Session:
    local = Session(generation=1)
    local.set_tabs(await provider.query_all())
    await RestoreExecutor(provider).run(local, remote)
    return local


class TestRestoreExecutor:
    @pytest.mark.asyncio
    async def test_creates_missing_and_removes_excess(self):
        provider = MemoryTabProvider(make_tabs("a", "b", "x", window_id=1))
        remote = make_session(make_tabs("a", "c", "b", window_id=10, active=1))

        local = await _restore(provider, remote)

        tabs = provider.snapshot()
        assert [t.url for t in tabs] == ["a", "c", "b"]
        assert [t.active for t in tabs] == [False, True, False]
        assert ("remove", 3) in provider.calls
        assert [t.url for t in local.tabs] == ["a", "c", "b"]
        assert local.numtabs == 3
        # the created tab got its real id
        assert local.tabs[1].id == tabs[1].id == 4

    @pytest.mark.asyncio
    async def test_creations_are_submitted_in_order(self):
        provider = MemoryTabProvider(make_tabs("a", window_id=1))
        remote = make_session(make_tabs("a", "b", "c", "d", window_id=10))

        local = await _restore(provider, remote)

        creates = [args for name, args in provider.calls if name == "create"]
        assert creates == [{"url": "b", "index": 1}, {"url": "c", "index": 2}, {"url": "d", "index": 3}]
        assert [t.url for t in provider.snapshot()] == ["a", "b", "c", "d"]
        assert len({t.id for t in local.tabs}) == 4

    @pytest.mark.asyncio
    async def test_reorders_within_window(self):
        provider = MemoryTabProvider(make_tabs("c", "a", "b", window_id=1))
        remote = make_session(make_tabs("a", "b", "c", window_id=10, active=2))

        await _restore(provider, remote)

        tabs = provider.snapshot()
        assert [t.url for t in tabs] == ["a", "b", "c"]
        assert [t.index for t in tabs] == [0, 1, 2]
        assert tabs[2].active
        assert not any(name == "create" for name, _ in provider.calls)

    @pytest.mark.asyncio
    async def test_splits_into_new_window(self):
        provider = MemoryTabProvider(make_tabs("a", "b", "c", "d", window_id=1))
        remote = make_session(make_tabs("a", "b", window_id=10) + make_tabs("c", "d", window_id=20, first_id=3))

        local = await _restore(provider, remote)

        assert _by_window(provider) == [["a", "b"], ["c", "d"]]
        assert len(provider.window_ids) == 2
        assert [name for name, _ in provider.calls].count("create_window") == 1
        new_window = provider.window_ids[1]
        assert [t.window_id for t in local.tabs] == [1, 1, new_window, new_window]
        active = {t.url for t in provider.snapshot() if t.active}
        assert active == {"a", "c"}

    @pytest.mark.asyncio
    async def test_merges_windows(self):
        provider = MemoryTabProvider(
            make_tabs("a", "b", window_id=1) + [make_tab("c", index=0, id=3, window_id=2, active=True)]
        )
        remote = make_session(make_tabs("a", "b", "c", window_id=10))

        await _restore(provider, remote)

        assert provider.window_ids == [1]
        assert _by_window(provider) == [["a", "b", "c"]]

    @pytest.mark.asyncio
    async def test_failed_step_does_not_stop_restore(self, caplog):
        provider = MemoryTabProvider(make_tabs("a", "b", window_id=1))
        remote = make_session(make_tabs("a", window_id=10))
        local = Session(generation=1)
        # a tab the provider does not know about; its removal fails
        local.set_tabs(await provider.query_all() + [make_tab("ghost", index=2, id=99, window_id=1)])

        await RestoreExecutor(provider).run(local, remote)

        assert [t.url for t in local.tabs] == ["a"]
        assert [t.url for t in provider.snapshot()] == ["a"]
        assert "No tab with id 99" in caplog.text
