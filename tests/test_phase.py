"""Phase sequencer: completion barrier over asynchronous steps."""

import asyncio

import pytest

from tabber.phase import PhaseSequencer


async def _sleep_then(value, delay):
    await asyncio.sleep(delay)
    return value


async def _fail():
    raise RuntimeError("boom")


class TestPhaseSequencer:
    @pytest.mark.asyncio
    async def test_completes_once_after_all_steps(self):
        seq = PhaseSequencer("test")
        fired = []
        seq.init_handler(lambda: fired.append(seq.pending))
        # finish in reverse submission order
        for i, delay in enumerate([0.03, 0.02, 0.01]):
            seq.do_step(_sleep_then, i, delay)
        seq.finalize()
        assert fired == []
        await seq.wait()
        assert fired == [0]
        assert seq.complete
        await asyncio.sleep(0.01)
        assert fired == [0]

    @pytest.mark.asyncio
    async def test_no_completion_before_finalize(self):
        seq = PhaseSequencer()
        fired = []
        seq.init_handler(lambda: fired.append(True))
        await seq.do_step(_sleep_then, 1, 0)
        await asyncio.sleep(0)
        assert fired == []
        assert seq.pending == 0
        seq.finalize()
        assert fired == [True]

    def test_finalize_with_no_steps_fires_immediately(self):
        seq = PhaseSequencer()
        fired = []
        seq.init_handler(lambda: fired.append(True))
        seq.finalize()
        seq.finalize()
        assert fired == [True]

    @pytest.mark.asyncio
    async def test_step_callback_is_one_shot(self):
        seq = PhaseSequencer()
        seen = []
        seq.init_handler()
        seq.set_do_step_callback(lambda ctx, result: seen.append((ctx, result)), "first")
        await seq.do_step(_sleep_then, "a", 0)
        await seq.do_step(_sleep_then, "b", 0)
        seq.finalize()
        await seq.wait()
        assert seen == [("first", "a")]

    @pytest.mark.asyncio
    async def test_failing_step_still_counts(self, caplog):
        seq = PhaseSequencer("failing")
        seen = []
        seq.init_handler()
        seq.set_do_step_callback(lambda ctx, result: seen.append(result), None)
        seq.do_step(_fail)
        seq.finalize()
        await asyncio.wait_for(seq.wait(), timeout=1)
        assert seen == [None]
        assert "boom" in caplog.text

    @pytest.mark.asyncio
    async def test_late_completion_from_earlier_phase_is_ignored(self):
        seq = PhaseSequencer()
        first = []
        second = []
        seq.init_handler(lambda: first.append(True))
        slow = seq.do_step(_sleep_then, "slow", 0.02)
        seq.init_handler(lambda: second.append(True))
        seq.do_step(_sleep_then, "fast", 0.05)
        seq.finalize()
        await slow
        assert seq.pending == 1
        assert second == []
        await seq.wait()
        assert second == [True]
        assert first == []

    @pytest.mark.asyncio
    async def test_wait_after_completion_returns(self):
        seq = PhaseSequencer()
        seq.init_handler()
        seq.finalize()
        await asyncio.wait_for(seq.wait(), timeout=1)
