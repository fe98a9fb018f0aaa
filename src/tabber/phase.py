"""
Phase sequencer: an asyncio barrier for one phase of external operations.

Usage for one phase:

    seq.init_handler(on_complete)
    seq.do_step(provider.remove, tab_id)     # any number of times
    seq.finalize()                           # no more steps will be submitted
    await seq.wait()                         # optional

`on_complete` fires exactly once, after `finalize()` has been called AND
every submitted step has completed, whatever order the steps finish in.
The same sequencer can be re-armed for the next phase with `init_handler`;
late completions from an earlier phase are ignored.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

StepCallback = Callable[[Any, Any], None]


class PhaseSequencer:
    def __init__(self, name: str = "phase"):
        self._name = name
        self._epoch = 0
        self._pending = 0
        self._more_steps = False
        self._fired = False
        self._on_complete: Optional[Callable[[], None]] = None
        self._step_callback: Optional[StepCallback] = None
        self._step_context: Any = None
        self._done: Optional[asyncio.Future[None]] = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return self._pending

    @property
    def complete(self) -> bool:
        return self._fired

    def init_handler(self, on_complete: Optional[Callable[[], None]] = None) -> None:
        """Start a new phase."""
        self._epoch += 1
        self._pending = 0
        self._more_steps = True
        self._fired = False
        self._on_complete = on_complete
        self._step_callback = None
        self._step_context = None
        self._done = None

    def set_do_step_callback(self, callback: StepCallback, context: Any) -> None:
        """Arm a one-shot callback for the next step completion: `callback(context, result)`."""
        self._step_callback = callback
        self._step_context = context

    def do_step(self, operation: Callable[..., Awaitable[Any]], *args: Any) -> "asyncio.Task[Any]":
        """Submit one asynchronous operation to the current phase."""
        self._pending += 1
        task = asyncio.get_running_loop().create_task(self._run_step(self._epoch, operation, args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_step(self, epoch: int, operation: Callable[..., Awaitable[Any]], args: tuple[Any, ...]) -> Any:
        try:
            result = await operation(*args)
        except Exception as e:
            logger.error(f"{self._name} step {getattr(operation, '__name__', operation)} failed: {e}")
            result = None
        if epoch == self._epoch:
            self._step_done(result)
        else:
            logger.debug("Ignoring completion from an earlier %s", self._name)
        return result

    def _step_done(self, result: Any) -> None:
        if self._step_callback is not None:
            callback, context = self._step_callback, self._step_context
            self._step_callback = None
            self._step_context = None
            try:
                callback(context, result)
            except Exception:
                logger.exception("%s step callback failed", self._name)
        if self._pending > 0:
            self._pending -= 1
        if self._pending == 0 and not self._more_steps:
            self._fire_complete()

    def finalize(self) -> None:
        """Declare that no more steps will be submitted in this phase."""
        self._more_steps = False
        if self._pending == 0:
            self._fire_complete()

    def _fire_complete(self) -> None:
        if self._fired:
            return
        self._fired = True
        logger.debug("%s complete", self._name)
        if self._done is not None and not self._done.done():
            self._done.set_result(None)
        if self._on_complete is not None:
            self._on_complete()

    async def wait(self) -> None:
        """Wait until the current phase has completed."""
        if self._fired:
            return
        if self._done is None:
            self._done = asyncio.get_running_loop().create_future()
        await self._done
