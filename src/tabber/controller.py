"""
Reconciliation controller: keeps the local tabs and the saved session in step.

Operating modes:
- MANUAL:    nothing happens unless push_local() / pull_remote() is called.
- AUTOSTART: the browser is restored from the saved session once, at start.
- AUTOSAVE:  like AUTOSTART, and local changes are saved automatically.
- AUTOSYNC:  like AUTOSAVE, and remote changes are applied to the browser.

Local tab events are debounced: every event reschedules one pending refresh.
An accepted refresh touches the local session and runs reconcile(), which
diffs the two sessions, sets the status and, depending on mode and which side
is newer, starts the save (push) or restore (pull) pipeline. While a restore
is running, refreshes are not scheduled; the restore reschedules one when it
finishes.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Coroutine, Optional

from pydantic import ValidationError

from tabber.codec import apply_updates, decode, encode
from tabber.diff import session_diff
from tabber.errors import OptionsError, ProviderError, TabberError
from tabber.models.session import Session
from tabber.models.status import Mode, Options, State, Status, SyncStatus
from tabber.providers import ConfigStore, RemoteStore, TabProvider
from tabber.restore import RestoreExecutor

logger = logging.getLogger(__name__)

SYNC_DELAY_S = 4.0
URGENT_SYNC_DELAY_S = 0.5
OK_STATUS = "Tabs saved"
NO_STATUS = "No status information"
OPTIONS_KEY = "options"


class Lifecycle(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class Action(str, Enum):
    NONE = "none"
    DEFER = "defer"
    PUSH = "push"
    PULL = "pull"


class Tabber:
    """Owns both sessions, the options, the busy flags and the refresh timer."""

    def __init__(
        self,
        tabs: TabProvider,
        remote: RemoteStore,
        config: ConfigStore,
        *,
        sync_delay: float = SYNC_DELAY_S,
        urgent_delay: float = URGENT_SYNC_DELAY_S,
    ):
        self._tabs = tabs
        self._remote = remote
        self._config = config
        self._sync_delay = sync_delay
        self._urgent_delay = urgent_delay
        self._executor = RestoreExecutor(tabs)

        self.local_session = Session()
        self.remote_session = Session()
        self.options = Options()
        self.lifecycle = Lifecycle.UNINITIALIZED
        self.sync_in_progress = False
        self.save_in_progress = False

        self._status = SyncStatus(state=State.OK, message="")
        self._pending_refresh: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._removers: list[Callable[[], None]] = []
        self._remote_unread = True

    # -- lifecycle ------------------------------------------------------

    async def start(self) -> None:
        """Load options, read both sessions, reconcile, then start listening for changes."""
        if self.lifecycle is not Lifecycle.UNINITIALIZED:
            logger.error("Duplicate tabber initialization!")
            return
        self.lifecycle = Lifecycle.INITIALIZING

        await self._load_options()
        # failures below leave a session uninitialized; the next refresh retries
        try:
            await self.refresh_local()
        except ProviderError as e:
            logger.error(f"Unable to read local tabs: {e}")
            self._set_status(State.ERR, f"Unable to read local tabs: {e}")
        await self._fetch_remote()
        self.reconcile()

        self.lifecycle = Lifecycle.READY
        self._removers.append(self._tabs.add_listener(self.on_tab_event))
        self._removers.append(self._remote.add_listener(self.on_remote_changed))
        self._removers.append(self._config.add_listener(self.on_config_changed))

    async def _load_options(self) -> None:
        try:
            stored = await self._config.get(OPTIONS_KEY)
        except Exception as e:
            logger.error(f"Unable to read options, using defaults: {e}")
            stored = None
        if stored:
            try:
                self.options = Options.model_validate(stored)
            except ValidationError as e:
                logger.error(f"Ignoring stored options {stored!r}: {e}")
        self._apply_debug(self.options.debug)

    async def close(self) -> None:
        self._cancel_pending_refresh()
        for remove in self._removers:
            remove()
        self._removers.clear()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait for every pipeline started so far (including ones they start)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _fetch_remote(self) -> None:
        try:
            record = await self._remote.get_all()
        except Exception as e:
            logger.error(f"Unable to read saved session: {e}")
            self._set_status(State.ERR, f"Unable to read saved session: {e}")
            return
        self._remote_unread = False
        logger.debug("Object from remote storage: %r", record)
        self.remote_session, obsolete = decode(record)
        if obsolete:
            logger.debug("Removing excess data from remote storage: %s", obsolete)
            try:
                await self._remote.remove(obsolete)
            except Exception as e:
                logger.error(f"Unable to prune obsolete keys {obsolete}: {e}")

    # -- control surface --------------------------------------------------

    async def push_local(self) -> bool:
        """Save the local session to the remote store. Returns True if saved."""
        if self.save_in_progress:
            logger.info("Overlapping push_local call ignored")
            return False
        self.save_in_progress = True
        try:
            try:
                await self._load_local_tabs()
            except ProviderError as e:
                logger.error(f"Unable to read local tabs: {e}")
                self._set_status(State.ERR, f"Unable to save session: {e}")
                return False
            local = self.local_session
            # the pushed session must carry the highest generation
            if local.generation <= self.remote_session.generation:
                local.generation = self.remote_session.generation + 1
            record = encode(local)
            logger.debug("Saving current session to remote storage: %r", record)
            try:
                await self._remote.set_all(record)
            except Exception as e:
                logger.error(f"Unable to save session: {e}")
                self._set_status(State.ERR, f"Unable to save session: {e}")
                return False
            self.remote_session = local.copy_session()
            return True
        finally:
            self.save_in_progress = False

    async def pull_remote(self) -> bool:
        """Make the browser match the remote session. Returns True if a restore ran."""
        remote = self.remote_session
        if remote.generation < 0:
            logger.error("Cannot sync from remote session yet.")
            self._set_status(State.ERR, "Cannot restore: no saved session")
            return False
        if not remote.tabs:
            logger.error("Cannot sync from remote session (0 remote tabs)")
            self._set_status(State.ERR, "Cannot restore: saved session has no tabs")
            return False
        if self.sync_in_progress:
            logger.info("Overlapping pull_remote call ignored")
            return False

        self.sync_in_progress = True
        failure: Optional[ProviderError] = None
        try:
            await self._load_local_tabs()
            await self._executor.run(self.local_session, remote.copy_session())
        except ProviderError as e:
            logger.error(f"Restore aborted: {e}")
            failure = e
        finally:
            logger.debug("Re-enabling change monitor")
            self.sync_in_progress = False
            # pick up local changes that were ignored while restoring
            self.schedule_local_refresh(self._sync_delay)
        if failure is not None:
            self._set_status(State.ERR, f"Unable to restore session: {failure}")
            return False
        return True

    async def set_options(self, mode: Optional[str] = None, debug: Optional[bool] = None) -> None:
        """Change mode and/or debug logging. An unsupported mode raises OptionsError
        and changes nothing."""
        new_mode = None
        if mode is not None:
            try:
                new_mode = Mode(mode)
            except ValueError:
                raise OptionsError(f"Unsupported Tabber operational mode: {mode}", details={"mode": mode})

        if debug is not None:
            logger.debug("Turning debug %s", "ON" if debug else "OFF")
            self.options.debug = bool(debug)
            self._apply_debug(self.options.debug)

        if new_mode is not None:
            self.options.mode = new_mode
            logger.debug("New Tabber mode: %s", new_mode.value)
            # the config store notifies its listeners, which reconciles under the new mode
            await self._config.set({OPTIONS_KEY: self.options.model_dump(mode="json")})

    def get_status(self) -> Status:
        return Status(
            options=self.options.model_copy(),
            sync=self._status.model_copy(),
            remote_timestamp=self.remote_session.time_string(),
        )

    # -- reconciliation ---------------------------------------------------

    def reconcile(self, local_is_newer: Optional[bool] = None) -> Action:
        """Diff the sessions, update the status and start a push or pull if the mode calls for it."""
        local = self.local_session
        remote = self.remote_session
        mode = self.options.mode
        # the first sync of a new local session restores rather than saves
        first_time = local.generation == 1

        if local_is_newer is None:
            force_new_local = mode is Mode.AUTOSAVE and not first_time
            local_is_newer = force_new_local or local.generation >= remote.generation
        logger.debug("Syncing %s update...", "local" if local_is_newer else "remote")

        diff = session_diff(local, remote)
        logger.debug("Got diff report: %r", diff)
        if diff.major:
            self._set_status(State.ERR if diff.err else State.WARN, diff.major)
        elif diff.minor:
            self._set_status(State.OK, diff.minor)
        else:
            self._set_status(State.OK, OK_STATUS)

        if remote.generation < 0 or local.generation < 0:
            logger.debug("Deferring sync until session initialization")
            return Action.DEFER
        if not local.is_valid():
            logger.info("Deferring sync until local session established")
            return Action.DEFER
        if not diff:
            return Action.NONE

        logger.debug(
            "Found differences with local_is_newer=%s (loc.gen=%d, rem.gen=%d)",
            local_is_newer, local.generation, remote.generation,
        )
        if local_is_newer:
            if not first_time and mode in (Mode.AUTOSYNC, Mode.AUTOSAVE):
                self._spawn(self.push_local())
                return Action.PUSH
            return Action.NONE

        if not remote.is_valid():
            logger.debug("No valid remote session found, adopting the local one")
            self.remote_session = local.copy_session()
            return self.reconcile(True)
        if mode is Mode.AUTOSYNC or (first_time and mode in (Mode.AUTOSTART, Mode.AUTOSAVE)):
            self._spawn(self.pull_remote())
            return Action.PULL
        return Action.NONE

    # -- local refresh ------------------------------------------------------

    async def _load_local_tabs(self) -> None:
        try:
            tabs = await self._tabs.query_all()
        except TabberError:
            raise
        except Exception as e:
            raise ProviderError(f"Tab query failed: {e}", operation="query_all") from e
        self.local_session.set_tabs(tabs)
        self.local_session.log("Latest local")

    async def refresh_local(self) -> None:
        """Accept the current browser tabs as a new local generation."""
        await self._load_local_tabs()
        if self.local_session.generation < 0:
            self.local_session.generation = 0
        self.local_session.touch()
        if self.lifecycle is Lifecycle.READY:
            if self._remote_unread:
                logger.info("Retrying read of saved session")
                await self._fetch_remote()
            self.reconcile()

    def schedule_local_refresh(self, delay: Optional[float] = None) -> bool:
        """(Re)schedule the debounced local refresh. Returns False while a restore runs."""
        self._cancel_pending_refresh()
        if self.sync_in_progress:
            return False
        self._set_status(State.WARN, "Local change detected - update pending")
        delay = self._sync_delay if delay is None else delay
        # a new session needs a quick baseline
        if self.local_session.generation < 2:
            delay = min(delay, self._urgent_delay)
        logger.debug("Scheduling update from browser event, with delay = %s", delay)
        self._pending_refresh = asyncio.get_running_loop().call_later(delay, self._fire_refresh)
        return True

    @property
    def refresh_pending(self) -> bool:
        return self._pending_refresh is not None

    def _cancel_pending_refresh(self) -> None:
        if self._pending_refresh is not None:
            self._pending_refresh.cancel()
            self._pending_refresh = None

    def _fire_refresh(self) -> None:
        self._pending_refresh = None
        if self.sync_in_progress:
            return
        self._spawn(self.refresh_local())

    # -- event handlers -----------------------------------------------------

    def on_tab_event(self, event: str, info: Optional[dict[str, Any]] = None) -> None:
        delay = self._sync_delay
        if event == "removed" and (info or {}).get("is_window_closing"):
            delay = self._urgent_delay
        self.schedule_local_refresh(delay)

    def on_remote_changed(self, changes: dict[str, dict[str, Any]]) -> None:
        logger.debug("Remote storage change event: %r", changes)
        # removals carry no newValue; numtabs takes care of trimmed tabs
        record = {key: change["newValue"] for key, change in changes.items() if "newValue" in change}
        obsolete = apply_updates(self.remote_session, record)
        if obsolete:
            logger.debug("Ignored remote keys: %s", obsolete)
        self.reconcile(False)

    def on_config_changed(self, items: dict[str, Any]) -> None:
        if OPTIONS_KEY not in items:
            return
        try:
            self.options = Options.model_validate(items[OPTIONS_KEY])
        except ValidationError as e:
            logger.error(f"Ignoring options change {items[OPTIONS_KEY]!r}: {e}")
            return
        self._apply_debug(self.options.debug)
        self.reconcile()

    # -- helpers ----------------------------------------------------------

    def _set_status(self, state: State, message: Optional[str] = None) -> None:
        self._status = SyncStatus(state=state, message=message or NO_STATUS)
        logger.debug("Setting status %s: %s", state.name, self._status.message)

    @staticmethod
    def _apply_debug(enabled: bool) -> None:
        logging.getLogger("tabber").setLevel(logging.DEBUG if enabled else logging.INFO)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task[Any]":
        async def _guarded() -> Any:
            try:
                return await coro
            except Exception as e:
                logger.error(f"Background sync task failed: {e}")
                return None

        task = asyncio.get_running_loop().create_task(_guarded())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
