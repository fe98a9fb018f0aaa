"""
tabber: keep the open browser tabs in sync with a saved session.

Session codec, diff engine, window matcher, phase sequencer and the
reconciliation controller that drives them.
"""

from tabber.controller import Action, Lifecycle, Tabber
from tabber.codec import decode, encode
from tabber.diff import TabDiff, session_diff, tab_diff, tabset_diff
from tabber.errors import TabberError, OptionsError, RemoteStoreError, ProviderError
from tabber.models.session import Session
from tabber.models.status import Mode, Options, State, Status
from tabber.models.tab import Tab
from tabber.phase import PhaseSequencer
from tabber.windows import match_windows

__version__ = "0.1.0"
__all__ = [
    "Tabber",
    "Action",
    "Lifecycle",
    "Session",
    "Tab",
    "TabDiff",
    "Mode",
    "Options",
    "State",
    "Status",
    "PhaseSequencer",
    "encode",
    "decode",
    "tab_diff",
    "tabset_diff",
    "session_diff",
    "match_windows",
    "TabberError",
    "OptionsError",
    "RemoteStoreError",
    "ProviderError",
]
