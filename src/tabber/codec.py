"""
Session codec: flat key/value form of a Session for a remote key-value store.

Layout of an encoded session:

    description, generation, updateTime   scalar session properties
    numtabs                               number of tabs
    Tab_0 .. Tab_<numtabs-1>              one tab object per key

The `tabs` list itself is never stored under a single key. Any other key
found in a remote record is obsolete and reported back so that the caller
can prune it from the store.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from pydantic import ValidationError

from tabber.models.session import Session
from tabber.models.tab import Tab

logger = logging.getLogger(__name__)

SESSION_KEYS_V1 = ("description", "generation", "updateTime")
SESSION_KEYS = SESSION_KEYS_V1
NUMTABS_KEY = "numtabs"
TAB_KEY_PREFIX = "Tab_"

_TAB_KEY_RE = re.compile(r"^Tab_(\d+)$")


def tab_key(position: int) -> str:
    return f"{TAB_KEY_PREFIX}{position}"


def tab_position(key: str) -> Optional[int]:
    """Slot number of a `Tab_<n>` key, or None for any other key."""
    if not isinstance(key, str):
        return None
    m = _TAB_KEY_RE.match(key)
    return int(m.group(1)) if m else None


def is_recognized_key(key: str) -> bool:
    if not isinstance(key, str) or not key:
        return False
    return key in SESSION_KEYS or key == NUMTABS_KEY or tab_position(key) is not None


def encode(session: Session) -> dict[str, Any]:
    record: dict[str, Any] = {
        "description": session.description,
        "generation": session.generation,
        "updateTime": session.update_time,
        NUMTABS_KEY: len(session.tabs),
    }
    for t, tab in enumerate(session.tabs):
        record[tab_key(t)] = tab.to_wire()
    return record


def decode(record: dict[str, Any]) -> tuple[Session, list[str]]:
    """Build a session from a remote record. Returns the session and the obsolete keys.

    Obsolete keys are the ones no session can hold: unknown keys and tab slots
    at or beyond `numtabs`. A known key whose value is malformed is skipped but
    not reported, so pruning never deletes it.
    """
    session = Session(generation=0)
    obsolete: list[str] = []
    rejected = apply_updates(session, record)
    # without a usable count no tab slot can be called stale
    count_known = NUMTABS_KEY not in rejected
    for key in rejected:
        if is_obsolete_key(session, key, count_known):
            obsolete.append(key)
        else:
            logger.warning("Skipping malformed value for %s: %r", key, record[key])
    return session, obsolete


def is_obsolete_key(session: Session, key: str, count_known: bool = True) -> bool:
    if not is_recognized_key(key):
        return True
    position = tab_position(key)
    return count_known and position is not None and position >= session.numtabs


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _set_tab(session: Session, position: int, value: Any) -> bool:
    try:
        tab = value.model_copy() if isinstance(value, Tab) else Tab.model_validate(value)
    except ValidationError as e:
        logger.debug("Rejecting malformed tab %d: %s", position, e)
        return False
    # pad any gap with placeholder tabs; they keep the session invalid until filled
    while len(session.tabs) < position:
        session.tabs.append(Tab())
    if position == len(session.tabs):
        session.tabs.append(tab)
    else:
        session.tabs[position] = tab
    return True


def apply_update(session: Session, key: str, value: Any) -> bool:
    """Apply one remote property to `session`. Returns False if the key is rejected."""
    if not is_recognized_key(key):
        return False
    logger.debug("UPDATING session %s : %r", key, value)

    position = tab_position(key)
    if position is not None:
        if position >= session.numtabs:
            logger.debug("Ignoring outdated tab %d", position)
            return False
        return _set_tab(session, position, value)

    if key == NUMTABS_KEY:
        if not _is_int(value) or value < 0:
            return False
        session.numtabs = value
        if value < len(session.tabs):
            logger.debug("Resetting tabs length to %d", value)
            del session.tabs[value:]
        return True

    if key == "description":
        if not isinstance(value, str):
            return False
        session.description = value
    elif key == "generation":
        if not _is_int(value):
            return False
        session.generation = value
    elif key == "updateTime":
        if value is not None and not _is_int(value):
            return False
        session.update_time = value
    return True


def _update_order(key: str) -> tuple[int, int]:
    position = tab_position(key)
    return (0, 0) if position is None else (1, position)


def apply_updates(session: Session, record: dict[str, Any]) -> list[str]:
    """Apply a whole record, `numtabs` first so stale `Tab_<n>` keys are rejected
    against the final count. Returns the rejected (obsolete) keys."""
    obsolete: list[str] = []
    if NUMTABS_KEY in record:
        if not apply_update(session, NUMTABS_KEY, record[NUMTABS_KEY]):
            obsolete.append(NUMTABS_KEY)
    else:
        logger.debug("Update keeps number of tabs at %d", session.numtabs)

    for key in sorted((k for k in record if k != NUMTABS_KEY), key=_update_order):
        if not apply_update(session, key, record[key]):
            obsolete.append(key)
    return obsolete
