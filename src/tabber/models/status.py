"""
Options and status models exposed to the control surface.
"""

from enum import Enum, IntEnum

from pydantic import BaseModel, Field


class Mode(str, Enum):
    MANUAL = "manual"        # sync only when asked
    AUTOSTART = "autostart"  # restore once at startup
    AUTOSAVE = "autosave"    # autostart + save local changes
    AUTOSYNC = "autosync"    # autosave + apply remote changes


class State(IntEnum):
    ERR = -1
    OK = 0
    WARN = 1


class Options(BaseModel):
    mode: Mode = Mode.AUTOSAVE
    debug: bool = False


class SyncStatus(BaseModel):
    state: State = State.OK
    message: str = ""


class Status(BaseModel):
    options: Options
    sync: SyncStatus = Field(default_factory=SyncStatus)
    remote_timestamp: str = ""
