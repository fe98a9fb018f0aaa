"""
Tab model: one open browser tab as seen by the tab provider.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Tab(BaseModel):
    """A browser tab. Only `url` and `index` matter to a creation request;
    `id` and `window_id` are assigned by the tab provider."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: str = ""
    index: int = -1
    id: int = -1
    window_id: int = Field(-1, alias="windowId")
    active: bool = False
    title: str = ""

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def tabs_to_string(tabs: list[Tab]) -> str:
    """Human-readable listing, one tab per line, `>` marks the active tab."""
    if not tabs:
        return "Error: NO TABS found in session!\n"
    lines = []
    for tab in tabs:
        marker = ">" if tab.active else " "
        lines.append(f"{marker}({tab.window_id})\t({tab.id}){tab.title}")
    return "\n".join(lines) + "\n"
