"""
Window affinity matcher: map one side's windows onto the other's so that
tabs are rehomed into the window that most resembles their old grouping.

Every (source window, target window) pair is scored by comparing all tab
pairs between them:

    +5  same url
    +3  same url and same index
    +1  same url and same active flag

Pairs are then accepted greedily from the highest score down, skipping any
pair whose source or target window is already taken. This is not an optimal
assignment; equal scores keep their encounter order.
"""

import logging
from typing import Sequence

from pydantic import BaseModel, Field

from tabber.models.tab import Tab

logger = logging.getLogger(__name__)

URL_POINTS = 5
INDEX_POINTS = 3
ACTIVE_POINTS = 1


class WindowPair(BaseModel):
    source: int
    target: int
    score: int


class WindowMatch(BaseModel):
    pairs: list[WindowPair] = Field(default_factory=list)
    """All scored pairs, highest score first."""
    mapping: dict[int, int] = Field(default_factory=dict)
    """Accepted target window -> source window."""
    unmatched_targets: list[int] = Field(default_factory=list)
    """Target windows with no source window; these must be created."""


def group_by_window(tabs: Sequence[Tab]) -> dict[int, list[Tab]]:
    groups: dict[int, list[Tab]] = {}
    for tab in tabs:
        groups.setdefault(tab.window_id, []).append(tab)
    return groups


def window_score(tabs1: Sequence[Tab], tabs2: Sequence[Tab]) -> int:
    score = 0
    for tab1 in tabs1:
        for tab2 in tabs2:
            if tab1.url != tab2.url:
                continue
            score += URL_POINTS
            if tab1.index == tab2.index:
                score += INDEX_POINTS
            if tab1.active == tab2.active:
                score += ACTIVE_POINTS
    return score


def match_windows(source_tabs: Sequence[Tab], target_tabs: Sequence[Tab]) -> WindowMatch:
    source_groups = group_by_window(source_tabs)
    target_groups = group_by_window(target_tabs)

    pairs = [
        WindowPair(source=swid, target=twid, score=window_score(stabs, ttabs))
        for swid, stabs in source_groups.items()
        for twid, ttabs in target_groups.items()
    ]
    pairs.sort(key=lambda p: p.score, reverse=True)

    match = WindowMatch(pairs=pairs)
    matched_sources = set()
    for pair in pairs:
        if pair.target in match.mapping or pair.source in matched_sources:
            continue
        logger.debug("Mapping target window %s to source window %s (score %d)", pair.target, pair.source, pair.score)
        match.mapping[pair.target] = pair.source
        matched_sources.add(pair.source)

    match.unmatched_targets = [twid for twid in target_groups if twid not in match.mapping]
    return match
