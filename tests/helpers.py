"""Shared builders for tests."""

from tabber.models.session import Session
from tabber.models.tab import Tab


def make_tab(url: str, index: int = 0, id: int = 1, window_id: int = 10, active: bool = False, title: str = "") -> Tab:
    return Tab(url=url, index=index, id=id, window_id=window_id, active=active, title=title or url)


def make_tabs(*urls: str, window_id: int = 10, active: int = 0, first_id: int = 1) -> list[Tab]:
    return [
        make_tab(url, index=i, id=first_id + i, window_id=window_id, active=(i == active))
        for i, url in enumerate(urls)
    ]


def make_session(tabs: list[Tab], generation: int = 1, update_time: int = 1_000) -> Session:
    session = Session(generation=generation, update_time=update_time)
    session.set_tabs([tab.model_copy() for tab in tabs])
    return session
