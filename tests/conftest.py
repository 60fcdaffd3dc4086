"""Fake browser provider shared by the pipeline tests."""

from types import SimpleNamespace
from typing import Any, Optional

import pytest
from pagedistill.browser import Capacity, SessionInfo
from pagedistill.extraction.scripts import DOMDISTILLER_ENTRY_JS, READABILITY_ENTRY_JS

ARTICLE_HTML = '<div><h1>Title</h1><p>Body text.</p><pre class="highlight-source-python">print(1)</pre></div>'


class FakePage:
    """Records what the pipeline asks of the page and returns canned results."""

    def __init__(
        self,
        results: Optional[dict[str, Any]] = None,
        status: Optional[int] = 200,
        goto_error: Optional[BaseException] = None,
    ) -> None:
        self.results = results or {}
        self.status = status
        self.goto_error = goto_error
        self.gotos: list[tuple[str, dict]] = []
        self.scripts: list[dict] = []
        self.evaluated: list[str] = []
        self.handlers: dict[str, Any] = {}

    async def goto(self, url: str, **kwargs: Any) -> Any:
        self.gotos.append((url, kwargs))
        if self.goto_error is not None:
            raise self.goto_error
        if self.status is None:
            return None
        return SimpleNamespace(status=self.status)

    async def add_script_tag(self, **kwargs: Any) -> None:
        self.scripts.append(kwargs)

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.evaluated.append(expression)
        value = self.results.get(expression)
        if isinstance(value, BaseException):
            raise value
        return value

    def on(self, event: str, f: Any) -> None:
        self.handlers[event] = f


class FakeBrowser:
    def __init__(self, page: FakePage, close_error: Optional[Exception] = None) -> None:
        self.page = page
        self.close_error = close_error
        self.close_calls = 0
        self.page_options: list[dict] = []

    async def new_page(self, **kwargs: Any) -> FakePage:
        self.page_options.append(kwargs)
        return self.page

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


class FakeProvider:
    """In-memory provider: sessions, one page, configurable failures."""

    def __init__(
        self,
        sessions: Optional[list[SessionInfo]] = None,
        page: Optional[FakePage] = None,
        connect_error: Optional[Exception] = None,
        launch_error: Optional[Exception] = None,
        capacity: Optional[Capacity] = None,
    ) -> None:
        self.sessions = sessions or []
        self.page = page or FakePage()
        self.connect_error = connect_error
        self.launch_error = launch_error
        self.capacity = capacity or Capacity(allowed=1)
        self.connected: list[str] = []
        self.launches = 0
        self.browsers: list[FakeBrowser] = []

    async def list_sessions(self) -> list[SessionInfo]:
        return list(self.sessions)

    async def connect(self, session_id: str) -> FakeBrowser:
        self.connected.append(session_id)
        if self.connect_error is not None:
            raise self.connect_error
        browser = FakeBrowser(self.page)
        self.browsers.append(browser)
        return browser

    async def launch(self) -> FakeBrowser:
        self.launches += 1
        if self.launch_error is not None:
            raise self.launch_error
        browser = FakeBrowser(self.page)
        self.browsers.append(browser)
        return browser

    async def query_capacity(self) -> Capacity:
        return self.capacity

    @property
    def close_calls(self) -> int:
        return sum(browser.close_calls for browser in self.browsers)


@pytest.fixture
def readability_page():
    """Page where Readability returns an article."""
    return FakePage(results={READABILITY_ENTRY_JS: {"title": "Title", "content": ARTICLE_HTML}})


@pytest.fixture
def distiller_page():
    """Page where DOM Distiller returns its nested result."""
    return FakePage(results={DOMDISTILLER_ENTRY_JS: ["Title", [], ["", ARTICLE_HTML], {"pages": 1}]})


@pytest.fixture
def provider(readability_page):
    """Provider with no existing sessions."""
    return FakeProvider(page=readability_page)
