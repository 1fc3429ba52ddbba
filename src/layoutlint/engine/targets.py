"""Targets and the views that load them into a browser page."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, model_validator

from layoutlint.dom.scripts import DISABLE_ANIMATIONS_CSS, FINDER_INIT_SCRIPT

if TYPE_CHECKING:
    from layoutlint.browser.page import Page
    from layoutlint.browser.profile import BrowserProfile
    from layoutlint.browser.session import BrowserSession

logger = logging.getLogger(__name__)


class Target(BaseModel):
    """A page to lint: a URL or a literal HTML document.

    Attributes:
        id: Optional name reported in results.
        url: Address to navigate to.
        html: Document loaded with set_content instead of a navigation.
        scope: Root selectors, body when empty.
        browser: BrowserProfile fields overriding the run-wide profile.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    url: str | None = None
    html: str | None = None
    scope: list[str] = Field(default_factory=list)
    browser: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode='after')
    def _one_source(self) -> Target:
        if (self.url is None) == (self.html is None):
            raise ValueError('a target needs exactly one of url or html')
        return self

    @property
    def display_url(self) -> str:
        if self.url is not None:
            return self.url
        return f'html:{self.id}' if self.id else 'about:blank'

    def view(self) -> View:
        return UrlView() if self.url is not None else HtmlView()


@dataclass
class ViewInstance:
    """A loaded page plus the hooks the engine needs around it.

    reset brings the page back to its freshly loaded state after a rule with
    side effects; close releases the page.
    """

    page: Page
    reset: Callable[[], Awaitable[None]]
    close: Callable[[], Awaitable[None]]


class View(Protocol):
    async def setup(self, session: BrowserSession, target: Target) -> ViewInstance: ...


async def _prepare_page(session: BrowserSession, profile: BrowserProfile) -> Page:
    page = await session.new_page()
    await page.set_viewport(profile.viewport.width, profile.viewport.height, profile.device_scale_factor)
    await page.add_init_script(FINDER_INIT_SCRIPT)
    return page


async def _settle(page: Page, profile: BrowserProfile) -> None:
    if profile.disable_animations:
        await page.add_style_tag(DISABLE_ANIMATIONS_CSS)


class UrlView:
    """Opens a page at the target URL."""

    async def setup(self, session: BrowserSession, target: Target) -> ViewInstance:
        assert target.url is not None
        url = target.url
        profile = session.browser_profile.merged(target.browser)
        page = await _prepare_page(session, profile)

        async def load() -> None:
            await page.goto(url, wait_until=profile.wait_until, timeout_ms=profile.timeout_ms)
            await _settle(page, profile)

        try:
            await load()
        except Exception:
            await page.close()
            raise

        logger.debug(f'Loaded {url} in {page!r}')
        return ViewInstance(page=page, reset=load, close=page.close)


class HtmlView:
    """Loads a literal HTML document into a blank page."""

    async def setup(self, session: BrowserSession, target: Target) -> ViewInstance:
        assert target.html is not None
        html = target.html
        profile = session.browser_profile.merged(target.browser)
        page = await _prepare_page(session, profile)

        async def load() -> None:
            await page.set_content(html, timeout_ms=profile.timeout_ms)
            await _settle(page, profile)

        try:
            await load()
        except Exception:
            await page.close()
            raise

        return ViewInstance(page=page, reset=load, close=page.close)
