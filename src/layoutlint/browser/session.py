"""Event-driven browser session.

BrowserSession owns the browser process (through LocalBrowserWatchdog) and the
root CDP connection, and hands out Page objects, one per tab. Lifecycle steps
are bubus events so the launch and teardown logic lives in watchdogs.

Example:
    >>> session = BrowserSession(browser_profile=BrowserProfile(headless=True))
    >>> await session.start()
    >>> page = await session.new_page()
    >>> await page.goto('https://example.com')
    >>> await session.stop(force=True)
"""

import asyncio
import logging
from typing import Any, Optional

import httpx
from bubus import EventBus
from cdp_use import CDPClient
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from layoutlint.browser.events import (
    BrowserLaunchEvent,
    BrowserLaunchResult,
    BrowserStartEvent,
    BrowserStopEvent,
)
from layoutlint.browser.page import Page
from layoutlint.browser.profile import BrowserProfile
from layoutlint.exceptions import BrowserError


class BrowserSession(BaseModel):
    """Browser lifecycle and tab management over CDP.

    Attributes:
        event_bus: EventBus carrying the lifecycle events.
        browser_profile: Launch and page settings.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
        extra='forbid',
        revalidate_instances='never',
    )

    event_bus: EventBus = Field(default_factory=EventBus)
    browser_profile: BrowserProfile = Field(default_factory=BrowserProfile)

    _cdp_client_root: CDPClient | None = PrivateAttr(default=None)
    _cdp_url: Optional[str] = PrivateAttr(default=None)
    _logger: Optional[logging.Logger] = PrivateAttr(default=None)
    _process: Optional[asyncio.subprocess.Process] = PrivateAttr(default=None)
    _pages: dict[str, Page] = PrivateAttr(default_factory=dict)
    _watchdogs_attached: bool = PrivateAttr(default=False)
    _local_browser_watchdog: Optional[Any] = PrivateAttr(default=None)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._cdp_url = self.browser_profile.cdp_url

    @property
    def debug_port(self) -> int:
        return self.browser_profile.debug_port

    @property
    def headless(self) -> bool:
        return self.browser_profile.headless

    @property
    def logger(self) -> logging.Logger:
        if self._logger is None:
            self._logger = logging.getLogger('layoutlint.browser_session')
        return self._logger

    @property
    def cdp_url(self) -> str | None:
        return self._cdp_url

    @property
    def cdp_client(self) -> CDPClient:
        """The root CDP client.

        Raises:
            AssertionError: The browser is not connected yet.
        """
        assert self._cdp_client_root is not None, 'CDP client not initialized - browser may not be connected yet'
        return self._cdp_client_root

    @property
    def is_connected(self) -> bool:
        return self._cdp_client_root is not None

    def model_post_init(self, __context) -> None:
        self.event_bus.on(BrowserStartEvent, self.on_BrowserStartEvent)
        self.event_bus.on(BrowserStopEvent, self.on_BrowserStopEvent)

    async def start(self) -> None:
        """Launch (or connect to) the browser.

        Raises:
            BrowserError: Launch or connection failed.
        """
        start_event = self.event_bus.dispatch(BrowserStartEvent())
        await start_event
        await start_event.event_result(raise_if_any=True, raise_if_none=False)

    async def stop(self, force: bool = False) -> None:
        """Disconnect, killing a locally launched browser when force is set."""
        await self.event_bus.dispatch(BrowserStopEvent(force=force))
        await self.event_bus.stop(clear=True, timeout=5)
        self.event_bus = EventBus()
        self._watchdogs_attached = False
        self.model_post_init(None)

    async def on_BrowserStartEvent(self, event: BrowserStartEvent) -> str:
        self.attach_all_watchdogs()

        if not self._cdp_url:
            launch_event = self.event_bus.dispatch(BrowserLaunchEvent())
            await launch_event
            launch_result: BrowserLaunchResult = await launch_event.event_result(
                raise_if_none=True, raise_if_any=True
            )
            self._cdp_url = launch_result.cdp_url

        assert self._cdp_url and '://' in self._cdp_url

        if self._cdp_client_root is None:
            await self.connect(cdp_url=self._cdp_url)
        else:
            self.logger.debug('Already connected to CDP, skipping reconnection')

        return self._cdp_url

    async def on_BrowserStopEvent(self, event: BrowserStopEvent) -> None:
        for target_id in list(self._pages):
            try:
                await self.close_page(target_id)
            except Exception as e:
                self.logger.debug(f'Failed to close page {target_id[:8]} during stop: {e}')

        if self._cdp_client_root is not None:
            await self._cdp_client_root.stop()
        self._cdp_client_root = None
        self._cdp_url = self.browser_profile.cdp_url
        self.logger.debug('Browser session stopped')

    async def connect(self, cdp_url: str | None = None) -> None:
        """Open the root CDP websocket.

        Args:
            cdp_url: Websocket URL, or an http(s) URL whose /json/version
                publishes one.
        """
        self._cdp_url = cdp_url or self._cdp_url
        if not self._cdp_url:
            raise BrowserError('Cannot setup CDP connection without CDP URL')

        if not self._cdp_url.startswith('ws'):
            url = self._cdp_url.rstrip('/')
            if not url.endswith('/json/version'):
                url = url + '/json/version'
            async with httpx.AsyncClient() as client:
                version_info = await client.get(url)
                self._cdp_url = version_info.json()['webSocketDebuggerUrl']

        self.logger.debug(f'Connecting to chromium-based browser via CDP: {self._cdp_url}')
        self._cdp_client_root = CDPClient(self._cdp_url)
        await self._cdp_client_root.start()
        self._cdp_client_root.register.Page.lifecycleEvent(self._on_lifecycle_event)

    async def new_page(self) -> Page:
        """Open a blank tab and attach a CDP session to it."""
        client = self.cdp_client
        created = await client.send.Target.createTarget(params={'url': 'about:blank'})
        target_id = created['targetId']
        attached = await client.send.Target.attachToTarget(params={'targetId': target_id, 'flatten': True})
        session_id = attached['sessionId']

        results = await asyncio.gather(
            client.send.Page.enable(session_id=session_id),
            client.send.Runtime.enable(session_id=session_id),
            client.send.Page.setLifecycleEventsEnabled(params={'enabled': True}, session_id=session_id),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, Exception)]
        if errors:
            raise BrowserError(f'Failed to enable CDP domains for new page: {errors}')

        page = Page(self, target_id, session_id)
        self._pages[target_id] = page
        self.logger.debug(f'Opened page {target_id[:8]}')
        return page

    def _on_lifecycle_event(self, event: dict[str, Any], session_id: str | None) -> None:
        for page in self._pages.values():
            if page.session_id == session_id:
                page.on_lifecycle_event(event)
                return

    async def close_page(self, target_id: str) -> None:
        page = self._pages.pop(target_id, None)
        if page is not None:
            page._closed = True
        if self._cdp_client_root is None:
            return
        await self._cdp_client_root.send.Target.closeTarget(params={'targetId': target_id})

    def attach_all_watchdogs(self) -> None:
        if self._watchdogs_attached:
            return

        from layoutlint.browser.watchdogs.local_browser_watchdog import LocalBrowserWatchdog

        LocalBrowserWatchdog.model_rebuild()
        self._local_browser_watchdog = LocalBrowserWatchdog(event_bus=self.event_bus, browser_session=self)
        self._local_browser_watchdog.attach_to_session()
        self._watchdogs_attached = True
