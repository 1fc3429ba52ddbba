"""Local browser watchdog managing the Chrome subprocess.

Classes:
    LocalBrowserWatchdog: Launches Chrome with CDP debugging enabled and
        terminates it on request.
"""

import asyncio
from pathlib import Path
from typing import Any, ClassVar

import httpx
from bubus import BaseEvent
from playwright.async_api import async_playwright

from layoutlint.browser.events import (
    BrowserKillEvent,
    BrowserLaunchEvent,
    BrowserLaunchResult,
    BrowserStopEvent,
)
from layoutlint.browser.watchdogs.base import BaseWatchdog
from layoutlint.config import CONFIG
from layoutlint.exceptions import BrowserError


class LocalBrowserWatchdog(BaseWatchdog):
    """Manages the local browser subprocess.

    The executable comes from LAYOUTLINT_CHROME_PATH, the profile's
    executable_path, or the Chromium build installed by Playwright, in that
    order.

    Listens to:
        BrowserLaunchEvent: Launches a new browser process.
        BrowserKillEvent: Terminates the browser process.
        BrowserStopEvent: Kills the process when the stop is forced.

    Example:
        >>> watchdog = LocalBrowserWatchdog(event_bus=bus, browser_session=session)
        >>> watchdog.attach_to_session()
        >>> event = bus.dispatch(BrowserLaunchEvent())
        >>> result = await event.event_result()
        >>> result.cdp_url
        'ws://localhost:9222/devtools/browser/...'
    """

    LISTENS_TO: ClassVar[list[type[BaseEvent[Any]]]] = [
        BrowserLaunchEvent,
        BrowserKillEvent,
        BrowserStopEvent,
    ]

    async def on_BrowserLaunchEvent(self, event: BrowserLaunchEvent) -> BrowserLaunchResult:
        """Launch a local browser process.

        Returns:
            BrowserLaunchResult with the CDP websocket URL.

        Raises:
            BrowserError: No executable was found or CDP never came up.
        """
        try:
            self.logger.debug('[LocalBrowserWatchdog] Received BrowserLaunchEvent, launching local browser...')
            process, cdp_url = await self._launch_browser()
            self.browser_session._process = process
            return BrowserLaunchResult(cdp_url=cdp_url)
        except Exception as e:
            self.logger.error(f'[LocalBrowserWatchdog] Exception in on_BrowserLaunchEvent: {e}', exc_info=True)
            raise

    async def on_BrowserKillEvent(self, event: BrowserKillEvent) -> None:
        """Terminate the browser, falling back to kill after 5 seconds."""
        process = self.browser_session._process
        if process is None:
            self.logger.debug('[LocalBrowserWatchdog] No browser process to kill')
            return

        self.logger.debug(f'[LocalBrowserWatchdog] Killing browser process (PID {process.pid})')

        try:
            if process.returncode is None:
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=5.0)
                except asyncio.TimeoutError:
                    self.logger.warning('[LocalBrowserWatchdog] Process did not terminate gracefully, killing')
                    if process.returncode is None:
                        process.kill()
                        await process.wait()
        except ProcessLookupError:
            pass

        self.browser_session._process = None

    async def on_BrowserStopEvent(self, event: BrowserStopEvent) -> None:
        if event.force:
            await self.event_bus.dispatch(BrowserKillEvent())

    async def find_executable(self) -> str:
        """Path of the Chrome binary to launch."""
        profile = self.browser_session.browser_profile
        candidate = CONFIG.LAYOUTLINT_CHROME_PATH or (str(profile.executable_path) if profile.executable_path else None)
        if candidate is None:
            async with async_playwright() as p:
                candidate = p.chromium.executable_path

        if not candidate or not Path(candidate).exists():
            raise BrowserError(
                f'Chrome executable not found at: {candidate}. '
                'Install one with `playwright install chromium` or set LAYOUTLINT_CHROME_PATH.'
            )
        return candidate

    def build_launch_args(self, executable: str) -> list[str]:
        debug_port = self.browser_session.debug_port
        args = [executable, f'--remote-debugging-port={debug_port}', *self.browser_session.browser_profile.get_args()]
        if CONFIG.IN_DOCKER:
            args.extend(['--no-sandbox', '--disable-dev-shm-usage'])
        return args

    async def _launch_browser(self) -> tuple[asyncio.subprocess.Process, str]:
        executable = await self.find_executable()
        self.logger.info(f'[LocalBrowserWatchdog] Using Chrome executable: {executable}')

        process = await asyncio.create_subprocess_exec(
            *self.build_launch_args(executable),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        self.logger.debug(f'[LocalBrowserWatchdog] Chrome process started with PID {process.pid}')

        try:
            cdp_url = await self._wait_for_cdp_ready(self.browser_session.debug_port)
        except BrowserError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        self.logger.debug(f'[LocalBrowserWatchdog] CDP connection ready at {cdp_url}')
        return process, cdp_url

    async def _wait_for_cdp_ready(self, debug_port: int, timeout: int = 20) -> str:
        """Poll /json/version until the browser publishes its websocket URL."""
        version_url = f'http://localhost:{debug_port}/json/version'
        last_error: Exception | None = None

        async with httpx.AsyncClient(timeout=1.0) as client:
            for _ in range(timeout * 4):
                try:
                    response = await client.get(version_url)
                    if response.status_code == 200:
                        ws_url = response.json().get('webSocketDebuggerUrl')
                        if ws_url:
                            return ws_url
                except httpx.HTTPError as e:
                    last_error = e
                await asyncio.sleep(0.25)

        raise BrowserError(f'Failed to connect to CDP after {timeout} seconds: {last_error}')
