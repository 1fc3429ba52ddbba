"""Page class for page-level operations using CDP."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from layoutlint.browser.profile import WaitUntil
from layoutlint.dom.scripts import ADD_STYLE_SCRIPT
from layoutlint.exceptions import BrowserError

if TYPE_CHECKING:
    from layoutlint.browser.session import BrowserSession

logger = logging.getLogger(__name__)

# CDP Page.lifecycleEvent names for each wait_until value
LIFECYCLE_EVENT_NAMES: dict[str, str] = {
    'load': 'load',
    'domcontentloaded': 'DOMContentLoaded',
    'networkidle': 'networkIdle',
}

DEFAULT_TIMEOUT_MS = 30_000

_READY_STATE_SCRIPT = """() => document.readyState"""
_FONTS_READY_SCRIPT = """() => (document.fonts ? document.fonts.ready.then(() => true) : true)"""


class Page:
    """One browser tab, driven over a flattened CDP session.

    Everything the linter does to a page goes through ``evaluate``: page
    functions are JavaScript function sources called with a single JSON
    serializable argument.
    """

    def __init__(self, browser_session: BrowserSession, target_id: str, session_id: str):
        self._browser_session = browser_session
        self._target_id = target_id
        self._session_id = session_id
        self._closed = False
        self._loader_id: str | None = None
        self._lifecycle: set[str] = set()
        self._lifecycle_changed = asyncio.Event()

    @property
    def _client(self):
        return self._browser_session.cdp_client

    @property
    def target_id(self) -> str:
        return self._target_id

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def closed(self) -> bool:
        return self._closed

    def on_lifecycle_event(self, event: dict[str, Any]) -> None:
        """Record a Page.lifecycleEvent routed here by the session."""
        if event.get('name') == 'init':
            self._loader_id = event.get('loaderId')
            self._lifecycle.clear()
        elif self._loader_id is None or event.get('loaderId') == self._loader_id:
            self._lifecycle.add(event.get('name', ''))
        self._lifecycle_changed.set()

    async def evaluate(self, page_function: str, arg: Any = None) -> Any:
        """Call a JavaScript function in the page and return its JSON result.

        Args:
            page_function: Function source, e.g. ``(arg) => arg.x + 1``. Async
                functions are awaited.
            arg: JSON serializable argument, omitted when None.

        Returns:
            The returned value, deserialized. undefined becomes None.

        Raises:
            BrowserError: The function threw or the page is closed.
        """
        if self._closed:
            raise BrowserError(f'Page {self._target_id[:8]} is closed')

        if arg is None:
            expression = f'({page_function})()'
        else:
            expression = f'({page_function})({json.dumps(arg)})'

        result = await self._client.send.Runtime.evaluate(
            params={
                'expression': expression,
                'returnByValue': True,
                'awaitPromise': True,
            },
            session_id=self._session_id,
        )

        if 'exceptionDetails' in result:
            details = result['exceptionDetails']
            description = details.get('exception', {}).get('description') or details.get('text', 'unknown error')
            raise BrowserError(f'JavaScript evaluation failed: {description}')

        return result.get('result', {}).get('value')

    async def goto(self, url: str, wait_until: WaitUntil = 'load', timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        """Navigate and wait for a lifecycle event of the new document.

        Raises:
            BrowserError: Navigation failed or did not reach wait_until in time.
        """
        logger.debug(f'Navigating {self._target_id[:8]} to {url}')
        self._lifecycle.clear()
        result = await self._client.send.Page.navigate(params={'url': url}, session_id=self._session_id)
        if result.get('errorText'):
            raise BrowserError(f'Navigation to {url} failed: {result["errorText"]}')
        self._loader_id = result.get('loaderId') or self._loader_id

        try:
            await asyncio.wait_for(self._wait_for_lifecycle(LIFECYCLE_EVENT_NAMES[wait_until]), timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            raise BrowserError(f'Navigation to {url} did not reach "{wait_until}" within {timeout_ms}ms') from e
        await self.evaluate(_FONTS_READY_SCRIPT)

    async def _wait_for_lifecycle(self, name: str) -> None:
        while name not in self._lifecycle:
            self._lifecycle_changed.clear()
            await self._lifecycle_changed.wait()

    async def wait_for_ready_state(self, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        """Poll document.readyState, for documents not created by a navigation."""

        async def _poll() -> None:
            while await self.evaluate(_READY_STATE_SCRIPT) != 'complete':
                await asyncio.sleep(0.05)
            await self.evaluate(_FONTS_READY_SCRIPT)

        try:
            await asyncio.wait_for(_poll(), timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            raise BrowserError(f'Document did not finish loading within {timeout_ms}ms') from e

    async def set_content(self, html: str, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        """Replace the document of the main frame with html."""
        tree = await self._client.send.Page.getFrameTree(session_id=self._session_id)
        frame_id = tree['frameTree']['frame']['id']
        await self._client.send.Page.setDocumentContent(
            params={'frameId': frame_id, 'html': html},
            session_id=self._session_id,
        )
        await self.wait_for_ready_state(timeout_ms)

    async def add_init_script(self, source: str) -> str:
        """Run source in every new document before its own scripts."""
        result = await self._client.send.Page.addScriptToEvaluateOnNewDocument(
            params={'source': source},
            session_id=self._session_id,
        )
        return result['identifier']

    async def add_style_tag(self, css: str) -> None:
        await self.evaluate(ADD_STYLE_SCRIPT, css)

    async def set_viewport(self, width: int, height: int, device_scale_factor: float = 1.0) -> None:
        await self._client.send.Emulation.setDeviceMetricsOverride(
            params={
                'width': width,
                'height': height,
                'deviceScaleFactor': device_scale_factor,
                'mobile': False,
            },
            session_id=self._session_id,
        )

    async def get_url(self) -> str:
        result = await self._client.send.Target.getTargetInfo(params={'targetId': self._target_id})
        return result['targetInfo'].get('url', '')

    async def close(self) -> None:
        if self._closed:
            return
        await self._browser_session.close_page(self._target_id)

    def __repr__(self) -> str:
        return f'Page(target_id={self._target_id[:8]}...)'
