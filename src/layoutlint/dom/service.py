"""DOM snapshot capture.

DomSnapshotService turns the live page into a LayoutSnapshot with a single
page evaluation, and answers point hit-test queries against the elements of a
snapshot.
"""

import logging
import uuid
from typing import Any, Protocol

from layoutlint.dom.scripts import DISPOSE_SNAPSHOTS_SCRIPT, HIT_TEST_SCRIPT, SNAPSHOT_SCRIPT
from layoutlint.dom.views import LayoutSnapshot

logger = logging.getLogger(__name__)

ROOT_ID_ATTRIBUTE = 'data-layoutlint-root-id'

# Computed style subset captured for every element
STYLE_PROPERTIES: tuple[str, ...] = (
    'display',
    'visibility',
    'opacity',
    'position',
    'float',
    'z-index',
    'overflow-x',
    'overflow-y',
    'text-overflow',
    '-webkit-line-clamp',
    'content-visibility',
    'clip',
    'clip-path',
    'mask-image',
    '-webkit-mask-image',
    'pointer-events',
    'font-size',
    'top',
    'left',
    'width',
    'height',
    'max-width',
    'max-height',
    'flex-direction',
    'margin-top',
    'margin-right',
    'margin-bottom',
    'margin-left',
    'border-top-width',
    'border-right-width',
    'border-bottom-width',
    'border-left-width',
    'border-top-left-radius',
    'border-top-right-radius',
    'border-bottom-right-radius',
    'border-bottom-left-radius',
    'background-color',
    'background-image',
    'box-shadow',
    'outline-width',
    'outline-style',
)


class PageLike(Protocol):
    """Anything that can run a page function with one JSON argument."""

    async def evaluate(self, page_function: str, arg: Any = None) -> Any: ...


class DomSnapshotService:
    """Captures layout snapshots from a page.

    Example:
        >>> service = DomSnapshotService(page)
        >>> snapshot = await service.capture()
        >>> len(snapshot.nodes)
        42
    """

    def __init__(self, page: PageLike, logger: logging.Logger | None = None):
        self.page = page
        self.logger = logger or logging.getLogger(__name__)

    async def capture(self, token: str | None = None) -> LayoutSnapshot:
        """Serialize every element of the document.

        Args:
            token: Key for the live node list kept in the page. A fresh one is
                generated when omitted.

        Returns:
            LayoutSnapshot whose nodes resolve back to the live elements.
        """
        token = token or uuid.uuid4().hex
        payload = await self.page.evaluate(
            SNAPSHOT_SCRIPT,
            {'token': token, 'properties': list(STYLE_PROPERTIES), 'rootAttribute': ROOT_ID_ATTRIBUTE},
        )
        snapshot = LayoutSnapshot.from_wire(payload or {'token': token})
        self.logger.debug(f'Captured layout snapshot {token[:8]} with {len(snapshot)} elements')
        return snapshot

    async def hit_test(self, snapshot: LayoutSnapshot, points: list[tuple[float, float]]) -> list[list[int]]:
        """Element stacks at each point, topmost first, as snapshot indexes.

        Elements created after the snapshot was captured come back as -1.
        """
        if not points:
            return []
        stacks = await self.page.evaluate(
            HIT_TEST_SCRIPT,
            {'token': snapshot.token, 'points': [[x, y] for x, y in points]},
        )
        return [list(stack) for stack in stacks or []]

    async def dispose(self, token: str | None = None) -> None:
        """Release live node lists held by the page, all of them when token is None."""
        await self.page.evaluate(DISPOSE_SNAPSHOTS_SCRIPT, token)
