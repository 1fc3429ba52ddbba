"""Scope roots: the subtrees of the page that rules inspect."""

from __future__ import annotations

import logging

from layoutlint.dom.scripts import RELEASE_SCOPE_SCRIPT, RESOLVE_SCOPE_SCRIPT
from layoutlint.dom.service import ROOT_ID_ATTRIBUTE, PageLike
from layoutlint.exceptions import ScopeResolutionError

logger = logging.getLogger(__name__)


class Scope:
    """Root elements marked in the live page with a root-id attribute.

    Snapshots taken while a scope is active flag every element under one of
    its roots as in scope. With no selectors the document body is the root.
    """

    def __init__(self, page: PageLike, root_ids: list[str], selectors: list[str]):
        self.page = page
        self.root_ids = root_ids
        self.selectors = selectors
        self._disposed = False

    @classmethod
    async def resolve(cls, page: PageLike, selectors: list[str] | None = None) -> Scope:
        """Mark the roots matching selectors.

        Raises:
            ScopeResolutionError: No element matches any selector.
        """
        selectors = [s for s in (selectors or []) if s.strip()]
        root_ids = await page.evaluate(RESOLVE_SCOPE_SCRIPT, {'selectors': selectors, 'attribute': ROOT_ID_ATTRIBUTE})
        if not root_ids:
            wanted = ', '.join(selectors) if selectors else 'body'
            raise ScopeResolutionError(f'Scope resolved to zero root elements (selectors: {wanted})')
        logger.debug(f'Resolved scope with {len(root_ids)} root(s)')
        return cls(page, list(root_ids), selectors)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def query_selector(self) -> str:
        """CSS selector matching the scope roots in the page."""
        return ', '.join(f'[{ROOT_ID_ATTRIBUTE}="{root_id}"]' for root_id in self.root_ids)

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        await self.page.evaluate(RELEASE_SCOPE_SCRIPT, ROOT_ID_ATTRIBUTE)

    def __repr__(self) -> str:
        return f'Scope(roots={len(self.root_ids)}, selectors={self.selectors!r})'
