"""Resolution of snapshot elements to human-readable locations."""

from __future__ import annotations

import logging
from collections import defaultdict

from layoutlint.dom.scripts import HAS_FINDER_SCRIPT, INSTALL_FINDER_SCRIPT, LOCATE_ELEMENTS_SCRIPT
from layoutlint.dom.service import PageLike
from layoutlint.dom.views import ElementNode
from layoutlint.engine.views import ElementDescriptor
from layoutlint.exceptions import FinderRuntimeMissingError

logger = logging.getLogger(__name__)


def describe_node(node: ElementNode, selector: str = '') -> ElementDescriptor:
    """Descriptor built from snapshot data alone, for nodes no longer in the page."""
    return ElementDescriptor(tag_name=node.tag, id=node.element_id, classes=node.classes, selector=selector)


async def ensure_finder(page: PageLike) -> None:
    """Install the selector runtime unless the page already has it."""
    if await page.evaluate(HAS_FINDER_SCRIPT):
        return
    logger.debug('Injecting selector finder runtime')
    await page.evaluate(INSTALL_FINDER_SCRIPT)


class LocationResolver:
    """Turns snapshot nodes into ElementDescriptors with one page query per snapshot."""

    def __init__(self, page: PageLike, url: str | None = None):
        self.page = page
        self.url = url

    async def resolve(self, nodes: list[ElementNode]) -> list[ElementDescriptor]:
        """Descriptors for nodes, in order.

        Raises:
            FinderRuntimeMissingError: The page lost its selector runtime.
        """
        by_token: dict[str, list[int]] = defaultdict(list)
        for position, node in enumerate(nodes):
            by_token[node.token].append(position)

        descriptors: list[ElementDescriptor | None] = [None] * len(nodes)
        for token, positions in by_token.items():
            indexes = [nodes[position].index for position in positions]
            located = await self.page.evaluate(LOCATE_ELEMENTS_SCRIPT, {'token': token, 'indexes': indexes})
            if located is None:
                raise FinderRuntimeMissingError(self.url)

            for position, entry in zip(positions, located):
                node = nodes[position]
                if entry is None:
                    logger.debug(f'{node!r} is no longer attached, using snapshot data for its location')
                    descriptors[position] = describe_node(node)
                else:
                    descriptors[position] = ElementDescriptor.model_validate(entry)

        return [d if d is not None else describe_node(nodes[i]) for i, d in enumerate(descriptors)]
