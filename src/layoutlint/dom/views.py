"""Layout snapshot data structures.

A LayoutSnapshot is a frozen copy of the rendered document: one ElementNode per
element in document order, each carrying its border box, client rects, a subset
of its computed style and the line boxes of its direct text. Detectors work on
snapshots only; the live elements stay in the page and are addressed through
ElementRef handles.

Classes:
    Rect: Axis-aligned rectangle in viewport coordinates.
    ComputedStyle: Read-only view over one element's resolved style.
    TextRun: One direct text child and its per-line client rects.
    ElementRef: Handle to the live element a snapshot node was taken from.
    ElementNode: One element of the snapshot.
    Viewport: Window size and scroll offsets at capture time.
    LayoutSnapshot: The whole captured document.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple


@dataclass(frozen=True, slots=True)
class Rect:
    """Closed axis-aligned rectangle, y grows downward.

    Raises:
        ValueError: If right < left or bottom < top.

    Example:
        >>> Rect.from_xywh(10, 10, 100, 50).area
        5000.0
    """

    left: float
    top: float
    right: float
    bottom: float

    def __post_init__(self):
        if not (self.left <= self.right and self.top <= self.bottom):
            raise ValueError(
                f'Invalid rectangle: left={self.left}, top={self.top}, right={self.right}, bottom={self.bottom}'
            )

    @classmethod
    def from_xywh(cls, x: float, y: float, width: float, height: float) -> Rect:
        """Build a rect from origin and size, clamping negative sizes to 0."""
        return cls(x, y, x + max(0.0, width), y + max(0.0, height))

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center_x(self) -> float:
        return (self.left + self.right) / 2

    @property
    def center_y(self) -> float:
        return (self.top + self.bottom) / 2

    def has_size(self, min_width: float = 1, min_height: float = 1) -> bool:
        return self.width >= min_width and self.height >= min_height

    def intersects(self, other: Rect) -> bool:
        """Strict intersection, rectangles sharing only an edge do not intersect."""
        return not (
            self.right <= other.left
            or other.right <= self.left
            or self.bottom <= other.top
            or other.bottom <= self.top
        )

    def intersection(self, other: Rect) -> Rect | None:
        """Overlapping region, or None when it has no area."""
        left = max(self.left, other.left)
        top = max(self.top, other.top)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return None
        return Rect(left, top, right, bottom)

    def union(self, other: Rect) -> Rect:
        return Rect(
            min(self.left, other.left),
            min(self.top, other.top),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )

    def contains(self, other: Rect) -> bool:
        return (
            self.left <= other.left
            and self.top <= other.top
            and self.right >= other.right
            and self.bottom >= other.bottom
        )

    def contains_point(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    @staticmethod
    def bounding(rects: list[Rect]) -> Rect | None:
        """Union box of a list of rects, None for an empty list."""
        if not rects:
            return None
        box = rects[0]
        for rect in rects[1:]:
            box = box.union(rect)
        return box


class ComputedStyle(Mapping[str, str]):
    """Read-only accessor over one element's resolved style.

    Values are the strings returned by getComputedStyle(); unknown properties
    read as an empty string, the same as CSSStyleDeclaration.getPropertyValue.
    """

    __slots__ = ('_values',)

    def __init__(self, values: Mapping[str, str] | None = None):
        self._values: dict[str, str] = dict(values or {})

    def __getitem__(self, name: str) -> str:
        return self._values.get(name, '')

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f'ComputedStyle({self._values!r})'

    def px(self, name: str) -> float:
        """Numeric value of a length property, 0 when it does not parse."""
        return parse_px(self[name])

    @property
    def display(self) -> str:
        return self['display']

    @property
    def position(self) -> str:
        return self['position'] or 'static'

    @property
    def overflow_x(self) -> str:
        return self['overflow-x'] or 'visible'

    @property
    def overflow_y(self) -> str:
        return self['overflow-y'] or 'visible'

    @property
    def font_size(self) -> float:
        return self.px('font-size') or 16.0

    @property
    def opacity(self) -> float:
        value = self['opacity']
        if not value:
            return 1.0
        try:
            return float(value)
        except ValueError:
            return 1.0


def parse_px(value: str | None) -> float:
    """Parse a CSS pixel length ("12.5px", "0", "-4px") into a float.

    Keywords such as "auto" or "none" and malformed values parse as 0.
    """
    if not value:
        return 0.0
    value = value.strip()
    if value.endswith('px'):
        value = value[:-2]
    try:
        return float(value)
    except ValueError:
        return 0.0


class Namespace(str, Enum):
    """Namespace of an element, used to tell HTML from SVG nodes."""

    HTML = 'html'
    SVG = 'svg'
    OTHER = 'other'


@dataclass(slots=True)
class TextRun:
    """A direct text node child and its per-line client rects."""

    text: str
    rects: list[Rect] = field(default_factory=list)


class ElementRef(NamedTuple):
    """Handle to a live element: the snapshot token and the node index."""

    token: str
    index: int


@dataclass(slots=True, eq=False)
class ElementNode:
    """One element of a layout snapshot.

    Nodes compare by identity, two snapshots of the same element are distinct
    nodes. Parent/children links are filled in by LayoutSnapshot.
    """

    index: int
    tag: str
    namespace: Namespace
    attributes: dict[str, str]
    rect: Rect
    style: ComputedStyle
    client_rects: list[Rect] = field(default_factory=list)
    before_content: str = 'none'
    after_content: str = 'none'
    scroll_width: float = 0.0
    scroll_height: float = 0.0
    client_width: float = 0.0
    client_height: float = 0.0
    has_click_handler: bool = False
    explicit_width: bool = False
    explicit_height: bool = False
    in_scope: bool = True
    text_runs: list[TextRun] = field(default_factory=list)
    token: str = ''
    parent: ElementNode | None = field(default=None, repr=False)
    children: list[ElementNode] = field(default_factory=list, repr=False)

    @property
    def ref(self) -> ElementRef:
        return ElementRef(self.token, self.index)

    @property
    def is_html(self) -> bool:
        return self.namespace is Namespace.HTML

    @property
    def is_svg(self) -> bool:
        return self.namespace is Namespace.SVG

    @property
    def is_renderable(self) -> bool:
        return self.namespace in (Namespace.HTML, Namespace.SVG)

    @property
    def element_id(self) -> str:
        return self.attributes.get('id', '')

    @property
    def classes(self) -> list[str]:
        return self.attributes.get('class', '').split()

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def ancestors(self) -> Iterator[ElementNode]:
        """Parent, grandparent, ... up to the document element."""
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def contains(self, other: ElementNode) -> bool:
        """Node.contains() semantics: true for the node itself and its descendants."""
        if other is self:
            return True
        return any(ancestor is self for ancestor in other.ancestors())

    def descendants(self) -> Iterator[ElementNode]:
        """Descendants in document order."""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def __repr__(self) -> str:
        label = self.tag
        if self.element_id:
            label += f'#{self.element_id}'
        return f'<ElementNode {self.index} {label}>'


@dataclass(frozen=True, slots=True)
class Viewport:
    width: float
    height: float
    scroll_x: float = 0.0
    scroll_y: float = 0.0

    @property
    def rect(self) -> Rect:
        return Rect(0, 0, max(0.0, self.width), max(0.0, self.height))


class LayoutSnapshot:
    """All elements of a document captured in one pass.

    Attributes:
        token: Key under which the page keeps the live nodes.
        viewport: Window geometry at capture time.
        nodes: Elements in document order, documentElement first.
    """

    def __init__(self, token: str, viewport: Viewport, nodes: list[ElementNode]):
        self.token = token
        self.viewport = viewport
        self.nodes = nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[ElementNode]:
        return iter(self.nodes)

    def node(self, index: int) -> ElementNode:
        return self.nodes[index]

    def in_scope(self) -> list[ElementNode]:
        """Scope roots and their descendants, in document order."""
        return [node for node in self.nodes if node.in_scope]

    def query_tag(self, tag: str) -> list[ElementNode]:
        return [node for node in self.nodes if node.tag == tag]

    def find_by_id(self, element_id: str) -> ElementNode | None:
        for node in self.nodes:
            if node.element_id == element_id:
                return node
        return None

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> LayoutSnapshot:
        """Build a snapshot from the JSON returned by the capture script."""
        token = payload.get('token', '')
        vp = payload.get('viewport') or {}
        viewport = Viewport(
            width=float(vp.get('width', 0)),
            height=float(vp.get('height', 0)),
            scroll_x=float(vp.get('scrollX', 0)),
            scroll_y=float(vp.get('scrollY', 0)),
        )
        properties: list[str] = payload.get('properties') or []

        nodes: list[ElementNode] = []
        for raw in payload.get('nodes') or []:
            style_values = raw.get('style') or []
            sizes = raw.get('scroll') or [0, 0, 0, 0]
            explicit = raw.get('explicit') or [False, False]
            node = ElementNode(
                index=int(raw['i']),
                tag=str(raw.get('tag', '')).lower(),
                namespace=_parse_namespace(raw.get('ns')),
                attributes=dict(raw.get('attrs') or {}),
                rect=_rect_from_wire(raw.get('rect')),
                style=ComputedStyle(dict(zip(properties, style_values))),
                client_rects=[_rect_from_wire(r) for r in raw.get('clientRects') or []],
                before_content=raw.get('before') or 'none',
                after_content=raw.get('after') or 'none',
                scroll_width=float(sizes[0]),
                scroll_height=float(sizes[1]),
                client_width=float(sizes[2]),
                client_height=float(sizes[3]),
                has_click_handler=bool(raw.get('click')),
                explicit_width=bool(explicit[0]),
                explicit_height=bool(explicit[1]),
                in_scope=bool(raw.get('inScope', True)),
                text_runs=[
                    TextRun(text=t.get('t', ''), rects=[_rect_from_wire(r) for r in t.get('r') or []])
                    for t in raw.get('text') or []
                ],
                token=token,
            )
            nodes.append(node)

        # Parents always precede their children in document order
        by_index = {node.index: node for node in nodes}
        for raw, node in zip(payload.get('nodes') or [], nodes):
            parent_index = raw.get('p', -1)
            if parent_index is None or parent_index < 0:
                continue
            parent = by_index.get(parent_index)
            if parent is not None:
                node.parent = parent
                parent.children.append(node)

        return cls(token=token, viewport=viewport, nodes=nodes)


def _parse_namespace(value: Any) -> Namespace:
    try:
        return Namespace(value)
    except ValueError:
        return Namespace.OTHER


def _rect_from_wire(value: Any) -> Rect:
    if not value:
        return Rect(0, 0, 0, 0)
    x, y, width, height = (float(v) for v in value)
    return Rect.from_xywh(x, y, width, height)
