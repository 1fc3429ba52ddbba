"""Containers with irregularly distributed empty space around their content.

Only leaf-like containers are analyzed: a few children filling a small share
of the container, or one dominant child. Multi-child layouts usually carry
intentional structure and are left alone.
"""

from __future__ import annotations

from typing import Any

from layoutlint.dom import geometry
from layoutlint.dom.views import ElementNode, LayoutSnapshot, Rect
from layoutlint.engine.views import ViolationReport
from layoutlint.rules.base import RuleMeta, SnapshotRule
from layoutlint.rules.registry import builtin_rules

MIN_CONTAINER_SIZE = 50
MIN_CONTENT_SIZE = 10
IRREGULARITY_RATIO = 6
MIN_GAP_DIFFERENCE = 40
MIN_LARGE_GAP = 60
FLUSH_GAP = 2
LOW_FILL_THRESHOLD = 0.25
TINY_CONTENT_FILL = 0.2
MIN_WASTED_SPACE = 100
MAX_BALANCED_RATIO = 3
MAX_SIMPLE_CHILDREN = 3
MAX_SIMPLE_AREA_RATIO = 0.3
DOMINANT_CHILD_RATIO = 0.5
SIBLING_GAP_MIN = 20
SIBLING_EDGE_SLACK = 10


def _content_children(el: ElementNode) -> list[ElementNode]:
    return [
        child
        for child in el.children
        if child.is_renderable and geometry.is_visible(child) and not (child.rect.width == 0 and child.rect.height == 0)
    ]


def _has_min_size(rect: Rect, size: float) -> bool:
    return rect.width >= size and rect.height >= size


def is_leaf_container(el: ElementNode) -> bool:
    if el.style.display == 'grid':
        return False
    rect = el.rect
    if rect.width == 0 or rect.height == 0:
        return False

    children = _content_children(el)
    if not children:
        return False

    container_area = rect.area
    areas = [child.rect.area for child in children]
    if len(children) <= MAX_SIMPLE_CHILDREN:
        return sum(areas) / container_area < MAX_SIMPLE_AREA_RATIO
    return max(areas) / container_area >= DOMINANT_CHILD_RATIO


def get_children_bounds(el: ElementNode) -> Rect | None:
    return Rect.bounding([child.rect for child in _content_children(el)])


def siblings_filling_gaps(container: ElementNode, gaps: dict[str, float]) -> dict[str, bool]:
    """Which gap regions are occupied by a sibling of the container."""
    filled = dict.fromkeys(gaps, False)
    parent = container.parent
    if parent is None:
        return filled

    box = container.rect
    for sibling in parent.children:
        if sibling is container or not sibling.is_html or not geometry.is_visible(sibling):
            continue
        s = sibling.rect
        if s.width == 0 and s.height == 0:
            continue

        overlaps_x = s.left < box.right and s.right > box.left
        overlaps_y = s.top < box.bottom and s.bottom > box.top

        if gaps['top'] > SIBLING_GAP_MIN and overlaps_x:
            if box.top - gaps['top'] <= s.bottom <= box.top + SIBLING_EDGE_SLACK:
                filled['top'] = True
        if gaps['bottom'] > SIBLING_GAP_MIN and overlaps_x:
            if box.bottom - SIBLING_EDGE_SLACK <= s.top <= box.bottom + gaps['bottom']:
                filled['bottom'] = True
        if gaps['left'] > SIBLING_GAP_MIN and overlaps_y:
            if box.left - gaps['left'] <= s.right <= box.left + SIBLING_EDGE_SLACK:
                filled['left'] = True
        if gaps['right'] > SIBLING_GAP_MIN and overlaps_y:
            if box.right - SIBLING_EDGE_SLACK <= s.left <= box.right + gaps['right']:
                filled['right'] = True

    return filled


def check_axis_irregularity(
    gap_a: float, gap_b: float, side_a: str, side_b: str, filled_a: bool, filled_b: bool
) -> str | None:
    smaller = min(gap_a, gap_b)
    larger = max(gap_a, gap_b)
    if larger < MIN_LARGE_GAP or larger - smaller < MIN_GAP_DIFFERENCE:
        return None

    large_side, small_side = (side_a, side_b) if gap_a > gap_b else (side_b, side_a)
    if filled_a if gap_a > gap_b else filled_b:
        return None

    if smaller <= FLUSH_GAP:
        flush_side, open_side = (side_a, side_b) if gap_a <= FLUSH_GAP else (side_b, side_a)
        return f'content is flush with {flush_side} edge, {geometry.round_half_up(larger)}px gap on {open_side}'

    ratio = larger / smaller
    if ratio < IRREGULARITY_RATIO:
        return None
    return (
        f'{large_side} gap ({geometry.round_half_up(larger)}px) is {ratio:.1f}x larger than '
        f'{small_side} ({geometry.round_half_up(smaller)}px)'
    )


def check_excessive_padding(fill_ratio: float, gap_a: float, gap_b: float, dimension: str) -> str | None:
    if fill_ratio >= LOW_FILL_THRESHOLD:
        return None
    total = gap_a + gap_b
    if total < MIN_WASTED_SPACE:
        return None
    smaller = min(gap_a, gap_b)
    larger = max(gap_a, gap_b)
    if smaller > 0 and larger / smaller > MAX_BALANCED_RATIO:
        return None
    return (
        f'content fills only {geometry.round_half_up(fill_ratio * 100)}% of {dimension} space '
        f'({geometry.round_half_up(total)}px unused)'
    )


def analyze_spacing(container: ElementNode, content: Rect) -> str | None:
    box = container.rect
    fill_h = content.width / box.width
    fill_v = content.height / box.height
    # Small icon or badge in a large area
    if fill_h < TINY_CONTENT_FILL and fill_v < TINY_CONTENT_FILL:
        return None

    gaps = {
        'top': content.top - box.top,
        'right': box.right - content.right,
        'bottom': box.bottom - content.bottom,
        'left': content.left - box.left,
    }
    filled = siblings_filling_gaps(container, gaps)

    horizontal = check_axis_irregularity(gaps['left'], gaps['right'], 'left', 'right', filled['left'], filled['right'])
    vertical = check_axis_irregularity(gaps['top'], gaps['bottom'], 'top', 'bottom', filled['top'], filled['bottom'])

    parts = [part for part in (horizontal, vertical) if part]
    if not horizontal:
        excessive = check_excessive_padding(fill_h, gaps['left'], gaps['right'], 'horizontal')
        if excessive:
            parts.append(excessive)
    if not vertical:
        excessive = check_excessive_padding(fill_v, gaps['top'], gaps['bottom'], 'vertical')
        if excessive:
            parts.append(excessive)

    if not parts:
        return None
    return f'Irregular spacing: {"; ".join(parts)}'


def find_space_misuse(snapshot: LayoutSnapshot) -> list[ViolationReport]:
    violations = []

    for el in snapshot.in_scope():
        if not el.is_html or not geometry.is_visible(el) or not el.children:
            continue
        if not _has_min_size(el.rect, MIN_CONTAINER_SIZE):
            continue
        if not is_leaf_container(el):
            continue

        content = get_children_bounds(el)
        if content is None or not _has_min_size(content, MIN_CONTENT_SIZE):
            continue

        message = analyze_spacing(el, content)
        if message:
            violations.append(ViolationReport(message=message, element=el))

    return violations


@builtin_rules.register
class SpaceMisuseRule(SnapshotRule):
    name = 'space-misuse'
    meta = RuleMeta(
        severity='warn',
        description='Detects containers with irregularly distributed empty space around content',
    )

    def detect(self, snapshot: LayoutSnapshot, options: Any) -> list[ViolationReport]:
        return find_space_misuse(snapshot)
