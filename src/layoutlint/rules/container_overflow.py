"""Child elements escaping the box of their parent container."""

from typing import Any

from layoutlint.dom import geometry
from layoutlint.dom.views import ElementNode, LayoutSnapshot, Rect
from layoutlint.engine.views import RelationReport, ViolationReport
from layoutlint.rules.base import RuleMeta, SnapshotRule
from layoutlint.rules.registry import builtin_rules

CLIPPING_THRESHOLD = 1
VISIBLE_OVERFLOW_THRESHOLD = 20
NEGATIVE_MARGIN_TOLERANCE = 2
SYMMETRY_TOLERANCE = 2
OFFSCREEN_OFFSET = -500

SIDES = ('top', 'right', 'bottom', 'left')

_LAYOUT_DISPLAYS = frozenset({'flex', 'inline-flex', 'grid', 'inline-grid'})
_OUT_OF_FLOW_POSITIONS = frozenset({'absolute', 'fixed', 'sticky'})


def _is_layout_container(el: ElementNode) -> bool:
    """Flex/grid, explicitly sized or max-size constrained."""
    style = el.style
    if style.display in _LAYOUT_DISPLAYS:
        return True
    if el.explicit_width or el.explicit_height:
        return True
    return style['max-width'] not in ('', 'none') or style['max-height'] not in ('', 'none')


def _is_offscreen(el: ElementNode) -> bool:
    style = el.style
    return (
        style.px('top') <= OFFSCREEN_OFFSET
        or style.px('left') <= OFFSCREEN_OFFSET
        or el.rect.left <= OFFSCREEN_OFFSET
    )


def _overflow(container: Rect, child: Rect) -> dict[str, float]:
    return {
        'top': max(0.0, container.top - child.top),
        'right': max(0.0, child.right - container.right),
        'bottom': max(0.0, child.bottom - container.bottom),
        'left': max(0.0, container.left - child.left),
    }


def _explained_by_negative_margins(child: ElementNode, overflow: dict[str, float], threshold: float) -> bool:
    """Every overflowing side is accounted for by a negative margin on that side."""
    any_negative = False
    for side in SIDES:
        if overflow[side] <= threshold:
            continue
        margin = child.style.px(f'margin-{side}')
        if margin >= 0:
            return False
        any_negative = True
        if overflow[side] > -margin + NEGATIVE_MARGIN_TOLERANCE:
            return False
    return any_negative


def format_overflow(overflow: dict[str, float], threshold: float) -> str:
    return ', '.join(
        f'{geometry.round_half_up(overflow[side])}px {side}' for side in SIDES if overflow[side] > threshold
    )


def find_container_overflow(snapshot: LayoutSnapshot) -> list[ViolationReport]:
    violations = []

    for el in snapshot.in_scope():
        if not el.is_html or not geometry.is_visible(el):
            continue
        if el.rect.width <= 0 or el.rect.height <= 0:
            continue
        if el.style.position in _OUT_OF_FLOW_POSITIONS:
            continue

        parent = el.parent
        if parent is None or not parent.is_html:
            continue
        if parent.tag in ('body', 'html'):
            continue
        if not geometry.is_visible(parent):
            continue
        if parent.rect.width <= 0 or parent.rect.height <= 0:
            continue

        if geometry.has_text_overflow_ellipsis(parent) or geometry.has_text_overflow_ellipsis(el):
            continue
        if geometry.is_intentionally_clipped(parent):
            continue
        if _is_offscreen(el):
            continue

        clips_x, clips_y = geometry.overflow_clip_axes(parent.style)
        parent_clips = clips_x or clips_y
        visible_overflow = parent.style.overflow_x == 'visible' and parent.style.overflow_y == 'visible'

        if parent_clips:
            threshold = CLIPPING_THRESHOLD
        elif visible_overflow and _is_layout_container(parent):
            threshold = VISIBLE_OVERFLOW_THRESHOLD
        else:
            continue

        ancestors = geometry.get_clipping_ancestors(parent)
        parent_box = geometry.clip_rect_by_ancestors(parent.rect, ancestors)
        child_box = geometry.clip_rect_by_ancestors(el.rect, ancestors)
        if parent_box is None or child_box is None:
            continue

        overflow = _overflow(parent_box, child_box)
        if not any(overflow[side] > threshold for side in SIDES):
            continue

        if _explained_by_negative_margins(el, overflow, threshold):
            continue

        if visible_overflow and (
            overflow['left'] > CLIPPING_THRESHOLD
            and overflow['right'] > CLIPPING_THRESHOLD
            and abs(overflow['left'] - overflow['right']) <= SYMMETRY_TOLERANCE
        ):
            continue

        violations.append(
            ViolationReport(
                message=f'Element overflows its container by {format_overflow(overflow, threshold)}',
                element=el,
                relations=[RelationReport(description='Container', element=parent)],
            )
        )

    return violations


@builtin_rules.register
class ContainerOverflowRule(SnapshotRule):
    name = 'container-overflow'
    meta = RuleMeta(
        severity='error',
        description='Detects child elements that overflow their parent container',
        recommended=True,
    )

    def detect(self, snapshot: LayoutSnapshot, options: Any) -> list[ViolationReport]:
        return find_container_overflow(snapshot)
