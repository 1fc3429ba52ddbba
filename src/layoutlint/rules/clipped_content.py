"""Content clipped by overflow: hidden or overflow: clip.

scrollWidth/scrollHeight signal the overflow, but they are compared against
the subpixel padding box taken from the bounding rect so integer rounding of
clientWidth/clientHeight does not produce false positives.
"""

from collections.abc import Iterator
from typing import Any

from layoutlint.dom import geometry
from layoutlint.dom.views import ElementNode, LayoutSnapshot
from layoutlint.engine.views import ViolationReport
from layoutlint.rules.base import RuleMeta, SnapshotRule
from layoutlint.rules.registry import builtin_rules

CLIP_THRESHOLD = 1
MIN_TEXT_CLIP_THRESHOLD = 3
NEGATIVE_MARGIN_TOLERANCE = 2
MAX_CHILDREN_FOR_RECT_CHECK = 5
MAX_CHILDREN_FOR_MARGIN_CHECK = 25
MINOR_CROP_MIN_HEIGHT = 48


def _has_media_descendant(el: ElementNode) -> bool:
    return any(node.tag in geometry.MEDIA_TAGS for node in el.descendants())


def _visible_html_children(el: ElementNode) -> Iterator[ElementNode]:
    for child in el.children:
        if child.is_html and geometry.is_visible(child):
            yield child


def _matches_negative_margin_clipping(container: ElementNode, axis: str, clipped_amount: float) -> bool:
    if not container.children:
        return False
    if geometry.get_direct_text_runs(container):
        return False

    for child in container.children[:MAX_CHILDREN_FOR_MARGIN_CHECK]:
        if not child.is_html or not geometry.is_visible(child):
            continue
        if axis == 'x':
            first, second = child.style.px('margin-left'), child.style.px('margin-right')
        else:
            first, second = child.style.px('margin-top'), child.style.px('margin-bottom')
        if first >= 0 and second >= 0:
            continue

        expected = max(0.0, -first) + max(0.0, -second)
        if expected <= 0:
            continue

        close_enough = abs(clipped_amount - expected) <= NEGATIVE_MARGIN_TOLERANCE
        likely_from_margins = clipped_amount <= expected + NEGATIVE_MARGIN_TOLERANCE
        if close_enough or likely_from_margins:
            return True

    return False


def _children_fit(el: ElementNode) -> tuple[bool, bool]:
    """Whether every visible child rect fits the padding box, per axis."""
    clip = geometry.get_padding_box_rect(el)
    fits_x = fits_y = True
    for child in _visible_html_children(el):
        r = child.rect
        if r.width == 0 or r.height == 0:
            continue
        if r.left < clip.left - CLIP_THRESHOLD or r.right > clip.right + CLIP_THRESHOLD:
            fits_x = False
        if r.top < clip.top - CLIP_THRESHOLD or r.bottom > clip.bottom + CLIP_THRESHOLD:
            fits_y = False
        if not fits_x and not fits_y:
            break
    return fits_x, fits_y


def _is_symmetric_gutter(el: ElementNode) -> bool:
    children = [child.rect for child in _visible_html_children(el)]
    if not children:
        return False
    left_overflow = max(0.0, el.rect.left - min(r.left for r in children))
    right_overflow = max(0.0, max(r.right for r in children) - el.rect.right)
    return (
        left_overflow > CLIP_THRESHOLD
        and right_overflow > CLIP_THRESHOLD
        and abs(left_overflow - right_overflow) <= 2
    )


def _absolute_child_overflows(el: ElementNode, clipped_x: bool, clipped_y: bool) -> bool:
    container = el.rect
    for child in el.children:
        if not child.is_html or child.style.position != 'absolute':
            continue
        r = child.rect
        overflows_x = r.right - container.right > CLIP_THRESHOLD or container.left - r.left > CLIP_THRESHOLD
        overflows_y = r.bottom - container.bottom > CLIP_THRESHOLD or container.top - r.top > CLIP_THRESHOLD
        if (clipped_x and overflows_x) or (clipped_y and overflows_y):
            return True
    return False


def find_clipped_content(snapshot: LayoutSnapshot) -> list[ViolationReport]:
    """Elements whose overflow clipping hides part of their content."""
    violations = []

    for el in snapshot.in_scope():
        if not el.is_html or not geometry.is_visible(el):
            continue
        if not geometry.has_client_size(el):
            continue

        parent = el.parent
        if parent is not None and parent.is_html and geometry.is_intentionally_clipped(parent):
            continue

        clips_x, clips_y = geometry.overflow_clip_axes(el.style)
        if not clips_x and not clips_y:
            continue
        if clips_x and geometry.has_text_overflow_ellipsis(el):
            continue
        clips_y_for_check = clips_y and not geometry.is_line_clamped(el)

        padding_width, padding_height = geometry.get_padding_box_size(el)
        clipped_amount_x = el.scroll_width - padding_width
        clipped_amount_y = el.scroll_height - padding_height

        clipped_x = clips_x and clipped_amount_x > CLIP_THRESHOLD
        clipped_y = clips_y_for_check and clipped_amount_y > CLIP_THRESHOLD

        visible_text = geometry.has_visible_text(el)

        if clipped_y:
            text_threshold = (
                max(MIN_TEXT_CLIP_THRESHOLD, el.style.font_size * 0.2) if visible_text else CLIP_THRESHOLD
            )
            clipped_y = clipped_amount_y > text_threshold

        if clipped_y and (
            padding_height >= MINOR_CROP_MIN_HEIGHT
            and geometry.is_intentionally_clipped(el)
            and _has_media_descendant(el)
        ):
            if clipped_amount_y <= max(4.0, padding_height * 0.02):
                clipped_y = False

        if clipped_x or clipped_y:
            can_verify_by_child_rects = (
                not visible_text
                and not geometry.get_direct_text_runs(el)
                and not geometry.has_pseudo_content(el)
                and 0 < len(el.children) <= MAX_CHILDREN_FOR_RECT_CHECK
            )
            if can_verify_by_child_rects:
                fits_x, fits_y = _children_fit(el)
                if clipped_x and fits_x:
                    clipped_x = False
                if clipped_y and fits_y:
                    clipped_y = False

        if clipped_x and _matches_negative_margin_clipping(el, 'x', clipped_amount_x):
            clipped_x = False
        if clipped_y and _matches_negative_margin_clipping(el, 'y', clipped_amount_y):
            clipped_y = False

        # Horizontal gutters made by clipping symmetric child overflow
        if clipped_x and _is_symmetric_gutter(el):
            clipped_x = False

        if not clipped_x and not clipped_y:
            continue
        if _absolute_child_overflows(el, clipped_x, clipped_y):
            continue

        if clipped_x and clipped_y:
            message = (
                f'Content is clipped by {geometry.round_half_up(clipped_amount_x)}px horizontally '
                f'and {geometry.round_half_up(clipped_amount_y)}px vertically'
            )
        elif clipped_x:
            message = f'Content is clipped by {geometry.round_half_up(clipped_amount_x)}px horizontally'
        else:
            message = f'Content is clipped by {geometry.round_half_up(clipped_amount_y)}px vertically'

        violations.append(ViolationReport(message=message, element=el))

    return violations


@builtin_rules.register
class ClippedContentRule(SnapshotRule):
    name = 'clipped-content'
    meta = RuleMeta(
        severity='error',
        description='Detects content clipped by overflow:hidden or overflow:clip',
        recommended=True,
    )

    def detect(self, snapshot: LayoutSnapshot, options: Any) -> list[ViolationReport]:
        return find_clipped_content(snapshot)
