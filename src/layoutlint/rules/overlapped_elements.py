"""Block-level elements that overlap each other unintentionally.

Only root-cause overlaps are reported: a pair is skipped when the immediate
parent of either element already overlaps the other one.
"""

from dataclasses import dataclass
from typing import Any

from layoutlint.dom import geometry
from layoutlint.dom.views import ElementNode, LayoutSnapshot, Rect
from layoutlint.engine.views import RelationReport, ViolationReport
from layoutlint.rules.base import RuleMeta, SnapshotRule
from layoutlint.rules.registry import builtin_rules

OVERLAP_THRESHOLD = 5
MIN_ELEMENT_SIZE = 50
MIN_OVERLAP_PERCENT = 5
THIN_OVERLAP_PX = 12
THIN_OVERLAP_PERCENT = 20
NEGATIVE_MARGIN_OVERLAP_PERCENT = 50

_BLOCK_DISPLAYS = frozenset({'block', 'flex', 'grid', 'table', 'flow-root'})
_POSITIONED = frozenset({'absolute', 'fixed', 'sticky'})


@dataclass(slots=True)
class OverlapCandidate:
    element: ElementNode
    rect: Rect
    area: float
    layout_root: ElementNode | None


def _is_candidate(el: ElementNode) -> bool:
    if not el.is_html or not geometry.is_visible(el):
        return False
    return el.style.display in _BLOCK_DISPLAYS


def _candidate_rect(el: ElementNode) -> Rect | None:
    rect = geometry.get_visible_rect(el)
    if rect is None or rect.width < MIN_ELEMENT_SIZE or rect.height < MIN_ELEMENT_SIZE:
        return None
    return rect


def rects_overlap(a: Rect, b: Rect) -> bool:
    """Intersect by more than OVERLAP_THRESHOLD on both axes."""
    if a.right <= b.left + OVERLAP_THRESHOLD:
        return False
    if a.left >= b.right - OVERLAP_THRESHOLD:
        return False
    if a.bottom <= b.top + OVERLAP_THRESHOLD:
        return False
    if a.top >= b.bottom - OVERLAP_THRESHOLD:
        return False
    return True


def _parent_overlaps(child: ElementNode, other: ElementNode, other_rect: Rect) -> bool:
    parent = child.parent
    if parent is None or parent.contains(other):
        return False
    if not _is_candidate(parent):
        return False
    parent_rect = _candidate_rect(parent)
    if parent_rect is None:
        return False
    return rects_overlap(parent_rect, other_rect)


def _is_float_wrap(a: ElementNode, b: ElementNode) -> bool:
    """A float and the non-floated, text-bearing sibling flowing around it."""
    if a.parent is None or a.parent is not b.parent:
        return False
    for floated, other in ((a, b), (b, a)):
        if floated.style['float'] in ('left', 'right') and other.style['float'] in ('', 'none'):
            if geometry.has_visible_text(other):
                return True
    return False


def _has_negative_margin(el: ElementNode) -> bool:
    return any(el.style.px(f'margin-{side}') < 0 for side in ('top', 'right', 'bottom', 'left'))


def collect_candidates(snapshot: LayoutSnapshot) -> list[OverlapCandidate]:
    candidates = []
    for el in snapshot.in_scope():
        if not _is_candidate(el):
            continue
        rect = _candidate_rect(el)
        if rect is None:
            continue
        candidates.append(OverlapCandidate(el, rect, rect.area, geometry.get_layout_root(el)))
    return candidates


def find_overlapped_elements(snapshot: LayoutSnapshot) -> list[ViolationReport]:
    candidates = collect_candidates(snapshot)
    violations = []

    # Each unordered pair is examined once
    for i, a in enumerate(candidates):
        for b in candidates[i + 1 :]:
            if a.layout_root is not b.layout_root:
                continue
            if a.element.contains(b.element) or b.element.contains(a.element):
                continue
            if a.element.style.position in _POSITIONED or b.element.style.position in _POSITIONED:
                continue
            if not rects_overlap(a.rect, b.rect):
                continue
            if _parent_overlaps(a.element, b.element, b.rect):
                continue
            if _parent_overlaps(b.element, a.element, a.rect):
                continue
            if _is_float_wrap(a.element, b.element):
                continue

            intersection = a.rect.intersection(b.rect)
            smaller_area = min(a.area, b.area)
            if intersection is None or smaller_area == 0:
                continue

            percent = geometry.round_half_up(intersection.area / smaller_area * 100)
            if percent < MIN_OVERLAP_PERCENT:
                continue

            thin = intersection.width < THIN_OVERLAP_PX or intersection.height < THIN_OVERLAP_PX
            if thin and percent < THIN_OVERLAP_PERCENT:
                continue

            if percent < NEGATIVE_MARGIN_OVERLAP_PERCENT and (
                _has_negative_margin(a.element) or _has_negative_margin(b.element)
            ):
                continue

            violations.append(
                ViolationReport(
                    message=f"Elements overlap by {percent}% of the smaller element's area",
                    element=a.element,
                    relations=[RelationReport(description='Overlapping element', element=b.element)],
                )
            )

    return violations


@builtin_rules.register
class OverlappedElementsRule(SnapshotRule):
    name = 'overlapped-elements'
    meta = RuleMeta(
        severity='error',
        description='Detects elements that overlap unintentionally',
        recommended=True,
    )

    def detect(self, snapshot: LayoutSnapshot, options: Any) -> list[ViolationReport]:
        return find_overlapped_elements(snapshot)
