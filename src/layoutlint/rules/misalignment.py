"""Flex siblings that look like they were meant to line up but are a few pixels off.

The closest axis-relevant edge between two siblings is taken as the intended
alignment. A pair is reported when that edge lands in the mistake range: close
enough to read as an alignment attempt, not close enough to be aligned.
"""

from typing import Any, NamedTuple

from layoutlint.dom import geometry
from layoutlint.dom.views import ElementNode, LayoutSnapshot, Rect
from layoutlint.engine.views import RelationReport, ViolationReport
from layoutlint.rules.base import RuleMeta, SnapshotRule
from layoutlint.rules.registry import builtin_rules

PERFECT_THRESHOLD = 1
MIN_MISALIGN = 2
MAX_MISALIGN = 6
MIN_ELEMENT_SIZE = 24

_FLEX_DISPLAYS = frozenset({'flex', 'inline-flex'})


class EdgeAlignment(NamedTuple):
    edge: str
    offset: float


def _has_size(el: ElementNode) -> bool:
    return el.rect.width >= MIN_ELEMENT_SIZE and el.rect.height >= MIN_ELEMENT_SIZE


def get_flex_direction(el: ElementNode) -> str | None:
    """'row' or 'column' for children of a flex container, else None."""
    parent = el.parent
    if parent is None or parent.style.display not in _FLEX_DISPLAYS:
        return None
    return 'column' if parent.style['flex-direction'].startswith('column') else 'row'


def get_relevant_alignments(a: Rect, b: Rect, direction: str) -> list[EdgeAlignment]:
    """Cross-axis edge offsets: vertical edges for rows, horizontal for columns."""
    if direction == 'row':
        return [
            EdgeAlignment('top', abs(a.top - b.top)),
            EdgeAlignment('bottom', abs(a.bottom - b.bottom)),
            EdgeAlignment('center-y', abs(a.center_y - b.center_y)),
        ]
    return [
        EdgeAlignment('left', abs(a.left - b.left)),
        EdgeAlignment('right', abs(a.right - b.right)),
        EdgeAlignment('center-x', abs(a.center_x - b.center_x)),
    ]


def find_misalignment(a: Rect, b: Rect, direction: str) -> EdgeAlignment | None:
    alignments = sorted(get_relevant_alignments(a, b, direction), key=lambda al: al.offset)
    if any(al.offset <= PERFECT_THRESHOLD for al in alignments):
        return None
    closest = alignments[0]
    if MIN_MISALIGN <= closest.offset <= MAX_MISALIGN:
        return closest
    return None


def _siblings(el: ElementNode) -> list[ElementNode]:
    if el.parent is None:
        return []
    return [
        child
        for child in el.parent.children
        if child is not el and child.is_html and geometry.is_visible(child) and _has_size(child)
    ]


def find_misaligned_siblings(snapshot: LayoutSnapshot) -> list[ViolationReport]:
    violations = []
    reported_pairs: set[frozenset[int]] = set()

    for el in snapshot.in_scope():
        if not el.is_html or not geometry.is_visible(el) or not _has_size(el):
            continue
        direction = get_flex_direction(el)
        if direction is None:
            continue

        for sibling in _siblings(el):
            pair = frozenset((el.index, sibling.index))
            if pair in reported_pairs:
                continue

            misalignment = find_misalignment(el.rect, sibling.rect, direction)
            if misalignment is None:
                continue

            reported_pairs.add(pair)
            violations.append(
                ViolationReport(
                    message=(
                        f'Sibling elements misaligned: {misalignment.edge} edges differ by '
                        f'{geometry.round_half_up(misalignment.offset)}px'
                    ),
                    element=el,
                    relations=[RelationReport(description='Misaligned sibling', element=sibling)],
                )
            )

    return violations


@builtin_rules.register
class MisalignmentRule(SnapshotRule):
    name = 'misalignment'
    meta = RuleMeta(
        severity='warn',
        description='Detects elements that should be aligned but are slightly off',
    )

    def detect(self, snapshot: LayoutSnapshot, options: Any) -> list[ViolationReport]:
        return find_misaligned_siblings(snapshot)
