"""Nested rounded corners that break the corner radius law.

For nested rounded corners to look concentric, a child's radius should be the
parent's radius minus the inset between them. The law is only enforced while
the inset is at most half the parent's radius; beyond that the corners are far
enough apart that any radius reads fine.
"""

from typing import Any

from layoutlint.dom import geometry
from layoutlint.dom.views import ComputedStyle, ElementNode, LayoutSnapshot, Rect
from layoutlint.engine.views import RelationReport, ViolationReport
from layoutlint.rules.base import RuleMeta, SnapshotRule
from layoutlint.rules.registry import builtin_rules

TOLERANCE = 2
MAX_INSET_RATIO = 0.5


def get_corner_insets(parent: Rect, child: Rect) -> dict[str, float]:
    """Distance from the parent's edges to the child's, per corner."""
    top = child.top - parent.top
    right = parent.right - child.right
    bottom = parent.bottom - child.bottom
    left = child.left - parent.left
    return {
        'top-left': min(top, left),
        'top-right': min(top, right),
        'bottom-right': min(bottom, right),
        'bottom-left': min(bottom, left),
    }


def has_visible_corners(style: ComputedStyle) -> bool:
    return geometry.has_visible_decoration(style) or style.px('outline-width') > 0


def check_corners(parent: ElementNode, child: ElementNode) -> list[str]:
    parent_radii = geometry.corner_radii(parent.style)
    child_radii = geometry.corner_radii(child.style)
    insets = get_corner_insets(parent.rect, child.rect)

    problems = []
    for corner in geometry.CORNERS:
        parent_radius = parent_radii[corner]
        inset = insets[corner]
        if parent_radius <= 0:
            continue
        if inset < 0 or inset > MAX_INSET_RATIO * parent_radius:
            continue

        expected = max(0.0, parent_radius - inset)
        found = child_radii[corner]
        if abs(found - expected) <= TOLERANCE:
            continue
        problems.append(
            f'{corner}: expected ~{geometry.round_half_up(expected)}px, found {geometry.round_half_up(found)}px'
        )
    return problems


def find_incoherent_corners(snapshot: LayoutSnapshot) -> list[ViolationReport]:
    violations = []

    for el in snapshot.in_scope():
        if not el.is_html or not geometry.is_visible(el) or not el.rect.has_size():
            continue
        parent = el.parent
        if parent is None or not parent.is_html:
            continue
        if not geometry.is_visible(parent) or not parent.rect.has_size():
            continue
        if not geometry.has_rounded_corners(parent.style):
            continue
        if not has_visible_corners(el.style):
            continue

        problems = check_corners(parent, el)
        if problems:
            violations.append(
                ViolationReport(
                    message=f'Corner radius violates nesting law: {"; ".join(problems)}',
                    element=el,
                    relations=[RelationReport(description='Parent with rounded corners', element=parent)],
                )
            )

    return violations


@builtin_rules.register
class CornerRadiusCoherenceRule(SnapshotRule):
    name = 'corner-radius-coherence'
    meta = RuleMeta(
        severity='warn',
        description='Detects child elements whose corner radius violates the law for nested rounded corners',
    )

    def detect(self, snapshot: LayoutSnapshot, options: Any) -> list[ViolationReport]:
        return find_incoherent_corners(snapshot)
