"""Interactive elements covered by other elements.

Sample points across each interactive element are hit-tested in the page with
document.elementsFromPoint(); a point is obscured when the first element with
any visual weight on top of it is neither the target, one of its descendants or
ancestors, nor its associated label.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from layoutlint.dom import geometry
from layoutlint.dom.views import ElementNode, LayoutSnapshot, Rect, Viewport
from layoutlint.engine.views import RelationReport, ViolationReport
from layoutlint.rules.base import Rule, RuleMeta
from layoutlint.rules.registry import builtin_rules

if TYPE_CHECKING:
    from layoutlint.engine.evaluator import RuleContext

SAMPLE_PADDING = 2
OBSCURED_RATIO = 0.5


@dataclass(slots=True)
class HitTarget:
    element: ElementNode
    points: list[tuple[float, float]]


def get_sample_points(rect: Rect, viewport: Viewport) -> list[tuple[float, float]]:
    """Center, corners and edge midpoints, inset by SAMPLE_PADDING, inside the viewport."""
    left = rect.left + SAMPLE_PADDING
    right = rect.right - SAMPLE_PADDING
    top = rect.top + SAMPLE_PADDING
    bottom = rect.bottom - SAMPLE_PADDING

    if left >= right or top >= bottom:
        points = [(rect.center_x, rect.center_y)]
    else:
        cx = (left + right) / 2
        cy = (top + bottom) / 2
        points = [
            (cx, cy),
            (left, top),
            (right, top),
            (left, bottom),
            (right, bottom),
            (cx, top),
            (cx, bottom),
            (left, cy),
            (right, cy),
        ]

    return [(x, y) for x, y in points if 0 <= x < viewport.width and 0 <= y < viewport.height]


def collect_hit_targets(snapshot: LayoutSnapshot) -> list[HitTarget]:
    targets = []
    for el in snapshot.in_scope():
        if not el.is_html or not geometry.is_interactive(el):
            continue
        if geometry.has_negative_tabindex(el):
            continue
        if not geometry.is_visible(el) or el.style['pointer-events'] == 'none':
            continue
        if geometry.is_disabled(el):
            continue
        if not geometry.is_visible_in_viewport(el, snapshot.viewport):
            continue
        points = get_sample_points(el.rect, snapshot.viewport)
        if points:
            targets.append(HitTarget(el, points))
    return targets


def _obscurer_at(snapshot: LayoutSnapshot, target: ElementNode, stack: list[int]) -> ElementNode | None:
    """First element covering the target in a topmost-first hit stack."""
    for index in stack:
        if index < 0 or index >= len(snapshot.nodes):
            continue
        node = snapshot.node(index)
        if target.contains(node) or node.contains(target):
            return None
        if geometry.is_label_for(node, target) or geometry.is_label_for(target, node):
            return None
        if geometry.has_zero_visual_weight(node):
            continue
        return node
    return None


def find_obscured_targets(
    snapshot: LayoutSnapshot,
    targets: list[HitTarget],
    stacks: list[list[int]],
) -> list[ViolationReport]:
    """Evaluate hit stacks, given in the same order as the targets' points."""
    violations = []
    offset = 0

    for target in targets:
        target_stacks = stacks[offset : offset + len(target.points)]
        offset += len(target.points)
        if not target_stacks:
            continue

        obscured = 0
        obscuring: ElementNode | None = None
        for stack in target_stacks:
            node = _obscurer_at(snapshot, target.element, stack)
            if node is None:
                continue
            obscured += 1
            if obscuring is None and node.is_html:
                obscuring = node

        ratio = obscured / len(target_stacks)
        if obscured == 0 or ratio < OBSCURED_RATIO:
            continue

        relations = [RelationReport(description='Obscuring element', element=obscuring)] if obscuring else []
        violations.append(
            ViolationReport(
                message=(
                    f'Interactive element is ~{geometry.round_half_up(ratio * 100)}% obscured '
                    'and may not be clickable'
                ),
                element=target.element,
                relations=relations,
            )
        )

    return violations


@builtin_rules.register
class HitTargetObscuredRule(Rule):
    name = 'hit-target-obscured'
    meta = RuleMeta(
        severity='error',
        description='Detects clickable elements that are obscured by other elements',
        recommended=True,
    )

    async def run(self, context: RuleContext) -> None:
        snapshot = await context.snapshot()
        targets = collect_hit_targets(snapshot)
        if not targets:
            return

        points = [point for target in targets for point in target.points]
        stacks = await context.hit_test(snapshot, points)
        for violation in find_obscured_targets(snapshot, targets, stacks):
            context.report(violation)
