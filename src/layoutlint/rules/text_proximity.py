"""Horizontally adjacent pieces of text set so close they read as one.

Text bounds come from the measured text line boxes, not from element boxes, so
padding around inline elements does not hide the problem.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple

from layoutlint.dom import geometry
from layoutlint.dom.views import ElementNode, LayoutSnapshot, Rect
from layoutlint.engine.views import RelationReport, ViolationReport
from layoutlint.rules.base import RuleMeta, SnapshotRule
from layoutlint.rules.registry import builtin_rules

MIN_GAP_FACTOR = 0.35
MIN_GAP_PX = 3
MIN_VERTICAL_OVERLAP = 0.5
MIN_TEXT_LENGTH = 2
PREVIEW_LENGTH = 15


@dataclass(slots=True)
class TextElement:
    element: ElementNode
    bounds: Rect
    font_size: float
    text: str


class Adjacency(NamedTuple):
    gap: float
    a_is_left: bool


def horizontal_adjacency(a: Rect, b: Rect) -> Adjacency | None:
    """Gap between two side-by-side rects sharing at least half the smaller height."""
    vertical_overlap = min(a.bottom, b.bottom) - max(a.top, b.top)
    if vertical_overlap < min(a.height, b.height) * MIN_VERTICAL_OVERLAP:
        return None
    if a.right <= b.left:
        return Adjacency(b.left - a.right, True)
    if b.right <= a.left:
        return Adjacency(a.left - b.right, False)
    return None


def _preview(text: str) -> str:
    return text[:PREVIEW_LENGTH] + ('...' if len(text) > PREVIEW_LENGTH else '')


def collect_text_elements(snapshot: LayoutSnapshot) -> list[TextElement]:
    result = []
    for el in snapshot.in_scope():
        if not el.is_html or not geometry.is_visible(el):
            continue
        bounds = geometry.get_text_bounds(el, MIN_TEXT_LENGTH)
        if bounds is None:
            continue
        text = ''.join(run.text for run in el.text_runs).strip()
        result.append(TextElement(el, bounds, el.style.font_size, text))
    return result


def find_close_text(snapshot: LayoutSnapshot) -> list[ViolationReport]:
    items = collect_text_elements(snapshot)
    violations = []

    for i, a in enumerate(items):
        for b in items[i + 1 :]:
            if a.element.contains(b.element) or b.element.contains(a.element):
                continue
            if a.element.parent is not b.element.parent:
                continue

            adjacency = horizontal_adjacency(a.bounds, b.bounds)
            if adjacency is None:
                continue

            min_gap = max(MIN_GAP_PX, (a.font_size + b.font_size) / 2 * MIN_GAP_FACTOR)
            if adjacency.gap >= min_gap:
                continue

            left, right = (a, b) if adjacency.a_is_left else (b, a)
            violations.append(
                ViolationReport(
                    message=(
                        f'Text too close ({geometry.round_half_up(adjacency.gap)}px gap, '
                        f'min {geometry.round_half_up(min_gap)}px): '
                        f'"{_preview(left.text)}" and "{_preview(right.text)}"'
                    ),
                    element=left.element,
                    relations=[RelationReport(description='Adjacent text element', element=right.element)],
                )
            )

    return violations


@builtin_rules.register
class TextProximityRule(SnapshotRule):
    name = 'text-proximity'
    meta = RuleMeta(
        severity='warn',
        description='Detects horizontally adjacent text elements that are too close together',
    )

    def detect(self, snapshot: LayoutSnapshot, options: Any) -> list[ViolationReport]:
        return find_close_text(snapshot)
