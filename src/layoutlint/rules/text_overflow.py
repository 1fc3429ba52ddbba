"""Text escaping the border box of the element that owns it."""

from typing import Any

from layoutlint.dom import geometry
from layoutlint.dom.views import LayoutSnapshot, Rect
from layoutlint.engine.views import ViolationReport
from layoutlint.rules.base import RuleMeta, SnapshotRule
from layoutlint.rules.container_overflow import SIDES
from layoutlint.rules.registry import builtin_rules

HORIZONTAL_THRESHOLD = 1
VERTICAL_FONT_RATIO = 0.5
PREVIEW_LENGTH = 30


def text_preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    return text.strip()[:length] + ('...' if len(text) > length else '')


def get_text_overflow(container: Rect, text: Rect, font_size: float) -> dict[str, float] | None:
    """Per-side overflow of text beyond its container, or None when within tolerance.

    Horizontal overflow counts past 1px. Vertical overflow counts past half the
    font size, since line boxes routinely exceed a tight container by a few
    pixels of leading.
    """
    overflow = {
        'top': max(0.0, container.top - text.top),
        'right': max(0.0, text.right - container.right),
        'bottom': max(0.0, text.bottom - container.bottom),
        'left': max(0.0, container.left - text.left),
    }
    thresholds = _thresholds(font_size)
    if not any(overflow[side] > thresholds[side] for side in SIDES):
        return None
    return overflow


def _thresholds(font_size: float) -> dict[str, float]:
    vertical = font_size * VERTICAL_FONT_RATIO
    return {'top': vertical, 'right': HORIZONTAL_THRESHOLD, 'bottom': vertical, 'left': HORIZONTAL_THRESHOLD}


def format_text_overflow(overflow: dict[str, float], font_size: float) -> str:
    thresholds = _thresholds(font_size)
    return ', '.join(
        f'{geometry.round_half_up(overflow[side])}px {side}' for side in SIDES if overflow[side] > thresholds[side]
    )


def find_text_overflow(snapshot: LayoutSnapshot) -> list[ViolationReport]:
    violations = []

    for el in snapshot.in_scope():
        if not el.is_html or not geometry.is_visible(el, check_opacity=False):
            continue
        if el.rect.width <= 0 or el.rect.height <= 0:
            continue
        if geometry.has_text_overflow_ellipsis(el):
            continue

        font_size = el.style.font_size
        for run in geometry.get_direct_text_runs(el):
            bounds = geometry.get_text_run_bounds(run)
            if bounds is None:
                continue
            overflow = get_text_overflow(el.rect, bounds, font_size)
            if overflow is None:
                continue

            violations.append(
                ViolationReport(
                    message=(
                        f'Text "{text_preview(run.text)}" overflows container by '
                        f'{format_text_overflow(overflow, font_size)}'
                    ),
                    element=el,
                )
            )
            # One report per element
            break

    return violations


@builtin_rules.register
class TextOverflowRule(SnapshotRule):
    name = 'text-overflow'
    meta = RuleMeta(
        severity='error',
        description='Detects text that overflows its container element',
        recommended=True,
    )

    def detect(self, snapshot: LayoutSnapshot, options: Any) -> list[ViolationReport]:
        return find_text_overflow(snapshot)
