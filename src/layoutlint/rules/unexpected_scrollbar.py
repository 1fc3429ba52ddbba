"""Scroll containers that scroll by only a few pixels.

A scroll distance of 1-20px nearly always comes from sub-pixel or off-by-a-few
layout overflow rather than content meant to scroll.
"""

from typing import Any

from layoutlint.dom import geometry
from layoutlint.dom.views import ElementNode, LayoutSnapshot
from layoutlint.engine.views import ViolationReport
from layoutlint.rules.base import RuleMeta, SnapshotRule
from layoutlint.rules.registry import builtin_rules

MIN_SCROLL_OVERFLOW = 1
MAX_UNEXPECTED_OVERFLOW = 20

SCROLLABLE_OVERFLOW_VALUES = frozenset({'auto', 'scroll', 'overlay'})


def can_scroll(overflow: str) -> bool:
    return overflow in SCROLLABLE_OVERFLOW_VALUES


def _is_unexpected(amount: float) -> bool:
    return MIN_SCROLL_OVERFLOW <= amount <= MAX_UNEXPECTED_OVERFLOW


def check_scrollbar(el: ElementNode) -> ViolationReport | None:
    if not geometry.is_visible(el) or not geometry.has_client_size(el):
        return None

    scroll_x = can_scroll(el.style.overflow_x)
    scroll_y = can_scroll(el.style.overflow_y)
    if not scroll_x and not scroll_y:
        return None

    amount_x = geometry.round_half_up(el.scroll_width - el.client_width)
    amount_y = geometry.round_half_up(el.scroll_height - el.client_height)
    unexpected_x = scroll_x and _is_unexpected(amount_x)
    unexpected_y = scroll_y and _is_unexpected(amount_y)

    if unexpected_x and unexpected_y:
        message = (
            f'Unexpected scrollbar: element scrolls {amount_x}px horizontally and '
            f'{amount_y}px vertically (likely a layout bug)'
        )
    elif unexpected_x:
        message = f'Unexpected horizontal scrollbar: element scrolls {amount_x}px (likely a layout bug)'
    elif unexpected_y:
        message = f'Unexpected vertical scrollbar: element scrolls {amount_y}px (likely a layout bug)'
    else:
        return None

    return ViolationReport(message=message, element=el)


def find_unexpected_scrollbars(snapshot: LayoutSnapshot) -> list[ViolationReport]:
    # The document scrollers are checked even when a narrower scope is set
    roots = [node for tag in ('html', 'body') for node in snapshot.query_tag(tag)]
    candidates = roots + [el for el in snapshot.in_scope() if el.is_html and el.tag not in ('html', 'body')]

    violations = []
    for el in candidates:
        violation = check_scrollbar(el)
        if violation is not None:
            violations.append(violation)
    return violations


@builtin_rules.register
class UnexpectedScrollbarRule(SnapshotRule):
    name = 'unexpected-scrollbar'
    meta = RuleMeta(
        severity='error',
        description='Detects unexpected scrollbars from minor layout overflow',
        recommended=True,
    )

    def detect(self, snapshot: LayoutSnapshot, options: Any) -> list[ViolationReport]:
        return find_unexpected_scrollbars(snapshot)
