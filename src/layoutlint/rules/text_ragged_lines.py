"""Multi-line text with awkwardly short lines."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from layoutlint.dom import geometry
from layoutlint.dom.views import ElementNode, LayoutSnapshot, Rect
from layoutlint.engine.views import ViolationReport
from layoutlint.rules.base import RuleMeta, SnapshotRule
from layoutlint.rules.registry import builtin_rules

MIN_LINES = 2
MIN_LINE_WIDTH = 5
Y_TOLERANCE = 3
MIN_ELEMENT_WIDTH = 40


class RaggedLinesOptions(BaseModel):
    last_line_ratio: float = Field(default=0.45, gt=0, le=1, description='Shortest acceptable last line')
    interior_line_ratio: float = Field(default=0.30, gt=0, le=1, description='Shortest acceptable interior line')


@dataclass(slots=True)
class TextLine:
    top: float
    rects: list[Rect] = field(default_factory=list)

    @property
    def width(self) -> float:
        return max(r.right for r in self.rects) - min(r.left for r in self.rects)


@dataclass(slots=True)
class ShortLine:
    index: int
    width: float
    longest: float


def get_text_lines(el: ElementNode) -> list[TextLine]:
    """Direct text grouped into visual lines by top edge."""
    rects = [rect for run in geometry.get_direct_text_runs(el) for rect in run.rects if rect.width >= MIN_LINE_WIDTH]
    rects.sort(key=lambda r: r.top)

    lines: list[TextLine] = []
    for rect in rects:
        line = next((line for line in lines if abs(line.top - rect.top) <= Y_TOLERANCE), None)
        if line is None:
            lines.append(TextLine(top=rect.top, rects=[rect]))
        else:
            line.rects.append(rect)

    return sorted(lines, key=lambda line: line.top)


def analyze_lines(lines: list[TextLine], options: RaggedLinesOptions) -> ShortLine | None:
    if len(lines) < MIN_LINES:
        return None

    widths = [line.width for line in lines]
    longest = max(widths)
    if longest < MIN_LINE_WIDTH:
        return None

    if widths[-1] / longest < options.last_line_ratio:
        return ShortLine(index=len(lines), width=widths[-1], longest=longest)

    for i in range(1, len(lines) - 1):
        if widths[i] / longest < options.interior_line_ratio:
            return ShortLine(index=i + 1, width=widths[i], longest=longest)

    return None


def find_ragged_lines(snapshot: LayoutSnapshot, options: RaggedLinesOptions | None = None) -> list[ViolationReport]:
    options = options or RaggedLinesOptions()
    violations = []

    for el in snapshot.in_scope():
        if not el.is_html or not geometry.is_visible(el):
            continue
        if el.rect.height <= 0 or el.rect.width < MIN_ELEMENT_WIDTH:
            continue

        lines = get_text_lines(el)
        short = analyze_lines(lines, options)
        if short is None:
            continue

        percent = geometry.round_half_up(short.width / short.longest * 100)
        violations.append(
            ViolationReport(
                message=(
                    f'Text has awkwardly short line {short.index} of {len(lines)}: '
                    f'{geometry.round_half_up(short.width)}px wide '
                    f'({percent}% of longest {geometry.round_half_up(short.longest)}px line)'
                ),
                element=el,
            )
        )

    return violations


@builtin_rules.register
class TextRaggedLinesRule(SnapshotRule):
    name = 'text-ragged-lines'
    meta = RuleMeta(
        severity='warn',
        description='Detects text blocks with awkwardly short lines that disrupt visual flow',
    )
    options_model = RaggedLinesOptions

    def detect(self, snapshot: LayoutSnapshot, options: RaggedLinesOptions | None) -> list[ViolationReport]:
        return find_ragged_lines(snapshot, options)
