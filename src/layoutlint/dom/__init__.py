"""Layout snapshot capture and geometry primitives."""

from layoutlint.dom.service import DomSnapshotService, PageLike
from layoutlint.dom.views import ComputedStyle, ElementNode, ElementRef, LayoutSnapshot, Rect, TextRun, Viewport

__all__ = [
    'ComputedStyle',
    'DomSnapshotService',
    'ElementNode',
    'ElementRef',
    'LayoutSnapshot',
    'PageLike',
    'Rect',
    'TextRun',
    'Viewport',
]
