"""Geometry and visibility primitives shared by the layout detectors.

Every function here is pure: it reads ElementNode data captured in a
LayoutSnapshot and never talks to the page. Detectors must route visibility,
clipping and text measurement through this module instead of re-deriving them.

Functions:
    is_visible: Element and all ancestors render (display, visibility,
        clipping tricks, cumulative opacity).
    is_visible_in_viewport: Visible and intersecting the viewport.
    get_padding_box_size / get_padding_box_rect: Border box minus borders.
    get_clipping_ancestors / clip_rect_by_ancestors / get_visible_rect:
        What part of an element survives overflow clipping.
    is_intentionally_clipped: Heuristic for deliberate overflow clipping.
    get_text_rects / get_text_bounds: Line boxes of direct text children.
    is_interactive: Element receives pointer interaction.
    has_zero_visual_weight: Element paints nothing a user could see.
"""

import math
import re
from dataclasses import dataclass

from layoutlint.dom.views import ComputedStyle, ElementNode, Rect, TextRun, Viewport, parse_px

CLIP_OPT_OUT_ATTRIBUTE = 'data-layoutlint-clip'

CLIPPING_OVERFLOW_VALUES = frozenset({'hidden', 'clip'})

MEDIA_TAGS = frozenset({'img', 'video', 'canvas', 'svg', 'picture'})

# Elements that paint content of their own regardless of box decoration
REPLACED_TAGS = frozenset({'img', 'video', 'canvas', 'svg', 'picture', 'iframe', 'embed', 'object', 'input', 'select', 'textarea', 'button'})

INTERACTIVE_TAGS = frozenset({'a', 'button', 'input', 'select', 'textarea', 'label', 'summary', 'option'})

INTERACTIVE_ROLES = frozenset(
    {
        'button',
        'link',
        'menuitem',
        'menuitemcheckbox',
        'menuitemradio',
        'tab',
        'checkbox',
        'radio',
        'switch',
        'option',
    }
)

_HIDDEN_CLIP_PATH_PREFIXES = ('inset(50%', 'inset(100%', 'circle(0')
_RECT_CLIP_RE = re.compile(r'rect\(([^)]*)\)')
_COLOR_RE = re.compile(r'rgba?\(([^)]*)\)')


@dataclass(frozen=True, slots=True)
class ClippingAncestor:
    """An ancestor whose overflow clips its descendants.

    Attributes:
        node: The clipping ancestor.
        rect: Its padding box, the region descendants are clipped to.
        clips_x: Clips on the horizontal axis.
        clips_y: Clips on the vertical axis.
    """

    node: ElementNode
    rect: Rect
    clips_x: bool
    clips_y: bool


# ---------------------------------------------------------------------------
# Style predicates
# ---------------------------------------------------------------------------


def round_half_up(value: float) -> int:
    """Round like Math.round(), halves go up instead of to even."""
    return math.floor(value + 0.5)


def is_clipping_overflow_value(value: str) -> bool:
    return value in CLIPPING_OVERFLOW_VALUES


def overflow_clip_axes(style: ComputedStyle) -> tuple[bool, bool]:
    """(clips_x, clips_y) for an element's resolved overflow."""
    return is_clipping_overflow_value(style.overflow_x), is_clipping_overflow_value(style.overflow_y)


def has_text_overflow_ellipsis(el: ElementNode) -> bool:
    return el.style['text-overflow'] == 'ellipsis'


def is_line_clamped(el: ElementNode) -> bool:
    value = el.style['-webkit-line-clamp'] or el.style['line-clamp']
    if not value or value == 'none':
        return False
    try:
        return int(float(value)) > 0
    except ValueError:
        return False


def is_transparent_color(value: str) -> bool:
    """True for 'transparent' and any rgb()/rgba() colour with zero alpha."""
    value = value.strip().lower()
    if not value or value == 'transparent':
        return True
    match = _COLOR_RE.match(value)
    if not match:
        return False
    parts = [p for p in re.split(r'[\s,/]+', match.group(1)) if p]
    if len(parts) < 4:
        return False
    alpha = parts[3]
    try:
        if alpha.endswith('%'):
            return float(alpha[:-1]) == 0
        return float(alpha) == 0
    except ValueError:
        return False


def border_widths(style: ComputedStyle) -> tuple[float, float, float, float]:
    """(top, right, bottom, left) border widths."""
    return (
        style.px('border-top-width'),
        style.px('border-right-width'),
        style.px('border-bottom-width'),
        style.px('border-left-width'),
    )


CORNERS = ('top-left', 'top-right', 'bottom-right', 'bottom-left')


def corner_radii(style: ComputedStyle) -> dict[str, float]:
    """Per-corner radius; elliptical radii use their horizontal component."""
    radii = {}
    for corner in CORNERS:
        value = style[f'border-{corner}-radius'].split()
        radii[corner] = parse_px(value[0]) if value else 0.0
    return radii


def has_rounded_corners(style: ComputedStyle) -> bool:
    return any(radius > 0 for radius in corner_radii(style).values())


def has_visible_decoration(style: ComputedStyle) -> bool:
    """Border, background colour, background image or box shadow is painted."""
    if any(width > 0 for width in border_widths(style)):
        return True
    if not is_transparent_color(style['background-color']):
        return True
    if style['background-image'] not in ('', 'none'):
        return True
    if style['box-shadow'] not in ('', 'none'):
        return True
    return False


def has_pseudo_content(el: ElementNode) -> bool:
    return el.before_content not in ('none', 'normal', '') or el.after_content not in ('none', 'normal', '')


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------


def _is_clip_rect_degenerate(value: str) -> bool:
    match = _RECT_CLIP_RE.search(value)
    if not match:
        return False
    parts = [p for p in re.split(r'[\s,]+', match.group(1)) if p]
    if len(parts) != 4 or 'auto' in parts:
        return False
    top, right, bottom, left = (parse_px(p) for p in parts)
    return right <= left or bottom <= top


def is_visually_hidden_by_clipping(el: ElementNode) -> bool:
    """Screen-reader-only patterns: content-visibility, clip: rect(), clip-path."""
    style = el.style
    if style['content-visibility'] == 'hidden':
        return True

    clip = style['clip']
    if clip and clip != 'auto' and _is_clip_rect_degenerate(clip):
        return True

    clip_path = style['clip-path'].replace(' ', '').lower()
    if clip_path and clip_path != 'none' and clip_path.startswith(_HIDDEN_CLIP_PATH_PREFIXES):
        tiny = el.rect.width <= 1 and el.rect.height <= 1
        clips_x, clips_y = overflow_clip_axes(style)
        if tiny or (clips_x and clips_y):
            return True

    return False


def is_visible(el: ElementNode, check_opacity: bool = True) -> bool:
    """Whether the element and every ancestor render.

    Opacity multiplies down the tree, so an element is invisible when the
    product of its own and its ancestors' opacity is zero.

    Args:
        el: Element to test.
        check_opacity: Also fail on a cumulative opacity of zero.
    """
    opacity = 1.0
    node: ElementNode | None = el
    while node is not None:
        style = node.style
        if style.display == 'none':
            return False
        if style['visibility'] in ('hidden', 'collapse'):
            return False
        if is_visually_hidden_by_clipping(node):
            return False
        opacity *= style.opacity
        node = node.parent

    if check_opacity and opacity == 0:
        return False
    return True


def is_visible_in_viewport(el: ElementNode, viewport: Viewport) -> bool:
    if not is_visible(el):
        return False
    rect = el.rect
    if rect.width <= 0 or rect.height <= 0:
        return False
    return rect.intersects(viewport.rect)


def has_client_size(el: ElementNode, min_width: float = 1, min_height: float = 1) -> bool:
    return el.client_width > min_width or el.client_height > min_height


# ---------------------------------------------------------------------------
# Box model and clipping
# ---------------------------------------------------------------------------


def get_padding_box_size(el: ElementNode) -> tuple[float, float]:
    """(width, height) of the padding box, clamped at 0."""
    top, right, bottom, left = border_widths(el.style)
    return max(0.0, el.rect.width - left - right), max(0.0, el.rect.height - top - bottom)


def get_padding_box_rect(el: ElementNode) -> Rect:
    top, right, bottom, left = border_widths(el.style)
    width, height = get_padding_box_size(el)
    return Rect.from_xywh(el.rect.left + left, el.rect.top + top, width, height)


def get_clipping_ancestors(el: ElementNode) -> list[ClippingAncestor]:
    """Ancestors that clip overflow on at least one axis."""
    result = []
    for ancestor in el.ancestors():
        clips_x, clips_y = overflow_clip_axes(ancestor.style)
        if clips_x or clips_y:
            result.append(ClippingAncestor(ancestor, get_padding_box_rect(ancestor), clips_x, clips_y))
    return result


def clip_rect_by_ancestors(rect: Rect, ancestors: list[ClippingAncestor]) -> Rect | None:
    """Intersect a rect with every clipping ancestor on the axes it clips.

    Returns:
        The clipped rect, or None when nothing of it remains visible.
    """
    left, top, right, bottom = rect.left, rect.top, rect.right, rect.bottom
    for ancestor in ancestors:
        if ancestor.clips_x:
            left = max(left, ancestor.rect.left)
            right = min(right, ancestor.rect.right)
        if ancestor.clips_y:
            top = max(top, ancestor.rect.top)
            bottom = min(bottom, ancestor.rect.bottom)
    if right - left <= 0 or bottom - top <= 0:
        return None
    return Rect(left, top, right, bottom)


def get_visible_rect(el: ElementNode) -> Rect | None:
    return clip_rect_by_ancestors(el.rect, get_clipping_ancestors(el))


def is_intentionally_clipped(el: ElementNode) -> bool:
    """Whether overflow clipping on this element looks deliberate.

    overflow: hidden on its own is ambiguous. It counts as intentional when the
    element opts out explicitly, uses clip-path or a mask, or combines clipping
    with ellipsis, line clamping, rounded corners, visible decoration or a
    non-static position.
    """
    if el.has_attribute(CLIP_OPT_OUT_ATTRIBUTE):
        return True

    style = el.style
    if style['clip-path'] not in ('', 'none'):
        return True
    if style['mask-image'] not in ('', 'none') or style['-webkit-mask-image'] not in ('', 'none'):
        return True

    clips_x, clips_y = overflow_clip_axes(style)
    if not (clips_x or clips_y):
        return False

    return (
        has_text_overflow_ellipsis(el)
        or is_line_clamped(el)
        or has_rounded_corners(style)
        or has_visible_decoration(style)
        or style.position != 'static'
    )


def get_layout_root(el: ElementNode) -> ElementNode | None:
    """Nearest absolutely or fixed positioned ancestor."""
    for ancestor in el.ancestors():
        if ancestor.style.position in ('absolute', 'fixed'):
            return ancestor
    return None


# ---------------------------------------------------------------------------
# Text measurement
# ---------------------------------------------------------------------------


def get_direct_text_runs(el: ElementNode, min_text_length: int = 1) -> list[TextRun]:
    return [run for run in el.text_runs if len(run.text.strip()) >= max(1, min_text_length)]


def get_text_run_rects(run: TextRun) -> list[Rect]:
    return [rect for rect in run.rects if rect.width > 0 and rect.height > 0]


def get_text_run_bounds(run: TextRun) -> Rect | None:
    return Rect.bounding(get_text_run_rects(run))


def get_text_rects(el: ElementNode, min_text_length: int = 1) -> list[Rect]:
    """Line boxes of the element's direct text children, zero-size boxes dropped."""
    rects: list[Rect] = []
    for run in get_direct_text_runs(el, min_text_length):
        rects.extend(get_text_run_rects(run))
    return rects


def get_text_bounds(el: ElementNode, min_text_length: int = 1) -> Rect | None:
    return Rect.bounding(get_text_rects(el, min_text_length))


def has_visible_text(el: ElementNode) -> bool:
    """The element or a visible descendant renders non-blank text."""
    for node in (el, *el.descendants()):
        if node.text_runs and any(run.text.strip() for run in node.text_runs) and is_visible(node):
            return True
    return False


# ---------------------------------------------------------------------------
# Interaction
# ---------------------------------------------------------------------------


def _parse_tabindex(el: ElementNode) -> int | None:
    value = el.get_attribute('tabindex')
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def is_interactive(el: ElementNode) -> bool:
    """Native control, interactive ARIA role, focusable tabindex or click handler."""
    if el.tag in INTERACTIVE_TAGS:
        return True
    if el.has_attribute('onclick') or el.has_click_handler:
        return True
    tabindex = _parse_tabindex(el)
    if tabindex is not None and tabindex >= 0:
        return True
    role = (el.get_attribute('role') or '').strip().lower()
    return role in INTERACTIVE_ROLES


def is_disabled(el: ElementNode) -> bool:
    """disabled or aria-disabled="true" on the element or an ancestor."""
    for node in (el, *el.ancestors()):
        if node.has_attribute('disabled'):
            return True
        if (node.get_attribute('aria-disabled') or '').lower() == 'true':
            return True
    return False


def has_negative_tabindex(el: ElementNode) -> bool:
    tabindex = _parse_tabindex(el)
    return tabindex is not None and tabindex < 0


def is_label_for(label: ElementNode, control: ElementNode) -> bool:
    """label is associated with control, through for= or by nesting."""
    if label.tag != 'label':
        return False
    target_id = label.get_attribute('for')
    if target_id:
        return target_id == control.element_id
    return label.contains(control)


def has_zero_visual_weight(el: ElementNode) -> bool:
    """The element paints nothing: transparent, undecorated and without text."""
    if not is_visible(el):
        return True
    if el.tag in REPLACED_TAGS:
        return False
    style = el.style
    if has_visible_decoration(style):
        return False
    if style.px('outline-width') > 0 and style['outline-style'] not in ('', 'none'):
        return False
    if any(run.text.strip() for run in el.text_runs):
        return False
    if has_pseudo_content(el):
        return False
    return True
