"""Tests for the misalignment, corner-radius-coherence, space-misuse and unexpected-scrollbar detectors."""

import pytest

from layoutlint.dom.views import Rect
from layoutlint.rules.corner_radius_coherence import find_incoherent_corners, get_corner_insets
from layoutlint.rules.misalignment import _siblings, find_misaligned_siblings, find_misalignment
from layoutlint.rules.space_misuse import find_space_misuse, is_leaf_container
from layoutlint.rules.unexpected_scrollbar import find_unexpected_scrollbars

RADIUS_20 = {f"border-{corner}-radius": "20px" for corner in ("top-left", "top-right", "bottom-right", "bottom-left")}


def _messages_for(violations, index):
    return [v.message for v in violations if v.element.index == index]


class TestMisalignment:
    """Tests for find_misaligned_siblings."""

    def test_flex_row_siblings_four_pixels_off(self, builder):
        row = builder.add("div", builder.body, (0, 0, 400, 100), style={"display": "flex"})
        a = builder.add("div", row, (0, 0, 100, 50))
        b = builder.add("div", row, (110, 4, 100, 50))
        violations = find_misaligned_siblings(builder.build())
        assert len(violations) == 1
        assert violations[0].element.index == a
        assert violations[0].message == "Sibling elements misaligned: top edges differ by 4px"
        assert violations[0].relations[0].element.index == b
        assert violations[0].relations[0].description == "Misaligned sibling"

    def test_flex_column_compares_horizontal_edges(self, builder):
        column = builder.add(
            "div", builder.body, (0, 0, 400, 200), style={"display": "flex", "flex-direction": "column"}
        )
        builder.add("div", column, (0, 0, 100, 50))
        builder.add("div", column, (3, 60, 100, 50))
        violations = find_misaligned_siblings(builder.build())
        assert [v.message for v in violations] == ["Sibling elements misaligned: left edges differ by 3px"]

    def test_one_aligned_edge_is_enough(self, builder):
        row = builder.add("div", builder.body, (0, 0, 400, 100), style={"display": "flex"})
        builder.add("div", row, (0, 0, 100, 50))
        builder.add("div", row, (110, 0, 100, 40))
        assert find_misaligned_siblings(builder.build()) == []

    def test_large_offsets_are_intentional(self, builder):
        row = builder.add("div", builder.body, (0, 0, 400, 100), style={"display": "flex"})
        builder.add("div", row, (0, 0, 100, 50))
        builder.add("div", row, (110, 7, 100, 50))
        assert find_misaligned_siblings(builder.build()) == []

    def test_non_flex_parent_is_ignored(self, builder):
        parent = builder.add("div", builder.body, (0, 0, 400, 100))
        builder.add("div", parent, (0, 0, 100, 50))
        builder.add("div", parent, (110, 4, 100, 50))
        assert find_misaligned_siblings(builder.build()) == []

    def test_small_elements_are_ignored(self, builder):
        row = builder.add("div", builder.body, (0, 0, 400, 100), style={"display": "flex"})
        builder.add("div", row, (0, 0, 20, 20))
        builder.add("div", row, (30, 4, 20, 20))
        assert find_misaligned_siblings(builder.build()) == []

    def test_each_pair_reported_once(self, builder):
        row = builder.add("div", builder.body, (0, 0, 400, 100), style={"display": "flex"})
        a = builder.add("div", row, (0, 0, 100, 50))
        b = builder.add("div", row, (110, 3, 100, 50))
        c = builder.add("div", row, (220, 6, 100, 50))
        violations = find_misaligned_siblings(builder.build())
        pairs = [frozenset((v.element.index, v.relations[0].element.index)) for v in violations]
        assert sorted(map(sorted, pairs)) == [[a, b], [a, c], [b, c]]

    def test_root_element_has_no_siblings(self, builder):
        snapshot = builder.build()
        assert _siblings(snapshot.node(builder.html)) == []

    @pytest.mark.parametrize("offset,expected", [(1, None), (2, "top"), (6, "top"), (6.5, None)])
    def test_mistake_range(self, offset, expected):
        result = find_misalignment(Rect.from_xywh(0, 0, 100, 50), Rect.from_xywh(110, offset, 100, 50), "row")
        assert (result.edge if result else None) == expected


class TestCornerRadiusCoherence:
    """Tests for find_incoherent_corners."""

    def test_same_radius_inside_padding(self, builder):
        card = builder.add("div", builder.body, (0, 0, 200, 200), style=RADIUS_20)
        inner = builder.add(
            "div", card, (5, 5, 190, 190), style={**RADIUS_20, "background-color": "rgb(240, 240, 240)"}
        )
        violations = find_incoherent_corners(builder.build())
        assert len(violations) == 1
        assert violations[0].element.index == inner
        assert violations[0].message == (
            "Corner radius violates nesting law: "
            "top-left: expected ~15px, found 20px; "
            "top-right: expected ~15px, found 20px; "
            "bottom-right: expected ~15px, found 20px; "
            "bottom-left: expected ~15px, found 20px"
        )
        assert violations[0].relations[0].description == "Parent with rounded corners"
        assert violations[0].relations[0].element.index == card

    def test_within_tolerance_is_silent(self, builder):
        card = builder.add("div", builder.body, (0, 0, 200, 200), style=RADIUS_20)
        radius = {k: "16px" for k in RADIUS_20}
        builder.add("div", card, (5, 5, 190, 190), style={**radius, "background-color": "rgb(0, 0, 0)"})
        assert find_incoherent_corners(builder.build()) == []

    def test_three_pixels_off_is_reported(self, builder):
        card = builder.add("div", builder.body, (0, 0, 200, 200), style=RADIUS_20)
        radius = {k: "15px" for k in RADIUS_20}
        radius["border-top-left-radius"] = "18px"
        inner = builder.add("div", card, (5, 5, 190, 190), style={**radius, "background-color": "rgb(0, 0, 0)"})
        violations = find_incoherent_corners(builder.build())
        assert _messages_for(violations, inner) == [
            "Corner radius violates nesting law: top-left: expected ~15px, found 18px"
        ]

    @pytest.mark.parametrize("size", [(190, 0.5), (0.5, 190)])
    def test_sub_pixel_child_is_skipped(self, builder, size):
        card = builder.add("div", builder.body, (0, 0, 200, 200), style=RADIUS_20)
        builder.add("div", card, (5, 5, *size), style={**RADIUS_20, "background-color": "rgb(0, 0, 0)"})
        assert find_incoherent_corners(builder.build()) == []

    def test_large_inset_is_not_checked(self, builder):
        card = builder.add("div", builder.body, (0, 0, 200, 200), style=RADIUS_20)
        builder.add("div", card, (15, 15, 170, 170), style={"background-color": "rgb(0, 0, 0)"})
        assert find_incoherent_corners(builder.build()) == []

    def test_undecorated_child_is_ignored(self, builder):
        card = builder.add("div", builder.body, (0, 0, 200, 200), style=RADIUS_20)
        builder.add("div", card, (5, 5, 190, 190))
        assert find_incoherent_corners(builder.build()) == []

    def test_corner_insets(self):
        insets = get_corner_insets(Rect.from_xywh(0, 0, 100, 100), Rect.from_xywh(4, 8, 90, 90))
        assert insets == {"top-left": 4, "top-right": 6, "bottom-right": 2, "bottom-left": 2}


class TestSpaceMisuse:
    """Tests for find_space_misuse."""

    def test_content_flush_top_left(self, builder):
        container = builder.add("div", builder.body, (100, 100, 300, 250))
        builder.add("div", container, (100, 100, 100, 80))
        violations = find_space_misuse(builder.build())
        assert _messages_for(violations, container) == [
            "Irregular spacing: content is flush with left edge, 200px gap on right; "
            "content is flush with top edge, 170px gap on bottom"
        ]

    def test_centered_narrow_content(self, builder):
        container = builder.add("div", builder.body, (0, 0, 400, 100))
        builder.add("div", container, (160, 10, 80, 80))
        violations = find_space_misuse(builder.build())
        assert _messages_for(violations, container) == [
            "Irregular spacing: content fills only 20% of horizontal space (320px unused)"
        ]

    def test_gap_ratio(self, builder):
        container = builder.add("div", builder.body, (0, 0, 300, 100))
        builder.add("div", container, (10, 10, 60, 80))
        violations = find_space_misuse(builder.build())
        assert _messages_for(violations, container) == [
            "Irregular spacing: right gap (230px) is 23.0x larger than left (10px)"
        ]

    def test_balanced_content_is_silent(self, builder):
        container = builder.add("div", builder.body, (0, 0, 300, 250))
        builder.add("div", container, (100, 85, 100, 80))
        assert _messages_for(find_space_misuse(builder.build()), container) == []

    def test_gap_filled_by_sibling_is_silent(self, builder):
        container = builder.add("div", builder.body, (0, 0, 300, 100))
        builder.add("div", container, (0, 10, 80, 80))
        builder.add("div", builder.body, (300, 0, 200, 100))
        violations = find_space_misuse(builder.build())
        assert not any("gap on right" in m for m in _messages_for(violations, container))

    def test_grid_is_not_a_leaf_container(self, builder):
        container = builder.add("div", builder.body, (0, 0, 300, 250), style={"display": "grid"})
        builder.add("div", container, (0, 0, 100, 80))
        snapshot = builder.build()
        assert is_leaf_container(snapshot.node(container)) is False


class TestUnexpectedScrollbar:
    """Tests for find_unexpected_scrollbars."""

    def test_small_horizontal_scroll(self, builder):
        box = builder.add("div", builder.body, (0, 0, 200, 100), style={"overflow-x": "auto"}, scroll_size=(205, 100))
        violations = find_unexpected_scrollbars(builder.build())
        assert _messages_for(violations, box) == [
            "Unexpected horizontal scrollbar: element scrolls 5px (likely a layout bug)"
        ]

    def test_small_vertical_scroll(self, builder):
        box = builder.add(
            "div", builder.body, (0, 0, 200, 100), style={"overflow-y": "scroll"}, scroll_size=(200, 120)
        )
        assert _messages_for(find_unexpected_scrollbars(builder.build()), box) == [
            "Unexpected vertical scrollbar: element scrolls 20px (likely a layout bug)"
        ]

    def test_both_axes(self, builder):
        box = builder.add(
            "div",
            builder.body,
            (0, 0, 200, 100),
            style={"overflow-x": "auto", "overflow-y": "auto"},
            scroll_size=(203, 110),
        )
        assert _messages_for(find_unexpected_scrollbars(builder.build()), box) == [
            "Unexpected scrollbar: element scrolls 3px horizontally and 10px vertically (likely a layout bug)"
        ]

    def test_real_scrolling_is_silent(self, builder):
        builder.add("div", builder.body, (0, 0, 200, 100), style={"overflow-y": "auto"}, scroll_size=(200, 121))
        assert find_unexpected_scrollbars(builder.build()) == []

    def test_clipping_overflow_is_not_a_scrollbar(self, builder):
        builder.add("div", builder.body, (0, 0, 200, 100), style={"overflow-x": "hidden"}, scroll_size=(205, 100))
        assert find_unexpected_scrollbars(builder.build()) == []

    def test_document_scroller_is_checked_outside_scope(self, builder):
        builder.set_style(builder.html, overflow_x="auto")
        builder.nodes[builder.html]["scroll"] = [1290, 720, 1280, 720]
        builder.nodes[builder.html]["inScope"] = False
        builder.add(
            "div",
            builder.body,
            (0, 0, 200, 100),
            style={"overflow-x": "auto"},
            scroll_size=(205, 100),
            in_scope=False,
        )
        violations = find_unexpected_scrollbars(builder.build())
        assert [v.element.index for v in violations] == [builder.html]
