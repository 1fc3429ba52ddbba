"""Tests for the clipped-content and container-overflow detectors."""

import pytest

from layoutlint.rules.clipped_content import find_clipped_content
from layoutlint.rules.container_overflow import find_container_overflow

HIDDEN = {"overflow-x": "hidden", "overflow-y": "hidden"}


class TestClippedContent:
    """Tests for find_clipped_content."""

    def test_long_nowrap_text_is_clipped_horizontally(self, builder):
        box = builder.add(
            "div",
            builder.body,
            (0, 0, 100, 20),
            style={**HIDDEN, "white-space": "nowrap"},
            attrs={"id": "c"},
            text_runs=[("VERY LONG TEXT THAT DOES NOT FIT", [(0, 0, 400, 20)])],
            scroll_size=(400, 20),
        )
        violations = find_clipped_content(builder.build())
        assert len(violations) == 1
        assert violations[0].element.index == box
        assert violations[0].message == "Content is clipped by 300px horizontally"

    def test_ellipsis_is_silent(self, builder):
        builder.add(
            "div",
            builder.body,
            (0, 0, 100, 20),
            style={**HIDDEN, "white-space": "nowrap", "text-overflow": "ellipsis"},
            text_runs=[("VERY LONG TEXT THAT DOES NOT FIT", [(0, 0, 400, 20)])],
            scroll_size=(400, 20),
        )
        assert find_clipped_content(builder.build()) == []

    @pytest.mark.parametrize("scroll_width,reported", [(101.0, False), (101.1, True)])
    def test_horizontal_threshold_is_one_pixel(self, builder, scroll_width, reported):
        builder.add("div", builder.body, (0, 0, 100, 50), style=HIDDEN, scroll_size=(scroll_width, 50))
        violations = find_clipped_content(builder.build())
        assert bool(violations) is reported
        if reported:
            assert violations[0].message == "Content is clipped by 1px horizontally"

    def test_both_axes(self, builder):
        builder.add("div", builder.body, (0, 0, 100, 50), style=HIDDEN, scroll_size=(150, 80))
        violations = find_clipped_content(builder.build())
        assert violations[0].message == "Content is clipped by 50px horizontally and 30px vertically"

    def test_vertical_text_tolerance_scales_with_font(self, builder):
        builder.add(
            "p",
            builder.body,
            (0, 0, 200, 40),
            style={**HIDDEN, "font-size": "20px"},
            text="Some text",
            scroll_size=(200, 43.5),
        )
        # 3.5px is below max(3, 20 * 0.2) = 4px
        assert find_clipped_content(builder.build()) == []

    def test_children_that_fit_mean_no_clipping(self, builder):
        box = builder.add("div", builder.body, (0, 0, 100, 100), style=HIDDEN, scroll_size=(120, 100))
        builder.add("div", box, (0, 0, 100, 100))
        assert find_clipped_content(builder.build()) == []

    def test_negative_margin_child_explains_overflow(self, builder):
        box = builder.add("div", builder.body, (0, 0, 100, 100), style=HIDDEN, scroll_size=(110, 100))
        builder.add("div", box, (-10, 0, 120, 50), style={"margin-left": "-10px"})
        builder.add("div", box, (0, 50, 120, 50))
        assert find_clipped_content(builder.build()) == []

    def test_intentionally_clipped_parent_skips_child(self, builder):
        parent = builder.add(
            "div", builder.body, (0, 0, 300, 300), style={**HIDDEN, "border-top-left-radius": "12px"}
        )
        builder.add("div", parent, (0, 0, 100, 50), style=HIDDEN, scroll_size=(200, 50))
        assert find_clipped_content(builder.build()) == []

    @pytest.mark.parametrize(
        "height,overflow,expected",
        [
            (200, 3, []),
            (200, 4, []),
            (200, 10, ["Content is clipped by 10px vertically"]),
            (40, 2, ["Content is clipped by 2px vertically"]),
        ],
    )
    def test_minor_crop_of_rounded_media_frame(self, builder, height, overflow, expected):
        frame = builder.add(
            "div",
            builder.body,
            (0, 0, 200, height),
            style={**HIDDEN, "border-top-left-radius": "8px"},
            scroll_size=(200, height + overflow),
        )
        builder.add("img", frame, (0, 0, 200, height + overflow))
        assert [v.message for v in find_clipped_content(builder.build())] == expected

    def test_minor_crop_needs_media(self, builder):
        frame = builder.add(
            "div",
            builder.body,
            (0, 0, 200, 200),
            style={**HIDDEN, "border-top-left-radius": "8px"},
            scroll_size=(200, 203),
        )
        builder.add("div", frame, (0, 0, 200, 203))
        assert [v.message for v in find_clipped_content(builder.build())] == ["Content is clipped by 3px vertically"]

    def test_out_of_scope_elements_are_ignored(self, builder):
        builder.add("div", builder.body, (0, 0, 100, 50), style=HIDDEN, scroll_size=(200, 50), in_scope=False)
        assert find_clipped_content(builder.build()) == []

    def test_idempotent(self, builder):
        builder.add("div", builder.body, (0, 0, 100, 50), style=HIDDEN, scroll_size=(200, 50))
        snapshot = builder.build()
        first = [(v.element.index, v.message) for v in find_clipped_content(snapshot)]
        second = [(v.element.index, v.message) for v in find_clipped_content(snapshot)]
        assert first == second


class TestContainerOverflow:
    """Tests for find_container_overflow."""

    def test_child_escaping_flex_container(self, builder):
        container = builder.add("div", builder.body, (0, 0, 200, 100), style={"display": "flex"})
        child = builder.add("div", container, (0, 0, 250, 100))
        violations = find_container_overflow(builder.build())
        assert len(violations) == 1
        assert violations[0].element.index == child
        assert violations[0].message == "Element overflows its container by 50px right"
        assert violations[0].relations[0].description == "Container"
        assert violations[0].relations[0].element.index == container

    def test_small_overflow_of_visible_container_is_tolerated(self, builder):
        container = builder.add("div", builder.body, (0, 0, 200, 100), style={"display": "flex"})
        builder.add("div", container, (0, 0, 215, 100))
        assert find_container_overflow(builder.build()) == []

    def test_unconstrained_block_container_is_skipped(self, builder):
        container = builder.add("div", builder.body, (0, 0, 200, 100))
        builder.add("div", container, (0, 0, 300, 100))
        assert find_container_overflow(builder.build()) == []

    def test_symmetric_bleed_is_skipped(self, builder):
        container = builder.add("div", builder.body, (100, 0, 200, 100), explicit=(True, False))
        builder.add("div", container, (70, 0, 260, 100))
        assert find_container_overflow(builder.build()) == []

    def test_negative_margins_explain_overflow(self, builder):
        container = builder.add("div", builder.body, (0, 0, 200, 100), style={"display": "grid"})
        builder.add("div", container, (0, 0, 230, 100), style={"margin-right": "-30px"})
        assert find_container_overflow(builder.build()) == []

    def test_positioned_children_are_skipped(self, builder):
        container = builder.add("div", builder.body, (0, 0, 200, 100), style={"display": "flex"})
        builder.add("div", container, (0, 0, 400, 100), style={"position": "absolute"})
        assert find_container_overflow(builder.build()) == []

    @pytest.mark.parametrize(
        "rect,style",
        [
            ((0, 0, 250, 100), {"position": "relative", "top": "-500px"}),
            ((0, 0, 250, 100), {"position": "relative", "left": "-9999px"}),
            ((-520, 0, 250, 100), {}),
        ],
    )
    def test_offscreen_children_are_skipped(self, builder, rect, style):
        container = builder.add("div", builder.body, (0, 0, 200, 100), style={"display": "flex"})
        builder.add("div", container, rect, style=style)
        assert find_container_overflow(builder.build()) == []

    def test_slightly_shifted_child_is_reported(self, builder):
        container = builder.add("div", builder.body, (0, 0, 200, 100), style={"display": "flex"})
        builder.add("div", container, (0, 0, 250, 100), style={"position": "relative", "top": "-499px"})
        assert [v.message for v in find_container_overflow(builder.build())] == [
            "Element overflows its container by 50px right"
        ]
