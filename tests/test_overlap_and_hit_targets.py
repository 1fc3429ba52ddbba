"""Tests for the overlapped-elements and hit-target-obscured detectors."""

import pytest

from layoutlint.dom.views import Rect, Viewport
from layoutlint.rules.hit_target_obscured import (
    collect_hit_targets,
    find_obscured_targets,
    get_sample_points,
)
from layoutlint.rules.overlapped_elements import find_overlapped_elements, rects_overlap


class TestOverlappedElements:
    """Tests for find_overlapped_elements."""

    def test_negative_margin_overlap(self, builder):
        first = builder.add("div", builder.body, (0, 0, 100, 100))
        second = builder.add("div", builder.body, (0, 45, 100, 100), style={"margin-top": "-55px"})
        violations = find_overlapped_elements(builder.build())
        assert len(violations) == 1
        assert violations[0].message == "Elements overlap by 55% of the smaller element's area"
        assert violations[0].element.index == first
        assert violations[0].relations[0].element.index == second
        assert violations[0].relations[0].description == "Overlapping element"

    def test_small_negative_margin_overlap_is_tolerated(self, builder):
        builder.add("div", builder.body, (0, 0, 100, 100))
        builder.add("div", builder.body, (0, 70, 100, 100), style={"margin-top": "-30px"})
        assert find_overlapped_elements(builder.build()) == []

    def test_pair_reported_once(self, builder):
        builder.add("div", builder.body, (0, 0, 100, 100))
        builder.add("div", builder.body, (20, 20, 100, 100))
        violations = find_overlapped_elements(builder.build())
        pairs = [frozenset((v.element.index, v.relations[0].element.index)) for v in violations]
        assert len(pairs) == 1
        assert len(set(pairs)) == len(pairs)

    def test_nested_elements_do_not_overlap(self, builder):
        outer = builder.add("div", builder.body, (0, 0, 200, 200))
        builder.add("div", outer, (10, 10, 100, 100))
        assert find_overlapped_elements(builder.build()) == []

    def test_positioned_elements_are_skipped(self, builder):
        builder.add("div", builder.body, (0, 0, 100, 100))
        builder.add("div", builder.body, (20, 20, 100, 100), style={"position": "absolute"})
        assert find_overlapped_elements(builder.build()) == []

    def test_only_root_cause_is_reported(self, builder):
        a = builder.add("div", builder.body, (0, 0, 200, 200))
        b = builder.add("div", builder.body, (0, 150, 200, 200))
        builder.add("div", a, (0, 120, 200, 80))
        violations = find_overlapped_elements(builder.build())
        assert [(v.element.index, v.relations[0].element.index) for v in violations] == [(a, b)]

    def test_float_with_wrapping_text_is_skipped(self, builder):
        builder.add("div", builder.body, (0, 0, 100, 100), style={"float": "left"})
        builder.add("p", builder.body, (0, 0, 300, 100), text="Text flowing around the floated box")
        assert find_overlapped_elements(builder.build()) == []

    def test_float_over_box_without_text_is_reported(self, builder):
        floated = builder.add("div", builder.body, (0, 0, 100, 100), style={"float": "left"})
        builder.add("div", builder.body, (0, 0, 300, 100))
        violations = find_overlapped_elements(builder.build())
        assert [(v.element.index, v.message) for v in violations] == [
            (floated, "Elements overlap by 100% of the smaller element's area")
        ]

    @pytest.mark.parametrize(
        "height,offset,expected",
        [
            # 11px strip, 6% of the smaller box
            (200, 189, []),
            # 10px strip, 20% of the smaller box
            (50, 40, ["Elements overlap by 20% of the smaller element's area"]),
        ],
    )
    def test_thin_overlap_needs_twenty_percent(self, builder, height, offset, expected):
        builder.add("div", builder.body, (0, 0, 200, height))
        builder.add("div", builder.body, (0, offset, 200, height))
        assert [v.message for v in find_overlapped_elements(builder.build())] == expected

    def test_small_elements_are_ignored(self, builder):
        builder.add("div", builder.body, (0, 0, 40, 40))
        builder.add("div", builder.body, (10, 10, 40, 40))
        assert find_overlapped_elements(builder.build()) == []

    def test_rects_overlap_threshold(self):
        a = Rect.from_xywh(0, 0, 100, 100)
        assert rects_overlap(a, Rect.from_xywh(95, 0, 100, 100)) is False
        assert rects_overlap(a, Rect.from_xywh(94, 0, 100, 100)) is True


class TestHitTargetObscured:
    """Tests for the hit target sampling and evaluation."""

    def test_sample_points_inset_and_clipped_to_viewport(self):
        points = get_sample_points(Rect.from_xywh(0, 0, 20, 20), Viewport(15, 100))
        assert (10, 10) in points
        assert (2, 2) in points
        assert all(x < 15 for x, _ in points)

    def test_degenerate_rect_uses_center(self):
        assert get_sample_points(Rect.from_xywh(10, 10, 3, 3), Viewport(100, 100)) == [(11.5, 11.5)]

    def test_collect_skips_disabled_and_inert(self, builder):
        ok = builder.add("button", builder.body, (0, 0, 50, 20))
        builder.add("button", builder.body, (0, 30, 50, 20), attrs={"disabled": ""})
        builder.add("button", builder.body, (0, 60, 50, 20), style={"pointer-events": "none"})
        builder.add("div", builder.body, (0, 90, 50, 20), attrs={"role": "button", "tabindex": "-1"})
        builder.add("a", builder.body, (0, 900, 50, 20))
        targets = collect_hit_targets(builder.build())
        assert [t.element.index for t in targets] == [ok]
        assert len(targets[0].points) == 9

    def test_covered_button_is_reported(self, builder):
        button = builder.add("button", builder.body, (0, 0, 100, 40))
        cover = builder.add(
            "div", builder.body, (0, 0, 100, 40), style={"background-color": "rgb(255, 255, 255)"}
        )
        snapshot = builder.build()
        targets = collect_hit_targets(snapshot)
        stacks = [[cover, button, builder.body] for _ in targets[0].points]
        violations = find_obscured_targets(snapshot, targets, stacks)
        assert len(violations) == 1
        assert violations[0].message == "Interactive element is ~100% obscured and may not be clickable"
        assert violations[0].relations[0].element.index == cover
        assert violations[0].relations[0].description == "Obscuring element"

    def test_transparent_overlay_is_ignored(self, builder):
        button = builder.add("button", builder.body, (0, 0, 100, 40))
        overlay = builder.add("div", builder.body, (0, 0, 100, 40))
        snapshot = builder.build()
        targets = collect_hit_targets(snapshot)
        stacks = [[overlay, button] for _ in targets[0].points]
        assert find_obscured_targets(snapshot, targets, stacks) == []

    def test_label_and_descendants_do_not_obscure(self, builder):
        label = builder.add("label", builder.body, (0, 0, 200, 40), attrs={"for": "agree"}, text="I agree")
        box = builder.add("input", builder.body, (0, 0, 20, 20), attrs={"id": "agree"})
        snapshot = builder.build()
        targets = [t for t in collect_hit_targets(snapshot) if t.element.index == box]
        stacks = [[label, box] for _ in targets[0].points]
        assert find_obscured_targets(snapshot, targets, stacks) == []

    def test_partly_obscured_below_half_is_silent(self, builder):
        button = builder.add("button", builder.body, (0, 0, 100, 40))
        cover = builder.add("div", builder.body, (0, 0, 30, 40), style={"background-color": "rgb(0, 0, 0)"})
        snapshot = builder.build()
        targets = collect_hit_targets(snapshot)
        points = targets[0].points
        stacks = [[cover, button] if i < 4 else [button] for i in range(len(points))]
        assert find_obscured_targets(snapshot, targets, stacks) == []
        stacks = [[cover, button] if i < 5 else [button] for i in range(len(points))]
        violations = find_obscured_targets(snapshot, targets, stacks)
        assert violations[0].message == "Interactive element is ~56% obscured and may not be clickable"
