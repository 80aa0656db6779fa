from dataclasses import replace

import pytest

from barplot.bar_data import create_bar, reset_data
from barplot.chart_config import AUTO, ChartConfig, Manual
from barplot.layout import (AutoValues, Margins, compute_layout, content_box, heading_gap, resolve_dimensions,
                            solve_margins)


class TestResolveDimensions:
    def test_default_canvas(self):
        assert resolve_dimensions(ChartConfig()) == (960, pytest.approx(576))

    def test_measured_width_with_height_floor(self):
        assert resolve_dimensions(ChartConfig(), measured_width=400) == (400, 320)

    def test_width_only_drives_height(self):
        w, h = resolve_dimensions(ChartConfig(custom_width=Manual(500)))
        assert (w, h) == (500, pytest.approx(300))

    def test_height_only_drives_width(self):
        w, h = resolve_dimensions(ChartConfig(custom_height=Manual(300)))
        assert (w, h) == (pytest.approx(500), 300)

    def test_both_pinned_are_verbatim(self):
        config = ChartConfig(custom_width=Manual(700), custom_height=Manual(100), aspect_ratio=1.5)
        assert resolve_dimensions(config) == (700, 100)
        assert not config.aspect_ratio_active

    def test_non_positive_custom_is_auto(self):
        config = ChartConfig(custom_width=Manual(-5), custom_height=Manual(float("nan")))
        assert resolve_dimensions(config) == (960, pytest.approx(576))
        assert config.aspect_ratio_active

    def test_aspect_ratio_is_clamped(self):
        assert resolve_dimensions(ChartConfig(aspect_ratio=5)) == (960, pytest.approx(1920))
        assert resolve_dimensions(ChartConfig(aspect_ratio=0.01)) == (960, 320)


class TestMargins:
    def test_default_margins(self):
        m = solve_margins(ChartConfig(), 960, 576)
        assert m.top == pytest.approx(24 + 24 * 1.6)
        assert m.bottom == pytest.approx(24 + 12 + 24)
        assert m.left == pytest.approx(24 + 12 + 28)
        assert m.right == pytest.approx(36)

    def test_no_headings_reserve_a_strip(self):
        m = solve_margins(ChartConfig(title="", subtitle=""), 960, 576)
        assert m.top == pytest.approx(24 + 16)

    def test_heading_gap(self):
        assert heading_gap(ChartConfig(title="A", subtitle="")) == 0
        assert heading_gap(ChartConfig(title="A", subtitle="B", subtitle_font_size=16)) == 12
        assert heading_gap(ChartConfig(title="A", subtitle="B", subtitle_font_size=30)) == 15

    def test_raised_value_labels_grow_top(self):
        base = solve_margins(ChartConfig(), 960, 576)
        raised = solve_margins(ChartConfig(value_label_offset_y=-10), 960, 576)
        assert raised.top == pytest.approx(base.top + 10)

    def test_raised_title_grows_top(self):
        base = solve_margins(ChartConfig(), 960, 576)
        raised = solve_margins(ChartConfig(title_offset_y=-20), 960, 576)
        assert raised.top == pytest.approx(base.top + 20)

    def test_hidden_tick_labels_shrink_left(self):
        config = ChartConfig()
        config.y_axis.show_tick_labels = False
        assert solve_margins(config, 960, 576).left == pytest.approx(24 + 16)

    @pytest.mark.parametrize("width,height", [(30, 30), (120, 90), (200, 150), (960, 576), (3000, 2000)])
    def test_bounds(self, width, height):
        m = solve_margins(ChartConfig(subtitle="Sub", canvas_padding=60), width, height)
        for value, limit in ((m.top, height), (m.bottom, height), (m.left, width), (m.right, width)):
            assert 0 <= value <= max(limit / 2 - 20, 0)

    def test_lower_bounds_on_large_canvas(self):
        m = solve_margins(ChartConfig(title="", canvas_padding=0), 3000, 2000)
        assert m.top >= 24
        assert m.bottom >= 32
        assert m.left >= 32
        assert m.right >= 24

    def test_content_box_minimums(self):
        box = content_box(200, 150, Margins(top=55, right=36, bottom=55, left=64))
        assert box.width == 120
        assert box.height == 160
        assert box.right == 184
        assert box.bottom == 215


class TestComputeLayout:
    def test_reports_auto_values(self):
        seen = []
        layout = compute_layout(ChartConfig(), reset_data(), on_auto_values=seen.append)
        assert seen == [AutoValues(960, pytest.approx(576), 0, 10, 2)]
        assert layout.auto_values == seen[0]

    def test_one_geometry_per_bar(self):
        layout = compute_layout(ChartConfig(), reset_data(count=3))
        assert [g.bar_id for g in layout.bars] == ["1", "2", "3"]
        assert layout.band == pytest.approx(layout.content.width / 3)

    def test_empty_dataset(self):
        layout = compute_layout(ChartConfig(), [])
        assert layout.bars == ()
        assert layout.band == pytest.approx(layout.content.width)

    def test_manual_axis_overrides(self):
        config = ChartConfig(y_axis_min=Manual(0), y_axis_max=Manual(50), y_axis_tick_step=Manual(25))
        layout = compute_layout(config, reset_data())
        assert layout.scale.ticks == (0, 25, 50)

    def test_auto_overrides_follow_data(self):
        config = ChartConfig(y_axis_min=AUTO, y_axis_max=AUTO)
        assert compute_layout(config, reset_data()).scale.axis_max == 10

    def test_close_manual_bounds_do_not_break_layout(self):
        config = ChartConfig(y_axis_min=Manual(1000.0), y_axis_max=Manual(1000.0000000001))
        layout = compute_layout(config, reset_data())
        assert layout.scale.axis_min < layout.scale.axis_max

    def test_huge_values_do_not_break_layout(self):
        bars = [replace(create_bar(0), value=1.5e308), replace(create_bar(1), value=-1.5e308)]
        layout = compute_layout(ChartConfig(), bars)
        assert layout.scale.ticks == (0.0, 1.0)
        assert all(geo.height <= layout.content.height for geo in layout.bars)
