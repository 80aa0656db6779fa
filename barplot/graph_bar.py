import logging
from typing import List, Optional, Sequence

import svgwrite

from .chart_config import ChartConfig, clamp
from .events import FocusTarget, SceneHook
from .layout import ResolvedLayout, compute_layout, heading_gap
from .overlays import GRAYSCALE_FILTER_ID, overlay_origin

logger = logging.getLogger(__name__)

DASH_ARRAYS = {"dashed": "8 4", "dotted": "2 2"}


class BarChartEngine:
    def __init__(self, config: ChartConfig, bars: Sequence, transparent: bool = False,
                 measured_width: Optional[float] = None, layout: Optional[ResolvedLayout] = None):
        self.cfg = config
        self.bars = list(bars)
        self.transparent = transparent
        self.layout = layout if layout is not None else compute_layout(config, self.bars, measured_width)
        self.hooks: List[SceneHook] = []

        lay = self.layout
        self.width_pixels = lay.width
        self.height_pixels = lay.height
        self.margin_top = lay.margins.top
        self.margin_right = lay.margins.right
        self.margin_bottom = lay.margins.bottom
        self.margin_left = lay.margins.left
        self.grid_width = lay.content.width
        self.grid_height = lay.content.height

        self.dwg = svgwrite.Drawing(size=(lay.width, lay.height), viewBox=f"0 0 {lay.width} {lay.height}",
                                    debug=False)
        self.dwg["role"] = "img"
        self.dwg.set_desc(title=config.title or "Bar plot")

    # --- Helpers ---
    def _hook(self, element_id: str, keys, focus: Optional[FocusTarget] = None) -> dict:
        """Register an interactive element and return the attributes that tag it in the SVG."""
        self.hooks.append(SceneHook(element_id, tuple(keys), focus))
        attrs = {"id": element_id, "data_highlight": " ".join(keys)}
        if focus is not None:
            attrs["data_focus"] = focus.kind if focus.bar_id is None else f"{focus.kind}:{focus.bar_id}"
        return attrs

    def _format_number(self, val: float) -> str:
        if abs(val) < 1e-10: val = 0.0
        if abs(val - round(val)) < 1e-9:
            return f"{int(round(val)):,}"
        return f"{val:,.2f}".rstrip("0").rstrip(".")

    def _format_value(self, val: float) -> str:
        if float(val).is_integer():
            return str(int(val))
        return repr(float(val))

    def _value_to_px(self, value: float) -> float:
        """Screen coordinate of a value along the value axis."""
        box, scale = self.layout.content, self.layout.scale
        if self.cfg.is_horizontal:
            return box.x + scale.ratio(value) * box.width
        return box.y + box.height - scale.ratio(value) * box.height

    def _text(self, text, x, y, font_size, fill, anchor="middle", rotation=0.0, **extra):
        el = self.dwg.text(text, insert=(x, y), text_anchor=anchor, fill=fill, font_size=font_size,
                           font_family=self.cfg.font_family, **extra)
        if rotation:
            el["transform"] = f"rotate({rotation} {x} {y})"
        return el

    # ==========================================
    # 1. BACKGROUND & HEADINGS
    # ==========================================
    def draw_background(self):
        if self.transparent:
            return
        self.dwg.add(self.dwg.rect(insert=(0, 0), size=(self.width_pixels, self.height_pixels),
                                   fill=self.cfg.background_color, data_role="background",
                                   **self._hook("background", ["chartBasics"])))

    def title_position(self):
        c = self.cfg
        offset = clamp(c.title_font_size * 0.75, 12, max(self.margin_top - 8, 12))
        y = self.margin_top - offset + c.title_offset_y
        x = clamp(self.width_pixels / 2 + c.title_offset_x, self.margin_left,
                  self.width_pixels - self.margin_right)
        return x, y

    def subtitle_position(self):
        c = self.cfg
        if c.title:
            _, title_y = self.title_position()
            base_y = title_y + c.title_font_size + heading_gap(c)
        else:
            base_y = self.margin_top - clamp(c.subtitle_font_size * 0.6, 10, max(self.margin_top - 8, 10))
        x = clamp(self.width_pixels / 2 + c.subtitle_offset_x, self.margin_left,
                  self.width_pixels - self.margin_right)
        return x, base_y + c.subtitle_offset_y

    def draw_headings(self):
        c = self.cfg
        if c.title:
            x, y = self.title_position()
            self.dwg.add(self._text(
                c.title, x, y, c.title_font_size, c.title_color or c.text_color,
                font_weight=700 if c.title_bold else 500,
                font_style="italic" if c.title_italic else "normal",
                text_decoration="underline" if c.title_underline else "none",
                **self._hook("chart-title", ["title"], FocusTarget("chartTitle"))))
        if c.subtitle:
            x, y = self.subtitle_position()
            self.dwg.add(self._text(
                c.subtitle, x, y, c.subtitle_font_size, c.subtitle_color or c.text_color,
                font_weight=600 if c.subtitle_bold else 400,
                font_style="italic" if c.subtitle_italic else "normal",
                text_decoration="underline" if c.subtitle_underline else "none",
                **self._hook("chart-subtitle", ["title"], FocusTarget("chartSubtitle"))))

    # ==========================================
    # 2. PATTERNS & GRID
    # ==========================================
    def draw_pattern_defs(self):
        for tile in self.layout.patterns:
            pat = self.dwg.pattern(id=tile.id, size=(tile.size, tile.size), patternUnits="userSpaceOnUse")
            pat.add(self.dwg.rect(insert=(0, 0), size=(tile.size, tile.size), fill=tile.background,
                                  opacity=tile.background_opacity))
            for d, width in tile.strokes:
                pat.add(self.dwg.path(d=d, stroke=tile.accent_color, stroke_opacity=tile.accent_opacity,
                                      stroke_width=width))
            for cx, cy, r in tile.dots:
                pat.add(self.dwg.circle(center=(cx, cy), r=r, fill=tile.accent_color,
                                        fill_opacity=tile.accent_opacity))
            self.dwg.defs.add(pat)

    def _grid_line(self, axis, start, end):
        line = self.dwg.line(start=start, end=end, stroke=axis.grid_line_color,
                             stroke_width=axis.grid_line_width, stroke_opacity=axis.grid_line_opacity)
        dash = DASH_ARRAYS.get(axis.grid_line_style)
        if dash:
            line["stroke-dasharray"] = dash
        self.dwg.add(line)

    def draw_grid_lines(self):
        c = self.cfg
        x_start, x_end = self.margin_left, self.width_pixels - self.margin_right
        y_start, y_end = self.margin_top, self.height_pixels - self.margin_bottom
        ticks = self.layout.scale.ticks

        if c.y_axis.show_grid_lines:
            for tick in ticks:
                py = self.layout.content.y + self.grid_height - self.layout.scale.ratio(tick) * self.grid_height
                self._grid_line(c.y_axis, (x_start, py), (x_end, py))

        if c.x_axis.show_grid_lines:
            if c.is_horizontal:
                for tick in ticks:
                    px = self._value_to_px(tick)
                    self._grid_line(c.x_axis, (px, y_start), (px, y_end))
            else:
                # Separators between category bands
                band = self.layout.band
                for i in range(1, len(self.layout.bars)):
                    px = self.margin_left + band * i
                    self._grid_line(c.x_axis, (px, y_start), (px, y_end))

    # ==========================================
    # 3. BARS
    # ==========================================
    def draw_bars(self):
        for geo in self.layout.bars:
            group = self.dwg.g(**self._hook(f"bar-{geo.bar_id}", ["data", "design"]))
            style = dict(fill=geo.fill, fill_opacity=geo.fill_opacity, stroke=geo.border_color,
                         stroke_width=geo.border_width, stroke_opacity=geo.border_opacity)
            if geo.path:
                group.add(self.dwg.path(d=geo.path, stroke_linejoin="round", **style))
            else:
                group.add(self.dwg.rect(insert=(geo.x, geo.y), size=(geo.width, geo.height), **style))
            self.dwg.add(group)

    def draw_value_labels(self):
        c = self.cfg
        if not c.show_value_labels:
            return
        for geo in self.layout.bars:
            extra = {"dominant_baseline": "middle"} if c.is_horizontal else {}
            self.dwg.add(self._text(
                self._format_value(geo.value), geo.label_x, geo.label_y, c.value_label_font_size, c.text_color,
                anchor="start" if c.is_horizontal else "middle", font_weight=500,
                **extra,
                **self._hook(f"value-label-{geo.bar_id}", ["data", "valueLabels"],
                             FocusTarget("barValue", geo.bar_id))))

    def draw_error_bars(self):
        for geo in self.layout.bars:
            eb = geo.error_bar
            if eb is None:
                continue
            group = self.dwg.g(**self._hook(f"error-bar-{geo.bar_id}", ["errorBars"]))
            stroke = dict(stroke=eb.color, stroke_width=eb.stroke_width, stroke_linecap="round")
            group.add(self.dwg.line(start=(eb.x1, eb.y1), end=(eb.x2, eb.y2), **stroke))
            for start, end in eb.caps():
                group.add(self.dwg.line(start=start, end=end, **stroke))
            self.dwg.add(group)

    # ==========================================
    # 4. AXES & LABELS
    # ==========================================
    def draw_axis_lines(self):
        c = self.cfg
        bottom = self.margin_top + self.grid_height
        if c.x_axis.show_axis_lines:
            self.dwg.add(self.dwg.line(start=(self.margin_left, bottom),
                                       end=(self.width_pixels - self.margin_right, bottom),
                                       stroke=c.x_axis.axis_line_color, stroke_width=c.x_axis.axis_line_width,
                                       **self._hook("x-axis-line", ["xAxis"])))
        if c.y_axis.show_axis_lines:
            self.dwg.add(self.dwg.line(start=(self.margin_left, self.margin_top),
                                       end=(self.margin_left, bottom),
                                       stroke=c.y_axis.axis_line_color, stroke_width=c.y_axis.axis_line_width,
                                       **self._hook("y-axis-line", ["yAxis"])))

    def draw_axis_titles(self):
        c = self.cfg
        bottom = self.margin_top + self.grid_height

        if c.x_axis.title:
            fs = c.x_axis.title_font_size
            x = (self.width_pixels - self.margin_right + self.margin_left) / 2
            y = clamp(bottom + fs + 12 + c.x_axis_title_offset_y, fs, self.height_pixels - 8)
            self.dwg.add(self._text(c.x_axis.title, x, y, fs, c.x_axis.axis_line_color, font_weight=500,
                                    **self._hook("x-axis-title", ["xAxis"], FocusTarget("xAxisTitle"))))

        if c.y_axis.title:
            base_x = clamp(self.margin_left - 24, 16, 80)
            x = clamp(base_x + c.y_axis_title_offset_x, 8, self.margin_left + 160)
            y = self.margin_top + self.grid_height / 2
            self.dwg.add(self._text(c.y_axis.title, x, y, c.y_axis.title_font_size, c.y_axis.axis_line_color,
                                    rotation=-90, font_weight=500,
                                    **self._hook("y-axis-title", ["yAxis"], FocusTarget("yAxisTitle"))))

    def _category_label(self, axis, geo, x, y, anchor):
        self.dwg.add(self._text(geo.label, x, y, axis.tick_font_size, axis.tick_label_color, anchor=anchor,
                                rotation=axis.tick_label_orientation,
                                **self._hook(f"category-tick-{geo.bar_id}", ["data"],
                                             FocusTarget("barLabel", geo.bar_id))))

    def _value_tick(self, axis, axis_key, i, tick, x, y, anchor):
        self.dwg.add(self._text(self._format_number(tick), x, y, axis.tick_font_size, axis.tick_label_color,
                                anchor=anchor, rotation=axis.tick_label_orientation,
                                **self._hook(f"value-tick-{i}", [axis_key])))

    def draw_tick_labels(self):
        c = self.cfg
        xa, ya = c.x_axis, c.y_axis
        bottom = self.margin_top + self.grid_height
        x_tick_y = min(bottom + xa.tick_font_size + 6, self.height_pixels - 4) + xa.tick_offset_y
        y_tick_x = self.margin_left - 10 + ya.tick_offset_x

        if c.is_horizontal:
            if ya.show_tick_labels:
                for geo in self.layout.bars:
                    self._category_label(ya, geo, y_tick_x, geo.center + ya.tick_font_size / 3 + ya.tick_offset_y,
                                         "end")
            if xa.show_tick_labels:
                for i, tick in enumerate(self.layout.scale.ticks):
                    self._value_tick(xa, "xAxis", i, tick, self._value_to_px(tick) + xa.tick_offset_x, x_tick_y,
                                     "middle")
        else:
            if ya.show_tick_labels:
                for i, tick in enumerate(self.layout.scale.ticks):
                    py = self._value_to_px(tick) + ya.tick_font_size / 3 + ya.tick_offset_y
                    self._value_tick(ya, "yAxis", i, tick, y_tick_x, py, "end")
            if xa.show_tick_labels:
                for geo in self.layout.bars:
                    self._category_label(xa, geo, geo.center + xa.tick_offset_x, x_tick_y, "middle")

    def draw_plot_box(self):
        c = self.cfg
        if not c.show_plot_box:
            return
        self.dwg.add(self.dwg.rect(insert=(self.margin_left, self.margin_top), size=(self.grid_width, self.grid_height),
                                   fill="none", stroke=c.plot_box_color, stroke_width=c.plot_box_line_width,
                                   **self._hook("plot-box", ["chartBasics"])))

    # ==========================================
    # 5. OVERLAYS
    # ==========================================
    def draw_overlay_defs(self):
        if not any(img.grayscale for img in self.cfg.additional_image_elements):
            return
        gray = self.dwg.filter(id=GRAYSCALE_FILTER_ID)
        gray.feColorMatrix(type_="saturate", values="0")
        self.dwg.defs.add(gray)

    def draw_overlays(self):
        """Free text and images, placed relative to the top-left of the plot area."""
        margins = self.layout.margins
        for item in self.cfg.additional_text_elements:
            x, y = overlay_origin(margins, item.x, item.y)
            el = self.dwg.text(item.text, insert=(x, y), fill=item.color, font_size=item.font_size,
                               font_family=item.font_family, fill_opacity=item.opacity,
                               font_weight=700 if item.bold else 400,
                               font_style="italic" if item.italic else "normal",
                               text_decoration="underline" if item.underline else "none",
                               id=f"overlay-{item.id}")
            if item.rotation:
                el["transform"] = f"rotate({item.rotation} {x} {y})"
            self.dwg.add(el)

        for item in self.cfg.additional_image_elements:
            if not item.src:
                continue
            x, y = overlay_origin(margins, item.x, item.y)
            el = self.dwg.image(item.src, insert=(x, y), size=(item.width, item.height), opacity=item.opacity,
                                id=f"overlay-{item.id}")
            if item.grayscale:
                el["filter"] = f"url(#{GRAYSCALE_FILTER_ID})"
            if item.rotation:
                el["transform"] = f"rotate({item.rotation} {x + item.width / 2} {y + item.height / 2})"
            self.dwg.add(el)

    # ==========================================
    # 6. COMPOSE
    # ==========================================
    def draw(self):
        self.draw_background()
        self.draw_headings()
        self.draw_pattern_defs()
        self.draw_grid_lines()
        self.draw_bars()
        self.draw_value_labels()
        self.draw_error_bars()
        self.draw_axis_lines()
        self.draw_axis_titles()
        self.draw_tick_labels()
        self.draw_plot_box()
        self.draw_overlay_defs()
        self.draw_overlays()
        logger.debug("Composed scene with %d interactive elements", len(self.hooks))
        return self

    def get_svg_string(self) -> str:
        return self.dwg.tostring()

    def get_svg_document(self) -> str:
        """Standalone SVG file contents, XML declaration included."""
        return '<?xml version="1.0" encoding="utf-8" ?>\n' + self.dwg.tostring()


def build_scene(config: ChartConfig, bars: Sequence, transparent: bool = False,
                measured_width: Optional[float] = None) -> BarChartEngine:
    return BarChartEngine(config, bars, transparent=transparent, measured_width=measured_width).draw()
