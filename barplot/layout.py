import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from .chart_config import ChartConfig, clamp, positive_setting, setting_value
from .geometry import band_size, build_bar_geometry
from .patterns import build_pattern_tile
from .scale import AxisScale, resolve_axis_scale

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 960.0
MIN_AUTO_HEIGHT = 320.0
MIN_CONTENT_WIDTH = 120.0
MIN_CONTENT_HEIGHT = 160.0


@dataclass(frozen=True)
class Margins:
    top: float
    right: float
    bottom: float
    left: float


@dataclass(frozen=True)
class ContentBox:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class AutoValues:
    """Computed defaults shown next to Auto inputs."""
    width: float
    height: float
    axis_min: float
    axis_max: float
    tick_step: Optional[float]


@dataclass(frozen=True)
class ResolvedLayout:
    width: float
    height: float
    margins: Margins
    content: ContentBox
    scale: AxisScale
    band: float
    bars: Tuple = ()
    patterns: Tuple = ()

    @property
    def auto_values(self) -> AutoValues:
        return AutoValues(self.width, self.height, self.scale.axis_min, self.scale.axis_max, self.scale.tick_step)


# ==========================================
# DIMENSIONS
# ==========================================
def resolve_dimensions(config: ChartConfig, measured_width: Optional[float] = None) -> Tuple[float, float]:
    ratio = config.clamped_aspect_ratio
    custom_w = config.custom_width.value if positive_setting(config.custom_width) else None
    custom_h = config.custom_height.value if positive_setting(config.custom_height) else None

    if custom_w is not None and custom_h is not None:
        return custom_w, custom_h
    if custom_w is not None:
        return custom_w, custom_w * ratio
    if custom_h is not None:
        return custom_h / ratio, custom_h

    width = measured_width if measured_width and measured_width > 0 else DEFAULT_WIDTH
    return width, max(width * ratio, MIN_AUTO_HEIGHT)


# ==========================================
# MARGINS
# ==========================================
def heading_gap(config: ChartConfig) -> float:
    if config.title and config.subtitle:
        return max(config.subtitle_font_size * 0.5, 12)
    return 0.0


def solve_margins(config: ChartConfig, width: float, height: float) -> Margins:
    """
    Space around the plot area for headings, tick labels and axis titles.
    Text sizes are estimated from font sizes, nothing is measured.
    """
    pad = config.canvas_padding
    has_title = bool(config.title)
    has_subtitle = bool(config.subtitle)

    # --- Top Margin ---
    if has_title or has_subtitle:
        title_block = config.title_font_size * 1.6 if has_title else 0.0
        subtitle_block = config.subtitle_font_size * 1.4 if has_subtitle else 0.0
        raised = max(max(-config.title_offset_y, 0) if has_title else 0.0,
                     max(-config.subtitle_offset_y, 0) if has_subtitle else 0.0)
        top_extra = title_block + subtitle_block + heading_gap(config) + raised
    else:
        top_extra = 16.0
    # Value labels pushed upward need room above the tallest bar
    label_extra = abs(config.value_label_offset_y) if config.value_label_offset_y < 0 else 0.0

    # --- Bottom Margin ---
    if config.x_axis.show_tick_labels:
        bottom_extra = config.x_axis.tick_font_size + 24
    else:
        bottom_extra = 16.0
    bottom_extra += max(config.x_axis_title_offset_y, 0)

    # --- Left Margin ---
    if config.y_axis.show_tick_labels:
        left_extra = config.y_axis.tick_font_size + 28
    else:
        left_extra = 16.0
    left_extra += max(-config.y_axis_title_offset_x, 0)

    max_v = height / 2 - 20
    max_h = width / 2 - 20
    return Margins(
        top=max(clamp(pad + top_extra + label_extra, 24, max_v), 0.0),
        right=max(clamp(pad + 12, 24, max_h), 0.0),
        bottom=max(clamp(pad + bottom_extra, 32, max_v), 0.0),
        left=max(clamp(pad + left_extra, 32, max_h), 0.0),
    )


def content_box(width: float, height: float, margins: Margins) -> ContentBox:
    return ContentBox(
        x=margins.left,
        y=margins.top,
        width=max(width - margins.left - margins.right, MIN_CONTENT_WIDTH),
        height=max(height - margins.top - margins.bottom, MIN_CONTENT_HEIGHT),
    )


# ==========================================
# PIPELINE
# ==========================================
def compute_layout(config: ChartConfig, bars: Sequence, measured_width: Optional[float] = None,
                   on_auto_values: Optional[Callable[[AutoValues], None]] = None) -> ResolvedLayout:
    width, height = resolve_dimensions(config, measured_width)
    scale = resolve_axis_scale(bars, config.show_error_bars,
                               user_min=setting_value(config.y_axis_min),
                               user_max=setting_value(config.y_axis_max),
                               tick_step=setting_value(config.y_axis_tick_step))
    margins = solve_margins(config, width, height)
    box = content_box(width, height, margins)

    geometry = build_bar_geometry(config, bars, box, scale, width, margins)
    tiles = []
    for bar, geo in zip(bars, geometry):
        tile = build_pattern_tile(bar, geo.opacity)
        if tile is not None:
            tiles.append(tile)

    logger.debug("Layout %sx%s, margins %s, %d bars", width, height, margins, len(geometry))
    layout = ResolvedLayout(width=width, height=height, margins=margins, content=box, scale=scale,
                            band=band_size(config, box, len(bars)), bars=tuple(geometry), patterns=tuple(tiles))
    if on_auto_values is not None:
        on_auto_values(layout.auto_values)
    return layout
