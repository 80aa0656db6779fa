import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from .overlays import ImageOverlay, TextOverlay

DEFAULT_FONT_STACK = 'Inter, "Segoe UI", system-ui, -apple-system, sans-serif'
MONO_FONT_STACK = ('"JetBrains Mono", ui-monospace, SFMono-Regular, Menlo, Monaco, Consolas, "Liberation Mono", '
                   '"Courier New", monospace')
MODERN_FONT_STACK = '"Poppins", "Segoe UI", system-ui, sans-serif'
FONT_OPTIONS: Dict[str, str] = {
    "Inter": DEFAULT_FONT_STACK,
    "JetBrains Mono": MONO_FONT_STACK,
    "Poppins": MODERN_FONT_STACK,
}

PALETTES: Dict[str, List[str]] = {
    "vibrant": ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899", "#14b8a6"],
    "cool": ["#0ea5e9", "#6366f1", "#22d3ee", "#38bdf8", "#a855f7", "#2dd4bf", "#1e3a8a"],
    "warm": ["#fb923c", "#f97316", "#ef4444", "#facc15", "#b45309", "#f87171", "#fbbf24"],
    "pastel": ["#a5b4fc", "#fbcfe8", "#fde68a", "#bbf7d0", "#fca5a5", "#c4b5fd", "#f5d0fe"],
}
DEFAULT_PALETTE = "vibrant"

ORIENTATIONS = ("vertical", "horizontal")
CORNER_STYLES = ("top", "both")
GRID_STYLES = ("solid", "dashed", "dotted")
ERROR_BAR_MODES = ("global", "match")
EXPORT_FORMATS = ("png", "svg", "pdf")

MIN_ASPECT_RATIO = 0.2
MAX_ASPECT_RATIO = 2.0


# ==========================================
# AUTO / MANUAL NUMERIC SETTINGS
# ==========================================
@dataclass(frozen=True)
class Auto:
    """Value is computed by the layout engine."""


@dataclass(frozen=True)
class Manual:
    value: float


AUTO = Auto()
NumericSetting = Union[Auto, Manual]


def to_setting(raw) -> NumericSetting:
    """None (or an existing Auto) means auto, anything numeric is a manual override."""
    if isinstance(raw, (Auto, Manual)):
        return raw
    if raw is None or isinstance(raw, bool):
        return AUTO
    try:
        return Manual(float(raw))
    except (TypeError, ValueError):
        return AUTO


def is_manual(setting: NumericSetting) -> bool:
    return isinstance(setting, Manual) and math.isfinite(setting.value)


def resolve_numeric(setting: NumericSetting, fallback: float) -> float:
    setting = to_setting(setting)
    if is_manual(setting):
        return setting.value
    return fallback


def setting_value(setting: NumericSetting) -> Optional[float]:
    """Inverse of to_setting, used when serializing."""
    if isinstance(setting, Manual):
        return setting.value
    return None


def clamp(value: float, lo: float, hi: float) -> float:
    # Upper bound wins when lo > hi
    return min(max(value, lo), hi)


def finite_or(value, fallback: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return float(value)
    return fallback


# ==========================================
# SETTINGS
# ==========================================
@dataclass
class AxisConfig:
    title: str = ""
    title_font_size: float = 16.0
    tick_font_size: float = 12.0

    # Axis line
    show_axis_lines: bool = True
    axis_line_width: float = 1.5
    axis_line_color: str = "#1f2937"

    # Tick labels
    show_tick_labels: bool = True
    tick_label_color: str = "#1f2937"
    tick_label_orientation: float = 0.0
    tick_offset_x: float = 0.0
    tick_offset_y: float = 0.0

    # Grid
    show_grid_lines: bool = True
    grid_line_style: str = "dashed"
    grid_line_width: float = 1.0
    grid_line_opacity: float = 0.6
    grid_line_color: str = "#e2e8f0"


def _default_x_axis() -> AxisConfig:
    return AxisConfig(title="Categories", show_grid_lines=False)


def _default_y_axis() -> AxisConfig:
    return AxisConfig(title="Values")


@dataclass
class ChartConfig:
    palette_name: str = DEFAULT_PALETTE
    background_color: str = "#ffffff"
    text_color: str = "#0f172a"
    font_family: str = DEFAULT_FONT_STACK
    canvas_padding: float = 24.0

    # Dimensions
    custom_width: NumericSetting = AUTO
    custom_height: NumericSetting = AUTO
    aspect_ratio: float = 0.6

    # Bars
    orientation: str = "vertical"
    bar_gap: float = 0.3
    bar_corner_radius: float = 6.0
    bar_corner_style: str = "top"
    bar_opacity: float = 0.85
    show_border: bool = True
    # Stroke width for bars without their own border width
    global_border_width: float = 2.0

    # Value labels
    show_value_labels: bool = True
    value_label_font_size: float = 14.0
    value_label_offset_x: float = 0.0
    value_label_offset_y: float = 0.0

    # Error bars
    show_error_bars: bool = True
    error_bar_mode: str = "global"
    error_bar_color: str = "#0f172a"
    error_bar_width: float = 1.5
    error_bar_cap_width: float = 12.0

    # Title
    title: str = "Barplot Studio"
    title_font_size: float = 24.0
    title_color: str = "#0f172a"
    title_bold: bool = True
    title_italic: bool = False
    title_underline: bool = False
    title_offset_x: float = 0.0
    title_offset_y: float = 0.0

    # Subtitle
    subtitle: str = ""
    subtitle_font_size: float = 16.0
    subtitle_color: str = "#475569"
    subtitle_bold: bool = False
    subtitle_italic: bool = False
    subtitle_underline: bool = False
    subtitle_offset_x: float = 0.0
    subtitle_offset_y: float = 0.0

    # Axes
    x_axis: AxisConfig = field(default_factory=_default_x_axis)
    y_axis: AxisConfig = field(default_factory=_default_y_axis)
    axes_synced: bool = False
    y_axis_min: NumericSetting = AUTO
    y_axis_max: NumericSetting = AUTO
    y_axis_tick_step: NumericSetting = AUTO

    # Offsets
    x_axis_title_offset_y: float = 0.0
    y_axis_title_offset_x: float = 0.0

    # Plot box
    show_plot_box: bool = False
    plot_box_line_width: float = 1.0
    plot_box_color: str = "#cbd5e1"

    # Export defaults
    export_format: str = "png"
    export_file_name: str = "barplot"
    export_scale: int = 2
    export_transparent: bool = False

    # Free-floating overlays
    additional_text_elements: Tuple[TextOverlay, ...] = ()
    additional_image_elements: Tuple[ImageOverlay, ...] = ()

    @property
    def palette(self) -> List[str]:
        return PALETTES.get(self.palette_name, PALETTES[DEFAULT_PALETTE])

    @property
    def is_horizontal(self) -> bool:
        return self.orientation == "horizontal"

    @property
    def clamped_aspect_ratio(self) -> float:
        return clamp(finite_or(self.aspect_ratio, 0.6), MIN_ASPECT_RATIO, MAX_ASPECT_RATIO)

    @property
    def aspect_ratio_active(self) -> bool:
        # Both dimensions pinned leaves nothing for the ratio to drive
        return not (positive_setting(self.custom_width) and positive_setting(self.custom_height))


def positive_setting(setting: NumericSetting) -> bool:
    return is_manual(setting) and setting.value > 0


def default_config() -> ChartConfig:
    return ChartConfig()
