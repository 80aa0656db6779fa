import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .chart_config import ChartConfig, clamp, finite_or, resolve_numeric

MIN_BAR_THICKNESS = 4.0
MAX_CORNER_RADIUS = 96.0
MIN_VISIBLE_ERROR = 0.5


@dataclass(frozen=True)
class ErrorBar:
    x1: float
    y1: float
    x2: float
    y2: float
    cap_half: float
    color: str
    stroke_width: float
    horizontal: bool

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)

    def caps(self) -> List[Tuple[Tuple[float, float], Tuple[float, float]]]:
        """Cap segments at both ends, perpendicular to the error line."""
        if self.horizontal:
            return [((x, self.y1 - self.cap_half), (x, self.y1 + self.cap_half)) for x in (self.x1, self.x2)]
        return [((self.x1 - self.cap_half, y), (self.x1 + self.cap_half, y)) for y in (self.y1, self.y2)]


@dataclass(frozen=True)
class BarGeometry:
    bar_id: str
    label: str
    value: float
    x: float
    y: float
    width: float
    height: float
    # Center along the category axis
    center: float
    opacity: float
    border_width: float
    border_opacity: float
    border_color: str
    fill: str
    fill_opacity: float
    path: Optional[str]
    label_x: float
    label_y: float
    error_bar: Optional[ErrorBar]


# ==========================================
# ROUNDED BAR OUTLINE
# ==========================================
def _fmt(v: float) -> str:
    return f"{v:.4f}".rstrip("0").rstrip(".")


def bar_path(x: float, y: float, width: float, height: float, radius: float, style: str = "top",
             horizontal: bool = False) -> Optional[str]:
    """SVG outline for a bar with rounded corners, or None when no rounding applies."""
    r = max(min(radius, width / 2, height / 2), 0)
    if r == 0:
        return None

    right, bottom = x + width, y + height
    if style == "both":
        parts = [
            f"M {_fmt(x + r)} {_fmt(y)}",
            f"H {_fmt(right - r)}",
            f"Q {_fmt(right)} {_fmt(y)} {_fmt(right)} {_fmt(y + r)}",
            f"V {_fmt(bottom - r)}",
            f"Q {_fmt(right)} {_fmt(bottom)} {_fmt(right - r)} {_fmt(bottom)}",
            f"H {_fmt(x + r)}",
            f"Q {_fmt(x)} {_fmt(bottom)} {_fmt(x)} {_fmt(bottom - r)}",
            f"V {_fmt(y + r)}",
            f"Q {_fmt(x)} {_fmt(y)} {_fmt(x + r)} {_fmt(y)}",
            "Z",
        ]
    elif horizontal:
        # Free end of a horizontal bar is on the right
        parts = [
            f"M {_fmt(x)} {_fmt(y)}",
            f"H {_fmt(right - r)}",
            f"Q {_fmt(right)} {_fmt(y)} {_fmt(right)} {_fmt(y + r)}",
            f"V {_fmt(bottom - r)}",
            f"Q {_fmt(right)} {_fmt(bottom)} {_fmt(right - r)} {_fmt(bottom)}",
            f"H {_fmt(x)}",
            "Z",
        ]
    else:
        parts = [
            f"M {_fmt(x)} {_fmt(y + r)}",
            f"Q {_fmt(x)} {_fmt(y)} {_fmt(x + r)} {_fmt(y)}",
            f"H {_fmt(right - r)}",
            f"Q {_fmt(right)} {_fmt(y)} {_fmt(right)} {_fmt(y + r)}",
            f"V {_fmt(bottom)}",
            f"H {_fmt(x)}",
            "Z",
        ]
    return " ".join(parts)


def corner_radius(config: ChartConfig, width: float, height: float) -> float:
    requested = clamp(finite_or(config.bar_corner_radius, 0.0), 0, MAX_CORNER_RADIUS)
    return min(requested, max(height, 0.01) / 2, max(width, 0.01) / 2)


# ==========================================
# BARS
# ==========================================
def band_size(config: ChartConfig, box, count: int) -> float:
    extent = box.height if config.is_horizontal else box.width
    return extent / max(count, 1)


def bar_thickness(band: float, gap_ratio: float) -> float:
    """Bar size across its category band. Always positive and never wider than the band."""
    gap = band * clamp(finite_or(gap_ratio, 0.0), 0, 0.9)
    return min(max(band - gap, MIN_BAR_THICKNESS), band)


def _value_label_anchor(config: ChartConfig, x: float, y: float, width: float, center: float,
                        box, canvas_width: float, margins) -> Tuple[float, float]:
    font = config.value_label_font_size
    if config.is_horizontal:
        end = x + width
        base_x = max(end + font * 0.6 + 4, end + 4)
        label_x = min(base_x + config.value_label_offset_x, canvas_width - margins.right - 4)
        return label_x, center + config.value_label_offset_y

    base_y = min(y - font * 0.6 - 4, y - 4)
    label_y = max(min(base_y + config.value_label_offset_y, box.y + box.height - 4), 0)
    return center + config.value_label_offset_x, label_y


def _error_bar(config: ChartConfig, bar, center: float, box, scale) -> Optional[ErrorBar]:
    err = max(finite_or(bar.error, 0.0), 0.0)
    color = bar.border_color if config.error_bar_mode == "match" else config.error_bar_color
    stroke = max(config.error_bar_width, 0)
    cap_half = config.error_bar_cap_width / 2

    if config.is_horizontal:
        a = box.x + scale.ratio(bar.value - err) * box.width
        b = box.x + scale.ratio(bar.value + err) * box.width
        eb = ErrorBar(min(a, b), center, max(a, b), center, cap_half, color, stroke, True)
    else:
        a = box.y + box.height - scale.ratio(bar.value + err) * box.height
        b = box.y + box.height - scale.ratio(bar.value - err) * box.height
        eb = ErrorBar(center, min(a, b), center, max(a, b), cap_half, color, stroke, False)

    if not config.show_error_bars or eb.length <= MIN_VISIBLE_ERROR:
        return None
    return eb


def build_bar_geometry(config: ChartConfig, bars: Sequence, box, scale, canvas_width: float,
                       margins) -> List[BarGeometry]:
    horizontal = config.is_horizontal
    band = band_size(config, box, len(bars))
    thickness = bar_thickness(band, config.bar_gap)

    out = []
    for i, bar in enumerate(bars):
        ratio = scale.ratio(bar.value)
        if horizontal:
            x = box.x
            y = box.y + band * i + (band - thickness) / 2
            width, height = box.width * ratio, thickness
            center = y + thickness / 2
        else:
            x = box.x + band * i + (band - thickness) / 2
            height = box.height * ratio
            y = box.y + box.height - height
            width = thickness
            center = x + thickness / 2

        opacity = clamp(resolve_numeric(bar.opacity, config.bar_opacity), 0, 1)
        border_width = resolve_numeric(bar.border_width, config.global_border_width)
        if config.show_border:
            border_width = max(border_width, 0)
            border_opacity = finite_or(bar.border_opacity, 1.0)
        else:
            border_width, border_opacity = 0.0, 0.0

        # Zero-height bars still get a sliver so the outline stays valid
        draw_w, draw_h = max(width, 0.01), max(height, 0.01)
        path = bar_path(x, y, draw_w, draw_h, corner_radius(config, draw_w, draw_h),
                        config.bar_corner_style, horizontal)

        if bar.pattern == "solid":
            fill, fill_opacity = bar.fill_color, opacity
        else:
            fill, fill_opacity = f"url(#pattern-{bar.id})", 1.0

        label_x, label_y = _value_label_anchor(config, x, y, draw_w, center, box, canvas_width, margins)
        out.append(BarGeometry(
            bar_id=bar.id, label=bar.label, value=bar.value,
            x=x, y=y, width=draw_w, height=draw_h, center=center,
            opacity=opacity, border_width=border_width, border_opacity=border_opacity,
            border_color=bar.border_color, fill=fill, fill_opacity=fill_opacity, path=path,
            label_x=label_x, label_y=label_y,
            error_bar=_error_bar(config, bar, center, box, scale),
        ))
    return out
