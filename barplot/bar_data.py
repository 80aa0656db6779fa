import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from .chart_config import (AUTO, DEFAULT_PALETTE, PALETTES, ChartConfig, NumericSetting,
                           default_config)

logger = logging.getLogger(__name__)

PATTERNS = ("solid", "diagonal", "dots", "crosshatch", "vertical")
DEFAULT_BAR_COUNT = 5


@dataclass(frozen=True)
class BarDatum:
    id: str
    label: str
    value: float
    fill_color: str
    error: float = 0.0
    group: Optional[str] = None
    border_color: str = "#0f172a"
    border_opacity: float = 1.0
    # Auto falls back to ChartConfig.global_border_width / bar_opacity
    border_width: NumericSetting = AUTO
    opacity: NumericSetting = AUTO
    pattern: str = "solid"
    pattern_color: str = "#ffffff"
    pattern_opacity: float = 0.35
    pattern_size: float = 8.0


def palette_color(palette_name: str, index: int) -> str:
    colors = PALETTES.get(palette_name, PALETTES[DEFAULT_PALETTE])
    return colors[index % len(colors)]


def create_bar(index: int, palette_name: str = DEFAULT_PALETTE) -> BarDatum:
    return BarDatum(
        id=str(index + 1),
        label=f"Bar {index + 1}",
        value=10.0,
        fill_color=palette_color(palette_name, index),
    )


def reindex(bars: Sequence[BarDatum]) -> List[BarDatum]:
    """Ids follow list order: "1".."N"."""
    return [bar if bar.id == str(i + 1) else replace(bar, id=str(i + 1)) for i, bar in enumerate(bars)]


def add_bar(bars: Sequence[BarDatum], palette_name: str = DEFAULT_PALETTE) -> List[BarDatum]:
    return list(bars) + [create_bar(len(bars), palette_name)]


def remove_bar(bars: Sequence[BarDatum], bar_id: str) -> List[BarDatum]:
    remaining = [bar for bar in bars if bar.id != bar_id]
    if len(remaining) == len(bars):
        logger.debug("remove_bar: no bar with id %s", bar_id)
    return reindex(remaining)


def move_bar(bars: Sequence[BarDatum], from_index: int, to_index: int) -> List[BarDatum]:
    items = list(bars)
    if not (0 <= from_index < len(items)):
        return items
    to_index = max(0, min(to_index, len(items) - 1))
    items.insert(to_index, items.pop(from_index))
    return reindex(items)


def update_bar(bars: Sequence[BarDatum], bar_id: str, **changes) -> List[BarDatum]:
    """Replace one bar record; unknown ids leave the list untouched."""
    return [replace(bar, **changes) if bar.id == bar_id else bar for bar in bars]


def apply_palette(bars: Sequence[BarDatum], palette_name: str) -> List[BarDatum]:
    return [replace(bar, fill_color=palette_color(palette_name, i)) for i, bar in enumerate(bars)]


# --- Resets ---
def reset_data(palette_name: str = DEFAULT_PALETTE, count: int = DEFAULT_BAR_COUNT) -> List[BarDatum]:
    return [create_bar(i, palette_name) for i in range(count)]


def reset_settings(bars: Sequence[BarDatum]) -> Tuple[ChartConfig, List[BarDatum]]:
    """Restore default settings and restyle the bars from the default template, keeping labels and values."""
    config = default_config()
    restyled = []
    for i, bar in enumerate(bars):
        template = create_bar(i, config.palette_name)
        restyled.append(replace(template, id=bar.id, label=bar.label, value=bar.value,
                                error=bar.error, group=bar.group))
    return config, restyled


def reset_studio() -> Tuple[ChartConfig, List[BarDatum]]:
    config = default_config()
    return config, reset_data(config.palette_name)
