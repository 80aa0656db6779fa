"""Bar chart layout, scene composition and export."""

from .chart_config import ChartConfig, AxisConfig, AUTO, Manual
from .bar_data import BarDatum, create_bar
from .layout import compute_layout
from .graph_bar import BarChartEngine, build_scene

__all__ = [
    "ChartConfig", "AxisConfig", "AUTO", "Manual",
    "BarDatum", "create_bar",
    "compute_layout",
    "BarChartEngine", "build_scene",
]
