from dataclasses import replace

from .chart_config import AxisConfig, ChartConfig

# Line and tick-label styling shared by both axes while synced.
# Titles and grid settings always stay per axis.
SYNCED_AXIS_FIELDS = (
    "show_axis_lines",
    "axis_line_width",
    "axis_line_color",
    "show_tick_labels",
    "tick_label_color",
    "tick_label_orientation",
)
SYNCED_FONT_FIELDS = ("title_font_size", "tick_font_size")


def should_sync_field(name: str) -> bool:
    return name in SYNCED_AXIS_FIELDS or name in SYNCED_FONT_FIELDS


def _copy_fields(source: AxisConfig, target: AxisConfig) -> AxisConfig:
    values = {name: getattr(source, name) for name in SYNCED_AXIS_FIELDS + SYNCED_FONT_FIELDS}
    return replace(target, **values)


def sync_axes(config: ChartConfig, source: str) -> ChartConfig:
    """Toggle axis sync. Turning it on copies the shared fields from `source` ("x" or "y") onto the other axis."""
    if config.axes_synced:
        return replace(config, axes_synced=False)

    if source == "x":
        return replace(config, axes_synced=True, y_axis=_copy_fields(config.x_axis, config.y_axis))
    if source == "y":
        return replace(config, axes_synced=True, x_axis=_copy_fields(config.y_axis, config.x_axis))
    raise ValueError(f"Unknown axis: {source!r}")


def apply_axis_field(config: ChartConfig, axis: str, name: str, value) -> ChartConfig:
    """Set one AxisConfig field, mirroring it onto the other axis while synced."""
    if axis not in ("x", "y"):
        raise ValueError(f"Unknown axis: {axis!r}")
    if not hasattr(config.x_axis, name):
        raise AttributeError(f"AxisConfig has no field {name!r}")

    changes = {}
    if axis == "x" or (config.axes_synced and should_sync_field(name)):
        changes["x_axis"] = replace(config.x_axis, **{name: value})
    if axis == "y" or (config.axes_synced and should_sync_field(name)):
        changes["y_axis"] = replace(config.y_axis, **{name: value})
    return replace(config, **changes)
