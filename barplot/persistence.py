import json
import logging
import math
import re
from dataclasses import dataclass, field, fields, replace
from typing import List, Optional, Tuple

from .bar_data import PATTERNS, BarDatum, create_bar, reindex, reset_data
from .chart_config import (PALETTES, AxisConfig, Auto, ChartConfig, Manual, default_config, setting_value,
                           to_setting)
from .overlays import ImageOverlay, TextOverlay, next_overlay_id

logger = logging.getLogger(__name__)

STATE_VERSION = 1

# Key names used by saved files of the browser app that differ from a plain camelCase conversion
KEY_ALIASES = {
    "title_is_bold": "title_bold",
    "title_is_italic": "title_italic",
    "title_is_underline": "title_underline",
    "subtitle_is_bold": "subtitle_bold",
    "subtitle_is_italic": "subtitle_italic",
    "subtitle_is_underline": "subtitle_underline",
    "global_font_family": "font_family",
    "is_bold": "bold",
    "is_italic": "italic",
    "is_underline": "underline",
}
# Flat per-axis keys of the browser app, folded into AxisConfig
AXIS_KEYS = {
    "x_axis_title_font_size": ("x_axis", "title_font_size"),
    "x_axis_tick_font_size": ("x_axis", "tick_font_size"),
    "y_axis_title_font_size": ("y_axis", "title_font_size"),
    "y_axis_tick_font_size": ("y_axis", "tick_font_size"),
    "x_axis_tick_offset_x": ("x_axis", "tick_offset_x"),
    "x_axis_tick_offset_y": ("x_axis", "tick_offset_y"),
    "y_axis_tick_offset_x": ("y_axis", "tick_offset_x"),
    "y_axis_tick_offset_y": ("y_axis", "tick_offset_y"),
}
OVERLAY_FIELDS = {
    "additional_text_elements": TextOverlay,
    "additional_image_elements": ImageOverlay,
}


@dataclass
class StudioState:
    charts: List[Tuple[ChartConfig, List[BarDatum]]] = field(default_factory=list)
    comparison: bool = False


def snake_case(key: str) -> str:
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", key).lower()


def _normalize_keys(raw: dict) -> dict:
    out = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            continue
        name = snake_case(key)
        out[KEY_ALIASES.get(name, name)] = value
    return out


# ==========================================
# FIELD MERGING
# ==========================================
def _coerce(default, value):
    """Return value if it fits the type of default, otherwise None."""
    if isinstance(default, (Auto, Manual)):
        if value is None:
            return default.__class__() if isinstance(default, Auto) else None
        setting = to_setting(value)
        if isinstance(setting, Manual) and math.isfinite(setting.value):
            return setting
        return None
    if isinstance(default, bool):
        return value if isinstance(value, bool) else None
    if isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return None
    if isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
            return float(value)
        return None
    if isinstance(default, str):
        return value if isinstance(value, str) else None
    if default is None:
        return value if isinstance(value, str) else None
    return None


def _merge(defaults, raw: dict):
    changes = {}
    for f in fields(defaults):
        if f.name not in raw:
            continue
        current = getattr(defaults, f.name)
        if f.name in OVERLAY_FIELDS:
            changes[f.name] = _overlays_from_list(OVERLAY_FIELDS[f.name], raw[f.name])
            continue
        if isinstance(current, AxisConfig):
            if isinstance(raw[f.name], dict):
                changes[f.name] = _merge(current, _normalize_keys(raw[f.name]))
            continue
        value = _coerce(current, raw[f.name])
        if value is None and not (f.name == "group" and raw[f.name] is None):
            if raw[f.name] is not None:
                logger.debug("Ignoring %s=%r", f.name, raw[f.name])
            continue
        changes[f.name] = value
    return replace(defaults, **changes)


def _overlays_from_list(cls, raw) -> tuple:
    if not isinstance(raw, list):
        return ()
    prefix = "text" if cls is TextOverlay else "image"
    items = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        overlay = _merge(cls(), _normalize_keys(item))
        if isinstance(overlay, ImageOverlay) and not overlay.src:
            logger.debug("Skipping image overlay without a source")
            continue
        if not overlay.id or any(o.id == overlay.id for o in items):
            overlay = replace(overlay, id=next_overlay_id(prefix, items))
        items.append(overlay)
    return tuple(items)


def config_from_dict(raw) -> ChartConfig:
    if not isinstance(raw, dict):
        return default_config()
    data = _normalize_keys(raw)

    axis_updates = {}
    for key, (axis, name) in AXIS_KEYS.items():
        if key in data:
            axis_updates.setdefault(axis, {})[name] = data.pop(key)
    for axis, values in axis_updates.items():
        nested = data.get(axis) if isinstance(data.get(axis), dict) else {}
        data[axis] = {**values, **_normalize_keys(nested)}

    config = _merge(default_config(), data)
    if config.palette_name not in PALETTES:
        config = replace(config, palette_name=default_config().palette_name)
    return config


def bars_from_list(raw, palette_name: str) -> List[BarDatum]:
    if not isinstance(raw, list):
        return reset_data(palette_name)
    bars = []
    for i, item in enumerate(raw):
        template = create_bar(i, palette_name)
        if not isinstance(item, dict):
            bars.append(template)
            continue
        bar = _merge(template, _normalize_keys(item))
        if bar.pattern not in PATTERNS:
            bar = replace(bar, pattern="solid")
        bars.append(bar)
    return reindex(bars)


def config_to_dict(config: ChartConfig) -> dict:
    out = {}
    for f in fields(config):
        value = getattr(config, f.name)
        if isinstance(value, AxisConfig):
            value = {af.name: getattr(value, af.name) for af in fields(value)}
        elif isinstance(value, (Auto, Manual)):
            value = setting_value(value)
        elif f.name in OVERLAY_FIELDS:
            value = [{of.name: getattr(item, of.name) for of in fields(item)} for item in value]
        out[f.name] = value
    return out


def bar_to_dict(bar: BarDatum) -> dict:
    out = {}
    for f in fields(bar):
        value = getattr(bar, f.name)
        out[f.name] = setting_value(value) if isinstance(value, (Auto, Manual)) else value
    return out


# ==========================================
# DOCUMENTS
# ==========================================
def _chart_from_dict(raw) -> Tuple[ChartConfig, List[BarDatum]]:
    config = config_from_dict(raw)
    data = raw.get("data") if isinstance(raw, dict) else None
    return config, bars_from_list(data, config.palette_name)


def dumps_state(state: StudioState) -> str:
    settings = [{**config_to_dict(c), "data": [bar_to_dict(b) for b in bars]} for c, bars in state.charts]
    doc = {"version": STATE_VERSION}
    if state.comparison and len(settings) > 1:
        doc["settings"] = settings[:2]
        doc["comparison"] = True
    else:
        doc["settings"] = settings[0] if settings else {}
    return json.dumps(doc, indent=2)


def loads_state(text: Optional[str]) -> StudioState:
    """Parse a saved studio. Anything unreadable falls back to the default chart."""
    fallback = StudioState(charts=[(default_config(), reset_data())])
    if not text:
        return fallback
    try:
        doc = json.loads(text)
    except (TypeError, ValueError):
        logger.warning("Saved chart state is not valid JSON, using defaults")
        return fallback
    if not isinstance(doc, dict):
        logger.warning("Saved chart state has unexpected type %s, using defaults", type(doc).__name__)
        return fallback

    # Older saves hold the settings object at the top level
    settings = doc.get("settings", doc)
    if isinstance(settings, list):
        charts = [_chart_from_dict(item) for item in settings[:2]]
        if not charts:
            return fallback
        return StudioState(charts=charts, comparison=len(charts) > 1)
    return StudioState(charts=[_chart_from_dict(settings)])


def save_state(path: str, state: StudioState):
    with open(path, "w", encoding="utf-8") as f:
        f.write(dumps_state(state))


def load_state(path: str) -> StudioState:
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError:
        return loads_state(None)
    except OSError as e:
        logger.warning("Could not read saved chart state %s: %s", path, e)
        return loads_state(None)
    return loads_state(text)
