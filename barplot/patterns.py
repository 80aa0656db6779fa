from dataclasses import dataclass
from typing import Optional, Tuple

from .chart_config import clamp, finite_or


@dataclass(frozen=True)
class PatternTile:
    id: str
    kind: str
    size: float
    background: str
    background_opacity: float
    accent_color: str
    accent_opacity: float
    # (path data, stroke width)
    strokes: Tuple[Tuple[str, float], ...] = ()
    # (cx, cy, r)
    dots: Tuple[Tuple[float, float, float], ...] = ()


def pattern_id(bar_id: str) -> str:
    return f"pattern-{bar_id}"


def build_pattern_tile(bar, bar_opacity: float) -> Optional[PatternTile]:
    """Repeating tile for a patterned bar: fill color underneath, accent marks on top. Solid bars get None."""
    kind = bar.pattern or "solid"
    if kind == "solid":
        return None

    s = max(finite_or(bar.pattern_size, 8.0), 2.0)
    h = s / 2
    q = s / 4
    primary = max(s * 0.18, 0.75)
    secondary = max(s * 0.14, 0.6)
    dot_r = max(s * 0.2, 1.0)

    strokes, dots = (), ()
    if kind == "diagonal":
        strokes = (
            (f"M0 {s} L {s} 0", primary),
            (f"M{-h} {s} L {h} 0", primary),
            (f"M{h} {s} L {s + h} 0", primary),
        )
    elif kind == "dots":
        dots = ((q * 1.5, q * 1.5, dot_r), (s - q * 1.5, s - q * 1.5, dot_r))
    elif kind == "crosshatch":
        strokes = ((f"M0 {h} H {s}", secondary), (f"M{h} 0 V {s}", secondary))
    elif kind == "vertical":
        strokes = ((f"M{q} 0 V {s}", primary), (f"M{s - q} 0 V {s}", primary))
    else:
        return None

    return PatternTile(
        id=pattern_id(bar.id),
        kind=kind,
        size=s,
        background=bar.fill_color,
        background_opacity=bar_opacity,
        accent_color=bar.pattern_color or "#ffffff",
        accent_opacity=clamp(finite_or(bar.pattern_opacity, 0.35), 0, 1),
        strokes=strokes,
        dots=dots,
    )
