import logging
import math
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .chart_config import clamp

logger = logging.getLogger(__name__)

DEFAULT_TICK_COUNT = 6
MAX_FIXED_STEP_TICKS = 1000
MAX_REFINE_PASSES = 8
MIN_RELATIVE_SPAN = 1e-9
# Keeps 1/2/5 x 10^n steps and their multiples inside float range
MAX_TICK_MAGNITUDE = 1e300


@dataclass(frozen=True)
class AxisScale:
    axis_min: float
    axis_max: float
    ticks: Tuple[float, ...]

    @property
    def span(self) -> float:
        return max(self.axis_max - self.axis_min, sys.float_info.epsilon)

    def ratio(self, value: float) -> float:
        """Position of `value` along the axis, 0 at axis_min and 1 at axis_max."""
        if not math.isfinite(value):
            return 0.0
        return clamp((value - self.axis_min) / self.span, 0.0, 1.0)

    @property
    def tick_step(self) -> Optional[float]:
        if len(self.ticks) < 2:
            return None
        return self.ticks[1] - self.ticks[0]


# ==========================================
# NICE TICKS
# ==========================================
def nice_number(value: float, round_result: bool) -> float:
    exponent = math.floor(math.log10(value))
    fraction = value / 10 ** exponent

    if round_result:
        if fraction < 1.5:
            nice = 1
        elif fraction < 3:
            nice = 2
        elif fraction < 7:
            nice = 5
        else:
            nice = 10
    else:
        if fraction <= 1:
            nice = 1
        elif fraction <= 2:
            nice = 2
        elif fraction <= 5:
            nice = 5
        else:
            nice = 10
    return nice * 10 ** exponent


def _round_sig(value: float, digits: int = 12) -> float:
    return float(f"{value:.{digits}g}")


def _nice_pass(min_value: float, max_value: float, count: int) -> List[float]:
    nice_range = nice_number(abs(max_value - min_value), False)
    spacing = nice_number(nice_range / max(count - 1, 1), True)
    nice_min = math.floor(min_value / spacing) * spacing
    nice_max = math.ceil(max_value / spacing) * spacing

    ticks = []
    # Index stepping, no accumulated float drift
    n_steps = int(round((nice_max - nice_min) / spacing))
    for i in range(n_steps + 1):
        ticks.append(_round_sig(nice_min + i * spacing))
    return ticks


def _widen(min_value: float, max_value: float) -> Tuple[float, float]:
    step = abs(min_value) * 0.2 if abs(min_value) > 1 else 1.0
    return min_value - step, max_value + step


def _too_narrow(min_value: float, max_value: float) -> bool:
    # Spans below this share of the magnitude collapse once ticks are rounded
    return max_value - min_value <= max(abs(min_value), abs(max_value)) * MIN_RELATIVE_SPAN


def generate_ticks(min_value: float, max_value: float, count: int = DEFAULT_TICK_COUNT) -> List[float]:
    """
    Ascending, evenly spaced ticks on 1/2/5 x 10^n multiples covering [min_value, max_value].
    Feeding the first and last tick back in returns the same list.
    """
    if not (math.isfinite(min_value) and math.isfinite(max_value)):
        return [0.0, 1.0]

    if min_value > max_value:
        min_value, max_value = max_value, min_value
    if _too_narrow(min_value, max_value):
        min_value, max_value = _widen(min_value, max_value)
    if max(abs(min_value), abs(max_value)) > MAX_TICK_MAGNITUDE:
        logger.warning("Axis range [%s, %s] is too large to tick, using [0, 1]", min_value, max_value)
        return [0.0, 1.0]

    ticks = _nice_pass(min_value, max_value, count)
    # A pass over its own bounds can pick a wider spacing; settle on the fixed point
    for _ in range(MAX_REFINE_PASSES):
        if len(ticks) < 2 or _too_narrow(ticks[0], ticks[-1]):
            break
        refined = _nice_pass(ticks[0], ticks[-1], count)
        if refined == ticks:
            break
        ticks = refined
    return ticks


# ==========================================
# AXIS SCALE
# ==========================================
def data_extent(bars: Sequence, include_errors: bool) -> Tuple[float, float]:
    """Value range of the bars (with error margins when shown). The lower bound always includes 0."""
    if not bars:
        return 0.0, 1.0

    values = np.array([b.value for b in bars], dtype=float)
    errors = np.array([b.error for b in bars], dtype=float) if include_errors else np.zeros(len(values))
    errors = np.where(np.isfinite(errors), errors, 0.0)

    valid = np.isfinite(values)
    if not valid.any():
        return 0.0, 1.0

    lower = float(np.min(values[valid] - errors[valid]))
    upper = float(np.max(values[valid] + errors[valid]))
    if not math.isfinite(lower):
        lower = 0.0
    if not math.isfinite(upper):
        upper = 1.0
    return min(lower, 0.0), upper


def _fixed_step_ticks(min_value: float, max_value: float, step: float) -> Optional[List[float]]:
    """Ticks every `step` with the exact bounds added. None when the step cannot be honoured."""
    if max(abs(min_value), abs(max_value)) > MAX_TICK_MAGNITUDE:
        return None
    # Also catches an overflowing span or a step too small to count
    if not (max_value - min_value) / step + 1 <= MAX_FIXED_STEP_TICKS:
        return None
    start = min_value / step
    if not math.isfinite(start):
        return None

    first = math.ceil(start) * step
    n_steps = math.floor((max_value + step / 2 - first) / step)
    ticks = [round(first + i * step, 6) for i in range(max(n_steps + 1, 0))]
    if not ticks or ticks[0] > min_value:
        ticks.insert(0, round(min_value, 6))
    if ticks[-1] < max_value:
        ticks.append(round(max_value, 6))

    deduped = []
    for t in ticks:
        if not deduped or t > deduped[-1]:
            deduped.append(t)
    # Bounds closer than the rounding collapse into one tick
    return deduped if len(deduped) > 1 else None


def resolve_axis_scale(bars: Sequence, include_errors: bool, user_min: Optional[float] = None,
                       user_max: Optional[float] = None, tick_step: Optional[float] = None) -> AxisScale:
    data_min, data_max = data_extent(bars, include_errors)

    desired_min = user_min if user_min is not None else data_min
    desired_max = user_max if user_max is not None else max(data_max, data_min + 1)

    min_value = desired_min if math.isfinite(desired_min) else data_min
    max_value = desired_max if math.isfinite(desired_max) else data_max

    if min_value == max_value:
        max_value = min_value + 1
    if min_value > max_value:
        min_value, max_value = max_value, min_value

    ticks = None
    if tick_step is not None and math.isfinite(tick_step) and tick_step > 0:
        ticks = _fixed_step_ticks(min_value, max_value, tick_step)
        if ticks is None:
            logger.warning("Tick step %s cannot be used over [%s, %s], using automatic ticks",
                           tick_step, min_value, max_value)
    if ticks is None:
        ticks = generate_ticks(min_value, max_value)

    if not ticks:
        ticks = [min_value, max_value]
    logger.debug("Axis scale [%s, %s] with %d ticks", ticks[0], ticks[-1], len(ticks))
    return AxisScale(axis_min=ticks[0], axis_max=ticks[-1], ticks=tuple(ticks))
