import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

HIGHLIGHT_KEYS = (
    "chartBasics",
    "yAxis",
    "xAxis",
    "data",
    "title",
    "design",
    "valueLabels",
    "errorBars",
)
FOCUS_KINDS = ("chartTitle", "chartSubtitle", "barLabel", "barValue", "xAxisTitle", "yAxisTitle")

HIGHLIGHT_DURATION = 1.1


@dataclass(frozen=True)
class FocusTarget:
    """Control that should take keyboard focus. bar_id is set for the per-bar kinds."""
    kind: str
    bar_id: Optional[str] = None


@dataclass(frozen=True)
class SceneHook:
    element_id: str
    highlight_keys: Tuple[str, ...]
    focus: Optional[FocusTarget] = None


class ChartEvents:
    """Fans scene interactions out to whoever owns the settings panels."""

    def __init__(self):
        self._highlight_listeners: List[Callable[[Tuple[str, ...]], None]] = []
        self._focus_listeners: List[Callable[[FocusTarget], None]] = []

    def on_highlight(self, callback: Callable[[Tuple[str, ...]], None]):
        self._highlight_listeners.append(callback)
        return callback

    def on_focus(self, callback: Callable[[FocusTarget], None]):
        self._focus_listeners.append(callback)
        return callback

    def highlight(self, keys: Iterable[str]):
        keys = tuple(k for k in keys if k in HIGHLIGHT_KEYS)
        if not keys:
            return
        for cb in list(self._highlight_listeners):
            cb(keys)

    def request_focus(self, target: FocusTarget):
        for cb in list(self._focus_listeners):
            cb(target)

    def activate(self, hook: SceneHook):
        self.highlight(hook.highlight_keys)
        if hook.focus is not None:
            self.request_focus(hook.focus)

    def dispatch(self, hooks: Sequence[SceneHook], element_id: str) -> bool:
        """Activate the hook registered for element_id. Returns False for elements without one."""
        for hook in hooks:
            if hook.element_id == element_id:
                self.activate(hook)
                return True
        logger.debug("No scene hook for element %s", element_id)
        return False


class HighlightTracker:
    """
    Short-lived highlight flags per key, kept by the host app. The studio page subscribes it to
    ChartEvents.on_highlight and opens the settings sections whose keys are active.
    A new signal for a key restarts its timer. The clock is injectable so tests can step time by hand.
    """

    def __init__(self, duration: float = HIGHLIGHT_DURATION, clock: Callable[[], float] = time.monotonic):
        self.duration = duration
        self._clock = clock
        self._deadlines: Dict[str, float] = {}

    def signal(self, keys: Iterable[str]):
        deadline = self._clock() + self.duration
        for key in keys:
            self._deadlines[key] = deadline

    def is_active(self, key: str) -> bool:
        deadline = self._deadlines.get(key)
        if deadline is None:
            return False
        if self._clock() >= deadline:
            del self._deadlines[key]
            return False
        return True

    def active_keys(self) -> Tuple[str, ...]:
        return tuple(k for k in list(self._deadlines) if self.is_active(k))
