from barplot.events import ChartEvents, FocusTarget, HighlightTracker, SceneHook


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_highlight_drops_unknown_keys():
    events = ChartEvents()
    seen = []
    events.on_highlight(seen.append)
    events.highlight(["yAxis", "bogus"])
    events.highlight(["bogus"])
    assert seen == [("yAxis",)]


def test_activate_without_focus():
    events = ChartEvents()
    focused = []
    events.on_focus(focused.append)
    events.activate(SceneHook("x-axis-line", ("xAxis",)))
    assert focused == []


def test_listeners_all_notified():
    events = ChartEvents()
    a, b = [], []
    events.on_focus(a.append)
    events.on_focus(b.append)
    events.request_focus(FocusTarget("barLabel", "4"))
    assert a == b == [FocusTarget("barLabel", "4")]


class TestHighlightTracker:
    def test_expires_after_duration(self):
        clock = FakeClock()
        tracker = HighlightTracker(duration=1.1, clock=clock)
        tracker.signal(["data", "design"])
        assert tracker.active_keys() == ("data", "design")

        clock.now += 1.0
        assert tracker.is_active("data")
        clock.now += 0.2
        assert not tracker.is_active("data")
        assert tracker.active_keys() == ()

    def test_new_signal_restarts_timer(self):
        clock = FakeClock()
        tracker = HighlightTracker(duration=1.1, clock=clock)
        tracker.signal(["title"])
        clock.now += 1.0
        tracker.signal(["title"])
        clock.now += 1.0
        assert tracker.is_active("title")

    def test_unknown_key_is_inactive(self):
        assert not HighlightTracker().is_active("yAxis")

    def test_subscribed_to_chart_events(self):
        clock = FakeClock()
        tracker = HighlightTracker(clock=clock)
        events = ChartEvents()
        events.on_highlight(tracker.signal)

        hooks = [SceneHook("error-bar-1", ("errorBars",)), SceneHook("chart-title", ("title",))]
        assert events.dispatch(hooks, "chart-title")
        assert tracker.active_keys() == ("title",)
        assert not tracker.is_active("errorBars")
