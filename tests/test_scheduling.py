"""Tests for waterfall deadline scheduling."""
from datetime import datetime, timedelta

from roadmap_core.scheduling import UNASSIGNED_KEY, WaterfallPlanner, executor_key

T0 = datetime(2026, 2, 1)


class TestWaterfallPlanner:
    """Test per-executor deadline queuing."""

    def test_same_executor_queues_other_runs_in_parallel(self):
        """A(Editor, 2d), B(Editor, 3d), C(Designer, 1d) from 02-01."""
        planner = WaterfallPlanner(T0)

        assert planner.schedule("editor", 2) == datetime(2026, 2, 3)
        assert planner.schedule("editor", 3) == datetime(2026, 2, 6)
        assert planner.schedule("designer", 1) == datetime(2026, 2, 2)

    def test_deadlines_non_decreasing_per_key(self):
        """Each deadline equals the previous one on its track plus its duration."""
        planner = WaterfallPlanner(T0)
        durations = [1, 4, 2, 2, 5]

        previous = T0
        for duration in durations:
            deadline = planner.schedule("editor", duration)
            assert deadline == previous + timedelta(days=duration)
            assert deadline >= previous
            previous = deadline

    def test_missing_or_non_positive_duration_uses_default(self):
        planner = WaterfallPlanner(T0, default_duration_days=3)

        assert planner.schedule("a", None) == T0 + timedelta(days=3)
        assert planner.schedule("b", 0) == T0 + timedelta(days=3)
        assert planner.schedule("c", -2) == T0 + timedelta(days=3)

    def test_custom_default_duration(self):
        planner = WaterfallPlanner(T0, default_duration_days=5)
        assert planner.schedule(UNASSIGNED_KEY, None) == T0 + timedelta(days=5)

    def test_tracks_are_recorded(self):
        planner = WaterfallPlanner(T0)
        planner.schedule("editor", 2)
        assert planner.next_free == {"editor": datetime(2026, 2, 3)}


class TestExecutorKey:
    """Test executor key derivation."""

    def test_none_and_blank_share_unassigned_track(self):
        assert executor_key(None) == UNASSIGNED_KEY
        assert executor_key("") == UNASSIGNED_KEY
        assert executor_key("   ") == UNASSIGNED_KEY

    def test_value_is_stringified(self):
        assert executor_key("editor") == "editor"
        assert executor_key(42) == "42"
