"""Waterfall deadline scheduling.

Tasks that share an executor queue behind each other: each one starts when
the previous task for the same executor key ends. Different keys run in
parallel from the stage start.

    A(Editor, 2d), B(Editor, 3d), C(Designer, 1d), start 02-01
    -> A due 02-03, B due 02-06, C due 02-02
"""
from datetime import datetime, timedelta
from typing import Optional

UNASSIGNED_KEY = "unassigned"


def executor_key(value: Optional[object]) -> str:
    """Waterfall track for a capability string or assignee id; None shares one track."""
    if value is None:
        return UNASSIGNED_KEY
    key = str(value).strip()
    return key or UNASSIGNED_KEY


class WaterfallPlanner:
    """Tracks when each executor key is next free during one stage activation."""

    def __init__(self, stage_start: datetime, default_duration_days: int = 3):
        self.stage_start = stage_start
        self.default_duration_days = default_duration_days
        self.next_free: dict[str, datetime] = {}

    def duration_for(self, duration_days: Optional[int]) -> timedelta:
        if duration_days is None or duration_days <= 0:
            duration_days = self.default_duration_days
        return timedelta(days=duration_days)

    def schedule(self, key: str, duration_days: Optional[int]) -> datetime:
        """
        Compute the deadline of the next task on a track and advance the track.

        Args:
            key: Executor key from ``executor_key``
            duration_days: Task duration; missing or non-positive uses the default

        Returns:
            Deadline of the task
        """
        base = self.next_free.get(key, self.stage_start)
        deadline = base + self.duration_for(duration_days)
        self.next_free[key] = deadline
        return deadline
