"""
Schedule calculator for spaced revisions.

This is a pure computation module with no I/O.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class SchedulePolicy:
    """
    Hour offsets per revision step plus the user's revision cap.

    Attributes:
        hours: Hours to wait after the last event, indexed by the revision
            being scheduled (index 0 is the first revision after a study).
        target_count: Maximum number of revisions to schedule. May be smaller
            than the table.
    """

    hours: tuple[int, ...]
    target_count: int


def next_due(
    last_event_time: datetime,
    next_revision_index: int,
    policy: SchedulePolicy,
) -> datetime | None:
    """
    Compute when the next revision falls due.

    Args:
        last_event_time: Timestamp of the most recent applicable event.
        next_revision_index: Index of the revision being scheduled.
        policy: Hour table and revision cap.

    Returns:
        The due time, or None once the schedule is exhausted (mastered).
        An empty hour table is always exhausted.
    """
    if next_revision_index < 0:
        raise ValueError(f"Revision index must be >= 0, got {next_revision_index}")

    if next_revision_index >= len(policy.hours) or next_revision_index >= policy.target_count:
        return None

    return last_event_time + timedelta(hours=policy.hours[next_revision_index])
