"""
Entry recalculator.

Rebuilds every derived schedule field of a page and its topics by replaying
the page's log history. Nothing derived is ever patched incrementally: the
stored counters, timestamps and due dates are whatever replay produces.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from pagerev.application.config import default_policy
from pagerev.application.scheduling import SchedulePolicy, next_due
from pagerev.domain.errors import CorruptLogError
from pagerev.domain.models import EventType, LogEntry, PageRecord, TopicRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleState:
    """Derived schedule for one log subset (a page or a single topic)."""

    revision_count: int = 0
    last_studied_at: datetime | None = None
    next_revision_at: datetime | None = None


ZERO_STATE = ScheduleState()


def chronological(logs: Sequence[LogEntry]) -> list[LogEntry]:
    """Logs sorted ascending by timestamp; equal timestamps keep log order."""
    return sorted(logs, key=lambda log: log.timestamp)


def replay(logs: Sequence[LogEntry], policy: SchedulePolicy) -> ScheduleState:
    """
    Derive the schedule for a subset of logs.

    Only the most recent log decides the next due date: a STUDY schedules
    revision 0, a REVISION with index N schedules revision N + 1.
    """
    if not logs:
        return ZERO_STATE

    latest = chronological(logs)[-1]
    revision_count = sum(1 for log in logs if log.type == EventType.REVISION)
    next_index = 0 if latest.type == EventType.STUDY else latest.revision_index + 1

    return ScheduleState(
        revision_count=revision_count,
        last_studied_at=latest.timestamp,
        next_revision_at=next_due(latest.timestamp, next_index, policy),
    )


def page_level_logs(logs: Sequence[LogEntry]) -> list[LogEntry]:
    """Logs framed as whole-page events."""
    return [log for log in logs if log.is_whole_page]


def topic_logs(logs: Sequence[LogEntry], topic: TopicRecord) -> list[LogEntry]:
    """Logs naming the topic (trimmed, case-insensitive)."""
    key = topic.key
    return [log for log in logs if log.covers(key)]


def reset_topic(topic: TopicRecord) -> TopicRecord:
    return topic.model_copy(
        update={
            "revision_count": 0,
            "current_revision_index": 0,
            "last_studied_at": None,
            "next_revision_at": None,
        }
    )


def _apply_topic_state(topic: TopicRecord, state: ScheduleState) -> TopicRecord:
    return topic.model_copy(
        update={
            "revision_count": state.revision_count,
            "current_revision_index": state.revision_count,
            "last_studied_at": state.last_studied_at,
            "next_revision_at": state.next_revision_at,
        }
    )


def _check_logs(entry: PageRecord) -> None:
    for log in entry.logs:
        if log.revision_index < 0:
            raise CorruptLogError(
                entry.page_id, f"log {log.id} has negative revision index {log.revision_index}"
            )


def recalculate(entry: PageRecord, policy: SchedulePolicy | None = None) -> PageRecord:
    """
    Recompute every derived field of a page and its topics from its logs.

    Args:
        entry: The page to recalculate. It is not modified.
        policy: Schedule policy; the default balanced policy if omitted.

    Returns:
        A new PageRecord with the same logs and freshly derived fields.

    Raises:
        CorruptLogError: If a log entry breaks the record contract.
    """
    policy = policy or default_policy()
    _check_logs(entry)
    logs = list(entry.logs)

    if not logs:
        return entry.model_copy(
            update={
                "logs": [],
                "revision_count": 0,
                "current_revision_index": 0,
                "first_studied_at": None,
                "last_studied_at": None,
                "next_revision_at": None,
                "topics": [reset_topic(t) for t in entry.topics],
            }
        )

    ordered = chronological(logs)
    page_state = replay(page_level_logs(logs), policy)

    topics = []
    for topic in entry.topics:
        subset = topic_logs(logs, topic)
        if subset:
            topics.append(_apply_topic_state(topic, replay(subset, policy)))
        else:
            topics.append(reset_topic(topic))

    logger.debug(
        f"[recalc] page={entry.page_id} logs={len(logs)} "
        f"revisions={page_state.revision_count} next={page_state.next_revision_at}"
    )

    return entry.model_copy(
        update={
            "logs": logs,
            "revision_count": page_state.revision_count,
            "current_revision_index": page_state.revision_count,
            # First and last study span every log, whatever its scope.
            "first_studied_at": ordered[0].timestamp,
            "last_studied_at": ordered[-1].timestamp,
            "next_revision_at": page_state.next_revision_at,
            "topics": topics,
        }
    )
