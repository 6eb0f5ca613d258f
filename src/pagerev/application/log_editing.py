"""Delete, undo and edit individual log entries, recalculating after each change."""

import logging
from datetime import datetime

from pagerev.application.recalculator import chronological, recalculate
from pagerev.application.scheduling import SchedulePolicy
from pagerev.domain.errors import LogNotFoundError
from pagerev.domain.models import LogEntry, PageRecord, topic_key

logger = logging.getLogger(__name__)


def _with_logs(
    entry: PageRecord, logs: list[LogEntry], policy: SchedulePolicy | None
) -> PageRecord:
    return recalculate(entry.model_copy(update={"logs": logs}), policy)


def delete_log(entry: PageRecord, log_id: str, policy: SchedulePolicy | None = None) -> PageRecord:
    """
    Remove one log entry by id and recalculate the page.

    Raises:
        LogNotFoundError: If the page has no log with that id.
    """
    remaining = [log for log in entry.logs if log.id != log_id]
    if len(remaining) == len(entry.logs):
        raise LogNotFoundError(f"Page {entry.page_id} has no log {log_id}")

    logger.info(f"Deleted log {log_id} from page {entry.page_id}")
    return _with_logs(entry, remaining, policy)


def undo_last(
    entry: PageRecord,
    policy: SchedulePolicy | None = None,
    topic: str | None = None,
) -> PageRecord:
    """
    Remove the most recent log in a scope and recalculate the page.

    Without `topic` the scope is whole-page logs; with it, logs naming that
    topic.

    Raises:
        LogNotFoundError: If the scope has no logs.
    """
    if topic is None:
        candidates = [log for log in entry.logs if log.is_whole_page]
        scope = "whole page"
    else:
        key = topic_key(topic)
        candidates = [log for log in entry.logs if log.covers(key)]
        scope = f"topic '{topic.strip()}'"

    if not candidates:
        raise LogNotFoundError(f"Nothing to undo for {scope} on page {entry.page_id}")

    latest = chronological(candidates)[-1]
    logger.info(f"Undoing {latest.type.value} {latest.id} for {scope} on page {entry.page_id}")
    return delete_log(entry, latest.id, policy)


def edit_log(
    entry: PageRecord,
    log_id: str,
    policy: SchedulePolicy | None = None,
    timestamp: datetime | None = None,
    notes: str | None = None,
    duration_minutes: int | None = None,
) -> PageRecord:
    """
    Change the editable fields of one log entry and recalculate the page.

    Only arguments that are not None are applied. Type and revision index
    are not editable; delete and re-log instead.

    Raises:
        LogNotFoundError: If the page has no log with that id.
    """
    changes = {
        "timestamp": timestamp,
        "notes": notes,
        "duration_minutes": duration_minutes,
    }
    changes = {k: v for k, v in changes.items() if v is not None}

    logs = []
    found = False
    for log in entry.logs:
        if log.id == log_id:
            found = True
            # Re-validate so a naive timestamp is pinned to UTC like any stored one.
            log = LogEntry.model_validate({**log.model_dump(), **changes})
        logs.append(log)

    if not found:
        raise LogNotFoundError(f"Page {entry.page_id} has no log {log_id}")

    return _with_logs(entry, logs, policy)


def clear_schedule(entry: PageRecord, topic: str | None = None) -> PageRecord:
    """
    Drop the upcoming due date of the page (or one topic) without touching logs.

    This leaves the record out of step with its logs on purpose; the next
    integrity check puts the replayed date back.

    Raises:
        LogNotFoundError: If `topic` names no topic on the page.
    """
    if topic is None:
        return entry.model_copy(update={"next_revision_at": None})

    target = entry.find_topic(topic)
    if target is None:
        raise LogNotFoundError(f"Page {entry.page_id} has no topic '{topic.strip()}'")

    topics = [
        t.model_copy(update={"next_revision_at": None}) if t.key == target.key else t
        for t in entry.topics
    ]
    return entry.model_copy(update={"topics": topics})
