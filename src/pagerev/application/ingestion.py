"""
Log ingestion and event classification.

Turns structured study events into log entries:
1. Resolving (or creating) the page and any newly named topics
2. Framing the event as whole-page or topic-scoped
3. Classifying it as STUDY or REVISION from the relevant history
4. Appending the log and recalculating the page before the next event
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, time, timezone
from enum import Enum

from pagerev.application.config import default_policy
from pagerev.application.recalculator import recalculate
from pagerev.application.scheduling import SchedulePolicy
from pagerev.domain.constants import DATE_ONLY_HOUR, DEFAULT_PAGE_TITLE_PREFIX
from pagerev.domain.errors import CorruptLogError, IngestionError
from pagerev.domain.models import (
    EventType,
    LogEntry,
    PageRecord,
    ParsedEvent,
    TopicRecord,
    topic_key,
)

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    """What to do when one event in a batch raises."""

    ABORT = "abort"  # stop the batch and raise IngestionError
    SKIP = "skip"  # record the failure and continue with the next event


@dataclass
class EventResult:
    """Outcome of one ingested event, for confirmation messages."""

    page_id: str
    event_type: EventType
    new_revision_count: int
    message: str
    whole_page: bool
    log_id: str


@dataclass
class EventFailure:
    """An event skipped under FailurePolicy.SKIP."""

    index: int
    page_id: str
    error: str


@dataclass
class IngestResult:
    results: list[EventResult]
    pages: list[PageRecord]
    failures: list[EventFailure] = field(default_factory=list)


def event_timestamp(event: ParsedEvent, now: datetime | None = None) -> datetime:
    """
    Resolve when an event happened.

    An explicit timestamp wins; a bare calendar day becomes midday UTC;
    otherwise `now` (or the current time).
    """
    if event.timestamp is not None:
        return event.timestamp
    if event.day is not None:
        return datetime.combine(event.day, time(hour=DATE_ONLY_HOUR), tzinfo=timezone.utc)
    return now or datetime.now(timezone.utc)


def clean_topic_names(names: Sequence[str]) -> list[str]:
    """Trim names, drop blanks and collapse case-insensitive duplicates."""
    seen: set[str] = set()
    cleaned = []
    for name in names:
        stripped = name.strip()
        key = topic_key(stripped)
        if not stripped or key in seen:
            continue
        seen.add(key)
        cleaned.append(stripped)
    return cleaned


def new_page(page_id: str) -> PageRecord:
    return PageRecord(page_id=page_id, title=f"{DEFAULT_PAGE_TITLE_PREFIX}{page_id}")


def is_whole_page(page: PageRecord, names: Sequence[str]) -> bool:
    """An event naming no topics, or every topic of the page, covers the whole page."""
    if not names:
        return True
    return {topic_key(n) for n in names} == page.topic_keys()


def classify(page: PageRecord, names: Sequence[str], whole_page: bool, explicit: bool) -> EventType:
    """
    Decide whether an event is a first exposure or a repeat.

    Whole-page events look at the page's logs and every topic; topic-scoped
    events only look at the topics they name.
    """
    if explicit:
        return EventType.REVISION

    if whole_page:
        has_history = bool(page.logs) or any(t.last_studied_at is not None for t in page.topics)
    else:
        has_history = False
        for name in names:
            topic = page.find_topic(name)
            if topic is not None and topic.last_studied_at is not None:
                has_history = True
                break

    return EventType.REVISION if has_history else EventType.STUDY


def revision_index_for(
    page: PageRecord, names: Sequence[str], whole_page: bool, event_type: EventType
) -> int:
    """Repetition number stored on the new log."""
    if event_type == EventType.STUDY:
        return 0

    if whole_page:
        return page.revision_count + 1

    index = 0
    for name in names:
        topic = page.find_topic(name)
        if topic is not None:
            index = max(index, topic.revision_count + 1)
    return index


def _is_default_title(page: PageRecord) -> bool:
    return not page.title or page.title.startswith(DEFAULT_PAGE_TITLE_PREFIX)


def apply_event(
    page: PageRecord | None,
    event: ParsedEvent,
    policy: SchedulePolicy,
    now: datetime | None = None,
) -> tuple[PageRecord, EventResult]:
    """
    Log a single event against its page.

    Args:
        page: The current page record, or None if the page is unknown.
        event: The event to log.
        policy: Schedule policy used for recalculation.
        now: Clock value for events carrying no time at all.

    Returns:
        The recalculated page and the event's result. `page` is not modified.
    """
    working = page.model_copy(deep=True) if page is not None else new_page(event.page_id)

    names = clean_topic_names(event.topics)
    for name in names:
        if working.find_topic(name) is None:
            working.topics.append(TopicRecord(name=name))

    whole_page = is_whole_page(working, names)
    event_type = classify(working, names, whole_page, event.explicit_revision)
    revision_index = revision_index_for(working, names, whole_page, event_type)

    if whole_page and names and _is_default_title(working):
        working.title = ", ".join(names)

    log = LogEntry(
        timestamp=event_timestamp(event, now),
        type=event_type,
        revision_index=revision_index,
        topics=[] if whole_page else names,
        source=event.source,
        duration_minutes=event.duration_minutes,
        notes=event.notes,
    )
    working.logs.append(log)

    updated = recalculate(working, policy)

    if whole_page:
        message = f"{event_type.value} logged for whole page {updated.page_id}"
    else:
        message = f"{event_type.value} logged for topics: {', '.join(names)}"

    result = EventResult(
        page_id=updated.page_id,
        event_type=event_type,
        new_revision_count=updated.revision_count,
        message=message,
        whole_page=whole_page,
        log_id=log.id,
    )
    return updated, result


def ingest(
    batch: Sequence[ParsedEvent],
    pages: Sequence[PageRecord],
    policy: SchedulePolicy | None = None,
    failure_policy: FailurePolicy = FailurePolicy.ABORT,
    now: datetime | None = None,
) -> IngestResult:
    """
    Log a batch of events, strictly in order.

    Each event sees the recalculated state left by the previous one, so a
    page created or revised earlier in the batch is classified accordingly.

    Args:
        batch: Events to log.
        pages: Current page collection. Not modified.
        policy: Schedule policy; the default balanced policy if omitted.
        failure_policy: ABORT raises on the first failing event, SKIP records
            it in `failures` and carries on with that page unchanged.
        now: Clock value for events carrying no time at all.

    Returns:
        IngestResult with per-event results and the updated collection
        (input order, new pages appended in order of first mention).

    Raises:
        IngestionError: Under ABORT, when an event fails.
        CorruptLogError: If two input pages share a page id.
    """
    policy = policy or default_policy()
    book: dict[str, PageRecord] = {}
    for page in pages:
        if page.page_id in book:
            raise CorruptLogError(page.page_id, "duplicate page id in collection")
        book[page.page_id] = page
    results: list[EventResult] = []
    failures: list[EventFailure] = []

    for index, event in enumerate(batch):
        try:
            updated, result = apply_event(book.get(event.page_id), event, policy, now)
        except Exception as e:
            if failure_policy == FailurePolicy.ABORT:
                raise IngestionError(index, event.page_id, results) from e
            logger.warning(f"[ingest] Skipped event #{index} for page {event.page_id}: {e}")
            failures.append(EventFailure(index=index, page_id=event.page_id, error=str(e)))
            continue

        book[updated.page_id] = updated
        results.append(result)
        logger.debug(f"[ingest] {result.message} (revisions={result.new_revision_count})")

    logger.info(
        f"[ingest] Logged {len(results)}/{len(batch)} events across {len(book)} pages"
    )
    return IngestResult(results=results, pages=list(book.values()), failures=failures)
