"""
Due-list builder.

Flattens page and topic schedules into a single list of items, each marked
as due, upcoming or mastered relative to a reference time.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pagerev.domain.models import PageRecord


class ItemStatus(str, Enum):
    DUE = "DUE"
    UPCOMING = "UPCOMING"
    MASTERED = "MASTERED"


class FilterType(str, Enum):
    ALL = "all"
    DUE_TODAY = "due"
    UPCOMING = "upcoming"
    MASTERED = "mastered"


@dataclass
class ScheduleItem:
    """One schedulable thing: a whole page or one of its topics."""

    page_id: str
    title: str
    topic: str | None  # None for the page itself
    revision_count: int
    last_studied_at: datetime
    next_revision_at: datetime | None
    status: ItemStatus


def _status(next_revision_at: datetime | None, now: datetime) -> ItemStatus:
    if next_revision_at is None:
        return ItemStatus.MASTERED
    return ItemStatus.DUE if next_revision_at <= now else ItemStatus.UPCOMING


def _page_items(page: PageRecord, now: datetime) -> Iterable[ScheduleItem]:
    title = page.title or page.page_id

    # A page with only topic-scoped history has no page-level schedule of its own.
    has_page_history = any(log.is_whole_page for log in page.logs)
    if has_page_history and page.last_studied_at is not None:
        yield ScheduleItem(
            page_id=page.page_id,
            title=title,
            topic=None,
            revision_count=page.revision_count,
            last_studied_at=page.last_studied_at,
            next_revision_at=page.next_revision_at,
            status=_status(page.next_revision_at, now),
        )

    for topic in page.topics:
        if topic.last_studied_at is None:
            continue
        yield ScheduleItem(
            page_id=page.page_id,
            title=title,
            topic=topic.name,
            revision_count=topic.revision_count,
            last_studied_at=topic.last_studied_at,
            next_revision_at=topic.next_revision_at,
            status=_status(topic.next_revision_at, now),
        )


def collect_schedule_items(
    pages: Sequence[PageRecord], now: datetime | None = None
) -> list[ScheduleItem]:
    """
    List every studied page and topic with its schedule status.

    Items are ordered by due time; mastered items come last.
    """
    now = now or datetime.now(timezone.utc)
    items = [item for page in pages for item in _page_items(page, now)]
    items.sort(
        key=lambda i: (
            i.next_revision_at is None,
            i.next_revision_at or i.last_studied_at,
            i.page_id,
            i.topic or "",
        )
    )
    return items


def filter_items(items: Sequence[ScheduleItem], filter_type: FilterType) -> list[ScheduleItem]:
    if filter_type == FilterType.ALL:
        return list(items)
    wanted = {
        FilterType.DUE_TODAY: ItemStatus.DUE,
        FilterType.UPCOMING: ItemStatus.UPCOMING,
        FilterType.MASTERED: ItemStatus.MASTERED,
    }[filter_type]
    return [i for i in items if i.status == wanted]
