from datetime import timedelta

import pytest

from pagerev.application.due import (
    FilterType,
    ItemStatus,
    collect_schedule_items,
    filter_items,
)
from pagerev.application.recalculator import recalculate
from pagerev.domain.models import EventType


@pytest.fixture
def pages(policy, make_page, make_log):
    due_page = make_page(page_id="1", logs=[make_log(0)])  # due at +4h
    mastered = make_page(
        page_id="2",
        logs=[make_log(0, type=EventType.REVISION, revision_index=6)],
    )
    topical = make_page(
        page_id="3",
        topics=["Anatomy", "Physiology"],
        logs=[make_log(20, topics=["Anatomy"])],  # due at +24h
    )
    untouched = make_page(page_id="4", topics=["Histology"])
    return [recalculate(p, policy) for p in (mastered, topical, untouched, due_page)]


def test_statuses_relative_to_now(pages, t0):
    items = collect_schedule_items(pages, now=t0 + timedelta(hours=10))

    summary = [(i.page_id, i.topic, i.status) for i in items]
    assert summary == [
        ("1", None, ItemStatus.DUE),
        ("3", "Anatomy", ItemStatus.UPCOMING),
        ("2", None, ItemStatus.MASTERED),
    ]


def test_topic_only_history_has_no_page_item(pages, t0):
    items = collect_schedule_items(pages, now=t0)
    assert ("3", None) not in [(i.page_id, i.topic) for i in items]


def test_everything_due_later(pages, t0):
    items = collect_schedule_items(pages, now=t0 + timedelta(days=30))
    assert [i.status for i in items].count(ItemStatus.DUE) == 2


@pytest.mark.parametrize(
    "filter_type,expected",
    [
        (FilterType.ALL, ["1", "3", "2"]),
        (FilterType.DUE_TODAY, ["1"]),
        (FilterType.UPCOMING, ["3"]),
        (FilterType.MASTERED, ["2"]),
    ],
)
def test_filters(pages, t0, filter_type, expected):
    items = collect_schedule_items(pages, now=t0 + timedelta(hours=10))
    assert [i.page_id for i in filter_items(items, filter_type)] == expected
