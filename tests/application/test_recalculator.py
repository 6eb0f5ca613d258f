"""Tests for replaying page logs into schedule state."""

from datetime import timedelta

import pytest

from pagerev.application.recalculator import recalculate
from pagerev.application.scheduling import SchedulePolicy
from pagerev.domain.constants import REVISION_SCHEDULES
from pagerev.domain.errors import CorruptLogError
from pagerev.domain.models import EventType, PageRecord, TopicRecord

BALANCED = REVISION_SCHEDULES["balanced"]


class TestEmptyLogs:
    def test_stale_page_and_topics_reset(self, policy, t0):
        page = PageRecord(
            page_id="P1",
            revision_count=3,
            current_revision_index=3,
            first_studied_at=t0,
            last_studied_at=t0,
            next_revision_at=t0,
            topics=[
                TopicRecord(
                    name="Anatomy",
                    revision_count=2,
                    current_revision_index=2,
                    last_studied_at=t0,
                    next_revision_at=t0,
                )
            ],
        )

        result = recalculate(page, policy)

        assert result.revision_count == 0
        assert result.current_revision_index == 0
        assert result.first_studied_at is None
        assert result.last_studied_at is None
        assert result.next_revision_at is None
        topic = result.topics[0]
        assert topic.name == "Anatomy"
        assert topic.id == page.topics[0].id
        assert (topic.revision_count, topic.current_revision_index) == (0, 0)
        assert topic.last_studied_at is None
        assert topic.next_revision_at is None

    def test_input_not_modified(self, policy, t0):
        page = PageRecord(page_id="P1", revision_count=3, next_revision_at=t0)
        recalculate(page, policy)
        assert page.revision_count == 3
        assert page.next_revision_at == t0


class TestPageLevel:
    def test_single_study(self, policy, make_page, make_log, t0):
        page = make_page(logs=[make_log(0)])

        result = recalculate(page, policy)

        assert result.revision_count == 0
        assert result.first_studied_at == t0
        assert result.last_studied_at == t0
        assert result.next_revision_at == t0 + timedelta(hours=4)

    @pytest.mark.parametrize("count", [1, 3, 6, 7])
    def test_consecutive_revisions_advance_schedule(self, policy, make_page, make_log, t0, count):
        logs = [
            make_log(i * 10, type=EventType.REVISION, revision_index=i) for i in range(count)
        ]
        result = recalculate(make_page(logs=logs), policy)

        last = t0 + timedelta(hours=(count - 1) * 10)
        assert result.revision_count == count
        assert result.current_revision_index == count
        if count < len(BALANCED):
            assert result.next_revision_at == last + timedelta(hours=BALANCED[count])
        else:
            assert result.next_revision_at is None

    def test_target_count_masters_early(self, make_page, make_log):
        policy = SchedulePolicy(hours=tuple(range(10, 110, 10)), target_count=3)
        logs = [make_log(i, type=EventType.REVISION, revision_index=i) for i in range(3)]

        result = recalculate(make_page(logs=logs), policy)

        assert result.revision_count == 3
        assert result.next_revision_at is None

    def test_latest_by_timestamp_not_position(self, policy, make_page, make_log, t0):
        late = make_log(100, type=EventType.REVISION, revision_index=1)
        early = make_log(0)
        page = make_page(logs=[late, early])

        result = recalculate(page, policy)

        assert result.first_studied_at == t0
        assert result.last_studied_at == t0 + timedelta(hours=100)
        # Revision 1 done, so revision 2 (48h) is next.
        assert result.next_revision_at == t0 + timedelta(hours=148)
        assert [log.id for log in result.logs] == [late.id, early.id]

    def test_topic_logs_only_move_first_and_last(self, policy, make_page, make_log, t0):
        page = make_page(
            topics=["Anatomy"],
            logs=[
                make_log(10),
                make_log(0, topics=["Anatomy"]),
                make_log(20, type=EventType.REVISION, revision_index=1, topics=["Anatomy"]),
            ],
        )

        result = recalculate(page, policy)

        assert result.first_studied_at == t0
        assert result.last_studied_at == t0 + timedelta(hours=20)
        assert result.revision_count == 0
        assert result.next_revision_at == t0 + timedelta(hours=14)

    def test_only_topic_history_leaves_page_unscheduled(self, policy, make_page, make_log, t0):
        page = make_page(topics=["Anatomy"], logs=[make_log(0, topics=["Anatomy"])])

        result = recalculate(page, policy)

        assert result.revision_count == 0
        assert result.next_revision_at is None
        assert result.last_studied_at == t0


class TestTopics:
    def test_topic_match_ignores_case_and_whitespace(self, policy, make_page, make_log, t0):
        page = make_page(topics=["Anatomy"], logs=[make_log(0, topics=["  anatomy "])])

        topic = recalculate(page, policy).topics[0]

        assert topic.last_studied_at == t0
        assert topic.next_revision_at == t0 + timedelta(hours=4)

    def test_topic_revisions(self, policy, make_page, make_log, t0):
        page = make_page(
            topics=["Anatomy", "Physiology"],
            logs=[
                make_log(0, topics=["Anatomy"]),
                make_log(5, type=EventType.REVISION, revision_index=1, topics=["Anatomy"]),
                make_log(8, topics=["Physiology"]),
            ],
        )

        anatomy, physiology = recalculate(page, policy).topics

        assert anatomy.revision_count == 1
        assert anatomy.current_revision_index == 1
        assert anatomy.last_studied_at == t0 + timedelta(hours=5)
        assert anatomy.next_revision_at == t0 + timedelta(hours=5 + 48)
        assert physiology.revision_count == 0
        assert physiology.next_revision_at == t0 + timedelta(hours=12)

    def test_unlogged_topic_stays_zero_despite_page_history(self, policy, make_page, make_log):
        page = make_page(topics=["Anatomy"], logs=[make_log(0), make_log(3, topics=["Other"])])

        topic = recalculate(page, policy).topics[0]

        assert topic.revision_count == 0
        assert topic.last_studied_at is None
        assert topic.next_revision_at is None

    def test_log_naming_two_topics_counts_for_both(self, policy, make_page, make_log):
        page = make_page(
            topics=["A", "B", "C"],
            logs=[make_log(0, type=EventType.REVISION, revision_index=1, topics=["A", "B"])],
        )

        a, b, c = recalculate(page, policy).topics

        assert a.revision_count == b.revision_count == 1
        assert c.revision_count == 0


def test_recalculation_is_idempotent(policy, make_page, make_log):
    page = make_page(
        topics=["Anatomy", "Physiology"],
        logs=[
            make_log(0),
            make_log(2, topics=["Anatomy"]),
            make_log(30, type=EventType.REVISION, revision_index=1),
            make_log(40, type=EventType.REVISION, revision_index=1, topics=["Physiology"]),
        ],
    )

    once = recalculate(page, policy)
    assert recalculate(once, policy) == once


def test_default_policy_used_when_omitted(make_page, make_log, t0):
    result = recalculate(make_page(logs=[make_log(0)]))
    assert result.next_revision_at == t0 + timedelta(hours=4)


def test_negative_revision_index_is_corrupt(policy, make_page, make_log):
    page = make_page(logs=[make_log(0, type=EventType.REVISION, revision_index=-2)])

    with pytest.raises(CorruptLogError) as exc:
        recalculate(page, policy)
    assert exc.value.page_id == "P1"


def test_latest_timestamp_tie_goes_to_later_log(policy, make_page, make_log, t0):
    study = make_log(0)
    revision = make_log(0, type=EventType.REVISION, revision_index=0)

    revised_last = recalculate(make_page(logs=[study, revision]), policy)
    studied_last = recalculate(make_page(logs=[revision, study]), policy)

    assert revised_last.next_revision_at == t0 + timedelta(hours=24)
    assert studied_last.next_revision_at == t0 + timedelta(hours=4)
    assert revised_last.revision_count == studied_last.revision_count == 1
