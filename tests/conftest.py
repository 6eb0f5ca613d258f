from datetime import datetime, timedelta, timezone

import pytest

from pagerev.application.scheduling import SchedulePolicy
from pagerev.domain.constants import REVISION_SCHEDULES
from pagerev.domain.models import EventType, LogEntry, PageRecord, TopicRecord

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
BALANCED = REVISION_SCHEDULES["balanced"]


@pytest.fixture
def t0():
    """Reference instant every factory offsets from."""
    return T0


@pytest.fixture
def policy():
    """The default balanced schedule with a 7-revision cap."""
    return SchedulePolicy(hours=BALANCED, target_count=7)


@pytest.fixture
def make_log():
    """Factory for log entries placed `hours` after T0."""

    def _make(hours=0, type=EventType.STUDY, revision_index=0, topics=None):
        return LogEntry(
            timestamp=T0 + timedelta(hours=hours),
            type=type,
            revision_index=revision_index,
            topics=list(topics or []),
        )

    return _make


@pytest.fixture
def make_page():
    """Factory for a page with the given topic names and logs."""

    def _make(page_id="P1", topics=(), logs=()):
        return PageRecord(
            page_id=page_id,
            topics=[TopicRecord(name=name) for name in topics],
            logs=list(logs),
        )

    return _make


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    for var in ("MODE", "TARGET_COUNT", "FAILURE_POLICY", "STORE_PATH", "VERBOSE"):
        monkeypatch.delenv(f"PAGEREV_{var}", raising=False)
    return home
