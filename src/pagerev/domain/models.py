"""
Domain models for pages, topics and their study logs.

These are pure data structures with no I/O. Field names are snake_case in
Python and camelCase on the wire, so documents written by the tracker's
datastore load as-is. Unknown document fields are preserved.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from ulid import ULID


def new_id() -> str:
    """Generate a sortable unique id for logs and topics."""
    return str(ULID())


def topic_key(name: str) -> str:
    """Identity key for a topic name: trimmed and case-folded."""
    return name.strip().casefold()


def _as_utc(value: datetime | None) -> datetime | None:
    # Naive timestamps are treated as UTC instants.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EventType(str, Enum):
    STUDY = "STUDY"
    REVISION = "REVISION"


class LogSource(str, Enum):
    LOG = "LOG"
    MODAL = "MODAL"
    CHAT = "CHAT"


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class LogEntry(_Record):
    """
    One study or revision event.

    Attributes:
        timestamp: When the event happened; the scheduling clock.
        type: STUDY for a first exposure, REVISION for a repeat.
        revision_index: Repetition number for REVISION events, 0 for STUDY.
        topics: Topic names the event covers; empty means the whole page.
    """

    id: str = Field(default_factory=new_id)
    timestamp: datetime
    type: EventType
    revision_index: int = 0
    topics: list[str] = Field(default_factory=list)
    source: LogSource = LogSource.LOG
    duration_minutes: int | None = None
    notes: str | None = None

    @field_validator("timestamp", mode="after")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @field_validator("topics", mode="before")
    @classmethod
    def none_topics(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def is_whole_page(self) -> bool:
        return not self.topics

    def covers(self, key: str) -> bool:
        """True if this log names the topic with the given identity key."""
        return any(topic_key(t) == key for t in self.topics)


class TopicRecord(_Record):
    """A named subdivision of a page with its own revision schedule."""

    id: str = Field(default_factory=new_id)
    name: str
    revision_count: int = 0
    current_revision_index: int = 0
    last_studied_at: datetime | None = None
    next_revision_at: datetime | None = None

    @field_validator("last_studied_at", "next_revision_at", mode="after")
    @classmethod
    def ensure_aware(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @property
    def key(self) -> str:
        return topic_key(self.name)


class PageRecord(_Record):
    """
    A unit of study material and its full log history.

    Every schedule field here is derived; only the recalculator writes them.
    """

    page_id: str = Field(
        validation_alias=AliasChoices("pageId", "pageNumber", "page_id"),
        serialization_alias="pageId",
    )
    title: str | None = None

    revision_count: int = 0
    current_revision_index: int = 0
    first_studied_at: datetime | None = None
    last_studied_at: datetime | None = None
    next_revision_at: datetime | None = None

    topics: list[TopicRecord] = Field(default_factory=list)
    logs: list[LogEntry] = Field(default_factory=list)

    @field_validator("page_id", mode="before")
    @classmethod
    def coerce_page_id(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("first_studied_at", "last_studied_at", "next_revision_at", mode="after")
    @classmethod
    def ensure_aware(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @field_validator("topics", "logs", mode="before")
    @classmethod
    def none_lists(cls, v: Any) -> Any:
        return [] if v is None else v

    def find_topic(self, name: str) -> TopicRecord | None:
        key = topic_key(name)
        for topic in self.topics:
            if topic.key == key:
                return topic
        return None

    def topic_keys(self) -> set[str]:
        return {t.key for t in self.topics}


class ParsedEvent(_Record):
    """
    A structured study event produced by an upstream parser or UI.

    When `timestamp` is missing, `day` (wire name `date`) pins the event to
    midday UTC of that day; with neither, ingestion uses its clock.
    """

    page_id: str = Field(validation_alias=AliasChoices("pageId", "pageNumber", "page_id"))
    explicit_revision: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "explicitRevision", "isExplicitRevision", "explicit_revision"
        ),
    )
    topics: list[str] = Field(default_factory=list)
    timestamp: datetime | None = None
    day: date | None = Field(default=None, validation_alias=AliasChoices("date", "day"))
    duration_minutes: int | None = None
    notes: str | None = None
    source: LogSource = LogSource.LOG

    @field_validator("page_id", mode="before")
    @classmethod
    def coerce_page_id(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("timestamp", mode="after")
    @classmethod
    def ensure_aware(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @field_validator("topics", mode="before")
    @classmethod
    def none_topics(cls, v: Any) -> Any:
        return [] if v is None else v
