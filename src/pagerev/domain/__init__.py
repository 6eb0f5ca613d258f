# Domain Package
from .errors import (
    CorruptLogError,
    IngestionError,
    IntegrityCheckError,
    LogNotFoundError,
    PagerevError,
    StoreError,
    UnknownScheduleModeError,
)
from .models import (
    EventType,
    LogEntry,
    LogSource,
    PageRecord,
    ParsedEvent,
    TopicRecord,
)

__all__ = [
    "CorruptLogError",
    "EventType",
    "IngestionError",
    "IntegrityCheckError",
    "LogEntry",
    "LogNotFoundError",
    "LogSource",
    "PageRecord",
    "PagerevError",
    "ParsedEvent",
    "StoreError",
    "TopicRecord",
    "UnknownScheduleModeError",
]
