"""
Exception taxonomy for pagerev.

Recalculation itself is lenient (an empty schedule table simply means
"mastered"); everything raised here signals a caller contract violation
or an aborted batch/pass.
"""

from typing import Any


class PagerevError(Exception):
    """Base class for all pagerev errors."""


class CorruptLogError(PagerevError):
    """A page's log history violates the record contract."""

    def __init__(self, page_id: str, message: str):
        super().__init__(f"Page {page_id}: {message}")
        self.page_id = page_id


class IngestionError(PagerevError):
    """
    An ingestion batch was aborted.

    Attributes:
        index: Position of the failing event in the batch.
        page_id: Page the failing event referenced.
        results: Results of the events processed before the failure.
    """

    def __init__(self, index: int, page_id: str, results: list[Any] | None = None):
        super().__init__(f"Event #{index} for page {page_id} failed; batch aborted")
        self.index = index
        self.page_id = page_id
        self.results = results or []


class IntegrityCheckError(PagerevError):
    """The integrity pass could not recalculate a page."""

    def __init__(self, page_id: str):
        super().__init__(f"Integrity check aborted at page {page_id}")
        self.page_id = page_id


class LogNotFoundError(PagerevError):
    """No log entry matched a delete, edit or undo request."""


class UnknownScheduleModeError(PagerevError, ValueError):
    """Settings name a schedule mode with no hour table."""

    def __init__(self, mode: str, known: list[str]):
        super().__init__(f"Unknown schedule mode '{mode}'. Expected one of: {', '.join(known)}")
        self.mode = mode


class StoreError(PagerevError):
    """The page store could not be read or written."""
