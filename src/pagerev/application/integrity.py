"""
Integrity checker: replay every page and repair drifted schedule state.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from pagerev.application.config import default_policy
from pagerev.application.recalculator import recalculate
from pagerev.application.scheduling import SchedulePolicy
from pagerev.domain.errors import IntegrityCheckError
from pagerev.domain.models import PageRecord

logger = logging.getLogger(__name__)


@dataclass
class IntegrityReport:
    """Result of an integrity pass."""

    changed: bool
    pages: list[PageRecord]
    drifted_page_ids: list[str] = field(default_factory=list)


def has_drifted(stored: PageRecord, replayed: PageRecord) -> bool:
    """True if the stored derived state differs from what replay produces."""
    return (
        stored.revision_count != replayed.revision_count
        or stored.last_studied_at != replayed.last_studied_at
        or stored.next_revision_at != replayed.next_revision_at
        or stored.topics != replayed.topics
    )


def check(pages: Sequence[PageRecord], policy: SchedulePolicy | None = None) -> IntegrityReport:
    """
    Recalculate every page and report whether any stored state drifted.

    Args:
        pages: The stored page collection. Not modified.
        policy: Schedule policy; the default balanced policy if omitted.

    Returns:
        IntegrityReport. When nothing drifted, `pages` holds the input pages
        unchanged; otherwise drifted pages are replaced by their replayed form.

    Raises:
        IntegrityCheckError: If any page cannot be recalculated. The whole
            pass is abandoned; callers should keep their existing state.
    """
    policy = policy or default_policy()
    fixed: list[PageRecord] = []
    drifted: list[str] = []

    for page in pages:
        try:
            replayed = recalculate(page, policy)
        except Exception as e:
            raise IntegrityCheckError(page.page_id) from e

        if has_drifted(page, replayed):
            drifted.append(page.page_id)
            fixed.append(replayed)
        else:
            fixed.append(page)

    if drifted:
        logger.warning(f"[integrity] Repaired {len(drifted)} of {len(fixed)} pages: {drifted}")
        return IntegrityReport(changed=True, pages=fixed, drifted_page_ids=drifted)

    logger.info(f"[integrity] {len(fixed)} pages consistent")
    return IntegrityReport(changed=False, pages=list(pages))
