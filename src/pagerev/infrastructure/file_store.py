"""
File-backed page store.

Keeps the page collection in a single local document: JSON by default, YAML
when the path ends in .yaml/.yml.
"""

import json
import logging
import os
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter, ValidationError

from pagerev.domain.errors import StoreError
from pagerev.domain.models import PageRecord, ParsedEvent
from pagerev.domain.ports import PageRepository

logger = logging.getLogger(__name__)

_PAGES = TypeAdapter(list[PageRecord])
_EVENTS = TypeAdapter(list[ParsedEvent])
YAML_SUFFIXES = {".yaml", ".yml"}


class JsonPageStore(PageRepository):
    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def is_yaml(self) -> bool:
        return self.path.suffix.lower() in YAML_SUFFIXES

    def load_all(self) -> list[PageRecord]:
        if not self.path.exists():
            logger.debug(f"[store] {self.path} does not exist yet; starting empty")
            return []

        try:
            text = self.path.read_text(encoding="utf-8")
            raw = yaml.safe_load(text) if self.is_yaml else json.loads(text)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise StoreError(f"Could not read {self.path}: {e}") from e

        if raw is None:
            return []
        if isinstance(raw, dict):
            # Accept {"pages": [...]} as well as a bare list.
            raw = raw.get("pages", [])

        try:
            pages = _PAGES.validate_python(raw)
        except ValidationError as e:
            raise StoreError(f"Invalid page data in {self.path}: {e}") from e

        logger.debug(f"[store] Loaded {len(pages)} pages from {self.path}")
        return pages

    def save_all(self, pages: list[PageRecord]) -> None:
        data: list[dict[str, Any]] = _PAGES.dump_python(pages, mode="json", by_alias=True)
        if self.is_yaml:
            text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        else:
            text = json.dumps(data, indent=2, ensure_ascii=False)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        except OSError as e:
            raise StoreError(f"Could not write {self.path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, self.path)
        except OSError as e:
            with suppress(FileNotFoundError):
                os.unlink(tmp)
            raise StoreError(f"Could not write {self.path}: {e}") from e

        logger.debug(f"[store] Saved {len(pages)} pages to {self.path}")


def load_events(path: Path) -> list[ParsedEvent]:
    """Read a batch of parsed events from a JSON or YAML list."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
        raw = yaml.safe_load(text) if path.suffix.lower() in YAML_SUFFIXES else json.loads(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise StoreError(f"Could not read events from {path}: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("events", [])

    try:
        return _EVENTS.validate_python(raw or [])
    except ValidationError as e:
        raise StoreError(f"Invalid events in {path}: {e}") from e
