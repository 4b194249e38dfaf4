"""Draft persistence for the in-progress event form.

A draft is the form state (event fields and button fields, camelCase) plus a
capture ``timestamp`` in epoch milliseconds, stored as JSON under a single key
of a per-browser key/value store. Drafts are a convenience: storage and
serialisation failures are logged and reported as "no draft", never raised.
"""

import json
import logging
import math
import time
from pathlib import Path

from pydantic import ValidationError

from punktual.schemas import ButtonData, EventData

logger = logging.getLogger("punktual.drafts")

STORAGE_KEY = "Punktual_draft"
MAX_AGE_MS = 24 * 60 * 60 * 1000


class MemoryStorage:
    """Dict-backed storage, one instance per browser session."""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """Storage kept in a JSON file, one file per browser profile."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        return json.loads(self.path.read_text(encoding="utf-8"))

    def _write(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(items), encoding="utf-8")

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if items.pop(key, None) is not None:
            self._write(items)


def _valid_stamp(stamp) -> bool:
    # bool is an int subclass; NaN never compares as expired
    return isinstance(stamp, (int, float)) and not isinstance(stamp, bool) and math.isfinite(stamp)


class DraftStore:
    def __init__(self, storage, clock=time.time, key: str = STORAGE_KEY):
        self.storage = storage
        self.clock = clock
        self.key = key

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def save(self, event: EventData, button: ButtonData) -> bool:
        """Overwrite the stored draft. Returns False if it could not be stored."""
        try:
            data = {
                **event.model_dump(mode="json", by_alias=True),
                **button.model_dump(mode="json", by_alias=True),
                "timestamp": self._now_ms(),
            }
            data["selectedPlatforms"] = sorted(data["selectedPlatforms"])
            self.storage.set_item(self.key, json.dumps(data))
        except (OSError, TypeError, ValueError):
            logger.exception("Error saving draft")
            return False
        return True

    def load(self) -> dict | None:
        """The stored draft, or None when absent, unreadable or expired.

        Expired drafts are removed from storage.
        """
        try:
            stored = self.storage.get_item(self.key)
            if not stored:
                return None
            data = json.loads(stored)
            stamp = data.get("timestamp")
            if not _valid_stamp(stamp) or self._now_ms() - stamp > MAX_AGE_MS:
                logger.info("Discarding expired draft")
                self.storage.remove_item(self.key)
                return None
            return data
        except (OSError, TypeError, ValueError, AttributeError):
            logger.exception("Error loading draft")
            return None

    def clear(self) -> None:
        try:
            self.storage.remove_item(self.key)
        except (OSError, TypeError, ValueError):
            logger.exception("Error clearing draft")


def restore_draft(data: dict | None) -> tuple[EventData, ButtonData] | None:
    """Split a loaded draft back into form models."""
    if not data:
        return None
    fields = {k: v for k, v in data.items() if k != "timestamp"}
    try:
        return EventData.model_validate(fields), ButtonData.model_validate(fields)
    except ValidationError:
        logger.warning("Stored draft does not match the form fields, ignoring it")
        return None
