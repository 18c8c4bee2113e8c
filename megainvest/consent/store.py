"""
Local consent persistence.

``ConsentStore`` keeps three independent entries in a key/value storage:
the serialized consent record, a denormalized copy of the preferences, and
the anonymous session id. Reading never raises: a missing or malformed
entry is reported as absent.
"""

import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from megainvest.consent import constants
from megainvest.consent.types import ConsentRecord, CookieConsentPreferences

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """String key/value storage with browser ``localStorage`` semantics."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage, lost on exit."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items


class JsonFileStorage:
    """
    Storage backed by a single JSON object on disk.

    Every change rewrites the whole file through a temporary file and
    ``os.replace``, so readers see either the old or the new document.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Could not read consent storage {self.path}: {e}")
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Consent storage {self.path} is not valid JSON; treating it as empty")
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _dump(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(items, fh)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._dump(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._dump(items)


class ConsentStore:
    def __init__(
        self,
        storage: KeyValueStorage | None = None,
        storage_key: str = constants.STORAGE_KEY,
        preferences_key: str = constants.PREFERENCES_KEY,
        session_key: str = constants.SESSION_KEY,
    ):
        self.storage = storage if storage is not None else MemoryStorage()
        self.storage_key = storage_key
        self.preferences_key = preferences_key
        self.session_key = session_key

    def read(self) -> ConsentRecord | None:
        raw = self.storage.get_item(self.storage_key)
        if not raw:
            return None
        try:
            return ConsentRecord.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed cookie consent record: {e.error_count()} validation error(s)")
            return None

    def read_preferences(self) -> CookieConsentPreferences | None:
        raw = self.storage.get_item(self.preferences_key)
        if not raw:
            return None
        try:
            return CookieConsentPreferences.model_validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring malformed cookie preferences cache")
            return None

    def write(self, record: ConsentRecord) -> None:
        self.storage.set_item(self.storage_key, record.to_json())
        self.storage.set_item(self.preferences_key, record.categories.model_dump_json())

    def clear(self) -> None:
        self.storage.remove_item(self.storage_key)
        self.storage.remove_item(self.preferences_key)

    def session_id(self) -> str:
        """The anonymous session id of this installation, created on first use."""
        existing = self.storage.get_item(self.session_key)
        if existing and existing.strip():
            return existing
        session_id = str(uuid.uuid4())
        self.storage.set_item(self.session_key, session_id)
        logger.debug("Generated anonymous consent session id")
        return session_id
