"""
Key-value persistence for JSON collections.

Every collection (surveys, responses, audit logs) lives as a single JSON
array under a fixed key. Callers always read the whole collection, change it
in memory and write the whole collection back, so a store never holds a
partial write.

## Backends

- InMemoryStorage: a dict, used by tests and throwaway scripts
- DatabaseStorage: one StoredCollection row per key (the default)

Pick the default with the SURVEYTRACK_STORAGE_BACKEND setting (dotted path).
Code that needs isolation should construct a backend and pass it explicitly
instead of calling get_storage().

## Failure policy

Storage problems never reach the user. A missing key, malformed JSON or an
unreachable backend reads as an empty collection; a failed write is logged
and dropped.
"""

from __future__ import annotations

from datetime import datetime, timezone as dt_timezone
from functools import lru_cache
import json
import logging
from typing import Any, Callable, Iterable, TypeVar

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError
from django.utils.dateparse import parse_datetime
from django.utils.module_loading import import_string

from .models import StoredCollection

logger = logging.getLogger(__name__)

T = TypeVar("T")

SURVEYS_KEY = "surveys"
RESPONSES_KEY = "survey_responses"
AUDIT_LOGS_KEY = "audit_logs"

DEFAULT_BACKEND = "surveytrack_app.core.storage.DatabaseStorage"


class PersistenceError(Exception):
    """Base class for storage and (de)serialization problems."""

    pass


class StorageUnavailable(PersistenceError):
    """Raised by a backend when it cannot be read from or written to."""

    pass


class PersistenceReadFailure(PersistenceError):
    """Raised when a stored collection cannot be turned back into records."""

    pass


class PersistenceWriteFailure(PersistenceError):
    """Raised when a collection cannot be serialized or stored."""

    pass


class CollectionStorage:
    """Minimal get/set/delete interface over named text blobs."""

    def get(self, key: str) -> str | None:
        raise NotImplementedError

    def set(self, key: str, text: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryStorage(CollectionStorage):
    def __init__(self, initial: dict[str, str] | None = None):
        self._data = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, text: str) -> None:
        self._data[key] = text

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class DatabaseStorage(CollectionStorage):
    """Stores each collection as one StoredCollection row."""

    def get(self, key: str) -> str | None:
        try:
            return (
                StoredCollection.objects.filter(key=key)
                .values_list("payload", flat=True)
                .first()
            )
        except DatabaseError as exc:
            raise StorageUnavailable(f"Could not read '{key}': {exc}") from exc

    def set(self, key: str, text: str) -> None:
        try:
            StoredCollection.objects.update_or_create(
                key=key, defaults={"payload": text}
            )
        except DatabaseError as exc:
            raise StorageUnavailable(f"Could not write '{key}': {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            StoredCollection.objects.filter(key=key).delete()
        except DatabaseError as exc:
            raise StorageUnavailable(f"Could not delete '{key}': {exc}") from exc


@lru_cache(maxsize=None)
def _backend_instance(path: str) -> CollectionStorage:
    return import_string(path)()


def get_storage() -> CollectionStorage:
    """Return the process-wide default backend from settings."""
    path = getattr(settings, "SURVEYTRACK_STORAGE_BACKEND", DEFAULT_BACKEND)
    return _backend_instance(path)


def parse_timestamp(value: Any) -> datetime:
    """Rehydrate a serialized timestamp into an aware datetime.

    Naive values are assumed to be UTC. Raises ValueError for anything that
    does not parse.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = parse_datetime(value) if isinstance(value, str) else None
        if parsed is None:
            raise ValueError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed


def load_collection(
    storage: CollectionStorage, key: str, hydrate: Callable[[dict], T]
) -> list[T]:
    """Read and rehydrate a whole collection; any failure yields []."""
    try:
        text = storage.get(key)
    except StorageUnavailable as exc:
        logger.error(f"Error loading {key}: {exc}")
        return []
    if not text:
        return []

    try:
        data = json.loads(text)
        if not isinstance(data, list):
            raise PersistenceReadFailure(
                f"expected a list, got {type(data).__name__}"
            )
        return [hydrate(item) for item in data]
    except (PersistenceReadFailure, ValueError, KeyError, TypeError, AttributeError) as exc:
        logger.error(f"Error loading {key}: {exc}")
        return []


def _dump(items: Iterable[Any]) -> str:
    try:
        return json.dumps([item.to_dict() for item in items], cls=DjangoJSONEncoder)
    except (TypeError, ValueError) as exc:
        raise PersistenceWriteFailure(f"could not serialize: {exc}") from exc


def save_collection(storage: CollectionStorage, key: str, items: Iterable[Any]) -> None:
    """Serialize and replace a whole collection; failures are logged and dropped."""
    try:
        storage.set(key, _dump(items))
    except PersistenceError as exc:
        logger.error(f"Error saving {key}: {exc}")
