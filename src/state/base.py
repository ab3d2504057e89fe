from __future__ import annotations

import logging
from typing import Optional, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised by a backend when it cannot read or write its medium."""


@runtime_checkable
class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


def safe_get(storage: Optional[KeyValueStorage], key: str) -> Optional[str]:
    """Read `key`, treating a missing backend or any backend fault as "no value".

    Non-string values coming back from a misbehaving backend are ignored too.
    """
    if storage is None:
        return None
    try:
        value = storage.get(key)
    except Exception as ex:
        logger.warning("Failed to read %r from storage: %s", key, ex)
        return None
    if value is not None and not isinstance(value, str):
        logger.warning("Ignoring non-string value stored under %r", key)
        return None
    return value


def safe_set(storage: Optional[KeyValueStorage], key: str, value: str) -> bool:
    """Write `value` under `key`; returns False if the write was skipped or failed."""
    if storage is None:
        logger.debug("No storage configured; not persisting %r", key)
        return False
    try:
        storage.set(key, value)
    except Exception as ex:
        logger.warning("Failed to write %r to storage: %s", key, ex)
        return False
    return True
