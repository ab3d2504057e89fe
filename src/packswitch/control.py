from __future__ import annotations

import logging
from typing import FrozenSet, Mapping, Optional, Tuple, TypeVar

from state.base import KeyValueStorage, safe_set

from .cell import ObservableCell, Subscriber, Unsubscribe


logger = logging.getLogger(__name__)

V = TypeVar("V")


class Control:
    """
    Control surface of a selector, reached through the view's marker field.

    - `current`: the active pack key.
    - `set(key, persist=True)`: switch packs. Unknown keys are logged and
      ignored; storage faults are logged and never reach the caller.
    - `select(options)`: pick the entry of `options` named by the active key.
    """

    def __init__(
        self,
        *,
        keys: Tuple[str, ...],
        cell: ObservableCell[str],
        storage: Optional[KeyValueStorage],
        storage_key: str,
    ) -> None:
        self._keys = keys
        self._key_set: FrozenSet[str] = frozenset(keys)
        self._cell = cell
        self._storage = storage
        self._storage_key = storage_key

    @property
    def current(self) -> str:
        return self._cell.get()

    @property
    def keys(self) -> Tuple[str, ...]:
        """Declared pack keys in declaration order."""
        return self._keys

    @property
    def storage_key(self) -> str:
        return self._storage_key

    def is_valid(self, key: object) -> bool:
        return isinstance(key, str) and key in self._key_set

    def set(self, key: str, persist: bool = True) -> None:
        if not self.is_valid(key):
            logger.warning("Invalid pack key: %r (expected one of %s)", key, ", ".join(self._keys))
            return
        self._cell.set(key)
        if persist:
            safe_set(self._storage, self._storage_key, key)

    def select(self, options: Mapping[str, V]) -> Optional[V]:
        """Return `options[current]`, or None when `options` has no such entry.

        `options` is a caller-supplied map keyed by pack key, unrelated to the
        packs themselves, e.g. `lang._.select({"en": "Hi", "ja": "やあ"})`.
        """
        return options.get(self.current)

    def subscribe(self, fn: Subscriber[str]) -> Unsubscribe:
        """Call `fn(old_key, new_key)` on every successful `set`."""
        return self._cell.subscribe(fn)

    def __repr__(self) -> str:
        return f"Control(current={self.current!r}, keys={self._keys!r})"
