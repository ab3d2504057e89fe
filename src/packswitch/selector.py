from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from state.base import KeyValueStorage, safe_get

from .cell import Cell, ObservableCell
from .control import Control
from .errors import ConfigurationError
from .options import SelectorOptions
from .view import MARKER, SelectorView, is_probe


logger = logging.getLogger(__name__)

CellFactory = Callable[[str], ObservableCell[str]]


def _snapshot_pack(pack_key: str, pack: Mapping[Any, Any]) -> Mapping[str, Any]:
    fields: Dict[str, Any] = {}
    for name, value in pack.items():
        if is_probe(name):
            logger.warning("Pack %r: dropping field %r; field names must be plain strings", pack_key, name)
            continue
        if name == MARKER:
            logger.warning("Pack %r: field %r is shadowed by the control marker", pack_key, name)
        fields[name] = value
    return MappingProxyType(fields)


def _snapshot_packs(packs: Any) -> Mapping[str, Mapping[str, Any]]:
    """Validate the pack table and freeze a copy of it, keeping declared order."""
    if packs is None:
        raise ConfigurationError("A pack table is required")
    if not isinstance(packs, Mapping):
        raise ConfigurationError(f"Pack table must be a mapping, got {type(packs).__name__}")
    if not packs:
        raise ConfigurationError("Pack table must declare at least one pack")

    table: Dict[str, Mapping[str, Any]] = {}
    for key, pack in packs.items():
        if not isinstance(key, str) or not key:
            raise ConfigurationError(f"Pack keys must be non-empty strings, got {key!r}")
        if not isinstance(pack, Mapping):
            raise ConfigurationError(f"Pack {key!r} must be a mapping, got {type(pack).__name__}")
        table[key] = _snapshot_pack(key, pack)
    return MappingProxyType(table)


def _resolve_initial_key(
    keys: Tuple[str, ...],
    *,
    persisted: Optional[str],
    default: Optional[str],
) -> str:
    """Persisted key, else `default`, else the first declared key."""
    key_set = frozenset(keys)
    if persisted is not None:
        if persisted in key_set:
            return persisted
        logger.warning("Ignoring persisted pack key %r: not a declared pack", persisted)
    if default is not None:
        if default in key_set:
            return default
        logger.warning("Invalid default pack key: %r; falling back to %r", default, keys[0])
    return keys[0]


def create_selector(
    packs: Mapping[str, Mapping[str, Any]],
    options: Optional[Mapping[str, Any] | SelectorOptions] = None,
    *,
    storage: Optional[KeyValueStorage] = None,
    cell_factory: CellFactory = Cell,
) -> SelectorView:
    """
    Create a read-only view over `packs` that exposes the active pack's fields.

    Args:
    - packs: non-empty mapping of pack key to field mapping. Copied on entry.
    - options: `{"storage_key": ..., "default": ...}` (`storageKey` is accepted
      too) or a `SelectorOptions`. Bad option values are logged, never raised.
    - storage: backend used to restore and remember the active key. None means
      persistence is unavailable.
    - cell_factory: builds the observable cell holding the active key.

    Raises:
    - ConfigurationError if `packs` is missing, not a mapping, empty, or holds
      a non-mapping pack.
    """
    table = _snapshot_packs(packs)
    keys = tuple(table)
    opts = SelectorOptions.coerce(options)

    initial = _resolve_initial_key(
        keys,
        persisted=safe_get(storage, opts.storage_key),
        default=opts.default,
    )
    logger.debug("Selector created with packs %s; active pack %r", ", ".join(keys), initial)

    control = Control(
        keys=keys,
        cell=cell_factory(initial),
        storage=storage,
        storage_key=opts.storage_key,
    )
    return SelectorView(table, control)
