"""
Persisted key/value storage used to remember the active pack key.

Backends implement the tiny `KeyValueStorage` contract (`get`/`set` of
strings). The selector only ever talks to them through `safe_get` and
`safe_set`, so a backend is free to raise on I/O or decoding faults.
"""

from .base import KeyValueStorage, StorageError, safe_get, safe_set
from .memory_store import MemoryStorage

__all__ = [
    "KeyValueStorage",
    "MemoryStorage",
    "StorageError",
    "safe_get",
    "safe_set",
]
