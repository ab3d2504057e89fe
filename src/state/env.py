from __future__ import annotations

import os
from typing import Mapping, Optional

from .base import KeyValueStorage
from .file_store import JsonFileStorage
from .memory_store import MemoryStorage


ENV_STORAGE = "PACKSWITCH_STORAGE"
ENV_STORAGE_PATH = "PACKSWITCH_STORAGE_PATH"

BACKENDS = ("none", "memory", "file", "s3")


def _getenv(environ: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    val = environ.get(name)
    return val if val not in (None, "") else default


def storage_from_env(environ: Optional[Mapping[str, str]] = None) -> Optional[KeyValueStorage]:
    """Build the storage backend selected by `PACKSWITCH_STORAGE`.

    Returns None for "none" (the default), meaning persistence is unavailable.
    Raises RuntimeError for an unknown backend name or missing S3 settings.
    """
    env = os.environ if environ is None else environ
    backend = (_getenv(env, ENV_STORAGE, "none") or "none").strip().lower()

    if backend == "none":
        return None
    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        return JsonFileStorage(_getenv(env, ENV_STORAGE_PATH))
    if backend == "s3":
        # Imported lazily so boto3 is only loaded when S3 is requested
        from .s3_store import S3Storage

        return S3Storage.from_env(env)
    raise RuntimeError(
        f"Unknown storage backend {backend!r} in {ENV_STORAGE}; expected one of {', '.join(BACKENDS)}"
    )
