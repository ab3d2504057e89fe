from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Optional

from .base import StorageError


DEFAULT_CACHE_DIR_ENV = "PACKSWITCH_CACHE_DIR"
DEFAULT_FILE_NAME = "packswitch.json"


def _default_storage_file() -> Path:
    # Prefer explicit env var, else project-local .cache folder
    base = os.environ.get(DEFAULT_CACHE_DIR_ENV)
    if base:
        return Path(base) / DEFAULT_FILE_NAME
    return Path(".cache") / DEFAULT_FILE_NAME


class JsonFileStorage:
    """
    Tiny JSON-file storage mapping identifiers to strings.

    - Backed by a single JSON object file: { key: value, ... }
    - Loaded lazily on first access, rewritten in full on every `set`.
    - A missing file is simply empty; an unreadable or malformed file raises
      `StorageError` so the caller can log it and fall back.
    """

    def __init__(self, path: Optional[os.PathLike[str] | str] = None) -> None:
        self._path = Path(path) if path else _default_storage_file()
        self._data: Dict[str, str] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        if not self._path.exists():
            self._data = {}
            self._loaded = True
            return
        try:
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as ex:
            raise StorageError(f"Failed to load {self._path}") from ex
        if not isinstance(raw, dict):
            raise StorageError(f"Expected a JSON object in {self._path}")
        # normalize to str->str, dropping entries written by something else
        self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
        self._loaded = True

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
        except OSError as ex:
            raise StorageError(f"Failed to write {self._path}") from ex

    def get(self, key: str) -> Optional[str]:
        self._ensure_loaded()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._ensure_loaded()
        self._data[key] = value
        self._save()
