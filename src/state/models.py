from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, Field


class StoredValues(BaseModel):
    """
    Document persisted by the object-store backend.

    Fields
    - values: map of storage identifier (e.g. "v-locale") to the stored string,
      typically the last selected pack key.

    Notes
    - A single document holds every identifier so one object serves many
      selectors; writes are read-modify-write on the whole map.
    """

    values: Dict[str, str] = Field(
        default_factory=dict,
        description="Map of storage identifiers to stored strings",
    )

    @classmethod
    def empty(cls) -> "StoredValues":
        """Convenience constructor for an empty document."""
        return cls()
