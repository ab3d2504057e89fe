from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "v-locale"


class SelectorOptions(BaseModel):
    """
    Options accepted by `create_selector`.

    Fields
    - storage_key: identifier the active key is persisted under
      (also accepted as `storageKey`). Empty or non-string values fall back
      to "v-locale".
    - default: pack key preferred when nothing valid is persisted. Validity
      against the pack table is checked by the selector, not here.

    Validation is deliberately lenient: options never make construction fail.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    storage_key: str = Field(default=DEFAULT_STORAGE_KEY, alias="storageKey")
    default: Optional[str] = None

    @field_validator("storage_key", mode="before")
    @classmethod
    def _storage_key_or_default(cls, v: Any) -> str:
        if isinstance(v, str) and v:
            return v
        if v is not None:
            logger.warning("Ignoring invalid storage key option: %r", v)
        return DEFAULT_STORAGE_KEY

    @field_validator("default", mode="before")
    @classmethod
    def _default_or_none(cls, v: Any) -> Optional[str]:
        if v is None or isinstance(v, str):
            return v or None
        logger.warning("Ignoring non-string default option: %r", v)
        return None

    @classmethod
    def coerce(cls, raw: Any) -> "SelectorOptions":
        """Build options from None, a mapping or an existing instance; never raises."""
        if raw is None:
            return cls()
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, Mapping):
            logger.warning("Ignoring options of unsupported type %s", type(raw).__name__)
            return cls()
        try:
            return cls.model_validate({k: v for k, v in raw.items() if isinstance(k, str)})
        except ValidationError as ex:
            logger.warning("Ignoring invalid options: %s", ex)
            return cls()
