from __future__ import annotations

import os
from typing import Mapping, Optional


LOCALE_ENV_VARS = ("LC_ALL", "LC_MESSAGES", "LANG")


def guess_locale(environ: Optional[Mapping[str, str]] = None) -> str:
    """Map the host locale to one of the "chs", "cht" or "en" pack keys.

    Reads the first non-empty of LC_ALL, LC_MESSAGES and LANG. Chinese locales
    for Taiwan, Hong Kong or Macau give "cht", other Chinese locales "chs",
    and anything else, including an unset locale, "en".
    """
    env = os.environ if environ is None else environ
    locale = ""
    for name in LOCALE_ENV_VARS:
        val = env.get(name)
        if val:
            locale = val.lower()
            break

    if locale.startswith("zh"):
        if any(region in locale for region in ("tw", "hk", "mo")):
            return "cht"
        return "chs"
    return "en"
