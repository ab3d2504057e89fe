from __future__ import annotations


class SelectorError(Exception):
    """Base error for the pack selector."""


class ConfigurationError(SelectorError, ValueError):
    """The pack table handed to `create_selector` is missing, malformed or empty."""


class ReadOnlyViewError(SelectorError, AttributeError):
    """Raised on assignment or deletion through a selector view.

    The active pack can only be changed through the control surface's `set`.
    """
