"""
Reactive pack selector.

`create_selector` takes a table of named packs (e.g. one dict of strings per
language) and returns a read-only view whose fields are those of the active
pack. The active pack is switched through the control surface at `view._`,
observed through `view._.subscribe`, and remembered in persisted storage.

Modules:
- selector: construction and initial pack resolution
- view: the forwarding view and field descriptors
- control: `current`, `set`, `select`
- cell: the observable cell holding the active key
- options: options model
- locale: default pack key from the host locale
"""

from .cell import Cell, ObservableCell
from .control import Control
from .errors import ConfigurationError, ReadOnlyViewError, SelectorError
from .locale import guess_locale
from .options import DEFAULT_STORAGE_KEY, SelectorOptions
from .selector import create_selector
from .view import MARKER, FieldDescriptor, SelectorView, control_of, describe, fields

__all__ = [
    "Cell",
    "ConfigurationError",
    "Control",
    "DEFAULT_STORAGE_KEY",
    "FieldDescriptor",
    "MARKER",
    "ObservableCell",
    "ReadOnlyViewError",
    "SelectorError",
    "SelectorOptions",
    "SelectorView",
    "control_of",
    "create_selector",
    "describe",
    "fields",
    "guess_locale",
]
