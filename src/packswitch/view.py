from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional

from .control import Control
from .errors import ReadOnlyViewError


# Reserved field name giving access to the control surface
MARKER = "_"


def is_probe(name: object) -> bool:
    """True for names that are never pack fields: non-strings and dunders.

    Interpreter and framework machinery (copy, pickle, IPython, mocks, test
    runners) probe objects with such names; the view must answer them as
    absent instead of resolving them against the active pack.
    """
    if not isinstance(name, str):
        return True
    return len(name) > 4 and name.startswith("__") and name.endswith("__")


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    value: Any
    enumerable: bool = True
    writable: bool = False


class SelectorView:
    """
    Read-only object exposing the fields of the active pack as its own.

    Every operation resolves the active pack afresh:

    - `view.hello` / `view["hello"]`: the field of the active pack, or None
      when the pack has no such field. `view._` is the `Control`.
    - `"hello" in view`: whether the active pack has the field.
    - `list(view)`, `len(view)`, `dir(view)`: the marker followed by the
      active pack's fields in declared order.

    The class defines dunder names only, so every plain name reaches the
    active pack. Use `fields(view)` rather than `dict(view)` for a plain dict:
    `dict()` would look up a `keys` field.
    """

    __slots__ = ("__packs__", "__control__")

    def __init__(self, packs: Mapping[str, Mapping[str, Any]], control: Control) -> None:
        object.__setattr__(self, "__packs__", packs)
        object.__setattr__(self, "__control__", control)

    # -------- Read access --------
    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails, including for unset slots
        if is_probe(name):
            raise AttributeError(name)
        return _resolve(self, name)

    def __getitem__(self, name: str) -> Any:
        return _resolve(self, name)

    def __contains__(self, name: object) -> bool:
        if is_probe(name):
            return False
        if name == MARKER:
            return True
        return name in _current_pack(self)

    def __iter__(self) -> Iterator[str]:
        return iter(_field_names(self))

    def __len__(self) -> int:
        return len(_field_names(self))

    def __dir__(self) -> List[str]:
        return _field_names(self)

    # The view holds no state of its own; copies would only alias it
    def __copy__(self) -> "SelectorView":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "SelectorView":
        return self

    # -------- Writes are rejected --------
    def __setattr__(self, name: str, value: Any) -> None:
        raise ReadOnlyViewError(f"Cannot assign {name!r}: selector views are read-only")

    def __delattr__(self, name: str) -> None:
        raise ReadOnlyViewError(f"Cannot delete {name!r}: selector views are read-only")

    def __setitem__(self, name: str, value: Any) -> None:
        raise ReadOnlyViewError(f"Cannot assign {name!r}: selector views are read-only")

    def __delitem__(self, name: str) -> None:
        raise ReadOnlyViewError(f"Cannot delete {name!r}: selector views are read-only")

    def __repr__(self) -> str:
        return f"<SelectorView current={control_of(self).current!r} fields={_field_names(self)[1:]!r}>"


def control_of(view: SelectorView) -> Control:
    return object.__getattribute__(view, "__control__")


def _current_pack(view: SelectorView) -> Mapping[str, Any]:
    packs = object.__getattribute__(view, "__packs__")
    return packs[control_of(view).current]


def _resolve(view: SelectorView, name: object) -> Any:
    if is_probe(name):
        return None
    if name == MARKER:
        return control_of(view)
    return _current_pack(view).get(name)


def _field_names(view: SelectorView) -> List[str]:
    return [MARKER, *(name for name in _current_pack(view) if name != MARKER)]


def describe(view: SelectorView, name: object) -> Optional[FieldDescriptor]:
    """Descriptor for `name` on the view as currently resolved, or None if absent."""
    if name not in view:
        return None
    return FieldDescriptor(name=name, value=view[name], enumerable=True, writable=False)  # type: ignore[arg-type]


def fields(view: SelectorView) -> Dict[str, Any]:
    """Plain dict of the active pack's fields, in declared order, without the marker."""
    return {name: value for name, value in _current_pack(view).items() if name != MARKER}
