"""Observable coordinator fields.

A ``StateField`` stores its value on the instance and calls the owner's
``invalidate(field_name)`` whenever an assignment changes it, so the host
knows to re-derive the entry view.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Optional, TypeVar, overload

T = TypeVar("T")

_MISSING: Any = object()


class StateField(Generic[T]):
    """Descriptor for a field that invalidates its owner on change.

    Usage:
        class Root(Coordinator):
            button_tap_count = StateField(0)
            tags = StateField(default_factory=list)
    """

    def __init__(self, default: T = _MISSING, *, default_factory: Optional[Callable[[], T]] = None) -> None:
        if default is not _MISSING and default_factory is not None:
            raise TypeError("StateField takes either a default or a default_factory, not both")
        self.default = default
        self.default_factory = default_factory
        self.name = "<unbound>"
        self._attr = "_state_unbound"

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self._attr = f"_state_{name}"

    @overload
    def __get__(self, instance: None, owner: type) -> "StateField[T]": ...

    @overload
    def __get__(self, instance: object, owner: type) -> T: ...

    def __get__(self, instance: Optional[object], owner: type) -> Any:
        if instance is None:
            return self
        try:
            return instance.__dict__[self._attr]
        except KeyError:
            value = self._make_default()
            instance.__dict__[self._attr] = value
            return value

    def __set__(self, instance: object, value: T) -> None:
        previous = instance.__dict__.get(self._attr, _MISSING)
        if previous is _MISSING:
            previous = self._make_default()
        instance.__dict__[self._attr] = value
        if previous != value:
            invalidate = getattr(instance, "invalidate", None)
            if invalidate is not None:
                invalidate(self.name)

    def _make_default(self) -> T:
        if self.default_factory is not None:
            return self.default_factory()
        if self.default is _MISSING:
            raise AttributeError(f"State field '{self.name}' has no value")
        return self.default
