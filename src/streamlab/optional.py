# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Optional result holder for terminal operations that may find nothing.

find_first, find_any, min, max and reduce without an identity return an
Optional instead of a sentinel so an empty stream is distinguishable from a
stream whose answer is a falsy value such as 0 or "".
"""

from typing import Any, Callable, Generic, Optional as _Opt, TypeVar

T = TypeVar("T")
U = TypeVar("U")


class NoSuchElementError(LookupError):
    """Raised when reading the value of an empty Optional."""

    pass


class Optional(Generic[T]):
    """A container that holds one non-None value or nothing."""

    __slots__ = ("_value",)

    _EMPTY: "_Opt[Optional[Any]]" = None

    def __init__(self, value: _Opt[T] = None) -> None:
        self._value = value

    @classmethod
    def of(cls, value: T) -> "Optional[T]":
        """Wrap a value.

        Raises:
            ValueError: If value is None.
        """
        if value is None:
            raise ValueError("Optional.of() requires a non-None value")
        return cls(value)

    @classmethod
    def empty(cls) -> "Optional[Any]":
        if cls._EMPTY is None:
            cls._EMPTY = cls()
        return cls._EMPTY

    @classmethod
    def of_nullable(cls, value: _Opt[T]) -> "Optional[T]":
        return cls.empty() if value is None else cls(value)

    def is_present(self) -> bool:
        return self._value is not None

    def is_empty(self) -> bool:
        return self._value is None

    def get(self) -> T:
        """Return the value.

        Raises:
            NoSuchElementError: If the Optional is empty.
        """
        if self._value is None:
            raise NoSuchElementError("No value present")
        return self._value

    def or_else(self, other: T) -> T:
        return other if self._value is None else self._value

    def or_else_get(self, supplier: Callable[[], T]) -> T:
        return supplier() if self._value is None else self._value

    def or_else_raise(self, exc_factory: _Opt[Callable[[], BaseException]] = None) -> T:
        if self._value is None:
            if exc_factory is None:
                raise NoSuchElementError("No value present")
            raise exc_factory()
        return self._value

    def if_present(self, action: Callable[[T], Any]) -> None:
        if self._value is not None:
            action(self._value)

    def if_present_or_else(self, action: Callable[[T], Any], empty_action: Callable[[], Any]) -> None:
        if self._value is not None:
            action(self._value)
        else:
            empty_action()

    def map(self, mapper: Callable[[T], _Opt[U]]) -> "Optional[U]":
        # A mapper returning None yields an empty Optional
        if self._value is None:
            return Optional.empty()
        return Optional.of_nullable(mapper(self._value))

    def flat_map(self, mapper: Callable[[T], "Optional[U]"]) -> "Optional[U]":
        if self._value is None:
            return Optional.empty()
        result = mapper(self._value)
        if not isinstance(result, Optional):
            raise TypeError(f"flat_map mapper must return an Optional, got {type(result)}")
        return result

    def filter(self, predicate: Callable[[T], bool]) -> "Optional[T]":
        if self._value is None or predicate(self._value):
            return self
        return Optional.empty()

    def __bool__(self) -> bool:
        return self._value is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Optional):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        if self._value is None:
            return "Optional.empty"
        return f"Optional[{self._value!r}]"
