# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Comparator helpers.

A comparator is a callable ``(a, b) -> int`` returning a negative number,
zero or a positive number. Stream.sorted/min/max accept either a comparator
or a plain key function; comparators are turned into keys with
functools.cmp_to_key.
"""

from functools import cmp_to_key
from typing import Any, Callable, Optional

Comparator = Callable[[Any, Any], int]
KeyFunc = Callable[[Any], Any]


def _compare(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def natural_order() -> Comparator:
    """Compare elements with their own ordering operators."""
    return _compare


def reverse_order() -> Comparator:
    """Reverse of natural_order()."""
    return lambda a, b: _compare(b, a)


def reversed_comparator(cmp: Comparator) -> Comparator:
    return lambda a, b: cmp(b, a)


def comparing(key_fn: KeyFunc, key_comparator: Optional[Comparator] = None) -> Comparator:
    """Build a comparator that orders elements by an extracted key.

    Args:
        key_fn: Extracts the sort key from an element.
        key_comparator: Orders the extracted keys. Natural order if None.
    """
    inner = key_comparator or _compare
    return lambda a, b: inner(key_fn(a), key_fn(b))


def then_comparing(first: Comparator, second: Comparator) -> Comparator:
    """Use ``second`` to break ties left by ``first``."""

    def cmp(a: Any, b: Any) -> int:
        result = first(a, b)
        return result if result != 0 else second(a, b)

    return cmp


def as_key(comparator: Optional[Comparator] = None, key: Optional[KeyFunc] = None) -> Optional[KeyFunc]:
    """Resolve a comparator and/or key function into a single sort key.

    Raises:
        TypeError: If both a comparator and a key are given.
    """
    if comparator is not None and key is not None:
        raise TypeError("Pass either a comparator or a key function, not both")
    if comparator is not None:
        return cmp_to_key(comparator)
    return key
