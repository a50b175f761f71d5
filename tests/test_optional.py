# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for the Optional result holder."""

from typing import List

import pytest

from streamlab.optional import NoSuchElementError, Optional


class TestConstruction:
    def test_of(self) -> None:
        opt = Optional.of("x")
        assert opt.is_present()
        assert opt.get() == "x"

    def test_of_none_raises(self) -> None:
        with pytest.raises(ValueError):
            Optional.of(None)

    def test_of_nullable(self) -> None:
        assert Optional.of_nullable(None) is Optional.empty()
        assert Optional.of_nullable(0).get() == 0

    def test_falsy_values_are_present(self) -> None:
        """0 and "" are values, not absence."""
        assert Optional.of(0).is_present()
        assert Optional.of("").is_present()


class TestAccess:
    def test_get_on_empty_raises(self) -> None:
        with pytest.raises(NoSuchElementError, match="No value present"):
            Optional.empty().get()

    def test_or_else(self) -> None:
        assert Optional.empty().or_else("fallback") == "fallback"
        assert Optional.of("value").or_else("fallback") == "value"

    def test_or_else_get_is_lazy(self) -> None:
        calls: List[int] = []

        def supplier() -> str:
            calls.append(1)
            return "made"

        assert Optional.of("value").or_else_get(supplier) == "value"
        assert calls == []
        assert Optional.empty().or_else_get(supplier) == "made"
        assert calls == [1]

    def test_or_else_raise(self) -> None:
        with pytest.raises(NoSuchElementError):
            Optional.empty().or_else_raise()
        with pytest.raises(KeyError):
            Optional.empty().or_else_raise(lambda: KeyError("missing"))
        assert Optional.of(3).or_else_raise() == 3

    def test_if_present(self) -> None:
        seen: List[str] = []
        Optional.of("a").if_present(seen.append)
        Optional.empty().if_present(seen.append)
        assert seen == ["a"]

    def test_if_present_or_else(self) -> None:
        seen: List[str] = []
        Optional.empty().if_present_or_else(seen.append, lambda: seen.append("empty"))
        Optional.of("b").if_present_or_else(seen.append, lambda: seen.append("empty"))
        assert seen == ["empty", "b"]


class TestTransform:
    def test_map(self) -> None:
        assert Optional.of("abc").map(len) == Optional.of(3)
        assert Optional.of("abc").map(lambda s: None).is_empty()
        assert Optional.empty().map(len).is_empty()

    def test_flat_map(self) -> None:
        assert Optional.of(4).flat_map(lambda n: Optional.of(n * 2)).get() == 8
        with pytest.raises(TypeError):
            Optional.of(4).flat_map(lambda n: n * 2)

    def test_filter(self) -> None:
        assert Optional.of(4).filter(lambda n: n > 3).get() == 4
        assert Optional.of(2).filter(lambda n: n > 3).is_empty()


class TestDunder:
    def test_bool(self) -> None:
        assert Optional.of(0)
        assert not Optional.empty()

    def test_equality_and_hash(self) -> None:
        assert Optional.of(1) == Optional.of(1)
        assert Optional.of(1) != Optional.of(2)
        assert Optional.empty() == Optional.of_nullable(None)
        assert len({Optional.of(1), Optional.of(1)}) == 1

    def test_repr(self) -> None:
        assert repr(Optional.of("x")) == "Optional['x']"
        assert repr(Optional.empty()) == "Optional.empty"
