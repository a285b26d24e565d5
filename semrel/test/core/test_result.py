"""Tests for semrel.core.result module."""

import dataclasses

import pytest

from semrel.core.result import Err, Ok, Result


def test_repr() -> None:
    assert repr(Ok("v1.0.0")) == "Ok('v1.0.0')"
    assert repr(Err("boom")) == "Err('boom')"


def test_equality() -> None:
    assert Ok(1) == Ok(1)
    assert Ok(1) != Err(1)
    assert Err("x") == Err("x")


def test_frozen() -> None:
    with pytest.raises(dataclasses.FrozenInstanceError):
        Ok(1).value = 2  # type: ignore[misc]


class TestPatternMatching:
    """Results are consumed with match statements across the code base."""

    def _describe(self, result: Result[int, str]) -> str:
        match result:
            case Ok(value):
                return f"ok {value}"
            case Err(error):
                return f"err {error}"

    def test_match_ok(self) -> None:
        assert self._describe(Ok(1)) == "ok 1"

    def test_match_err(self) -> None:
        assert self._describe(Err("bad")) == "err bad"

    def test_ok_none_matches_before_value(self) -> None:
        result: Result[int | None, str] = Ok(None)
        match result:
            case Ok(None):
                seen = "nothing"
            case Ok(_):
                seen = "value"
            case Err(_):
                seen = "error"
        assert seen == "nothing"
