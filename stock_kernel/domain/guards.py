"""Structural input guards shared by the engines."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

from stock_kernel.exceptions import InvalidInputError

T = TypeVar("T")


def require_sequence(argument: str, value: Any, element_type: type[T]) -> tuple[T, ...]:
    """
    Return ``value`` as a tuple, or raise InvalidInputError.

    Strings, bytes and mappings are rejected even though they are
    iterable: passing one where rows are expected is always a caller bug.
    """
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, (Sequence, set, frozenset)):
        raise InvalidInputError(
            argument,
            f"a sequence of {element_type.__name__}",
            type(value).__name__,
        )
    items = tuple(value)
    for index, item in enumerate(items):
        if not isinstance(item, element_type):
            raise InvalidInputError(
                f"{argument}[{index}]",
                element_type.__name__,
                type(item).__name__,
            )
    return items


def require_instance(argument: str, value: Any, expected_type: type[T]) -> T:
    """Return ``value`` if it is an ``expected_type``, else raise InvalidInputError."""
    if not isinstance(value, expected_type):
        raise InvalidInputError(argument, expected_type.__name__, type(value).__name__)
    return value
