"""Shared sentinels and type aliases for skema."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Final, TypeAlias


class _Missing:
    """Result of a lookup that found nothing."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "MISSING"


class _Undefined:
    """A present-but-undefined value.

    Distinct from ``MISSING``: a key holding ``UNDEFINED`` exists. Dynamic
    attribute slots hold it until their expression is first evaluated.
    Falsy, renders as an empty string and is dropped from serialized
    attributes.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __str__(self) -> str:
        return ""

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "UNDEFINED"


MISSING: Final = _Missing()
UNDEFINED: Final = _Undefined()

# A renderable is None, text, a rendered node, or a (nested) list of those.
Renderable: TypeAlias = Any
RenderFn: TypeAlias = Callable[[], Renderable]
Getter: TypeAlias = Callable[[], Any]
