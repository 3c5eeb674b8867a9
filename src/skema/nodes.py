"""Schema node variants.

Raw schema input is JSON-compatible data. ``parse_node()`` classifies each
raw node once, before any closure is built, into one of:

- ``TextNode``: a bare string
- ``ElementNode``: ``{"$el": tag, "attrs": ..., "children": ...}``
- ``ComponentNode``: ``{"$cmp": name_or_component, "props": ..., "children": ...}``
- ``ConditionalNode``: ``{"if": expr, "then": schema, "else": schema}``

Elements and components may also carry an ``if`` guard, ``let`` bindings and a
``for`` loop descriptor. Nodes are immutable; the raw schema they came from is
never modified.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from skema._types import UNDEFINED

TEXT_TAG = "text"


class _NoGuard:
    __slots__ = ()

    def __repr__(self) -> str:
        return "NO_GUARD"


_NO_GUARD = _NoGuard()


@dataclass(frozen=True, slots=True)
class LoopSpec:
    """``for: [value_name, values]`` or ``for: [value_name, key_name, values]``"""

    value_name: str
    key_name: str | None
    values: Any


@dataclass(frozen=True, slots=True)
class TextNode:
    """Bare string node: rendered as a text node."""

    value: str


@dataclass(frozen=True, slots=True)
class ElementNode:
    """Markup element; ``tag == "text"`` marks a text element."""

    tag: str
    attrs: Any = None
    children: Any = None
    guard: Any = _NO_GUARD
    bindings: Mapping[str, Any] | None = None
    loop: LoopSpec | None = None

    @property
    def is_text(self) -> bool:
        return self.tag == TEXT_TAG


@dataclass(frozen=True, slots=True)
class ComponentNode:
    """Component reference: a registered name or a component object."""

    ref: Any
    props: Any = None
    children: Any = None
    guard: Any = _NO_GUARD
    bindings: Mapping[str, Any] | None = None
    loop: LoopSpec | None = None


@dataclass(frozen=True, slots=True)
class ConditionalNode:
    """``if``/``then``/``else`` node; renders one of two sub-schemas."""

    condition: Any
    then: Any
    otherwise: Any = None
    has_else: bool = False


SchemaNode: TypeAlias = TextNode | ElementNode | ComponentNode | ConditionalNode


def is_conditional(raw: Any) -> bool:
    """True for mappings shaped like ``{"if": ..., "then": ...}``."""
    return isinstance(raw, Mapping) and "if" in raw and "then" in raw


def parse_loop(raw: Any) -> LoopSpec | None:
    """Parse a ``for`` descriptor; wrong shapes yield None."""
    if not isinstance(raw, (list, tuple)) or len(raw) not in (2, 3):
        return None
    if not isinstance(raw[0], str):
        return None
    if len(raw) == 3:
        return LoopSpec(value_name=raw[0], key_name=str(raw[1]), values=raw[2])
    return LoopSpec(value_name=raw[0], key_name=None, values=raw[1])


def _bindings(raw: Mapping[str, Any]) -> Mapping[str, Any] | None:
    bindings = raw.get("let")
    if isinstance(bindings, Mapping) and bindings:
        return bindings
    return None


def parse_node(raw: Any) -> SchemaNode | None:
    """Classify a raw schema node.

    Returns:
        The node variant, or None when the shape is not recognized
    """
    if isinstance(raw, (TextNode, ElementNode, ComponentNode, ConditionalNode)):
        return raw
    if isinstance(raw, str):
        return TextNode(raw)
    if not isinstance(raw, Mapping):
        return None

    if "$el" in raw:
        tag = raw["$el"]
        if not isinstance(tag, str) or not tag:
            return None
        return ElementNode(
            tag=tag,
            attrs=raw.get("attrs"),
            children=raw.get("children"),
            guard=raw.get("if", _NO_GUARD),
            bindings=_bindings(raw),
            loop=parse_loop(raw.get("for")),
        )

    if "$cmp" in raw:
        ref = raw["$cmp"]
        if ref is None or ref == "":
            return None
        return ComponentNode(
            ref=ref,
            props=raw.get("props"),
            children=raw.get("children"),
            guard=raw.get("if", _NO_GUARD),
            bindings=_bindings(raw),
            loop=parse_loop(raw.get("for")),
        )

    if is_conditional(raw):
        return ConditionalNode(
            condition=raw["if"],
            then=raw["then"],
            otherwise=raw.get("else"),
            has_else="else" in raw,
        )

    return None


def has_guard(node: ElementNode | ComponentNode) -> bool:
    return node.guard is not _NO_GUARD


def truthy(value: Any) -> bool:
    """Truthiness used for every schema condition.

    Only ``None``, ``UNDEFINED``, ``False``, numeric zero, NaN and ``""`` are
    falsy. Everything else is truthy, including empty lists and mappings.
    """
    if value is None or value is UNDEFINED or value is False:
        return False
    if isinstance(value, (int, float)):
        return value != 0 and value == value
    if isinstance(value, str):
        return value != ""
    return True


def stringify(value: Any) -> str:
    """Text content for a rendered value (``None``/``UNDEFINED`` → ``""``)."""
    if value is None or value is UNDEFINED:
        return ""
    return str(value)
