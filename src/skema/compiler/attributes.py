"""Attribute compilation for the schema compiler.

Provides mixin for compiling ``attrs`` / ``props`` maps into closures that
build a fresh attribute dict on every call.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from skema._types import UNDEFINED, Getter
from skema.expressions import is_dynamic
from skema.nodes import is_conditional, truthy

if TYPE_CHECKING:
    from skema.scope import ScopePath

AttrsFn = Callable[[], Any]


def _nothing() -> None:
    return None


def _empty_attrs() -> dict[str, Any]:
    return {}


class AttributeCompilationMixin:
    """Mixin for compiling attribute maps.

    Each attribute value is one of:
        - a literal, copied verbatim
        - a dynamic string (``"$expr"``), re-evaluated on every call
        - a conditional mapping (``{"if": ..., "then": ..., "else": ...}``)
        - a plain mapping, compiled recursively into a sub-map

    """

    __slots__ = ()

    # ─────────────────────────────────────────────────────────────────────────
    # Host attributes and cross-mixin dependencies (type-check only)
    # ─────────────────────────────────────────────────────────────────────────
    if TYPE_CHECKING:
        # From SchemaCompiler core
        def compile_expression(self, scopes: ScopePath, source: str) -> Getter: ...

        # From ConditionalCompilationMixin
        def compile_condition(self, scopes: ScopePath, condition: Any) -> Getter: ...

    def compile_attrs(self, scopes: ScopePath, raw: Any) -> AttrsFn:
        """Compile a raw attribute map.

        Dynamic slots are pre-declared as ``UNDEFINED`` so every key keeps its
        declared position; each call copies that template into a new dict and
        fills the dynamic slots.

        A root conditional (``raw`` itself is ``if``/``then``/``else``) returns
        only the selected branch, defaulting to an empty map.

        Returns:
            Closure returning a new dict per call, or None when ``raw`` is None
        """
        if raw is None or not isinstance(raw, Mapping):
            return _nothing
        if is_conditional(raw):
            return self._compile_condition_attr(scopes, raw, _empty_attrs)

        template: dict[str, Any] = {}
        setters: list[tuple[str, Getter]] = []
        for name, value in raw.items():
            if is_dynamic(value) or isinstance(value, Mapping):
                template[name] = UNDEFINED
                setters.append((name, self._compile_attr_value(scopes, value)))
            else:
                template[name] = value

        if not setters:
            return lambda: dict(template)

        def attrs() -> dict[str, Any]:
            result = dict(template)
            for name, getter in setters:
                result[name] = getter()
            return result

        return attrs

    def _compile_attr_value(self, scopes: ScopePath, value: Any) -> Getter:
        if is_dynamic(value):
            return self.compile_expression(scopes, value)
        if is_conditional(value):
            return self._compile_condition_attr(scopes, value, _nothing)
        if isinstance(value, Mapping):
            return self.compile_attrs(scopes, value)
        return lambda: value

    def _compile_condition_attr(
        self,
        scopes: ScopePath,
        attr: Mapping[str, Any],
        default: Getter,
    ) -> Getter:
        """Compile ``{"if": cond, "then": a, "else": b}`` at attribute level.

        ``default`` is used when the condition is false and there is no ``else``.
        """
        condition = self.compile_condition(scopes, attr["if"])
        then = self._compile_attr_value(scopes, attr["then"])
        otherwise = self._compile_attr_value(scopes, attr["else"]) if "else" in attr else default
        return lambda: then() if truthy(condition()) else otherwise()
