"""Conditional compilation for the schema compiler.

Provides mixin for compiling ``if`` guards and ``if``/``then``/``else`` nodes.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from skema._types import Getter, RenderFn

if TYPE_CHECKING:
    from skema.nodes import ConditionalNode
    from skema.scope import ScopePath


class ConditionalCompilationMixin:
    """Mixin for compiling conditions and conditional nodes.

    Branches are compiled with the conditional node's own scope path, so a
    branch sees exactly the bindings its conditional sees.

    """

    __slots__ = ()

    # ─────────────────────────────────────────────────────────────────────────
    # Host attributes and cross-mixin dependencies (type-check only)
    # ─────────────────────────────────────────────────────────────────────────
    if TYPE_CHECKING:
        # From SchemaCompiler core
        def compile(self, schema: Any, parent_scopes: ScopePath = ()) -> RenderFn: ...

        def compile_expression(self, scopes: ScopePath, source: str) -> Getter: ...

    def compile_condition(self, scopes: ScopePath, condition: Any) -> Getter:
        """Compile a condition value.

        Strings are always expressions (``"$count > 1"``, ``"true"``); any
        other value is a constant condition.
        """
        if isinstance(condition, str):
            return self.compile_expression(scopes, condition)
        return lambda: condition

    def compile_conditional(
        self,
        scopes: ScopePath,
        node: ConditionalNode,
    ) -> tuple[Getter, RenderFn, RenderFn | None]:
        """Compile an if/then/else node.

        Returns:
            (condition, then_render, else_render or None)
        """
        condition = self.compile_condition(scopes, node.condition)
        then = self.compile(node.then, scopes)
        otherwise = None
        if node.has_else and node.otherwise is not None:
            otherwise = self.compile(node.otherwise, scopes)
        return condition, then, otherwise
