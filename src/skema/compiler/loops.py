"""Loop compilation for the schema compiler.

Provides mixin for compiling ``for`` descriptors into closures that repeat a
node's render closure once per iteration value.

Each iteration pushes one frame (``{value_name: value, key_name: key}``) onto
the evaluation context, runs the body, and pops the frame before the next
iteration starts, so nested loops and conditionals always observe exactly
their enclosing iterations.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, NamedTuple

from skema._types import Getter, RenderFn
from skema.eval_context import ensure_evaluation_context
from skema.expressions import is_dynamic

if TYPE_CHECKING:
    from skema.nodes import LoopSpec
    from skema.scope import ScopePath


class LoopIterator(NamedTuple):
    """Compiled ``for`` descriptor."""

    get_values: Getter
    value_name: str
    key_name: str | None


def _as_count(values: Any) -> int | None:
    if isinstance(values, bool):
        return None
    if isinstance(values, str):
        try:
            values = float(values)
        except ValueError:
            return None
    if isinstance(values, (int, float)):
        if isinstance(values, float) and not math.isfinite(values):
            return None
        return max(0, int(values))
    return None


def iterate_values(values: Any) -> Iterator[tuple[Any, Any]]:
    """Yield ``(key, value)`` pairs for a loop source.

    - numbers and numeric strings: ``(i, i)`` for ``i in range(n)``
    - mappings: their items, in insertion order
    - lists, tuples and other non-string sequences: ``(index, element)``
    - anything else: nothing
    """
    count = _as_count(values)
    if count is not None:
        for index in range(count):
            yield index, index
        return
    if isinstance(values, Mapping):
        yield from list(values.items())
        return
    if isinstance(values, Sequence) and not isinstance(values, (str, bytes)):
        yield from enumerate(list(values))


class LoopCompilationMixin:
    """Mixin for compiling ``for`` loops."""

    __slots__ = ()

    # ─────────────────────────────────────────────────────────────────────────
    # Host attributes and cross-mixin dependencies (type-check only)
    # ─────────────────────────────────────────────────────────────────────────
    if TYPE_CHECKING:
        # From SchemaCompiler core
        def compile_expression(self, scopes: ScopePath, source: str) -> Getter: ...

    def compile_loop(self, scopes: ScopePath, loop: LoopSpec) -> LoopIterator:
        """Compile a loop descriptor.

        A dynamic values source is an expression; anything else is a literal
        returned unchanged on every call.
        """
        values = loop.values
        if is_dynamic(values):
            get_values = self.compile_expression(scopes, values)
        else:

            def get_values() -> Any:
                return values

        return LoopIterator(get_values, loop.value_name, loop.key_name)

    def _repeat(self, render: RenderFn, iterator: LoopIterator) -> RenderFn:
        """Wrap ``render`` so it runs once per iteration value."""
        get_values, value_name, key_name = iterator

        def render_loop() -> list[Any]:
            fragment: list[Any] = []
            with ensure_evaluation_context() as ctx:
                for key, value in iterate_values(get_values()):
                    frame = {value_name: value}
                    if key_name is not None:
                        frame[key_name] = key
                    with ctx.frame(frame):
                        fragment.append(render())
            return fragment

        return render_loop
