"""Evaluation context: per-pass state for compiled render closures.

Render closures take no arguments, yet loop bodies must see the values of
their enclosing iterations. Instead of a module-global stack, each
evaluation pass owns an ``EvaluationContext`` stored in a ContextVar:

    with evaluation_context() as ctx:
        output = root()
        # ctx.iteration_scopes is empty again here

Loop closures push one frame per iteration via ``ctx.frame(...)``, and the
token resolvers installed in expressions consult the frames through
``check_scope()`` before falling back to the persistent scope chain.

Thread-Safety:
ContextVars are thread-local and copied into asyncio tasks, so independent
trees can be evaluated concurrently without sharing frames.

"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any

from skema.scope import MISSING, find_value, split_token


@dataclass
class EvaluationContext:
    """State of one evaluation pass over a compiled tree.

    Attributes:
        iteration_scopes: Stack of iteration frames, outermost first
        max_depth: Deepest stack seen during this pass (diagnostics)
    """

    iteration_scopes: list[Mapping[str, Any]] = field(default_factory=list)
    max_depth: int = 0

    @property
    def depth(self) -> int:
        return len(self.iteration_scopes)

    @contextmanager
    def frame(self, bindings: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
        """Push one iteration frame for the duration of the block.

        The frame is popped on every exit path, including exceptions raised
        by the loop body.
        """
        depth = len(self.iteration_scopes)
        self.iteration_scopes.append(bindings)
        if depth + 1 > self.max_depth:
            self.max_depth = depth + 1
        try:
            yield bindings
        finally:
            popped = self.iteration_scopes.pop()
            assert popped is bindings and len(self.iteration_scopes) == depth, (
                "iteration frame stack out of balance"
            )

    def lookup(self, token: str) -> Any:
        """Find ``token`` in the active frames, innermost first.

        Returns:
            The bound value, or MISSING when no frame owns the token
        """
        if not self.iteration_scopes:
            return MISSING
        return find_value(reversed(self.iteration_scopes), split_token(token))


_evaluation_context: ContextVar[EvaluationContext | None] = ContextVar(
    "evaluation_context",
    default=None,
)


def get_evaluation_context() -> EvaluationContext | None:
    """Get the current evaluation context (None outside an evaluation pass)."""
    return _evaluation_context.get()


@contextmanager
def evaluation_context() -> Iterator[EvaluationContext]:
    """Open a fresh evaluation pass and make it current for the block.

    The previous context (if any) is restored on exit.
    """
    ctx = EvaluationContext()
    token: Token[EvaluationContext | None] = _evaluation_context.set(ctx)
    try:
        yield ctx
    finally:
        _evaluation_context.reset(token)


@contextmanager
def ensure_evaluation_context() -> Iterator[EvaluationContext]:
    """Reuse the current evaluation pass, or open one if none is active."""
    ctx = _evaluation_context.get()
    if ctx is not None:
        yield ctx
        return
    with evaluation_context() as ctx:
        yield ctx


def check_scope(value: Any, token: str) -> Any:
    """Prefer an iteration-frame binding for ``token`` over ``value``.

    Called by every token resolver right before a value is handed to an
    expression, so loop variables shadow store and data bindings without
    ever being written into the persistent scope chain.
    """
    ctx = _evaluation_context.get()
    if ctx is None or not ctx.iteration_scopes:
        return value
    found = ctx.lookup(token)
    return value if found is MISSING else found
