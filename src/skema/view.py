"""SchemaView: a mounted, self-updating schema.

A SchemaView owns one compiled tree and keeps its output current:

- mutating the (reactive) data re-renders: token refs re-resolve first,
  then the render effect that read them runs once
- assigning a new ``schema`` recompiles: the previous tree's resolver
  effects are stopped and a fresh scope store is used

Example:
    >>> view = Environment().mount(
    ...     {"$el": "p", "children": "$count"}, {"count": 1}
    ... )
    >>> view.output.text
    '1'
    >>> view.data["count"] = 2
    >>> view.output.text
    '2'

"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from skema._types import Renderable, RenderFn
from skema.eval_context import evaluation_context
from skema.exceptions import ScopeStackError
from skema.reactivity import EffectScope, Ref, reactive, untracked, watch_effect
from skema.scope import ScopeId, ScopeStore

if TYPE_CHECKING:
    from skema.environment import Environment
    from skema.reactivity import Effect

logger = logging.getLogger(__name__)

Listener = Callable[[Renderable], Any]


def _render_nothing() -> None:
    return None


class SchemaView:
    """A schema compiled against reactive data, re-rendered on change.

    Attributes:
        data: The reactive root data object
        render_count: Completed render passes (diagnostics)
        compile_count: Completed compilations (diagnostics)
    """

    def __init__(
        self,
        env: Environment,
        schema: Any,
        data: Any = None,
        library: Mapping[str, Any] | None = None,
    ) -> None:
        self._env = env
        self._library = dict(library) if library else {}
        self.data = reactive(data if data is not None else {})
        self._schema: Ref[Any] = Ref(schema)
        self._root: Ref[RenderFn] = Ref(_render_nothing)
        self._store = ScopeStore()
        self._effects: EffectScope | None = None
        self._listeners: list[Listener] = []
        self._output: Renderable = None
        self.render_count = 0
        self.compile_count = 0
        self._compile_effect: Effect = watch_effect(self._compile)
        self._render_effect: Effect = watch_effect(self._rerender, flush="post")

    # ─────────────────────────────────────────────────────────────────────────
    # Effects
    # ─────────────────────────────────────────────────────────────────────────

    def _compile(self) -> None:
        schema = self._schema.value
        with untracked():
            if self._effects is not None:
                self._effects.stop()
            self._effects = EffectScope()
            self._store = ScopeStore()
            compiler = self._env.compiler(self.data, library=self._library, store=self._store)
            with self._effects.activate():
                root = compiler.compile(schema, (ScopeId("root"),))
            self.compile_count += 1
            logger.debug(
                "Compiled schema: %d nodes, %d resolver effects",
                compiler.node_count,
                len(self._effects),
            )
        self._root.value = root

    def _rerender(self) -> None:
        output = self._evaluate(self._root.value)
        self._output = output
        self.render_count += 1
        logger.debug("Rendered schema view (pass %d)", self.render_count)
        with untracked():
            for listener in list(self._listeners):
                listener(output)

    def _evaluate(self, root: RenderFn) -> Renderable:
        with evaluation_context() as ctx:
            output = root()
        # frame() always rebalances; only frames pushed around it can leak
        if self._env.debug and ctx.depth:
            raise ScopeStackError(ctx.depth)
        return output

    # ─────────────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def output(self) -> Renderable:
        """Output of the most recent render pass."""
        return self._output

    @property
    def schema(self) -> Any:
        return self._schema.peek()

    @schema.setter
    def schema(self, schema: Any) -> None:
        """Replace the schema; triggers a recompilation and a re-render."""
        self._schema.value = schema

    @property
    def store(self) -> ScopeStore:
        """Scope store of the current compiled tree."""
        return self._store

    @property
    def mounted(self) -> bool:
        return self._render_effect.active

    def render(self) -> Renderable:
        """Evaluate the current tree now, without tracking or notifying."""
        with untracked():
            return self._evaluate(self._root.peek())

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(output)`` after every re-render.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def unmount(self) -> None:
        """Stop reacting to data and schema changes."""
        self._render_effect.stop()
        self._compile_effect.stop()
        if self._effects is not None:
            self._effects.stop()
        self._listeners.clear()

    def __repr__(self) -> str:
        state = "mounted" if self.mounted else "unmounted"
        return f"<SchemaView {state} renders={self.render_count}>"
