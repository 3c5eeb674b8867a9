"""Schema compiler core: the SchemaCompiler class.

The SchemaCompiler turns a raw schema (a node or a list of nodes) into a
tree of zero-argument render closures. Uses a mixin-based design:

- ``AttributeCompilationMixin``: ``attrs`` / ``props`` maps
- ``ConditionalCompilationMixin``: ``if`` guards and if/then/else nodes
- ``LoopCompilationMixin``: ``for`` descriptors
- ``ElementCompilationMixin``: one node → artifact → render closure

Design Principles:
1. **Single pass**: compilation walks the schema top-down once; nothing is
   re-parsed at render time
2. **Closures, not nodes**: the output is executable closures; node trees
   only appear when a closure calls the renderer
3. **Scoped resolution**: every token resolver is bound to the scope path of
   the node that declared it

Compilation vs. evaluation:
A schema is compiled once per schema definition. Changes to data flow
through re-evaluation of the same closures (token refs re-resolve
reactively); only a new schema requires a new compilation.

Example:
    >>> compiler = SchemaCompiler(reactive({"name": "World"}))
    >>> render = compiler.compile({"$el": "h1", "children": "$name"})
    >>> render()
    VNode(type='h1', props={}, children=[TextVNode(text='World')])

"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from skema._types import Getter, Renderable, RenderFn
from skema.compiler.attributes import AttributeCompilationMixin
from skema.compiler.conditionals import ConditionalCompilationMixin
from skema.compiler.elements import ElementCompilationMixin
from skema.compiler.loops import LoopCompilationMixin
from skema.eval_context import check_scope
from skema.expressions import ExpressionCompiler
from skema.rendering import VNodeRenderer
from skema.scope import ScopeStore, resolve

if TYPE_CHECKING:
    from skema.expressions import ExpressionCompilerProtocol, TokenResolverFactory
    from skema.rendering import Renderer
    from skema.scope import ScopePath


class SchemaCompiler(
    AttributeCompilationMixin,
    ConditionalCompilationMixin,
    LoopCompilationMixin,
    ElementCompilationMixin,
):
    """Compile raw schemas into render closures.

    Attributes:
        _data: Root data object (normally a reactive proxy)
        _store: Scope store receiving ``let`` bindings
        _library: Local components, consulted before global ones
        _renderer: Rendering backend the closures call
        _expressions: Expression compiler for ``$`` values and conditions
        _node_count: Nodes compiled so far (diagnostics)

    A compiler instance is bound to one data root and one scope store; use a
    new instance (and a new store) for a full recompilation.
    """

    __slots__ = (
        "_data",
        "_expressions",
        "_library",
        "_node_count",
        "_renderer",
        "_store",
    )

    def __init__(
        self,
        data: Any,
        *,
        store: ScopeStore | None = None,
        library: Mapping[str, Any] | None = None,
        renderer: Renderer | None = None,
        expressions: ExpressionCompilerProtocol | None = None,
    ) -> None:
        self._data = data
        self._store = store if store is not None else ScopeStore()
        self._library = library if library is not None else {}
        self._renderer = renderer if renderer is not None else VNodeRenderer()
        self._expressions = expressions if expressions is not None else ExpressionCompiler()
        self._node_count = 0

    @property
    def store(self) -> ScopeStore:
        return self._store

    @property
    def node_count(self) -> int:
        return self._node_count

    def compile(self, schema: Any, parent_scopes: ScopePath = ()) -> RenderFn:
        """Compile a node or a list of nodes.

        Each node gets its own scope id appended to ``parent_scopes``.

        Returns:
            For a list, a closure returning a list (one entry per node, in
            declared order); for a single node, that node's render closure
        """
        if isinstance(schema, (list, tuple)):
            elements = [self.create_element(parent_scopes, node) for node in schema]

            def render_list() -> list[Renderable]:
                return [element() for element in elements]

            return render_list
        return self.create_element(parent_scopes, schema)

    def compile_expression(self, scopes: ScopePath, source: str) -> Getter:
        """Compile expression source with tokens resolved against ``scopes``.

        Syntax errors from the expression compiler propagate unchanged.
        """
        expression = self._expressions.compile(source)
        return expression.provide(self._resolver_factory(scopes))

    def _resolver_factory(self, scopes: ScopePath) -> TokenResolverFactory:
        data, store = self._data, self._store

        def factory(token: str) -> Getter:
            ref = resolve(data, store, scopes, token)
            return lambda: check_scope(ref.value, token)

        return factory
