"""Environment: configuration shared by every schema it mounts.

Holds the pluggable collaborators of the schema compiler:

- ``renderer``: turns (type, attrs, children) into nodes (default ``VNodeRenderer``)
- ``expressions``: compiles ``$`` expressions (default ``ExpressionCompiler``)
- ``components``: globally registered components, looked up by name after
  a schema's local library

Example:
    >>> env = Environment(components={"Badge": badge})
    >>> view = env.mount(schema, {"count": 2})
    >>> view.output
    VNode(type='div', ...)

Thread-Safety:
Component registration is copy-on-write. Mounting and rendering only read
the environment.

"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from skema._types import Renderable
from skema.compiler import SchemaCompiler
from skema.expressions import ExpressionCompiler, ExpressionCompilerProtocol
from skema.rendering import Component, ComponentRegistry, Renderer, VNodeRenderer
from skema.scope import ScopeStore
from skema.view import SchemaView


class Environment:
    """Configuration and factory for compiled schemas.

    Args:
        renderer: Rendering backend; defaults to a ``VNodeRenderer`` that
            resolves global components from this environment
        expressions: Expression compiler; defaults to ``ExpressionCompiler()``
        components: Initial global component registrations
        debug: Verify after every render pass that all iteration frames were
            popped (defaults to ``__debug__``)
    """

    def __init__(
        self,
        *,
        renderer: Renderer | None = None,
        expressions: ExpressionCompilerProtocol | None = None,
        components: Mapping[str, Component] | None = None,
        debug: bool = __debug__,
    ) -> None:
        self._components: dict[str, Component] = dict(components) if components else {}
        self.components = ComponentRegistry(self)
        self.renderer: Renderer = renderer if renderer is not None else VNodeRenderer(self.components)
        self.expressions: ExpressionCompilerProtocol = (
            expressions if expressions is not None else ExpressionCompiler()
        )
        self.debug = debug

    def add_component(self, name: str, component: Component) -> None:
        """Register a component globally under ``name``."""
        self.components[name] = component

    def compiler(
        self,
        data: Any,
        *,
        library: Mapping[str, Any] | None = None,
        store: ScopeStore | None = None,
    ) -> SchemaCompiler:
        """Create a SchemaCompiler wired to this environment's collaborators."""
        return SchemaCompiler(
            data,
            store=store,
            library=library,
            renderer=self.renderer,
            expressions=self.expressions,
        )

    def mount(
        self,
        schema: Any,
        data: Any = None,
        *,
        library: Mapping[str, Any] | None = None,
    ) -> SchemaView:
        """Compile ``schema`` against ``data`` and keep the output current.

        ``data`` is wrapped in a reactive proxy (``view.data``); mutate it
        through that proxy to trigger re-rendering.
        """
        return SchemaView(self, schema, data, library)

    def render(
        self,
        schema: Any,
        data: Any = None,
        *,
        library: Mapping[str, Any] | None = None,
    ) -> Renderable:
        """One-shot render: mount, take the output, unmount."""
        view = self.mount(schema, data, library=library)
        try:
            return view.output
        finally:
            view.unmount()
