"""Per-node compilation for the schema compiler.

Provides mixin that compiles one raw schema node into a ``CompiledNode``
artifact and assembles that artifact into the node's render closure.

Uses inline TYPE_CHECKING declarations for host attributes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, NamedTuple

from skema._types import Getter, Renderable, RenderFn
from skema.compiler.loops import LoopIterator
from skema.expressions import is_dynamic
from skema.nodes import (
    TEXT_TAG,
    ComponentNode,
    ConditionalNode,
    ElementNode,
    TextNode,
    has_guard,
    is_conditional,
    parse_node,
    stringify,
    truthy,
)
from skema.scope import ScopeId

if TYPE_CHECKING:
    from skema.nodes import LoopSpec, SchemaNode
    from skema.rendering import Renderer
    from skema.scope import ScopePath, ScopeStore

logger = logging.getLogger(__name__)


class CompiledNode(NamedTuple):
    """Everything a node's render closure needs, built once per compilation."""

    condition: Getter | None
    element: Any
    attrs: Callable[[], Any]
    children: RenderFn | None
    alternate: RenderFn | None
    scopes: ScopePath
    iterator: LoopIterator | None


def _nothing() -> None:
    return None


def _is_text(element: Any) -> bool:
    return isinstance(element, str) and element == TEXT_TAG


class ElementCompilationMixin:
    """Mixin for compiling individual schema nodes.

    Dispatch (first match wins):
        1. ``TextNode`` / ``$el`` → tag, attributes (none for text elements)
        2. ``$cmp`` → local library, then the renderer's global lookup
        3. ``if``/``then``/``else`` → condition plus two branches, no element
        4. ``if`` guard on elements and components
        5. ``let`` bindings, applied before children are compiled
        6. children (text, expression, list or nested conditional)
        7. ``for`` loop wrapping the finished render closure

    """

    __slots__ = ()

    # ─────────────────────────────────────────────────────────────────────────
    # Host attributes and cross-mixin dependencies (type-check only)
    # ─────────────────────────────────────────────────────────────────────────
    if TYPE_CHECKING:
        # Host attributes (from SchemaCompiler.__init__)
        _store: ScopeStore
        _library: Mapping[str, Any]
        _renderer: Renderer
        _node_count: int

        # From SchemaCompiler core
        def compile(self, schema: Any, parent_scopes: ScopePath = ()) -> RenderFn: ...

        def compile_expression(self, scopes: ScopePath, source: str) -> Getter: ...

        # From AttributeCompilationMixin
        def compile_attrs(self, scopes: ScopePath, raw: Any) -> Callable[[], Any]: ...

        # From ConditionalCompilationMixin
        def compile_condition(self, scopes: ScopePath, condition: Any) -> Getter: ...

        def compile_conditional(
            self, scopes: ScopePath, node: ConditionalNode
        ) -> tuple[Getter, RenderFn, RenderFn | None]: ...

        # From LoopCompilationMixin
        def compile_loop(self, scopes: ScopePath, loop: LoopSpec) -> LoopIterator: ...

        def _repeat(self, render: RenderFn, iterator: LoopIterator) -> RenderFn: ...

    def parse(self, parent_scopes: ScopePath, raw: Any) -> CompiledNode | None:
        """Compile one raw node into its artifact.

        The node gets a fresh scope id appended to ``parent_scopes``.

        Returns:
            The compiled artifact, or None for an unrecognized node shape
        """
        node = parse_node(raw)
        if node is None:
            logger.debug("Ignoring malformed schema node: %r", raw)
            return None

        self._node_count += 1
        scopes: ScopePath = (*parent_scopes, ScopeId())
        condition: Getter | None = None
        element: Any = None
        attrs: Callable[[], Any] = _nothing
        children: RenderFn | None = None
        alternate: RenderFn | None = None
        iterator: LoopIterator | None = None

        if isinstance(node, TextNode):
            element = TEXT_TAG
            children = self._compile_children(scopes, node.value)
            return CompiledNode(condition, element, attrs, children, alternate, scopes, iterator)

        if isinstance(node, ConditionalNode):
            condition, children, alternate = self.compile_conditional(scopes, node)
            return CompiledNode(condition, element, attrs, children, alternate, scopes, iterator)

        if isinstance(node, ElementNode):
            element = node.tag
            if not node.is_text:
                attrs = self.compile_attrs(scopes, node.attrs)
        else:
            element = self._resolve_component(node.ref)
            attrs = self.compile_attrs(scopes, node.props)

        # A plain guard: renders the node or nothing
        if has_guard(node):
            condition = self.compile_condition(scopes, node.guard)

        if node.bindings:
            self._store.bind(scopes, node.bindings)

        if node.children:
            children = self._compile_children(scopes, node.children)

        if node.loop is not None:
            iterator = self.compile_loop(scopes, node.loop)

        return CompiledNode(condition, element, attrs, children, alternate, scopes, iterator)

    def _resolve_component(self, ref: Any) -> Any:
        if isinstance(ref, str):
            if ref in self._library:
                return self._library[ref]
            return self._renderer.resolve_component(ref)
        return ref

    def _compile_children(self, scopes: ScopePath, children: Any) -> RenderFn:
        if isinstance(children, str):
            if is_dynamic(children):
                value = self.compile_expression(scopes, children)
                return lambda: stringify(value())
            return lambda: children
        if isinstance(children, (list, tuple)):
            return self.compile(list(children), scopes)
        parsed = parse_node(children) if is_conditional(children) else None
        if isinstance(parsed, ConditionalNode):
            condition, then, otherwise = self.compile_conditional(scopes, parsed)

            def conditional_children() -> Renderable:
                if truthy(condition()):
                    return then()
                return otherwise() if otherwise is not None else None

            return conditional_children
        if isinstance(children, Mapping):
            # A single child node
            return self.compile(children, scopes)
        text = stringify(children)
        return lambda: text

    def create_element(self, parent_scopes: ScopePath, raw: Any) -> RenderFn:
        """Compile one raw node into its render closure."""
        compiled = self.parse(parent_scopes, raw)
        if compiled is None:
            return _nothing
        condition, element, attrs, children, alternate, _scopes, iterator = compiled
        renderer = self._renderer

        def render_node() -> Renderable:
            # Bare if/then/else
            if condition is not None and element is None and children is not None:
                if truthy(condition()):
                    return children()
                return alternate() if alternate is not None else None

            if element is not None and (condition is None or truthy(condition())):
                if _is_text(element):
                    return renderer.make_text_node(stringify(children()) if children else "")
                return renderer.make_node(element, attrs(), children() if children else [])

            return alternate() if alternate is not None else None

        if iterator is not None:
            return self._repeat(render_node, iterator)
        return render_node

    def compile_node(self, node: SchemaNode | Any, parent_scopes: ScopePath = ()) -> RenderFn:
        """Compile a single node (raw or already parsed)."""
        return self.create_element(parent_scopes, node)
