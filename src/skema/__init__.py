"""skema: compile JSON UI schemas into reactive render closures.

A schema is plain JSON-compatible data describing elements, components,
conditionals and loops. skema compiles it once into a tree of zero-argument
render closures, with lexically scoped ``let`` bindings and ``$`` expressions
that re-resolve whenever the data they read changes.

Quickstart:
    >>> from skema import mount
    >>> view = mount(
    ...     {
    ...         "$el": "div",
    ...         "attrs": {"data-x": "$count"},
    ...         "children": [{"if": "$count > 1", "then": "many", "else": "few"}],
    ...     },
    ...     {"count": 2},
    ... )
    >>> view.output.text
    'many'
    >>> view.data["count"] = 1
    >>> view.output.text, view.output.props["data-x"]
    ('few', 1)

Architecture:
Raw schema → parse_node() → SchemaCompiler → render closures → Renderer → nodes

Pipeline stages:
1. **Nodes**: each raw node is classified once into a closed set of variants
2. **Compiler**: every node gets a scope id; attributes, conditions, loops
   and children compile into closures bound to the node's scope path
3. **Evaluation**: calling the root closure inside an evaluation context
   produces renderables; loop bodies see their iteration frames
4. **Reactivity**: token refs track the data they read, so a mutation
   re-runs exactly the render passes that depend on it

Schema grammar:
- ``{"$el": "tag", "attrs": {...}, "children": ...}``
- ``{"$cmp": "Name", "props": {...}, "children": ...}``
- ``{"if": "$expr", "then": schema, "else": schema}``
- optional ``"if"`` guard, ``"let": {...}`` bindings and
  ``"for": ["value", "key", "$collection"]`` on elements and components
- any string starting with ``$`` (longer than ``$``) is an expression

"""

from skema._types import MISSING, UNDEFINED
from skema.compiler import CompiledNode, LoopIterator, SchemaCompiler, iterate_values
from skema.environment import Environment
from skema.eval_context import (
    EvaluationContext,
    check_scope,
    evaluation_context,
    get_evaluation_context,
)
from skema.exceptions import (
    ErrorCode,
    ExpressionRuntimeError,
    ExpressionSyntaxError,
    SchemaError,
    ScopeStackError,
)
from skema.expressions import Expression, ExpressionCompiler, is_dynamic
from skema.nodes import (
    ComponentNode,
    ConditionalNode,
    ElementNode,
    LoopSpec,
    TextNode,
    parse_node,
    truthy,
)
from skema.reactivity import (
    Effect,
    EffectScope,
    Ref,
    batch,
    is_reactive,
    reactive,
    to_raw,
    watch_effect,
)
from skema.rendering import (
    ComponentRegistry,
    Renderer,
    TextVNode,
    VNode,
    VNodeRenderer,
    render_html,
)
from skema.scope import ScopeId, ScopeStore, find_value, resolve
from skema.view import SchemaView

__version__ = "0.1.0"

_default_env: Environment | None = None


def get_default_environment() -> Environment:
    """The shared Environment used by the module-level helpers."""
    global _default_env
    if _default_env is None:
        _default_env = Environment()
    return _default_env


def mount(schema, data=None, library=None) -> SchemaView:
    """Mount ``schema`` against ``data`` using the default environment."""
    return get_default_environment().mount(schema, data, library=library)


__all__ = [
    "MISSING",
    "UNDEFINED",
    "CompiledNode",
    "ComponentNode",
    "ComponentRegistry",
    "ConditionalNode",
    "Effect",
    "EffectScope",
    "ElementNode",
    "Environment",
    "ErrorCode",
    "EvaluationContext",
    "Expression",
    "ExpressionCompiler",
    "ExpressionRuntimeError",
    "ExpressionSyntaxError",
    "LoopIterator",
    "LoopSpec",
    "Ref",
    "Renderer",
    "SchemaCompiler",
    "SchemaError",
    "SchemaView",
    "ScopeId",
    "ScopeStackError",
    "ScopeStore",
    "TextNode",
    "TextVNode",
    "VNode",
    "VNodeRenderer",
    "batch",
    "check_scope",
    "evaluation_context",
    "find_value",
    "get_default_environment",
    "get_evaluation_context",
    "is_dynamic",
    "is_reactive",
    "iterate_values",
    "mount",
    "parse_node",
    "reactive",
    "render_html",
    "resolve",
    "to_raw",
    "truthy",
    "watch_effect",
]
