"""Rendering backend: turn compiled output into node trees.

The schema compiler never builds nodes itself. It calls a ``Renderer``:

- ``make_node(type, attrs, children)``: element or component node
- ``make_text_node(text)``: text node
- ``resolve_component(name)``: global component lookup by name

``VNodeRenderer`` is the default backend, producing lightweight ``VNode`` /
``TextVNode`` trees. ``render_html()`` serializes such a tree for debugging
and tests.

Components:
A component is any callable ``component(props, children) -> renderable``.
Components are registered globally on an ``Environment`` (``ComponentRegistry``)
or passed per schema as a local library, which takes precedence.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

from skema._types import UNDEFINED

if TYPE_CHECKING:
    from skema.environment import Environment

logger = logging.getLogger(__name__)

Component: TypeAlias = Callable[..., Any]

# Elements that never have children or a closing tag
_VOID_ELEMENTS = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "link", "meta", "source", "track", "wbr",
    }
)


@dataclass(slots=True)
class VNode:
    """Element or component node.

    Attributes:
        type: Tag name, or the component callable
        props: Attributes / component input properties (always a dict)
        children: Normalized children (VNode / TextVNode only)
    """

    type: str | Component
    props: dict[str, Any] = field(default_factory=dict)
    children: list[VNode | TextVNode] = field(default_factory=list)

    @property
    def is_component(self) -> bool:
        return not isinstance(self.type, str)

    @property
    def text(self) -> str:
        """Concatenated text of all descendant text nodes."""
        return "".join(child.text for child in self.children)

    def iter_nodes(self) -> Iterator[VNode]:
        """Depth-first walk over this node and every descendant VNode."""
        yield self
        for child in self.children:
            if isinstance(child, VNode):
                yield from child.iter_nodes()

    def find_all(self, type: str | Component) -> list[VNode]:
        return [node for node in self.iter_nodes() if node.type == type]


@dataclass(frozen=True, slots=True)
class TextVNode:
    """Text node."""

    text: str


class Renderer(Protocol):
    """Interface the compiled closures render through."""

    def make_node(self, type: Any, attrs: Mapping[str, Any] | None, children: Any) -> Any: ...

    def make_text_node(self, text: str) -> Any: ...

    def resolve_component(self, name: str) -> Any: ...


class ComponentRegistry:
    """Dict-like registry of globally available components.

    Supports:
        - env.components['name'] = component
        - env.components.update({'name': component})
        - 'name' in env.components

    Mutations are copy-on-write, so a registry read during rendering is never
    mutated underneath the reader.
    """

    __slots__ = ("_env",)

    def __init__(self, env: Environment):
        self._env = env

    def _get_dict(self) -> dict[str, Component]:
        return self._env._components

    def _set_dict(self, d: dict[str, Component]) -> None:
        self._env._components = d

    def __getitem__(self, name: str) -> Component:
        return self._get_dict()[name]

    def __setitem__(self, name: str, component: Component) -> None:
        new = self._get_dict().copy()
        new[name] = component
        self._set_dict(new)

    def __delitem__(self, name: str) -> None:
        new = self._get_dict().copy()
        del new[name]
        self._set_dict(new)

    def __contains__(self, name: object) -> bool:
        return name in self._get_dict()

    def __len__(self) -> int:
        return len(self._get_dict())

    def get(self, name: str, default: Component | None = None) -> Component | None:
        return self._get_dict().get(name, default)

    def update(self, mapping: Mapping[str, Component]) -> None:
        new = self._get_dict().copy()
        new.update(mapping)
        self._set_dict(new)

    def keys(self):
        return self._get_dict().keys()

    def items(self):
        return self._get_dict().items()


def flatten_children(children: Any) -> Iterator[Any]:
    """Flatten nested child lists, dropping None, in declared order."""
    if children is None:
        return
    if isinstance(children, (list, tuple)):
        for child in children:
            yield from flatten_children(child)
        return
    yield children


class VNodeRenderer:
    """Default renderer producing ``VNode`` trees.

    Args:
        components: Global registry consulted by ``resolve_component``
    """

    __slots__ = ("_components",)

    def __init__(self, components: Mapping[str, Component] | ComponentRegistry | None = None):
        self._components = components if components is not None else {}

    def make_node(self, type: Any, attrs: Mapping[str, Any] | None, children: Any) -> VNode:
        return VNode(
            type=type,
            props=dict(attrs) if attrs else {},
            children=[self._normalize(child) for child in flatten_children(children)],
        )

    def make_text_node(self, text: str) -> TextVNode:
        return TextVNode(text)

    def resolve_component(self, name: str) -> Any:
        """Look up a global component; unknown names render as plain tags."""
        component = self._components.get(name)
        if component is None:
            logger.warning("Failed to resolve component %r; rendering it as a tag", name)
            return name
        return component

    def _normalize(self, child: Any) -> VNode | TextVNode:
        if isinstance(child, (VNode, TextVNode)):
            return child
        if child is UNDEFINED:
            return TextVNode("")
        return TextVNode(str(child))


# =============================================================================
# HTML serialization
# =============================================================================


def _format_attr(name: str, value: Any) -> str | None:
    if value is None or value is False or value is UNDEFINED:
        return None
    if value is True:
        return name
    if isinstance(value, Mapping):
        if name == "style":
            value = "; ".join(f"{k}: {v}" for k, v in value.items() if v not in (None, False))
        else:
            value = " ".join(str(k) for k, v in value.items() if v)
    elif isinstance(value, (list, tuple)):
        value = " ".join(str(v) for v in value if v not in (None, False))
    return f'{name}="{html.escape(str(value), quote=True)}"'


def _render_attrs(props: Mapping[str, Any]) -> str:
    parts = [attr for name, value in props.items() if (attr := _format_attr(name, value))]
    return (" " + " ".join(parts)) if parts else ""


def _iter_html(renderable: Any) -> Iterable[str]:
    for node in flatten_children(renderable):
        if isinstance(node, TextVNode):
            yield html.escape(node.text, quote=False)
        elif isinstance(node, VNode):
            if node.is_component:
                yield from _iter_html(node.type(node.props, node.children))
                continue
            tag = node.type
            yield f"<{tag}{_render_attrs(node.props)}>"
            if tag in _VOID_ELEMENTS:
                continue
            yield from _iter_html(node.children)
            yield f"</{tag}>"
        elif node is not UNDEFINED:
            yield html.escape(str(node), quote=False)


def render_html(renderable: Any) -> str:
    """Serialize a renderable (VNode tree, text or list) to an HTML string.

    Callable components are expanded with ``(props, children)``; text and
    attribute values are escaped; ``True`` attributes render as bare names
    and ``None``/``False``/``UNDEFINED`` ones are omitted.

    Example:
        >>> render_html(VNode("p", {"class": "lead"}, [TextVNode("a < b")]))
        '<p class="lead">a &lt; b</p>'
    """
    return "".join(_iter_html(renderable))
