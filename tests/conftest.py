"""Pytest configuration and fixtures for skema tests."""

import pytest

from skema import Environment, SchemaCompiler, ScopeId, ScopeStore, reactive
from skema.rendering import TextVNode, VNode, VNodeRenderer


class RecordingRenderer(VNodeRenderer):
    """VNodeRenderer that records every node it builds."""

    def __init__(self, components=None):
        super().__init__(components)
        self.calls: list[tuple] = []

    def make_node(self, type, attrs, children):
        self.calls.append(("node", type, attrs))
        return super().make_node(type, attrs, children)

    def make_text_node(self, text):
        self.calls.append(("text", text))
        return super().make_text_node(text)


@pytest.fixture
def env():
    """Create a basic skema Environment."""
    return Environment()


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def make_compiler(renderer):
    """Factory building a SchemaCompiler over reactive data."""

    def factory(data=None, library=None):
        return SchemaCompiler(
            reactive(data if data is not None else {}),
            store=ScopeStore(),
            library=library,
            renderer=renderer,
        )

    return factory


@pytest.fixture
def root_scope():
    return (ScopeId("root"),)


def texts(renderable) -> list[str]:
    """Text of each top-level TextVNode / VNode in a flattened output."""
    out = []

    def walk(value):
        if isinstance(value, list):
            for item in value:
                walk(item)
        elif isinstance(value, (TextVNode, VNode)):
            out.append(value.text)
        elif value is not None:
            out.append(str(value))

    walk(renderable)
    return out
