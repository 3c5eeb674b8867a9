"""Fixtures for the skema example apps.

Every example directory holds an ``app.py`` that mounts one or more
``SchemaView`` objects at import time. ``example_app`` executes that file
as a fresh module for each test and unmounts every view it created once
the test is done, so no effect outlives its test.
"""

import importlib.util
from pathlib import Path

import pytest

from skema import SchemaView


def _load_app(test_path: Path):
    app_path = test_path.parent / "app.py"
    spec = importlib.util.spec_from_file_location(f"skema_example_{app_path.parent.name}", app_path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def example_app(request: pytest.FixtureRequest):
    """The sibling app.py, freshly executed; its views are unmounted on teardown."""
    module = _load_app(Path(request.path))
    yield module
    for value in list(vars(module).values()):
        if isinstance(value, SchemaView):
            value.unmount()


@pytest.fixture
def example_view(example_app) -> SchemaView:
    """The primary ``view`` mounted by the example app."""
    return example_app.view
