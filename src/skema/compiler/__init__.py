"""Schema compiler: raw schema → render closures.

Modules:
- core: SchemaCompiler (combines the mixins below)
- attributes: attribute maps and conditional attributes
- conditionals: ``if`` guards and if/then/else nodes
- loops: ``for`` descriptors and the iteration protocol
- elements: per-node artifacts and render-closure assembly

"""

from __future__ import annotations

from skema.compiler.core import SchemaCompiler
from skema.compiler.elements import CompiledNode
from skema.compiler.loops import LoopIterator, iterate_values

__all__ = ["CompiledNode", "LoopIterator", "SchemaCompiler", "iterate_values"]
