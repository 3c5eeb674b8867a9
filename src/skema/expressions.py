"""Expression mini-language used by dynamic schema values.

Any schema string starting with ``$`` (and longer than the sigil itself) is
an expression: ``"$user.name"``, ``"$count > 1 && !$disabled"``,
``"'Hello ' + $name"``. Compilation happens in two steps:

1. ``ExpressionCompiler.compile(source)`` parses once and returns an
   ``Expression`` listing the tokens it references (``user.name`` ...).
2. ``Expression.provide(factory)`` asks ``factory(token)`` for a getter per
   token and returns a zero-argument closure evaluating the expression.

Parsing:
The source is translated to a Python expression (tokens become placeholder
names, ``&&``/``||``/``!`` become ``and``/``or``/``not``, ``true``/``false``/
``null`` become Python constants), parsed with ``ast.parse(mode="eval")``,
and then compiled into nested closures. Only whitelisted AST node types
are accepted; nothing is ever passed to ``eval()``.

Grammar:
    - Tokens: ``$name``, ``$a.b.c``, ``$items.0``
    - Literals: numbers, ``'single'``/``"double"`` strings, ``true``,
      ``false``, ``null``, ``undefined``, ``[lists]``
    - Logic: ``&&``, ``||``, ``!`` (also ``and``, ``or``, ``not``)
    - Comparison: ``==``, ``!=``, ``===``, ``!==``, ``<``, ``<=``, ``>``,
      ``>=``, ``in``, ``not in``
    - Arithmetic: ``+``, ``-``, ``*``, ``/``, ``%``, ``**``, unary ``-``/``+``
    - Access and calls: ``$items[0]``, ``$format($price)``
    - Conditional: ``$a if $flag else $b``

Semantics:
    - ``+`` concatenates when either side is a string
    - Ordering comparisons between incomparable values are false
    - Subscripts that miss evaluate to None

"""

from __future__ import annotations

import ast
import operator
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Protocol

from skema._types import UNDEFINED, Getter
from skema.exceptions import ErrorCode, ExpressionRuntimeError, ExpressionSyntaxError, SchemaError

SIGIL = "$"

_PLACEHOLDER = "_sk{}"

_KEYWORDS = {
    "true": "True",
    "false": "False",
    "null": "None",
    "undefined": "None",
    "and": "and",
    "or": "or",
    "not": "not",
    "in": "in",
    "if": "if",
    "else": "else",
}

# Longest operators first
_OPERATORS = (
    ("===", "=="),
    ("!==", "!="),
    ("&&", " and "),
    ("||", " or "),
    ("!=", "!="),
    ("!", " not "),
)


def is_dynamic(value: Any) -> bool:
    """True for strings that should be compiled rather than taken literally.

    A lone ``"$"`` is literal.
    """
    return isinstance(value, str) and value.startswith(SIGIL) and len(value) > len(SIGIL)


def _is_path_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_."


def _scan_string(source: str, start: int) -> int:
    """Return the index just past the string literal opening at ``start``."""
    quote = source[start]
    i = start + 1
    while i < len(source):
        ch = source[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    raise ExpressionSyntaxError("Unterminated string literal", source, start)


def _translate(source: str) -> tuple[str, tuple[str, ...]]:
    """Rewrite expression source as Python source.

    Returns:
        (python_source, tokens) where tokens[i] is bound to placeholder i
    """
    out: list[str] = []
    tokens: list[str] = []
    i, n = 0, len(source)
    while i < n:
        ch = source[i]

        if ch in "'\"":
            end = _scan_string(source, i)
            out.append(source[i:end])
            i = end
            continue

        if ch == SIGIL:
            j = i + 1
            while j < n and _is_path_char(source[j]):
                j += 1
            token = source[i + 1 : j].rstrip(".")
            if not token or token.startswith("."):
                raise ExpressionSyntaxError(f"Expected a name after '{SIGIL}'", source, i)
            if token not in tokens:
                tokens.append(token)
            out.append(f" {_PLACEHOLDER.format(tokens.index(token))} ")
            i += 1 + len(token)
            continue

        if ch.isdigit():
            j = i
            while j < n and (source[j].isalnum() or source[j] == "."):
                j += 1
            out.append(source[i:j])
            i = j
            continue

        if ch.isalpha() or ch == "_":
            j = i
            while j < n and (source[j].isalnum() or source[j] == "_"):
                j += 1
            word = source[i:j]
            if word not in _KEYWORDS:
                raise ExpressionSyntaxError(
                    f"Unknown identifier '{word}' (did you mean '{SIGIL}{word}'?)",
                    source,
                    i,
                    code=ErrorCode.UNKNOWN_IDENTIFIER,
                )
            out.append(f" {_KEYWORDS[word]} ")
            i = j
            continue

        for js_op, py_op in _OPERATORS:
            if source.startswith(js_op, i):
                out.append(py_op)
                i += len(js_op)
                break
        else:
            out.append(ch)
            i += 1

    return "".join(out).strip(), tuple(tokens)


@lru_cache(maxsize=512)
def _parse(source: str) -> tuple[ast.Expression, tuple[str, ...]]:
    python_source, tokens = _translate(source)
    if not python_source:
        raise ExpressionSyntaxError("Empty expression", source)
    try:
        tree = ast.parse(python_source, mode="eval")
    except SyntaxError as exc:
        raise ExpressionSyntaxError(exc.msg or "Invalid syntax", source) from None
    _validate(tree, source, len(tokens))
    return tree, tokens


_ALLOWED_NODES: tuple[type[ast.AST], ...] = (
    ast.Expression,
    ast.Constant,
    ast.Name,
    ast.Load,
    ast.BoolOp,
    ast.And,
    ast.Or,
    ast.UnaryOp,
    ast.Not,
    ast.USub,
    ast.UAdd,
    ast.BinOp,
    ast.Add,
    ast.Sub,
    ast.Mult,
    ast.Div,
    ast.Mod,
    ast.Pow,
    ast.Compare,
    ast.Eq,
    ast.NotEq,
    ast.Lt,
    ast.LtE,
    ast.Gt,
    ast.GtE,
    ast.In,
    ast.NotIn,
    ast.Subscript,
    ast.Call,
    ast.IfExp,
    ast.List,
    ast.Tuple,
)


def _validate(tree: ast.Expression, source: str, token_count: int) -> None:
    placeholders = {_PLACEHOLDER.format(i) for i in range(token_count)}
    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise ExpressionSyntaxError(
                f"Unsupported syntax: {type(node).__name__}",
                source,
                code=ErrorCode.UNSUPPORTED_SYNTAX,
            )
        if isinstance(node, ast.Name) and node.id not in placeholders:
            raise ExpressionSyntaxError(
                f"Unknown identifier '{node.id}'",
                source,
                code=ErrorCode.UNKNOWN_IDENTIFIER,
            )
        if isinstance(node, ast.Call) and node.keywords:
            raise ExpressionSyntaxError(
                "Keyword arguments are not supported",
                source,
                code=ErrorCode.UNSUPPORTED_SYNTAX,
            )


# =============================================================================
# Operators
# =============================================================================


def _to_text(value: Any) -> str:
    if value is None or value is UNDEFINED:
        return ""
    return str(value)


def _add(left: Any, right: Any) -> Any:
    if isinstance(left, str) or isinstance(right, str):
        return _to_text(left) + _to_text(right)
    return left + right


def _ordering(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def compare(left: Any, right: Any) -> bool:
        try:
            return op(left, right)
        except TypeError:
            return False

    return compare


def _contains(left: Any, right: Any) -> bool:
    try:
        return left in right
    except TypeError:
        return False


_BINOPS: dict[type[ast.operator], Callable[[Any, Any], Any]] = {
    ast.Add: _add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_CMPOPS: dict[type[ast.cmpop], Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: _ordering(operator.lt),
    ast.LtE: _ordering(operator.le),
    ast.Gt: _ordering(operator.gt),
    ast.GtE: _ordering(operator.ge),
    ast.In: _contains,
    ast.NotIn: lambda left, right: not _contains(left, right),
}


def _subscript(obj: Any, key: Any) -> Any:
    try:
        return obj[key]
    except (KeyError, IndexError, TypeError):
        return None


# =============================================================================
# Closure builder
# =============================================================================


class _ClosureBuilder:
    """Turn a validated expression AST into nested zero-argument closures.

    Uses O(1) dispatch on the node class name.
    """

    __slots__ = ("_getters",)

    def __init__(self, getters: Sequence[Getter]) -> None:
        self._getters = getters

    def build(self, node: ast.AST) -> Getter:
        return getattr(self, f"_build_{type(node).__name__}")(node)

    def _build_Expression(self, node: ast.Expression) -> Getter:
        return self.build(node.body)

    def _build_Constant(self, node: ast.Constant) -> Getter:
        value = node.value
        return lambda: value

    def _build_Name(self, node: ast.Name) -> Getter:
        return self._getters[int(node.id[len(_PLACEHOLDER.format("")):])]

    def _build_BoolOp(self, node: ast.BoolOp) -> Getter:
        operands = [self.build(value) for value in node.values]
        if isinstance(node.op, ast.And):

            def all_of() -> Any:
                value: Any = True
                for operand in operands:
                    value = operand()
                    if not value:
                        return value
                return value

            return all_of

        def any_of() -> Any:
            value: Any = False
            for operand in operands:
                value = operand()
                if value:
                    return value
            return value

        return any_of

    def _build_UnaryOp(self, node: ast.UnaryOp) -> Getter:
        operand = self.build(node.operand)
        if isinstance(node.op, ast.Not):
            return lambda: not operand()
        if isinstance(node.op, ast.USub):
            return lambda: -operand()
        return lambda: +operand()

    def _build_BinOp(self, node: ast.BinOp) -> Getter:
        left, right = self.build(node.left), self.build(node.right)
        op = _BINOPS[type(node.op)]
        return lambda: op(left(), right())

    def _build_Compare(self, node: ast.Compare) -> Getter:
        first = self.build(node.left)
        steps = [
            (_CMPOPS[type(op)], self.build(comparator))
            for op, comparator in zip(node.ops, node.comparators, strict=True)
        ]

        def compare() -> bool:
            left = first()
            for op, comparator in steps:
                right = comparator()
                if not op(left, right):
                    return False
                left = right
            return True

        return compare

    def _build_Subscript(self, node: ast.Subscript) -> Getter:
        obj, key = self.build(node.value), self.build(node.slice)
        return lambda: _subscript(obj(), key())

    def _build_Call(self, node: ast.Call) -> Getter:
        func = self.build(node.func)
        args = [self.build(arg) for arg in node.args]

        def call() -> Any:
            target = func()
            if not callable(target):
                raise TypeError(f"{type(target).__name__!r} object is not callable")
            return target(*(arg() for arg in args))

        return call

    def _build_IfExp(self, node: ast.IfExp) -> Getter:
        test, body, orelse = self.build(node.test), self.build(node.body), self.build(node.orelse)
        return lambda: body() if test() else orelse()

    def _build_List(self, node: ast.List | ast.Tuple) -> Getter:
        items = [self.build(element) for element in node.elts]
        return lambda: [item() for item in items]

    _build_Tuple = _build_List


# =============================================================================
# Public API
# =============================================================================


TokenResolverFactory = Callable[[str], Getter]


@dataclass(frozen=True, slots=True)
class Expression:
    """A parsed expression waiting for its token resolvers.

    Attributes:
        source: Original expression text
        tokens: Token paths referenced, in first-use order (without the sigil)
    """

    source: str
    tokens: tuple[str, ...]
    _tree: ast.Expression = field(repr=False, compare=False)

    def provide(self, factory: TokenResolverFactory) -> Getter:
        """Bind every token through ``factory`` and return the evaluator.

        ``factory`` is called once per token, immediately.
        """
        getters = [factory(token) for token in self.tokens]
        root = _ClosureBuilder(getters).build(self._tree)
        source, tokens = self.source, self.tokens

        def evaluate() -> Any:
            try:
                return root()
            except SchemaError:
                raise
            except Exception as exc:
                raise ExpressionRuntimeError(
                    str(exc),
                    expression=source,
                    values=_snapshot(tokens, getters),
                    suggestion="Check that every token resolves to a value of the expected type",
                ) from exc

        return evaluate


def _snapshot(tokens: Sequence[str], getters: Sequence[Getter]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for token, getter in zip(tokens, getters, strict=True):
        try:
            values[token] = getter()
        except Exception as exc:
            values[token] = exc
    return values


class ExpressionCompilerProtocol(Protocol):
    """Anything that can turn expression source into an ``Expression``-like object."""

    def compile(self, source: str) -> Any: ...


class ExpressionCompiler:
    """Default expression compiler.

    Parsing is memoized per source string, so repeated compilation of the
    same schema only builds new closures.

    Example:
        >>> expr = ExpressionCompiler().compile("$count > 1")
        >>> expr.tokens
        ('count',)
        >>> expr.provide(lambda token: lambda: 2)()
        True
    """

    __slots__ = ()

    def compile(self, source: str) -> Expression:
        source = source.strip()
        tree, tokens = _parse(source)
        return Expression(source=source, tokens=tokens, _tree=tree)


def cache_info() -> Any:
    """Parse cache statistics (``functools.lru_cache`` info)."""
    return _parse.cache_info()
