"""Exceptions for the skema schema compiler.

Exception Hierarchy:
SchemaError (base)
├── ExpressionSyntaxError     # Expression source could not be parsed
├── ExpressionRuntimeError    # Expression failed while being evaluated
└── ScopeStackError           # Iteration frames left unbalanced by a render pass

Malformed schema nodes are not errors: they compile to closures that render
nothing, so a partially-invalid schema still renders the parts that are valid.
Expression syntax errors, on the other hand, propagate to whoever compiled the
schema.

Example:
    ```
    SK-EXP-001: Unexpected token in expression
      Expression: $count >> 1
                         ^
      Docs: https://skema.readthedocs.io/en/latest/errors/#sk-exp-001
    ```

"""

from __future__ import annotations

from enum import Enum
from typing import Any

from skema import terminal

_SKEMA_DOCS_BASE = "https://skema.readthedocs.io/en/latest/errors"


class ErrorCode(Enum):
    """Searchable error codes for skema errors.

    Format: SK-{CATEGORY}-{NUMBER}
    Categories: EXP (expression), RUN (runtime), SCP (scope)
    """

    # Expression errors (SK-EXP-xxx)
    EXPRESSION_SYNTAX = "SK-EXP-001"
    UNSUPPORTED_SYNTAX = "SK-EXP-002"
    UNKNOWN_IDENTIFIER = "SK-EXP-003"

    # Runtime errors (SK-RUN-xxx)
    EXPRESSION_RUNTIME = "SK-RUN-001"

    # Scope errors (SK-SCP-xxx)
    UNBALANCED_FRAMES = "SK-SCP-001"

    @property
    def docs_url(self) -> str:
        """Documentation URL for this error code."""
        return f"{_SKEMA_DOCS_BASE}/#{self.value.lower()}"

    @property
    def category(self) -> str:
        """Error category ('expression', 'runtime' or 'scope')."""
        prefix = self.value.split("-")[1]
        return {
            "EXP": "expression",
            "RUN": "runtime",
            "SCP": "scope",
        }.get(prefix, "unknown")


class SchemaError(Exception):
    """Base exception for all skema errors.

    Attributes:
        code: Optional ErrorCode for searchable error identification.
    """

    code: ErrorCode | None = None

    def format_compact(self) -> str:
        """Format the error as a short terminal diagnostic with its docs URL."""
        header = str(self)
        if self.code and self.code.value not in header:
            header = terminal.format_error_header(self.code.value, header)
        parts = [header]
        if self.code:
            parts.append(f"  {terminal.dim_text('Docs:')} {terminal.docs_url(self.code.docs_url)}")
        return "\n".join(parts)


class ExpressionSyntaxError(SchemaError):
    """An expression string could not be compiled.

    Raised by the expression compiler while a schema is being compiled, and
    never caught by the schema compiler itself.
    """

    code: ErrorCode | None = ErrorCode.EXPRESSION_SYNTAX

    def __init__(
        self,
        message: str,
        expression: str | None = None,
        col_offset: int | None = None,
        *,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.expression = expression
        self.col_offset = col_offset
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [f"Expression Error: {self.message}"]
        if self.expression is not None:
            parts.append(f"  Expression: {terminal.expression(self.expression)}")
            if self.col_offset is not None:
                pointer = " " * (len("  Expression: ") + self.col_offset) + "^"
                parts.append(terminal.caret(pointer))
        return "\n".join(parts)


class ExpressionRuntimeError(SchemaError):
    """An expression raised while it was being evaluated.

    Output Format:
            ```
            Runtime Error: unsupported operand type(s) for -: 'NoneType' and 'int'
              Expression: $total - 1
              Values:
                total = None (NoneType)
            ```

    Attributes:
        message: Error description
        expression: Source of the failing expression
        values: Token name → current value, for context
    """

    code: ErrorCode | None = ErrorCode.EXPRESSION_RUNTIME

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        values: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ):
        self.message = message
        self.expression = expression
        self.values = values or {}
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [f"Runtime Error: {self.message}"]
        if self.expression:
            parts.append(f"  Expression: {terminal.expression(self.expression)}")
        if self.values:
            parts.append("  Values:")
            for name, value in self.values.items():
                value_repr = repr(value)
                if len(value_repr) > 80:
                    value_repr = value_repr[:77] + "..."
                parts.append(f"    {name} = {value_repr} ({type(value).__name__})")
        if self.suggestion:
            parts.append(f"\n  {terminal.hint('Suggestion:')} {self.suggestion}")
        return "\n".join(parts)


class ScopeStackError(SchemaError):
    """Iteration frames were not restored at the end of a render pass.

    This is an internal invariant violation, never a user error: every loop
    body must pop exactly the frame it pushed.
    """

    code: ErrorCode | None = ErrorCode.UNBALANCED_FRAMES

    def __init__(self, depth: int, expected: int = 0):
        self.depth = depth
        self.expected = expected
        super().__init__(
            f"Iteration scope stack has depth {depth} after render pass (expected {expected})"
        )
