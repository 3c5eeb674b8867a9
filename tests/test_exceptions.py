"""Tests for error types, codes and their formatting."""

import pytest

from skema import (
    ErrorCode,
    ExpressionCompiler,
    ExpressionRuntimeError,
    ExpressionSyntaxError,
    SchemaError,
    ScopeStackError,
    terminal,
)


@pytest.fixture(autouse=True)
def _plain_output(monkeypatch):
    monkeypatch.setattr(terminal, "_USE_COLORS", False)


class TestErrorCode:
    def test_values_are_unique(self):
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))

    @pytest.mark.parametrize(
        ("code", "category"),
        [
            (ErrorCode.EXPRESSION_SYNTAX, "expression"),
            (ErrorCode.UNKNOWN_IDENTIFIER, "expression"),
            (ErrorCode.EXPRESSION_RUNTIME, "runtime"),
            (ErrorCode.UNBALANCED_FRAMES, "scope"),
        ],
    )
    def test_category(self, code, category):
        assert code.category == category

    def test_docs_url(self):
        assert ErrorCode.EXPRESSION_SYNTAX.docs_url.endswith("#sk-exp-001")


class TestHierarchy:
    @pytest.mark.parametrize("cls", [ExpressionSyntaxError, ExpressionRuntimeError, ScopeStackError])
    def test_subclass_of_schema_error(self, cls):
        assert issubclass(cls, SchemaError)


class TestExpressionSyntaxError:
    def test_message_and_caret(self):
        err = ExpressionSyntaxError("Unknown identifier 'x'", "$a + x", 5)
        lines = str(err).splitlines()
        assert lines[0] == "Expression Error: Unknown identifier 'x'"
        assert lines[1] == "  Expression: $a + x"
        assert lines[2].index("^") == len("  Expression: ") + 5

    def test_default_code(self):
        assert ExpressionSyntaxError("bad").code is ErrorCode.EXPRESSION_SYNTAX

    def test_code_override(self):
        err = ExpressionSyntaxError("bad", code=ErrorCode.UNSUPPORTED_SYNTAX)
        assert err.code is ErrorCode.UNSUPPORTED_SYNTAX

    def test_format_compact_includes_code_and_docs(self):
        with pytest.raises(ExpressionSyntaxError) as exc_info:
            ExpressionCompiler().compile("$a +")
        compact = exc_info.value.format_compact()
        assert compact.startswith("SK-EXP-001: ")
        assert "Docs: https://" in compact


class TestExpressionRuntimeError:
    def test_values_listed(self):
        err = ExpressionRuntimeError(
            "unsupported operand",
            expression="$total - 1",
            values={"total": None},
            suggestion="Check total",
        )
        text = str(err)
        assert "Runtime Error: unsupported operand" in text
        assert "total = None (NoneType)" in text
        assert "Suggestion: Check total" in text

    def test_long_values_truncated(self):
        err = ExpressionRuntimeError("x", expression="$big", values={"big": "y" * 200})
        line = next(line for line in str(err).splitlines() if "big =" in line)
        assert "..." in line
        assert len(line) < 120


def test_scope_stack_error():
    err = ScopeStackError(2)
    assert err.depth == 2
    assert err.code is ErrorCode.UNBALANCED_FRAMES
    assert "depth 2" in str(err)
