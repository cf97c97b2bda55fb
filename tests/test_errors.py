"""
Tests for the Error Hierarchy
=============================
"""

import pytest

from isacc import compile_source
from isacc.errors import (
    CompilerError,
    IsaccError,
    NamespaceError,
    PatternNotFoundError,
    SourceLocation,
    UnbalancedBracketError,
    UnrecognizedOperationError,
    UnsupportedConstructError,
)


class TestHierarchy:
    def test_pattern_errors(self):
        """Every input error is a PatternNotFoundError."""
        for error_class in (UnbalancedBracketError, UnrecognizedOperationError,
                            UnsupportedConstructError):
            assert issubclass(error_class, PatternNotFoundError)
        assert issubclass(PatternNotFoundError, CompilerError)
        assert issubclass(CompilerError, IsaccError)

    def test_namespace_error_is_internal(self):
        assert issubclass(NamespaceError, IsaccError)
        assert not issubclass(NamespaceError, CompilerError)


class TestSourceLocation:
    def test_from_offset(self):
        source = "A = 1;\nB = 2;\n"
        location = SourceLocation.from_offset(source, source.index("2"), "t.c")
        assert location == SourceLocation("t.c", 2, 5)
        assert str(location) == "t.c:2:5"

    def test_first_character(self):
        assert SourceLocation.from_offset("X", 0) == SourceLocation("<input>", 1, 1)


class TestFormatting:
    def test_message_only(self):
        assert str(CompilerError("missing operand")) == "error: missing operand"

    def test_caret(self):
        error = CompilerError(
            "bad",
            location=SourceLocation("t.c", 1, 5),
            hint="fix it",
            source_line="A = B # C;",
        )
        assert str(error).splitlines() == [
            "t.c:1:5: error: bad",
            "    A = B # C;",
            "        ^",
            "hint: fix it",
        ]

    def test_unrecognized_operation_location(self):
        with pytest.raises(UnrecognizedOperationError) as exc_info:
            compile_source("A = 1;\nB = C % D;", filename="ops.c")
        error = exc_info.value
        assert error.location == SourceLocation("ops.c", 2, 7)
        assert "ops.c:2:7: error: unrecognized operation '%'" in str(error)
