"""
isacc Error Hierarchy
=====================

This module defines the exception hierarchy for the whole compiler.
All exceptions inherit from IsaccError, so callers can catch every
compiler-related error with a single except clause.

Exception Hierarchy
-------------------
IsaccError (base)
├── CompilerError (problems in the source being compiled)
│   └── PatternNotFoundError - an expected syntactic marker is missing
│       ├── UnbalancedBracketError - unmatched {, }, (, ), [ or ]
│       ├── UnrecognizedOperationError - operator with no primitive op
│       └── UnsupportedConstructError - syntax outside the language subset
└── NamespaceError - temporaries released out of allocation order

PatternNotFoundError is fatal to one (ISA, source file) compilation.
There is no partial recovery inside a compile call; the program driver
catches it per combination and carries on with the next one.

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class IsaccError(Exception):
    """
    Base exception for all isacc errors.

        try:
            compile_source(text, isa="mm3")
        except IsaccError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A position in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    @classmethod
    def from_offset(cls, source: str, offset: int, filename: str = "<input>") -> "SourceLocation":
        """Build a location from an absolute character offset into source."""
        offset = max(0, min(offset, len(source)))
        line = source.count("\n", 0, offset) + 1
        line_start = source.rfind("\n", 0, offset) + 1
        return cls(filename, line, offset - line_start + 1)

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Compiler Exceptions
# =============================================================================

class CompilerError(IsaccError):
    """
    Base exception for errors found in the program being compiled.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The source text of the offending line (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            loop.c:3:9: error: no comparison operator in condition
                while (A) A = A - 1;
                ^
            hint: compare with ==, !=, <, >, <= or >=
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class PatternNotFoundError(CompilerError):
    """
    An expected syntactic marker is absent from a statement.

    Raised when the lowering engine cannot locate something it needs:
    a comparison operator in an if/while condition, a function name
    before '(', an operand for an operator, and so on. Aborts the
    compilation for the current ISA.
    """
    pass


class UnbalancedBracketError(PatternNotFoundError):
    """
    A bracket has no matching partner.

    Covers unmatched braces (detected when the source ends while a block
    is still open, or when a '}' appears with no open block), and
    unmatched parentheses or square brackets inside a statement.
    """
    pass


class UnrecognizedOperationError(PatternNotFoundError):
    """An operator symbol that maps to no primitive operation."""

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol = symbol
        super().__init__(
            f"unrecognized operation '{symbol}'",
            location=location,
            hint="only +, -, * and / are supported",
            source_line=source_line,
        )


class UnsupportedConstructError(PatternNotFoundError):
    """
    Recognised syntax that lies outside the supported language subset.

    Examples:
        - 'else' with no preceding 'if'
        - 'case' outside a switch body
        - a function declared inside another function
        - an array element used as an assignment target
    """
    pass


# =============================================================================
# Internal Errors
# =============================================================================

class NamespaceError(IsaccError):
    """
    Temporaries were released in a different order than allocated.

    This indicates a bug in the compiler rather than in the input.
    """
    pass
