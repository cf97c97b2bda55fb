"""
isacc Compiler Package
======================

Translates a small C-like language into assembly listings for five
instruction-set styles and reports static cost metrics for each.

- A lexical segmenter splitting source into statements and tokens
- A namespace manager for temporaries and labels
- A recursive statement lowering engine
- Handlers for if / else, while, switch, functions and calls
- Back-ends for the five ISAs (see isacc.backends)

Pipeline
--------
    Source → Segmenter → Lexer → Lowering engine → Back-end → Listing

Language Subset
---------------
Supported:
- Assignment with + - * /, parentheses, left-to-right evaluation
- if / else, while, switch / case / default / break, goto, labels
- One-dimensional array reads by constant or variable index
- Function declarations and calls, one nesting level, return

Not supported:
- Declarations with types beyond skipping the type name
- Array element assignment, pointers, structs
- Logical operators (&&, ||, !)
"""

from isacc.compiler.compiler import (
    CompilationResult,
    Compiler,
    compile_source,
)
from isacc.compiler.engine import LoweringResult, StatementLowerer
from isacc.compiler.lexer import (
    Segment,
    Token,
    TokenType,
    segment_statements,
    tokenize,
)
from isacc.compiler.namespace import Namespace
from isacc.compiler.state import CompilerState, FunctionContext, OutputStream

__all__ = [
    "CompilationResult",
    "Compiler",
    "compile_source",
    "LoweringResult",
    "StatementLowerer",
    "Segment",
    "Token",
    "TokenType",
    "segment_statements",
    "tokenize",
    "Namespace",
    "CompilerState",
    "FunctionContext",
    "OutputStream",
]
