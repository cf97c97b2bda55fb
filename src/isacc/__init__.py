"""
isacc - Instruction-Set Architecture Cost Compiler
==================================================

This package compiles programs written in a small C-like language into
assembly listings for five instruction-set styles, and reports the static
cost of each listing: instruction count, encoded code size in bits, and
number of memory accesses. Comparing those numbers across machines is the
point of the exercise.

Target Architectures
--------------------
- **mm4**: four-address memory-to-memory machine (explicit next address)
- **mm3**: three-address memory-to-memory machine
- **accumulator**: one-address machine with an implicit accumulator
- **stack**: zero-address push/pop machine
- **loadstore**: MIPS-style register machine with lw / sw

Quick Start
-----------
Compile a statement:
    >>> from isacc import compile_source
    >>> listing = compile_source("A = B + C;", isa="stack")

Compile files for every architecture and print a comparison:
    >>> from isacc import simulate
    >>> report = simulate(["loop.c", "fact.c"])
    >>> print(report.render())

Or use the command-line tools:
    $ isacc loop.c -a loadstore
    $ isasim loop.c fact.c -o report.txt
"""

__version__ = "1.0.0"
__author__ = "isacc contributors"

# =============================================================================
# Public API Exports
# =============================================================================

from isacc.backends import BACKENDS, ISA, Backend, get_backend
from isacc.compiler import CompilationResult, Compiler, compile_source
from isacc.config import CompilerOptions
from isacc.costs import CostAccumulator, recount_listing
from isacc.driver import (
    CompilationFailure,
    SimulationReport,
    simulate,
    simulate_sources,
)
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

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Compiler
    "Compiler",
    "CompilationResult",
    "compile_source",
    "CompilerOptions",
    # Back-ends
    "ISA",
    "BACKENDS",
    "Backend",
    "get_backend",
    # Costs
    "CostAccumulator",
    "recount_listing",
    # Driver
    "CompilationFailure",
    "SimulationReport",
    "simulate",
    "simulate_sources",
    # Exception hierarchy
    "IsaccError",
    "CompilerError",
    "PatternNotFoundError",
    "UnbalancedBracketError",
    "UnrecognizedOperationError",
    "UnsupportedConstructError",
    "NamespaceError",
    "SourceLocation",
]
