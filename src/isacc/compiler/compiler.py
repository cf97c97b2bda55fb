"""
isacc Compiler Main Module
==========================

The compiler interface. One Compiler targets one ISA; every compile
call starts from a fresh CompilerState, so a Compiler can be reused for
any number of sources.

    Source → Segment → Tokenize → Lower (engine + handlers) → Back-end → Listing

Usage
-----
Command line:
    $ isacc loop.c -a stack -o loop.stack.s

Programmatic:
    >>> from isacc import compile_source
    >>> compile_source("A = B + C;", isa="mm3").splitlines()[0]
    '\\tadd A, B, C'

Listing Layout
--------------
1. The main program, one instruction per line, ``label:`` in front of
   labelled instructions
2. ``...`` followed by the function bodies, when any were declared
3. A blank line and the cost summary (unless disabled)

Error Handling
--------------
PatternNotFoundError (and its subclasses) abort the compilation. No
partial listing is produced.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from isacc.backends import BACKENDS, ISA, Backend
from isacc.compiler.engine import StatementLowerer
from isacc.compiler.lexer import segment_statements
from isacc.compiler.state import CompilerState
from isacc.config import CompilerOptions
from isacc.costs import CostAccumulator

logger = logging.getLogger(__name__)


@dataclass
class CompilationResult:
    """
    Result of compiling one source for one ISA.

    Attributes:
        isa: The target architecture
        filename: Name of the compiled source
        text: The complete listing
        costs: Instruction count, code size and memory accesses
    """
    isa: ISA
    filename: str
    text: str
    costs: CostAccumulator


class Compiler:
    """
    Compiles source text for one instruction-set architecture.

    Usage:
        compiler = Compiler("accumulator")
        listing = compiler.compile("A = B + C;")
    """

    def __init__(
        self,
        isa: Union[ISA, str] = ISA.MM3ADDRESS,
        options: Optional[CompilerOptions] = None,
    ):
        self.isa = ISA.parse(isa)
        self.options = options or CompilerOptions()
        self._backend_class: type[Backend] = BACKENDS[self.isa]

    def compile(self, source: str, filename: str = "<input>") -> str:
        """Compile source and return the listing text."""
        return self.compile_source(source, filename).text

    def compile_file(self, path: Union[str, Path]) -> CompilationResult:
        path = Path(path)
        return self.compile_source(path.read_text(), path.name)

    def compile_source(self, source: str, filename: str = "<input>") -> CompilationResult:
        """
        Compile source text.

        Args:
            source: Program text
            filename: Name used in diagnostics and reports

        Returns:
            CompilationResult with the listing and its costs

        Raises:
            PatternNotFoundError: If the program cannot be lowered
        """
        logger.info(f"Compiling {filename} for {self.isa.name}")
        state = CompilerState.create(
            source, filename, self.options, self._backend_class.temporary_prefix
        )
        backend = self._backend_class(state)
        lowerer = StatementLowerer(state, backend)

        for segment in segment_statements(source):
            lowerer.feed(segment)
        lowerer.finish()

        text = self._render(state, backend)
        logger.info(
            f"{filename} [{self.isa.name}]: {state.costs.instructions} instructions, "
            f"{state.costs.bits} bits, {state.costs.memory_accesses} memory accesses"
        )
        return CompilationResult(self.isa, filename, text, state.costs)

    def _render(self, state: CompilerState, backend: Backend) -> str:
        state.main.flush()
        state.functions.flush()

        lines, address = backend.render(state.main.instructions)
        if state.functions.instructions:
            function_lines, _ = backend.render(state.functions.instructions, address)
            lines.append("...")
            lines.extend(function_lines)

        text = "\n".join(lines)
        if self.options.emit_summary:
            text += "\n\n" + state.costs.summary()
        return text + "\n"


def compile_source(
    source: str,
    isa: Union[ISA, str] = ISA.MM3ADDRESS,
    filename: str = "<input>",
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile source text for one ISA.

    Convenience wrapper around Compiler.compile.

    Args:
        source: Program text
        isa: Target architecture (ISA member, "mm3", "MM3ADDRESS", ...)
        filename: Name used in diagnostics
        options: Cost and naming options

    Returns:
        The listing text
    """
    return Compiler(isa, options).compile(source, filename)
