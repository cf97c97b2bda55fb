"""
Compiler State
==============

Everything a compilation mutates lives in one CompilerState value that
the compiler creates fresh for every compile call and passes to the
lowering engine, the control-flow and function handlers, and the ISA
back-end. Nothing is kept at module scope, so separate Compiler
instances never share state.

Contents
--------
- Two output streams: the main program and the deferred function
  bodies, each with its own queue of labels waiting for the next
  instruction
- The namespace (temporaries and labels)
- The cost accumulator
- The function currently being declared, if any
- The call counter behind return-point labels
- Source spans already lowered out of order (else bodies)
"""

from dataclasses import dataclass, field
from typing import Optional

from isacc.backends.base import Instruction
from isacc.compiler.lexer import Token, normalize
from isacc.compiler.namespace import Namespace
from isacc.config import CompilerOptions
from isacc.costs import CostAccumulator
from isacc.errors import CompilerError, SourceLocation


# =============================================================================
# Emitted Code
# =============================================================================

@dataclass
class OutputStream:
    """Emitted instructions plus labels waiting for the next one."""

    instructions: list[Instruction] = field(default_factory=list)
    pending_labels: list[str] = field(default_factory=list)

    def take_labels(self) -> tuple[str, ...]:
        labels = tuple(self.pending_labels)
        self.pending_labels.clear()
        return labels

    def flush(self) -> None:
        """Define any still-pending labels on a label-only line."""
        if self.pending_labels:
            self.instructions.append(Instruction(None, labels=self.take_labels()))


@dataclass
class FunctionContext:
    """
    The function whose body is being lowered.

    Attributes:
        name: Function name, also its entry label
        parameters: Source parameter name -> positional argument slot
        saved: Values saved around the call currently being emitted
        returned_at: Function-stream length right after the last
            return-to-caller instruction, -1 if none yet
    """
    name: str
    parameters: dict[str, str] = field(default_factory=dict)
    saved: list[str] = field(default_factory=list)
    returned_at: int = -1


# =============================================================================
# Compiler State
# =============================================================================

@dataclass
class CompilerState:
    """
    Mutable state of one compilation.

    Attributes:
        source: The original source text (for error locations)
        text: Normalised source (comments blanked, line breaks as spaces)
        filename: Source file name for diagnostics
        options: Cost and naming options
        namespace: Temporary and label bookkeeping
    """
    source: str
    text: str
    filename: str
    options: CompilerOptions
    namespace: Namespace
    main: OutputStream = field(default_factory=OutputStream)
    functions: OutputStream = field(default_factory=OutputStream)
    costs: CostAccumulator = field(default_factory=CostAccumulator)
    function: Optional[FunctionContext] = None
    call_count: int = 0
    consumed: list[tuple[int, int]] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        source: str,
        filename: str = "<input>",
        options: Optional[CompilerOptions] = None,
        temporary_prefix: str = "Temp",
    ) -> "CompilerState":
        return cls(
            source=source,
            text=normalize(source),
            filename=filename,
            options=options or CompilerOptions(),
            namespace=Namespace(temporary_prefix),
        )

    @property
    def stream(self) -> OutputStream:
        """The stream instructions currently go to."""
        return self.functions if self.function is not None else self.main

    def add_pending_label(self, label: str) -> None:
        self.namespace.add_label(label)
        self.stream.pending_labels.append(label)

    # =========================================================================
    # Function Mode
    # =========================================================================

    def enter_function(self, context: FunctionContext) -> None:
        self.function = context

    def leave_function(self) -> None:
        self.function = None

    # =========================================================================
    # Out-of-order Lowering
    # =========================================================================

    def mark_consumed(self, start: int, end: int) -> None:
        """Record that source[start:end] has already been lowered."""
        self.consumed.append((start, end))

    def is_consumed(self, start: int, end: int) -> bool:
        if start < 0:
            return False
        return any(low <= start and end <= high for low, high in self.consumed)

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def locate(self, token: Optional[Token]) -> Optional[SourceLocation]:
        if token is None or token.offset < 0:
            return None
        return SourceLocation.from_offset(self.source, token.offset, self.filename)

    def error(
        self,
        error_class: type[CompilerError],
        message: str,
        token: Optional[Token] = None,
        hint: Optional[str] = None,
    ) -> CompilerError:
        """Build an error of error_class pointing at token."""
        location = self.locate(token)
        return error_class(
            message, location=location, hint=hint, source_line=self.source_line(location)
        )

    def source_line(self, location: Optional[SourceLocation]) -> Optional[str]:
        """The source line a location points into."""
        if location is None:
            return None
        return self.source.splitlines()[location.line - 1]
