"""
ISA Back-End Contract
=====================

The lowering engine and the control-flow and function handlers never
write instruction text themselves. They call the primitives below, and
each instruction-set style implements them once.

Primitives
----------
| Primitive         | Purpose                                              |
|-------------------|------------------------------------------------------|
| bind_operand      | storage name for a value that is read                |
| bind_result       | storage name for a value that is written             |
| assign            | result = operand                                     |
| binary            | result = operand1 op operand2                        |
| store_back        | write a result to its home location, where required  |
| jump              | unconditional jump to a label                        |
| branch            | compare two operands and jump to a label             |
| array_load        | temp = *(base + 4 * index)                           |
| switch_dispatch   | bounds checks plus indirect jump through the table   |
| call / save_frame / restore_frame / function_return | calling convention |

Every instruction goes through write(), which attaches the labels
waiting in the active stream and charges the cost of the instruction.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

from isacc.costs import instruction_bits

if TYPE_CHECKING:
    from isacc.compiler.state import CompilerState

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Bytes per array element and per saved stack word
WORD_SIZE = 4

# Control transfers; these never touch the implicit accumulator or stack
JUMP_OPS = frozenset({"j", "jr", "jal"})

# Operand placeholder resolved to the following instruction's address
NEXT_ADDRESS = "<next>"

_INTEGER = re.compile(r"-?\d+")
_NUMBER = re.compile(r"[-+]?\d*\.?\d+")


def is_integer(text: str) -> bool:
    return _INTEGER.fullmatch(text) is not None


def is_number(text: str) -> bool:
    return _NUMBER.fullmatch(text) is not None


@dataclass
class Instruction:
    """
    One emitted instruction, or a label-only line when op is None.

    Attributes:
        op: Mnemonic, or None for a line that only defines labels
        operands: Operand spellings in emission order
        labels: Labels defined at this instruction
        bits: Encoded width charged for it
        memory_accesses: Memory accesses charged for it
    """
    op: Optional[str]
    operands: tuple[str, ...] = ()
    labels: tuple[str, ...] = ()
    bits: int = 0
    memory_accesses: int = 0

    @property
    def size(self) -> int:
        """Size in bytes, rounding the bit width up."""
        return (self.bits + 7) // 8


class Condition(Enum):
    """
    The branch tests every back-end supports.

    ``<``, ``>``, ``<=`` and ``>=`` are reduced to LT and GE by
    swapping operands, so slt is the only ordering instruction needed.
    """
    EQ = "eq"
    NE = "ne"
    LT = "lt"
    GE = "ge"

    @property
    def negated(self) -> "Condition":
        return _NEGATIONS[self]


_NEGATIONS = {
    Condition.EQ: Condition.NE,
    Condition.NE: Condition.EQ,
    Condition.LT: Condition.GE,
    Condition.GE: Condition.LT,
}


# =============================================================================
# Back-End Base Class
# =============================================================================

class Backend:
    """
    Base class for instruction-set back-ends.

    Subclasses set the class attributes describing their conventions and
    implement the emission primitives. A back-end instance belongs to one
    compilation and shares its CompilerState.

    Attributes:
        name: ISA identifier used on the command line
        temporary_prefix: Spelling in front of temporary indices
        return_value: Where functions leave their result
        return_address: Where a callee finds its return point
        zero: Operand spelling of the constant zero in comparisons
        implicit_access: Every non-jump instruction also reads or writes
            an implicit accumulator or stack operand
        labels_return_point: Calls define a returnAddressN label at the
            instruction after the call
    """

    name: ClassVar[str] = ""
    temporary_prefix: ClassVar[str] = "Temp"
    return_value: ClassVar[str] = "returnValue"
    return_address: ClassVar[str] = "returnAddress"
    zero: ClassVar[str] = "0"
    implicit_access: ClassVar[bool] = False
    labels_return_point: ClassVar[bool] = True

    def __init__(self, state: "CompilerState"):
        self.state = state
        self.options = state.options

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.state.filename!r})"

    # =========================================================================
    # Operand Naming
    # =========================================================================

    def bind_operand(self, name: str) -> str:
        return name

    def bind_result(self, name: str) -> str:
        return name

    def arg_slot(self, index: int) -> str:
        return f"arg{index}"

    def save_slot(self, index: int) -> str:
        return f"stackAddr{index}"

    def is_label(self, operand: str) -> bool:
        return self.state.namespace.is_label(operand)

    # =========================================================================
    # Emission and Cost Accounting
    # =========================================================================

    def write(self, op: str, *operands: str) -> Instruction:
        """
        Append one instruction to the active stream.

        Pending labels of the stream are attached to it and its cost is
        added to the compilation totals.
        """
        stream = self.state.stream
        instruction = Instruction(
            op=op,
            operands=operands,
            labels=stream.take_labels(),
            bits=instruction_bits(len(operands), self.options),
            memory_accesses=self.count_accesses(op, operands),
        )
        stream.instructions.append(instruction)
        self.state.costs.record(instruction.bits, instruction.memory_accesses)
        logger.debug(f"{self.name}: {op} {', '.join(operands)}")
        return instruction

    def count_accesses(self, op: str, operands: tuple[str, ...]) -> int:
        count = sum(
            1 for operand in operands
            if operand != NEXT_ADDRESS and not self.is_label(operand)
        )
        if self.implicit_access and op not in JUMP_OPS:
            count += 1
        return count

    def format_instruction(self, instruction: Instruction, next_address: int) -> list[str]:
        """
        Render one instruction as listing lines.

        All labels but the last get a line of their own; the last one
        prefixes the instruction itself.
        """
        lines = [f"{label}:" for label in instruction.labels[:-1]]
        prefix = f"{instruction.labels[-1]}:" if instruction.labels else ""
        if instruction.op is None:
            lines.append(prefix)
            return lines

        operands = [
            str(next_address) if operand == NEXT_ADDRESS else operand
            for operand in instruction.operands
        ]
        text = instruction.op
        if operands:
            text += " " + ", ".join(operands)
        lines.append(f"{prefix}\t{text}")
        return lines

    def render(self, instructions: list[Instruction], address: int = 0) -> tuple[list[str], int]:
        """
        Render instructions laid out from byte address onwards.

        Returns:
            The listing lines and the address after the last instruction
        """
        lines: list[str] = []
        for instruction in instructions:
            address += instruction.size
            lines.extend(self.format_instruction(instruction, address))
        return lines, address

    # =========================================================================
    # Emission Primitives
    # =========================================================================

    def assign(self, result: str, operand: str) -> None:
        raise NotImplementedError

    def binary(self, op: str, result: str, operand1: str, operand2: str) -> None:
        raise NotImplementedError

    def store_back(self, result: str) -> None:
        """Write result to its home location (memory machines: nothing to do)."""

    def jump(self, label: str) -> None:
        raise NotImplementedError

    def branch(self, condition: Condition, operand1: str, operand2: str, label: str) -> None:
        raise NotImplementedError

    def array_load(self, temp: str, base: str, index: str) -> None:
        raise NotImplementedError

    def switch_dispatch(self, value: str, count: int, exit_label: str) -> None:
        raise NotImplementedError

    # =========================================================================
    # Calling Convention
    # =========================================================================

    def call(self, name: str) -> None:
        raise NotImplementedError

    def function_return(self) -> None:
        raise NotImplementedError

    def save_frame(self, values: list[str]) -> None:
        """Copy values into the save slots before a nested call."""
        for index, value in enumerate(values):
            self.assign(self.save_slot(index), value)

    def restore_frame(self, values: list[str]) -> None:
        """Copy the save slots back after a nested call, in saved order."""
        for index, value in enumerate(values):
            self.assign(value, self.save_slot(index))

    # =========================================================================
    # Helpers
    # =========================================================================

    def new_temporary(self) -> str:
        return self.state.namespace.new_temporary()

    def release_temporary(self, name: str) -> None:
        self.state.namespace.release_temporary(name)
