"""
Cost Accounting
===============

Static cost counters kept while code is emitted, and a recount that
derives the same bit total from a finished listing.

Metrics
-------
- Instruction count: one per emitted instruction (label-only lines
  are not instructions)
- Code size: opcode width plus operand width times operand count,
  summed over all instructions
- Memory accesses: one per operand that is not a label reference, plus
  one per non-jump instruction on machines with an implicit accumulator
  or stack operand
"""

from dataclasses import dataclass
from typing import Optional

from isacc.config import CompilerOptions


@dataclass
class CostAccumulator:
    """Running totals for one compilation."""

    instructions: int = 0
    bits: int = 0
    memory_accesses: int = 0

    def record(self, bits: int, memory_accesses: int) -> None:
        self.instructions += 1
        self.bits += bits
        self.memory_accesses += memory_accesses

    def merge(self, other: "CostAccumulator") -> None:
        """Add another accumulator's totals into this one."""
        self.instructions += other.instructions
        self.bits += other.bits
        self.memory_accesses += other.memory_accesses

    def summary(self) -> str:
        """Render the summary block appended to every listing."""
        return (
            f"Instruction count:\t{self.instructions}\n"
            f"Size of resulting code:\t{self.bits} bits\n"
            f"# of memory accesses:\t{self.memory_accesses}"
        )


def instruction_bits(operand_count: int, options: CompilerOptions) -> int:
    """Encoded width of one instruction naming operand_count operands."""
    return options.opcode_bits + options.address_bits * operand_count


def recount_listing(listing: str, options: Optional[CompilerOptions] = None) -> CostAccumulator:
    """
    Recompute instruction count and code size from listing text.

    Reads instruction lines up to the blank line that opens the summary
    block. Memory accesses depend on label knowledge the text does not
    carry, so that total is left at zero.

    Args:
        listing: Output of a compilation
        options: Cost widths used for the compilation

    Returns:
        CostAccumulator with instructions and bits filled in
    """
    options = options or CompilerOptions()
    totals = CostAccumulator()

    for line in listing.splitlines():
        if not line.strip():
            break
        if line == "...":
            continue
        if ":\t" in line:
            body = line.split(":\t", 1)[1]
        elif line.endswith(":") and not line.startswith("\t"):
            continue
        else:
            body = line
        body = body.strip()
        _, _, rest = body.partition(" ")
        operands = [part for part in rest.split(", ") if part] if rest else []
        totals.record(instruction_bits(len(operands), options), 0)

    return totals
