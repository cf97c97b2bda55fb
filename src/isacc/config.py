"""
isacc - Compiler Configuration
==============================

Options that shape code generation and cost accounting. Configuration
can come from:
- Default values (defined here)
- Environment variables (CompilerOptions.from_env)
- Command-line flags, which the CLI applies on top of the environment

Cost model defaults follow the classic textbook machine used to compare
instruction-set styles: every instruction spends 6 bits on its opcode and
24 bits on each address-sized operand it names.
"""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class CompilerOptions:
    """
    Configuration for one compilation.

    Attributes:
        opcode_bits: Encoded width of the opcode field of every instruction
        address_bits: Encoded width of each operand field
        jump_table: Name of the memory word holding the switch jump-table base
        emit_summary: Append the cost summary block to the listing
    """

    opcode_bits: int = 6
    address_bits: int = 24
    jump_table: str = "addrJumpTable"
    emit_summary: bool = True

    def __post_init__(self) -> None:
        if self.opcode_bits <= 0:
            raise ValueError(f"opcode_bits must be positive, got {self.opcode_bits}")
        if self.address_bits <= 0:
            raise ValueError(f"address_bits must be positive, got {self.address_bits}")
        if not self.jump_table.isidentifier():
            raise ValueError(f"jump_table must be an identifier, got {self.jump_table!r}")

    @classmethod
    def from_env(cls) -> "CompilerOptions":
        """
        Create CompilerOptions from environment variables.

        Environment variables (all optional):
            ISACC_OPCODE_BITS: Opcode width in bits (integer)
            ISACC_ADDRESS_BITS: Operand width in bits (integer)
            ISACC_JUMP_TABLE: Jump-table base symbol
            ISACC_EMIT_SUMMARY: "0"/"false"/"no" to drop the summary block

        Returns:
            CompilerOptions with values from environment variables
        """
        values = {}

        for name, var in (("opcode_bits", "ISACC_OPCODE_BITS"),
                          ("address_bits", "ISACC_ADDRESS_BITS")):
            if raw := os.environ.get(var):
                try:
                    values[name] = int(raw)
                except ValueError:
                    logger.warning(f"Ignoring {var}={raw!r}: not an integer")

        if jump_table := os.environ.get("ISACC_JUMP_TABLE"):
            values["jump_table"] = jump_table

        if summary := os.environ.get("ISACC_EMIT_SUMMARY"):
            values["emit_summary"] = summary.strip().lower() not in ("0", "false", "no")

        return cls(**values)
