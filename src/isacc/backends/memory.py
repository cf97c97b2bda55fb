"""
Memory-to-Memory Back-Ends
==========================

Three-address and four-address machines. Every operand names a memory
word, so results need no separate store and variables need no binding.

Three-address instruction shape::

    add A, B, C             A = B + C
    beq A, B, True0         jump to True0 if A == B

The four-address machine adds the address of the next instruction to
every instruction that does not itself transfer control, so its encoding
makes the sequencing explicit::

    add A, B, C, 13         A = B + C, continue at address 13

Calling convention: arguments travel in the words arg0, arg1, ...; the
callee returns through returnAddress and leaves its result in
returnValue.
"""

from isacc.backends.base import (
    JUMP_OPS,
    NEXT_ADDRESS,
    WORD_SIZE,
    Backend,
    Condition,
    Instruction,
    is_integer,
)


class ThreeAddressBackend(Backend):
    """Memory-to-memory machine with op result, operand1, operand2."""

    name = "mm3"

    def assign(self, result: str, operand: str) -> None:
        self.write("add", result, operand, self.zero)

    def binary(self, op: str, result: str, operand1: str, operand2: str) -> None:
        self.write(op, result, operand1, operand2)

    def jump(self, label: str) -> None:
        self.write("j", label)

    def branch(self, condition: Condition, operand1: str, operand2: str, label: str) -> None:
        if condition is Condition.EQ:
            self.write("beq", operand1, operand2, label)
        elif condition is Condition.NE:
            self.write("bne", operand1, operand2, label)
        else:
            temp = self.new_temporary()
            self.write("slt", temp, operand1, operand2)
            self.write("bne" if condition is Condition.LT else "beq", temp, self.zero, label)
            self.release_temporary(temp)

    def array_load(self, temp: str, base: str, index: str) -> None:
        if is_integer(index):
            self.write("lw", temp, f"{WORD_SIZE * int(index)}({base})")
            return
        # temp = 4 * index by doubling twice, then add the base address
        self.write("add", temp, index, index)
        self.write("add", temp, temp, temp)
        self.write("add", temp, temp, base)
        self.write("lw", temp, f"0({temp})")

    def switch_dispatch(self, value: str, count: int, exit_label: str) -> None:
        temp = self.new_temporary()
        self.write("slti", temp, value, "0")
        self.write("bne", temp, self.zero, exit_label)
        self.write("slti", temp, value, str(count))
        self.write("beq", temp, self.zero, exit_label)
        self.write("add", temp, value, value)
        self.write("add", temp, temp, temp)
        self.write("add", temp, temp, self.bind_operand(self.options.jump_table))
        self.write("lw", temp, f"0({temp})")
        self.write("jr", temp)
        self.release_temporary(temp)

    def call(self, name: str) -> None:
        self.write("jal", name)

    def function_return(self) -> None:
        self.write("jr", self.return_address)


class FourAddressBackend(ThreeAddressBackend):
    """Three-address machine whose instructions also name their successor."""

    name = "mm4"

    def write(self, op: str, *operands: str) -> Instruction:
        if op not in JUMP_OPS:
            operands = (*operands, NEXT_ADDRESS)
        return super().write(op, *operands)
