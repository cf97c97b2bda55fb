"""
Accumulator Back-End
====================

A one-address machine: every instruction names at most one memory
operand and works against the implicit accumulator, so each
three-operand assignment becomes load / operate / store::

    load B
    add C
    store A

Every instruction except a jump also counts one access to the
accumulator.
"""

from isacc.backends.base import WORD_SIZE, Backend, Condition, is_integer


class AccumulatorBackend(Backend):
    """Single-accumulator machine."""

    name = "accumulator"
    implicit_access = True

    def assign(self, result: str, operand: str) -> None:
        self.write("load", operand)
        self.write("store", result)

    def binary(self, op: str, result: str, operand1: str, operand2: str) -> None:
        self.write("load", operand1)
        self.write(op, operand2)
        self.write("store", result)

    def jump(self, label: str) -> None:
        self.write("j", label)

    def branch(self, condition: Condition, operand1: str, operand2: str, label: str) -> None:
        self.write("load", operand1)
        if condition is Condition.EQ:
            self.write("beq", operand2, label)
        elif condition is Condition.NE:
            self.write("bne", operand2, label)
        else:
            self.write("slt", operand2)
            self.write("bne" if condition is Condition.LT else "beq", self.zero, label)

    def array_load(self, temp: str, base: str, index: str) -> None:
        if is_integer(index):
            self.write("lw", f"{WORD_SIZE * int(index)}({base})")
        else:
            self.write("load", index)
            self.write("muli", str(WORD_SIZE))
            self.write("add", base)
            self.write("store", temp)
            self.write("lw", f"0({temp})")
        self.write("store", temp)

    def switch_dispatch(self, value: str, count: int, exit_label: str) -> None:
        temp = self.new_temporary()
        self.write("load", value)
        self.write("slti", "0")
        self.write("bne", self.zero, exit_label)
        self.write("load", value)
        self.write("slti", str(count))
        self.write("beq", self.zero, exit_label)
        self.write("load", value)
        self.write("muli", str(WORD_SIZE))
        self.write("add", self.bind_operand(self.options.jump_table))
        self.write("store", temp)
        self.write("lw", f"0({temp})")
        self.write("store", temp)
        self.write("jr", temp)
        self.release_temporary(temp)

    def call(self, name: str) -> None:
        self.write("jal", name)

    def function_return(self) -> None:
        self.write("jr", self.return_address)
