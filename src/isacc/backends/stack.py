"""
Stack Back-End
==============

A zero-address machine. Operands are pushed, the operation pops its
inputs and pushes its result, and pop stores the top of the stack::

    push B
    push C
    add
    pop A

Jumps take their target from the stack as well. Every instruction
except a jump counts one access to the stack.
"""

from isacc.backends.base import WORD_SIZE, Backend, Condition, is_integer


class StackBackend(Backend):
    """Zero-address stack machine."""

    name = "stack"
    implicit_access = True

    def push(self, operand: str) -> None:
        self.write("push", operand)

    def pop(self, operand: str) -> None:
        self.write("pop", operand)

    def assign(self, result: str, operand: str) -> None:
        self.push(operand)
        self.pop(result)

    def binary(self, op: str, result: str, operand1: str, operand2: str) -> None:
        self.push(operand1)
        self.push(operand2)
        self.write(op)
        self.pop(result)

    def jump(self, label: str) -> None:
        self.push(label)
        self.write("j")

    def branch(self, condition: Condition, operand1: str, operand2: str, label: str) -> None:
        self.push(label)
        self.push(operand1)
        self.push(operand2)
        if condition is Condition.EQ:
            self.write("beq")
        elif condition is Condition.NE:
            self.write("bne")
        else:
            self.write("slt")
            self.push(self.zero)
            self.write("bne" if condition is Condition.LT else "beq")

    def array_load(self, temp: str, base: str, index: str) -> None:
        if is_integer(index):
            self.push(base)
            self.push(str(WORD_SIZE * int(index)))
        else:
            self.push(index)
            self.push(str(WORD_SIZE))
            self.write("mul")
            self.push(base)
        self.write("add")
        self.write("lw")
        self.pop(temp)

    def switch_dispatch(self, value: str, count: int, exit_label: str) -> None:
        self.push(exit_label)
        self.push(value)
        self.push("0")
        self.write("slti")
        self.push(self.zero)
        self.write("bne")
        self.push(exit_label)
        self.push(value)
        self.push(str(count))
        self.write("slti")
        self.push(self.zero)
        self.write("beq")
        self.push(value)
        self.push(str(WORD_SIZE))
        self.write("mul")
        self.push(self.bind_operand(self.options.jump_table))
        self.write("add")
        self.write("lw")
        self.write("jr")

    def call(self, name: str) -> None:
        self.push(name)
        self.write("jal")

    def function_return(self) -> None:
        self.push(self.return_address)
        self.write("jr")
