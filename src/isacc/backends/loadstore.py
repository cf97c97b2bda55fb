"""
Load/Store Back-End
===================

A register machine in the MIPS style. Arithmetic works on registers
only; memory is reached through lw and sw.

Register Use
------------
| Register  | Holds                                                  |
|-----------|--------------------------------------------------------|
| $s0..     | program variables, in order of first reference         |
| $t0..     | temporaries                                            |
| $a0..     | call arguments                                         |
| $v0       | function result                                        |
| $ra       | return address                                         |
| $sp       | stack pointer for registers saved around nested calls  |
| $zero     | constant zero                                          |

A variable is loaded into its register the first time it is read
(``lw $s1, B($zero)``), once in the main program and once in the function
bodies. A variable that is first written gets its
register without a load. Every assignment outside a sub-expression is
written back to memory with ``sw``.
"""

from typing import Optional

from isacc.backends.base import WORD_SIZE, is_number
from isacc.backends.memory import ThreeAddressBackend


class LoadStoreBackend(ThreeAddressBackend):
    """Register-file machine with explicit loads and stores."""

    name = "loadstore"
    temporary_prefix = "$t"
    return_value = "$v0"
    return_address = "$ra"
    stack_pointer = "$sp"
    zero = "$zero"
    labels_return_point = False

    def __init__(self, state):
        super().__init__(state)
        self._registers: dict[str, str] = {}
        # Variables already loaded or written, keyed by output stream
        self._loaded: dict[int, set[str]] = {}

    # =========================================================================
    # Register Binding
    # =========================================================================

    def bind_operand(self, name: str) -> str:
        return self._bind(name, load=True)

    def bind_result(self, name: str) -> str:
        return self._bind(name, load=False)

    def arg_slot(self, index: int) -> str:
        return f"$a{index}"

    def variable_of(self, register: str) -> Optional[str]:
        """The variable bound to register, if any."""
        for variable, bound in self._registers.items():
            if bound == register:
                return variable
        return None

    def _bind(self, name: str, load: bool) -> str:
        if name.startswith("$") or is_number(name) or self.is_label(name):
            return name
        register = self._registers.get(name)
        if register is None:
            register = f"$s{len(self._registers)}"
            self._registers[name] = register

        # Main code and function bodies each load a variable on first read
        loaded = self._loaded.setdefault(id(self.state.stream), set())
        if name not in loaded:
            loaded.add(name)
            if load:
                self.write("lw", register, f"{name}({self.zero})")
        return register

    # =========================================================================
    # Emission Primitives
    # =========================================================================

    def store_back(self, result: str) -> None:
        variable = self.variable_of(result)
        if variable is not None:
            self.write("sw", result, f"{variable}({self.zero})")

    # =========================================================================
    # Calling Convention
    # =========================================================================

    def save_frame(self, values: list[str]) -> None:
        self.write("subi", self.stack_pointer, self.stack_pointer, str(WORD_SIZE * len(values)))
        for index, value in enumerate(values):
            self.write("sw", value, f"{WORD_SIZE * index}({self.stack_pointer})")

    def restore_frame(self, values: list[str]) -> None:
        for index, value in enumerate(values):
            self.write("lw", value, f"{WORD_SIZE * index}({self.stack_pointer})")
        self.write("addi", self.stack_pointer, self.stack_pointer, str(WORD_SIZE * len(values)))
