"""
ISA Back-Ends
=============

The five instruction-set styles the compiler targets, and the registry
that maps an ISA identifier to its back-end class.

| ISA          | Class               | Instruction shape            |
|--------------|---------------------|------------------------------|
| mm4          | FourAddressBackend  | op r, o1, o2, next           |
| mm3          | ThreeAddressBackend | op r, o1, o2                 |
| accumulator  | AccumulatorBackend  | op o                         |
| stack        | StackBackend        | push o ... op ... pop r      |
| loadstore    | LoadStoreBackend    | op $r, $r, $r plus lw / sw   |
"""

from enum import Enum
from typing import Union

from isacc.backends.accumulator import AccumulatorBackend
from isacc.backends.base import (
    NEXT_ADDRESS,
    WORD_SIZE,
    Backend,
    Condition,
    Instruction,
)
from isacc.backends.loadstore import LoadStoreBackend
from isacc.backends.memory import FourAddressBackend, ThreeAddressBackend
from isacc.backends.stack import StackBackend


class ISA(Enum):
    """Supported instruction-set architectures."""

    MM4ADDRESS = "mm4"
    MM3ADDRESS = "mm3"
    ACCUMULATOR = "accumulator"
    STACK = "stack"
    LOADSTORE = "loadstore"

    @classmethod
    def parse(cls, value: Union["ISA", str]) -> "ISA":
        """
        Accept an ISA, its identifier ("mm3") or its name ("MM3ADDRESS").

        Raises:
            ValueError: If value names no ISA
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for isa in cls:
            if text.lower() == isa.value or text.upper() == isa.name:
                return isa
        choices = ", ".join(isa.value for isa in cls)
        raise ValueError(f"unknown ISA {value!r} (choose from {choices})")


BACKENDS: dict[ISA, type[Backend]] = {
    ISA.MM4ADDRESS: FourAddressBackend,
    ISA.MM3ADDRESS: ThreeAddressBackend,
    ISA.ACCUMULATOR: AccumulatorBackend,
    ISA.STACK: StackBackend,
    ISA.LOADSTORE: LoadStoreBackend,
}


def get_backend(isa: Union[ISA, str]) -> type[Backend]:
    return BACKENDS[ISA.parse(isa)]


__all__ = [
    "ISA",
    "BACKENDS",
    "get_backend",
    "Backend",
    "Condition",
    "Instruction",
    "NEXT_ADDRESS",
    "WORD_SIZE",
    "AccumulatorBackend",
    "FourAddressBackend",
    "LoadStoreBackend",
    "StackBackend",
    "ThreeAddressBackend",
]
